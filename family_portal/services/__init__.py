"""Services layer - ビジネスロジック"""

from family_portal.services.family_tree_service import FamilyTreeService
from family_portal.services.photo_service import PhotoService
from family_portal.services.trip_service import TripService

__all__ = [
    "FamilyTreeService",
    "PhotoService",
    "TripService",
]
