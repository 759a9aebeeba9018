"""Domain layer - 外部依存なしのドメインモデルとインターフェース定義"""

from family_portal.domain.errors import (
    AuthError,
    FamilyPortalError,
    NotFoundError,
    PartialDeleteError,
    StoreError,
    ValidationError,
)
from family_portal.domain.family_tree import FamilyGraph, TreeNode
from family_portal.domain.models import (
    Asset,
    AssetType,
    DuplicateGroup,
    Gender,
    Person,
    Photo,
    Principal,
    SignInResult,
    Transaction,
    TransactionType,
    Trip,
)
from family_portal.domain.ports import (
    AssetRepository,
    BlobStorage,
    IdentityProvider,
    MemberRepository,
    PhotoRepository,
    TransactionRepository,
    TripRepository,
)

__all__ = [
    # Models
    "Gender",
    "TransactionType",
    "AssetType",
    "Principal",
    "SignInResult",
    "Person",
    "Photo",
    "Trip",
    "Transaction",
    "Asset",
    "DuplicateGroup",
    # Graph
    "FamilyGraph",
    "TreeNode",
    # Errors
    "FamilyPortalError",
    "AuthError",
    "ValidationError",
    "NotFoundError",
    "StoreError",
    "PartialDeleteError",
    # Ports
    "IdentityProvider",
    "MemberRepository",
    "PhotoRepository",
    "TripRepository",
    "TransactionRepository",
    "AssetRepository",
    "BlobStorage",
]
