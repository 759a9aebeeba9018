"""旅行 API ルート

GET    /api/trips                                    → 200 [Trip...]
POST   /api/trips                                    → 201 Trip
PUT    /api/trips/{id}                               → 200 Trip
DELETE /api/trips/{id}                               → 204  (写真も削除。途中失敗は 500)
GET    /api/trips/{id}/photos                        → 200 [Photo...]
POST   /api/trips/{id}/photos                        → 201 Photo
PATCH  /api/trips/{id}/photos/{photo_id}             → 200 Photo
POST   /api/trips/{id}/photos/{photo_id}/reactions   → 200 Photo
DELETE /api/trips/{id}/photos/{photo_id}             → 204
"""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, Form, UploadFile, status
from pydantic import BaseModel

from family_portal.domain.models import Principal, Trip
from family_portal.entrypoints.api.deps import (
    get_principal,
    get_trip_photo_service,
    get_trip_service,
)
from family_portal.entrypoints.api.routes.photos import (
    CaptionRequest,
    PhotoResponse,
    ReactionRequest,
    to_photo_response,
)
from family_portal.services import PhotoService, TripService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/trips", tags=["trips"])


class TripRequest(BaseModel):
    title: str = ""
    location: str = ""
    emoji: str = "✈️"
    start_date: date | None = None
    end_date: date | None = None
    description: str = ""


class TripResponse(BaseModel):
    id: str
    title: str
    location: str
    emoji: str
    start_date: date | None
    end_date: date | None
    description: str
    created_by: str


def _to_response(trip: Trip) -> TripResponse:
    return TripResponse(
        id=trip.id,
        title=trip.title,
        location=trip.location,
        emoji=trip.emoji,
        start_date=trip.start_date,
        end_date=trip.end_date,
        description=trip.description,
        created_by=trip.created_by,
    )


@router.get("", response_model=list[TripResponse])
async def list_trips(
    principal: Principal = Depends(get_principal),
    service: TripService = Depends(get_trip_service),
) -> list[TripResponse]:
    """旅行一覧（開始日の新しい順）"""
    return [_to_response(t) for t in service.list_trips()]


@router.post("", status_code=status.HTTP_201_CREATED, response_model=TripResponse)
async def create_trip(
    body: TripRequest,
    principal: Principal = Depends(get_principal),
    service: TripService = Depends(get_trip_service),
) -> TripResponse:
    """旅行を登録する"""
    trip = Trip(
        id="",
        title=body.title.strip(),
        location=body.location.strip(),
        emoji=body.emoji or "✈️",
        start_date=body.start_date,
        end_date=body.end_date,
        description=body.description,
        created_by=principal.email,
    )
    created = service.create_trip(trip)
    logger.info("Trip created: id=%s, by=%s", created.id, principal.email)
    return _to_response(created)


@router.put("/{trip_id}", response_model=TripResponse)
async def update_trip(
    trip_id: str,
    body: TripRequest,
    principal: Principal = Depends(get_principal),
    service: TripService = Depends(get_trip_service),
) -> TripResponse:
    """旅行を更新する"""
    data = body.model_dump()
    data["title"] = body.title.strip()
    data["location"] = body.location.strip()
    data["emoji"] = body.emoji or "✈️"
    return _to_response(service.update_trip(trip_id, data))


@router.delete("/{trip_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_trip(
    trip_id: str,
    principal: Principal = Depends(get_principal),
    service: TripService = Depends(get_trip_service),
) -> None:
    """旅行と旅行写真をすべて削除する"""
    deleted = service.delete_trip(trip_id)
    logger.info("Trip deleted: id=%s, photos=%d, by=%s", trip_id, deleted, principal.email)


# ── 旅行写真 ──────────────────────────────────────────────────────────────────


@router.get("/{trip_id}/photos", response_model=list[PhotoResponse])
async def list_trip_photos(
    trip_id: str,
    principal: Principal = Depends(get_principal),
    trips: TripService = Depends(get_trip_service),
    photos: PhotoService = Depends(get_trip_photo_service),
) -> list[PhotoResponse]:
    trips.get_trip(trip_id)
    return [to_photo_response(p) for p in photos.list_photos(trip_id=trip_id)]


@router.post(
    "/{trip_id}/photos",
    status_code=status.HTTP_201_CREATED,
    response_model=PhotoResponse,
)
async def upload_trip_photo(
    trip_id: str,
    file: UploadFile,
    caption: str = Form(""),
    principal: Principal = Depends(get_principal),
    trips: TripService = Depends(get_trip_service),
    photos: PhotoService = Depends(get_trip_photo_service),
) -> PhotoResponse:
    trips.get_trip(trip_id)
    content = await file.read()
    photo = photos.upload_photo(
        content,
        file.filename or "",
        file.content_type or "",
        uploaded_by=principal.email,
        caption=caption,
        trip_id=trip_id,
    )
    return to_photo_response(photo)


@router.patch("/{trip_id}/photos/{photo_id}", response_model=PhotoResponse)
async def update_trip_photo_caption(
    trip_id: str,
    photo_id: str,
    body: CaptionRequest,
    principal: Principal = Depends(get_principal),
    photos: PhotoService = Depends(get_trip_photo_service),
) -> PhotoResponse:
    return to_photo_response(
        photos.update_caption(photo_id, body.caption, trip_id=trip_id)
    )


@router.post("/{trip_id}/photos/{photo_id}/reactions", response_model=PhotoResponse)
async def toggle_trip_photo_reaction(
    trip_id: str,
    photo_id: str,
    body: ReactionRequest,
    principal: Principal = Depends(get_principal),
    photos: PhotoService = Depends(get_trip_photo_service),
) -> PhotoResponse:
    photo = photos.toggle_reaction(photo_id, body.emoji, principal.email, trip_id=trip_id)
    return to_photo_response(photo)


@router.delete(
    "/{trip_id}/photos/{photo_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def delete_trip_photo(
    trip_id: str,
    photo_id: str,
    principal: Principal = Depends(get_principal),
    photos: PhotoService = Depends(get_trip_photo_service),
) -> None:
    photos.delete_photo(photo_id, trip_id=trip_id)
    logger.info("Trip photo deleted: trip_id=%s, id=%s", trip_id, photo_id)
