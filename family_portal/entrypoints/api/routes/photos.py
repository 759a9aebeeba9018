"""家族写真ギャラリー API ルート

GET    /api/photos                  → 200 [Photo...]
POST   /api/photos                  → 201 Photo   (multipart: file, caption)
PATCH  /api/photos/{id}             → 200 Photo   { caption }
POST   /api/photos/{id}/reactions   → 200 Photo   { emoji }
DELETE /api/photos/{id}             → 204
"""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Form, UploadFile, status
from pydantic import BaseModel

from family_portal.domain.models import Photo, Principal
from family_portal.entrypoints.api.deps import get_photo_service, get_principal
from family_portal.services import PhotoService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/photos", tags=["photos"])


class CaptionRequest(BaseModel):
    caption: str = ""


class ReactionRequest(BaseModel):
    emoji: str


class PhotoResponse(BaseModel):
    id: str
    url: str
    caption: str
    uploaded_by: str
    uploaded_at: datetime | None
    reactions: dict[str, list[str]]
    trip_id: str | None = None


def to_photo_response(photo: Photo) -> PhotoResponse:
    return PhotoResponse(
        id=photo.id,
        url=photo.url,
        caption=photo.caption,
        uploaded_by=photo.uploaded_by,
        uploaded_at=photo.uploaded_at,
        reactions={k: list(v) for k, v in photo.reactions.items()},
        trip_id=photo.trip_id,
    )


@router.get("", response_model=list[PhotoResponse])
async def list_photos(
    principal: Principal = Depends(get_principal),
    service: PhotoService = Depends(get_photo_service),
) -> list[PhotoResponse]:
    """写真一覧（新しい順）"""
    return [to_photo_response(p) for p in service.list_photos()]


@router.post("", status_code=status.HTTP_201_CREATED, response_model=PhotoResponse)
async def upload_photo(
    file: UploadFile,
    caption: str = Form(""),
    principal: Principal = Depends(get_principal),
    service: PhotoService = Depends(get_photo_service),
) -> PhotoResponse:
    """写真をアップロードする"""
    content = await file.read()
    photo = service.upload_photo(
        content,
        file.filename or "",
        file.content_type or "",
        uploaded_by=principal.email,
        caption=caption,
    )
    return to_photo_response(photo)


@router.patch("/{photo_id}", response_model=PhotoResponse)
async def update_caption(
    photo_id: str,
    body: CaptionRequest,
    principal: Principal = Depends(get_principal),
    service: PhotoService = Depends(get_photo_service),
) -> PhotoResponse:
    """キャプションを更新する"""
    return to_photo_response(service.update_caption(photo_id, body.caption))


@router.post("/{photo_id}/reactions", response_model=PhotoResponse)
async def toggle_reaction(
    photo_id: str,
    body: ReactionRequest,
    principal: Principal = Depends(get_principal),
    service: PhotoService = Depends(get_photo_service),
) -> PhotoResponse:
    """ログイン中のユーザーのリアクションを付け外しする"""
    photo = service.toggle_reaction(photo_id, body.emoji, principal.email)
    return to_photo_response(photo)


@router.delete("/{photo_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_photo(
    photo_id: str,
    principal: Principal = Depends(get_principal),
    service: PhotoService = Depends(get_photo_service),
) -> None:
    """写真ファイルとレコードを削除する"""
    service.delete_photo(photo_id)
    logger.info("Photo deleted: id=%s, by=%s", photo_id, principal.email)
