"""PhotoService - 写真のアップロード・キャプション編集・リアクション・削除

家族写真ギャラリー（familyPhotos）と旅行写真（tripPhotos）の両方で使う。
どちらのコレクションを扱うかは渡す PhotoRepository とパス prefix で決まる。
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import replace
from datetime import datetime, timezone

from family_portal.domain.errors import NotFoundError, ValidationError
from family_portal.domain.models import Photo
from family_portal.domain.ports import BlobStorage, PhotoRepository
from family_portal.domain.reactions import toggle_reaction

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class PhotoService:
    """写真レコードと実ファイルの整合を取りながら操作する"""

    def __init__(
        self, photo_repo: PhotoRepository, storage: BlobStorage, prefix: str
    ) -> None:
        """
        Args:
            photo_repo: 写真レコードの永続化
            storage: 画像ファイルの保存先
            prefix: ストレージ上のパス prefix（"familyPhotos" / "tripPhotos"）
        """
        self._photos = photo_repo
        self._storage = storage
        self._prefix = prefix

    def list_photos(self, trip_id: str | None = None) -> list[Photo]:
        return self._photos.list(trip_id=trip_id)

    def get_photo(self, photo_id: str, trip_id: str | None = None) -> Photo:
        """trip_id 指定時は、その旅行の写真でなければ NotFoundError"""
        photo = self._photos.get(photo_id)
        if photo is None or (trip_id is not None and photo.trip_id != trip_id):
            raise NotFoundError(f"Photo not found: {photo_id}")
        return photo

    def upload_photo(
        self,
        content: bytes,
        filename: str,
        content_type: str,
        uploaded_by: str,
        caption: str = "",
        trip_id: str | None = None,
    ) -> Photo:
        """
        画像をアップロードしてレコードを作成する。

        レコード作成に失敗した場合はアップロード済みのファイルを削除してから再送出する。
        """
        if not content:
            raise ValidationError("File is empty")
        if not (content_type or "").startswith("image/"):
            raise ValidationError(f"Unsupported file type: {content_type}")

        blob_path = self._blob_path(filename, trip_id)
        url = self._storage.upload(blob_path, content, content_type)

        photo = Photo(
            id="",
            url=url,
            caption=caption.strip(),
            uploaded_by=uploaded_by,
            uploaded_at=None,
            storage_path=blob_path,
            reactions={},
            trip_id=trip_id,
        )
        try:
            photo_id = self._photos.create(photo)
        except Exception:
            logger.exception("Failed to save photo record: path=%s", blob_path)
            self._discard_file(blob_path)
            raise
        logger.info("Uploaded photo: id=%s, path=%s", photo_id, blob_path)
        return replace(photo, id=photo_id, uploaded_at=datetime.now(timezone.utc))

    def update_caption(
        self, photo_id: str, caption: str, trip_id: str | None = None
    ) -> Photo:
        photo = self.get_photo(photo_id, trip_id)
        caption = caption.strip()
        self._photos.update(photo_id, {"caption": caption})
        return replace(photo, caption=caption)

    def toggle_reaction(
        self, photo_id: str, emoji: str, user_id: str, trip_id: str | None = None
    ) -> Photo:
        """
        リアクションを付け外しする。

        読み取り → 書き込みの間に他ユーザーが更新した場合は後勝ち（競合検出なし）。
        """
        if not emoji:
            raise ValidationError("Emoji is required")
        photo = self.get_photo(photo_id, trip_id)
        reactions = toggle_reaction(photo.reactions, emoji, user_id)
        self._photos.update(photo_id, {"reactions": reactions})
        return replace(photo, reactions=reactions)

    def delete_photo(self, photo_id: str, trip_id: str | None = None) -> None:
        """ファイルを削除してからレコードを削除する"""
        photo = self.get_photo(photo_id, trip_id)
        if photo.storage_path:
            self._storage.delete(photo.storage_path)
        self._photos.delete(photo_id)
        logger.info("Deleted photo: id=%s", photo_id)

    def _blob_path(self, filename: str, trip_id: str | None) -> str:
        safe_name = _UNSAFE_CHARS.sub("_", filename or "photo") or "photo"
        stamp = int(time.time() * 1000)
        if trip_id:
            return f"{self._prefix}/{trip_id}/{stamp}_{safe_name}"
        return f"{self._prefix}/{stamp}_{safe_name}"

    def _discard_file(self, blob_path: str) -> None:
        try:
            self._storage.delete(blob_path)
        except Exception as e:
            logger.warning("Failed to clean up uploaded file: path=%s, error=%s", blob_path, e)
