"""TripService - 旅行レコードの管理と、写真を含めた削除

旅行を削除する際は、その旅行の写真ごとに
  1. ストレージ上のファイル
  2. 写真レコード
を削除し、最後に旅行レコードを削除する。
Firestore にトランザクションは使わないため、途中で失敗すると
削除済みの写真は戻らない（ロールバック・リトライなし）。
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

from family_portal.domain.errors import NotFoundError, PartialDeleteError, ValidationError
from family_portal.domain.models import Trip
from family_portal.domain.ports import BlobStorage, PhotoRepository, TripRepository

logger = logging.getLogger(__name__)


class TripService:
    """旅行と旅行写真のライフサイクル管理"""

    def __init__(
        self,
        trip_repo: TripRepository,
        trip_photo_repo: PhotoRepository,
        storage: BlobStorage,
    ) -> None:
        self._trips = trip_repo
        self._trip_photos = trip_photo_repo
        self._storage = storage

    def list_trips(self) -> list[Trip]:
        return self._trips.list()

    def get_trip(self, trip_id: str) -> Trip:
        trip = self._trips.get(trip_id)
        if trip is None:
            raise NotFoundError(f"Trip not found: {trip_id}")
        return trip

    def create_trip(self, trip: Trip) -> Trip:
        _validate_trip(trip.title, trip.location, trip.start_date, trip.end_date)
        trip_id = self._trips.create(trip)
        logger.info("Created trip: id=%s, created_by=%s", trip_id, trip.created_by)
        return replace(trip, id=trip_id)

    def update_trip(self, trip_id: str, data: dict[str, Any]) -> Trip:
        current = self.get_trip(trip_id)
        updated = replace(current, **data)
        _validate_trip(updated.title, updated.location, updated.start_date, updated.end_date)
        self._trips.update(trip_id, data)
        return updated

    def delete_trip(self, trip_id: str) -> int:
        """
        旅行と全ての旅行写真を削除する。

        Returns:
            削除した写真の枚数

        Raises:
            NotFoundError: 旅行が存在しない
            PartialDeleteError: 途中で失敗した（削除済み・残りの枚数を保持）
        """
        self.get_trip(trip_id)
        photos = self._trip_photos.list(trip_id=trip_id)

        deleted = 0
        try:
            for photo in photos:
                if photo.storage_path:
                    self._storage.delete(photo.storage_path)
                self._trip_photos.delete(photo.id)
                deleted += 1
            self._trips.delete(trip_id)
        except Exception as e:
            logger.error(
                "Trip delete failed midway: trip_id=%s, deleted=%d, remaining=%d",
                trip_id,
                deleted,
                len(photos) - deleted,
                exc_info=True,
            )
            raise PartialDeleteError(trip_id, deleted, len(photos) - deleted) from e

        logger.info("Deleted trip: id=%s, photos=%d", trip_id, deleted)
        return deleted


def _validate_trip(title, location, start_date, end_date) -> None:
    if not (title or "").strip() or not (location or "").strip():
        raise ValidationError("Title and location are required")
    if start_date and end_date and end_date < start_date:
        raise ValidationError("End date must be on or after start date")
