"""Firestore Repository Adapter

各 Repository ABC の Firestore 実装。

Firestore コレクション構造（フィールド名は camelCase）:
  familyMembers/{memberId}        ← 家系図のメンバー
  familyPhotos/{photoId}          ← 家族写真ギャラリー
  trips/{tripId}                  ← 旅行
  tripPhotos/{photoId}            ← 旅行写真（tripId で旅行に紐づく）
  transactions/{transactionId}    ← 家計簿の取引
  assets/{assetId}                ← 資産口座

コレクション間の参照（trip → photos, person → person）はクライアント側で解決する。
Firestore の例外（google.api_core.exceptions.GoogleAPICallError）はそのまま送出し、
API 層で 502 に変換する。
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any

from google.cloud import firestore

from family_portal.domain.models import (
    Asset,
    AssetType,
    Gender,
    Person,
    Photo,
    Transaction,
    TransactionType,
    Trip,
)
from family_portal.domain.ports import (
    AssetRepository,
    MemberRepository,
    PhotoRepository,
    TransactionRepository,
    TripRepository,
)

logger = logging.getLogger(__name__)

MEMBERS = "familyMembers"
FAMILY_PHOTOS = "familyPhotos"
TRIPS = "trips"
TRIP_PHOTOS = "tripPhotos"
TRANSACTIONS = "transactions"
ASSETS = "assets"

# 日付のみの値は 12:00 UTC で保存する（タイムゾーン変換で前日にずれないように）
_NOON = time(12, 0)


# ── 値の変換 ──────────────────────────────────────────────────────────────────


def date_to_timestamp(value: date | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, _NOON, tzinfo=timezone.utc)


def timestamp_to_date(value: Any) -> date | None:
    """Timestamp / datetime / "YYYY-MM-DD" 文字列のいずれも受け付ける"""
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            logger.warning("Unparseable date value in Firestore: %r", value)
            return None
    return None


def _to_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return date_to_timestamp(value)
    return None


def _enum_or_none(enum_cls, value):
    try:
        return enum_cls(value) if value else None
    except ValueError:
        return None


def _to_firestore_update(
    data: dict[str, Any], field_map: dict[str, str], date_fields: frozenset[str]
) -> dict[str, Any]:
    """snake_case の部分更新 dict を Firestore のフィールド名・型に変換"""
    update: dict[str, Any] = {}
    for key, value in data.items():
        if key not in field_map:
            raise KeyError(f"Unknown field: {key}")
        if key in date_fields:
            value = date_to_timestamp(value)
        elif isinstance(value, Enum):
            value = value.value
        update[field_map[key]] = value
    return update


# ── Members ───────────────────────────────────────────────────────────────────

_PERSON_FIELDS = {
    "first_name": "firstName",
    "last_name": "lastName",
    "date_of_birth": "dateOfBirth",
    "date_of_death": "dateOfDeath",
    "place_of_birth": "placeOfBirth",
    "gender": "gender",
    "biography": "biography",
    "profile_picture_url": "profilePictureUrl",
    "profile_picture_path": "profilePicturePath",
    "parent_ids": "parentIds",
    "spouse_id": "spouseId",
    "display_order": "displayOrder",
}
_PERSON_DATES = frozenset({"date_of_birth", "date_of_death"})


class FirestoreMemberRepository(MemberRepository):
    """familyMembers コレクションの MemberRepository 実装"""

    def __init__(self, db: firestore.Client) -> None:
        self._db = db

    def list(self) -> list[Person]:
        snaps = self._db.collection(MEMBERS).order_by("lastName").stream()
        return [self._dict_to_person(snap.id, snap.to_dict()) for snap in snaps]

    def get(self, person_id: str) -> Person | None:
        snap = self._db.collection(MEMBERS).document(person_id).get()
        if not snap.exists:
            return None
        return self._dict_to_person(snap.id, snap.to_dict())

    def create(self, person: Person) -> str:
        data = _to_firestore_update(
            {
                "first_name": person.first_name,
                "last_name": person.last_name,
                "date_of_birth": person.date_of_birth,
                "date_of_death": person.date_of_death,
                "place_of_birth": person.place_of_birth,
                "gender": person.gender,
                "biography": person.biography,
                "profile_picture_url": person.profile_picture_url,
                "profile_picture_path": person.profile_picture_path,
                "parent_ids": list(person.parent_ids),
                "spouse_id": person.spouse_id,
                "display_order": person.display_order,
            },
            _PERSON_FIELDS,
            _PERSON_DATES,
        )
        data["createdAt"] = firestore.SERVER_TIMESTAMP
        data["createdBy"] = person.created_by
        _, ref = self._db.collection(MEMBERS).add(data)
        logger.info("Created member: id=%s", ref.id)
        return ref.id

    def update(self, person_id: str, data: dict[str, Any]) -> None:
        update = _to_firestore_update(data, _PERSON_FIELDS, _PERSON_DATES)
        self._db.collection(MEMBERS).document(person_id).update(update)
        logger.info("Updated member: id=%s, fields=%s", person_id, sorted(update))

    def delete(self, person_id: str) -> None:
        self._db.collection(MEMBERS).document(person_id).delete()
        logger.info("Deleted member: id=%s", person_id)

    @staticmethod
    def _dict_to_person(person_id: str, data: dict[str, Any]) -> Person:
        display_order = data.get("displayOrder")
        return Person(
            id=person_id,
            first_name=data.get("firstName", ""),
            last_name=data.get("lastName", ""),
            date_of_birth=timestamp_to_date(data.get("dateOfBirth")),
            date_of_death=timestamp_to_date(data.get("dateOfDeath")),
            place_of_birth=data.get("placeOfBirth") or "",
            gender=_enum_or_none(Gender, data.get("gender")),
            biography=data.get("biography") or "",
            profile_picture_url=data.get("profilePictureUrl") or "",
            profile_picture_path=data.get("profilePicturePath") or "",
            parent_ids=[p for p in (data.get("parentIds") or []) if p],
            spouse_id=data.get("spouseId") or None,
            display_order=int(display_order) if display_order is not None else None,
            created_at=_to_datetime(data.get("createdAt")),
            created_by=data.get("createdBy", ""),
        )


# ── Photos ────────────────────────────────────────────────────────────────────

_PHOTO_FIELDS = {
    "url": "url",
    "caption": "caption",
    "storage_path": "storagePath",
    "reactions": "reactions",
}


class FirestorePhotoRepository(PhotoRepository):
    """
    写真レコードの PhotoRepository 実装。

    家族写真（familyPhotos）と旅行写真（tripPhotos）で同じ実装を使い、
    コレクション名だけを切り替える。
    """

    def __init__(self, db: firestore.Client, collection: str = FAMILY_PHOTOS) -> None:
        self._db = db
        self._collection = collection

    def list(self, trip_id: str | None = None) -> list[Photo]:
        """新しい順。trip_id 指定時は等値フィルタのみで取得しメモリ上で並べる"""
        col = self._db.collection(self._collection)
        if trip_id is None:
            snaps = col.order_by(
                "uploadedAt", direction=firestore.Query.DESCENDING
            ).stream()
            return [self._dict_to_photo(snap.id, snap.to_dict()) for snap in snaps]

        # where + order_by の複合インデックスを不要にするためソートはクライアント側
        snaps = col.where("tripId", "==", trip_id).stream()
        photos = [self._dict_to_photo(snap.id, snap.to_dict()) for snap in snaps]
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        return sorted(photos, key=lambda p: p.uploaded_at or epoch, reverse=True)

    def get(self, photo_id: str) -> Photo | None:
        snap = self._db.collection(self._collection).document(photo_id).get()
        if not snap.exists:
            return None
        return self._dict_to_photo(snap.id, snap.to_dict())

    def create(self, photo: Photo) -> str:
        data: dict[str, Any] = {
            "url": photo.url,
            "caption": photo.caption,
            "uploadedBy": photo.uploaded_by,
            "uploadedAt": firestore.SERVER_TIMESTAMP,
            "storagePath": photo.storage_path,
            "reactions": {k: list(v) for k, v in photo.reactions.items()},
        }
        if photo.trip_id:
            data["tripId"] = photo.trip_id
        _, ref = self._db.collection(self._collection).add(data)
        logger.info(
            "Created photo: collection=%s, id=%s, trip_id=%s",
            self._collection,
            ref.id,
            photo.trip_id,
        )
        return ref.id

    def update(self, photo_id: str, data: dict[str, Any]) -> None:
        update = _to_firestore_update(data, _PHOTO_FIELDS, frozenset())
        self._db.collection(self._collection).document(photo_id).update(update)
        logger.info(
            "Updated photo: collection=%s, id=%s, fields=%s",
            self._collection,
            photo_id,
            sorted(update),
        )

    def delete(self, photo_id: str) -> None:
        self._db.collection(self._collection).document(photo_id).delete()
        logger.info("Deleted photo: collection=%s, id=%s", self._collection, photo_id)

    @staticmethod
    def _dict_to_photo(photo_id: str, data: dict[str, Any]) -> Photo:
        reactions = {
            emoji: list(users)
            for emoji, users in (data.get("reactions") or {}).items()
            if users
        }
        return Photo(
            id=photo_id,
            url=data.get("url", ""),
            caption=data.get("caption") or "",
            uploaded_by=data.get("uploadedBy", ""),
            uploaded_at=_to_datetime(data.get("uploadedAt")),
            storage_path=data.get("storagePath", ""),
            reactions=reactions,
            trip_id=data.get("tripId"),
        )


# ── Trips ─────────────────────────────────────────────────────────────────────

_TRIP_FIELDS = {
    "title": "title",
    "location": "location",
    "emoji": "emoji",
    "start_date": "startDate",
    "end_date": "endDate",
    "description": "description",
}
_TRIP_DATES = frozenset({"start_date", "end_date"})


class FirestoreTripRepository(TripRepository):
    """trips コレクションの TripRepository 実装"""

    def __init__(self, db: firestore.Client) -> None:
        self._db = db

    def list(self) -> list[Trip]:
        """開始日の新しい順"""
        snaps = (
            self._db.collection(TRIPS)
            .order_by("startDate", direction=firestore.Query.DESCENDING)
            .stream()
        )
        return [self._dict_to_trip(snap.id, snap.to_dict()) for snap in snaps]

    def get(self, trip_id: str) -> Trip | None:
        snap = self._db.collection(TRIPS).document(trip_id).get()
        if not snap.exists:
            return None
        return self._dict_to_trip(snap.id, snap.to_dict())

    def create(self, trip: Trip) -> str:
        data = _to_firestore_update(
            {
                "title": trip.title,
                "location": trip.location,
                "emoji": trip.emoji,
                "start_date": trip.start_date,
                "end_date": trip.end_date,
                "description": trip.description,
            },
            _TRIP_FIELDS,
            _TRIP_DATES,
        )
        data["createdAt"] = firestore.SERVER_TIMESTAMP
        data["createdBy"] = trip.created_by
        _, ref = self._db.collection(TRIPS).add(data)
        logger.info("Created trip: id=%s", ref.id)
        return ref.id

    def update(self, trip_id: str, data: dict[str, Any]) -> None:
        update = _to_firestore_update(data, _TRIP_FIELDS, _TRIP_DATES)
        self._db.collection(TRIPS).document(trip_id).update(update)
        logger.info("Updated trip: id=%s, fields=%s", trip_id, sorted(update))

    def delete(self, trip_id: str) -> None:
        self._db.collection(TRIPS).document(trip_id).delete()
        logger.info("Deleted trip: id=%s", trip_id)

    @staticmethod
    def _dict_to_trip(trip_id: str, data: dict[str, Any]) -> Trip:
        return Trip(
            id=trip_id,
            title=data.get("title", ""),
            location=data.get("location", ""),
            emoji=data.get("emoji") or "✈️",
            start_date=timestamp_to_date(data.get("startDate")),
            end_date=timestamp_to_date(data.get("endDate")),
            description=data.get("description") or "",
            created_at=_to_datetime(data.get("createdAt")),
            created_by=data.get("createdBy", ""),
        )


# ── Transactions ──────────────────────────────────────────────────────────────

_TRANSACTION_FIELDS = {
    "type": "type",
    "amount": "amount",
    "category": "category",
    "subcategory": "subcategory",
    "description": "description",
    "date": "date",
    "merchant": "merchant",
    "payment_method": "paymentMethod",
}
_TRANSACTION_DATES = frozenset({"date"})


class FirestoreTransactionRepository(TransactionRepository):
    """transactions コレクションの TransactionRepository 実装"""

    def __init__(self, db: firestore.Client) -> None:
        self._db = db

    def list(self) -> list[Transaction]:
        snaps = (
            self._db.collection(TRANSACTIONS)
            .order_by("date", direction=firestore.Query.DESCENDING)
            .stream()
        )
        return [self._dict_to_transaction(snap.id, snap.to_dict()) for snap in snaps]

    def list_between(self, start: datetime, end: datetime) -> list[Transaction]:
        snaps = (
            self._db.collection(TRANSACTIONS)
            .where("date", ">=", start)
            .where("date", "<=", end)
            .stream()
        )
        return [self._dict_to_transaction(snap.id, snap.to_dict()) for snap in snaps]

    def count(self) -> int:
        # 1世帯分の件数なので集計クエリは使わずに数える
        return sum(1 for _ in self._db.collection(TRANSACTIONS).stream())

    def get(self, transaction_id: str) -> Transaction | None:
        snap = self._db.collection(TRANSACTIONS).document(transaction_id).get()
        if not snap.exists:
            return None
        return self._dict_to_transaction(snap.id, snap.to_dict())

    def create(self, transaction: Transaction) -> str:
        data = _to_firestore_update(
            {
                "type": transaction.type,
                "amount": transaction.amount,
                "category": transaction.category,
                "subcategory": transaction.subcategory,
                "description": transaction.description,
                "date": transaction.date,
                "merchant": transaction.merchant,
                "payment_method": transaction.payment_method,
            },
            _TRANSACTION_FIELDS,
            _TRANSACTION_DATES,
        )
        data["createdBy"] = transaction.created_by
        data["createdAt"] = firestore.SERVER_TIMESTAMP
        _, ref = self._db.collection(TRANSACTIONS).add(data)
        logger.info(
            "Created transaction: id=%s, type=%s", ref.id, transaction.type.value
        )
        return ref.id

    def update(self, transaction_id: str, data: dict[str, Any]) -> None:
        update = _to_firestore_update(data, _TRANSACTION_FIELDS, _TRANSACTION_DATES)
        self._db.collection(TRANSACTIONS).document(transaction_id).update(update)
        logger.info(
            "Updated transaction: id=%s, fields=%s", transaction_id, sorted(update)
        )

    def delete(self, transaction_id: str) -> None:
        self._db.collection(TRANSACTIONS).document(transaction_id).delete()
        logger.info("Deleted transaction: id=%s", transaction_id)

    @staticmethod
    def _dict_to_transaction(transaction_id: str, data: dict[str, Any]) -> Transaction:
        return Transaction(
            id=transaction_id,
            type=_enum_or_none(TransactionType, data.get("type"))
            or TransactionType.EXPENSE,
            amount=float(data.get("amount") or 0),
            category=data.get("category", ""),
            date=_to_datetime(data.get("date"))
            or datetime.fromtimestamp(0, tz=timezone.utc),
            subcategory=data.get("subcategory") or None,
            description=data.get("description") or None,
            merchant=data.get("merchant") or None,
            payment_method=data.get("paymentMethod") or None,
            created_by=data.get("createdBy", ""),
            created_at=_to_datetime(data.get("createdAt")),
        )


# ── Assets ────────────────────────────────────────────────────────────────────

_ASSET_FIELDS = {
    "type": "type",
    "name": "name",
    "balance": "balance",
    "as_of_date": "asOfDate",
    "institution": "institution",
    "account_number": "accountNumber",
    "notes": "notes",
}
_ASSET_DATES = frozenset({"as_of_date"})


class FirestoreAssetRepository(AssetRepository):
    """assets コレクションの AssetRepository 実装"""

    def __init__(self, db: firestore.Client) -> None:
        self._db = db

    def list(self) -> list[Asset]:
        snaps = self._db.collection(ASSETS).order_by("name").stream()
        return [self._dict_to_asset(snap.id, snap.to_dict()) for snap in snaps]

    def get(self, asset_id: str) -> Asset | None:
        snap = self._db.collection(ASSETS).document(asset_id).get()
        if not snap.exists:
            return None
        return self._dict_to_asset(snap.id, snap.to_dict())

    def create(self, asset: Asset) -> str:
        data = _to_firestore_update(
            {
                "type": asset.type,
                "name": asset.name,
                "balance": asset.balance,
                "as_of_date": asset.as_of_date,
                "institution": asset.institution,
                "account_number": asset.account_number,
                "notes": asset.notes,
            },
            _ASSET_FIELDS,
            _ASSET_DATES,
        )
        data["createdAt"] = firestore.SERVER_TIMESTAMP
        data["updatedAt"] = firestore.SERVER_TIMESTAMP
        _, ref = self._db.collection(ASSETS).add(data)
        logger.info("Created asset: id=%s, type=%s", ref.id, asset.type.value)
        return ref.id

    def update(self, asset_id: str, data: dict[str, Any]) -> None:
        update = _to_firestore_update(data, _ASSET_FIELDS, _ASSET_DATES)
        update["updatedAt"] = firestore.SERVER_TIMESTAMP
        self._db.collection(ASSETS).document(asset_id).update(update)
        logger.info("Updated asset: id=%s", asset_id)

    def delete(self, asset_id: str) -> None:
        self._db.collection(ASSETS).document(asset_id).delete()
        logger.info("Deleted asset: id=%s", asset_id)

    @staticmethod
    def _dict_to_asset(asset_id: str, data: dict[str, Any]) -> Asset:
        return Asset(
            id=asset_id,
            type=_enum_or_none(AssetType, data.get("type")) or AssetType.SAVINGS,
            name=data.get("name", ""),
            balance=float(data.get("balance") or 0),
            as_of_date=timestamp_to_date(data.get("asOfDate")) or date.today(),
            institution=data.get("institution") or None,
            account_number=data.get("accountNumber") or None,
            notes=data.get("notes") or None,
            created_at=_to_datetime(data.get("createdAt")),
            updated_at=_to_datetime(data.get("updatedAt")),
        )
