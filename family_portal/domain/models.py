"""ドメインモデル - 外部依存なしのデータ構造"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


class Gender(Enum):
    """家族メンバーの性別"""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class TransactionType(Enum):
    """取引の種別"""

    EXPENSE = "expense"
    INCOME = "income"


class AssetType(Enum):
    """資産の種別"""

    INVESTMENT = "investment"
    RETIREMENT = "retirement"
    SAVINGS = "savings"
    PROPERTY = "property"


@dataclass(frozen=True)
class Principal:
    """Firebase Auth で認証されたユーザー"""

    uid: str
    email: str
    display_name: str = ""
    email_verified: bool = False


@dataclass(frozen=True)
class SignInResult:
    """メール/パスワードによるサインイン結果"""

    id_token: str
    refresh_token: str
    expires_in: int  # 秒
    principal: Principal


@dataclass(frozen=True)
class Person:
    """家系図の1人分のレコード（Firestore: familyMembers）

    parent_ids / spouse_id は参照整合性が保証されない。
    存在しない ID を指していることもある。
    """

    id: str  # Firestore ドキュメントID
    first_name: str
    last_name: str
    date_of_birth: date | None = None
    date_of_death: date | None = None
    place_of_birth: str = ""
    gender: Gender | None = None
    biography: str = ""
    profile_picture_url: str = ""
    profile_picture_path: str = ""  # GCS パス（削除用）
    parent_ids: list[str] = field(default_factory=list)  # 0〜2件（強制はしない）
    spouse_id: str | None = None  # 対称性は保証されない
    display_order: int | None = None  # 兄弟・配偶者の左右並び順
    created_at: datetime | None = None
    created_by: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass(frozen=True)
class Photo:
    """写真レコード（Firestore: familyPhotos / tripPhotos）

    trip_id が設定されている場合は旅行写真（TripPhoto）。
    """

    id: str
    url: str
    caption: str
    uploaded_by: str  # アップロードしたユーザーの email
    uploaded_at: datetime | None
    storage_path: str  # GCS: "familyPhotos/{timestamp}_{filename}"
    reactions: dict[str, list[str]] = field(default_factory=dict)  # 絵文字 -> email一覧
    trip_id: str | None = None


@dataclass(frozen=True)
class Trip:
    """旅行レコード（Firestore: trips）"""

    id: str
    title: str
    location: str
    emoji: str = "✈️"
    start_date: date | None = None
    end_date: date | None = None
    description: str = ""
    created_at: datetime | None = None
    created_by: str = ""


@dataclass(frozen=True)
class Transaction:
    """家計簿の取引（Firestore: transactions）"""

    id: str
    type: TransactionType
    amount: float
    category: str
    date: datetime
    subcategory: str | None = None
    description: str | None = None
    merchant: str | None = None
    payment_method: str | None = None
    created_by: str = ""
    created_at: datetime | None = None


@dataclass(frozen=True)
class Asset:
    """資産口座（Firestore: assets）"""

    id: str
    type: AssetType
    name: str
    balance: float
    as_of_date: date
    institution: str | None = None
    account_number: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class DuplicateGroup:
    """重複候補の家族メンバーのグループ"""

    label: str  # 例: "jane doe"
    members: list[Person]
    reason: str = "name"  # "name" | "name_and_dates"
