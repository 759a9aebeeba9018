"""共通テストフィクスチャ

全テストから利用可能なモックオブジェクトとサンプルデータを提供。

モックの作成:
- MagicMock(spec=ABC) でABCのメソッドシグネチャを保持
"""

from datetime import date, datetime, timezone
from unittest.mock import MagicMock

import pytest
from family_portal.domain.models import (
    Asset,
    AssetType,
    Person,
    Photo,
    Principal,
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


def make_person(person_id: str, first: str, last: str = "Smith", **kwargs) -> Person:
    """テスト用の Person を生成するヘルパー"""
    return Person(id=person_id, first_name=first, last_name=last, **kwargs)


def make_transaction(
    txn_id: str,
    txn_type: TransactionType,
    amount: float,
    category: str,
    when: datetime,
    **kwargs,
) -> Transaction:
    """テスト用の Transaction を生成するヘルパー"""
    return Transaction(
        id=txn_id,
        type=txn_type,
        amount=amount,
        category=category,
        date=when,
        **kwargs,
    )


# ========== サンプルデータ ==========


@pytest.fixture
def sample_principal() -> Principal:
    """サンプルユーザー（一般メンバー）"""
    return Principal(
        uid="uid-member",
        email="member@example.com",
        display_name="Member",
        email_verified=True,
    )


@pytest.fixture
def admin_principal() -> Principal:
    """サンプルユーザー（管理者）"""
    return Principal(
        uid="uid-admin",
        email="Admin@Example.com",
        display_name="Admin",
        email_verified=True,
    )


@pytest.fixture
def sample_family() -> list[Person]:
    """
    3世代のサンプル家族。

        George ═ Martha          (祖父母)
              │
        John ═ Jane (嫁)         (親)
           │
        Alice, Bob               (子)

    Jane は配偶者に親がいるため root にはならない。
    """
    return [
        make_person("george", "George", date_of_birth=date(1940, 1, 1), spouse_id="martha"),
        make_person("martha", "Martha", date_of_birth=date(1942, 3, 3), spouse_id="george"),
        make_person(
            "john",
            "John",
            date_of_birth=date(1965, 5, 5),
            parent_ids=["george", "martha"],
            spouse_id="jane",
        ),
        make_person("jane", "Jane", last="Doe", spouse_id="john"),
        make_person(
            "bob",
            "Bob",
            date_of_birth=date(1995, 9, 9),
            parent_ids=["john", "jane"],
        ),
        make_person(
            "alice",
            "Alice",
            date_of_birth=date(1992, 2, 2),
            parent_ids=["john", "jane"],
        ),
    ]


@pytest.fixture
def sample_photo() -> Photo:
    """サンプル家族写真"""
    return Photo(
        id="photo1",
        url="https://storage.googleapis.com/bucket/familyPhotos/1_beach.jpg",
        caption="Beach day",
        uploaded_by="member@example.com",
        uploaded_at=datetime(2026, 7, 1, 10, 0, tzinfo=timezone.utc),
        storage_path="familyPhotos/1_beach.jpg",
        reactions={"❤️": ["a@example.com"]},
    )


@pytest.fixture
def sample_trip() -> Trip:
    """サンプル旅行"""
    return Trip(
        id="trip1",
        title="Summer in Maine",
        location="Bar Harbor",
        emoji="🏖️",
        start_date=date(2026, 7, 1),
        end_date=date(2026, 7, 7),
        created_by="member@example.com",
    )


@pytest.fixture
def sample_transactions() -> list[Transaction]:
    """2026年の取引サンプル"""
    return [
        make_transaction(
            "t1", TransactionType.INCOME, 5000.0, "Salary",
            datetime(2026, 3, 1, 12, tzinfo=timezone.utc), subcategory="Regular Paycheck",
        ),
        make_transaction(
            "t2", TransactionType.EXPENSE, 1500.0, "Housing",
            datetime(2026, 3, 2, 12, tzinfo=timezone.utc), subcategory="Rent",
        ),
        make_transaction(
            "t3", TransactionType.EXPENSE, 120.5, "Food",
            datetime(2026, 3, 10, 12, tzinfo=timezone.utc), merchant="Whole Foods",
        ),
        make_transaction(
            "t4", TransactionType.EXPENSE, 60.0, "Food",
            datetime(2026, 4, 5, 12, tzinfo=timezone.utc), description="Pizza night",
        ),
        make_transaction(
            "t5", TransactionType.EXPENSE, 300.0, "Travel",
            datetime(2025, 12, 20, 12, tzinfo=timezone.utc),
        ),
    ]


@pytest.fixture
def sample_assets() -> list[Asset]:
    return [
        Asset(id="a1", type=AssetType.SAVINGS, name="Emergency Fund", balance=10000.0, as_of_date=date(2026, 3, 1)),
        Asset(id="a2", type=AssetType.RETIREMENT, name="401k", balance=55000.5, as_of_date=date(2026, 3, 1)),
    ]


# ========== モック ==========


@pytest.fixture
def mock_identity_provider() -> MagicMock:
    return MagicMock(spec=IdentityProvider)


@pytest.fixture
def mock_member_repo() -> MagicMock:
    repo = MagicMock(spec=MemberRepository)
    repo.create.return_value = "new-member-id"
    return repo


@pytest.fixture
def mock_photo_repo() -> MagicMock:
    repo = MagicMock(spec=PhotoRepository)
    repo.create.return_value = "new-photo-id"
    return repo


@pytest.fixture
def mock_trip_repo() -> MagicMock:
    repo = MagicMock(spec=TripRepository)
    repo.create.return_value = "new-trip-id"
    return repo


@pytest.fixture
def mock_transaction_repo() -> MagicMock:
    repo = MagicMock(spec=TransactionRepository)
    repo.create.return_value = "new-txn-id"
    return repo


@pytest.fixture
def mock_asset_repo() -> MagicMock:
    repo = MagicMock(spec=AssetRepository)
    repo.create.return_value = "new-asset-id"
    return repo


@pytest.fixture
def mock_storage() -> MagicMock:
    storage = MagicMock(spec=BlobStorage)
    storage.upload.side_effect = (
        lambda path, content, content_type: f"https://storage.example.com/{path}"
    )
    return storage
