"""ドメインモデルのテスト"""

from dataclasses import FrozenInstanceError

import pytest
from family_portal.domain.errors import FamilyPortalError, PartialDeleteError
from family_portal.domain.models import (
    AssetType,
    Gender,
    Person,
    Photo,
    TransactionType,
    Trip,
)


class TestEnums:
    def test_values_match_firestore(self):
        """Firestore に保存される文字列値"""
        assert Gender.FEMALE.value == "female"
        assert TransactionType.EXPENSE.value == "expense"
        assert AssetType("retirement") == AssetType.RETIREMENT


class TestPerson:
    def test_full_name(self):
        assert Person(id="p1", first_name="Jane", last_name="Doe").full_name == "Jane Doe"

    def test_defaults(self):
        person = Person(id="p1", first_name="Jane", last_name="Doe")

        assert person.parent_ids == []
        assert person.spouse_id is None
        assert person.display_order is None

    def test_frozen(self):
        person = Person(id="p1", first_name="Jane", last_name="Doe")

        with pytest.raises(FrozenInstanceError):
            person.first_name = "John"


class TestPhotoAndTrip:
    def test_gallery_photo_has_no_trip(self):
        photo = Photo(id="p", url="u", caption="", uploaded_by="m", uploaded_at=None, storage_path="s")

        assert photo.trip_id is None
        assert photo.reactions == {}

    def test_trip_default_emoji(self):
        assert Trip(id="t", title="Maine", location="Bar Harbor").emoji == "✈️"


class TestPartialDeleteError:
    def test_carries_counts(self):
        err = PartialDeleteError("trip1", deleted_photos=2, remaining_photos=3)

        assert isinstance(err, FamilyPortalError)
        assert err.deleted_photos == 2
        assert err.remaining_photos == 3
        assert "2 photo(s) deleted, 3 remaining" in str(err)
