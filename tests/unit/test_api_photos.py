"""FastAPI 家族写真 API のユニットテスト"""

import pytest
from fastapi.testclient import TestClient
from family_portal.domain.models import Principal
from family_portal.entrypoints.api.app import app
from family_portal.entrypoints.api.deps import get_photo_service, get_principal
from family_portal.services import PhotoService

_PRINCIPAL = Principal(uid="uid-member", email="member@example.com")


@pytest.fixture
def client(mock_photo_repo, mock_storage):
    service = PhotoService(mock_photo_repo, mock_storage, prefix="familyPhotos")
    app.dependency_overrides[get_principal] = lambda: _PRINCIPAL
    app.dependency_overrides[get_photo_service] = lambda: service

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


class TestPhotosApi:
    def test_list_photos(self, client, mock_photo_repo, sample_photo):
        mock_photo_repo.list.return_value = [sample_photo]

        response = client.get("/api/photos")

        assert response.status_code == 200
        body = response.json()
        assert body[0]["id"] == "photo1"
        assert body[0]["reactions"] == {"❤️": ["a@example.com"]}
        assert "storage_path" not in body[0]
        mock_photo_repo.list.assert_called_once_with(trip_id=None)

    def test_upload_photo(self, client, mock_photo_repo, mock_storage):
        """multipart でファイルとキャプションを受け取る"""
        # Act
        response = client.post(
            "/api/photos",
            files={"file": ("beach.jpg", b"\xff\xd8jpeg", "image/jpeg")},
            data={"caption": "Beach day"},
        )

        # Assert
        assert response.status_code == 201
        body = response.json()
        assert body["id"] == "new-photo-id"
        assert body["caption"] == "Beach day"
        assert body["uploaded_by"] == "member@example.com"
        assert body["url"].startswith("https://storage.example.com/familyPhotos/")

    def test_upload_rejects_non_image(self, client, mock_storage):
        response = client.post(
            "/api/photos",
            files={"file": ("doc.pdf", b"%PDF", "application/pdf")},
        )

        assert response.status_code == 400
        mock_storage.upload.assert_not_called()

    def test_update_caption(self, client, mock_photo_repo, sample_photo):
        mock_photo_repo.get.return_value = sample_photo

        response = client.patch("/api/photos/photo1", json={"caption": "Sunset"})

        assert response.status_code == 200
        assert response.json()["caption"] == "Sunset"

    def test_toggle_reaction_uses_login_email(self, client, mock_photo_repo, sample_photo):
        mock_photo_repo.get.return_value = sample_photo

        response = client.post("/api/photos/photo1/reactions", json={"emoji": "❤️"})

        assert response.status_code == 200
        assert response.json()["reactions"] == {
            "❤️": ["a@example.com", "member@example.com"]
        }

    def test_toggle_reaction_empty_emoji(self, client):
        response = client.post("/api/photos/photo1/reactions", json={"emoji": ""})

        assert response.status_code == 400

    def test_delete_photo(self, client, mock_photo_repo, mock_storage, sample_photo):
        mock_photo_repo.get.return_value = sample_photo

        response = client.delete("/api/photos/photo1")

        assert response.status_code == 204
        mock_storage.delete.assert_called_once_with("familyPhotos/1_beach.jpg")
        mock_photo_repo.delete.assert_called_once_with("photo1")

    def test_delete_missing_photo(self, client, mock_photo_repo):
        mock_photo_repo.get.return_value = None

        response = client.delete("/api/photos/nope")

        assert response.status_code == 404
