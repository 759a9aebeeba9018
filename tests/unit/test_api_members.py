"""FastAPI 家系図メンバー API のユニットテスト

dependency_overrides で認証とサービスを差し替え、
サービスにはモックのリポジトリ・ストレージを渡す。
"""

from datetime import date

import pytest
from fastapi.testclient import TestClient
from family_portal.domain.models import Person, Principal
from family_portal.entrypoints.api.app import app
from family_portal.entrypoints.api.deps import (
    get_family_tree_service,
    get_identity_provider,
    get_principal,
)
from family_portal.services import FamilyTreeService

_PRINCIPAL = Principal(uid="uid-member", email="member@example.com")


@pytest.fixture
def client(mock_member_repo, mock_storage, sample_family):
    mock_member_repo.list.return_value = sample_family
    service = FamilyTreeService(mock_member_repo, mock_storage)
    app.dependency_overrides[get_principal] = lambda: _PRINCIPAL
    app.dependency_overrides[get_family_tree_service] = lambda: service

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


class TestAuthRequired:
    def test_no_token_is_rejected(self, mock_identity_provider):
        """Authorization ヘッダーなしは 401/403（HTTPBearer の既定動作）"""
        app.dependency_overrides[get_identity_provider] = lambda: mock_identity_provider

        with TestClient(app) as c:
            response = c.get("/api/members")
        app.dependency_overrides.clear()

        assert response.status_code in (401, 403)
        mock_identity_provider.verify_token.assert_not_called()


class TestListAndTree:
    def test_list_members(self, client):
        response = client.get("/api/members")

        assert response.status_code == 200
        body = response.json()
        assert len(body) == 6
        assert body[0]["full_name"] == "George Smith"
        assert "profile_picture_path" not in body[0]

    def test_tree(self, client):
        """世代分けと2段構成の描画データを返す"""
        response = client.get("/api/members/tree")

        assert response.status_code == 200
        body = response.json()
        assert [[m["id"] for m in g] for g in body["generations"]] == [
            ["george", "martha"],
            ["john", "jane"],
            ["alice", "bob"],
        ]
        top, second = body["rows"]
        assert top[0]["member"]["id"] == "george"
        assert top[0]["spouse"]["id"] == "martha"
        assert [c["member"]["id"] for c in second[0]["children"]] == ["alice", "bob"]

    def test_duplicates(self, client, mock_member_repo, sample_family):
        mock_member_repo.list.return_value = sample_family + [
            Person(id="john2", first_name="john", last_name="SMITH")
        ]

        response = client.get("/api/members/duplicates")

        assert response.status_code == 200
        groups = response.json()
        assert len(groups) == 1
        assert groups[0]["reason"] == "name"
        assert {m["id"] for m in groups[0]["members"]} == {"john", "john2"}

    def test_relations(self, client):
        response = client.get("/api/members/alice/relations")

        assert response.status_code == 200
        body = response.json()
        assert {p["id"] for p in body["parents"]} == {"john", "jane"}
        assert [s["id"] for s in body["siblings"]] == ["bob"]
        assert body["children"] == []
        assert body["spouse"] is None

    def test_relations_unknown_member(self, client):
        response = client.get("/api/members/ghost/relations")

        assert response.status_code == 404


class TestCreateUpdateDelete:
    def test_create_member(self, client, mock_member_repo):
        """作成者はログインユーザーのメールアドレス"""
        # Act
        response = client.post(
            "/api/members",
            json={
                "first_name": " Carol ",
                "last_name": "Smith",
                "date_of_birth": "2020-01-15",
                "gender": "female",
                "parent_ids": ["alice", ""],
                "spouse_id": "",
            },
        )

        # Assert
        assert response.status_code == 201
        body = response.json()
        assert body["id"] == "new-member-id"
        assert body["first_name"] == "Carol"
        assert body["parent_ids"] == ["alice"]
        assert body["spouse_id"] is None

        saved = mock_member_repo.create.call_args.args[0]
        assert saved.created_by == "member@example.com"
        assert saved.date_of_birth == date(2020, 1, 15)

    def test_create_requires_names(self, client, mock_member_repo):
        response = client.post("/api/members", json={"first_name": "Carol"})

        assert response.status_code == 400
        assert response.json()["detail"] == "First name and last name are required"
        mock_member_repo.create.assert_not_called()

    def test_update_member(self, client, mock_member_repo, sample_family):
        mock_member_repo.get.return_value = sample_family[0]

        response = client.put(
            "/api/members/george",
            json={"first_name": "George", "last_name": "Smith", "biography": "Farmer"},
        )

        assert response.status_code == 200
        assert response.json()["biography"] == "Farmer"
        member_id, data = mock_member_repo.update.call_args.args
        assert member_id == "george"
        assert data["biography"] == "Farmer"

    def test_update_names_only_keeps_relations(self, client, mock_member_repo, sample_family):
        """名前だけの更新で親・配偶者・表示順を消さないこと"""
        # Arrange
        alice = Person(
            id="alice",
            first_name="Alice",
            last_name="Smith",
            parent_ids=["john", "jane"],
            spouse_id="mark",
            display_order=300,
        )
        mock_member_repo.get.return_value = alice

        # Act
        response = client.put(
            "/api/members/alice",
            json={"first_name": " Alicia ", "last_name": "Smith"},
        )

        # Assert
        assert response.status_code == 200
        _, data = mock_member_repo.update.call_args.args
        assert data == {"first_name": "Alicia", "last_name": "Smith"}
        body = response.json()
        assert body["parent_ids"] == ["john", "jane"]
        assert body["spouse_id"] == "mark"
        assert body["display_order"] == 300

    def test_update_clears_spouse_when_sent_empty(self, client, mock_member_repo, sample_family):
        mock_member_repo.get.return_value = sample_family[2]

        response = client.put(
            "/api/members/john",
            json={"spouse_id": "", "parent_ids": ["george", ""]},
        )

        assert response.status_code == 200
        _, data = mock_member_repo.update.call_args.args
        assert data == {"spouse_id": None, "parent_ids": ["george"]}

    def test_update_missing_member(self, client, mock_member_repo):
        mock_member_repo.get.return_value = None

        response = client.put("/api/members/ghost", json={"first_name": "A", "last_name": "B"})

        assert response.status_code == 404

    def test_delete_member(self, client, mock_member_repo, sample_family):
        mock_member_repo.get.return_value = sample_family[0]

        response = client.delete("/api/members/george")

        assert response.status_code == 204
        mock_member_repo.delete.assert_called_once_with("george")


class TestProfilePictureAndMove:
    def test_upload_profile_picture(self, client, mock_member_repo, mock_storage, sample_family):
        mock_member_repo.get.return_value = sample_family[0]

        response = client.post(
            "/api/members/george/profile-picture",
            files={"file": ("me.png", b"\x89PNG", "image/png")},
        )

        assert response.status_code == 200
        assert response.json()["profile_picture_url"].startswith(
            "https://storage.example.com/profilePictures/george/"
        )
        mock_storage.upload.assert_called_once()

    def test_upload_non_image(self, client, mock_member_repo, sample_family):
        mock_member_repo.get.return_value = sample_family[0]

        response = client.post(
            "/api/members/george/profile-picture",
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )

        assert response.status_code == 400

    def test_move_member(self, client, mock_member_repo):
        """配偶者もそれぞれの値から 100 ずつ動く"""
        response = client.post("/api/members/john/move", json={"direction": "left"})

        assert response.status_code == 200
        assert response.json() == {"moves": {"john": 400, "jane": 400}}
        assert mock_member_repo.update.call_count == 2

    def test_move_invalid_direction(self, client):
        response = client.post("/api/members/john/move", json={"direction": "up"})

        assert response.status_code == 422
