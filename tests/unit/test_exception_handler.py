"""例外ハンドラーのユニットテスト

未処理例外が 500 JSON レスポンスになり、CORS ヘッダーが付与されること、
ドメイン例外が対応するステータスコードに変換されることを検証する。
"""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from family_portal.domain.errors import StoreError
from family_portal.domain.models import Principal
from family_portal.domain.ports import MemberRepository
from family_portal.entrypoints.api.app import app
from family_portal.entrypoints.api.deps import get_family_tree_service, get_principal
from family_portal.services import FamilyTreeService
from google.api_core.exceptions import ServiceUnavailable

_PRINCIPAL = Principal(uid="test-uid", email="member@example.com")
_ORIGIN = "http://localhost:5173"


def _client_with_repo(repo):
    app.dependency_overrides[get_principal] = lambda: _PRINCIPAL
    app.dependency_overrides[get_family_tree_service] = lambda: FamilyTreeService(
        repo, MagicMock()
    )
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def client_with_broken_repo():
    """list が RuntimeError を投げるリポジトリを差し込んだクライアント"""
    broken_repo = MagicMock(spec=MemberRepository)
    broken_repo.list.side_effect = RuntimeError("Firestore index not ready")

    # raise_server_exceptions=False で 500 をレスポンスとして受け取る
    with _client_with_repo(broken_repo) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def normal_client():
    """正常なモックを差し込んだクライアント（既存挙動の回帰確認用）"""
    normal_repo = MagicMock(spec=MemberRepository)
    normal_repo.list.return_value = []

    with _client_with_repo(normal_repo) as c:
        yield c

    app.dependency_overrides.clear()


class TestUnhandledExceptionHandler:
    """グローバル例外ハンドラーのテスト"""

    def test_500_returns_json(self, client_with_broken_repo):
        """未処理例外が 500 JSON レスポンスになること"""
        response = client_with_broken_repo.get(
            "/api/members",
            headers={"Origin": _ORIGIN},
        )
        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}

    def test_500_has_cors_header(self, client_with_broken_repo):
        """500 レスポンスに CORS ヘッダーが付与されること"""
        response = client_with_broken_repo.get(
            "/api/members",
            headers={"Origin": _ORIGIN},
        )
        assert response.status_code == 500
        assert "access-control-allow-origin" in response.headers

    def test_normal_request_unaffected(self, normal_client):
        """正常系リクエストが 200 を返し、既存挙動に影響がないこと"""
        response = normal_client.get(
            "/api/members",
            headers={"Origin": _ORIGIN},
        )
        assert response.status_code == 200
        assert response.json() == []


class TestDomainErrorHandlers:
    """外部サービスの失敗は 502 でメッセージを返す"""

    def test_store_error_is_502(self):
        repo = MagicMock(spec=MemberRepository)
        repo.list.side_effect = StoreError("Identity Toolkit unavailable")

        with _client_with_repo(repo) as c:
            response = c.get("/api/members")
        app.dependency_overrides.clear()

        assert response.status_code == 502
        assert response.json() == {"detail": "Identity Toolkit unavailable"}

    def test_google_api_error_is_502(self):
        repo = MagicMock(spec=MemberRepository)
        repo.list.side_effect = ServiceUnavailable("Firestore unavailable")

        with _client_with_repo(repo) as c:
            response = c.get("/api/members")
        app.dependency_overrides.clear()

        assert response.status_code == 502
        assert "Firestore unavailable" in response.json()["detail"]

    def test_health(self):
        with TestClient(app) as c:
            response = c.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
