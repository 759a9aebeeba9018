"""FastAPI 依存性注入

Firebase Auth のIDトークン検証と、Firestore / GCS / サービスの初期化を担当する。
各ルートは Depends() でこのモジュールの関数を呼び出して
認証済みユーザーとサービスインスタンスを受け取る。

テストでは app.dependency_overrides でここの関数を差し替える。
"""

from __future__ import annotations

import logging
import os

import firebase_admin
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import credentials as fb_creds
from google.cloud import firestore

from family_portal.adapters.cloud_storage import GCSBlobStorage
from family_portal.adapters.firebase_identity import FirebaseIdentityProvider
from family_portal.adapters.firestore_repository import (
    FAMILY_PHOTOS,
    TRIP_PHOTOS,
    FirestoreAssetRepository,
    FirestoreMemberRepository,
    FirestorePhotoRepository,
    FirestoreTransactionRepository,
    FirestoreTripRepository,
)
from family_portal.domain.errors import AuthError
from family_portal.domain.models import Principal
from family_portal.domain.policies import is_admin
from family_portal.domain.ports import (
    AssetRepository,
    BlobStorage,
    IdentityProvider,
    MemberRepository,
    PhotoRepository,
    TransactionRepository,
    TripRepository,
)
from family_portal.services import FamilyTreeService, PhotoService, TripService

logger = logging.getLogger(__name__)

# ── Firebase Admin 初期化（プロセス内で1回のみ） ────────────────────────────────

_firebase_app: firebase_admin.App | None = None


def _get_firebase_app() -> firebase_admin.App:
    global _firebase_app
    if _firebase_app is None:
        try:
            # 既に初期化済み（CLI などが先に初期化した場合）
            _firebase_app = firebase_admin.get_app()
        except ValueError:
            cred = fb_creds.ApplicationDefault()
            project_id = os.environ.get("PROJECT_ID")
            _firebase_app = firebase_admin.initialize_app(
                cred,
                options={"projectId": project_id} if project_id else {},
            )
            logger.info("Firebase Admin initialized (deps) project=%s", project_id)
    return _firebase_app


# ── 認証 ────────────────────────────────────────────────────────────────────────

_identity_provider: FirebaseIdentityProvider | None = None


def get_identity_provider() -> IdentityProvider:
    """IdentityProvider を返す依存関数（httpx クライアントを使い回すためシングルトン）"""
    global _identity_provider
    if _identity_provider is None:
        api_key = os.environ.get("FIREBASE_WEB_API_KEY", "")
        if not api_key:
            logger.warning("FIREBASE_WEB_API_KEY is not set; password sign-in will fail")
        _identity_provider = FirebaseIdentityProvider(
            api_key=api_key, app=_get_firebase_app()
        )
    return _identity_provider


_bearer = HTTPBearer()


async def get_principal(
    creds: HTTPAuthorizationCredentials = Depends(_bearer),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> Principal:
    """
    Authorization: Bearer <id_token> ヘッダーを検証して Principal を返す。

    Raises:
        HTTPException(401): トークンが無効な場合
    """
    try:
        return provider.verify_token(creds.credentials)
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
        ) from e


def get_admin_email() -> str:
    """管理者のメールアドレス（ADMIN_EMAIL）。未設定なら空文字"""
    return os.environ.get("ADMIN_EMAIL", "")


async def require_admin(
    principal: Principal = Depends(get_principal),
    admin_email: str = Depends(get_admin_email),
) -> Principal:
    """
    管理者権限を要求する依存関数。

    Raises:
        HTTPException(403): 管理者でない場合
    """
    if not is_admin(principal.email, admin_email):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return principal


# ── Firestore クライアント（シングルトン） ──────────────────────────────────────

_firestore_client: firestore.Client | None = None


def _get_firestore_client() -> firestore.Client:
    global _firestore_client
    if _firestore_client is None:
        _firestore_client = firestore.Client()
        logger.info("Firestore client initialized")
    return _firestore_client


# ── リポジトリ依存 ─────────────────────────────────────────────────────────────


def get_member_repo() -> MemberRepository:
    return FirestoreMemberRepository(_get_firestore_client())


def get_family_photo_repo() -> PhotoRepository:
    return FirestorePhotoRepository(_get_firestore_client(), collection=FAMILY_PHOTOS)


def get_trip_photo_repo() -> PhotoRepository:
    return FirestorePhotoRepository(_get_firestore_client(), collection=TRIP_PHOTOS)


def get_trip_repo() -> TripRepository:
    return FirestoreTripRepository(_get_firestore_client())


def get_transaction_repo() -> TransactionRepository:
    return FirestoreTransactionRepository(_get_firestore_client())


def get_asset_repo() -> AssetRepository:
    return FirestoreAssetRepository(_get_firestore_client())


def get_blob_storage() -> BlobStorage:
    """BlobStorage を返す依存関数"""
    bucket = os.environ["GCS_BUCKET_NAME"]
    return GCSBlobStorage(bucket_name=bucket)


# ── サービス依存 ───────────────────────────────────────────────────────────────


def get_family_tree_service(
    repo: MemberRepository = Depends(get_member_repo),
    storage: BlobStorage = Depends(get_blob_storage),
) -> FamilyTreeService:
    return FamilyTreeService(repo, storage)


def get_photo_service(
    repo: PhotoRepository = Depends(get_family_photo_repo),
    storage: BlobStorage = Depends(get_blob_storage),
) -> PhotoService:
    """家族写真ギャラリー用の PhotoService"""
    return PhotoService(repo, storage, prefix=FAMILY_PHOTOS)


def get_trip_photo_service(
    repo: PhotoRepository = Depends(get_trip_photo_repo),
    storage: BlobStorage = Depends(get_blob_storage),
) -> PhotoService:
    """旅行写真用の PhotoService"""
    return PhotoService(repo, storage, prefix=TRIP_PHOTOS)


def get_trip_service(
    trip_repo: TripRepository = Depends(get_trip_repo),
    photo_repo: PhotoRepository = Depends(get_trip_photo_repo),
    storage: BlobStorage = Depends(get_blob_storage),
) -> TripService:
    return TripService(trip_repo, photo_repo, storage)
