"""FastAPI アプリケーション

Family Portal バックエンド API。
Cloud Run Service として動作し、Firebase Auth で認証する。

エンドポイント一覧:
  POST   /api/auth/sign-in                 ← 認証不要
  POST   /api/auth/password-reset          ← 認証不要
  POST   /api/auth/verification-email      ← 認証不要
  POST   /api/auth/sign-out
  POST   /api/auth/change-password
  GET    /api/auth/me
  GET    /api/members
  GET    /api/members/tree
  GET    /api/members/duplicates
  POST   /api/members
  GET    /api/members/{id}/relations
  PUT    /api/members/{id}
  DELETE /api/members/{id}
  POST   /api/members/{id}/profile-picture
  POST   /api/members/{id}/move
  GET    /api/photos
  POST   /api/photos
  PATCH  /api/photos/{id}
  POST   /api/photos/{id}/reactions
  DELETE /api/photos/{id}
  GET    /api/trips
  POST   /api/trips
  PUT    /api/trips/{id}
  DELETE /api/trips/{id}
  GET    /api/trips/{id}/photos
  POST   /api/trips/{id}/photos
  PATCH  /api/trips/{id}/photos/{photo_id}
  POST   /api/trips/{id}/photos/{photo_id}/reactions
  DELETE /api/trips/{id}/photos/{photo_id}
  GET    /api/finance/...                  ← 管理者のみ
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from google.api_core.exceptions import GoogleAPICallError
from starlette.responses import Response

from family_portal.domain.errors import (
    AuthError,
    NotFoundError,
    PartialDeleteError,
    StoreError,
    ValidationError,
)
from family_portal.entrypoints.api.routes import auth, finance, members, photos, trips
from family_portal.logging_config import setup_logging

# ── ロギング初期化 ───────────────────────────────────────────────────────────
setup_logging()
logger = logging.getLogger(__name__)

# ── FastAPI アプリ ───────────────────────────────────────────────────────────
app = FastAPI(
    title="Family Portal API",
    description="家族の写真・旅行・家系図・家計簿を扱う Family Portal のバックエンド API",
    version="1.0.0",
)

# ── グローバル例外ミドルウェア ──────────────────────────────────────────────────
# 【登録順の注意】
#   add_middleware は後から登録したものが外側になる（insert(0, ...) のため）。
#   このミドルウェアを CORSMiddleware より先に登録することで内側に配置し、
#   500 レスポンスが CORSMiddleware を通過して CORS ヘッダーが付与される。
#
# スタック: ServerErrorMiddleware → CORSMiddleware → このMW → ExceptionMiddleware → Routes


@app.middleware("http")
async def _catch_unhandled_exceptions(
    request: Request, call_next: Callable[[Request], Response]
) -> Response:
    try:
        return await call_next(request)
    except Exception as exc:
        logger.error(
            "Unhandled exception: %s %s - %s",
            request.method,
            request.url.path,
            exc,
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )


# ── CORS（SPA フロントエンドからのリクエストを許可） ─────────────────────────
# CORS_ORIGINS 環境変数でカンマ区切りのオリジンを指定可能
_extra_origins = [
    o.strip() for o in os.environ.get("CORS_ORIGINS", "").split(",") if o.strip()
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_extra_origins if _extra_origins else ["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)


# ── ドメイン例外 → HTTP ステータス ────────────────────────────────────────────


@app.exception_handler(AuthError)
async def _auth_error(request: Request, exc: AuthError) -> JSONResponse:
    return JSONResponse(status_code=401, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(StoreError)
async def _store_error(request: Request, exc: StoreError) -> JSONResponse:
    logger.error("Store error: %s %s - %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.exception_handler(GoogleAPICallError)
async def _google_api_error(request: Request, exc: GoogleAPICallError) -> JSONResponse:
    # Firestore / GCS の失敗はメッセージをそのまま返す（リトライはしない）
    logger.error("Google API error: %s %s - %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.exception_handler(PartialDeleteError)
async def _partial_delete(request: Request, exc: PartialDeleteError) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={
            "detail": str(exc),
            "deleted_photos": exc.deleted_photos,
            "remaining_photos": exc.remaining_photos,
        },
    )


# ── ルーター登録 ─────────────────────────────────────────────────────────────
_PREFIX = "/api"

app.include_router(auth.router, prefix=_PREFIX)
app.include_router(members.router, prefix=_PREFIX)
app.include_router(photos.router, prefix=_PREFIX)
app.include_router(trips.router, prefix=_PREFIX)
app.include_router(finance.router, prefix=_PREFIX)


@app.get("/health")
async def health() -> dict:
    """ヘルスチェックエンドポイント（Cloud Run の起動確認用）"""
    return {"status": "ok"}


logger.info("Family Portal API started")
