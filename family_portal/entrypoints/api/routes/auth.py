"""認証 API ルート

POST /api/auth/sign-in             → 200 { id_token, refresh_token, ... }  ← 認証不要
POST /api/auth/password-reset      → 204                                  ← 認証不要
POST /api/auth/verification-email  → 204                                  ← 認証不要
POST /api/auth/sign-out            → 204
POST /api/auth/change-password     → 200 { message }
GET  /api/auth/me                  → 200 { uid, email, is_admin, ... }
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from family_portal.domain.errors import ValidationError
from family_portal.domain.models import Principal
from family_portal.domain.policies import (
    is_admin,
    validate_login,
    validate_password_change,
)
from family_portal.domain.ports import IdentityProvider
from family_portal.entrypoints.api.deps import (
    get_admin_email,
    get_identity_provider,
    get_principal,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])


class SignInRequest(BaseModel):
    email: str = ""
    password: str = ""


class SignInResponse(BaseModel):
    id_token: str
    refresh_token: str
    expires_in: int
    uid: str
    email: str
    is_admin: bool


class PasswordResetRequest(BaseModel):
    email: str = ""


class ChangePasswordRequest(BaseModel):
    current_password: str = ""
    new_password: str = ""
    confirm_password: str = ""


class MessageResponse(BaseModel):
    message: str


class MeResponse(BaseModel):
    uid: str
    email: str
    display_name: str
    email_verified: bool
    is_admin: bool


@router.post("/sign-in", response_model=SignInResponse)
async def sign_in(
    body: SignInRequest,
    provider: IdentityProvider = Depends(get_identity_provider),
    admin_email: str = Depends(get_admin_email),
) -> SignInResponse:
    """メール/パスワードでサインインする（メール未確認なら 401 EMAIL_NOT_VERIFIED）"""
    validate_login(body.email.strip(), body.password)
    result = provider.sign_in(body.email.strip(), body.password)
    return SignInResponse(
        id_token=result.id_token,
        refresh_token=result.refresh_token,
        expires_in=result.expires_in,
        uid=result.principal.uid,
        email=result.principal.email,
        is_admin=is_admin(result.principal.email, admin_email),
    )


@router.post("/password-reset", status_code=status.HTTP_204_NO_CONTENT)
async def send_password_reset(
    body: PasswordResetRequest,
    provider: IdentityProvider = Depends(get_identity_provider),
) -> None:
    """パスワードリセットメールを送る"""
    if not body.email.strip():
        raise ValidationError("Email is required")
    provider.send_password_reset(body.email.strip())


@router.post("/verification-email", status_code=status.HTTP_204_NO_CONTENT)
async def resend_verification_email(
    body: SignInRequest,
    provider: IdentityProvider = Depends(get_identity_provider),
) -> None:
    """確認メールを再送する（未確認アカウントはトークンを持てないため資格情報で送る）"""
    validate_login(body.email.strip(), body.password)
    provider.send_verification_email(body.email.strip(), body.password)


@router.post("/sign-out", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(
    principal: Principal = Depends(get_principal),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> None:
    """リフレッシュトークンを失効させる"""
    provider.sign_out(principal.uid)
    logger.info("Signed out: uid=%s", principal.uid)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    principal: Principal = Depends(get_principal),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> MessageResponse:
    """現在のパスワードを確認してから変更する"""
    validate_password_change(
        body.current_password, body.new_password, body.confirm_password
    )
    provider.change_password(principal, body.current_password, body.new_password)
    return MessageResponse(message="Password changed successfully")


@router.get("/me", response_model=MeResponse)
async def get_me(
    principal: Principal = Depends(get_principal),
    admin_email: str = Depends(get_admin_email),
) -> MeResponse:
    """ログイン中のユーザー情報（管理者判定つき）"""
    return MeResponse(
        uid=principal.uid,
        email=principal.email,
        display_name=principal.display_name,
        email_verified=principal.email_verified,
        is_admin=is_admin(principal.email, admin_email),
    )
