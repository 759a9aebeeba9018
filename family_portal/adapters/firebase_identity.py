"""Firebase Auth Adapter

IdentityProvider ABC の Firebase 実装。

- IDトークン検証・リフレッシュトークン失効・パスワード更新は firebase_admin.auth
- メール/パスワードでのサインインと確認メール・リセットメールの送信は
  Admin SDK に API が無いため Identity Toolkit REST API を httpx で呼ぶ
  （Web API キーが必要: FIREBASE_WEB_API_KEY）
"""

from __future__ import annotations

import logging
from typing import Any

import firebase_admin
import firebase_admin.auth as fb_auth
import httpx
from firebase_admin import exceptions as fb_exceptions

from family_portal.domain.errors import AuthError, StoreError, ValidationError
from family_portal.domain.models import Principal, SignInResult
from family_portal.domain.ports import IdentityProvider

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"

# サインイン失敗として扱う Identity Toolkit のエラーコード
_BAD_CREDENTIALS = frozenset(
    {
        "EMAIL_NOT_FOUND",
        "INVALID_PASSWORD",
        "INVALID_LOGIN_CREDENTIALS",
        "INVALID_EMAIL",
        "USER_DISABLED",
    }
)


class IdentityToolkitError(Exception):
    """Identity Toolkit が返したエラー（error.message のコードを保持）"""

    def __init__(self, code: str, status_code: int) -> None:
        super().__init__(code)
        self.code = code
        self.status_code = status_code


class FirebaseIdentityProvider(IdentityProvider):
    """
    Firebase Auth を使った IdentityProvider 実装。

    Usage:
        provider = FirebaseIdentityProvider(api_key="AIza...", app=firebase_app)
        principal = provider.verify_token(id_token)
    """

    def __init__(
        self,
        api_key: str,
        app: firebase_admin.App | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        """
        Args:
            api_key: Firebase Web API キー（REST API 用）
            app: 初期化済みの Firebase Admin アプリ（省略時はデフォルトアプリ）
            client: httpx クライアント（テスト時に差し替え）
        """
        self._api_key = api_key
        self._app = app
        self._client = client or httpx.Client(base_url=IDENTITY_TOOLKIT_URL, timeout=10)

    # ── Admin SDK ───────────────────────────────────────────────────────────

    def verify_token(self, id_token: str) -> Principal:
        try:
            decoded = fb_auth.verify_id_token(id_token, app=self._app, check_revoked=True)
        except Exception as e:
            logger.warning("Invalid Firebase ID token: %s", e)
            raise AuthError("Invalid or expired Firebase ID token") from e

        return Principal(
            uid=decoded["uid"],
            email=decoded.get("email", ""),
            display_name=decoded.get("name", ""),
            email_verified=bool(decoded.get("email_verified", False)),
        )

    def sign_out(self, uid: str) -> None:
        try:
            fb_auth.revoke_refresh_tokens(uid, app=self._app)
        except fb_exceptions.FirebaseError as e:
            raise StoreError(f"Failed to sign out: {e}") from e
        logger.info("Revoked refresh tokens: uid=%s", uid)

    def change_password(
        self, principal: Principal, current_password: str, new_password: str
    ) -> None:
        """
        現在のパスワードで再認証してから変更する。

        Raises:
            ValidationError: 現在のパスワードが違う / 新しいパスワードが弱い
            StoreError: その他の失敗
        """
        try:
            self._post(
                "accounts:signInWithPassword",
                {
                    "email": principal.email,
                    "password": current_password,
                    "returnSecureToken": True,
                },
            )
        except IdentityToolkitError as e:
            if e.code in _BAD_CREDENTIALS:
                raise ValidationError("Current password is incorrect") from e
            raise StoreError("Failed to change password. Please try again.") from e

        try:
            fb_auth.update_user(principal.uid, password=new_password, app=self._app)
        except ValueError as e:
            # Admin SDK は 6 文字未満などをローカルで ValueError にする
            raise ValidationError(
                "Password is too weak. Please use a stronger password"
            ) from e
        except fb_exceptions.FirebaseError as e:
            logger.error("Failed to update password: uid=%s, error=%s", principal.uid, e)
            raise StoreError("Failed to change password. Please try again.") from e
        logger.info("Password changed: uid=%s", principal.uid)

    # ── Identity Toolkit REST ───────────────────────────────────────────────

    def sign_in(self, email: str, password: str) -> SignInResult:
        """
        サインインしてトークンを返す。メール未確認のアカウントは拒否する。

        Raises:
            AuthError: 認証情報の誤り、または "EMAIL_NOT_VERIFIED"
        """
        body = self._password_sign_in(email, password)
        user = self._lookup(body["idToken"])
        if not user.get("emailVerified", False):
            logger.info("Sign-in rejected (email not verified): %s", email)
            raise AuthError("EMAIL_NOT_VERIFIED")

        principal = Principal(
            uid=body["localId"],
            email=body.get("email", email),
            display_name=body.get("displayName", ""),
            email_verified=True,
        )
        logger.info("Signed in: uid=%s", principal.uid)
        return SignInResult(
            id_token=body["idToken"],
            refresh_token=body.get("refreshToken", ""),
            expires_in=int(body.get("expiresIn", 3600)),
            principal=principal,
        )

    def send_verification_email(self, email: str, password: str) -> None:
        """未確認アカウントに確認メールを再送する（送信にはそのアカウントのIDトークンが必要）"""
        body = self._password_sign_in(email, password)
        try:
            self._post(
                "accounts:sendOobCode",
                {"requestType": "VERIFY_EMAIL", "idToken": body["idToken"]},
            )
        except IdentityToolkitError as e:
            raise StoreError(f"Failed to send verification email: {e.code}") from e
        logger.info("Sent verification email: uid=%s", body.get("localId"))

    def send_password_reset(self, email: str) -> None:
        """
        パスワードリセットメールを送る。

        アカウントの有無を応答から推測できないよう、EMAIL_NOT_FOUND は成功扱いにする。
        """
        try:
            self._post(
                "accounts:sendOobCode",
                {"requestType": "PASSWORD_RESET", "email": email},
            )
        except IdentityToolkitError as e:
            if e.code == "EMAIL_NOT_FOUND":
                logger.info("Password reset requested for unknown email")
                return
            if e.code == "INVALID_EMAIL":
                raise ValidationError("Invalid email address") from e
            raise StoreError(f"Failed to send password reset email: {e.code}") from e
        logger.info("Sent password reset email")

    def _password_sign_in(self, email: str, password: str) -> dict[str, Any]:
        try:
            return self._post(
                "accounts:signInWithPassword",
                {"email": email, "password": password, "returnSecureToken": True},
            )
        except IdentityToolkitError as e:
            if e.code in _BAD_CREDENTIALS:
                logger.info("Sign-in failed: code=%s", e.code)
                raise AuthError("Invalid email or password") from e
            raise StoreError(f"Sign-in failed: {e.code}") from e

    def _lookup(self, id_token: str) -> dict[str, Any]:
        try:
            body = self._post("accounts:lookup", {"idToken": id_token})
        except IdentityToolkitError as e:
            raise StoreError(f"Account lookup failed: {e.code}") from e
        users = body.get("users") or []
        if not users:
            raise AuthError("Account not found")
        return users[0]

    def _post(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Identity Toolkit にPOSTしてJSONを返す。

        Raises:
            IdentityToolkitError: API がエラーを返した場合
            StoreError: 通信エラー
        """
        try:
            resp = self._client.post(
                f"/{endpoint}", params={"key": self._api_key}, json=payload
            )
        except httpx.HTTPError as e:
            logger.error("Identity Toolkit request failed: %s - %s", endpoint, e)
            raise StoreError(f"Authentication service unavailable: {e}") from e

        if resp.is_success:
            return resp.json()

        try:
            message = resp.json().get("error", {}).get("message", "")
        except ValueError:
            message = ""
        # "WEAK_PASSWORD : Password should be at least 6 characters" のような形式がある
        code = message.split(":", 1)[0].strip() or f"HTTP_{resp.status_code}"
        raise IdentityToolkitError(code, resp.status_code)
