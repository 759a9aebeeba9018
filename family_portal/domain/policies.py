"""認可・入力ポリシー

ネットワーク呼び出しの前に判定できるものはここで ValidationError にする。
"""

from __future__ import annotations

import logging

from family_portal.domain.errors import ValidationError

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def is_admin(principal_email: str | None, admin_email: str | None) -> bool:
    """
    管理者判定（メールアドレスの大文字小文字を無視した完全一致）。

    管理者メールが未設定の場合は警告ログを出して False を返す。
    """
    if not principal_email:
        return False
    if not admin_email:
        logger.warning("ADMIN_EMAIL is not configured; finance features are disabled")
        return False
    return principal_email.lower() == admin_email.lower()


def validate_login(email: str | None, password: str | None) -> None:
    if not email or not password:
        raise ValidationError("Email and password are required")


def validate_password_change(
    current_password: str | None,
    new_password: str | None,
    confirm_password: str | None,
) -> None:
    """パスワード変更の入力チェック（上から順に最初の違反を返す）"""
    if not current_password or not new_password or not confirm_password:
        raise ValidationError("All fields are required")
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"New password must be at least {MIN_PASSWORD_LENGTH} characters"
        )
    if new_password != confirm_password:
        raise ValidationError("New passwords do not match")
    if new_password == current_password:
        raise ValidationError("New password must be different from current password")
