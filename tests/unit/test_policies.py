"""認可・入力ポリシーのユニットテスト"""

import logging

import pytest
from family_portal.domain.errors import ValidationError
from family_portal.domain.policies import (
    is_admin,
    validate_login,
    validate_password_change,
)


class TestIsAdmin:
    def test_case_insensitive_match(self):
        assert is_admin("Admin@Example.com", "admin@example.com") is True

    def test_different_email(self):
        assert is_admin("member@example.com", "admin@example.com") is False

    def test_missing_principal_email(self):
        assert is_admin("", "admin@example.com") is False
        assert is_admin(None, "admin@example.com") is False

    def test_unconfigured_admin_email_logs_warning(self, caplog):
        """ADMIN_EMAIL 未設定なら誰も管理者にならず、警告ログを出す"""
        with caplog.at_level(logging.WARNING):
            result = is_admin("admin@example.com", "")

        assert result is False
        assert "ADMIN_EMAIL is not configured" in caplog.text


class TestValidateLogin:
    @pytest.mark.parametrize(
        "email, password",
        [("", "secret"), ("a@example.com", ""), (None, None)],
    )
    def test_missing_fields(self, email, password):
        with pytest.raises(ValidationError, match="Email and password are required"):
            validate_login(email, password)

    def test_valid(self):
        validate_login("a@example.com", "secret")


class TestValidatePasswordChange:
    """最初に該当した違反のメッセージだけを返す"""

    def test_all_fields_required(self):
        with pytest.raises(ValidationError, match="All fields are required"):
            validate_password_change("old", "", "")

    def test_too_short(self):
        with pytest.raises(ValidationError, match="at least 6 characters"):
            validate_password_change("oldpass", "abc", "xyz")

    def test_mismatch(self):
        with pytest.raises(ValidationError, match="New passwords do not match"):
            validate_password_change("oldpass", "newpass1", "newpass2")

    def test_same_as_current(self):
        with pytest.raises(ValidationError, match="must be different"):
            validate_password_change("samepass", "samepass", "samepass")

    def test_length_checked_before_mismatch(self):
        """短すぎる かつ 不一致 の場合は長さのエラーが優先"""
        with pytest.raises(ValidationError, match="at least 6 characters"):
            validate_password_change("oldpass", "a", "b")

    def test_valid(self):
        validate_password_change("oldpass", "newpass", "newpass")
