"""统一字段校验工具。"""

from __future__ import annotations

import re

from .errors import ValidationError

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")


def normalize_email(value: object) -> str:
    """标准化邮箱值：去空白并转为小写。"""

    return str(value or "").strip().lower()


def normalize_text(value: object) -> str:
    return str(value or "").strip()


def validate_optional_email(value: str) -> str:
    """校验可选邮箱字段，空值允许通过，不合法时返回错误信息。"""

    email = normalize_email(value)
    if not email:
        return ""
    if EMAIL_PATTERN.fullmatch(email):
        return ""
    return "Email format is invalid"


def require_credentials(email: str, password: str) -> None:
    if not email or not password:
        raise ValidationError("Email and password are required")


def require_password_length(password: str, min_length: int) -> None:
    if len(password) < min_length:
        raise ValidationError(f"Password must be at least {min_length} characters")
