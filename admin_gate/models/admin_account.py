"""管理员账号模型。"""

from __future__ import annotations

from datetime import datetime, timezone

from beanie import Document
from pydantic import BaseModel, Field
from pymongo import IndexModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Mongo 读回的时间不带时区，统一按 UTC 处理。"""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class OneTimeCode(BaseModel):
    """待使用的一次性验证码（仅保存哈希）。字段为空即表示没有待验证的码。"""

    code_hash: str = Field(..., min_length=64, max_length=64)
    expires_at: datetime

    def is_pending(self, now: datetime) -> bool:
        return as_utc(self.expires_at) > now


class AdminAccount(Document):
    """后台管理员账号。"""

    email: str = Field(..., min_length=3, max_length=254)
    name: str = ""
    password_hash: str = Field(..., min_length=10)
    is_verified: bool = False
    login_code: OneTimeCode | None = None
    reset_token: OneTimeCode | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "admin_accounts"
        indexes = [IndexModel([("email", 1)], unique=True, name="uniq_admin_email")]
