"""单元测试用的内存账号存储、邮件通道与时钟。"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from admin_gate.models import OneTimeCode
from admin_gate.services.errors import ConflictError
from admin_gate.services.mail_service import DeliveryResult, EmailSettings, MailGateway, OutgoingEmail

FIXED_NOW = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


@dataclass
class FakeAccount:
    email: str
    password_hash: str
    name: str = ""
    is_verified: bool = False
    login_code: OneTimeCode | None = None
    reset_token: OneTimeCode | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:24])
    created_at: datetime = FIXED_NOW
    updated_at: datetime = FIXED_NOW


class InMemoryAdminAccountStore:
    """与 MongoAdminAccountStore 行为一致的内存实现，记录写入次数。"""

    def __init__(self) -> None:
        self.accounts: dict[str, FakeAccount] = {}
        self.writes = 0

    def add(self, account: FakeAccount) -> FakeAccount:
        self.accounts[account.id] = account
        return account

    async def find_by_email(self, email: str) -> FakeAccount | None:
        return next((item for item in self.accounts.values() if item.email == email), None)

    async def get(self, account_id: str) -> FakeAccount | None:
        return self.accounts.get(account_id)

    async def list_all(self) -> list[FakeAccount]:
        return sorted(self.accounts.values(), key=lambda item: item.created_at, reverse=True)

    async def count(self) -> int:
        return len(self.accounts)

    async def create(self, *, email: str, name: str, password_hash: str, is_verified: bool) -> FakeAccount:
        if await self.find_by_email(email):
            raise ConflictError("Admin account already exists for this email")
        self.writes += 1
        return self.add(FakeAccount(email=email, name=name, password_hash=password_hash, is_verified=is_verified))

    async def save(self, account: FakeAccount) -> None:
        self.writes += 1
        self.accounts[account.id] = account

    async def delete(self, account: FakeAccount) -> None:
        self.writes += 1
        self.accounts.pop(account.id, None)

    async def find_pending_login_code(self, email: str, now: datetime) -> FakeAccount | None:
        account = await self.find_by_email(email)
        if account and account.login_code and account.login_code.is_pending(now):
            return account
        return None

    async def find_pending_reset(self, email: str, token_hash: str, now: datetime) -> FakeAccount | None:
        account = await self.find_by_email(email)
        if (
            account
            and account.reset_token
            and account.reset_token.code_hash == token_hash
            and account.reset_token.is_pending(now)
        ):
            return account
        return None

    async def consume_login_code(self, account: FakeAccount, code_hash: str) -> bool:
        stored = self.accounts.get(account.id)
        if not stored or not stored.login_code or stored.login_code.code_hash != code_hash:
            return False
        self.writes += 1
        stored.is_verified = True
        stored.login_code = None
        return True

    async def consume_reset_token(self, account: FakeAccount, token_hash: str, password_hash: str) -> bool:
        stored = self.accounts.get(account.id)
        if not stored or not stored.reset_token or stored.reset_token.code_hash != token_hash:
            return False
        self.writes += 1
        stored.password_hash = password_hash
        stored.reset_token = None
        return True


class RecordingStrategy:
    """记录发送内容的邮件通道；``ok=False`` 模拟未配置。"""

    channel = "fake"

    def __init__(self, ok: bool = True, error: Exception | None = None) -> None:
        self.ok = ok
        self.error = error
        self.sent: list[OutgoingEmail] = []

    async def deliver(self, message: OutgoingEmail, settings: EmailSettings) -> DeliveryResult:
        if self.error is not None:
            raise self.error
        if not self.ok:
            return DeliveryResult(False, self.channel, "not_configured")
        self.sent.append(message)
        return DeliveryResult(True, self.channel)


class MutableClock:
    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> None:
        self.now = self.now + timedelta(**kwargs)


async def _empty_settings() -> dict[str, str]:
    return {}


def build_gateway(strategy: RecordingStrategy) -> MailGateway:
    return MailGateway(strategies=[strategy], settings_loader=_empty_settings)


