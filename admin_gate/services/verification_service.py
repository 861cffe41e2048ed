"""登录 / 注册邮箱验证码流程。

每个账号处于三种状态之一：已验证；未验证且无待用验证码；未验证且有待用验证码
（``login_code`` 保存哈希与过期时间）。验证码只能使用一次，过期后按“无效或已过期”
统一拒绝，不区分“码错误”和“没有待验证的码”。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from admin_gate.config import AuthPolicy
from admin_gate.models.admin_account import utc_now
from admin_gate.services import security
from admin_gate.services.admin_account_service import AdminAccountStore, clear_login_code, set_login_code
from admin_gate.services.errors import InvalidCredentials
from admin_gate.services.mail_service import MailGateway

logger = logging.getLogger(__name__)

VERIFICATION_SUBJECT = "Admin verification code"
INVALID_CODE_MESSAGE = "Invalid or expired verification code"
DEV_CODE_MESSAGE = "SMTP is not configured. Use this verification code locally."
PRODUCTION_NO_MAIL_MESSAGE = "Email is not configured. Set SMTP credentials in server .env."


@dataclass(frozen=True)
class IssuedCode:
    code: str
    delivered: bool


@dataclass
class VerificationOutcome:
    bypassed: bool
    delivered: bool
    payload: dict[str, Any] = field(default_factory=dict)


class VerificationService:
    def __init__(
        self,
        store: AdminAccountStore,
        mailer: MailGateway,
        policy: AuthPolicy,
        *,
        clock: Callable[[], datetime] = utc_now,
        code_factory: Callable[[], str] = security.generate_code,
    ) -> None:
        self.store = store
        self.mailer = mailer
        self.policy = policy
        self.clock = clock
        self.code_factory = code_factory

    async def issue_code(self, account: Any) -> IssuedCode:
        """生成并保存新验证码（覆盖旧码），然后尝试发送邮件。"""

        code = self.code_factory()
        set_login_code(account, security.hash_secret(code), self.clock() + self.policy.login_code_ttl)
        await self.store.save(account)

        minutes = int(self.policy.login_code_ttl.total_seconds() // 60)
        result = await self.mailer.send(
            account.email,
            VERIFICATION_SUBJECT,
            f"Your admin verification code is: {code}. It expires in {minutes} minutes.",
        )
        logger.info("已为管理员 %s 生成登录验证码，邮件发送%s", account.id, "成功" if result.ok else "失败")
        return IssuedCode(code=code, delivered=result.ok)

    async def bypass_if_undeliverable(self, account: Any) -> bool:
        """邮件无法送达时：策略不要求验证则直接标记为已验证。"""

        if self.policy.require_email_verification:
            return False
        account.is_verified = True
        clear_login_code(account)
        await self.store.save(account)
        logger.warning("邮件通道不可用，管理员 %s 已跳过邮箱验证", account.id)
        return True

    def format_verification_response(self, base_message: str, delivered: bool, code: str) -> dict[str, Any]:
        if delivered:
            return {"message": base_message}
        if not self.policy.production:
            return {"message": DEV_CODE_MESSAGE, "verificationCode": code}
        return {"message": PRODUCTION_NO_MAIL_MESSAGE}

    async def start_verification(self, account: Any, base_message: str) -> VerificationOutcome:
        issued = await self.issue_code(account)
        if not issued.delivered and await self.bypass_if_undeliverable(account):
            return VerificationOutcome(bypassed=True, delivered=False)
        payload = self.format_verification_response(base_message, issued.delivered, issued.code)
        return VerificationOutcome(bypassed=False, delivered=issued.delivered, payload=payload)

    async def verify_code(self, email: str, code: str) -> Any:
        """校验并消费验证码，成功返回已验证的账号。

        查询只按邮箱与未过期窗口过滤，不检查账号是否已验证。
        """

        now = self.clock()
        account = await self.store.find_pending_login_code(email, now)
        if account is None or account.login_code is None or not account.login_code.is_pending(now):
            raise InvalidCredentials(INVALID_CODE_MESSAGE)

        submitted_hash = security.hash_secret(code)
        if not security.secrets_match(account.login_code.code_hash, submitted_hash):
            raise InvalidCredentials(INVALID_CODE_MESSAGE)

        if not await self.store.consume_login_code(account, submitted_hash):
            # 并发请求已先一步消费了该验证码
            raise InvalidCredentials(INVALID_CODE_MESSAGE)

        logger.info("管理员 %s 邮箱验证完成", account.id)
        return account
