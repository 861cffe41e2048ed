"""找回密码流程。

重置码与登录验证码是两套独立字段（``reset_token`` / ``login_code``），
完成其中一个流程不会清除另一个。
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable

from admin_gate.config import AuthPolicy
from admin_gate.models.admin_account import utc_now
from admin_gate.services import security
from admin_gate.services.admin_account_service import AdminAccountStore, set_reset_token
from admin_gate.services.errors import InvalidCredentials, TransportUnavailable, ValidationError
from admin_gate.services.mail_service import MailGateway
from admin_gate.services.validators import normalize_email, normalize_text, require_password_length
from admin_gate.services.verification_service import PRODUCTION_NO_MAIL_MESSAGE

logger = logging.getLogger(__name__)

RESET_SUBJECT = "Admin password reset"
GENERIC_RESET_MESSAGE = "If this email exists, a reset code has been sent."
DEV_RESET_MESSAGE = "Email is not configured. Use this reset code locally."
INVALID_RESET_MESSAGE = "Invalid or expired reset code"
RESET_DONE_MESSAGE = "Password reset successful. Please login."


class ResetService:
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

    async def request_reset(self, email: str) -> dict[str, Any]:
        """无论邮箱是否存在都返回统一提示，避免账号枚举。

        唯一例外：账号存在但没有任何邮件通道，生产环境返回配置错误。
        """

        email = normalize_email(email)
        if not email:
            raise ValidationError("Email is required")

        account = await self.store.find_by_email(email)
        if account is None:
            return {"message": GENERIC_RESET_MESSAGE}

        code = self.code_factory()
        set_reset_token(account, security.hash_secret(code), self.clock() + self.policy.reset_code_ttl)
        await self.store.save(account)

        minutes = int(self.policy.reset_code_ttl.total_seconds() // 60)
        result = await self.mailer.send(
            account.email,
            RESET_SUBJECT,
            f"Your password reset code is: {code}. It expires in {minutes} minutes.",
        )
        if result.ok:
            logger.info("管理员 %s 的重置码已发送", account.id)
            return {"message": GENERIC_RESET_MESSAGE}

        if not self.policy.production:
            return {"message": DEV_RESET_MESSAGE, "resetCode": code}
        raise TransportUnavailable(PRODUCTION_NO_MAIL_MESSAGE)

    async def reset_password(
        self,
        email: str,
        new_password: str,
        *,
        code: str | None = None,
        token: str | None = None,
    ) -> dict[str, Any]:
        """``code`` 与旧版 ``token`` 字段是同一个秘密值，优先使用 ``code``。"""

        email = normalize_email(email)
        secret = normalize_text(code) or normalize_text(token)
        new_password = str(new_password or "")
        if not email or not new_password or not secret:
            raise ValidationError("Email, reset code (or token), and new password are required")
        require_password_length(new_password, self.policy.min_password_length)

        token_hash = security.hash_secret(secret)
        account = await self.store.find_pending_reset(email, token_hash, self.clock())
        if account is None:
            raise InvalidCredentials(INVALID_RESET_MESSAGE)

        if not await self.store.consume_reset_token(account, token_hash, security.hash_password(new_password)):
            raise InvalidCredentials(INVALID_RESET_MESSAGE)

        logger.info("管理员 %s 已通过重置码修改密码", account.id)
        return {"message": RESET_DONE_MESSAGE}
