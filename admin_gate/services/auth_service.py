"""认证服务层：注册、登录、验证码、找回密码与管理员管理的编排。"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from admin_gate import config
from admin_gate.config import AuthPolicy
from admin_gate.services import security
from admin_gate.services.admin_account_service import (
    DUPLICATE_EMAIL_MESSAGE,
    AdminAccountService,
    AdminAccountStore,
    MongoAdminAccountStore,
    summarize_admin,
)
from admin_gate.services.errors import (
    ConflictError,
    InternalError,
    InvalidCredentials,
    MailDeliveryError,
    NotFoundError,
    PolicyDenied,
    TransportUnavailable,
    ValidationError,
)
from admin_gate.services.mail_service import MailGateway, get_mail_gateway
from admin_gate.services.reset_service import ResetService
from admin_gate.services.seed_service import SeedReconciler
from admin_gate.services.session_service import SessionIssuer, account_summary, get_session_issuer
from admin_gate.services.validators import (
    normalize_email,
    normalize_text,
    require_credentials,
    require_password_length,
)
from admin_gate.services.verification_service import PRODUCTION_NO_MAIL_MESSAGE, VerificationService

logger = logging.getLogger(__name__)

INVALID_LOGIN_MESSAGE = "Invalid credentials"
CODE_SENT_MESSAGE = "Verification code sent to your email."
LOGIN_CODE_SENT_MESSAGE = "Verification required. Code sent to your email."

# 账号不存在时也跑一次密码校验，避免通过响应耗时判断邮箱是否存在
_DUMMY_PASSWORD_HASH = security.hash_password("admin-gate-dummy-password")


@dataclass
class FlowResult:
    status_code: int
    payload: dict[str, Any] = field(default_factory=dict)


class AuthService:
    def __init__(
        self,
        store: AdminAccountStore,
        mailer: MailGateway,
        policy: AuthPolicy,
        sessions: SessionIssuer,
        reconciler: SeedReconciler | None = None,
    ) -> None:
        self.store = store
        self.mailer = mailer
        self.policy = policy
        self.sessions = sessions
        self.reconciler = reconciler or SeedReconciler(store)
        self.accounts = AdminAccountService(store)
        self.verification = VerificationService(store, mailer, policy)
        self.reset = ResetService(store, mailer, policy)

    async def ensure_seed_admins(self) -> int:
        return await self.reconciler.ensure_seed_admins()

    def _session_payload(self, account: Any, message: str | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "token": self.sessions.issue_session(account),
            "admin": account_summary(account),
        }
        if message:
            payload["message"] = message
        return payload

    def _read_new_credentials(self, email: Any, password: Any) -> tuple[str, str]:
        email = normalize_email(email)
        password = str(password or "")
        require_credentials(email, password)
        require_password_length(password, self.policy.min_password_length)
        return email, password

    async def signup(self, *, name: Any, email: Any, password: Any) -> FlowResult:
        """公开注册：账号创建后未验证，需要邮箱验证码。"""

        if not self.policy.public_signup_enabled:
            raise PolicyDenied("Admin signup is disabled.")
        await self.ensure_seed_admins()

        email, password = self._read_new_credentials(email, password)
        if await self.store.find_by_email(email):
            raise ConflictError(DUPLICATE_EMAIL_MESSAGE)

        account = await self.store.create(
            email=email,
            name=normalize_text(name),
            password_hash=security.hash_password(password),
            is_verified=False,
        )
        logger.info("公开注册创建管理员 %s", account.id)

        # 邮件发送失败不回滚账号，可通过重发验证码继续
        try:
            outcome = await self.verification.start_verification(account, CODE_SENT_MESSAGE)
        except MailDeliveryError as exc:
            raise InternalError("Failed to create admin account") from exc

        if outcome.bypassed:
            return FlowResult(
                201,
                {
                    "message": "Admin created and verified (SMTP not configured).",
                    "verificationRequired": False,
                    "email": email,
                },
            )
        return FlowResult(
            201 if outcome.delivered else 200,
            {**outcome.payload, "verificationRequired": True, "email": email},
        )

    async def create_admin(self, *, name: Any, email: Any, password: Any) -> dict[str, Any]:
        await self.ensure_seed_admins()
        email, password = self._read_new_credentials(email, password)
        account = await self.accounts.create_admin(
            email=email,
            name=normalize_text(name),
            password_hash=security.hash_password(password),
        )
        return {"message": "Admin created", "admin": summarize_admin(account)}

    async def list_admins(self) -> dict[str, Any]:
        await self.ensure_seed_admins()
        return await self.accounts.list_admins()

    async def delete_admin(self, target_id: str, claims: dict[str, Any]) -> dict[str, Any]:
        await self.accounts.delete_admin(
            target_id,
            requester_id=str(claims.get("id") or ""),
            requester_email=str(claims.get("email") or ""),
        )
        return {"message": "Admin removed successfully"}

    async def resend_verification(self, *, email: Any) -> dict[str, Any]:
        email = normalize_email(email)
        if not email:
            raise ValidationError("Email is required")

        account = await self.store.find_by_email(email)
        if account is None:
            raise NotFoundError("Admin account not found")
        if account.is_verified is True:
            raise PolicyDenied("Admin is already verified", status_code=400)

        try:
            outcome = await self.verification.start_verification(account, CODE_SENT_MESSAGE)
        except MailDeliveryError as exc:
            raise InternalError("Failed to resend verification code") from exc
        if outcome.bypassed:
            return {"message": "Admin verified (SMTP not configured)."}
        return outcome.payload

    async def login(self, *, email: Any, password: Any) -> FlowResult:
        await self.ensure_seed_admins()

        email = normalize_email(email)
        password = str(password or "")
        require_credentials(email, password)

        account = await self.store.find_by_email(email)
        if account is None:
            security.verify_password(password, _DUMMY_PASSWORD_HASH)
            raise InvalidCredentials(INVALID_LOGIN_MESSAGE, status_code=401)
        if not security.verify_password(password, account.password_hash):
            raise InvalidCredentials(INVALID_LOGIN_MESSAGE, status_code=401)

        if account.is_verified is not True:
            try:
                outcome = await self.verification.start_verification(account, LOGIN_CODE_SENT_MESSAGE)
            except MailDeliveryError as exc:
                raise InternalError("Failed to login") from exc
            if outcome.bypassed:
                return FlowResult(200, self._session_payload(account, "Logged in (SMTP not configured)."))
            return FlowResult(
                403,
                {**outcome.payload, "verificationRequired": True, "email": account.email},
            )

        return FlowResult(200, self._session_payload(account))

    async def verify_login(self, *, email: Any, code: Any) -> dict[str, Any]:
        email = normalize_email(email)
        code = normalize_text(code)
        if not email or not code:
            raise ValidationError("Email and verification code are required")

        account = await self.verification.verify_code(email, code)
        return self._session_payload(account, "Verification successful. Logged in.")

    async def forgot_password(self, *, email: Any) -> dict[str, Any]:
        await self.ensure_seed_admins()
        try:
            return await self.reset.request_reset(str(email or ""))
        except MailDeliveryError as exc:
            raise InternalError("Failed to process forgot password request") from exc

    async def reset_password(
        self,
        *,
        email: Any,
        new_password: Any,
        code: Any = None,
        token: Any = None,
    ) -> dict[str, Any]:
        return await self.reset.reset_password(
            str(email or ""),
            str(new_password or ""),
            code=str(code or ""),
            token=str(token or ""),
        )

    async def send_test_email(self, to: str) -> dict[str, Any]:
        """向当前管理员发送测试邮件，用于检查发信配置。"""

        try:
            result = await self.mailer.send(
                to,
                "Test email from admin console",
                "Email delivery is configured correctly.",
            )
        except MailDeliveryError as exc:
            raise InternalError("Failed to send test email") from exc
        if not result.ok:
            raise TransportUnavailable(PRODUCTION_NO_MAIL_MESSAGE)
        return {"message": "Test email sent", "channel": result.channel}


_default_service: AuthService | None = None


def get_auth_service() -> AuthService:
    global _default_service
    if _default_service is None:
        _default_service = AuthService(
            store=MongoAdminAccountStore(),
            mailer=get_mail_gateway(),
            policy=config.get_auth_policy(),
            sessions=get_session_issuer(),
        )
    return _default_service
