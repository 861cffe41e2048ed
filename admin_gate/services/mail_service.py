"""邮件发送网关：优先走 Resend HTTP API，失败后回退 SMTP。

网关本身不会因为“未配置”而抛异常，而是返回 ``DeliveryResult(ok=False)``，
由调用方决定是生产环境报错还是开发环境回显验证码。只有在 SMTP 已配置、
实际发送时出错才抛出 ``MailDeliveryError``。
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr
from typing import Awaitable, Callable, Protocol

import httpx

from admin_gate import config
from admin_gate.services import config_service
from admin_gate.services.errors import MailDeliveryError

logger = logging.getLogger(__name__)

DEFAULT_SMTP_PORT = 587
GMAIL_SMTP_HOST = "smtp.gmail.com"
GMAIL_SMTP_PORT = 465


@dataclass(frozen=True)
class EmailSettings:
    """合并后台覆盖配置与环境变量后的最终发件配置。"""

    smtp_host: str = ""
    smtp_port: int = DEFAULT_SMTP_PORT
    smtp_secure: bool = False
    smtp_user: str = ""
    smtp_pass: str = ""
    from_email: str = ""
    from_name: str = ""
    resend_api_key: str = ""

    @property
    def sender(self) -> str:
        if self.from_name and self.from_email:
            return formataddr((self.from_name, self.from_email))
        return self.from_email


@dataclass(frozen=True)
class OutgoingEmail:
    to: str
    subject: str
    text: str
    html: str | None = None
    reply_to: str | None = None


@dataclass(frozen=True)
class DeliveryResult:
    ok: bool
    channel: str = ""
    reason: str = ""


def _parse_port(value: object, fallback: int) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return fallback


def _parse_secure(stored: str, env_value: str | None, port: int) -> bool:
    if stored.strip():
        return stored.strip().lower() == "true"
    if env_value is not None:
        return str(env_value).strip().lower() == "true"
    return port == 465


def infer_resend_api_key(host: str, user: str, password: str) -> str:
    """SMTP 配置指向 Resend 时，SMTP 密码即 API Key。"""

    if config.RESEND_API_KEY:
        return config.RESEND_API_KEY
    if "resend.com" in host.lower() and user.lower() == "resend" and password:
        return password
    return ""


def resolve_email_settings(stored: dict[str, str] | None = None) -> EmailSettings:
    """按“后台覆盖配置 > 环境变量 > 默认值”的顺序解析发件配置。"""

    stored = stored or {}
    host = stored.get("smtp_host") or config.SMTP_HOST
    user = stored.get("smtp_user") or config.SMTP_USER or config.EMAIL_USER
    password = stored.get("smtp_pass") or config.SMTP_PASS or config.EMAIL_PASS
    port = _parse_port(stored.get("smtp_port") or config.SMTP_PORT or DEFAULT_SMTP_PORT, DEFAULT_SMTP_PORT)
    secure = _parse_secure(stored.get("smtp_secure", ""), config.SMTP_SECURE, port)
    from_email = stored.get("from_email") or config.CONTACT_FROM_EMAIL or user
    from_name = stored.get("from_name") or config.CONTACT_FROM_NAME

    resend_user = stored.get("smtp_user") or config.SMTP_USER
    resend_pass = stored.get("smtp_pass") or config.SMTP_PASS
    return EmailSettings(
        smtp_host=host,
        smtp_port=port,
        smtp_secure=secure,
        smtp_user=user,
        smtp_pass=password,
        from_email=from_email,
        from_name=from_name,
        resend_api_key=infer_resend_api_key(host, resend_user, resend_pass),
    )


class DeliveryStrategy(Protocol):
    channel: str

    async def deliver(self, message: OutgoingEmail, settings: EmailSettings) -> DeliveryResult: ...


class ResendStrategy:
    """Resend 事务邮件 API。"""

    channel = "resend"

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.transport = transport

    async def deliver(self, message: OutgoingEmail, settings: EmailSettings) -> DeliveryResult:
        if not settings.resend_api_key:
            return DeliveryResult(False, self.channel, "missing_key")
        if not settings.from_email:
            return DeliveryResult(False, self.channel, "missing_sender")

        payload: dict[str, object] = {
            "from": settings.sender,
            "to": [message.to],
            "subject": message.subject,
            "text": message.text,
        }
        if message.html:
            payload["html"] = message.html
        if message.reply_to:
            payload["reply_to"] = message.reply_to

        try:
            async with httpx.AsyncClient(timeout=config.MAIL_TIMEOUT_SECONDS, transport=self.transport) as client:
                response = await client.post(
                    config.RESEND_API_URL,
                    headers={"Authorization": f"Bearer {settings.resend_api_key}"},
                    json=payload,
                )
        except httpx.HTTPError as exc:
            logger.warning("Resend 请求失败，回退 SMTP: %s", exc.__class__.__name__)
            return DeliveryResult(False, self.channel, "http_error")

        if response.is_success:
            return DeliveryResult(True, self.channel)
        logger.warning("Resend 返回非成功状态 %s，回退 SMTP", response.status_code)
        return DeliveryResult(False, self.channel, "api_error")


class SmtpStrategy:
    """通用 SMTP 通道；未配置主机但有账号密码时按 Gmail 处理。"""

    channel = "smtp"

    async def deliver(self, message: OutgoingEmail, settings: EmailSettings) -> DeliveryResult:
        if not settings.smtp_user or not settings.smtp_pass:
            return DeliveryResult(False, self.channel, "not_configured")

        if settings.smtp_host:
            host, port, secure = settings.smtp_host, settings.smtp_port, settings.smtp_secure
        else:
            host, port, secure = GMAIL_SMTP_HOST, GMAIL_SMTP_PORT, True

        email = EmailMessage()
        email["From"] = settings.sender or settings.smtp_user
        email["To"] = message.to
        email["Subject"] = message.subject
        if message.reply_to:
            email["Reply-To"] = message.reply_to
        email.set_content(message.text)
        if message.html:
            email.add_alternative(message.html, subtype="html")

        try:
            await asyncio.to_thread(self._send_sync, email, host, port, secure, settings)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("SMTP 发送失败 host=%s port=%s", host, port, exc_info=True)
            raise MailDeliveryError("SMTP delivery failed") from exc
        return DeliveryResult(True, self.channel)

    @staticmethod
    def _send_sync(email: EmailMessage, host: str, port: int, secure: bool, settings: EmailSettings) -> None:
        timeout = config.MAIL_TIMEOUT_SECONDS
        if secure:
            server: smtplib.SMTP = smtplib.SMTP_SSL(host, port, timeout=timeout)
        else:
            server = smtplib.SMTP(host, port, timeout=timeout)
        with server:
            if not secure:
                server.ehlo()
                if server.has_extn("starttls"):
                    server.starttls()
                    server.ehlo()
            server.login(settings.smtp_user, settings.smtp_pass)
            server.send_message(email)


SettingsLoader = Callable[[], Awaitable[dict[str, str]]]


class MailGateway:
    """按顺序尝试发送策略，直到某一通道成功。"""

    def __init__(
        self,
        strategies: list[DeliveryStrategy] | None = None,
        settings_loader: SettingsLoader | None = None,
    ) -> None:
        self.strategies = strategies if strategies is not None else [ResendStrategy(), SmtpStrategy()]
        self.settings_loader = settings_loader or config_service.get_email_settings

    async def load_settings(self) -> EmailSettings:
        try:
            stored = await self.settings_loader()
        except Exception:
            # 配置集合不可读时仍可使用环境变量发信
            logger.warning("读取邮件覆盖配置失败，使用环境变量", exc_info=True)
            stored = {}
        return resolve_email_settings(stored)

    async def send(
        self,
        to: str,
        subject: str,
        text: str,
        html: str | None = None,
        reply_to: str | None = None,
    ) -> DeliveryResult:
        settings = await self.load_settings()
        message = OutgoingEmail(to=to, subject=subject, text=text, html=html, reply_to=reply_to)

        failures: list[str] = []
        for strategy in self.strategies:
            result = await strategy.deliver(message, settings)
            if result.ok:
                logger.info("邮件已通过 %s 发送: %s", result.channel, subject)
                return result
            failures.append(f"{result.channel}:{result.reason}")

        reason = ",".join(failures)
        logger.warning("没有可用的邮件通道: %s", reason)
        return DeliveryResult(False, "", reason)


_default_gateway: MailGateway | None = None


def get_mail_gateway() -> MailGateway:
    global _default_gateway
    if _default_gateway is None:
        _default_gateway = MailGateway()
    return _default_gateway
