from __future__ import annotations

import json

import httpx
import pytest

from admin_gate import config
from admin_gate.services import mail_service
from admin_gate.services.errors import MailDeliveryError
from admin_gate.services.mail_service import (
    EmailSettings,
    MailGateway,
    OutgoingEmail,
    ResendStrategy,
    SmtpStrategy,
    resolve_email_settings,
)

ENV_KEYS = [
    "SMTP_HOST",
    "SMTP_PORT",
    "SMTP_USER",
    "SMTP_PASS",
    "EMAIL_USER",
    "EMAIL_PASS",
    "RESEND_API_KEY",
    "CONTACT_FROM_EMAIL",
    "CONTACT_FROM_NAME",
]


@pytest.fixture(autouse=True)
def clean_mail_env(monkeypatch) -> None:
    for key in ENV_KEYS:
        monkeypatch.setattr(config, key, "")
    monkeypatch.setattr(config, "SMTP_SECURE", None)


@pytest.mark.unit
def test_resolve_email_settings_defaults_port_and_secure() -> None:
    settings = resolve_email_settings({"smtp_host": "smtp.example.com", "smtp_user": "u", "smtp_pass": "p"})

    assert settings.smtp_port == 587
    assert settings.smtp_secure is False
    assert settings.from_email == "u"
    assert settings.resend_api_key == ""


@pytest.mark.unit
def test_resolve_email_settings_forces_secure_on_port_465(monkeypatch) -> None:
    monkeypatch.setattr(config, "SMTP_PORT", "465")

    assert resolve_email_settings({}).smtp_secure is True
    assert resolve_email_settings({"smtp_secure": "false"}).smtp_secure is False


@pytest.mark.unit
def test_resolve_email_settings_env_secure_flag_overrides_port(monkeypatch) -> None:
    monkeypatch.setattr(config, "SMTP_PORT", "465")
    monkeypatch.setattr(config, "SMTP_SECURE", "false")

    assert resolve_email_settings({}).smtp_secure is False


@pytest.mark.unit
def test_resolve_email_settings_prefers_stored_values_over_env(monkeypatch) -> None:
    monkeypatch.setattr(config, "SMTP_HOST", "env.example.com")
    monkeypatch.setattr(config, "CONTACT_FROM_EMAIL", "env-from@example.com")

    settings = resolve_email_settings(
        {"smtp_host": "stored.example.com", "from_email": "stored-from@example.com", "from_name": "Back Office"}
    )

    assert settings.smtp_host == "stored.example.com"
    assert settings.from_email == "stored-from@example.com"
    assert settings.sender == "Back Office <stored-from@example.com>"


@pytest.mark.unit
def test_resolve_email_settings_infers_resend_key_from_smtp_settings() -> None:
    settings = resolve_email_settings(
        {"smtp_host": "smtp.resend.com", "smtp_user": "resend", "smtp_pass": "re_secret"}
    )

    assert settings.resend_api_key == "re_secret"


@pytest.mark.unit
def test_resolve_email_settings_does_not_infer_resend_key_from_email_pass(monkeypatch) -> None:
    monkeypatch.setattr(config, "SMTP_HOST", "smtp.resend.com")
    monkeypatch.setattr(config, "SMTP_USER", "resend")
    monkeypatch.setattr(config, "EMAIL_PASS", "gmail-app-password")

    settings = resolve_email_settings({})

    assert settings.smtp_pass == "gmail-app-password"
    assert settings.resend_api_key == ""


@pytest.mark.unit
def test_resolve_email_settings_uses_explicit_resend_key(monkeypatch) -> None:
    monkeypatch.setattr(config, "RESEND_API_KEY", "re_env")

    assert resolve_email_settings({}).resend_api_key == "re_env"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_resend_strategy_posts_payload() -> None:
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["auth"] = request.headers["authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "email-1"})

    strategy = ResendStrategy(transport=httpx.MockTransport(handler))
    settings = EmailSettings(resend_api_key="re_key", from_email="ops@example.com")
    message = OutgoingEmail(to="a@x.com", subject="Hi", text="Body", reply_to="reply@x.com")

    result = await strategy.deliver(message, settings)

    assert result.ok is True
    assert result.channel == "resend"
    assert captured["auth"] == "Bearer re_key"
    assert captured["body"]["to"] == ["a@x.com"]
    assert captured["body"]["reply_to"] == "reply@x.com"
    assert "html" not in captured["body"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_resend_strategy_reports_api_error_without_raising() -> None:
    strategy = ResendStrategy(transport=httpx.MockTransport(lambda _request: httpx.Response(422, json={})))
    settings = EmailSettings(resend_api_key="re_key", from_email="ops@example.com")

    result = await strategy.deliver(OutgoingEmail(to="a@x.com", subject="s", text="t"), settings)

    assert result.ok is False
    assert result.reason == "api_error"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_resend_strategy_requires_key_and_sender() -> None:
    strategy = ResendStrategy()
    message = OutgoingEmail(to="a@x.com", subject="s", text="t")

    assert (await strategy.deliver(message, EmailSettings())).reason == "missing_key"
    assert (await strategy.deliver(message, EmailSettings(resend_api_key="k"))).reason == "missing_sender"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_smtp_strategy_not_configured_without_credentials() -> None:
    result = await SmtpStrategy().deliver(OutgoingEmail(to="a@x.com", subject="s", text="t"), EmailSettings())

    assert result.ok is False
    assert result.reason == "not_configured"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_smtp_strategy_falls_back_to_gmail_without_host(monkeypatch) -> None:
    calls: list[tuple] = []

    def fake_send(email, host, port, secure, settings) -> None:
        calls.append((host, port, secure, email["To"], email["From"]))

    monkeypatch.setattr(SmtpStrategy, "_send_sync", staticmethod(fake_send))
    settings = EmailSettings(smtp_user="me@gmail.com", smtp_pass="app-pass", from_email="me@gmail.com")

    result = await SmtpStrategy().deliver(OutgoingEmail(to="a@x.com", subject="s", text="t"), settings)

    assert result.ok is True
    assert calls == [("smtp.gmail.com", 465, True, "a@x.com", "me@gmail.com")]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_smtp_strategy_wraps_transport_errors(monkeypatch) -> None:
    def fake_send(*_args) -> None:
        raise OSError("connection refused")

    monkeypatch.setattr(SmtpStrategy, "_send_sync", staticmethod(fake_send))
    settings = EmailSettings(smtp_host="smtp.example.com", smtp_user="u", smtp_pass="p", from_email="u")

    with pytest.raises(MailDeliveryError):
        await SmtpStrategy().deliver(OutgoingEmail(to="a@x.com", subject="s", text="t"), settings)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_gateway_falls_through_to_smtp_when_resend_fails(monkeypatch) -> None:
    sent: list[str] = []

    def fake_send(email, host, port, secure, settings) -> None:
        sent.append(host)

    monkeypatch.setattr(SmtpStrategy, "_send_sync", staticmethod(fake_send))
    monkeypatch.setattr(config, "RESEND_API_KEY", "re_key")

    async def loader() -> dict[str, str]:
        return {"smtp_host": "smtp.example.com", "smtp_user": "u", "smtp_pass": "p", "from_email": "ops@example.com"}

    resend = ResendStrategy(transport=httpx.MockTransport(lambda _request: httpx.Response(500)))
    gateway = MailGateway(strategies=[resend, SmtpStrategy()], settings_loader=loader)

    result = await gateway.send("a@x.com", "Subject", "Text")

    assert result.ok is True
    assert result.channel == "smtp"
    assert sent == ["smtp.example.com"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_gateway_reports_not_configured_without_raising() -> None:
    async def loader() -> dict[str, str]:
        return {}

    gateway = MailGateway(settings_loader=loader)

    result = await gateway.send("a@x.com", "Subject", "Text")

    assert result.ok is False
    assert "resend:missing_key" in result.reason
    assert "smtp:not_configured" in result.reason


@pytest.mark.unit
@pytest.mark.asyncio
async def test_gateway_tolerates_unreadable_settings_store() -> None:
    async def broken_loader() -> dict[str, str]:
        raise RuntimeError("collection not initialised")

    gateway = MailGateway(settings_loader=broken_loader)

    settings = await gateway.load_settings()

    assert settings == mail_service.resolve_email_settings({})
