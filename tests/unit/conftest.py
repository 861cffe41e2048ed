"""单元测试 fixture：内存账号存储与可控的邮件通道。"""

from __future__ import annotations

import pytest

from admin_gate.config import AuthPolicy
from admin_gate.services.errors import MailDeliveryError
from tests.unit.fakes import InMemoryAdminAccountStore, MutableClock, RecordingStrategy


@pytest.fixture
def store() -> InMemoryAdminAccountStore:
    return InMemoryAdminAccountStore()


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def delivered_strategy() -> RecordingStrategy:
    return RecordingStrategy(ok=True)


@pytest.fixture
def undeliverable_strategy() -> RecordingStrategy:
    return RecordingStrategy(ok=False)


@pytest.fixture
def failing_strategy() -> RecordingStrategy:
    return RecordingStrategy(error=MailDeliveryError("SMTP delivery failed"))


@pytest.fixture
def dev_policy() -> AuthPolicy:
    return AuthPolicy(require_email_verification=True, production=False, public_signup_enabled=True)


@pytest.fixture
def production_policy() -> AuthPolicy:
    return AuthPolicy(require_email_verification=True, production=True, public_signup_enabled=True)


@pytest.fixture
def lenient_policy() -> AuthPolicy:
    return AuthPolicy(require_email_verification=False, production=False, public_signup_enabled=True)
