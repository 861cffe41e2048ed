"""业务服务层。"""

from admin_gate.services import (
    admin_account_service,
    auth_service,
    config_service,
    errors,
    mail_service,
    reset_service,
    security,
    seed_service,
    session_service,
    validators,
    verification_service,
)

__all__ = [
    "admin_account_service",
    "auth_service",
    "config_service",
    "errors",
    "mail_service",
    "reset_service",
    "security",
    "seed_service",
    "session_service",
    "validators",
    "verification_service",
]
