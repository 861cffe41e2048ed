"""应用配置（通过 .env 覆盖）。"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

# 优先加载项目根目录下的 .env
BASE_DIR = Path(__file__).resolve().parents[1]
load_dotenv(BASE_DIR / ".env")


TRUTHY_VALUES = {"1", "true", "yes", "on"}


def is_truthy(value: object) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_VALUES
    return bool(value)


def env_flag(name: str, default: str = "false") -> bool:
    """读取布尔型环境变量。"""

    return is_truthy(os.getenv(name, default) or "")


APP_NAME = os.getenv("APP_NAME", "AdminGate")
APP_ENV = os.getenv("APP_ENV", os.getenv("NODE_ENV", "dev"))
APP_PORT = int(os.getenv("APP_PORT", "8000"))

MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
MONGO_DB = os.getenv("MONGO_DB", "admin_gate")

JWT_SECRET = os.getenv("JWT_SECRET", "secretkey")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
SESSION_TTL_HOURS = int(os.getenv("SESSION_TTL_HOURS", "24"))

REQUIRE_ADMIN_EMAIL_VERIFICATION = env_flag("REQUIRE_ADMIN_EMAIL_VERIFICATION", "false")
DISABLE_PUBLIC_ADMIN_SIGNUP = env_flag("DISABLE_PUBLIC_ADMIN_SIGNUP", "true")

# 种子管理员：ADMIN_ACCOUNTS 为 JSON 列表，未配置时使用单个账号字段
ADMIN_ACCOUNTS = os.getenv("ADMIN_ACCOUNTS", "")
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "")
ADMIN_NAME = os.getenv("ADMIN_NAME", "")
DEFAULT_ADMIN_EMAIL = "admin@example.com"
DEFAULT_ADMIN_PASSWORD = "admin@2026"
DEFAULT_ADMIN_NAME = "Primary Admin"

SMTP_HOST = os.getenv("SMTP_HOST", "")
SMTP_PORT = os.getenv("SMTP_PORT", "")
SMTP_SECURE = os.getenv("SMTP_SECURE")
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASS = os.getenv("SMTP_PASS", "")
EMAIL_USER = os.getenv("EMAIL_USER", "")
EMAIL_PASS = os.getenv("EMAIL_PASS", "")

RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
RESEND_API_URL = os.getenv("RESEND_API_URL", "https://api.resend.com/emails")
CONTACT_FROM_EMAIL = os.getenv("CONTACT_FROM_EMAIL", "")
CONTACT_FROM_NAME = os.getenv("CONTACT_FROM_NAME", "")
MAIL_TIMEOUT_SECONDS = float(os.getenv("MAIL_TIMEOUT_SECONDS", "20"))


@dataclass(frozen=True)
class AuthPolicy:
    """认证流程策略，构造时注入各服务，测试可按用例替换。"""

    require_email_verification: bool = False
    production: bool = False
    public_signup_enabled: bool = False
    login_code_ttl: timedelta = timedelta(minutes=10)
    reset_code_ttl: timedelta = timedelta(minutes=15)
    min_password_length: int = 6


def get_auth_policy() -> AuthPolicy:
    return AuthPolicy(
        require_email_verification=REQUIRE_ADMIN_EMAIL_VERIFICATION,
        production=APP_ENV.strip().lower() == "production",
        public_signup_enabled=not DISABLE_PUBLIC_ADMIN_SIGNUP,
    )
