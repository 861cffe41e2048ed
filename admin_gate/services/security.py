"""密码哈希与一次性验证码工具。"""

from __future__ import annotations

import hashlib
import secrets

from passlib.context import CryptContext

_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

CODE_MIN = 100000
CODE_SPAN = 900000


def hash_password(raw: str) -> str:
    return _pwd_context.hash(raw)


def verify_password(raw: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    try:
        return _pwd_context.verify(raw, hashed)
    except (ValueError, TypeError):
        # 存量数据中的异常哈希按校验失败处理
        return False


def generate_code() -> str:
    """生成 6 位数字验证码，均匀分布在 100000-999999。"""

    return str(CODE_MIN + secrets.randbelow(CODE_SPAN))


def hash_secret(value: str) -> str:
    """验证码 / 重置令牌落库前的单向哈希（sha256 hex）。"""

    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def secrets_match(expected_hash: str, submitted_hash: str) -> bool:
    if not expected_hash or not submitted_hash:
        return False
    return secrets.compare_digest(expected_hash, submitted_hash)
