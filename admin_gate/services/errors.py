"""认证流程统一异常。

控制器不直接拼错误响应：服务层抛出 ``AuthError`` 子类，由 ``main.py`` 中注册的
异常处理器统一转换为 ``{"message": ..., **extra}`` JSON。异常消息是对外稳定文案，
不得包含哈希、密钥或生产环境下的明文验证码。
"""

from __future__ import annotations

from typing import Any


class AuthError(Exception):
    code = "auth_error"
    status_code = 400

    def __init__(self, message: str, *, status_code: int | None = None, extra: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra or {}

    def to_payload(self) -> dict[str, Any]:
        return {"message": self.message, **self.extra}


class ValidationError(AuthError):
    """输入缺失或格式不合法，在访问存储前拒绝。"""

    code = "validation_error"
    status_code = 400


class InvalidCredentials(AuthError):
    """账号不存在、验证码不匹配或已过期，对调用方不做区分。"""

    code = "invalid"
    status_code = 400


class NotFoundError(AuthError):
    code = "not_found"
    status_code = 404


class ConflictError(AuthError):
    code = "conflict"
    status_code = 409


class PolicyDenied(AuthError):
    code = "policy_denied"
    status_code = 403


class TransportUnavailable(AuthError):
    """没有可用的邮件通道。"""

    code = "transport_unavailable"
    status_code = 500


class InternalError(AuthError):
    code = "internal_error"
    status_code = 500


class MailDeliveryError(Exception):
    """邮件通道已配置但发送时失败。"""
