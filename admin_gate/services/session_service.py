"""会话令牌签发与校验（JWT）。"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Callable

from jose import JWTError, jwt

from admin_gate import config
from admin_gate.models.admin_account import utc_now
from admin_gate.services.errors import InvalidCredentials

ADMIN_ROLE = "admin"


class SessionIssuer:
    """签发固定有效期的会话令牌，到期后需重新登录，没有刷新机制。"""

    def __init__(
        self,
        secret_key: str,
        *,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(days=1),
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.ttl = ttl
        self.clock = clock

    def issue_session(self, account: Any) -> str:
        now = self.clock()
        payload = {
            "email": account.email,
            "role": ADMIN_ROLE,
            "id": str(account.id),
            "iat": int(now.timestamp()),
            "exp": int((now + self.ttl).timestamp()),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def decode_session(self, token: str) -> dict[str, Any]:
        try:
            claims = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as exc:
            raise InvalidCredentials("Invalid or expired session", status_code=401) from exc
        if claims.get("role") != ADMIN_ROLE:
            raise InvalidCredentials("Invalid or expired session", status_code=401)
        return claims


def account_summary(account: Any) -> dict[str, str]:
    return {"email": account.email, "role": ADMIN_ROLE, "name": account.name or ""}


def get_session_issuer() -> SessionIssuer:
    return SessionIssuer(
        config.JWT_SECRET,
        algorithm=config.JWT_ALGORITHM,
        ttl=timedelta(hours=config.SESSION_TTL_HOURS),
    )
