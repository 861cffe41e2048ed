"""管理员鉴权中间件（Bearer 会话令牌）。"""

from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from admin_gate.services.errors import InvalidCredentials
from admin_gate.services.session_service import SessionIssuer, get_session_issuer

PROTECTED_PREFIXES = ("/api/auth/admins", "/api/auth/email-settings")


def unauthorized_response(message: str = "Authentication required") -> Response:
    return JSONResponse({"message": message}, status_code=401, headers={"WWW-Authenticate": "Bearer"})


def extract_bearer_token(request: Request) -> str:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


def is_protected_path(path: str) -> bool:
    return any(path == prefix or path.startswith(prefix + "/") for prefix in PROTECTED_PREFIXES)


class AdminAuthMiddleware(BaseHTTPMiddleware):
    """受保护路径必须携带有效会话令牌，解析出的声明写入 ``request.state.admin_claims``。"""

    def __init__(self, app, issuer: SessionIssuer | None = None):
        super().__init__(app)
        self.issuer = issuer

    async def dispatch(self, request: Request, call_next) -> Response:
        request.state.admin_claims = None
        if not is_protected_path(request.url.path):
            return await call_next(request)

        token = extract_bearer_token(request)
        if not token:
            return unauthorized_response()

        issuer = self.issuer or get_session_issuer()
        try:
            request.state.admin_claims = issuer.decode_session(token)
        except InvalidCredentials as exc:
            return unauthorized_response(exc.message)

        return await call_next(request)
