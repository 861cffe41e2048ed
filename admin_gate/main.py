"""FastAPI 应用入口。"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .apps.admin.controllers.admin_accounts import router as admin_accounts_router
from .apps.admin.controllers.auth import router as auth_router
from .config import APP_NAME, APP_PORT
from .db import close_db, init_db
from .middleware.auth import AdminAuthMiddleware
from .services.auth_service import get_auth_service
from .services.errors import AuthError

# 配置日志
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理：启动时初始化数据库并同步种子管理员。"""
    await init_db()
    await get_auth_service().ensure_seed_admins()

    yield

    await close_db()


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    return JSONResponse(exc.to_payload(), status_code=exc.status_code)


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("请求处理异常 %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse({"message": "Internal server error"}, status_code=500)


def create_app(*, with_lifespan: bool = True) -> FastAPI:
    application = FastAPI(title=APP_NAME, lifespan=lifespan if with_lifespan else None)
    application.add_middleware(AdminAuthMiddleware)
    application.add_exception_handler(AuthError, auth_error_handler)
    application.add_exception_handler(Exception, unexpected_error_handler)
    application.include_router(auth_router)
    application.include_router(admin_accounts_router)
    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("admin_gate.main:app", host="0.0.0.0", port=APP_PORT)
