"""管理员注册、登录、验证码与找回密码控制器。"""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from admin_gate.services.auth_service import AuthService, get_auth_service

router = APIRouter(prefix="/api/auth")


async def read_json_body(request: Request) -> dict[str, Any]:
    """读取 JSON 请求体；空体或格式不合法时返回空字典，交由服务层给出字段错误。"""

    body = await request.body()
    if not body:
        return {}
    try:
        data = json.loads(body)
    except (ValueError, UnicodeDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


@router.post("/admin/signup")
async def signup(request: Request, service: AuthService = Depends(get_auth_service)) -> JSONResponse:
    values = await read_json_body(request)
    result = await service.signup(
        name=values.get("name"),
        email=values.get("email"),
        password=values.get("password"),
    )
    return JSONResponse(result.payload, status_code=result.status_code)


@router.post("/admin/resend-verification")
async def resend_verification(request: Request, service: AuthService = Depends(get_auth_service)) -> dict[str, Any]:
    values = await read_json_body(request)
    return await service.resend_verification(email=values.get("email"))


@router.post("/admin/login")
async def login(request: Request, service: AuthService = Depends(get_auth_service)) -> JSONResponse:
    values = await read_json_body(request)
    result = await service.login(email=values.get("email"), password=values.get("password"))
    return JSONResponse(result.payload, status_code=result.status_code)


@router.post("/admin/verify-login")
async def verify_login(request: Request, service: AuthService = Depends(get_auth_service)) -> dict[str, Any]:
    values = await read_json_body(request)
    return await service.verify_login(email=values.get("email"), code=values.get("code"))


@router.post("/admin/forgot-password")
async def forgot_password(request: Request, service: AuthService = Depends(get_auth_service)) -> dict[str, Any]:
    values = await read_json_body(request)
    return await service.forgot_password(email=values.get("email"))


@router.post("/admin/reset-password")
async def reset_password(request: Request, service: AuthService = Depends(get_auth_service)) -> dict[str, Any]:
    values = await read_json_body(request)
    return await service.reset_password(
        email=values.get("email"),
        new_password=values.get("newPassword"),
        code=values.get("code"),
        token=values.get("token"),
    )
