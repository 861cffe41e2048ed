"""管理员管理与发信配置控制器（需登录）。"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from admin_gate.apps.admin.controllers.auth import read_json_body
from admin_gate.services import config_service
from admin_gate.services.auth_service import AuthService, get_auth_service
from admin_gate.services.errors import InvalidCredentials, ValidationError
from admin_gate.services.validators import validate_optional_email

router = APIRouter(prefix="/api/auth")


def current_claims(request: Request) -> dict[str, Any]:
    """由 AdminAuthMiddleware 写入的会话声明。"""

    claims = getattr(request.state, "admin_claims", None)
    if not claims:
        raise InvalidCredentials("Authentication required", status_code=401)
    return claims


@router.get("/admins")
async def list_admins(
    claims: dict[str, Any] = Depends(current_claims),
    service: AuthService = Depends(get_auth_service),
) -> dict[str, Any]:
    return await service.list_admins()


@router.post("/admins")
async def create_admin(
    request: Request,
    claims: dict[str, Any] = Depends(current_claims),
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    values = await read_json_body(request)
    payload = await service.create_admin(
        name=values.get("name"),
        email=values.get("email"),
        password=values.get("password"),
    )
    return JSONResponse(payload, status_code=201)


@router.delete("/admins/{admin_id}")
async def delete_admin(
    admin_id: str,
    claims: dict[str, Any] = Depends(current_claims),
    service: AuthService = Depends(get_auth_service),
) -> dict[str, Any]:
    return await service.delete_admin(admin_id, claims)


@router.get("/email-settings")
async def get_email_settings(claims: dict[str, Any] = Depends(current_claims)) -> dict[str, Any]:
    settings = await config_service.get_email_settings()
    return {"settings": config_service.mask_email_settings(settings)}


@router.put("/email-settings")
async def save_email_settings(request: Request, claims: dict[str, Any] = Depends(current_claims)) -> dict[str, Any]:
    values = await read_json_body(request)
    payload = {key: str(value or "") for key, value in values.items() if key in config_service.EMAIL_META}
    error = validate_optional_email(payload.get("from_email", ""))
    if error:
        raise ValidationError(error)
    settings = await config_service.save_email_settings(payload)
    return {"message": "Email settings saved", "settings": config_service.mask_email_settings(settings)}


@router.post("/email-settings/test")
async def send_test_email(
    claims: dict[str, Any] = Depends(current_claims),
    service: AuthService = Depends(get_auth_service),
) -> dict[str, Any]:
    return await service.send_test_email(str(claims.get("email") or ""))
