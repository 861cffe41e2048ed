"""管理员账号存储与管理服务层。"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Protocol

from beanie import PydanticObjectId
from bson.errors import InvalidId
from pymongo.errors import DuplicateKeyError

from admin_gate.models import AdminAccount, OneTimeCode
from admin_gate.models.admin_account import utc_now
from admin_gate.services.errors import ConflictError, NotFoundError, PolicyDenied, ValidationError

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL_MESSAGE = "Admin account already exists for this email"


class AdminAccountStore(Protocol):
    """账号存储契约，Mongo 实现见 ``MongoAdminAccountStore``。"""

    async def find_by_email(self, email: str) -> Any | None: ...

    async def get(self, account_id: str) -> Any | None: ...

    async def list_all(self) -> list[Any]: ...

    async def count(self) -> int: ...

    async def create(self, *, email: str, name: str, password_hash: str, is_verified: bool) -> Any: ...

    async def save(self, account: Any) -> None: ...

    async def delete(self, account: Any) -> None: ...

    async def find_pending_login_code(self, email: str, now: datetime) -> Any | None: ...

    async def find_pending_reset(self, email: str, token_hash: str, now: datetime) -> Any | None: ...

    async def consume_login_code(self, account: Any, code_hash: str) -> bool: ...

    async def consume_reset_token(self, account: Any, token_hash: str, password_hash: str) -> bool: ...


class MongoAdminAccountStore:
    """基于 Beanie 的账号存储。"""

    async def find_by_email(self, email: str) -> AdminAccount | None:
        return await AdminAccount.find_one(AdminAccount.email == email)

    async def get(self, account_id: str) -> AdminAccount | None:
        try:
            object_id = PydanticObjectId(account_id)
        except (InvalidId, TypeError):
            return None
        return await AdminAccount.get(object_id)

    async def list_all(self) -> list[AdminAccount]:
        return await AdminAccount.find_all().sort("-created_at").to_list()

    async def count(self) -> int:
        return await AdminAccount.find_all().count()

    async def create(self, *, email: str, name: str, password_hash: str, is_verified: bool) -> AdminAccount:
        account = AdminAccount(
            email=email,
            name=name,
            password_hash=password_hash,
            is_verified=is_verified,
            login_code=None,
            reset_token=None,
            created_at=utc_now(),
            updated_at=utc_now(),
        )
        try:
            await account.insert()
        except DuplicateKeyError as exc:
            raise ConflictError(DUPLICATE_EMAIL_MESSAGE) from exc
        return account

    async def save(self, account: AdminAccount) -> None:
        account.updated_at = utc_now()
        await account.save()

    async def delete(self, account: AdminAccount) -> None:
        await account.delete()

    async def find_pending_login_code(self, email: str, now: datetime) -> AdminAccount | None:
        return await AdminAccount.find_one({"email": email, "login_code.expires_at": {"$gt": now}})

    async def find_pending_reset(self, email: str, token_hash: str, now: datetime) -> AdminAccount | None:
        return await AdminAccount.find_one(
            {
                "email": email,
                "reset_token.code_hash": token_hash,
                "reset_token.expires_at": {"$gt": now},
            }
        )

    async def consume_login_code(self, account: AdminAccount, code_hash: str) -> bool:
        """以存储中的哈希为条件清除验证码，只有一个并发请求能成功。"""

        now = utc_now()
        collection = AdminAccount.get_motor_collection()
        result = await collection.update_one(
            {"_id": account.id, "login_code.code_hash": code_hash},
            {"$set": {"is_verified": True, "login_code": None, "updated_at": now}},
        )
        if result.modified_count != 1:
            return False
        account.is_verified = True
        account.login_code = None
        account.updated_at = now
        return True

    async def consume_reset_token(self, account: AdminAccount, token_hash: str, password_hash: str) -> bool:
        now = utc_now()
        collection = AdminAccount.get_motor_collection()
        result = await collection.update_one(
            {"_id": account.id, "reset_token.code_hash": token_hash},
            {"$set": {"password_hash": password_hash, "reset_token": None, "updated_at": now}},
        )
        if result.modified_count != 1:
            return False
        account.password_hash = password_hash
        account.reset_token = None
        account.updated_at = now
        return True


def summarize_admin(account: Any) -> dict[str, Any]:
    created_at = getattr(account, "created_at", None)
    return {
        "id": str(account.id),
        "email": account.email,
        "name": account.name or "",
        "createdAt": created_at.isoformat() if created_at else None,
    }


def clear_login_code(account: Any) -> None:
    account.login_code = None


def set_login_code(account: Any, code_hash: str, expires_at: datetime) -> None:
    account.login_code = OneTimeCode(code_hash=code_hash, expires_at=expires_at)


def set_reset_token(account: Any, token_hash: str, expires_at: datetime) -> None:
    account.reset_token = OneTimeCode(code_hash=token_hash, expires_at=expires_at)


class AdminAccountService:
    """管理员列表、后台创建与删除。"""

    def __init__(self, store: AdminAccountStore) -> None:
        self.store = store

    async def list_admins(self) -> dict[str, Any]:
        accounts = await self.store.list_all()
        return {"count": len(accounts), "admins": [summarize_admin(item) for item in accounts]}

    async def create_admin(self, *, email: str, name: str, password_hash: str) -> Any:
        """后台创建的管理员直接视为已验证，不走验证码流程。"""

        if await self.store.find_by_email(email):
            raise ConflictError(DUPLICATE_EMAIL_MESSAGE)
        account = await self.store.create(email=email, name=name, password_hash=password_hash, is_verified=True)
        logger.info("后台创建管理员 %s", account.id)
        return account

    async def delete_admin(self, target_id: str, *, requester_id: str = "", requester_email: str = "") -> None:
        target_id = str(target_id or "").strip()
        if not target_id:
            raise ValidationError("Admin id is required")

        if await self.store.count() <= 1:
            raise PolicyDenied("Cannot delete the last admin account", status_code=400)

        target = await self.store.get(target_id)
        if not target:
            raise NotFoundError("Admin not found")

        requester_email = requester_email.strip().lower()
        if (requester_id and requester_id == str(target.id)) or (
            requester_email and requester_email == str(target.email or "").lower()
        ):
            raise PolicyDenied("You cannot delete your own admin account", status_code=400)

        await self.store.delete(target)
        logger.info("管理员 %s 已被删除", target_id)
