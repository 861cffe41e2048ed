"""种子管理员同步服务。

``ensure_seed_admins`` 是幂等的，可在每个依赖账号存在的请求前调用：
账号缺失时创建（直接视为已验证）；配置了 ``forceSync`` 的账号在密码、名称或验证状态
与配置不一致时回写，没有差异时不产生任何写入。
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable

from admin_gate import config
from admin_gate.services import security
from admin_gate.services.admin_account_service import AdminAccountStore, clear_login_code
from admin_gate.services.validators import normalize_email

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeedAccount:
    email: str
    password: str
    name: str = ""
    force_sync: bool = False


def _seed_from_mapping(raw: Any) -> SeedAccount | None:
    if not isinstance(raw, dict):
        return None
    email = normalize_email(raw.get("email"))
    password = str(raw.get("password") or "")
    if not email or not password:
        return None
    force_sync = raw.get("forceSync", raw.get("force_sync", False))
    return SeedAccount(
        email=email,
        password=password,
        name=str(raw.get("name") or ""),
        force_sync=config.is_truthy(force_sync),
    )


def parse_seed_accounts(raw: str | None) -> list[SeedAccount] | None:
    """解析 ADMIN_ACCOUNTS（JSON 列表）。未配置、JSON 非法、不是列表或空列表时返回 None。

    缺少邮箱或密码的条目直接跳过，不视为错误；列表非空但条目全部无效时返回空列表，
    此时不会回退到默认管理员。
    """

    if not raw or not raw.strip():
        return None
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("ADMIN_ACCOUNTS 不是合法 JSON，忽略")
        return None
    if not isinstance(parsed, list) or not parsed:
        return None
    return [seed for seed in (_seed_from_mapping(item) for item in parsed) if seed]


def build_seed_accounts() -> list[SeedAccount]:
    from_list = parse_seed_accounts(config.ADMIN_ACCOUNTS)
    if from_list is not None:
        return from_list

    return [
        SeedAccount(
            email=normalize_email(config.ADMIN_EMAIL or config.DEFAULT_ADMIN_EMAIL),
            password=config.ADMIN_PASSWORD or config.DEFAULT_ADMIN_PASSWORD,
            name=config.ADMIN_NAME or config.DEFAULT_ADMIN_NAME,
            force_sync=True,
        )
    ]


class SeedReconciler:
    def __init__(
        self,
        store: AdminAccountStore,
        seeds_loader: Callable[[], list[SeedAccount]] = build_seed_accounts,
    ) -> None:
        self.store = store
        self.seeds_loader = seeds_loader

    async def ensure_seed_admins(self) -> int:
        """返回本次写入的账号数量。"""

        writes = 0
        for seed in self.seeds_loader():
            if not seed.email or not seed.password:
                continue

            existing = await self.store.find_by_email(seed.email)
            if existing is None:
                await self.store.create(
                    email=seed.email,
                    name=seed.name,
                    password_hash=security.hash_password(seed.password),
                    is_verified=True,
                )
                logger.info("已创建种子管理员")
                writes += 1
                continue

            if seed.force_sync and await self._sync(existing, seed):
                writes += 1
        return writes

    async def _sync(self, account: Any, seed: SeedAccount) -> bool:
        changed = False
        if not security.verify_password(seed.password, account.password_hash):
            account.password_hash = security.hash_password(seed.password)
            changed = True
        if (account.name or "") != seed.name:
            account.name = seed.name
            changed = True
        if account.is_verified is not True:
            account.is_verified = True
            changed = True
        if not changed:
            return False

        clear_login_code(account)
        await self.store.save(account)
        logger.info("种子管理员 %s 已按配置同步", account.id)
        return True
