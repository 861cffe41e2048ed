"""系统配置服务层（邮件发送覆盖配置）。"""

from __future__ import annotations

from admin_gate.models import ConfigItem
from admin_gate.models.admin_account import utc_now

EMAIL_GROUP = "email"

EMAIL_DEFAULTS = {
    "smtp_host": "",
    "smtp_port": "",
    "smtp_secure": "",
    "smtp_user": "",
    "smtp_pass": "",
    "from_email": "",
    "from_name": "",
}

EMAIL_META = {
    "smtp_host": "SMTP 主机",
    "smtp_port": "SMTP 端口",
    "smtp_secure": "启用 SSL (true/false，留空按端口推断)",
    "smtp_user": "SMTP 用户名",
    "smtp_pass": "SMTP 密码",
    "from_email": "发件人地址",
    "from_name": "发件人名称",
}

SECRET_KEYS = {"smtp_pass"}
MASKED_VALUE = "********"


async def find_config_item(group: str, key: str) -> ConfigItem | None:
    return await ConfigItem.find_one({"group": group, "key": key})


async def get_email_settings() -> dict[str, str]:
    """读取后台保存的邮件覆盖配置；空值表示回退到环境变量。"""

    items = await ConfigItem.find(ConfigItem.group == EMAIL_GROUP).to_list()
    mapping = {item.key: item.value for item in items if item.key in EMAIL_DEFAULTS}
    return EMAIL_DEFAULTS | mapping


def mask_email_settings(settings: dict[str, str]) -> dict[str, str]:
    masked = dict(settings)
    for key in SECRET_KEYS:
        if masked.get(key):
            masked[key] = MASKED_VALUE
    return masked


async def save_email_settings(payload: dict[str, str]) -> dict[str, str]:
    """保存邮件覆盖配置。密码字段提交掩码值时保持原值不变。"""

    for key, name in EMAIL_META.items():
        if key not in payload:
            continue
        value = str(payload.get(key) or "").strip()
        item = await find_config_item(EMAIL_GROUP, key)
        if key in SECRET_KEYS and value == MASKED_VALUE:
            continue
        if item:
            item.value = value
            item.name = name
            item.updated_at = utc_now()
            await item.save()
        else:
            await ConfigItem(
                key=key,
                name=name,
                value=value,
                group=EMAIL_GROUP,
                description="邮件发送配置",
                updated_at=utc_now(),
            ).insert()
    return await get_email_settings()
