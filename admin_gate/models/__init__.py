"""模型集合。"""

from .admin_account import AdminAccount, OneTimeCode
from .config_item import ConfigItem

__all__ = [
    "AdminAccount",
    "OneTimeCode",
    "ConfigItem",
]
