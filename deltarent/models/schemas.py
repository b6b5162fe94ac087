"""
数据模型 / 类型定义，供各模块引用。
使用 dataclass 保持轻量，不引入 ORM；对外 JSON 字段使用驼峰命名。
"""

from dataclasses import asdict, dataclass, fields
from typing import Optional

STATUS_INVENTORY = "inventory"
STATUS_RENTED = "rented"
STATUS_COMPLETED = "completed"

ACCOUNT_STATUSES = (STATUS_INVENTORY, STATUS_RENTED, STATUS_COMPLETED)


def camelize(name: str) -> str:
    """snake_case 转 camelCase：order_number -> orderNumber，ammo_76251 -> ammo76251。"""
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


@dataclass
class Account:
    id: str
    order_number: str
    pure_coins: int
    stamina_level: int
    insurance_slots: int
    account_level: int
    wechat_id: str
    awm_ammo: int = 0
    ammo_76251: int = 0
    ammo_76254: int = 0
    ammo_68: int = 0
    full_durability_helmet: int = 0
    full_durability_armor: int = 0
    accept_account_info: Optional[str] = None
    has_paid_knife_skin: Optional[str] = None
    untouchable_items: str = ""
    owner_notes: str = ""
    date_str: str = ""
    day_number: str = ""
    time_str: str = ""
    created_at: str = ""
    status: str = STATUS_INVENTORY
    boss_wechat_id: Optional[str] = None
    base_cost: float = 0
    base_price: float = 0
    extra_cost: float = 0
    extra_price: float = 0
    last_rented_date: Optional[str] = None
    completed_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self) -> dict:
        """转换为驼峰命名的 JSON 字典，未设置的可选字段省略。"""
        return {
            camelize(k): v
            for k, v in asdict(self).items()
            if v is not None
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Account":
        """从驼峰命名的字典还原，忽略未知字段。"""
        known = {camelize(f.name): f.name for f in fields(cls)}
        return cls(**{known[k]: v for k, v in data.items() if k in known})


# 允许 update 覆盖的字段（id 和订单号不可变）
UPDATABLE_FIELDS = tuple(
    f.name for f in fields(Account) if f.name not in ("id", "order_number")
)


@dataclass
class SystemConfig:
    id: int
    config_key: str
    config_value: Optional[str] = None
    updated_at: Optional[str] = None
