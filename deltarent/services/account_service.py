"""
账号服务模块：报单创建、出租、结单、删除、批量操作和列表查询。

状态流转：inventory（库存）→ rented（出租中）→ completed（已结单），
单条操作只允许逐级前进；批量改状态为管理员覆盖操作，不做流转校验。
"""

import logging
import math
import uuid
from datetime import datetime

from deltarent.models.schemas import (
    ACCOUNT_STATUSES,
    STATUS_COMPLETED,
    STATUS_INVENTORY,
    STATUS_RENTED,
    UPDATABLE_FIELDS,
    Account,
    camelize,
)
from deltarent.services.account_store import AccountStore
from deltarent.services.errors import (
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

REQUIRED_FIELDS = {
    "pure_coins": "纯币数量",
    "stamina_level": "体力等级",
    "insurance_slots": "保险格子",
    "account_level": "账号等级",
    "wechat_id": "微信号",
}

COUNT_FIELDS = {
    "awm_ammo": "AWM子弹",
    "ammo_76251": "7.62*51子弹",
    "ammo_76254": "7.62*54子弹",
    "ammo_68": "6.8子弹",
    "full_durability_helmet": "满耐久6头",
    "full_durability_armor": "满耐久6甲",
}

STAMINA_RANGE = (1, 7)
ACCOUNT_LEVEL_RANGE = (1, 60)
INSURANCE_SLOT_CHOICES = (2, 4, 6, 9)


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _is_finite(value) -> bool:
    """非有限浮点数（inf / nan）无法写入 JSON 响应。"""
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, (list, tuple)):
        return all(_is_finite(v) for v in value)
    if isinstance(value, dict):
        return all(_is_finite(v) for v in value.values())
    return True


def _parse_int(value, field: str, label: str) -> int:
    """解析整数字段，失败抛出 ValidationError。"""
    if isinstance(value, bool):
        raise ValidationError(f"{label}必须是整数", field=camelize(field))
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ValidationError(f"{label}必须是整数", field=camelize(field))


def parse_money(value) -> float:
    """解析金额，无法解析时按 0 处理。"""
    if isinstance(value, bool) or value is None:
        return 0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(amount) or math.isinf(amount):
        return 0
    return amount


class AccountService:
    """账号生命周期服务。"""

    def __init__(self, store: AccountStore):
        self.store = store

    @staticmethod
    def _now() -> datetime:
        return datetime.now()

    @staticmethod
    def generate_account_id(now: datetime) -> str:
        """生成账号 ID：日期_时间_9位随机十六进制。"""
        return f"{now:%Y%m%d}_{now:%H%M%S}_{uuid.uuid4().hex[:9]}"

    @staticmethod
    def format_order_number(counter: int) -> str:
        return f"NO.{counter:06d}"

    def _validate_create(self, fields: dict) -> dict:
        """校验报单字段，返回解析后的值。"""
        for name, label in REQUIRED_FIELDS.items():
            if _is_blank(fields.get(name)):
                raise ValidationError(f"请填写必填字段: {label}", field=camelize(name))

        values = {
            name: _parse_int(fields[name], name, label)
            for name, label in REQUIRED_FIELDS.items()
            if name != "wechat_id"
        }

        if values["pure_coins"] <= 0:
            raise ValidationError("纯币数量必须大于0", field="pureCoins")
        if not STAMINA_RANGE[0] <= values["stamina_level"] <= STAMINA_RANGE[1]:
            raise ValidationError("体力等级必须在1-7之间", field="staminaLevel")
        if not ACCOUNT_LEVEL_RANGE[0] <= values["account_level"] <= ACCOUNT_LEVEL_RANGE[1]:
            raise ValidationError("账号等级必须在1-60之间", field="accountLevel")
        if values["insurance_slots"] not in INSURANCE_SLOT_CHOICES:
            raise ValidationError("保险格子只能是2、4、6或9", field="insuranceSlots")

        for name, label in COUNT_FIELDS.items():
            raw = fields.get(name)
            count = 0 if _is_blank(raw) else _parse_int(raw, name, label)
            if count < 0:
                raise ValidationError(f"{label}不能为负数", field=camelize(name))
            values[name] = count

        values["wechat_id"] = str(fields["wechat_id"]).strip()
        return values

    def create_account(self, fields: dict) -> Account:
        """
        报单：校验字段后分配订单号和当日序号，以库存状态入库。

        Args:
            fields: snake_case 字段字典。

        Returns:
            创建成功的 Account。

        Raises:
            ValidationError: 必填字段缺失或超出范围。
        """
        values = self._validate_create(fields)
        now = self._now()
        date_str = now.strftime("%Y/%m/%d")

        def build(counter: int, same_day_count: int) -> Account:
            return Account(
                id=self.generate_account_id(now),
                order_number=self.format_order_number(counter),
                accept_account_info=fields.get("accept_account_info"),
                has_paid_knife_skin=fields.get("has_paid_knife_skin"),
                untouchable_items=fields.get("untouchable_items") or "",
                owner_notes=fields.get("owner_notes") or "",
                date_str=date_str,
                day_number=f"{same_day_count + 1:02d}",
                time_str=now.strftime("%H:%M:%S"),
                created_at=now.strftime(TIMESTAMP_FORMAT),
                status=STATUS_INVENTORY,
                **values,
            )

        account = self.store.create(date_str, build)
        logger.info("报单成功: order_number=%s, wechat_id=%s", account.order_number, account.wechat_id)
        return account

    def get_account(self, account_id: str) -> Account:
        account = self.store.get(account_id)
        if account is None:
            raise NotFoundError("账号不存在")
        return account

    def update_account(self, account_id: str, fields: dict) -> Account:
        """
        按字段覆盖更新账号，不做范围校验（与报单不同）。

        id 和订单号不可修改，未知字段忽略。

        Raises:
            ValidationError: 字段值为 inf / nan 等非有限数值。
        """
        account = self.get_account(account_id)
        for name, value in fields.items():
            if name in UPDATABLE_FIELDS:
                if not _is_finite(value):
                    raise ValidationError(f"{camelize(name)} 不是有效数值", field=camelize(name))
                setattr(account, name, value)
        account.updated_at = self._now().strftime(TIMESTAMP_FORMAT)
        self.store.save(account)
        return account

    def rent_account(self, account_id: str, boss_wechat_id, base_cost=None, base_price=None) -> Account:
        """
        出租账号：仅库存状态可出租。

        Raises:
            ValidationError: 未填写老板微信号。
            NotFoundError: 账号不存在。
            InvalidTransitionError: 账号不是库存状态。
        """
        if _is_blank(boss_wechat_id):
            raise ValidationError("请输入老板微信号", field="bossWechatId")

        account = self.get_account(account_id)
        if account.status != STATUS_INVENTORY:
            raise InvalidTransitionError("只能出租库存状态的账号")

        now = self._now().strftime(TIMESTAMP_FORMAT)
        account.status = STATUS_RENTED
        account.boss_wechat_id = str(boss_wechat_id).strip()
        account.base_cost = parse_money(base_cost)
        account.base_price = parse_money(base_price)
        account.last_rented_date = now
        account.updated_at = now
        self.store.save(account)
        logger.info("账号出租: order_number=%s, boss=%s", account.order_number, account.boss_wechat_id)
        return account

    def complete_account(self, account_id: str, extra_cost=None, extra_price=None) -> Account:
        """
        结单：仅出租中的账号可结算。

        Raises:
            NotFoundError: 账号不存在。
            InvalidTransitionError: 账号不是出租中状态。
        """
        account = self.get_account(account_id)
        if account.status != STATUS_RENTED:
            raise InvalidTransitionError("只能结算出租中的账号")

        now = self._now().strftime(TIMESTAMP_FORMAT)
        account.status = STATUS_COMPLETED
        account.extra_cost = parse_money(extra_cost)
        account.extra_price = parse_money(extra_price)
        account.completed_at = now
        account.updated_at = now
        self.store.save(account)
        logger.info("订单结算: order_number=%s", account.order_number)
        return account

    def delete_account(self, account_id: str) -> None:
        if not self.store.delete(account_id):
            raise NotFoundError("账号不存在")
        logger.info("账号已删除: id=%s", account_id)

    @staticmethod
    def _validate_ids(ids) -> list[str]:
        if not isinstance(ids, list) or not ids:
            raise ValidationError("请提供有效的账号ID列表", field="ids")
        return [str(i) for i in ids]

    def batch_set_status(self, ids, status: str) -> int:
        """
        批量修改状态，直接覆盖，不校验状态流转。不存在的 id 跳过。

        Returns:
            实际更新的账号数。
        """
        ids = self._validate_ids(ids)
        if status not in ACCOUNT_STATUSES:
            raise ValidationError("无效的状态值", field="status")

        now = self._now().strftime(TIMESTAMP_FORMAT)
        accounts = self.store.get_many(ids)
        for account in accounts:
            account.status = status
            account.updated_at = now
        self.store.save_many(accounts)
        logger.info("批量更新状态: status=%s, count=%d", status, len(accounts))
        return len(accounts)

    def batch_delete(self, ids) -> int:
        ids = self._validate_ids(ids)
        deleted = self.store.delete_many(ids)
        logger.info("批量删除账号: count=%d", deleted)
        return deleted

    def filter_accounts(self, status: str | None = None, search: str | None = None) -> list[Account]:
        """按状态和关键字筛选，保持写入顺序。status 为空或 all 时不过滤状态。"""
        accounts = self.store.all()

        if status and status != "all":
            accounts = [a for a in accounts if a.status == status]

        if search:
            term = search.lower()

            def matches(a: Account) -> bool:
                candidates = (
                    str(a.pure_coins) if a.pure_coins is not None else "",
                    a.wechat_id or "",
                    a.boss_wechat_id or "",
                    a.order_number or "",
                )
                return any(term in str(c).lower() for c in candidates)

            accounts = [a for a in accounts if matches(a)]

        return accounts

    def list_accounts(
        self,
        status: str | None = None,
        search: str | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> dict:
        """
        分页查询账号列表。

        Returns:
            {"items": [Account, ...], "pagination": {total, page, limit, totalPages}}；
            页码超出范围时 items 为空列表。
        """
        if page < 1 or page_size < 1:
            raise ValidationError("分页参数必须为正整数", field="page")

        matched = self.filter_accounts(status, search)
        total = len(matched)
        offset = (page - 1) * page_size
        return {
            "items": matched[offset:offset + page_size],
            "pagination": {
                "total": total,
                "page": page,
                "limit": page_size,
                "totalPages": math.ceil(total / page_size),
            },
        }
