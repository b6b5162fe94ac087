"""
报表服务模块：状态统计、利润报表（报表密码保护）、修改报表密码。

报表密码以 bcrypt 哈希保存在 system_config，不做错误次数限制。
"""

import logging

import bcrypt

from deltarent.models.schemas import STATUS_COMPLETED, Account
from deltarent.services.account_service import parse_money
from deltarent.services.account_store import AccountStore
from deltarent.services.errors import AuthError, ValidationError
from deltarent.services.settings import get_config, set_config

logger = logging.getLogger(__name__)

PASSWORD_KEY = "report_password_hash"


def hash_password(password: str) -> str:
    """使用 bcrypt 对密码进行哈希。"""
    encoded = password.encode("utf-8")
    if len(encoded) > 72:
        raise ValidationError("密码长度不能超过72字节", field="newPassword")
    return bcrypt.hashpw(encoded, bcrypt.gensalt()).decode("utf-8")


def verify_password(password, hashed: str | None) -> bool:
    """验证密码是否与 bcrypt 哈希匹配，非字符串密码按 str() 比较。"""
    if password is None or not hashed:
        return False
    try:
        return bcrypt.checkpw(str(password).encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def _to_cents(value) -> int:
    """金额转整数分，缺失或无法解析按 0。"""
    try:
        return int(round(parse_money(value) * 100))
    except OverflowError:
        return 0


class ReportService:
    """统计与利润报表服务。"""

    def __init__(self, store: AccountStore):
        self.store = store

    def statistics(self) -> dict:
        """返回账号总数及各状态数量。"""
        return self.store.count_by_status()

    def _check_password(self, password: str | None) -> None:
        if not verify_password(password, get_config(PASSWORD_KEY)):
            logger.warning("报表密码验证失败")
            raise AuthError("密码错误")

    @staticmethod
    def _profit_detail(account: Account) -> tuple[int, dict]:
        base_cost = _to_cents(account.base_cost)
        base_price = _to_cents(account.base_price)
        extra_cost = _to_cents(account.extra_cost)
        extra_price = _to_cents(account.extra_price)
        profit_cents = (base_price + extra_price) - (base_cost + extra_cost)
        return profit_cents, {
            "id": account.id,
            "orderNumber": account.order_number,
            "wechatId": account.wechat_id,
            "bossWechatId": account.boss_wechat_id,
            "baseCost": base_cost / 100,
            "basePrice": base_price / 100,
            "extraCost": extra_cost / 100,
            "extraPrice": extra_price / 100,
            "profit": profit_cents / 100,
            "completedAt": account.completed_at,
            "createdAt": account.created_at,
        }

    def profit_report(self, password: str | None) -> dict:
        """
        利润报表：仅统计已结单账号。

        利润 = (基础售价 + 增值售价) - (基础成本 + 增值成本)，用整数分计算避免浮点误差。

        Raises:
            AuthError: 密码错误。
        """
        self._check_password(password)

        completed = [a for a in self.store.all() if a.status == STATUS_COMPLETED]
        total_cents = 0
        details = []
        for account in completed:
            profit_cents, detail = self._profit_detail(account)
            total_cents += profit_cents
            details.append(detail)

        count = len(completed)
        average = round(total_cents / count / 100, 2) if count else 0
        return {
            "summary": {
                "totalProfit": total_cents / 100,
                "totalOrders": count,
                "averageProfit": average,
            },
            "details": details,
        }

    def change_password(self, old_password: str | None, new_password: str | None) -> None:
        """
        修改报表密码：原密码正确即覆盖，不做复杂度限制。

        Raises:
            AuthError: 原密码错误。
            ValidationError: 未提供新密码。
        """
        if not verify_password(old_password, get_config(PASSWORD_KEY)):
            logger.warning("修改报表密码失败：原密码错误")
            raise AuthError("原密码错误")
        if new_password is None:
            raise ValidationError("请输入新密码", field="newPassword")

        set_config(PASSWORD_KEY, hash_password(new_password))
        logger.info("报表密码已更新")
