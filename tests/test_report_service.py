"""报表服务单元测试。"""

import os
import sqlite3
import tempfile

import pytest

_tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False, prefix="report_svc_")
_tmp.close()
os.environ["DB_PATH"] = _tmp.name

import deltarent.database as _db_mod
from deltarent.database import init_db
from deltarent.services.account_service import AccountService
from deltarent.services.account_store import AccountStore
from deltarent.services.errors import AuthError, ValidationError
from deltarent.services.report_service import (
    ReportService,
    hash_password,
    verify_password,
)
from deltarent.services.settings import get_config

PASSWORD = "papamiao1"


@pytest.fixture(autouse=True)
def _setup_db():
    """每个测试前重建数据库。"""
    os.environ["DB_PATH"] = _tmp.name
    _db_mod.DB_PATH = _tmp.name
    conn = sqlite3.connect(_tmp.name)
    conn.executescript("""
        DROP TABLE IF EXISTS accounts;
        DROP TABLE IF EXISTS system_config;
    """)
    conn.close()
    init_db()
    yield


@pytest.fixture
def accounts():
    return AccountService(AccountStore())


@pytest.fixture
def reports():
    return ReportService(AccountStore())


def _create(accounts, **overrides):
    fields = {
        "pure_coins": 500,
        "stamina_level": 3,
        "insurance_slots": 4,
        "account_level": 20,
        "wechat_id": "abc",
    }
    fields.update(overrides)
    return accounts.create_account(fields)


def _complete(accounts, base_cost, base_price, extra_cost, extra_price):
    a = _create(accounts)
    accounts.rent_account(a.id, "boss1", base_cost, base_price)
    return accounts.complete_account(a.id, extra_cost, extra_price)


class TestPasswordHashing:
    """报表密码哈希测试。"""

    def test_hash_and_verify(self):
        hashed = hash_password("secret")
        assert verify_password("secret", hashed)
        assert not verify_password("wrong", hashed)

    def test_hash_differs_from_plaintext(self):
        assert hash_password("secret") != "secret"

    def test_verify_handles_missing_values(self):
        assert not verify_password(None, hash_password("x"))
        assert not verify_password("x", None)

    def test_too_long_password_rejected(self):
        with pytest.raises(ValidationError):
            hash_password("a" * 73)


class TestStatistics:
    """statistics 单元测试。"""

    def test_empty(self, reports):
        assert reports.statistics() == {"total": 0, "inventory": 0, "rented": 0, "completed": 0}

    def test_counts_each_status(self, accounts, reports):
        _create(accounts)
        rented = _create(accounts)
        accounts.rent_account(rented.id, "boss1", 1, 2)
        _complete(accounts, 1, 2, 0, 0)
        assert reports.statistics() == {"total": 3, "inventory": 1, "rented": 1, "completed": 1}


class TestProfitReport:
    """profit_report 单元测试。"""

    def test_wrong_password_raises(self, accounts, reports):
        _complete(accounts, 100, 200, 10, 50)
        with pytest.raises(AuthError):
            reports.profit_report("wrong")

    def test_missing_password_raises(self, reports):
        with pytest.raises(AuthError):
            reports.profit_report(None)

    def test_repeated_failures_do_not_lock(self, reports):
        for _ in range(10):
            with pytest.raises(AuthError):
                reports.profit_report("wrong")
        assert reports.profit_report(PASSWORD)["summary"]["totalOrders"] == 0

    def test_example_profit(self, accounts, reports):
        done = _complete(accounts, 100, 200, 10, 50)
        report = reports.profit_report(PASSWORD)
        assert report["summary"] == {"totalProfit": 140, "totalOrders": 1, "averageProfit": 140}
        detail = report["details"][0]
        assert detail["id"] == done.id
        assert detail["orderNumber"] == "NO.000001"
        assert detail["wechatId"] == "abc"
        assert detail["bossWechatId"] == "boss1"
        assert detail["baseCost"] == 100
        assert detail["basePrice"] == 200
        assert detail["extraCost"] == 10
        assert detail["extraPrice"] == 50
        assert detail["profit"] == 140
        assert detail["completedAt"] == done.completed_at
        assert detail["createdAt"] == done.created_at

    def test_only_completed_counted(self, accounts, reports):
        _complete(accounts, 100, 200, 0, 0)
        rented = _create(accounts)
        accounts.rent_account(rented.id, "boss2", 0, 999)
        _create(accounts)
        summary = reports.profit_report(PASSWORD)["summary"]
        assert summary["totalOrders"] == 1
        assert summary["totalProfit"] == 100

    def test_empty_average_is_zero(self, reports):
        report = reports.profit_report(PASSWORD)
        assert report["summary"] == {"totalProfit": 0, "totalOrders": 0, "averageProfit": 0}
        assert report["details"] == []

    def test_average_rounded_to_two_decimals(self, accounts, reports):
        _complete(accounts, 0, 10, 0, 0)
        _complete(accounts, 0, 10, 0, 0)
        _complete(accounts, 0, 0, 0, 0)
        summary = reports.profit_report(PASSWORD)["summary"]
        assert summary["totalProfit"] == 20
        assert summary["averageProfit"] == 6.67

    def test_fractional_amounts_exact(self, accounts, reports):
        _complete(accounts, 0.1, 0.3, 0.1, 0.2)
        summary = reports.profit_report(PASSWORD)["summary"]
        assert summary["totalProfit"] == 0.3

    def test_negative_profit(self, accounts, reports):
        _complete(accounts, 300, 200, 0, 0)
        assert reports.profit_report(PASSWORD)["summary"]["totalProfit"] == -100

    def test_batch_completed_without_amounts(self, accounts, reports):
        """批量改为 completed 的账号金额按 0 计入。"""
        a = _create(accounts)
        accounts.batch_set_status([a.id], "completed")
        report = reports.profit_report(PASSWORD)
        assert report["summary"]["totalOrders"] == 1
        assert report["details"][0]["profit"] == 0

    def test_missing_amount_fields_treated_as_zero(self, accounts, reports):
        a = _create(accounts)
        accounts.update_account(a.id, {"status": "completed", "base_price": None, "extra_price": 30})
        assert reports.profit_report(PASSWORD)["summary"]["totalProfit"] == 30

    def test_unparsable_amounts_treated_as_zero(self, accounts, reports):
        """字符串 1e400、超大数值等无法换算成分的金额按 0 计入。"""
        a = _create(accounts)
        accounts.update_account(a.id, {
            "status": "completed",
            "base_cost": "1e400",
            "base_price": 1e308,
            "extra_cost": "abc",
            "extra_price": 30,
        })
        report = reports.profit_report(PASSWORD)
        assert report["summary"]["totalProfit"] == 30
        assert report["details"][0]["baseCost"] == 0
        assert report["details"][0]["basePrice"] == 0

    def test_numeric_password_compared_as_string(self, accounts, reports):
        with pytest.raises(AuthError):
            reports.profit_report(123)
        reports.change_password(PASSWORD, "123")
        assert reports.profit_report(123)["summary"]["totalOrders"] == 0


class TestChangePassword:
    """change_password 单元测试。"""

    def test_change_and_use_new_password(self, reports):
        reports.change_password(PASSWORD, "newpass")
        assert reports.profit_report("newpass")["summary"]["totalOrders"] == 0
        with pytest.raises(AuthError):
            reports.profit_report(PASSWORD)

    def test_wrong_old_password(self, reports):
        with pytest.raises(AuthError):
            reports.change_password("wrong", "newpass")
        reports.profit_report(PASSWORD)

    def test_stored_as_hash(self, reports):
        reports.change_password(PASSWORD, "newpass")
        stored = get_config("report_password_hash")
        assert stored != "newpass"
        assert verify_password("newpass", stored)

    def test_no_complexity_rules(self, reports):
        reports.change_password(PASSWORD, "1")
        reports.profit_report("1")

    def test_missing_new_password(self, reports):
        with pytest.raises(ValidationError):
            reports.change_password(PASSWORD, None)
