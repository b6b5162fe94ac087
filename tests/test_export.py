"""数据导出路由测试。"""

import csv
import io
import os
import sqlite3
import tempfile

import pytest
from fastapi.testclient import TestClient

_tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False, prefix="export_")
_tmp.close()
os.environ["DB_PATH"] = _tmp.name

import deltarent.database as _db_mod
from deltarent.database import init_db
from deltarent.main import app
from deltarent.routes.export import CSV_COLUMNS


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
def client():
    return TestClient(app)


def _create(client, **overrides) -> dict:
    body = {
        "pureCoins": 500, "staminaLevel": 3, "insuranceSlots": 4,
        "accountLevel": 20, "wechatId": "abc",
    }
    body.update(overrides)
    return client.post("/api/accounts", json=body).json()["data"]


class TestExportJSON:
    """JSON 导出测试。"""

    def test_default_format_is_json(self, client):
        a = _create(client)
        resp = client.get("/api/export")
        assert resp.status_code == 200
        assert "attachment; filename=accounts_" in resp.headers["content-disposition"]
        assert resp.headers["content-disposition"].endswith(".json")
        body = resp.json()
        assert body["totalCount"] == 1
        assert body["exportDate"]
        assert body["data"] == [a]

    def test_status_filter(self, client):
        a = _create(client)
        _create(client)
        client.post(f"/api/accounts/{a['id']}/rent", json={"bossWechatId": "boss1"})
        body = client.get("/api/export", params={"status": "rented"}).json()
        assert body["totalCount"] == 1
        assert body["data"][0]["id"] == a["id"]

    def test_unknown_format_returns_400(self, client):
        resp = client.get("/api/export", params={"format": "xml"})
        assert resp.status_code == 400
        assert resp.json()["success"] is False


class TestExportCSV:
    """CSV 导出测试。"""

    def _rows(self, resp) -> list[list[str]]:
        text = resp.content.decode("utf-8")
        assert text.startswith("\ufeff")
        return list(csv.reader(io.StringIO(text[1:])))

    def test_csv_has_bom_and_header(self, client):
        resp = client.get("/api/export", params={"format": "csv"})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        assert resp.headers["content-disposition"].endswith(".csv")
        rows = self._rows(resp)
        assert rows[0] == [header for header, _, _ in CSV_COLUMNS]
        assert rows[0][0] == "订单号"
        assert rows[0][-1] == "创建时间"
        assert len(rows) == 1

    def test_csv_row_values(self, client):
        a = _create(client, awmAmmo=7, ownerNotes="含,逗号")
        client.post(f"/api/accounts/{a['id']}/rent", json={
            "bossWechatId": "boss1", "baseCost": 100, "basePrice": 200,
        })
        rows = self._rows(client.get("/api/export", params={"format": "csv"}))
        assert len(rows) == 2
        row = dict(zip(rows[0], rows[1]))
        assert row["订单号"] == "NO.000001"
        assert row["纯币数量"] == "500"
        assert row["AWM子弹"] == "7"
        assert row["号主备注"] == "含,逗号"
        assert row["老板微信"] == "boss1"
        assert row["状态"] == "rented"
        assert row["基础成本"] == "100.0"
        assert row["接受账密"] == ""
        assert row["创建时间"] == a["createdAt"]

    def test_csv_status_filter(self, client):
        _create(client)
        rows = self._rows(client.get("/api/export", params={"format": "csv", "status": "completed"}))
        assert len(rows) == 1
