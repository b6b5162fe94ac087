"""
SQLite 数据库连接管理和初始化。
使用同步 sqlite3，提供 get_db() 获取连接，transaction() 包裹写事务。
"""

import json
import logging
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

import bcrypt
from dotenv import load_dotenv

from deltarent.services.errors import StorageError

load_dotenv()

logger = logging.getLogger(__name__)

DB_PATH = os.getenv("DB_PATH", "data/deltarent.db")

DEFAULT_REPORT_PASSWORD = "papamiao1"


def get_db() -> sqlite3.Connection:
    """获取 SQLite 数据库连接，启用 WAL 模式。"""
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    return conn


@contextmanager
def transaction():
    """
    以 BEGIN IMMEDIATE 打开写事务，成功提交，异常回滚。

    sqlite3.Error 统一转换为 StorageError；回滚保证之前已提交的数据不受影响。
    """
    try:
        conn = get_db()
    except sqlite3.Error as e:
        raise StorageError(f"数据库连接失败: {e}") from e
    try:
        conn.execute("BEGIN IMMEDIATE")
        yield conn
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        raise StorageError(f"数据写入失败: {e}") from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


# ── 建表 SQL ──────────────────────────────────────────────

_CREATE_TABLES = """
CREATE TABLE IF NOT EXISTS accounts (
    seq             INTEGER PRIMARY KEY AUTOINCREMENT,
    id              VARCHAR(64)  NOT NULL UNIQUE,
    order_number    VARCHAR(16)  NOT NULL UNIQUE,
    status          VARCHAR(16)  NOT NULL DEFAULT 'inventory',
    date_str        VARCHAR(10)  NOT NULL,
    data            TEXT         NOT NULL,
    created_at      DATETIME     NOT NULL,
    updated_at      DATETIME
);

CREATE TABLE IF NOT EXISTS system_config (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    config_key      VARCHAR(64)  NOT NULL UNIQUE,
    config_value    TEXT,
    updated_at      DATETIME     NOT NULL DEFAULT (datetime('now'))
);
"""

# ── 索引 SQL ──────────────────────────────────────────────

_CREATE_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_accounts_status
    ON accounts(status);
CREATE INDEX IF NOT EXISTS idx_accounts_date_str
    ON accounts(date_str);
CREATE UNIQUE INDEX IF NOT EXISTS idx_system_config_key
    ON system_config(config_key);
"""


# ── 初始化 ────────────────────────────────────────────────

def init_db() -> None:
    """创建数据库目录、表、索引，并在首次启动时写入默认配置。"""
    db_dir = Path(DB_PATH).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = get_db()
    try:
        conn.executescript(_CREATE_TABLES)
        conn.executescript(_CREATE_INDEXES)
        _seed_default_config(conn)
        conn.commit()
    finally:
        conn.close()


def _seed_default_config(conn: sqlite3.Connection) -> None:
    """写入缺失的默认配置项（幂等操作，已有值不覆盖）。"""
    password = os.getenv("REPORT_PASSWORD", DEFAULT_REPORT_PASSWORD)
    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    defaults = {
        "last_order_number": "0",
        "max_accounts_per_page": "50",
        "auto_backup": json.dumps(True),
        "backup_interval_hours": "24",
        "created_at": now,
    }

    row = conn.execute(
        "SELECT 1 FROM system_config WHERE config_key = 'report_password_hash'"
    ).fetchone()
    if not row:
        defaults["report_password_hash"] = bcrypt.hashpw(
            password.encode("utf-8"), bcrypt.gensalt()
        ).decode("utf-8")
        logger.info("已初始化报表密码")

    for key, value in defaults.items():
        conn.execute(
            """INSERT OR IGNORE INTO system_config (config_key, config_value, updated_at)
               VALUES (?, ?, ?)""",
            (key, value, now),
        )
