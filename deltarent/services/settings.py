"""
系统配置服务：管理 system_config 表的读写。

保存订单号计数器、报表密码哈希以及展示用的系统设置。
"""

import json
import sqlite3
from datetime import datetime

from deltarent.database import get_db
from deltarent.models.schemas import SystemConfig
from deltarent.services.errors import StorageError


# 不对外展示的配置项
_PRIVATE_KEYS = {"report_password_hash", "last_order_number"}


def get_config(key: str) -> str | None:
    """读取 system_config 表中指定 key 的值。"""
    try:
        db = get_db()
    except sqlite3.Error as e:
        raise StorageError(f"数据库连接失败: {e}") from e
    try:
        row = db.execute(
            "SELECT config_value FROM system_config WHERE config_key = ?",
            (key,),
        ).fetchone()
        return row["config_value"] if row else None
    except sqlite3.Error as e:
        raise StorageError(f"读取配置失败: {e}") from e
    finally:
        db.close()


def set_config(key: str, value: str | None, conn: sqlite3.Connection | None = None) -> None:
    """
    写入 system_config 表，存在则更新，不存在则插入。

    传入 conn 时在调用方事务内执行，不自行提交。
    """
    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    sql = """INSERT INTO system_config (config_key, config_value, updated_at)
             VALUES (?, ?, ?)
             ON CONFLICT(config_key) DO UPDATE
             SET config_value = excluded.config_value, updated_at = excluded.updated_at"""
    if conn is not None:
        conn.execute(sql, (key, value, now))
        return

    db = get_db()
    try:
        db.execute(sql, (key, value, now))
        db.commit()
    except sqlite3.Error as e:
        db.rollback()
        raise StorageError(f"保存配置失败: {e}") from e
    finally:
        db.close()


def list_config() -> list[SystemConfig]:
    """读取全部配置行。"""
    db = get_db()
    try:
        rows = db.execute(
            "SELECT id, config_key, config_value, updated_at FROM system_config ORDER BY id"
        ).fetchall()
        return [SystemConfig(**dict(r)) for r in rows]
    except sqlite3.Error as e:
        raise StorageError(f"读取配置失败: {e}") from e
    finally:
        db.close()


def get_system_settings() -> dict:
    """返回展示用的系统设置（不含密码和计数器），值按 JSON 解析。"""
    settings = {}
    for item in list_config():
        if item.config_key in _PRIVATE_KEYS:
            continue
        try:
            settings[item.config_key] = json.loads(item.config_value)
        except (TypeError, ValueError):
            settings[item.config_key] = item.config_value
    return settings
