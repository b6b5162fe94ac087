"""
账号存储：每个账号一行，完整记录以 JSON 保存在 data 列。

status / date_str 冗余成独立列，用于统计和当日序号计算。
订单号计数器与新账号写入在同一个 BEGIN IMMEDIATE 事务内完成。
"""

import json
import logging
import sqlite3
from typing import Callable, Iterable

from deltarent.database import get_db, transaction
from deltarent.models.schemas import ACCOUNT_STATUSES, Account
from deltarent.services.errors import StorageError
from deltarent.services.settings import set_config

logger = logging.getLogger(__name__)


def _column_value(value):
    """更新接口可写入任意 JSON 值，冗余列（NOT NULL）只保存 sqlite 可绑定的形式。"""
    if value is None:
        return ""
    if isinstance(value, (str, int, float)):
        return value
    return json.dumps(value, ensure_ascii=False)


class AccountStore:
    """账号持久化网关：按 id 读写单条记录，按写入顺序读取全集。"""

    def _query(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        try:
            db = get_db()
        except sqlite3.Error as e:
            raise StorageError(f"数据库连接失败: {e}") from e
        try:
            return db.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"数据读取失败: {e}") from e
        finally:
            db.close()

    @staticmethod
    def _row_to_account(row: sqlite3.Row) -> Account:
        return Account.from_dict(json.loads(row["data"]))

    @staticmethod
    def _upsert(conn: sqlite3.Connection, account: Account) -> None:
        conn.execute(
            """INSERT INTO accounts (id, order_number, status, date_str, data, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                   order_number = excluded.order_number,
                   status = excluded.status,
                   date_str = excluded.date_str,
                   created_at = excluded.created_at,
                   data = excluded.data,
                   updated_at = excluded.updated_at""",
            (
                account.id,
                account.order_number,
                _column_value(account.status),
                _column_value(account.date_str),
                json.dumps(account.to_dict(), ensure_ascii=False),
                _column_value(account.created_at),
                account.updated_at,
            ),
        )

    def all(self) -> list[Account]:
        """按写入顺序返回全部账号。"""
        rows = self._query("SELECT data FROM accounts ORDER BY seq ASC")
        return [self._row_to_account(r) for r in rows]

    def get(self, account_id: str) -> Account | None:
        rows = self._query("SELECT data FROM accounts WHERE id = ?", (account_id,))
        return self._row_to_account(rows[0]) if rows else None

    def get_many(self, account_ids: Iterable[str]) -> list[Account]:
        ids = list(dict.fromkeys(account_ids))
        if not ids:
            return []
        placeholders = ",".join("?" * len(ids))
        rows = self._query(
            f"SELECT data FROM accounts WHERE id IN ({placeholders}) ORDER BY seq ASC",
            tuple(ids),
        )
        return [self._row_to_account(r) for r in rows]

    def create(self, date_str: str, build: Callable[[int, int], Account]) -> Account:
        """
        在写事务内分配订单号和当日序号，再写入新账号。

        Args:
            date_str: 新账号的日期（YYYY/MM/DD），用于统计当日已有账号数。
            build: 接收 (订单计数器新值, 当日已有账号数)，返回待写入的 Account。

        Returns:
            已写入的 Account。

        Raises:
            StorageError: 事务失败，计数器和账号均不落盘。
        """
        with transaction() as conn:
            row = conn.execute(
                "SELECT config_value FROM system_config WHERE config_key = 'last_order_number'"
            ).fetchone()
            counter = int(row["config_value"] or 0) + 1 if row else 1
            set_config("last_order_number", str(counter), conn=conn)

            same_day = conn.execute(
                "SELECT COUNT(*) AS cnt FROM accounts WHERE date_str = ?", (date_str,)
            ).fetchone()["cnt"]

            account = build(counter, same_day)
            self._upsert(conn, account)
        logger.info("账号已写入: id=%s, order_number=%s", account.id, account.order_number)
        return account

    def save(self, account: Account) -> None:
        """整条覆盖写入单个账号。"""
        with transaction() as conn:
            self._upsert(conn, account)

    def save_many(self, accounts: Iterable[Account]) -> None:
        """在同一事务内覆盖写入多个账号。"""
        with transaction() as conn:
            for account in accounts:
                self._upsert(conn, account)

    def delete(self, account_id: str) -> bool:
        """删除账号，返回是否存在并被删除。"""
        with transaction() as conn:
            cursor = conn.execute("DELETE FROM accounts WHERE id = ?", (account_id,))
            return cursor.rowcount > 0

    def delete_many(self, account_ids: Iterable[str]) -> int:
        """批量删除，返回实际删除条数。"""
        ids = list(dict.fromkeys(account_ids))
        if not ids:
            return 0
        placeholders = ",".join("?" * len(ids))
        with transaction() as conn:
            cursor = conn.execute(
                f"DELETE FROM accounts WHERE id IN ({placeholders})", tuple(ids)
            )
            return cursor.rowcount

    def count_by_status(self) -> dict:
        """按状态统计账号数，返回 {total, inventory, rented, completed}。"""
        rows = self._query(
            "SELECT status, COUNT(*) AS cnt FROM accounts GROUP BY status"
        )
        counts = {status: 0 for status in ACCOUNT_STATUSES}
        total = 0
        for r in rows:
            total += r["cnt"]
            if r["status"] in counts:
                counts[r["status"]] = r["cnt"]
        return {"total": total, **counts}
