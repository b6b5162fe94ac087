"""
delta-rent API 客户端：封装全部 HTTP 接口，供脚本和其他服务调用。

主要功能：
- 账号管理、出租、结单、批量操作
- 统计、利润报表、修改报表密码
- 导出 JSON / CSV
- 列表和统计结果带短时缓存，写操作后自动失效
"""

import logging
import time

import httpx

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3000"
DEFAULT_CACHE_TTL = 5 * 60  # 秒


class RentalClientError(Exception):
    """接口返回失败（success=false 或非 2xx）。"""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TTLCache:
    """按 key 过期的简单内存缓存。"""

    def __init__(self, ttl: float = DEFAULT_CACHE_TTL, clock=time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._items: dict = {}

    def set(self, key, value, ttl: float | None = None) -> None:
        expiry = self._clock() + (self.ttl if ttl is None else ttl)
        self._items[key] = (value, expiry)

    def get(self, key):
        item = self._items.get(key)
        if item is None:
            return None
        value, expiry = item
        if self._clock() > expiry:
            del self._items[key]
            return None
        return value

    def clear(self, key=None) -> None:
        if key is None:
            self._items.clear()
        else:
            self._items.pop(key, None)


class RentalClient:
    """delta-rent HTTP 接口客户端。"""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        http: httpx.Client | None = None,
        cache_ttl: float = DEFAULT_CACHE_TTL,
        timeout: float = 10.0,
    ):
        """
        Args:
            base_url: 服务地址，传入 http 时忽略。
            http: 已构造的 httpx.Client（测试中可传入 TestClient）。
            cache_ttl: 读接口缓存时间（秒），0 表示不缓存。
        """
        self._http = http or httpx.Client(base_url=base_url, timeout=timeout)
        self.cache = TTLCache(cache_ttl)

    def close(self) -> None:
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            resp = self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error("接口请求失败 %s %s: %s", method, path, e)
            raise RentalClientError(f"请求失败: {e}") from e

        try:
            payload = resp.json()
        except ValueError:
            raise RentalClientError(f"响应格式错误: HTTP {resp.status_code}", resp.status_code)

        if resp.is_error or not payload.get("success", False):
            raise RentalClientError(
                payload.get("message") or f"HTTP error! status: {resp.status_code}",
                resp.status_code,
            )
        return payload

    def _cached(self, key, loader):
        if self.cache.ttl > 0:
            hit = self.cache.get(key)
            if hit is not None:
                return hit
        value = loader()
        if self.cache.ttl > 0:
            self.cache.set(key, value)
        return value

    def _write(self, method: str, path: str, **kwargs) -> dict:
        payload = self._request(method, path, **kwargs)
        self.cache.clear()
        return payload

    # ── 账号管理 ──────────────────────────────────────────

    def get_accounts(self, **params) -> dict:
        """账号列表，返回 {data, pagination}。params: status/search/page/limit。"""
        params = {k: v for k, v in params.items() if v is not None}
        key = ("accounts", tuple(sorted(params.items())))
        return self._cached(key, lambda: self._request("GET", "/api/accounts", params=params))

    def get_account(self, account_id: str) -> dict:
        return self._request("GET", f"/api/accounts/{account_id}")["data"]

    def create_account(self, account_data: dict) -> dict:
        return self._write("POST", "/api/accounts", json=account_data)["data"]

    def update_account(self, account_id: str, account_data: dict) -> dict:
        return self._write("PUT", f"/api/accounts/{account_id}", json=account_data)["data"]

    def delete_account(self, account_id: str) -> None:
        self._write("DELETE", f"/api/accounts/{account_id}")

    def rent_account(self, account_id: str, boss_wechat_id: str, base_cost=0, base_price=0) -> dict:
        body = {"bossWechatId": boss_wechat_id, "baseCost": base_cost, "basePrice": base_price}
        return self._write("POST", f"/api/accounts/{account_id}/rent", json=body)["data"]

    def complete_account(self, account_id: str, extra_cost=0, extra_price=0) -> dict:
        body = {"extraCost": extra_cost, "extraPrice": extra_price}
        return self._write("POST", f"/api/accounts/{account_id}/complete", json=body)["data"]

    def batch_update_status(self, ids: list[str], status: str) -> int:
        payload = self._write("PUT", "/api/accounts/batch/status", json={"ids": ids, "status": status})
        return payload["data"]["updatedCount"]

    def batch_delete(self, ids: list[str]) -> int:
        payload = self._write("DELETE", "/api/accounts/batch", json={"ids": ids})
        return payload["data"]["deletedCount"]

    # ── 统计和报表 ────────────────────────────────────────

    def get_statistics(self) -> dict:
        return self._cached("statistics", lambda: self._request("GET", "/api/statistics")["data"])

    def get_profit_report(self, password: str) -> dict:
        return self._request("POST", "/api/reports/profit", json={"password": password})["data"]

    def update_password(self, old_password: str, new_password: str) -> None:
        self._request(
            "PUT", "/api/config/password",
            json={"oldPassword": old_password, "newPassword": new_password},
        )

    # ── 导出 ──────────────────────────────────────────────

    def export_data(self, format: str = "json", status: str = "all") -> bytes:
        """下载导出文件，返回原始字节。"""
        try:
            resp = self._http.get("/api/export", params={"format": format, "status": status})
        except httpx.HTTPError as e:
            raise RentalClientError(f"请求失败: {e}") from e
        if resp.is_error:
            try:
                message = resp.json().get("message")
            except ValueError:
                message = None
            raise RentalClientError(message or f"HTTP error! status: {resp.status_code}", resp.status_code)
        return resp.content
