"""路由公共部分：统一响应格式、请求体基类、服务依赖项。"""

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from deltarent.models.schemas import camelize
from deltarent.services.account_service import AccountService
from deltarent.services.account_store import AccountStore
from deltarent.services.report_service import ReportService


class CamelModel(BaseModel):
    """请求体基类：接收驼峰字段名，属性使用下划线命名。"""

    model_config = ConfigDict(alias_generator=camelize, populate_by_name=True)


def success_response(
    data=None,
    message: str | None = None,
    status_code: int = 200,
    pagination: dict | None = None,
) -> JSONResponse:
    """统一成功响应：{success: true, data?, message?, pagination?}。"""
    content = {"success": True}
    if data is not None:
        content["data"] = data
    if message is not None:
        content["message"] = message
    if pagination is not None:
        content["pagination"] = pagination
    return JSONResponse(status_code=status_code, content=content)


def error_response(message: str, status_code: int) -> JSONResponse:
    """统一失败响应：{success: false, message}。"""
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
    )


def get_store() -> AccountStore:
    return AccountStore()


def get_account_service() -> AccountService:
    return AccountService(get_store())


def get_report_service() -> ReportService:
    return ReportService(get_store())
