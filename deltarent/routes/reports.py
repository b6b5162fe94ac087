"""
统计、利润报表和配置路由。
"""

from typing import Any

from fastapi import APIRouter, Depends

from deltarent.routes.common import CamelModel, get_report_service, success_response
from deltarent.services.report_service import ReportService
from deltarent.services.settings import get_system_settings

router = APIRouter(prefix="/api")


class ProfitReportRequest(CamelModel):
    password: Any = None


class ChangePasswordRequest(CamelModel):
    old_password: Any = None
    new_password: str | None = None


@router.get("/statistics")
async def statistics(svc: ReportService = Depends(get_report_service)):
    """账号总数及各状态数量。"""
    return success_response(data=svc.statistics())


@router.post("/reports/profit")
async def profit_report(
    body: ProfitReportRequest,
    svc: ReportService = Depends(get_report_service),
):
    """利润报表，需要报表密码。"""
    return success_response(data=svc.profit_report(body.password))


@router.put("/config/password")
async def change_password(
    body: ChangePasswordRequest,
    svc: ReportService = Depends(get_report_service),
):
    """修改报表密码。"""
    svc.change_password(body.old_password, body.new_password)
    return success_response(message="密码更新成功")


@router.get("/config")
async def system_settings():
    """系统设置（不含密码和订单号计数器）。"""
    return success_response(data=get_system_settings())
