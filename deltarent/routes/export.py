"""
数据导出路由：按状态筛选后导出 JSON 或 CSV 文件。
"""

import csv
import io
from datetime import date, datetime

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, StreamingResponse

from deltarent.models.schemas import Account
from deltarent.routes.common import get_account_service
from deltarent.services.account_service import AccountService
from deltarent.services.errors import ValidationError

router = APIRouter(prefix="/api")

# (表头, 字段名, 缺省值)，顺序即 CSV 列顺序
CSV_COLUMNS = [
    ("订单号", "order_number", ""),
    ("纯币数量", "pure_coins", 0),
    ("体力等级", "stamina_level", 0),
    ("保险格子", "insurance_slots", 0),
    ("账号等级", "account_level", 0),
    ("AWM子弹", "awm_ammo", 0),
    ("7.62*51子弹", "ammo_76251", 0),
    ("7.62*54子弹", "ammo_76254", 0),
    ("6.8子弹", "ammo_68", 0),
    ("满耐久6头", "full_durability_helmet", 0),
    ("满耐久6甲", "full_durability_armor", 0),
    ("接受账密", "accept_account_info", ""),
    ("付费刀皮", "has_paid_knife_skin", ""),
    ("仓库限制", "untouchable_items", ""),
    ("号主备注", "owner_notes", ""),
    ("微信号", "wechat_id", ""),
    ("老板微信", "boss_wechat_id", ""),
    ("状态", "status", ""),
    ("基础成本", "base_cost", 0),
    ("基础售价", "base_price", 0),
    ("增值成本", "extra_cost", 0),
    ("增值售价", "extra_price", 0),
    ("创建时间", "created_at", ""),
]

EXPORT_FORMATS = ("json", "csv")


def build_csv(accounts: list[Account]) -> str:
    """生成带 BOM 的 CSV 文本，Excel 打开中文不乱码。"""
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow([header for header, _, _ in CSV_COLUMNS])
    for account in accounts:
        row = []
        for _, name, default in CSV_COLUMNS:
            value = getattr(account, name)
            row.append(default if value is None or value == "" else value)
        writer.writerow(row)
    return "\ufeff" + output.getvalue()


@router.get("/export")
async def export_accounts(
    format: str = Query("json"),
    status: str | None = Query(None),
    svc: AccountService = Depends(get_account_service),
):
    """导出账号数据，format=json|csv，status 为空或 all 时导出全部。"""
    if format not in EXPORT_FORMATS:
        raise ValidationError("导出格式只能是 json 或 csv", field="format")

    accounts = svc.filter_accounts(status=status)
    filename = f"accounts_{date.today().isoformat()}.{format}"
    headers = {"Content-Disposition": f"attachment; filename={filename}"}

    if format == "csv":
        return StreamingResponse(
            iter([build_csv(accounts)]),
            media_type="text/csv; charset=utf-8",
            headers=headers,
        )

    return JSONResponse(
        content={
            "exportDate": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            "totalCount": len(accounts),
            "data": [a.to_dict() for a in accounts],
        },
        headers=headers,
    )
