"""
账号管理路由：列表、详情、报单、更新、删除、出租、结单、批量操作。
"""

from typing import Any

from fastapi import APIRouter, Depends, Query

from deltarent.routes.common import CamelModel, get_account_service, success_response
from deltarent.services.account_service import AccountService

router = APIRouter(prefix="/api/accounts")


class CreateAccountRequest(CamelModel):
    pure_coins: Any = None
    stamina_level: Any = None
    insurance_slots: Any = None
    account_level: Any = None
    awm_ammo: Any = None
    ammo_76251: Any = None
    ammo_76254: Any = None
    ammo_68: Any = None
    full_durability_helmet: Any = None
    full_durability_armor: Any = None
    accept_account_info: Any = None
    has_paid_knife_skin: Any = None
    untouchable_items: str | None = None
    owner_notes: str | None = None
    wechat_id: Any = None


class UpdateAccountRequest(CreateAccountRequest):
    """部分更新：只有请求中出现的字段会被覆盖。"""

    status: Any = None
    boss_wechat_id: Any = None
    base_cost: Any = None
    base_price: Any = None
    extra_cost: Any = None
    extra_price: Any = None
    date_str: Any = None
    day_number: Any = None
    time_str: Any = None
    created_at: Any = None
    last_rented_date: Any = None
    completed_at: Any = None


class RentRequest(CamelModel):
    boss_wechat_id: Any = None
    base_cost: Any = None
    base_price: Any = None


class CompleteRequest(CamelModel):
    extra_cost: Any = None
    extra_price: Any = None


class BatchStatusRequest(CamelModel):
    ids: Any = None
    status: Any = None


class BatchDeleteRequest(CamelModel):
    ids: Any = None


# ── 批量操作（需在 /{account_id} 之前注册） ─────────────────


@router.put("/batch/status")
async def batch_update_status(
    body: BatchStatusRequest,
    svc: AccountService = Depends(get_account_service),
):
    """批量更新账号状态（管理员覆盖，不校验状态流转）。"""
    count = svc.batch_set_status(body.ids, body.status)
    return success_response(
        data={"updatedCount": count},
        message=f"成功更新 {count} 个账号的状态",
    )


@router.delete("/batch")
async def batch_delete(
    body: BatchDeleteRequest,
    svc: AccountService = Depends(get_account_service),
):
    """批量删除账号，不存在的 id 忽略。"""
    count = svc.batch_delete(body.ids)
    return success_response(
        data={"deletedCount": count},
        message=f"成功删除 {count} 个账号",
    )


# ── 单条账号 ────────────────────────────────────────────────


@router.get("")
async def list_accounts(
    status: str | None = Query(None),
    search: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1),
    svc: AccountService = Depends(get_account_service),
):
    """账号列表（支持状态筛选、关键字搜索和分页）。"""
    result = svc.list_accounts(status=status, search=search, page=page, page_size=limit)
    return success_response(
        data=[a.to_dict() for a in result["items"]],
        pagination=result["pagination"],
    )


@router.get("/{account_id}")
async def get_account(account_id: str, svc: AccountService = Depends(get_account_service)):
    return success_response(data=svc.get_account(account_id).to_dict())


@router.post("")
async def create_account(
    body: CreateAccountRequest,
    svc: AccountService = Depends(get_account_service),
):
    """报单：创建库存账号，返回 201。"""
    account = svc.create_account(body.model_dump())
    return success_response(data=account.to_dict(), message="账号创建成功", status_code=201)


@router.put("/{account_id}")
async def update_account(
    account_id: str,
    body: UpdateAccountRequest,
    svc: AccountService = Depends(get_account_service),
):
    account = svc.update_account(account_id, body.model_dump(exclude_unset=True))
    return success_response(data=account.to_dict(), message="账号更新成功")


@router.delete("/{account_id}")
async def delete_account(account_id: str, svc: AccountService = Depends(get_account_service)):
    svc.delete_account(account_id)
    return success_response(message="账号删除成功")


@router.post("/{account_id}/rent")
async def rent_account(
    account_id: str,
    body: RentRequest,
    svc: AccountService = Depends(get_account_service),
):
    """出租账号（仅库存状态）。"""
    account = svc.rent_account(account_id, body.boss_wechat_id, body.base_cost, body.base_price)
    return success_response(data=account.to_dict(), message="账号出租成功")


@router.post("/{account_id}/complete")
async def complete_account(
    account_id: str,
    body: CompleteRequest,
    svc: AccountService = Depends(get_account_service),
):
    """结单（仅出租中状态）。"""
    account = svc.complete_account(account_id, body.extra_cost, body.extra_price)
    return success_response(data=account.to_dict(), message="订单结算成功")
