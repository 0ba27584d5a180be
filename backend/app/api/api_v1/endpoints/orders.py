"""订单API"""

from datetime import datetime
from typing import Any, List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import get_db
from app.core.exceptions import InvalidArgumentError
from app.schemas.order import (
    OrderCreate, OrderUpdate, OrderResponse, OrderWithDetailsResponse,
    OrderDetailCreate, OrderDetailUpdate, OrderDetailResponse,
)
from app.schemas.marketplace import ImportRequest, ImportResult
from app.services.fulfillment import OrderFulfillmentEngine
from app.services.marketplace_import import MarketplaceImporter

router = APIRouter()


# ==================== 订单 ====================

@router.get("/", response_model=List[OrderResponse])
async def list_orders(
    *,
    db: AsyncSession = Depends(get_db),
    start_date: Optional[datetime] = Query(None, description="成交时间起"),
    end_date: Optional[datetime] = Query(None, description="成交时间止")) -> Any:
    """获取订单列表（按成交时间倒序）"""
    return await OrderFulfillmentEngine(db).list_orders(start_date=start_date, end_date=end_date)


@router.post("/", response_model=OrderWithDetailsResponse, status_code=201)
async def create_order(
    *,
    db: AsyncSession = Depends(get_db),
    data: OrderCreate) -> Any:
    """创建订单（可同时创建明细并扣减库存）"""
    return await OrderFulfillmentEngine(db).create_order_with_lines(data)


@router.post("/import", response_model=ImportResult)
async def import_orders(
    *,
    db: AsyncSession = Depends(get_db),
    data: ImportRequest) -> Any:
    """从煤炉导入销售记录（cURL 命令或直接提交记录）"""
    importer = MarketplaceImporter(db)
    if data.curl_command:
        return await importer.import_from_curl(data.curl_command, skip_existing=data.skip_existing)
    if not data.histories:
        raise InvalidArgumentError("请提供 cURL 命令或销售记录")
    return await importer.import_histories(data.histories, skip_existing=data.skip_existing)


# ==================== 订单明细 ====================

@router.post("/details", response_model=OrderDetailResponse, status_code=201)
async def create_order_detail(
    *,
    db: AsyncSession = Depends(get_db),
    data: OrderDetailCreate) -> Any:
    """追加订单明细"""
    return await OrderFulfillmentEngine(db).create_order_detail(data)


@router.get("/details/{detail_id}", response_model=OrderDetailResponse)
async def get_order_detail(
    *,
    db: AsyncSession = Depends(get_db),
    detail_id: int) -> Any:
    """获取订单明细"""
    return await OrderFulfillmentEngine(db).get_order_detail(detail_id)


@router.put("/details/{detail_id}", response_model=OrderDetailResponse)
async def update_order_detail(
    *,
    db: AsyncSession = Depends(get_db),
    detail_id: int,
    data: OrderDetailUpdate) -> Any:
    """修改订单明细（先归还原批次，再从新批次扣减）"""
    return await OrderFulfillmentEngine(db).update_order_detail(detail_id, data)


@router.delete("/details/{detail_id}")
async def delete_order_detail(
    *,
    db: AsyncSession = Depends(get_db),
    detail_id: int) -> Any:
    """删除订单明细并归还库存"""
    await OrderFulfillmentEngine(db).delete_order_detail(detail_id)
    return {"message": "删除成功"}


# ==================== 单个订单 ====================

@router.get("/{order_id}", response_model=OrderWithDetailsResponse)
async def get_order(
    *,
    db: AsyncSession = Depends(get_db),
    order_id: int) -> Any:
    """获取订单详情（含明细）"""
    return await OrderFulfillmentEngine(db).get_order(order_id)


@router.get("/{order_id}/details", response_model=List[OrderDetailResponse])
async def list_order_details(
    *,
    db: AsyncSession = Depends(get_db),
    order_id: int) -> Any:
    """获取订单明细列表"""
    return await OrderFulfillmentEngine(db).list_order_details(order_id)


@router.put("/{order_id}", response_model=OrderWithDetailsResponse)
async def update_order(
    *,
    db: AsyncSession = Depends(get_db),
    order_id: int,
    data: OrderUpdate) -> Any:
    """修改订单基本信息"""
    return await OrderFulfillmentEngine(db).update_order(order_id, data)


@router.delete("/{order_id}")
async def delete_order(
    *,
    db: AsyncSession = Depends(get_db),
    order_id: int) -> Any:
    """删除订单（归还所有明细的库存）"""
    await OrderFulfillmentEngine(db).delete_order(order_id)
    return {"message": "删除成功"}
