"""库存批次API"""

from typing import Any, List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import get_db
from app.schemas.inventory import (
    InventoryCreate, InventoryUpdate, InventoryBatchCreate, InventoryResponse,
    PurchaseTotalResponse, ReconciliationResponse,
)
from app.services.allocation import InventoryAllocationEngine

router = APIRouter()


@router.get("/", response_model=List[InventoryResponse])
async def list_inventory(
    *,
    db: AsyncSession = Depends(get_db),
    purchase_id: Optional[int] = Query(None, description="按进货单筛选")) -> Any:
    """获取库存批次列表"""
    return await InventoryAllocationEngine(db).list_lots(purchase_id=purchase_id)


@router.get("/purchase/{purchase_id}/total", response_model=PurchaseTotalResponse)
async def get_purchase_total(
    *,
    db: AsyncSession = Depends(get_db),
    purchase_id: int) -> Any:
    """进货单下已分配到批次的日元金额合计"""
    total = await InventoryAllocationEngine(db).get_purchase_total_allocated(purchase_id)
    return PurchaseTotalResponse(purchase_id=purchase_id, total=float(total))


@router.get("/purchase/{purchase_id}/expected-total", response_model=PurchaseTotalResponse)
async def get_expected_total(
    *,
    db: AsyncSession = Depends(get_db),
    purchase_id: int) -> Any:
    """进货单日元总额（原币总额 × 汇率）"""
    total = await InventoryAllocationEngine(db).get_expected_total_jpy(purchase_id)
    return PurchaseTotalResponse(purchase_id=purchase_id, total=float(total))


@router.get("/purchase/{purchase_id}/reconciliation", response_model=ReconciliationResponse)
async def get_reconciliation(
    *,
    db: AsyncSession = Depends(get_db),
    purchase_id: int) -> Any:
    """进货单对账"""
    return await InventoryAllocationEngine(db).get_reconciliation(purchase_id)


@router.get("/{inventory_id}", response_model=InventoryResponse)
async def get_inventory(
    *,
    db: AsyncSession = Depends(get_db),
    inventory_id: int) -> Any:
    """获取库存批次详情"""
    return await InventoryAllocationEngine(db).get_lot(inventory_id)


@router.post("/", response_model=InventoryResponse, status_code=201)
async def create_inventory(
    *,
    db: AsyncSession = Depends(get_db),
    data: InventoryCreate) -> Any:
    """创建库存批次"""
    return await InventoryAllocationEngine(db).create_lot(data)


@router.post("/batch", response_model=List[InventoryResponse], status_code=201)
async def batch_create_inventory(
    *,
    db: AsyncSession = Depends(get_db),
    data: InventoryBatchCreate) -> Any:
    """批量创建库存批次（任何一条失败整批回滚）"""
    return await InventoryAllocationEngine(db).batch_create_lots(data.items)


@router.put("/{inventory_id}", response_model=InventoryResponse)
async def update_inventory(
    *,
    db: AsyncSession = Depends(get_db),
    inventory_id: int,
    data: InventoryUpdate) -> Any:
    """修改库存批次（已被订单引用的批次不能修改）"""
    return await InventoryAllocationEngine(db).update_lot(inventory_id, data)


@router.delete("/{inventory_id}")
async def delete_inventory(
    *,
    db: AsyncSession = Depends(get_db),
    inventory_id: int) -> Any:
    """删除库存批次（已被订单引用的批次不能删除）"""
    await InventoryAllocationEngine(db).delete_lot(inventory_id)
    return {"message": "删除成功"}
