"""进货单API"""

from datetime import datetime
from typing import Any, List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import get_db
from app.schemas.purchase import PurchaseCreate, PurchaseUpdate, PurchaseResponse
from app.services.catalog import PurchaseService

router = APIRouter()


@router.get("/", response_model=List[PurchaseResponse])
async def list_purchases(
    *,
    db: AsyncSession = Depends(get_db),
    purchase_no: Optional[str] = Query(None, description="单号模糊搜索"),
    supplier_id: Optional[int] = Query(None, description="供应商ID"),
    start_date: Optional[datetime] = Query(None, description="开始日期"),
    end_date: Optional[datetime] = Query(None, description="结束日期"),
    sort_by: str = Query("purchase_date", pattern="^(purchase_no|total_amount|purchase_date)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$")) -> Any:
    """获取进货单列表"""
    return await PurchaseService(db).list_all(
        purchase_no=purchase_no,
        supplier_id=supplier_id,
        start_date=start_date,
        end_date=end_date,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.get("/{purchase_id}", response_model=PurchaseResponse)
async def get_purchase(
    *,
    db: AsyncSession = Depends(get_db),
    purchase_id: int) -> Any:
    """获取进货单详情"""
    return await PurchaseService(db).get(purchase_id)


@router.post("/", response_model=PurchaseResponse, status_code=201)
async def create_purchase(
    *,
    db: AsyncSession = Depends(get_db),
    data: PurchaseCreate) -> Any:
    """创建进货单"""
    return await PurchaseService(db).create(data)


@router.put("/{purchase_id}", response_model=PurchaseResponse)
async def update_purchase(
    *,
    db: AsyncSession = Depends(get_db),
    purchase_id: int,
    data: PurchaseUpdate) -> Any:
    """更新进货单"""
    return await PurchaseService(db).update(purchase_id, data)


@router.delete("/{purchase_id}")
async def delete_purchase(
    *,
    db: AsyncSession = Depends(get_db),
    purchase_id: int) -> Any:
    """删除进货单（需先删除其下的库存批次）"""
    await PurchaseService(db).delete(purchase_id)
    return {"message": "删除成功"}
