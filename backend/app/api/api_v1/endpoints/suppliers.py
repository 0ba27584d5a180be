"""供应商API"""

from typing import Any, List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import get_db
from app.schemas.supplier import SupplierCreate, SupplierUpdate, SupplierResponse
from app.services.catalog import SupplierService

router = APIRouter()


@router.get("/", response_model=List[SupplierResponse])
async def list_suppliers(
    *,
    db: AsyncSession = Depends(get_db)) -> Any:
    """获取供应商列表"""
    return await SupplierService(db).list_all()


@router.get("/{supplier_id}", response_model=SupplierResponse)
async def get_supplier(
    *,
    db: AsyncSession = Depends(get_db),
    supplier_id: int) -> Any:
    """获取供应商详情"""
    return await SupplierService(db).get(supplier_id)


@router.post("/", response_model=SupplierResponse, status_code=201)
async def create_supplier(
    *,
    db: AsyncSession = Depends(get_db),
    data: SupplierCreate) -> Any:
    """创建供应商"""
    return await SupplierService(db).create(data)


@router.put("/{supplier_id}", response_model=SupplierResponse)
async def update_supplier(
    *,
    db: AsyncSession = Depends(get_db),
    supplier_id: int,
    data: SupplierUpdate) -> Any:
    """更新供应商"""
    return await SupplierService(db).update(supplier_id, data)


@router.delete("/{supplier_id}")
async def delete_supplier(
    *,
    db: AsyncSession = Depends(get_db),
    supplier_id: int) -> Any:
    """删除供应商（软删除）"""
    await SupplierService(db).delete(supplier_id)
    return {"message": "删除成功"}
