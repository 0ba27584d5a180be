"""商品API"""

from typing import Any, List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import get_db
from app.schemas.product import ProductCreate, ProductUpdate, ProductResponse
from app.services.catalog import ProductService

router = APIRouter()


@router.get("/", response_model=List[ProductResponse])
async def list_products(
    *,
    db: AsyncSession = Depends(get_db),
    category_id: Optional[int] = Query(None, description="按分类筛选")) -> Any:
    """获取商品列表"""
    return await ProductService(db).list_all(category_id=category_id)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    *,
    db: AsyncSession = Depends(get_db),
    product_id: int) -> Any:
    """获取商品详情"""
    return await ProductService(db).get(product_id)


@router.post("/", response_model=ProductResponse, status_code=201)
async def create_product(
    *,
    db: AsyncSession = Depends(get_db),
    data: ProductCreate) -> Any:
    """创建商品"""
    return await ProductService(db).create(data)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    *,
    db: AsyncSession = Depends(get_db),
    product_id: int,
    data: ProductUpdate) -> Any:
    """更新商品"""
    return await ProductService(db).update(product_id, data)


@router.delete("/{product_id}")
async def delete_product(
    *,
    db: AsyncSession = Depends(get_db),
    product_id: int) -> Any:
    """删除商品（已有库存或订单记录时不能删除）"""
    await ProductService(db).delete(product_id)
    return {"message": "删除成功"}
