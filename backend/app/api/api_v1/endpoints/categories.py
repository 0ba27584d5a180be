"""商品分类API"""

from typing import Any, List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import get_db
from app.schemas.category import CategoryCreate, CategoryUpdate, CategoryResponse
from app.services.catalog import CategoryService

router = APIRouter()


@router.get("/", response_model=List[CategoryResponse])
async def list_categories(
    *,
    db: AsyncSession = Depends(get_db)) -> Any:
    """获取分类列表"""
    return await CategoryService(db).list_all()


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(
    *,
    db: AsyncSession = Depends(get_db),
    category_id: int) -> Any:
    """获取分类详情"""
    return await CategoryService(db).get(category_id)


@router.post("/", response_model=CategoryResponse, status_code=201)
async def create_category(
    *,
    db: AsyncSession = Depends(get_db),
    data: CategoryCreate) -> Any:
    """创建分类"""
    return await CategoryService(db).create(data)


@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    *,
    db: AsyncSession = Depends(get_db),
    category_id: int,
    data: CategoryUpdate) -> Any:
    """更新分类"""
    return await CategoryService(db).update(category_id, data)


@router.delete("/{category_id}")
async def delete_category(
    *,
    db: AsyncSession = Depends(get_db),
    category_id: int) -> Any:
    """删除分类（分类下有商品时不能删除）"""
    await CategoryService(db).delete(category_id)
    return {"message": "删除成功"}
