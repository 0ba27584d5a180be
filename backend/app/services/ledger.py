"""
账本存储 - 查询辅助

所有默认查询都只看未删除（is_deleted = False）的记录；
需要连同已删除记录一起查（对账、审计）时显式使用 including_deleted。
事务边界见 app.db.session.atomic。
"""

from typing import Optional, Type, TypeVar

from sqlalchemy import select, func, Select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AlreadyExistsError, NotFoundError
from app.db.session import atomic
from app.models import OrderDetail

ModelT = TypeVar("ModelT")

__all__ = [
    "active",
    "including_deleted",
    "get_active",
    "get_active_or_404",
    "exists_active",
    "count_active_lines_for_lot",
    "raise_for_integrity_error",
    "atomic",
]


def active(model: Type[ModelT]) -> Select:
    """未删除记录的查询"""
    return select(model).where(model.is_deleted == False)  # noqa: E712


def including_deleted(model: Type[ModelT]) -> Select:
    """包含已删除记录的查询"""
    return select(model)


async def get_active(db: AsyncSession, model: Type[ModelT], obj_id: int, *, for_update: bool = False) -> Optional[ModelT]:
    stmt = active(model).where(model.id == obj_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_active_or_404(
    db: AsyncSession,
    model: Type[ModelT],
    obj_id: int,
    label: str,
    *,
    for_update: bool = False
) -> ModelT:
    """取未删除记录，不存在抛 NotFoundError"""
    obj = await get_active(db, model, obj_id, for_update=for_update)
    if obj is None:
        raise NotFoundError(f"{label}不存在 (ID: {obj_id})", ctx={"id": obj_id})
    return obj


async def exists_active(db: AsyncSession, model: Type[ModelT], *conditions, exclude_id: Optional[int] = None) -> bool:
    """未删除记录中是否存在满足条件的行（更新时排除自身）"""
    stmt = select(func.count()).select_from(model).where(model.is_deleted == False, *conditions)  # noqa: E712
    if exclude_id is not None:
        stmt = stmt.where(model.id != exclude_id)
    result = await db.execute(stmt)
    return (result.scalar() or 0) > 0


async def count_active_lines_for_lot(db: AsyncSession, inventory_id: int) -> int:
    """引用该批次的有效订单明细数"""
    result = await db.execute(
        select(func.count(OrderDetail.id)).where(
            OrderDetail.inventory_id == inventory_id,
            OrderDetail.is_deleted == False,  # noqa: E712
        )
    )
    return result.scalar() or 0


def raise_for_integrity_error(exc: IntegrityError, message: str) -> None:
    """
    唯一索引冲突 → AlreadyExistsError，其他约束错误原样抛出

    应用层已先检查过唯一性，这里只处理并发写入时落到数据库约束上的情况。
    """
    if "unique" in str(exc.orig).lower():
        raise AlreadyExistsError(message) from exc
    raise exc
