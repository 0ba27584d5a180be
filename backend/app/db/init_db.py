import asyncio

from app.db.session import engine
from app.db.base import Base

# 导入所有模型，确保表能被创建
from app.models import (  # noqa: F401
    Supplier, Category, Product, Purchase, Inventory, Order, OrderDetail,
)


async def init_db() -> None:
    """
    初始化数据库 - 创建所有表
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def ensure_tables_exist() -> None:
    """
    确保数据库表存在（应用启动时调用）
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


if __name__ == "__main__":
    asyncio.run(init_db())
