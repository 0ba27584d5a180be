import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import settings


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """SQLite 默认不检查外键，每个连接打开时启用"""
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def make_session_factory(engine: AsyncEngine) -> sessionmaker:
    """创建异步会话工厂"""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# 创建异步引擎
# 仅在开发环境打印SQL（通过环境变量控制）
engine = create_async_engine(
    settings.async_database_uri,
    echo=os.getenv("SQL_DEBUG", "false").lower() == "true",
    future=True,
)
enable_sqlite_foreign_keys(engine)

# 创建异步会话
SessionLocal = make_session_factory(engine)


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    事务边界：块内全部成功才提交，任何异常都回滚并原样抛出

    Usage:
        async with atomic(db):
            lot.stock_quantity -= quantity
            db.add(detail)
    """
    try:
        yield db
        await db.commit()
    except Exception:
        await db.rollback()
        raise
