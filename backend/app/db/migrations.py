"""
数据库版本迁移模块

在启动时自动检查并更新数据库结构，确保旧版本的数据库文件可以继续使用。

迁移策略：
1. 每次启动都检查所有必需的列，不依赖版本号
2. 订单总成本改为读取时计算，旧库中的 orders.total_cost 列及其索引需要移除
3. 版本号用于追踪，但不作为迁移的唯一依据
"""

import logging
from typing import Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

# 当前数据库版本 - 每次有重要更新时递增
CURRENT_DB_VERSION = "1.1.0"


async def get_db_version(db: AsyncSession) -> Optional[str]:
    """获取数据库版本，如果没有版本表则返回 None"""
    try:
        result = await db.execute(text(
            "SELECT value FROM system_config WHERE key = 'db_version'"
        ))
        row = result.fetchone()
        return row[0] if row else None
    except SQLAlchemyError:
        await db.rollback()
        return None


async def set_db_version(db: AsyncSession, version: str) -> None:
    """设置数据库版本"""
    await db.execute(text(
        "INSERT OR REPLACE INTO system_config (key, value) VALUES ('db_version', :version)"
    ), {"version": version})
    await db.commit()


async def ensure_system_config_table(db: AsyncSession) -> None:
    """确保 system_config 表存在"""
    await db.execute(text("""
        CREATE TABLE IF NOT EXISTS system_config (
            key TEXT PRIMARY KEY,
            value TEXT,
            updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
        )
    """))
    await db.commit()


async def check_table_exists(db: AsyncSession, table: str) -> bool:
    """检查表是否存在"""
    result = await db.execute(text(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=:table"
    ), {"table": table})
    return result.fetchone() is not None


async def check_column_exists(db: AsyncSession, table: str, column: str) -> bool:
    """检查表中是否存在指定列"""
    result = await db.execute(text(f"PRAGMA table_info({table})"))
    columns = [row[1] for row in result.fetchall()]
    return column in columns


async def add_column_if_not_exists(
    db: AsyncSession,
    table: str,
    column: str,
    column_type: str,
    default: Optional[str] = None
) -> bool:
    """
    如果列不存在则添加

    返回值:
        True: 成功添加了列
        False: 表不存在或列已存在
    """
    if not await check_table_exists(db, table):
        logger.debug(f"表 {table} 不存在，跳过添加列 {column}")
        return False

    if await check_column_exists(db, table, column):
        return False

    sql = f"ALTER TABLE {table} ADD COLUMN {column} {column_type}"
    if default is not None:
        sql += f" DEFAULT {default}"
    await db.execute(text(sql))
    await db.commit()
    logger.info(f"[+] 已添加列: {table}.{column}")
    return True


# ========== 必需的数据库列定义 ==========
# 格式: (表名, 列名, 列类型, 默认值)
# 早期版本没有的列，老库升级时自动补上
REQUIRED_COLUMNS = [
    ("orders", "image_url", "VARCHAR(500)", None),
    ("orders", "shipping_fee", "DECIMAL(15,2)", "0"),
    ("inventory", "purchase_amount_cny", "DECIMAL(15,2)", "0"),
    ("order_details", "notes", "TEXT", None),
]

# 已废弃的列: (表名, 列名, 依赖该列的索引)
LEGACY_COLUMNS = [
    ("orders", "total_cost", ["idx_orders_cost_time"]),
]


async def ensure_all_columns(db: AsyncSession) -> dict:
    """
    确保所有必需的列都存在
    每次启动都会检查，不依赖版本号
    """
    result = {
        "checked": 0,
        "added": 0,
        "columns_added": []
    }

    for table, column, col_type, default in REQUIRED_COLUMNS:
        result["checked"] += 1
        if await add_column_if_not_exists(db, table, column, col_type, default):
            result["added"] += 1
            result["columns_added"].append(f"{table}.{column}")

    return result


async def drop_legacy_columns(db: AsyncSession) -> list:
    """
    移除已废弃的列（先删依赖的索引，SQLite 3.35+ 支持 DROP COLUMN）

    订单总成本由有效明细实时求和，不再存储。
    """
    dropped = []
    for table, column, indexes in LEGACY_COLUMNS:
        if not await check_table_exists(db, table):
            continue
        if not await check_column_exists(db, table, column):
            continue

        for index in indexes:
            await db.execute(text(f"DROP INDEX IF EXISTS {index}"))
        await db.execute(text(f"ALTER TABLE {table} DROP COLUMN {column}"))
        await db.commit()
        logger.info(f"[-] 已移除废弃列: {table}.{column}")
        dropped.append(f"{table}.{column}")

    return dropped


async def run_migrations(db: AsyncSession) -> dict:
    """
    运行数据库迁移

    单个步骤失败只记录错误，不阻止应用启动。
    """
    result = {
        "old_version": None,
        "new_version": CURRENT_DB_VERSION,
        "columns_added": [],
        "columns_dropped": [],
        "errors": []
    }

    try:
        await ensure_system_config_table(db)

        current_version = await get_db_version(db)
        result["old_version"] = current_version
        logger.info(f"数据库版本检查: {current_version or '未知'} -> {CURRENT_DB_VERSION}")

        # 无论版本号是什么，都检查所有必需列
        column_result = await ensure_all_columns(db)
        result["columns_added"] = column_result["columns_added"]

        result["columns_dropped"] = await drop_legacy_columns(db)

        if not result["columns_added"] and not result["columns_dropped"]:
            logger.info("数据库结构完整，无需更新")

        if current_version != CURRENT_DB_VERSION:
            await set_db_version(db, CURRENT_DB_VERSION)
            logger.info(f"数据库版本已更新为: {CURRENT_DB_VERSION}")

    except SQLAlchemyError as e:
        await db.rollback()
        error_msg = f"数据库迁移出错: {e}"
        logger.error(error_msg)
        result["errors"].append(error_msg)

    return result
