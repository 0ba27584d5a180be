"""启动时的数据库结构检查"""

from sqlalchemy import text

from app.db.migrations import (
    CURRENT_DB_VERSION, add_column_if_not_exists, check_column_exists, get_db_version, run_migrations,
)


class TestRunMigrations:

    async def test_fresh_database(self, db):
        result = await run_migrations(db)

        assert result["old_version"] is None
        assert result["new_version"] == CURRENT_DB_VERSION
        assert result["columns_added"] == []
        assert result["columns_dropped"] == []
        assert result["errors"] == []
        assert await get_db_version(db) == CURRENT_DB_VERSION

    async def test_second_run_is_noop(self, db):
        await run_migrations(db)
        result = await run_migrations(db)

        assert result["old_version"] == CURRENT_DB_VERSION
        assert result["columns_dropped"] == []

    async def test_drops_stored_order_total(self, db):
        """旧库 orders.total_cost 及其索引被移除"""
        await db.execute(text("ALTER TABLE orders ADD COLUMN total_cost DECIMAL(15,2) DEFAULT 0"))
        await db.execute(text("CREATE INDEX idx_orders_cost_time ON orders (total_cost, transaction_time)"))
        await db.commit()

        result = await run_migrations(db)

        assert result["columns_dropped"] == ["orders.total_cost"]
        assert not await check_column_exists(db, "orders", "total_cost")
        index = await db.execute(text(
            "SELECT name FROM sqlite_master WHERE type='index' AND name='idx_orders_cost_time'"
        ))
        assert index.fetchone() is None


class TestAddColumn:

    async def test_missing_table_skipped(self, db):
        assert await add_column_if_not_exists(db, "no_such_table", "x", "TEXT") is False

    async def test_adds_once(self, db):
        assert await add_column_if_not_exists(db, "suppliers", "contact", "VARCHAR(100)") is True
        assert await add_column_if_not_exists(db, "suppliers", "contact", "VARCHAR(100)") is False
        assert await check_column_exists(db, "suppliers", "contact")
