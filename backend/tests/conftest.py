"""
测试公共夹具

每个测试一个内存 SQLite（aiosqlite + StaticPool，所有会话共用同一个连接），
服务层测试直接拿 AsyncSession，接口测试走 httpx.AsyncClient + ASGITransport 并覆盖 get_db。
"""

import os

os.environ.setdefault("LOG_TO_FILE", "false")

from dataclasses import dataclass  # noqa: E402
from datetime import datetime  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import app.models  # noqa: E402,F401
from app.db.base import Base  # noqa: E402
from app.db.session import enable_sqlite_foreign_keys, make_session_factory  # noqa: E402
from app.schemas.category import CategoryCreate  # noqa: E402
from app.schemas.inventory import InventoryCreate  # noqa: E402
from app.schemas.product import ProductCreate  # noqa: E402
from app.schemas.purchase import PurchaseCreate  # noqa: E402
from app.schemas.supplier import SupplierCreate  # noqa: E402
from app.services.allocation import InventoryAllocationEngine  # noqa: E402
from app.services.catalog import CategoryService, ProductService, PurchaseService, SupplierService  # noqa: E402


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def file_session_factory(tmp_path):
    """文件数据库，每个会话各用一个连接（并发场景）"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'inventory.db'}")
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield make_session_factory(engine)
    await engine.dispose()


@pytest.fixture
async def client(session_factory):
    from app.core.deps import get_db
    from app.main import app

    async def _override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@dataclass
class Catalog:
    supplier_id: int
    category_id: int
    product_id: int
    other_product_id: int
    purchase_id: int


async def seed_catalog(db) -> Catalog:
    """供应商 S1、分类、商品 P / Q、进货单 P1（1000 CNY，汇率 20）"""
    supplier = await SupplierService(db).create(SupplierCreate(name="S1"))
    category = await CategoryService(db).create(CategoryCreate(name="手办"))
    product = await ProductService(db).create(ProductCreate(category_id=category.id, name="P"))
    other = await ProductService(db).create(ProductCreate(category_id=category.id, name="Q"))
    purchase = await PurchaseService(db).create(PurchaseCreate(
        supplier_id=supplier.id,
        purchase_no="P1",
        purchase_date=datetime(2026, 10, 1),
        total_amount=Decimal("1000"),
        currency_type="cny",
        exchange_rate=Decimal("20"),
    ))
    return Catalog(
        supplier_id=supplier.id,
        category_id=category.id,
        product_id=product.id,
        other_product_id=other.id,
        purchase_id=purchase.id,
    )


@pytest.fixture
async def catalog(db) -> Catalog:
    return await seed_catalog(db)


@pytest.fixture
async def file_catalog(file_session_factory) -> Catalog:
    async with file_session_factory() as db:
        return await seed_catalog(db)


@pytest.fixture
def make_lot(db, catalog):
    """创建批次的快捷方式，默认 商品P / 进货单P1 / 1000 CNY / 50 件"""

    async def _make(amount="1000", quantity=50, stock=None, product_id=None):
        return await InventoryAllocationEngine(db).create_lot(InventoryCreate(
            product_id=product_id or catalog.product_id,
            purchase_id=catalog.purchase_id,
            purchase_amount_cny=Decimal(amount),
            purchase_quantity=quantity,
            stock_quantity=quantity if stock is None else stock,
        ))

    return _make
