"""基础资料：唯一性（只在未删除记录中）与删除保护"""

from datetime import datetime
from decimal import Decimal

import pytest

from app.core.exceptions import AlreadyExistsError, NotFoundError, ReferencedError
from app.schemas.category import CategoryCreate, CategoryUpdate
from app.schemas.product import ProductCreate, ProductUpdate
from app.schemas.purchase import PurchaseCreate, PurchaseUpdate
from app.schemas.supplier import SupplierCreate, SupplierUpdate
from app.services.catalog import CategoryService, ProductService, PurchaseService, SupplierService


def purchase_input(supplier_id, purchase_no="P2", **extra):
    values = dict(
        supplier_id=supplier_id,
        purchase_no=purchase_no,
        purchase_date=datetime(2026, 10, 1),
        total_amount=Decimal("100"),
        exchange_rate=Decimal("21.5"),
    )
    values.update(extra)
    return PurchaseCreate(**values)


class TestUniqueness:
    """同名记录：未删除的冲突，已删除的不冲突"""

    async def test_supplier(self, db):
        service = SupplierService(db)
        first = await service.create(SupplierCreate(name="S1"))
        with pytest.raises(AlreadyExistsError):
            await service.create(SupplierCreate(name="S1"))

        await service.delete(first.id)
        again = await service.create(SupplierCreate(name="S1"))
        assert again.id != first.id

    async def test_category(self, db):
        service = CategoryService(db)
        first = await service.create(CategoryCreate(name="手办"))
        with pytest.raises(AlreadyExistsError):
            await service.create(CategoryCreate(name="手办"))
        await service.delete(first.id)
        await service.create(CategoryCreate(name="手办"))

    async def test_product(self, db, catalog):
        service = ProductService(db)
        with pytest.raises(AlreadyExistsError):
            await service.create(ProductCreate(category_id=catalog.category_id, name="P"))
        await service.delete(catalog.other_product_id)
        await service.create(ProductCreate(category_id=catalog.category_id, name="Q"))

    async def test_purchase(self, db, catalog):
        service = PurchaseService(db)
        with pytest.raises(AlreadyExistsError):
            await service.create(purchase_input(catalog.supplier_id, "P1"))
        await service.delete(catalog.purchase_id)
        await service.create(purchase_input(catalog.supplier_id, "P1"))

    async def test_rename_to_existing_name(self, db):
        service = SupplierService(db)
        await service.create(SupplierCreate(name="A"))
        b = await service.create(SupplierCreate(name="B"))
        with pytest.raises(AlreadyExistsError):
            await service.update(b.id, SupplierUpdate(name="A"))

    async def test_rename_keeps_own_name(self, db):
        service = CategoryService(db)
        c = await service.create(CategoryCreate(name="C"))
        assert (await service.update(c.id, CategoryUpdate(name="C"))).name == "C"


class TestReferences:

    async def test_product_needs_category(self, db):
        with pytest.raises(NotFoundError):
            await ProductService(db).create(ProductCreate(category_id=9999, name="X"))

    async def test_purchase_needs_supplier(self, db):
        with pytest.raises(NotFoundError):
            await PurchaseService(db).create(purchase_input(9999))

    async def test_category_with_products(self, db, catalog):
        with pytest.raises(ReferencedError):
            await CategoryService(db).delete(catalog.category_id)

    async def test_supplier_with_purchases(self, db, catalog):
        with pytest.raises(ReferencedError):
            await SupplierService(db).delete(catalog.supplier_id)

    async def test_purchase_with_lots(self, db, catalog, make_lot):
        await make_lot()
        with pytest.raises(ReferencedError):
            await PurchaseService(db).delete(catalog.purchase_id)

    async def test_product_with_lots(self, db, catalog, make_lot):
        await make_lot()
        with pytest.raises(ReferencedError):
            await ProductService(db).delete(catalog.product_id)

    async def test_deleted_rows_are_hidden(self, db, catalog):
        await ProductService(db).delete(catalog.other_product_id)
        with pytest.raises(NotFoundError):
            await ProductService(db).get(catalog.other_product_id)
        names = [p.name for p in await ProductService(db).list_all()]
        assert names == ["P"]


class TestPurchases:

    async def test_currency_normalised(self, db, catalog):
        purchase = await PurchaseService(db).get(catalog.purchase_id)
        assert purchase.currency_type == "CNY"
        assert purchase.exchange_rate == 20.0
        assert purchase.supplier_name == "S1"

    async def test_update(self, db, catalog):
        updated = await PurchaseService(db).update(
            catalog.purchase_id, PurchaseUpdate(exchange_rate=Decimal("19.87654"), total_amount=Decimal("1200")),
        )
        assert updated.exchange_rate == 19.8765
        assert updated.total_amount == 1200.0

    async def test_list_filters_and_sorting(self, db, catalog):
        service = PurchaseService(db)
        await service.create(purchase_input(catalog.supplier_id, "P2", total_amount=Decimal("50"),
                                            purchase_date=datetime(2026, 9, 1)))
        await service.create(purchase_input(catalog.supplier_id, "X3", total_amount=Decimal("5000"),
                                            purchase_date=datetime(2026, 10, 10)))

        assert [p.purchase_no for p in await service.list_all()] == ["X3", "P1", "P2"]
        assert [p.purchase_no for p in await service.list_all(sort_by="total_amount", sort_order="asc")] == [
            "P2", "P1", "X3",
        ]
        assert [p.purchase_no for p in await service.list_all(purchase_no="P")] == ["P1", "P2"]
        assert [p.purchase_no for p in await service.list_all(start_date=datetime(2026, 10, 1))] == ["X3", "P1"]
        assert await service.list_all(supplier_id=9999) == []
