"""库存分配引擎"""

from decimal import Decimal

import pytest
from sqlalchemy import func, select

from app.core.exceptions import InvalidArgumentError, NotFoundError, ReferencedError
from app.models import Inventory, LotState
from app.schemas.inventory import InventoryCreate, InventoryUpdate
from app.schemas.order import OrderCreate, OrderLineCreate
from app.services.allocation import InventoryAllocationEngine
from app.services.fulfillment import OrderFulfillmentEngine
from datetime import datetime


def lot_input(catalog, **overrides):
    values = dict(
        product_id=catalog.product_id,
        purchase_id=catalog.purchase_id,
        purchase_amount_cny=Decimal("1000"),
        purchase_quantity=50,
        stock_quantity=50,
    )
    values.update(overrides)
    return InventoryCreate(**values)


async def count_lots(db) -> int:
    return await db.scalar(
        select(func.count(Inventory.id)).where(Inventory.is_deleted == False)  # noqa: E712
    )


class TestCreateLot:
    """创建批次时按进货单汇率换算"""

    async def test_unit_cost_from_purchase_rate(self, db, catalog):
        lot = await InventoryAllocationEngine(db).create_lot(lot_input(catalog))

        assert lot.purchase_amount == 20000.0
        assert lot.unit_cost == 400.0
        assert lot.stock_quantity == 50
        assert lot.purchase_no == "P1"
        assert lot.product_name == "P"
        assert lot.category_name == "手办"
        assert lot.is_referenced is False

    async def test_uses_injected_conversion(self, db, catalog):
        calls = []

        def fake_convert(amount, rate, quantity):
            calls.append((amount, rate, quantity))
            return Decimal("1.00"), Decimal("0.02")

        lot = await InventoryAllocationEngine(db, convert=fake_convert).create_lot(lot_input(catalog))

        assert calls == [(Decimal("1000"), Decimal("20.0000"), 50)]
        assert lot.unit_cost == 0.02

    async def test_missing_product(self, db, catalog):
        with pytest.raises(NotFoundError):
            await InventoryAllocationEngine(db).create_lot(lot_input(catalog, product_id=9999))

    async def test_missing_purchase(self, db, catalog):
        with pytest.raises(NotFoundError):
            await InventoryAllocationEngine(db).create_lot(lot_input(catalog, purchase_id=9999))

    @pytest.mark.parametrize("quantity", [0, -5])
    async def test_non_positive_purchase_quantity(self, db, catalog, quantity):
        with pytest.raises(InvalidArgumentError):
            await InventoryAllocationEngine(db).create_lot(
                lot_input(catalog, purchase_quantity=quantity, stock_quantity=0)
            )
        assert await count_lots(db) == 0

    async def test_negative_stock(self, db, catalog):
        with pytest.raises(InvalidArgumentError):
            await InventoryAllocationEngine(db).create_lot(lot_input(catalog, stock_quantity=-1))

    async def test_stock_above_purchase_quantity_allowed(self, db, catalog):
        """直接录入的库存可以超过进货数量（盘盈等）"""
        lot = await InventoryAllocationEngine(db).create_lot(
            lot_input(catalog, purchase_quantity=10, purchase_amount_cny=Decimal("200"), stock_quantity=12)
        )

        assert lot.stock_quantity == 12
        assert lot.unit_cost == 400.0
        assert await count_lots(db) == 1


class TestBatchCreateLots:
    """批量创建是一个事务"""

    async def test_all_created(self, db, catalog):
        lots = await InventoryAllocationEngine(db).batch_create_lots([
            lot_input(catalog, purchase_amount_cny=Decimal("600"), purchase_quantity=30, stock_quantity=30),
            lot_input(catalog, product_id=catalog.other_product_id,
                      purchase_amount_cny=Decimal("400"), purchase_quantity=20, stock_quantity=20),
        ])
        assert [lot.unit_cost for lot in lots] == [400.0, 400.0]
        assert await count_lots(db) == 2

    async def test_failure_rolls_back_whole_batch(self, db, catalog):
        with pytest.raises(NotFoundError):
            await InventoryAllocationEngine(db).batch_create_lots([
                lot_input(catalog),
                lot_input(catalog, product_id=9999),
            ])
        assert await count_lots(db) == 0

    async def test_empty_batch(self, db, catalog):
        with pytest.raises(InvalidArgumentError):
            await InventoryAllocationEngine(db).batch_create_lots([])


class TestReferencedLot:
    """被订单明细引用的批次不可修改/删除"""

    async def _reference(self, db, catalog, lot_id):
        order = await OrderFulfillmentEngine(db).create_order_with_lines(OrderCreate(
            order_no="O1",
            transaction_time=datetime(2026, 10, 2),
            details=[OrderLineCreate(inventory_id=lot_id, product_id=catalog.product_id, quantity=1)],
        ))
        return order.details[0].id

    async def test_update_and_delete_rejected_while_referenced(self, db, catalog, make_lot):
        lot = await make_lot()
        engine = InventoryAllocationEngine(db)
        detail_id = await self._reference(db, catalog, lot.id)

        assert await engine.lot_state(lot.id) is LotState.REFERENCED
        assert (await engine.get_lot(lot.id)).is_referenced is True

        with pytest.raises(ReferencedError):
            await engine.update_lot(lot.id, InventoryUpdate(**lot_input(catalog, purchase_quantity=60).model_dump()))
        with pytest.raises(ReferencedError):
            await engine.delete_lot(lot.id)

        # 删掉引用的明细后可以删除批次
        await OrderFulfillmentEngine(db).delete_order_detail(detail_id)
        assert await engine.lot_state(lot.id) is LotState.UNREFERENCED
        await engine.delete_lot(lot.id)
        assert await count_lots(db) == 0

    async def test_update_unreferenced_recomputes(self, db, catalog, make_lot):
        lot = await make_lot()
        updated = await InventoryAllocationEngine(db).update_lot(
            lot.id,
            InventoryUpdate(**lot_input(catalog, purchase_amount_cny=Decimal("500"),
                                        purchase_quantity=20, stock_quantity=20).model_dump()),
        )
        assert updated.purchase_amount == 10000.0
        assert updated.unit_cost == 500.0
        assert updated.stock_quantity == 20

    async def test_update_missing_lot(self, db, catalog):
        with pytest.raises(NotFoundError):
            await InventoryAllocationEngine(db).update_lot(9999, InventoryUpdate(**lot_input(catalog).model_dump()))


class TestReconciliation:
    """批次日元金额合计 vs 进货单日元总额"""

    async def test_totals(self, db, catalog, make_lot):
        engine = InventoryAllocationEngine(db)
        await make_lot(amount="600", quantity=30)

        assert await engine.get_purchase_total_allocated(catalog.purchase_id) == Decimal("12000.00")
        assert await engine.get_expected_total_jpy(catalog.purchase_id) == Decimal("20000.00")

        rec = await engine.get_reconciliation(catalog.purchase_id)
        assert rec.difference == 8000.0
        assert rec.is_balanced is False

        await make_lot(amount="400", quantity=20, product_id=catalog.other_product_id)
        rec = await engine.get_reconciliation(catalog.purchase_id)
        assert rec.allocated_jpy == 20000.0
        assert rec.is_balanced is True

    async def test_deleted_lots_not_counted(self, db, catalog, make_lot):
        engine = InventoryAllocationEngine(db)
        lot = await make_lot()
        await engine.delete_lot(lot.id)
        assert await engine.get_purchase_total_allocated(catalog.purchase_id) == Decimal("0.00")

    async def test_expected_total_for_missing_purchase_is_zero(self, db):
        assert await InventoryAllocationEngine(db).get_expected_total_jpy(9999) == Decimal("0.00")

    async def test_list_filtered_by_purchase(self, db, catalog, make_lot):
        await make_lot()
        engine = InventoryAllocationEngine(db)
        assert len(await engine.list_lots(purchase_id=catalog.purchase_id)) == 1
        assert await engine.list_lots(purchase_id=9999) == []
