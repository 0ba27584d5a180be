"""
库存分配引擎 - 把进货单的金额分配到各个库存批次

- 创建批次时按进货单汇率把原币金额换算成日元，并计算单位成本
- 批量创建在同一个事务里，任何一条失败整批回滚
- 批次被有效订单明细引用后（LotState.REFERENCED）不能再修改或删除
- 对账：批次日元金额之和 vs 进货单原币总额 × 汇率（只提供数据，不强制）
"""

from decimal import Decimal
from typing import Callable, List, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidArgumentError, NotFoundError, ReferencedError
from app.core.logging_config import get_logger
from app.models import Category, Inventory, LotState, OrderDetail, Product, Purchase
from app.schemas.inventory import (
    InventoryCreate, InventoryResponse, InventoryUpdate, ReconciliationResponse,
)
from app.services.conversion import convert_purchase_amount, expected_total_jpy, quantize_money
from app.services.ledger import (
    atomic, count_active_lines_for_lot, get_active, get_active_or_404,
)

logger = get_logger(__name__)

ConvertFn = Callable[..., Tuple[Decimal, Decimal]]

# 对账允许的误差（日元）
RECONCILIATION_TOLERANCE = Decimal("0.01")


def build_inventory_response(
    lot: Inventory,
    product_name: Optional[str] = "",
    category_name: Optional[str] = "",
    purchase_no: Optional[str] = "",
    is_referenced: bool = False,
) -> InventoryResponse:
    return InventoryResponse(
        id=lot.id,
        product_id=lot.product_id,
        product_name=product_name or "",
        category_name=category_name or "",
        purchase_id=lot.purchase_id,
        purchase_no=purchase_no or "",
        purchase_amount=float(lot.purchase_amount),
        purchase_amount_cny=float(lot.purchase_amount_cny),
        purchase_quantity=lot.purchase_quantity,
        unit_cost=float(lot.unit_cost),
        stock_quantity=lot.stock_quantity,
        is_referenced=is_referenced,
        created_at=lot.created_at,
        updated_at=lot.updated_at,
    )


class InventoryAllocationEngine:
    """库存批次的创建、修改、删除和对账"""

    def __init__(self, db: AsyncSession, convert: ConvertFn = convert_purchase_amount):
        self.db = db
        self.convert = convert

    # ==================== 查询 ====================

    def _lot_view_query(self):
        refs = (
            select(OrderDetail.inventory_id, func.count(OrderDetail.id).label("refs"))
            .where(OrderDetail.is_deleted == False)  # noqa: E712
            .group_by(OrderDetail.inventory_id)
            .subquery()
        )
        return (
            select(
                Inventory,
                Product.name,
                Category.name,
                Purchase.purchase_no,
                func.coalesce(refs.c.refs, 0),
            )
            .join(Product, Product.id == Inventory.product_id)
            .outerjoin(Category, Category.id == Product.category_id)
            .join(Purchase, Purchase.id == Inventory.purchase_id)
            .outerjoin(refs, refs.c.inventory_id == Inventory.id)
            .where(Inventory.is_deleted == False)  # noqa: E712
        )

    async def list_lots(self, purchase_id: Optional[int] = None) -> List[InventoryResponse]:
        """批次列表（可按进货单过滤），按创建时间倒序"""
        stmt = self._lot_view_query()
        if purchase_id is not None:
            stmt = stmt.where(Inventory.purchase_id == purchase_id)
        stmt = stmt.order_by(Inventory.created_at.desc(), Inventory.id.desc())

        result = await self.db.execute(stmt)
        return [
            build_inventory_response(lot, product_name, category_name, purchase_no, refs > 0)
            for lot, product_name, category_name, purchase_no, refs in result.all()
        ]

    async def get_lot(self, inventory_id: int) -> InventoryResponse:
        result = await self.db.execute(self._lot_view_query().where(Inventory.id == inventory_id))
        row = result.first()
        if row is None:
            raise NotFoundError(f"库存不存在 (ID: {inventory_id})", ctx={"id": inventory_id})
        lot, product_name, category_name, purchase_no, refs = row
        return build_inventory_response(lot, product_name, category_name, purchase_no, refs > 0)

    async def lot_state(self, inventory_id: int) -> LotState:
        return LotState.from_reference_count(await count_active_lines_for_lot(self.db, inventory_id))

    # ==================== 校验 ====================

    async def ensure_lot_mutable(self, lot: Inventory) -> None:
        """被有效订单明细引用的批次不可修改/删除"""
        refs = await count_active_lines_for_lot(self.db, lot.id)
        if LotState.from_reference_count(refs) is LotState.REFERENCED:
            logger.warning(f"批次 {lot.id} 已被 {refs} 条订单明细引用，拒绝修改")
            raise ReferencedError(
                f"库存批次 {lot.id} 已被订单引用，不能修改或删除",
                ctx={"inventory_id": lot.id, "references": refs},
            )

    async def _validate(self, data: InventoryCreate) -> Tuple[Product, Purchase]:
        product = await get_active_or_404(self.db, Product, data.product_id, "商品")
        purchase = await get_active_or_404(self.db, Purchase, data.purchase_id, "进货单")
        if data.purchase_quantity is None or data.purchase_quantity <= 0:
            raise InvalidArgumentError("进货数量必须大于0", ctx={"purchase_quantity": data.purchase_quantity})
        if data.stock_quantity is None or data.stock_quantity < 0:
            raise InvalidArgumentError("库存数量不能为负数", ctx={"stock_quantity": data.stock_quantity})
        return product, purchase

    def _apply(self, lot: Inventory, data: InventoryCreate, purchase: Purchase) -> None:
        """按进货单汇率换算金额并写入批次"""
        purchase_amount, unit_cost = self.convert(
            data.purchase_amount_cny, purchase.exchange_rate, data.purchase_quantity
        )
        lot.product_id = data.product_id
        lot.purchase_id = data.purchase_id
        lot.purchase_amount_cny = quantize_money(data.purchase_amount_cny)
        lot.purchase_amount = purchase_amount
        lot.purchase_quantity = data.purchase_quantity
        lot.unit_cost = unit_cost
        lot.stock_quantity = data.stock_quantity

    async def _create_in_tx(self, data: InventoryCreate) -> InventoryResponse:
        product, purchase = await self._validate(data)
        lot = Inventory()
        self._apply(lot, data, purchase)
        self.db.add(lot)
        await self.db.flush()

        category = await self.db.execute(select(Category.name).where(Category.id == product.category_id))
        return build_inventory_response(lot, product.name, category.scalar(), purchase.purchase_no, False)

    # ==================== 写操作 ====================

    async def create_lot(self, data: InventoryCreate) -> InventoryResponse:
        async with atomic(self.db):
            view = await self._create_in_tx(data)
        logger.info(
            f"创建库存批次 {view.id}: 商品 {view.product_id} / 进货单 {view.purchase_no}, "
            f"数量 {view.purchase_quantity}, 单位成本 {view.unit_cost}"
        )
        return view

    async def batch_create_lots(self, items: Sequence[InventoryCreate]) -> List[InventoryResponse]:
        """批量创建批次（同一事务，任何一条失败整批回滚）"""
        if not items:
            raise InvalidArgumentError("批次列表不能为空")

        views: List[InventoryResponse] = []
        async with atomic(self.db):
            for index, item in enumerate(items):
                try:
                    views.append(await self._create_in_tx(item))
                except Exception:
                    logger.warning(f"批量创建批次在第 {index + 1} 条失败，整批回滚")
                    raise
        logger.info(f"批量创建库存批次 {len(views)} 条")
        return views

    async def update_lot(self, inventory_id: int, data: InventoryUpdate) -> InventoryResponse:
        async with atomic(self.db):
            lot = await get_active_or_404(self.db, Inventory, inventory_id, "库存", for_update=True)
            await self.ensure_lot_mutable(lot)
            product, purchase = await self._validate(data)
            self._apply(lot, data, purchase)
            await self.db.flush()

            category = await self.db.execute(select(Category.name).where(Category.id == product.category_id))
            view = build_inventory_response(lot, product.name, category.scalar(), purchase.purchase_no, False)
        logger.info(f"修改库存批次 {inventory_id}: 数量 {lot.purchase_quantity}, 单位成本 {lot.unit_cost}")
        return view

    async def delete_lot(self, inventory_id: int) -> None:
        async with atomic(self.db):
            lot = await get_active_or_404(self.db, Inventory, inventory_id, "库存", for_update=True)
            await self.ensure_lot_mutable(lot)
            lot.is_deleted = True
        logger.info(f"删除库存批次 {inventory_id}")

    # ==================== 对账 ====================

    async def get_purchase_total_allocated(self, purchase_id: int) -> Decimal:
        """进货单下所有有效批次的日元金额之和"""
        result = await self.db.execute(
            select(func.coalesce(func.sum(Inventory.purchase_amount), 0)).where(
                Inventory.purchase_id == purchase_id,
                Inventory.is_deleted == False,  # noqa: E712
            )
        )
        return quantize_money(result.scalar() or 0)

    async def get_expected_total_jpy(self, purchase_id: int) -> Decimal:
        """进货单日元总额（进货单不存在时为 0）"""
        purchase = await get_active(self.db, Purchase, purchase_id)
        if purchase is None:
            return quantize_money(0)
        return expected_total_jpy(purchase.total_amount, purchase.exchange_rate)

    async def get_reconciliation(self, purchase_id: int) -> ReconciliationResponse:
        await get_active_or_404(self.db, Purchase, purchase_id, "进货单")
        allocated = await self.get_purchase_total_allocated(purchase_id)
        expected = await self.get_expected_total_jpy(purchase_id)
        difference = expected - allocated
        return ReconciliationResponse(
            purchase_id=purchase_id,
            allocated_jpy=float(allocated),
            expected_jpy=float(expected),
            difference=float(difference),
            is_balanced=abs(difference) <= RECONCILIATION_TOLERANCE,
        )
