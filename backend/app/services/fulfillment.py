"""
订单履约引擎 - 订单明细对库存批次的出库与归还

明细状态：
- ACTIVE：明细存在，已从批次扣减库存
- DELETED：明细已软删除，库存已归还

每个写操作都在一个事务里完成（atomic）。出库和归还用一条带条件的 UPDATE
（stock_quantity = stock_quantity ± 数量，出库附带 stock_quantity >= 数量）在数据库里完成，
并发请求之间不会丢失扣减；批次行另外用 SELECT ... FOR UPDATE 锁定（SQLite 下无效）。
库存不足或引用不存在时整个操作回滚，任何批次的库存都不会只改一半。
订单总成本不落库，读取时由有效明细的 subtotal_cost 求和。
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AlreadyExistsError, InsufficientStockError, InvalidArgumentError, NotFoundError,
)
from app.core.logging_config import get_logger
from app.models import Inventory, Order, OrderDetail, Product
from app.schemas.order import (
    OrderCreate, OrderDetailCreate, OrderDetailResponse, OrderDetailUpdate,
    OrderLineBase, OrderResponse, OrderUpdate, OrderWithDetailsResponse,
)
from app.services.conversion import Number, quantize_money, to_decimal
from app.services.ledger import (
    active, atomic, exists_active, get_active_or_404, including_deleted, raise_for_integrity_error,
)

logger = get_logger(__name__)


def compute_subtotal_cost(unit_cost: Number, quantity: int, packaging_cost: Number, other_cost: Number) -> Decimal:
    """小计成本 = 批次单位成本 × 数量 + 包装成本 + 其他成本"""
    return quantize_money(
        to_decimal(unit_cost) * quantity + to_decimal(packaging_cost or 0) + to_decimal(other_cost or 0)
    )


def build_order_detail_response(detail: OrderDetail, product_name: Optional[str] = "") -> OrderDetailResponse:
    return OrderDetailResponse(
        id=detail.id,
        order_id=detail.order_id,
        inventory_id=detail.inventory_id,
        product_id=detail.product_id,
        product_name=product_name or "",
        unit_price=float(detail.unit_price),
        quantity=detail.quantity,
        packaging_cost=float(detail.packaging_cost),
        other_cost=float(detail.other_cost),
        subtotal_cost=float(detail.subtotal_cost),
        notes=detail.notes,
        state=detail.state.value,
        created_at=detail.created_at,
        updated_at=detail.updated_at,
    )


def build_order_response(order: Order, total_cost: Number = 0, details_count: int = 0) -> OrderResponse:
    total = quantize_money(total_cost or 0)
    revenue = to_decimal(order.revenue or 0)
    return OrderResponse(
        id=order.id,
        order_no=order.order_no,
        name=order.name or "",
        image_url=order.image_url,
        revenue=float(revenue),
        shipping_fee=float(order.shipping_fee or 0),
        total_cost=float(total),
        profit=float(revenue - total),
        details_count=details_count,
        transaction_time=order.transaction_time,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def _order_totals_subquery():
    """每个订单的有效明细成本合计和明细数"""
    return (
        select(
            OrderDetail.order_id.label("order_id"),
            func.sum(OrderDetail.subtotal_cost).label("total_cost"),
            func.count(OrderDetail.id).label("details_count"),
        )
        .where(OrderDetail.is_deleted == False)  # noqa: E712
        .group_by(OrderDetail.order_id)
        .subquery()
    )


class OrderFulfillmentEngine:
    """订单及订单明细的增删改查，负责维护批次库存"""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== 库存 ====================

    async def _lock_lot(self, inventory_id: int) -> Inventory:
        """锁定一个有效批次（不存在或已删除抛 NotFoundError）"""
        return await get_active_or_404(self.db, Inventory, inventory_id, "库存", for_update=True)

    async def _lock_lot_any(self, inventory_id: int) -> Inventory:
        """锁定明细原来引用的批次（归还库存用，不看删除标记）"""
        result = await self.db.execute(
            including_deleted(Inventory).where(Inventory.id == inventory_id).with_for_update()
        )
        lot = result.scalar_one_or_none()
        if lot is None:
            raise NotFoundError(f"库存不存在 (ID: {inventory_id})", ctx={"id": inventory_id})
        return lot

    async def _move_stock(self, lot: Inventory, delta: int, *conditions) -> bool:
        """
        在数据库里原子地改库存：stock_quantity = stock_quantity + delta

        条件不满足时不更新，返回 False。执行后重新读取批次库存。
        """
        result = await self.db.execute(
            update(Inventory)
            .where(Inventory.id == lot.id, *conditions)
            .values(stock_quantity=Inventory.stock_quantity + delta)
            .execution_options(synchronize_session=False)
        )
        await self.db.refresh(lot, attribute_names=["stock_quantity", "updated_at"])
        return result.rowcount > 0

    async def _take(self, lot: Inventory, quantity: int) -> None:
        if not await self._move_stock(lot, -quantity, Inventory.stock_quantity >= quantity):
            logger.warning(f"批次 {lot.id} 库存不足: 可用 {lot.stock_quantity}, 需要 {quantity}")
            raise InsufficientStockError(lot.id, lot.stock_quantity, quantity, product_id=lot.product_id)
        logger.info(f"批次 {lot.id} 出库 {quantity}, 剩余 {lot.stock_quantity}")

    async def _give_back(self, lot: Inventory, quantity: int) -> None:
        await self._move_stock(lot, quantity)
        logger.info(f"批次 {lot.id} 归还 {quantity}, 剩余 {lot.stock_quantity}")

    # ==================== 明细 ====================

    async def _check_line(self, line: OrderLineBase) -> Tuple[Inventory, Product]:
        if line.quantity is None or line.quantity <= 0:
            raise InvalidArgumentError("数量必须大于0", ctx={"quantity": line.quantity})
        lot = await self._lock_lot(line.inventory_id)
        product = await get_active_or_404(self.db, Product, line.product_id, "商品")
        if lot.product_id != line.product_id:
            raise InvalidArgumentError(
                f"商品 ID {line.product_id} 与库存批次 {lot.id} 的商品不一致",
                ctx={"inventory_id": lot.id, "lot_product_id": lot.product_id, "product_id": line.product_id},
            )
        return lot, product

    def _fill_line(self, detail: OrderDetail, line: OrderLineBase, lot: Inventory) -> None:
        detail.inventory_id = lot.id
        detail.product_id = line.product_id
        detail.unit_price = quantize_money(line.unit_price or 0)
        detail.quantity = line.quantity
        detail.packaging_cost = quantize_money(line.packaging_cost or 0)
        detail.other_cost = quantize_money(line.other_cost or 0)
        detail.subtotal_cost = compute_subtotal_cost(
            lot.unit_cost, line.quantity, detail.packaging_cost, detail.other_cost
        )
        detail.notes = line.notes

    async def _add_line(self, order_id: int, line: OrderLineBase) -> Tuple[OrderDetail, Product]:
        lot, product = await self._check_line(line)
        await self._take(lot, line.quantity)
        detail = OrderDetail(order_id=order_id)
        self._fill_line(detail, line, lot)
        self.db.add(detail)
        await self.db.flush()
        return detail, product

    # ==================== 订单 ====================

    async def _ensure_order_no_free(self, order_no: str, exclude_id: Optional[int] = None) -> None:
        if await exists_active(self.db, Order, Order.order_no == order_no, exclude_id=exclude_id):
            raise AlreadyExistsError(f"订单号 '{order_no}' 已存在", ctx={"order_no": order_no})

    async def _flush_order(self, order_no: str) -> None:
        try:
            await self.db.flush()
        except IntegrityError as e:
            raise_for_integrity_error(e, f"订单号 '{order_no}' 已存在")

    async def _totals(self, order_id: int) -> Tuple[Decimal, int]:
        result = await self.db.execute(
            select(
                func.coalesce(func.sum(OrderDetail.subtotal_cost), 0),
                func.count(OrderDetail.id),
            ).where(
                OrderDetail.order_id == order_id,
                OrderDetail.is_deleted == False,  # noqa: E712
            )
        )
        total, count = result.one()
        return quantize_money(total or 0), count or 0

    async def _details_of(self, order_id: int) -> List[OrderDetailResponse]:
        result = await self.db.execute(
            select(OrderDetail, Product.name)
            .join(Product, Product.id == OrderDetail.product_id)
            .where(
                OrderDetail.order_id == order_id,
                OrderDetail.is_deleted == False,  # noqa: E712
            )
            .order_by(OrderDetail.id)
        )
        return [build_order_detail_response(d, name) for d, name in result.all()]

    async def _order_view(self, order: Order) -> OrderWithDetailsResponse:
        total, count = await self._totals(order.id)
        base = build_order_response(order, total, count)
        return OrderWithDetailsResponse(**base.model_dump(), details=await self._details_of(order.id))

    async def create_order_with_lines(self, data: OrderCreate) -> OrderWithDetailsResponse:
        """创建订单及其明细，逐条扣减批次库存；任何一条失败整单回滚"""
        async with atomic(self.db):
            await self._ensure_order_no_free(data.order_no)
            order = Order(
                order_no=data.order_no,
                name=data.name or "",
                image_url=data.image_url,
                revenue=quantize_money(data.revenue or 0),
                shipping_fee=quantize_money(data.shipping_fee or 0),
                transaction_time=data.transaction_time,
            )
            self.db.add(order)
            await self._flush_order(data.order_no)

            for line in data.details:
                await self._add_line(order.id, line)

            view = await self._order_view(order)
        logger.info(
            f"创建订单 {order.order_no} (ID: {order.id}), 明细 {view.details_count} 条, 总成本 {view.total_cost}"
        )
        return view

    async def create_order(self, data: OrderCreate) -> OrderWithDetailsResponse:
        """创建不带明细的订单（煤炉导入等），成本稍后通过明细补充"""
        return await self.create_order_with_lines(data.model_copy(update={"details": []}))

    async def update_order(self, order_id: int, data: OrderUpdate) -> OrderWithDetailsResponse:
        """只修改订单基本信息，不动明细和库存"""
        async with atomic(self.db):
            order = await get_active_or_404(self.db, Order, order_id, "订单")
            if data.order_no is not None and data.order_no != order.order_no:
                await self._ensure_order_no_free(data.order_no, exclude_id=order_id)
                order.order_no = data.order_no
            if data.name is not None:
                order.name = data.name
            if data.image_url is not None:
                order.image_url = data.image_url
            if data.revenue is not None:
                order.revenue = quantize_money(data.revenue)
            if data.shipping_fee is not None:
                order.shipping_fee = quantize_money(data.shipping_fee)
            if data.transaction_time is not None:
                order.transaction_time = data.transaction_time
            await self._flush_order(order.order_no)
            view = await self._order_view(order)
        return view

    async def delete_order(self, order_id: int) -> None:
        """删除订单：归还所有有效明细的库存，软删除明细和订单"""
        async with atomic(self.db):
            order = await get_active_or_404(self.db, Order, order_id, "订单")
            result = await self.db.execute(
                active(OrderDetail).where(OrderDetail.order_id == order_id).with_for_update()
            )
            details = result.scalars().all()
            for detail in details:
                lot = await self._lock_lot_any(detail.inventory_id)
                await self._give_back(lot, detail.quantity)
                detail.is_deleted = True
            order.is_deleted = True
        logger.info(f"删除订单 {order.order_no} (ID: {order_id}), 归还明细 {len(details)} 条")

    # ==================== 订单明细 ====================

    async def create_order_detail(self, data: OrderDetailCreate) -> OrderDetailResponse:
        """向已有订单追加一条明细"""
        async with atomic(self.db):
            await get_active_or_404(self.db, Order, data.order_id, "订单")
            detail, product = await self._add_line(data.order_id, data)
            view = build_order_detail_response(detail, product.name)
        logger.info(f"订单 {data.order_id} 新增明细 {detail.id}: 批次 {detail.inventory_id} x {detail.quantity}")
        return view

    async def update_order_detail(self, detail_id: int, data: OrderDetailUpdate) -> OrderDetailResponse:
        """
        修改明细：先归还原批次，再从新批次（可能是同一个）扣减

        新批次库存不足时整体回滚，原批次的归还也不会生效。
        """
        async with atomic(self.db):
            detail = await get_active_or_404(self.db, OrderDetail, detail_id, "订单明细", for_update=True)
            if data.quantity is None or data.quantity <= 0:
                raise InvalidArgumentError("数量必须大于0", ctx={"quantity": data.quantity})

            old_lot = await self._lock_lot_any(detail.inventory_id)
            await self._give_back(old_lot, detail.quantity)

            new_lot, product = await self._check_line(data)
            await self._take(new_lot, data.quantity)
            self._fill_line(detail, data, new_lot)
            await self.db.flush()
            view = build_order_detail_response(detail, product.name)
        logger.info(
            f"修改明细 {detail_id}: 批次 {old_lot.id} -> {new_lot.id}, 数量 {data.quantity}, 小计 {view.subtotal_cost}"
        )
        return view

    async def delete_order_detail(self, detail_id: int) -> None:
        """删除明细并归还库存"""
        async with atomic(self.db):
            detail = await get_active_or_404(self.db, OrderDetail, detail_id, "订单明细", for_update=True)
            lot = await self._lock_lot_any(detail.inventory_id)
            await self._give_back(lot, detail.quantity)
            detail.is_deleted = True
        logger.info(f"删除明细 {detail_id}, 批次 {detail.inventory_id} 归还 {detail.quantity}")

    # ==================== 查询 ====================

    async def list_orders(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[OrderResponse]:
        """订单列表（按成交时间倒序），总成本实时汇总"""
        totals = _order_totals_subquery()
        stmt = (
            select(Order, totals.c.total_cost, totals.c.details_count)
            .outerjoin(totals, totals.c.order_id == Order.id)
            .where(Order.is_deleted == False)  # noqa: E712
        )
        if start_date:
            stmt = stmt.where(Order.transaction_time >= start_date)
        if end_date:
            stmt = stmt.where(Order.transaction_time <= end_date)
        stmt = stmt.order_by(Order.transaction_time.desc(), Order.id.desc())

        result = await self.db.execute(stmt)
        return [
            build_order_response(order, total or 0, count or 0)
            for order, total, count in result.all()
        ]

    async def get_order(self, order_id: int) -> OrderWithDetailsResponse:
        order = await get_active_or_404(self.db, Order, order_id, "订单")
        return await self._order_view(order)

    async def list_order_details(self, order_id: int) -> List[OrderDetailResponse]:
        await get_active_or_404(self.db, Order, order_id, "订单")
        return await self._details_of(order_id)

    async def get_order_detail(self, detail_id: int) -> OrderDetailResponse:
        result = await self.db.execute(
            select(OrderDetail, Product.name)
            .join(Product, Product.id == OrderDetail.product_id)
            .where(
                OrderDetail.id == detail_id,
                OrderDetail.is_deleted == False,  # noqa: E712
            )
        )
        row = result.first()
        if row is None:
            raise NotFoundError(f"订单明细不存在 (ID: {detail_id})", ctx={"id": detail_id})
        detail, product_name = row
        return build_order_detail_response(detail, product_name)

    async def existing_order_numbers(self, order_nos: List[str]) -> Dict[str, int]:
        """已存在（未删除）的订单号 → 订单ID"""
        if not order_nos:
            return {}
        result = await self.db.execute(
            select(Order.order_no, Order.id).where(
                Order.order_no.in_(order_nos),
                Order.is_deleted == False,  # noqa: E712
            )
        )
        return {order_no: order_id for order_no, order_id in result.all()}
