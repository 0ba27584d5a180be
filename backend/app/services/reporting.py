"""
统计报表 - 仪表盘数据（只读）

- 库存总价值 = Σ(剩余库存 × 单位成本)，只统计有效批次
- 本月利润 = Σ(营业额 - 明细成本合计)，只统计本月有明细的订单
- 低库存 = 0 < 剩余库存 < LOW_STOCK_THRESHOLD 的批次数
- 待补充成本 = 没有有效明细的订单数
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.logging_config import get_logger
from app.models import Inventory, Order, OrderDetail
from app.schemas.dashboard import DashboardStats
from app.services.conversion import quantize_money, to_decimal

logger = get_logger(__name__)


def month_range(now: datetime) -> Tuple[datetime, datetime]:
    """当月 [月初, 下月初)"""
    start = datetime(now.year, now.month, 1)
    if now.month == 12:
        end = datetime(now.year + 1, 1, 1)
    else:
        end = datetime(now.year, now.month + 1, 1)
    return start, end


class AggregationReporter:

    def __init__(self, db: AsyncSession, low_stock_threshold: Optional[int] = None):
        self.db = db
        self.low_stock_threshold = low_stock_threshold or settings.LOW_STOCK_THRESHOLD

    async def total_inventory_value(self) -> Decimal:
        result = await self.db.execute(
            select(func.coalesce(func.sum(Inventory.stock_quantity * Inventory.unit_cost), 0))
            .where(Inventory.is_deleted == False)  # noqa: E712
        )
        return quantize_money(result.scalar() or 0)

    async def low_stock_count(self) -> int:
        result = await self.db.execute(
            select(func.count(Inventory.id)).where(
                Inventory.is_deleted == False,  # noqa: E712
                Inventory.stock_quantity > 0,
                Inventory.stock_quantity < self.low_stock_threshold,
            )
        )
        return result.scalar() or 0

    async def get_dashboard_stats(self, now: Optional[datetime] = None) -> DashboardStats:
        now = now or datetime.now()
        start, end = month_range(now)

        # 每个订单的有效明细成本合计
        line_totals = (
            select(
                OrderDetail.order_id.label("order_id"),
                func.sum(OrderDetail.subtotal_cost).label("cost"),
            )
            .where(OrderDetail.is_deleted == False)  # noqa: E712
            .group_by(OrderDetail.order_id)
            .subquery()
        )

        # 本月订单
        result = await self.db.execute(
            select(Order.revenue, line_totals.c.cost)
            .outerjoin(line_totals, line_totals.c.order_id == Order.id)
            .where(
                Order.is_deleted == False,  # noqa: E712
                Order.transaction_time >= start,
                Order.transaction_time < end,
            )
        )
        monthly_rows = result.all()
        monthly_profit = sum(
            (to_decimal(revenue or 0) - to_decimal(cost) for revenue, cost in monthly_rows if cost is not None),
            Decimal("0"),
        )

        total_orders = (await self.db.execute(
            select(func.count(Order.id)).where(Order.is_deleted == False)  # noqa: E712
        )).scalar() or 0

        orders_without_cost = (await self.db.execute(
            select(func.count(Order.id))
            .outerjoin(line_totals, line_totals.c.order_id == Order.id)
            .where(
                Order.is_deleted == False,  # noqa: E712
                line_totals.c.order_id.is_(None),
            )
        )).scalar() or 0

        stats = DashboardStats(
            total_inventory_value=float(await self.total_inventory_value()),
            monthly_profit=float(quantize_money(monthly_profit)),
            total_orders=total_orders,
            orders_without_cost=orders_without_cost,
            current_month=now.strftime("%Y年%m月"),
            low_stock_products_count=await self.low_stock_count(),
            monthly_orders=len(monthly_rows),
        )
        logger.debug(f"仪表盘统计: {stats.model_dump()}")
        return stats
