"""仪表盘Schema"""

from pydantic import BaseModel


class DashboardStats(BaseModel):
    total_inventory_value: float
    monthly_profit: float
    total_orders: int
    orders_without_cost: int
    current_month: str
    low_stock_products_count: int
    monthly_orders: int
