"""API 路由聚合 - 单机版（无认证）"""
from fastapi import APIRouter

from app.api.api_v1.endpoints import (
    suppliers, categories, products, purchases, inventory, orders, dashboard
)

api_router = APIRouter()

# 基础资料
api_router.include_router(suppliers.router, prefix="/suppliers", tags=["供应商"])
api_router.include_router(categories.router, prefix="/categories", tags=["商品分类"])
api_router.include_router(products.router, prefix="/products", tags=["商品管理"])
api_router.include_router(purchases.router, prefix="/purchases", tags=["进货管理"])

# 库存与订单
api_router.include_router(inventory.router, prefix="/inventory", tags=["库存管理"])
api_router.include_router(orders.router, prefix="/orders", tags=["订单管理"])

# 统计
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["仪表盘"])
