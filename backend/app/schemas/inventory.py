"""库存批次Schema"""

from typing import List
from decimal import Decimal
from datetime import datetime
from pydantic import BaseModel, Field


# ===== 库存批次 =====
class InventoryCreate(BaseModel):
    """
    创建库存批次

    数量的合法性（进货数量 > 0、库存 >= 0）由服务层校验，统一返回 400。
    """
    product_id: int = Field(..., description="商品ID")
    purchase_id: int = Field(..., description="进货单ID")
    purchase_amount_cny: Decimal = Field(..., ge=0, description="进货金额（原币种，用户录入）")
    purchase_quantity: int = Field(..., description="进货数量")
    stock_quantity: int = Field(..., description="初始库存")


class InventoryUpdate(InventoryCreate):
    """修改库存批次（整体替换，仅限未被订单引用的批次）"""
    pass


class InventoryBatchCreate(BaseModel):
    items: List[InventoryCreate] = Field(..., min_length=1, description="批次列表")


class InventoryResponse(BaseModel):
    id: int
    product_id: int
    product_name: str = ""
    category_name: str = ""
    purchase_id: int
    purchase_no: str = ""
    purchase_amount: float
    purchase_amount_cny: float
    purchase_quantity: int
    unit_cost: float
    stock_quantity: int
    is_referenced: bool = False
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# ===== 进货单对账 =====
class PurchaseTotalResponse(BaseModel):
    purchase_id: int
    total: float


class ReconciliationResponse(BaseModel):
    """进货单对账：已分配到批次的日元金额 vs 进货单日元总额"""
    purchase_id: int
    allocated_jpy: float
    expected_jpy: float
    difference: float
    is_balanced: bool
