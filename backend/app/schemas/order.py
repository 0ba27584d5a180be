"""订单Schema"""

from typing import Optional, List
from decimal import Decimal
from datetime import datetime
from pydantic import BaseModel, Field


# ===== 订单明细 =====
class OrderLineBase(BaseModel):
    """订单明细基础字段（数量合法性由服务层校验）"""
    inventory_id: int = Field(..., description="库存批次ID")
    product_id: int = Field(..., description="商品ID（必须与批次一致）")
    unit_price: Decimal = Field(default=Decimal("0"), ge=0, description="销售单价")
    quantity: int = Field(..., description="数量")
    packaging_cost: Decimal = Field(default=Decimal("0"), ge=0, description="包装成本")
    other_cost: Decimal = Field(default=Decimal("0"), ge=0, description="其他成本")
    notes: Optional[str] = Field(None, description="备注")


class OrderLineCreate(OrderLineBase):
    """随订单一起创建的明细"""
    pass


class OrderDetailCreate(OrderLineBase):
    """向已有订单追加明细"""
    order_id: int = Field(..., description="订单ID")


class OrderDetailUpdate(OrderLineBase):
    """修改明细（整体替换，可换批次）"""
    pass


class OrderDetailResponse(BaseModel):
    id: int
    order_id: int
    inventory_id: int
    product_id: int
    product_name: str = ""
    unit_price: float
    quantity: int
    packaging_cost: float
    other_cost: float
    subtotal_cost: float
    notes: Optional[str] = None
    state: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# ===== 订单 =====
class OrderBase(BaseModel):
    order_no: str = Field(..., min_length=1, max_length=100, description="订单号")
    name: str = Field(default="", max_length=255, description="订单名称")
    image_url: Optional[str] = Field(None, max_length=500, description="商品图片")
    revenue: Decimal = Field(default=Decimal("0"), ge=0, description="营业额（日元）")
    shipping_fee: Decimal = Field(default=Decimal("0"), ge=0, description="运费（日元）")
    transaction_time: datetime = Field(..., description="成交时间")


class OrderCreate(OrderBase):
    """创建订单（可不带明细）"""
    details: List[OrderLineCreate] = Field(default_factory=list, description="订单明细")


class OrderUpdate(BaseModel):
    """修改订单（仅基本信息，明细走明细接口）"""
    order_no: Optional[str] = Field(None, min_length=1, max_length=100)
    name: Optional[str] = Field(None, max_length=255)
    image_url: Optional[str] = Field(None, max_length=500)
    revenue: Optional[Decimal] = Field(None, ge=0)
    shipping_fee: Optional[Decimal] = Field(None, ge=0)
    transaction_time: Optional[datetime] = None


class OrderResponse(BaseModel):
    id: int
    order_no: str
    name: str
    image_url: Optional[str] = None
    revenue: float
    shipping_fee: float
    total_cost: float
    profit: float
    details_count: int = 0
    transaction_time: datetime
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class OrderWithDetailsResponse(OrderResponse):
    details: List[OrderDetailResponse] = []
