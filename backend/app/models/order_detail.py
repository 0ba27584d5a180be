"""
订单明细模型 - 订单中的每一行商品，引用一个库存批次

subtotal_cost = 批次单位成本 × 数量 + 包装成本 + 其他成本
在创建/修改明细时按当时批次的 unit_cost 计算并固定下来。
"""

from decimal import Decimal
from sqlalchemy import Column, Integer, Text, ForeignKey, DECIMAL, CheckConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin, SoftDeleteMixin
from app.models.states import LineState


class OrderDetail(TimestampMixin, SoftDeleteMixin, Base):
    """订单明细"""
    __tablename__ = "order_details"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_detail_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)

    order_id = Column(Integer, ForeignKey("orders.id", ondelete="RESTRICT"), nullable=False, index=True)
    inventory_id = Column(Integer, ForeignKey("inventory.id", ondelete="RESTRICT"), nullable=False, index=True)
    # 冗余商品ID，必须与批次的商品一致
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)

    unit_price = Column(DECIMAL(15, 2), nullable=False, default=Decimal("0.00"), comment="销售单价（日元）")
    quantity = Column(Integer, nullable=False, comment="数量")
    packaging_cost = Column(DECIMAL(15, 2), nullable=False, default=Decimal("0.00"), comment="包装成本")
    other_cost = Column(DECIMAL(15, 2), nullable=False, default=Decimal("0.00"), comment="其他成本")
    subtotal_cost = Column(DECIMAL(15, 2), nullable=False, default=Decimal("0.00"), comment="小计成本")

    notes = Column(Text, comment="备注")

    # 关系
    order = relationship("Order", back_populates="details")
    inventory = relationship("Inventory", back_populates="order_details")
    product = relationship("Product", back_populates="order_details")

    def __repr__(self):
        return f"<OrderDetail {self.id}: inv={self.inventory_id} x {self.quantity} cost={self.subtotal_cost}>"

    @property
    def state(self) -> LineState:
        return LineState.DELETED if self.is_deleted else LineState.ACTIVE
