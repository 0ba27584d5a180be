"""
库存批次模型 - 每个进货单下的每种商品一个批次，独立记录成本和剩余库存

- purchase_amount_cny：用户录入的原币金额
- purchase_amount：换算后的日元金额 = 原币金额 × 进货单汇率
- unit_cost：日元单位成本 = purchase_amount / purchase_quantity
- stock_quantity：剩余库存，订单明细出库时扣减、删除明细时归还

批次一旦被有效的订单明细引用，就不能再修改或删除。
"""

from sqlalchemy import Column, Integer, ForeignKey, DECIMAL, CheckConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin, SoftDeleteMixin


class Inventory(TimestampMixin, SoftDeleteMixin, Base):
    """库存批次"""
    __tablename__ = "inventory"

    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_inventory_stock_non_negative"),
        CheckConstraint("purchase_quantity > 0", name="ck_inventory_purchase_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)

    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)
    purchase_id = Column(Integer, ForeignKey("purchases.id", ondelete="RESTRICT"), nullable=False, index=True)

    # === 金额 ===
    purchase_amount = Column(DECIMAL(15, 2), nullable=False, comment="进货金额（日元）")
    purchase_amount_cny = Column(DECIMAL(15, 2), nullable=False, comment="进货金额（原币种，用户录入）")

    # === 数量 ===
    purchase_quantity = Column(Integer, nullable=False, comment="进货数量")
    unit_cost = Column(DECIMAL(15, 2), nullable=False, comment="单位成本（日元）")
    stock_quantity = Column(Integer, nullable=False, comment="剩余库存")

    # 关系
    product = relationship("Product", back_populates="inventories")
    purchase = relationship("Purchase", back_populates="inventory_items")
    order_details = relationship("OrderDetail", back_populates="inventory")

    def __repr__(self):
        return f"<Inventory {self.id}: {self.stock_quantity}/{self.purchase_quantity} @ {self.unit_cost}>"
