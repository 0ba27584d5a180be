"""
订单模型

订单总成本不落库：读取时由有效明细的 subtotal_cost 求和得到，
避免增量维护带来的偏差。
"""

from decimal import Decimal
from sqlalchemy import Column, Integer, String, DateTime, DECIMAL, Index, text
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin, SoftDeleteMixin


class Order(TimestampMixin, SoftDeleteMixin, Base):
    """销售订单"""
    __tablename__ = "orders"

    __table_args__ = (
        Index(
            "uq_order_no_active", "order_no", unique=True,
            sqlite_where=text("is_deleted = 0"),
            postgresql_where=text("is_deleted = false"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)

    order_no = Column(String(100), nullable=False, comment="订单号（煤炉导入时为商品ID）")
    name = Column(String(255), nullable=False, default="", comment="订单名称")
    image_url = Column(String(500), comment="商品图片")

    # 金额（日元）
    revenue = Column(DECIMAL(15, 2), nullable=False, default=Decimal("0.00"), comment="营业额（日元）")
    shipping_fee = Column(DECIMAL(15, 2), nullable=False, default=Decimal("0.00"), comment="运费（日元）")

    transaction_time = Column(DateTime, nullable=False, index=True, comment="成交时间")

    # 关系
    details = relationship("OrderDetail", back_populates="order", order_by="OrderDetail.id")

    def __repr__(self):
        return f"<Order {self.order_no}: revenue={self.revenue}>"
