"""
进货单模型

total_amount 按原币种（currency_type）记录，exchange_rate 为 原币 → 日元 汇率。
进货单下的库存批次日元金额之和应等于 total_amount × exchange_rate（对账由调用方完成）。
"""

from decimal import Decimal
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, DECIMAL, Index, text
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin, SoftDeleteMixin


class Purchase(TimestampMixin, SoftDeleteMixin, Base):
    """进货单"""
    __tablename__ = "purchases"

    __table_args__ = (
        Index(
            "uq_purchase_no_active", "purchase_no", unique=True,
            sqlite_where=text("is_deleted = 0"),
            postgresql_where=text("is_deleted = false"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id", ondelete="RESTRICT"), nullable=False, index=True)

    purchase_no = Column(String(100), nullable=False, comment="进货单号")
    purchase_date = Column(DateTime, nullable=False, index=True, comment="进货日期")

    # 原币种总额
    total_amount = Column(DECIMAL(15, 2), nullable=False, default=Decimal("0.00"), comment="总金额（原币种）")
    currency_type = Column(String(10), nullable=False, default="JPY", comment="币种，如 CNY / JPY")
    # 原币 → 日元
    exchange_rate = Column(DECIMAL(10, 4), nullable=False, default=Decimal("1.0000"), comment="汇率（原币→日元）")

    # 关系
    supplier = relationship("Supplier", back_populates="purchases")
    inventory_items = relationship("Inventory", back_populates="purchase")

    def __repr__(self):
        return f"<Purchase {self.purchase_no}: {self.total_amount} {self.currency_type} @ {self.exchange_rate}>"

    @property
    def expected_total_jpy(self) -> Decimal:
        """期望日元总额 = 原币总额 × 汇率"""
        return (self.total_amount or Decimal("0")) * (self.exchange_rate or Decimal("0"))
