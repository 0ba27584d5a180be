"""商品模型"""

from sqlalchemy import Column, Integer, String, ForeignKey, Index, text
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin, SoftDeleteMixin


class Product(TimestampMixin, SoftDeleteMixin, Base):
    """商品 - 属于一个分类，库存批次和订单明细都引用它"""
    __tablename__ = "products"

    __table_args__ = (
        Index(
            "uq_product_name_active", "name", unique=True,
            sqlite_where=text("is_deleted = 0"),
            postgresql_where=text("is_deleted = false"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False, index=True)
    name = Column(String(200), nullable=False, comment="商品名称")

    # 关系
    category = relationship("Category", back_populates="products")
    inventories = relationship("Inventory", back_populates="product")
    order_details = relationship("OrderDetail", back_populates="product")

    def __repr__(self):
        return f"<Product {self.id}: {self.name}>"
