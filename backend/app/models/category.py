"""商品分类模型"""

from sqlalchemy import Column, Integer, String, Index, text
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin, SoftDeleteMixin


class Category(TimestampMixin, SoftDeleteMixin, Base):
    """商品分类（单层）"""
    __tablename__ = "categories"

    __table_args__ = (
        Index(
            "uq_category_name_active", "name", unique=True,
            sqlite_where=text("is_deleted = 0"),
            postgresql_where=text("is_deleted = false"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, comment="分类名称")

    # 关系
    products = relationship("Product", back_populates="category")

    def __repr__(self):
        return f"<Category {self.id}: {self.name}>"
