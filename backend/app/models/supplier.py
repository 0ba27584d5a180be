"""供应商模型"""

from sqlalchemy import Column, Integer, String, Index, text
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin, SoftDeleteMixin


class Supplier(TimestampMixin, SoftDeleteMixin, Base):
    """供应商 - 进货单的来源"""
    __tablename__ = "suppliers"

    # 名称只在未删除的记录中唯一（软删除后允许重新创建同名供应商）
    __table_args__ = (
        Index(
            "uq_supplier_name_active", "name", unique=True,
            sqlite_where=text("is_deleted = 0"),
            postgresql_where=text("is_deleted = false"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, comment="供应商名称")

    # 关系
    purchases = relationship("Purchase", back_populates="supplier")

    def __repr__(self):
        return f"<Supplier {self.id}: {self.name}>"
