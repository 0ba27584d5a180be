from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class TimestampMixin:
    """created_at / updated_at（更新时自动刷新）"""

    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)


class SoftDeleteMixin:
    """
    软删除标记

    删除只置 is_deleted=True，不物理删除，保留订单/库存的历史引用。
    查询一律经由 app.services.ledger.active() 过滤。
    """

    is_deleted = Column(Boolean, nullable=False, default=False, server_default="0", index=True)
