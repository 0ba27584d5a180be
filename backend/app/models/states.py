"""
显式状态

- 订单明细：ACTIVE（占用库存）/ DELETED（已归还库存、软删除）
- 库存批次：UNREFERENCED（可修改、可删除）/ REFERENCED（被有效订单明细引用，只能继续出库）
"""

import enum


class LineState(str, enum.Enum):
    ACTIVE = "active"
    DELETED = "deleted"


class LotState(str, enum.Enum):
    UNREFERENCED = "unreferenced"
    REFERENCED = "referenced"

    @classmethod
    def from_reference_count(cls, count: int) -> "LotState":
        return cls.REFERENCED if count > 0 else cls.UNREFERENCED
