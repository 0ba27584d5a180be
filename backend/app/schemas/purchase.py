"""进货单Schema"""

from typing import Optional
from decimal import Decimal
from datetime import datetime
from pydantic import BaseModel, Field

from app.core.config import settings


class PurchaseBase(BaseModel):
    supplier_id: int = Field(..., description="供应商ID")
    purchase_no: str = Field(..., min_length=1, max_length=100, description="进货单号")
    purchase_date: datetime = Field(..., description="进货日期")
    total_amount: Decimal = Field(..., ge=0, description="总金额（原币种）")
    currency_type: str = Field(default=settings.DEFAULT_CURRENCY, min_length=1, max_length=10, description="币种")
    exchange_rate: Decimal = Field(..., gt=0, description="汇率（原币→日元）")


class PurchaseCreate(PurchaseBase):
    pass


class PurchaseUpdate(BaseModel):
    supplier_id: Optional[int] = None
    purchase_no: Optional[str] = Field(None, min_length=1, max_length=100)
    purchase_date: Optional[datetime] = None
    total_amount: Optional[Decimal] = Field(None, ge=0)
    currency_type: Optional[str] = Field(None, min_length=1, max_length=10)
    exchange_rate: Optional[Decimal] = Field(None, gt=0)


class PurchaseResponse(BaseModel):
    id: int
    supplier_id: int
    supplier_name: str = ""
    purchase_no: str
    purchase_date: datetime
    total_amount: float
    currency_type: str
    exchange_rate: float
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
