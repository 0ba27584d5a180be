"""商品Schema"""

from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class ProductBase(BaseModel):
    category_id: int = Field(..., description="分类ID")
    name: str = Field(..., min_length=1, max_length=200, description="商品名称")


class ProductCreate(ProductBase):
    pass


class ProductUpdate(BaseModel):
    category_id: Optional[int] = None
    name: Optional[str] = Field(None, min_length=1, max_length=200)


class ProductResponse(ProductBase):
    id: int
    category_name: str = ""
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
