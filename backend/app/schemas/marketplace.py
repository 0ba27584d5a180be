"""煤炉（Mercari）销售记录导入Schema"""

from typing import Optional, List
from pydantic import BaseModel, Field


class SoldItem(BaseModel):
    item_id: str
    name: str = ""
    photo_thumbnail_url: Optional[str] = None


class SoldHistory(BaseModel):
    """煤炉销售记录（只取导入需要的字段，其余忽略）"""
    item: Optional[SoldItem] = None
    price: int = 0
    sales_fee: int = 0
    seller_shipping_fee: int = 0
    sales_profit: int = 0
    transaction_finished_at: int = 0


class ImportRequest(BaseModel):
    """
    导入请求

    二选一：curl_command（从浏览器复制的请求，服务端分页拉取），
    或直接提交 histories。
    """
    curl_command: Optional[str] = Field(None, description="从浏览器复制的 cURL 命令")
    histories: List[SoldHistory] = Field(default_factory=list, description="销售记录")
    skip_existing: bool = Field(default=True, description="订单号已存在时跳过")


class ImportResult(BaseModel):
    total: int = 0
    success: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[str] = []
