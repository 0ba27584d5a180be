# models包初始化文件

from app.models.supplier import Supplier
from app.models.category import Category
from app.models.product import Product
from app.models.purchase import Purchase
from app.models.inventory import Inventory
from app.models.order import Order
from app.models.order_detail import OrderDetail
from app.models.states import LineState, LotState

__all__ = [
    "Supplier",
    "Category",
    "Product",
    "Purchase",
    "Inventory",
    "Order",
    "OrderDetail",
    "LineState",
    "LotState",
]
