"""
基础资料服务 - 供应商、分类、商品、进货单

名称/单号只在未删除记录中唯一；删除前检查是否仍被引用。
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AlreadyExistsError, InvalidArgumentError, ReferencedError
from app.core.logging_config import get_logger
from app.models import Supplier, Category, Product, Purchase, Inventory, OrderDetail
from app.schemas.supplier import SupplierCreate, SupplierUpdate, SupplierResponse
from app.schemas.category import CategoryCreate, CategoryUpdate, CategoryResponse
from app.schemas.product import ProductCreate, ProductUpdate, ProductResponse
from app.schemas.purchase import PurchaseCreate, PurchaseUpdate, PurchaseResponse
from app.services.conversion import quantize_money, quantize_rate
from app.services.ledger import (
    active, atomic, exists_active, get_active_or_404, raise_for_integrity_error,
)

logger = get_logger(__name__)

# 进货单列表允许的排序字段
PURCHASE_SORT_FIELDS = {
    "purchase_no": Purchase.purchase_no,
    "total_amount": Purchase.total_amount,
    "purchase_date": Purchase.purchase_date,
}


async def _count_active(db: AsyncSession, model, *conditions) -> int:
    result = await db.execute(
        select(func.count(model.id)).where(model.is_deleted == False, *conditions)  # noqa: E712
    )
    return result.scalar() or 0


async def _flush_unique(db: AsyncSession, message: str) -> None:
    """flush 并把唯一索引冲突转换成 AlreadyExistsError"""
    try:
        await db.flush()
    except IntegrityError as e:
        raise_for_integrity_error(e, message)


# ==================== 供应商 ====================

class SupplierService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_all(self) -> List[SupplierResponse]:
        result = await self.db.execute(active(Supplier).order_by(Supplier.name))
        return [SupplierResponse.model_validate(s) for s in result.scalars().all()]

    async def get(self, supplier_id: int) -> SupplierResponse:
        supplier = await get_active_or_404(self.db, Supplier, supplier_id, "供应商")
        return SupplierResponse.model_validate(supplier)

    async def _ensure_name_free(self, name: str, exclude_id: Optional[int] = None) -> None:
        if await exists_active(self.db, Supplier, Supplier.name == name, exclude_id=exclude_id):
            raise AlreadyExistsError(f"供应商名称 '{name}' 已存在")

    async def create(self, data: SupplierCreate) -> SupplierResponse:
        async with atomic(self.db):
            await self._ensure_name_free(data.name)
            supplier = Supplier(name=data.name)
            self.db.add(supplier)
            await _flush_unique(self.db, f"供应商名称 '{data.name}' 已存在")
        logger.info(f"创建供应商: {supplier.name} (ID: {supplier.id})")
        return SupplierResponse.model_validate(supplier)

    async def update(self, supplier_id: int, data: SupplierUpdate) -> SupplierResponse:
        async with atomic(self.db):
            supplier = await get_active_or_404(self.db, Supplier, supplier_id, "供应商")
            if data.name is not None and data.name != supplier.name:
                await self._ensure_name_free(data.name, exclude_id=supplier_id)
                supplier.name = data.name
                await _flush_unique(self.db, f"供应商名称 '{data.name}' 已存在")
        return SupplierResponse.model_validate(supplier)

    async def delete(self, supplier_id: int) -> None:
        async with atomic(self.db):
            supplier = await get_active_or_404(self.db, Supplier, supplier_id, "供应商")
            purchases = await _count_active(self.db, Purchase, Purchase.supplier_id == supplier_id)
            if purchases:
                raise ReferencedError(
                    f"供应商 '{supplier.name}' 下还有 {purchases} 张进货单，无法删除",
                    ctx={"purchases": purchases},
                )
            supplier.is_deleted = True
        logger.info(f"删除供应商: {supplier.name} (ID: {supplier_id})")


# ==================== 分类 ====================

class CategoryService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _products_count(self, category_id: int) -> int:
        return await _count_active(self.db, Product, Product.category_id == category_id)

    async def _build(self, category: Category) -> CategoryResponse:
        return CategoryResponse(
            id=category.id,
            name=category.name,
            products_count=await self._products_count(category.id),
            created_at=category.created_at,
            updated_at=category.updated_at,
        )

    async def list_all(self) -> List[CategoryResponse]:
        counts = (
            select(Product.category_id, func.count(Product.id).label("cnt"))
            .where(Product.is_deleted == False)  # noqa: E712
            .group_by(Product.category_id)
            .subquery()
        )
        result = await self.db.execute(
            select(Category, func.coalesce(counts.c.cnt, 0))
            .outerjoin(counts, counts.c.category_id == Category.id)
            .where(Category.is_deleted == False)  # noqa: E712
            .order_by(Category.name)
        )
        return [
            CategoryResponse(
                id=c.id, name=c.name, products_count=cnt,
                created_at=c.created_at, updated_at=c.updated_at,
            )
            for c, cnt in result.all()
        ]

    async def get(self, category_id: int) -> CategoryResponse:
        category = await get_active_or_404(self.db, Category, category_id, "分类")
        return await self._build(category)

    async def _ensure_name_free(self, name: str, exclude_id: Optional[int] = None) -> None:
        if await exists_active(self.db, Category, Category.name == name, exclude_id=exclude_id):
            raise AlreadyExistsError(f"分类名称 '{name}' 已存在")

    async def create(self, data: CategoryCreate) -> CategoryResponse:
        async with atomic(self.db):
            await self._ensure_name_free(data.name)
            category = Category(name=data.name)
            self.db.add(category)
            await _flush_unique(self.db, f"分类名称 '{data.name}' 已存在")
        logger.info(f"创建分类: {category.name} (ID: {category.id})")
        return await self._build(category)

    async def update(self, category_id: int, data: CategoryUpdate) -> CategoryResponse:
        async with atomic(self.db):
            category = await get_active_or_404(self.db, Category, category_id, "分类")
            if data.name is not None and data.name != category.name:
                await self._ensure_name_free(data.name, exclude_id=category_id)
                category.name = data.name
                await _flush_unique(self.db, f"分类名称 '{data.name}' 已存在")
        return await self._build(category)

    async def delete(self, category_id: int) -> None:
        async with atomic(self.db):
            category = await get_active_or_404(self.db, Category, category_id, "分类")
            products = await self._products_count(category_id)
            if products:
                raise ReferencedError(
                    f"分类 '{category.name}' 下还有 {products} 个商品，无法删除",
                    ctx={"products": products},
                )
            category.is_deleted = True
        logger.info(f"删除分类: {category.name} (ID: {category_id})")


# ==================== 商品 ====================

class ProductService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _build(self, product: Product) -> ProductResponse:
        result = await self.db.execute(select(Category.name).where(Category.id == product.category_id))
        return ProductResponse(
            id=product.id,
            category_id=product.category_id,
            category_name=result.scalar() or "",
            name=product.name,
            created_at=product.created_at,
            updated_at=product.updated_at,
        )

    async def list_all(self, category_id: Optional[int] = None) -> List[ProductResponse]:
        stmt = (
            select(Product, Category.name)
            .join(Category, Category.id == Product.category_id)
            .where(Product.is_deleted == False)  # noqa: E712
        )
        if category_id is not None:
            stmt = stmt.where(Product.category_id == category_id)
        result = await self.db.execute(stmt.order_by(Product.name))
        return [
            ProductResponse(
                id=p.id, category_id=p.category_id, category_name=category_name, name=p.name,
                created_at=p.created_at, updated_at=p.updated_at,
            )
            for p, category_name in result.all()
        ]

    async def get(self, product_id: int) -> ProductResponse:
        product = await get_active_or_404(self.db, Product, product_id, "商品")
        return await self._build(product)

    async def _ensure_name_free(self, name: str, exclude_id: Optional[int] = None) -> None:
        if await exists_active(self.db, Product, Product.name == name, exclude_id=exclude_id):
            raise AlreadyExistsError(f"商品名称 '{name}' 已存在")

    async def create(self, data: ProductCreate) -> ProductResponse:
        async with atomic(self.db):
            await get_active_or_404(self.db, Category, data.category_id, "分类")
            await self._ensure_name_free(data.name)
            product = Product(category_id=data.category_id, name=data.name)
            self.db.add(product)
            await _flush_unique(self.db, f"商品名称 '{data.name}' 已存在")
        logger.info(f"创建商品: {product.name} (ID: {product.id})")
        return await self._build(product)

    async def update(self, product_id: int, data: ProductUpdate) -> ProductResponse:
        async with atomic(self.db):
            product = await get_active_or_404(self.db, Product, product_id, "商品")
            if data.category_id is not None:
                await get_active_or_404(self.db, Category, data.category_id, "分类")
                product.category_id = data.category_id
            if data.name is not None and data.name != product.name:
                await self._ensure_name_free(data.name, exclude_id=product_id)
                product.name = data.name
            await _flush_unique(self.db, f"商品名称 '{product.name}' 已存在")
        return await self._build(product)

    async def delete(self, product_id: int) -> None:
        async with atomic(self.db):
            product = await get_active_or_404(self.db, Product, product_id, "商品")
            lots = await _count_active(self.db, Inventory, Inventory.product_id == product_id)
            lines = await _count_active(self.db, OrderDetail, OrderDetail.product_id == product_id)
            if lots or lines:
                raise ReferencedError(
                    f"商品 '{product.name}' 已有库存或订单记录，无法删除",
                    ctx={"inventory": lots, "order_details": lines},
                )
            product.is_deleted = True
        logger.info(f"删除商品: {product.name} (ID: {product_id})")


# ==================== 进货单 ====================

def build_purchase_response(purchase: Purchase, supplier_name: str) -> PurchaseResponse:
    return PurchaseResponse(
        id=purchase.id,
        supplier_id=purchase.supplier_id,
        supplier_name=supplier_name or "",
        purchase_no=purchase.purchase_no,
        purchase_date=purchase.purchase_date,
        total_amount=float(purchase.total_amount),
        currency_type=purchase.currency_type,
        exchange_rate=float(purchase.exchange_rate),
        created_at=purchase.created_at,
        updated_at=purchase.updated_at,
    )


class PurchaseService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _build(self, purchase: Purchase) -> PurchaseResponse:
        result = await self.db.execute(select(Supplier.name).where(Supplier.id == purchase.supplier_id))
        return build_purchase_response(purchase, result.scalar())

    async def list_all(
        self,
        purchase_no: Optional[str] = None,
        supplier_id: Optional[int] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        sort_by: str = "purchase_date",
        sort_order: str = "desc",
    ) -> List[PurchaseResponse]:
        """
        进货单列表

        - purchase_no: 单号模糊搜索
        - sort_by: purchase_no / total_amount / purchase_date（默认，并按ID排序）
        """
        stmt = (
            select(Purchase, Supplier.name)
            .join(Supplier, Supplier.id == Purchase.supplier_id)
            .where(Purchase.is_deleted == False)  # noqa: E712
        )
        if purchase_no:
            stmt = stmt.where(Purchase.purchase_no.contains(purchase_no))
        if supplier_id is not None:
            stmt = stmt.where(Purchase.supplier_id == supplier_id)
        if start_date:
            stmt = stmt.where(Purchase.purchase_date >= start_date)
        if end_date:
            stmt = stmt.where(Purchase.purchase_date <= end_date)

        column = PURCHASE_SORT_FIELDS.get(sort_by, Purchase.purchase_date)
        ascending = sort_order.lower() == "asc"
        stmt = stmt.order_by(
            column.asc() if ascending else column.desc(),
            Purchase.id.asc() if ascending else Purchase.id.desc(),
        )

        result = await self.db.execute(stmt)
        return [build_purchase_response(p, supplier_name) for p, supplier_name in result.all()]

    async def get(self, purchase_id: int) -> PurchaseResponse:
        purchase = await get_active_or_404(self.db, Purchase, purchase_id, "进货单")
        return await self._build(purchase)

    async def _ensure_no_free(self, purchase_no: str, exclude_id: Optional[int] = None) -> None:
        if await exists_active(self.db, Purchase, Purchase.purchase_no == purchase_no, exclude_id=exclude_id):
            raise AlreadyExistsError(f"进货单号 '{purchase_no}' 已存在")

    async def create(self, data: PurchaseCreate) -> PurchaseResponse:
        async with atomic(self.db):
            await get_active_or_404(self.db, Supplier, data.supplier_id, "供应商")
            await self._ensure_no_free(data.purchase_no)
            purchase = Purchase(
                supplier_id=data.supplier_id,
                purchase_no=data.purchase_no,
                purchase_date=data.purchase_date,
                total_amount=quantize_money(data.total_amount),
                currency_type=data.currency_type.upper(),
                exchange_rate=quantize_rate(data.exchange_rate),
            )
            self.db.add(purchase)
            await _flush_unique(self.db, f"进货单号 '{data.purchase_no}' 已存在")
        logger.info(
            f"创建进货单: {purchase.purchase_no} (ID: {purchase.id}), "
            f"{purchase.total_amount} {purchase.currency_type} @ {purchase.exchange_rate}"
        )
        return await self._build(purchase)

    async def update(self, purchase_id: int, data: PurchaseUpdate) -> PurchaseResponse:
        """修改进货单（已有批次的金额不随汇率重算，差额通过对账体现）"""
        async with atomic(self.db):
            purchase = await get_active_or_404(self.db, Purchase, purchase_id, "进货单")
            if data.supplier_id is not None:
                await get_active_or_404(self.db, Supplier, data.supplier_id, "供应商")
                purchase.supplier_id = data.supplier_id
            if data.purchase_no is not None and data.purchase_no != purchase.purchase_no:
                await self._ensure_no_free(data.purchase_no, exclude_id=purchase_id)
                purchase.purchase_no = data.purchase_no
            if data.purchase_date is not None:
                purchase.purchase_date = data.purchase_date
            if data.total_amount is not None:
                purchase.total_amount = quantize_money(data.total_amount)
            if data.currency_type is not None:
                purchase.currency_type = data.currency_type.upper()
            if data.exchange_rate is not None:
                if data.exchange_rate <= 0:
                    raise InvalidArgumentError("汇率必须大于0")
                purchase.exchange_rate = quantize_rate(data.exchange_rate)
            await _flush_unique(self.db, f"进货单号 '{purchase.purchase_no}' 已存在")
        return await self._build(purchase)

    async def delete(self, purchase_id: int) -> None:
        async with atomic(self.db):
            purchase = await get_active_or_404(self.db, Purchase, purchase_id, "进货单")
            lots = await _count_active(self.db, Inventory, Inventory.purchase_id == purchase_id)
            if lots:
                raise ReferencedError(
                    f"进货单 '{purchase.purchase_no}' 下还有 {lots} 个库存批次，请先删除库存",
                    ctx={"inventory": lots},
                )
            purchase.is_deleted = True
        logger.info(f"删除进货单: {purchase.purchase_no} (ID: {purchase_id})")


__all__ = [
    "SupplierService",
    "CategoryService",
    "ProductService",
    "PurchaseService",
    "build_purchase_response",
]
