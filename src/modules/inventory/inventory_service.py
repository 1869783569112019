# src/modules/inventory/inventory_service.py

import logging
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from fastapi import Request
from sqlalchemy import func, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from src.auth.schemas import AuthUser
from src.common.audit.audit_service import log_action
from src.common.exceptions.exceptions import BadRequestException, ConflictException, NotFoundException
from src.common.schemas import PaginationMeta
from src.common.utils.global_functions import day_bounds, to_float, utcnow
from src.common.utils.pagination import PaginationParams, paginate
from src.models.models import AuditAction, InventoryMovement, MovementType, Product, ProductCategory
from src.modules.inventory import schemas

logger = logging.getLogger(__name__)

RECENT_MOVEMENTS_LIMIT = 10
SUBTRACTING_TYPES = (MovementType.OUT, MovementType.EXPIRED)
REQUIRED_FIELDS = {
    "name", "sku", "unit", "category", "min_stock", "requires_prescription",
    "controlled_substance", "expiration_alert_days", "is_active",
}

CATEGORY_LABELS = {
    ProductCategory.MEDICATION: "Medicamentos",
    ProductCategory.MEDICAL_SUPPLY: "Material Médico",
    ProductCategory.EQUIPMENT: "Equipamentos",
    ProductCategory.CONSUMABLE: "Consumíveis",
    ProductCategory.OTHER: "Outros",
}


def next_stock(movement_type: MovementType, current: int, quantity: int) -> int:
    """
    Stock after a movement: IN and TRANSFER add, OUT and EXPIRED subtract,
    ADJUSTMENT sets the absolute value.
    """
    if movement_type in SUBTRACTING_TYPES:
        return current - quantity
    if movement_type == MovementType.ADJUSTMENT:
        return quantity
    return current + quantity


# ============================================================================
# LOOKUPS
# ============================================================================

async def get_product(db: AsyncSession, tenant_id: UUID, product_id: UUID) -> Product:
    result = await db.execute(select(Product).where(Product.id == product_id, Product.tenant_id == tenant_id))
    product = result.scalars().first()
    if product is None:
        raise NotFoundException("Product not found", "PRODUCT_NOT_FOUND")
    return product


async def get_product_by(db: AsyncSession, tenant_id: UUID, column, value: str) -> Product:
    result = await db.execute(select(Product).where(column == value, Product.tenant_id == tenant_id))
    product = result.scalars().first()
    if product is None:
        raise NotFoundException("Product not found", "PRODUCT_NOT_FOUND")
    return product


async def ensure_unique(
    db: AsyncSession,
    tenant_id: UUID,
    sku: Optional[str],
    barcode: Optional[str],
    exclude_id: Optional[UUID] = None,
) -> None:
    """SKU and barcode are unique per tenant."""
    for column, value, message, code in (
        (Product.sku, sku, "SKU already exists", "SKU_EXISTS"),
        (Product.barcode, barcode, "Barcode already exists", "BARCODE_EXISTS"),
    ):
        if not value:
            continue
        query = select(Product.id).where(Product.tenant_id == tenant_id, column == value)
        if exclude_id is not None:
            query = query.where(Product.id != exclude_id)
        if (await db.execute(query)).first() is not None:
            raise ConflictException(message, code)


# ============================================================================
# PRODUCTS
# ============================================================================

async def list_products(
    db: AsyncSession,
    tenant_id: UUID,
    params: PaginationParams,
    search: Optional[str] = None,
    category: Optional[ProductCategory] = None,
    low_stock: Optional[bool] = None,
    is_active: Optional[bool] = None,
) -> Tuple[List[Product], PaginationMeta]:
    query = select(Product).where(Product.tenant_id == tenant_id)
    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(Product.name.ilike(pattern), Product.sku.ilike(pattern), Product.barcode.ilike(pattern))
        )
    if category is not None:
        query = query.where(Product.category == category)
    if low_stock:
        query = query.where(Product.current_stock <= Product.min_stock)
    if is_active is not None:
        query = query.where(Product.is_active == is_active)

    return await paginate(
        db,
        query,
        params,
        sort_columns={
            "name": Product.name,
            "sku": Product.sku,
            "currentStock": Product.current_stock,
            "createdAt": Product.created_at,
        },
        default_order=[Product.name.asc()],
    )


async def get_product_detail(db: AsyncSession, tenant_id: UUID, product_id: UUID) -> schemas.ProductDetailResponse:
    product = await get_product(db, tenant_id, product_id)
    result = await db.execute(
        select(InventoryMovement)
        .where(InventoryMovement.tenant_id == tenant_id, InventoryMovement.product_id == product_id)
        .order_by(InventoryMovement.created_at.desc())
        .limit(RECENT_MOVEMENTS_LIMIT)
    )
    base = schemas.ProductResponse.model_validate(product).model_dump()
    return schemas.ProductDetailResponse(
        **base,
        recent_movements=[schemas.MovementResponse.model_validate(m) for m in result.scalars().all()],
        batches=await get_product_batches(db, tenant_id, product_id),
    )


async def create_product(
    db: AsyncSession,
    tenant_id: UUID,
    data: schemas.ProductCreateRequest,
    current_user: AuthUser,
    request: Optional[Request] = None,
) -> Product:
    await ensure_unique(db, tenant_id, data.sku, data.barcode)

    product = Product(tenant_id=tenant_id, **data.model_dump())
    db.add(product)
    await db.flush()
    await log_action(
        db,
        tenant_id=tenant_id,
        user_id=current_user.id,
        action=AuditAction.CREATE,
        resource="product",
        resource_id=product.id,
        new_value={"sku": product.sku, "name": product.name},
        request=request,
    )
    await db.commit()
    await db.refresh(product)

    logger.info("Product created", extra={"productId": str(product.id), "sku": product.sku})
    return product


async def update_product(
    db: AsyncSession,
    tenant_id: UUID,
    product_id: UUID,
    data: schemas.ProductUpdateRequest,
    current_user: AuthUser,
    request: Optional[Request] = None,
) -> Product:
    product = await get_product(db, tenant_id, product_id)
    changes = data.model_dump(exclude_unset=True)

    sku = changes.get("sku") if changes.get("sku") != product.sku else None
    barcode = changes.get("barcode") if changes.get("barcode") != product.barcode else None
    await ensure_unique(db, tenant_id, sku, barcode, exclude_id=product.id)

    for field, value in changes.items():
        if value is None and field in REQUIRED_FIELDS:
            continue
        setattr(product, field, value)

    await log_action(
        db,
        tenant_id=tenant_id,
        user_id=current_user.id,
        action=AuditAction.UPDATE,
        resource="product",
        resource_id=product.id,
        new_value={"fields": sorted(changes)},
        request=request,
    )
    await db.commit()
    await db.refresh(product)

    logger.info("Product updated", extra={"productId": str(product.id)})
    return product


async def delete_product(
    db: AsyncSession,
    tenant_id: UUID,
    product_id: UUID,
    current_user: AuthUser,
    request: Optional[Request] = None,
) -> None:
    product = await get_product(db, tenant_id, product_id)
    movements = await db.execute(
        select(func.count(InventoryMovement.id)).where(InventoryMovement.product_id == product.id)
    )
    if movements.scalar():
        raise BadRequestException(
            "Cannot delete product with movements. Consider deactivating instead.",
            "PRODUCT_HAS_MOVEMENTS",
        )

    await log_action(
        db,
        tenant_id=tenant_id,
        user_id=current_user.id,
        action=AuditAction.DELETE,
        resource="product",
        resource_id=product.id,
        old_value={"sku": product.sku, "name": product.name},
        request=request,
    )
    await db.delete(product)
    await db.commit()

    logger.info("Product deleted", extra={"productId": str(product_id)})


async def list_low_stock(db: AsyncSession, tenant_id: UUID) -> List[Product]:
    result = await db.execute(
        select(Product)
        .where(Product.tenant_id == tenant_id, Product.current_stock <= Product.min_stock)
        .order_by(Product.current_stock.asc())
    )
    return list(result.scalars().all())


async def list_expiring(db: AsyncSession, tenant_id: UUID, days: int = 30) -> List[schemas.ExpiringProduct]:
    """IN batches expiring between today and ``days`` from now, grouped by product."""
    today = utcnow().date()
    result = await db.execute(
        select(InventoryMovement)
        .where(
            InventoryMovement.tenant_id == tenant_id,
            InventoryMovement.type == MovementType.IN,
            InventoryMovement.expiration_date >= today,
            InventoryMovement.expiration_date <= today + timedelta(days=days),
        )
        .order_by(InventoryMovement.expiration_date.asc())
    )

    grouped: Dict[UUID, schemas.ExpiringProduct] = {}
    for movement in result.scalars().all():
        batch = schemas.ExpiringBatch(
            batch_number=movement.batch_number,
            expiration_date=movement.expiration_date,
            quantity=movement.quantity,
        )
        if movement.product_id in grouped:
            grouped[movement.product_id].batches.append(batch)
        else:
            grouped[movement.product_id] = schemas.ExpiringProduct(
                product=schemas.ProductResponse.model_validate(movement.product),
                batches=[batch],
            )
    return list(grouped.values())


async def get_summary(db: AsyncSession, tenant_id: UUID) -> schemas.InventorySummary:
    totals = await db.execute(
        select(
            func.count(Product.id),
            func.sum(Product.current_stock),
            func.sum(Product.current_stock * func.coalesce(Product.cost_price, 0)),
        ).where(Product.tenant_id == tenant_id)
    )
    total_products, total_items, stock_value = totals.one()

    by_category = await db.execute(
        select(Product.category, func.count(Product.id), func.sum(Product.current_stock))
        .where(Product.tenant_id == tenant_id)
        .group_by(Product.category)
    )

    return schemas.InventorySummary(
        total_products=total_products or 0,
        total_items=total_items or 0,
        low_stock_count=len(await list_low_stock(db, tenant_id)),
        expiring_soon_count=len(await list_expiring(db, tenant_id, 30)),
        stock_value=to_float(stock_value),
        by_category=[
            schemas.CategoryCount(category=category, count=count, total_stock=stock or 0)
            for category, count, stock in by_category.all()
        ],
    )


def get_categories() -> List[schemas.CategoryOption]:
    return [schemas.CategoryOption(value=value, label=label) for value, label in CATEGORY_LABELS.items()]


async def get_product_batches(db: AsyncSession, tenant_id: UUID, product_id: UUID) -> List[schemas.BatchInfo]:
    """
    Remaining quantity per batch.

    Batches come from IN movements carrying a batch number; OUT and EXPIRED
    quantities are taken from the first-expiring batch first (FEFO). Batches
    without an expiration date are consumed last.
    """
    received = await db.execute(
        select(InventoryMovement).where(
            InventoryMovement.tenant_id == tenant_id,
            InventoryMovement.product_id == product_id,
            InventoryMovement.type == MovementType.IN,
            InventoryMovement.batch_number.is_not(None),
        )
    )
    consumed = await db.execute(
        select(func.sum(InventoryMovement.quantity)).where(
            InventoryMovement.tenant_id == tenant_id,
            InventoryMovement.product_id == product_id,
            InventoryMovement.type.in_(SUBTRACTING_TYPES),
        )
    )

    batches: Dict[str, schemas.BatchInfo] = {}
    for movement in received.scalars().all():
        if movement.batch_number in batches:
            batches[movement.batch_number].quantity += movement.quantity
        else:
            batches[movement.batch_number] = schemas.BatchInfo(
                batch_number=movement.batch_number,
                quantity=movement.quantity,
                expiration_date=movement.expiration_date,
                unit_cost=to_float(movement.unit_cost) if movement.unit_cost is not None else None,
            )

    ordered = sorted(
        batches.values(),
        key=lambda b: (b.expiration_date is None, b.expiration_date or date.max),
    )
    remaining_out = consumed.scalar() or 0
    for batch in ordered:
        if remaining_out <= 0:
            break
        deduct = min(batch.quantity, remaining_out)
        batch.quantity -= deduct
        remaining_out -= deduct

    return [batch for batch in ordered if batch.quantity > 0]


# ============================================================================
# MOVEMENTS
# ============================================================================

async def list_movements(
    db: AsyncSession,
    tenant_id: UUID,
    params: PaginationParams,
    product_id: Optional[UUID] = None,
    movement_type: Optional[MovementType] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Tuple[List[InventoryMovement], PaginationMeta]:
    query = select(InventoryMovement).where(InventoryMovement.tenant_id == tenant_id)
    if product_id is not None:
        query = query.where(InventoryMovement.product_id == product_id)
    if movement_type is not None:
        query = query.where(InventoryMovement.type == movement_type)
    if start_date is not None:
        query = query.where(InventoryMovement.created_at >= day_bounds(start_date)[0])
    if end_date is not None:
        query = query.where(InventoryMovement.created_at < day_bounds(end_date)[1])

    return await paginate(
        db,
        query,
        params,
        sort_columns={"createdAt": InventoryMovement.created_at, "quantity": InventoryMovement.quantity},
        default_order=[InventoryMovement.created_at.desc()],
    )


async def list_product_movements(
    db: AsyncSession,
    tenant_id: UUID,
    product_id: UUID,
    params: PaginationParams,
) -> Tuple[List[InventoryMovement], PaginationMeta]:
    await get_product(db, tenant_id, product_id)
    return await list_movements(db, tenant_id, params, product_id=product_id)


async def create_movement(
    db: AsyncSession,
    tenant_id: UUID,
    data: schemas.MovementCreateRequest,
    current_user: AuthUser,
    request: Optional[Request] = None,
) -> InventoryMovement:
    """
    Record a stock movement and apply it to the product.

    The stock is written with a compare-and-set UPDATE on the value read here,
    so two concurrent movements cannot both apply to the same previous stock.
    """
    product = await get_product(db, tenant_id, data.product_id)
    previous_stock = product.current_stock
    new_stock = next_stock(data.type, previous_stock, data.quantity)
    if new_stock < 0:
        raise BadRequestException(
            "Insufficient stock for this operation",
            "INSUFFICIENT_STOCK",
            details={"currentStock": previous_stock, "requested": data.quantity},
        )

    conditions = [
        Product.id == product.id,
        Product.tenant_id == tenant_id,
        Product.current_stock == previous_stock,
    ]
    if data.type in SUBTRACTING_TYPES:
        conditions.append(Product.current_stock >= data.quantity)
    result = await db.execute(
        update(Product)
        .where(*conditions)
        .values(current_stock=new_stock, updated_at=utcnow())
    )
    if result.rowcount != 1:
        await db.rollback()
        raise ConflictException("Stock was changed by another operation, please retry", "STOCK_CONFLICT")

    movement = InventoryMovement(
        tenant_id=tenant_id,
        product_id=product.id,
        user_id=current_user.id,
        type=data.type,
        quantity=data.quantity,
        unit_cost=data.unit_cost,
        batch_number=data.batch_number,
        expiration_date=data.expiration_date,
        reason=data.reason,
        reference_id=data.reference_id,
        reference_type=data.reference_type,
        previous_stock=previous_stock,
        new_stock=new_stock,
    )
    db.add(movement)
    await db.flush()
    await log_action(
        db,
        tenant_id=tenant_id,
        user_id=current_user.id,
        action=AuditAction.CREATE,
        resource="inventory_movement",
        resource_id=movement.id,
        old_value={"stock": previous_stock},
        new_value={"stock": new_stock, "type": data.type.value, "quantity": data.quantity},
        request=request,
    )
    await db.commit()
    await db.refresh(movement)

    logger.info(
        "Inventory movement created",
        extra={
            "movementId": str(movement.id),
            "productId": str(product.id),
            "type": data.type.value,
            "quantity": data.quantity,
        },
    )
    return movement
