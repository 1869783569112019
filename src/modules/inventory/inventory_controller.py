# src/modules/inventory/inventory_controller.py

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.guards import get_tenant_id, nurse_guard, receptionist_guard, tenant_admin_guard
from src.auth.schemas import AuthUser
from src.common.database.database import get_db_session
from src.common.schemas import ApiResponse, MessageResponse
from src.common.utils.pagination import PaginationParams
from src.models.models import MovementType, Product, ProductCategory
from src.modules.inventory import inventory_service as service
from src.modules.inventory import schemas

router = APIRouter(prefix="/inventory", tags=["Inventory"])


# ============================================================================
# PRODUCTS
# ============================================================================

@router.get("/products", response_model=ApiResponse[List[schemas.ProductResponse]])
async def list_products(
    params: PaginationParams = Depends(),
    search: Optional[str] = Query(None),
    category: Optional[ProductCategory] = Query(None),
    low_stock: Optional[bool] = Query(None, alias="lowStock"),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    products, meta = await service.list_products(db, tenant_id, params, search, category, low_stock, is_active)
    return ApiResponse(data=products, meta=meta)


@router.get("/products/low-stock", response_model=ApiResponse[List[schemas.ProductResponse]])
async def list_low_stock(
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    """Products at or below their minimum stock."""
    return ApiResponse(data=await service.list_low_stock(db, tenant_id))


@router.get("/products/expiring", response_model=ApiResponse[List[schemas.ExpiringProduct]])
async def list_expiring(
    days: int = Query(30, ge=1, le=365),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    return ApiResponse(data=await service.list_expiring(db, tenant_id, days))


@router.get("/products/sku/{sku}", response_model=ApiResponse[schemas.ProductResponse])
async def get_product_by_sku(
    sku: str,
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    return ApiResponse(data=await service.get_product_by(db, tenant_id, Product.sku, sku))


@router.get("/products/barcode/{barcode}", response_model=ApiResponse[schemas.ProductResponse])
async def get_product_by_barcode(
    barcode: str,
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    return ApiResponse(data=await service.get_product_by(db, tenant_id, Product.barcode, barcode))


@router.get("/products/{product_id}", response_model=ApiResponse[schemas.ProductDetailResponse])
async def get_product(
    product_id: UUID,
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    """Product with its last movements and current batch balances."""
    return ApiResponse(data=await service.get_product_detail(db, tenant_id, product_id))


@router.get("/products/{product_id}/batches", response_model=ApiResponse[List[schemas.BatchInfo]])
async def get_product_batches(
    product_id: UUID,
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    await service.get_product(db, tenant_id, product_id)
    return ApiResponse(data=await service.get_product_batches(db, tenant_id, product_id))


@router.get("/products/{product_id}/movements", response_model=ApiResponse[List[schemas.MovementResponse]])
async def list_product_movements(
    product_id: UUID,
    params: PaginationParams = Depends(),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    movements, meta = await service.list_product_movements(db, tenant_id, product_id, params)
    return ApiResponse(data=movements, meta=meta)


@router.post("/products", response_model=ApiResponse[schemas.ProductResponse], status_code=status.HTTP_201_CREATED)
async def create_product(
    data: schemas.ProductCreateRequest,
    request: Request,
    current_user: AuthUser = Depends(receptionist_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    product = await service.create_product(db, tenant_id, data, current_user, request)
    return ApiResponse(data=product)


@router.patch("/products/{product_id}", response_model=ApiResponse[schemas.ProductResponse])
async def update_product(
    product_id: UUID,
    data: schemas.ProductUpdateRequest,
    request: Request,
    current_user: AuthUser = Depends(receptionist_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    product = await service.update_product(db, tenant_id, product_id, data, current_user, request)
    return ApiResponse(data=product)


@router.delete("/products/{product_id}", response_model=MessageResponse)
async def delete_product(
    product_id: UUID,
    request: Request,
    current_user: AuthUser = Depends(tenant_admin_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    """Products with movements cannot be deleted; deactivate them instead."""
    await service.delete_product(db, tenant_id, product_id, current_user, request)
    return MessageResponse(message="Product deleted successfully")


# ============================================================================
# MOVEMENTS
# ============================================================================

@router.get("/movements", response_model=ApiResponse[List[schemas.MovementResponse]])
async def list_movements(
    params: PaginationParams = Depends(),
    product_id: Optional[UUID] = Query(None, alias="productId"),
    movement_type: Optional[MovementType] = Query(None, alias="type"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    movements, meta = await service.list_movements(
        db, tenant_id, params, product_id, movement_type, start_date, end_date
    )
    return ApiResponse(data=movements, meta=meta)


@router.post("/movements", response_model=ApiResponse[schemas.MovementResponse], status_code=status.HTTP_201_CREATED)
async def create_movement(
    data: schemas.MovementCreateRequest,
    request: Request,
    current_user: AuthUser = Depends(nurse_guard),
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    """
    Register a stock movement.

    IN and TRANSFER add to the stock, OUT and EXPIRED subtract from it and
    ADJUSTMENT sets it to **quantity**.
    """
    movement = await service.create_movement(db, tenant_id, data, current_user, request)
    return ApiResponse(data=movement)


# ============================================================================
# OVERVIEW
# ============================================================================

@router.get("/summary", response_model=ApiResponse[schemas.InventorySummary])
async def get_summary(
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db_session),
):
    return ApiResponse(data=await service.get_summary(db, tenant_id))


@router.get("/categories", response_model=ApiResponse[List[schemas.CategoryOption]])
async def list_categories(tenant_id: UUID = Depends(get_tenant_id)):
    return ApiResponse(data=service.get_categories())
