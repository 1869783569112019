# src/modules/inventory/schemas.py

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from src.common.schemas import CamelModel
from src.models.models import MovementType, ProductCategory


# ============================================================================
# REQUEST SCHEMAS
# ============================================================================

class ProductCreateRequest(CamelModel):
    name: str = Field(min_length=2, max_length=200)
    description: Optional[str] = None
    sku: str = Field(min_length=1, max_length=50)
    barcode: Optional[str] = Field(default=None, max_length=50)
    category: ProductCategory = ProductCategory.OTHER
    unit: str = Field(min_length=1, max_length=20)
    min_stock: int = Field(default=0, ge=0)
    max_stock: Optional[int] = Field(default=None, ge=0)
    current_stock: int = Field(default=0, ge=0)
    cost_price: Optional[float] = Field(default=None, ge=0)
    sale_price: Optional[float] = Field(default=None, ge=0)
    manufacturer: Optional[str] = None
    supplier: Optional[str] = None
    location: Optional[str] = None
    requires_prescription: bool = False
    controlled_substance: bool = False
    anvisa_registry: Optional[str] = None
    expiration_alert_days: int = Field(default=30, ge=0)


class ProductUpdateRequest(CamelModel):
    """Stock is only changed through movements."""
    name: Optional[str] = Field(default=None, min_length=2, max_length=200)
    description: Optional[str] = None
    sku: Optional[str] = Field(default=None, min_length=1, max_length=50)
    barcode: Optional[str] = Field(default=None, max_length=50)
    category: Optional[ProductCategory] = None
    unit: Optional[str] = Field(default=None, min_length=1, max_length=20)
    min_stock: Optional[int] = Field(default=None, ge=0)
    max_stock: Optional[int] = Field(default=None, ge=0)
    cost_price: Optional[float] = Field(default=None, ge=0)
    sale_price: Optional[float] = Field(default=None, ge=0)
    manufacturer: Optional[str] = None
    supplier: Optional[str] = None
    location: Optional[str] = None
    requires_prescription: Optional[bool] = None
    controlled_substance: Optional[bool] = None
    anvisa_registry: Optional[str] = None
    expiration_alert_days: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class MovementCreateRequest(CamelModel):
    product_id: UUID
    type: MovementType
    quantity: int = Field(gt=0)
    unit_cost: Optional[float] = Field(default=None, ge=0)
    batch_number: Optional[str] = Field(default=None, max_length=50)
    expiration_date: Optional[date] = None
    reason: Optional[str] = None
    reference_id: Optional[str] = None
    reference_type: Optional[str] = None


# ============================================================================
# RESPONSE SCHEMAS
# ============================================================================

class ProductResponse(CamelModel):
    id: UUID
    tenant_id: UUID
    name: str
    description: Optional[str] = None
    sku: str
    barcode: Optional[str] = None
    category: ProductCategory
    unit: str
    min_stock: int
    max_stock: Optional[int] = None
    current_stock: int
    cost_price: Optional[float] = None
    sale_price: Optional[float] = None
    manufacturer: Optional[str] = None
    supplier: Optional[str] = None
    location: Optional[str] = None
    requires_prescription: bool
    controlled_substance: bool
    anvisa_registry: Optional[str] = None
    expiration_alert_days: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class MovementUser(CamelModel):
    id: UUID
    name: str


class MovementProduct(CamelModel):
    id: UUID
    name: str
    sku: str
    unit: str


class MovementResponse(CamelModel):
    id: UUID
    product_id: UUID
    user_id: Optional[UUID] = None
    type: MovementType
    quantity: int
    unit_cost: Optional[float] = None
    batch_number: Optional[str] = None
    expiration_date: Optional[date] = None
    reason: Optional[str] = None
    reference_id: Optional[str] = None
    reference_type: Optional[str] = None
    previous_stock: int
    new_stock: int
    created_at: datetime
    user: Optional[MovementUser] = None
    product: Optional[MovementProduct] = None


class BatchInfo(CamelModel):
    batch_number: str
    quantity: int
    expiration_date: Optional[date] = None
    unit_cost: Optional[float] = None


class ProductDetailResponse(ProductResponse):
    recent_movements: List[MovementResponse] = []
    batches: List[BatchInfo] = []


class ExpiringBatch(CamelModel):
    batch_number: Optional[str] = None
    expiration_date: date
    quantity: int


class ExpiringProduct(CamelModel):
    product: ProductResponse
    batches: List[ExpiringBatch]


class CategoryCount(CamelModel):
    category: ProductCategory
    count: int
    total_stock: int


class InventorySummary(CamelModel):
    total_products: int
    total_items: int
    low_stock_count: int
    expiring_soon_count: int
    stock_value: float
    by_category: List[CategoryCount]


class CategoryOption(CamelModel):
    value: ProductCategory
    label: str
