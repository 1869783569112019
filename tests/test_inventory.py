"""
Inventory tests: products, stock movements and batches
"""
from datetime import timedelta

import pytest

from src.common.utils.global_functions import utcnow
from src.models.models import MovementType, UserRole
from src.modules.inventory.inventory_service import next_stock


async def move(client, clinic, product, movement_type, quantity, role=UserRole.NURSE, **extra):
    return await client.post(
        "/api/v1/inventory/movements",
        json={"productId": str(product.id), "type": movement_type, "quantity": quantity, **extra},
        headers=clinic.headers(role),
    )


async def stock_of(client, clinic, product):
    response = await client.get(f"/api/v1/inventory/products/{product.id}", headers=clinic.headers())
    return response.json()["data"]["currentStock"]


@pytest.mark.unit
@pytest.mark.parametrize(
    "movement_type,current,quantity,expected",
    [
        (MovementType.IN, 10, 5, 15),
        (MovementType.TRANSFER, 10, 5, 15),
        (MovementType.OUT, 10, 4, 6),
        (MovementType.EXPIRED, 10, 10, 0),
        (MovementType.ADJUSTMENT, 10, 3, 3),
        (MovementType.OUT, 2, 5, -3),
    ],
)
def test_next_stock(movement_type, current, quantity, expected):
    assert next_stock(movement_type, current, quantity) == expected


@pytest.mark.integration
async def test_create_product(client, clinic):
    response = await client.post(
        "/api/v1/inventory/products",
        json={
            "name": "Luva de procedimento M",
            "sku": "LUVA-M",
            "barcode": "7891234567890",
            "category": "CONSUMABLE",
            "unit": "caixa",
            "minStock": 10,
            "costPrice": 32.9,
        },
        headers=clinic.headers(UserRole.RECEPTIONIST),
    )
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["sku"] == "LUVA-M"
    assert data["currentStock"] == 0
    assert data["isActive"] is True


@pytest.mark.integration
async def test_duplicate_sku_and_barcode(client, clinic, other_clinic, make_product):
    await make_product(clinic, sku="DIP-500", barcode="789000111")
    body = {"name": "Dipirona 500mg", "sku": "DIP-500", "unit": "caixa"}

    response = await client.post("/api/v1/inventory/products", json=body, headers=clinic.headers())
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "SKU_EXISTS"

    response = await client.post(
        "/api/v1/inventory/products",
        json={**body, "sku": "DIP-500-B", "barcode": "789000111"},
        headers=clinic.headers(),
    )
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "BARCODE_EXISTS"

    response = await client.post("/api/v1/inventory/products", json=body, headers=other_clinic.headers())
    assert response.status_code == 201


@pytest.mark.integration
async def test_movements_update_stock(client, clinic, make_product):
    product = await make_product(clinic)

    response = await move(client, clinic, product, "IN", 20, batchNumber="L001")
    assert response.status_code == 201
    movement = response.json()["data"]
    assert (movement["previousStock"], movement["newStock"]) == (0, 20)
    assert movement["user"]["id"] == str(clinic.user(UserRole.NURSE).id)

    await move(client, clinic, product, "OUT", 8)
    assert await stock_of(client, clinic, product) == 12

    await move(client, clinic, product, "ADJUSTMENT", 15, reason="Inventario mensal")
    assert await stock_of(client, clinic, product) == 15


@pytest.mark.integration
async def test_insufficient_stock(client, clinic, make_product):
    product = await make_product(clinic, current_stock=3)
    response = await move(client, clinic, product, "OUT", 5)
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "INSUFFICIENT_STOCK"
    assert error["details"] == {"currentStock": 3, "requested": 5}
    assert await stock_of(client, clinic, product) == 3


@pytest.mark.integration
async def test_movement_quantity_must_be_positive(client, clinic, make_product):
    product = await make_product(clinic)
    response = await move(client, clinic, product, "IN", 0)
    assert response.status_code == 400
    assert response.json()["error"]["details"]["errors"][0]["field"] == "quantity"


@pytest.mark.integration
async def test_receptionist_cannot_move_stock(client, clinic, make_product):
    product = await make_product(clinic)
    response = await move(client, clinic, product, "IN", 1, role=UserRole.RECEPTIONIST)
    assert response.status_code == 403


@pytest.mark.integration
async def test_batches_are_consumed_first_expiring_first(client, clinic, make_product):
    product = await make_product(clinic)
    today = utcnow().date()
    await move(client, clinic, product, "IN", 10, batchNumber="LATE", expirationDate=str(today + timedelta(days=200)))
    await move(client, clinic, product, "IN", 10, batchNumber="SOON", expirationDate=str(today + timedelta(days=20)))
    await move(client, clinic, product, "OUT", 12)

    response = await client.get(f"/api/v1/inventory/products/{product.id}/batches", headers=clinic.headers())
    assert response.status_code == 200
    batches = response.json()["data"]
    assert [(b["batchNumber"], b["quantity"]) for b in batches] == [("LATE", 8)]


@pytest.mark.integration
async def test_low_stock_and_expiring(client, clinic, make_product):
    low = await make_product(clinic, current_stock=2, min_stock=5)
    stocked = await make_product(clinic, current_stock=50, min_stock=5)
    soon = str((utcnow() + timedelta(days=10)).date())
    await move(client, clinic, stocked, "IN", 5, batchNumber="L9", expirationDate=soon)

    response = await client.get("/api/v1/inventory/products/low-stock", headers=clinic.headers(UserRole.NURSE))
    assert [p["id"] for p in response.json()["data"]] == [str(low.id)]

    response = await client.get("/api/v1/inventory/products/expiring?days=30", headers=clinic.headers(UserRole.NURSE))
    expiring = response.json()["data"]
    assert len(expiring) == 1
    assert expiring[0]["product"]["id"] == str(stocked.id)
    assert expiring[0]["batches"] == [{"batchNumber": "L9", "expirationDate": soon, "quantity": 5}]


@pytest.mark.integration
async def test_product_with_movements_cannot_be_deleted(client, clinic, make_product):
    product = await make_product(clinic)
    await move(client, clinic, product, "IN", 1)
    response = await client.delete(f"/api/v1/inventory/products/{product.id}", headers=clinic.headers())
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "PRODUCT_HAS_MOVEMENTS"


@pytest.mark.integration
async def test_delete_unused_product(client, clinic, make_product):
    product = await make_product(clinic)
    response = await client.delete(f"/api/v1/inventory/products/{product.id}", headers=clinic.headers())
    assert response.json() == {"success": True, "message": "Product deleted successfully"}

    response = await client.get(f"/api/v1/inventory/products/{product.id}", headers=clinic.headers())
    assert response.status_code == 404


@pytest.mark.integration
async def test_inventory_summary(client, clinic, make_product):
    await make_product(clinic, current_stock=10, cost_price=2.5)
    await make_product(clinic, current_stock=1, min_stock=5, cost_price=10)

    response = await client.get("/api/v1/inventory/summary", headers=clinic.headers(UserRole.NURSE))
    assert response.status_code == 200
    summary = response.json()["data"]
    assert summary["totalProducts"] == 2
    assert summary["totalItems"] == 11
    assert summary["lowStockCount"] == 1
    assert summary["stockValue"] == 35.0
