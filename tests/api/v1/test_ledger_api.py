"""
End-to-end tests of the HTTP layer against the in-memory database.
"""
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from fuelflow.db.mongo import get_db
from fuelflow.main import app


@pytest_asyncio.fixture
async def api(test_db):
    app.dependency_overrides[get_db] = lambda: test_db
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.clear()


async def _invoiced_sale(api, invoice_number="INV-1", sale_price="3.50"):
    client = (await api.post("/api/v1/clients/", json={"name": "Acme Construction"})).json()
    sale = (await api.post("/api/v1/sales/", json={
        "client_id": client["id"],
        "sale_date": "2024-01-15T00:00:00Z",
        "quantity_gallons": "1000",
        "sale_price_per_gallon": sale_price,
        "purchase_price_per_gallon": "2.85",
        "lpo_number": "LPO-001",
        "sale_status": "LPO Received"
    })).json()
    invoice = (await api.post("/api/v1/invoices/", json={
        "sale_id": sale["id"],
        "invoice_number": invoice_number,
        "invoice_date": "2024-01-16T00:00:00Z"
    })).json()
    return client, sale, invoice


@pytest.mark.asyncio
async def test_root(api):
    response = await api.get("/")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_lifespan_connects_and_disconnects():
    with patch("fuelflow.main.connect_to_mongo", new_callable=AsyncMock) as connect, \
            patch("fuelflow.main.disconnect_from_mongo", new_callable=AsyncMock) as disconnect:
        async with app.router.lifespan_context(app):
            connect.assert_awaited_once()
            disconnect.assert_not_awaited()

    disconnect.assert_awaited_once()


@pytest.mark.asyncio
async def test_financials_preview(api):
    response = await api.post("/api/v1/sales/financials", json={
        "quantity_gallons": 1000,
        "sale_price_per_gallon": "3.50",
        "purchase_price_per_gallon": "2.85",
        "vat_percentage": 5
    })

    assert response.status_code == 200
    assert response.json() == {
        "subtotal": "3500.00",
        "vat_amount": "175.00",
        "total_amount": "3675.00",
        "cogs": "2850.00",
        "gross_profit": "650.00"
    }


@pytest.mark.asyncio
async def test_financials_preview_rejects_zero_quantity(api):
    response = await api.post("/api/v1/sales/financials", json={
        "quantity_gallons": 0,
        "sale_price_per_gallon": "3.50",
        "purchase_price_per_gallon": "2.85"
    })

    assert response.status_code == 400
    assert "quantity_gallons" in response.json()["detail"]


@pytest.mark.asyncio
async def test_payment_flow_and_balance(api):
    _, sale, invoice = await _invoiced_sale(api)
    assert sale["total_amount"] == "3675.00"
    assert invoice["status"] == "Generated"

    response = await api.post("/api/v1/payments/", json={
        "sale_id": sale["id"],
        "amount_received": "3675.00",
        "payment_date": "2024-01-20T00:00:00Z",
        "payment_method": "Bank Transfer"
    })
    assert response.status_code == 200
    payment = response.json()
    assert payment["amount_received"] == "3675.00"

    assert (await api.get(f"/api/v1/sales/{sale['id']}")).json()["sale_status"] == "Paid"
    invoice = (await api.get(f"/api/v1/invoices/{invoice['id']}")).json()
    assert invoice["status"] == "Paid"
    assert invoice["pending_amount"] == "0.00"
    assert (await api.get("/api/v1/cashbook/balance")).json() == {"balance": "3675.00"}

    entries = (await api.get("/api/v1/cashbook/")).json()
    assert entries[0]["allocation_status"] == "Fully Allocated"
    allocations = (await api.get(f"/api/v1/cashbook/{entries[0]['id']}/allocations")).json()
    assert allocations[0]["invoice_number"] == "INV-1"

    response = await api.delete(f"/api/v1/payments/{payment['id']}")
    assert response.status_code == 200
    assert (await api.get(f"/api/v1/sales/{sale['id']}")).json()["sale_status"] == "Invoiced"


@pytest.mark.asyncio
async def test_over_allocation_maps_to_409_with_remaining(api):
    client, _, invoice = await _invoiced_sale(api)
    heads = (await api.get("/api/v1/account-heads/")).json()
    head_id = next(h["id"] for h in heads if h["client_id"] == client["id"])
    entry = (await api.post("/api/v1/cashbook/", json={
        "transaction_date": "2024-01-20T00:00:00Z",
        "transaction_type": "Other Income",
        "account_head_id": head_id,
        "amount": "5000.00",
        "is_inflow": True,
        "description": "Bank receipt"
    })).json()

    response = await api.post("/api/v1/allocations/", json={
        "cashbook_entry_id": entry["id"],
        "invoice_id": invoice["id"],
        "amount_allocated": "4000.00"
    })

    assert response.status_code == 409
    assert response.json()["remaining"] == "3675.00"

    pending = (await api.get("/api/v1/allocations/pending-invoices", params={"account_head_id": head_id})).json()
    assert pending[0]["pending_amount"] == "3675.00"


@pytest.mark.asyncio
async def test_error_mapping(api):
    missing = await api.get("/api/v1/sales/65a000000000000000000000")
    assert missing.status_code == 404

    _, sale, invoice = await _invoiced_sale(api)
    await api.post("/api/v1/payments/", json={
        "sale_id": sale["id"],
        "amount_received": "100.00",
        "payment_date": "2024-01-20T00:00:00Z",
        "payment_method": "Cash"
    })
    conflict = await api.delete(f"/api/v1/invoices/{invoice['id']}")
    assert conflict.status_code == 409

    bad_method = await api.post("/api/v1/payments/", json={
        "sale_id": sale["id"],
        "amount_received": "100.00",
        "payment_date": "2024-01-20T00:00:00Z",
        "payment_method": "Crypto"
    })
    assert bad_method.status_code == 422


@pytest.mark.asyncio
async def test_debt_settlement(api):
    head = (await api.post("/api/v1/account-heads/", json={
        "name": "Gulf Fuel Supply", "type": "Supplier"
    })).json()
    stock = (await api.post("/api/v1/stock/", json={
        "purchase_date": "2024-01-10T00:00:00Z",
        "quantity_gallons": "5000",
        "purchase_price_per_gallon": "2.85",
        "vat_percentage": "0",
        "supplier_account_head_id": head["id"],
        "on_credit": True
    })).json()
    assert stock["total_cost"] == "14250.00"

    debts = (await api.get("/api/v1/cashbook/debts")).json()
    assert [d["amount"] for d in debts] == ["14250.00"]
    assert (await api.get(f"/api/v1/account-heads/{head['id']}/outstanding")).json() == {"outstanding": "14250.00"}

    response = await api.post(f"/api/v1/cashbook/{debts[0]['id']}/settle", json={
        "paid_amount": "14250.00",
        "payment_method": "Bank Transfer",
        "payment_date": "2024-02-10T00:00:00Z"
    })
    assert response.status_code == 200
    assert response.json()["transaction_type"] == "Stock Payment"

    again = await api.post(f"/api/v1/cashbook/{debts[0]['id']}/settle", json={
        "paid_amount": "14250.00",
        "payment_method": "Bank Transfer",
        "payment_date": "2024-02-10T00:00:00Z"
    })
    assert again.status_code == 409

    summary = (await api.get("/api/v1/cashbook/summary")).json()
    assert summary["pending_debts"] == "0.00"
    assert summary["total_inflow"] == "0.00"
