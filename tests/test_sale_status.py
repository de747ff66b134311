"""Tests for status derivation and the keyed lock registry."""
import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from fuelflow.models.sale import Sale, SaleStatus
from fuelflow.services.status_service import (
    derive_invoice_status,
    derive_sale_status,
    status_changes,
)
from fuelflow.utils.locks import KeyedLocks, lock_key

TOTAL = Decimal("3675.00")


def _sale(**overrides) -> Sale:
    data = dict(
        client_id="65a000000000000000000001",
        sale_date=datetime(2024, 1, 15, tzinfo=timezone.utc),
        quantity_gallons="1000",
        sale_price_per_gallon="3.50",
        purchase_price_per_gallon="2.85",
        total_amount=TOTAL
    )
    data.update(overrides)
    return Sale(**data)


class TestDeriveSaleStatus:
    def test_fully_paid(self):
        assert derive_sale_status("Invoiced", TOTAL, TOTAL) == "Paid"

    def test_overpaid_is_paid(self):
        assert derive_sale_status("Invoiced", TOTAL + 1, TOTAL) == "Paid"

    def test_within_tolerance_is_paid(self):
        assert derive_sale_status("Invoiced", Decimal("3674.995"), TOTAL) == "Paid"

    def test_partial_keeps_invoiced(self):
        assert derive_sale_status("Invoiced", Decimal("1000.00"), TOTAL) == "Invoiced"

    def test_paid_reverts_to_invoiced(self):
        assert derive_sale_status("Paid", Decimal("0.00"), TOTAL) == "Invoiced"

    def test_pre_invoice_status_unchanged(self):
        assert derive_sale_status("LPO Received", Decimal("100.00"), TOTAL) == "LPO Received"
        assert derive_sale_status("Pending LPO", Decimal("0.00"), TOTAL) == "Pending LPO"

    def test_full_payment_before_invoice_is_paid(self):
        assert derive_sale_status("LPO Received", TOTAL, TOTAL) == "Paid"

    def test_no_payments_never_paid(self):
        assert derive_sale_status("Invoiced", Decimal("0.00"), Decimal("0.00")) == "Invoiced"


class TestDeriveInvoiceStatus:
    def test_invoice_status(self):
        assert derive_invoice_status(Decimal("5670.00"), Decimal("5670.00")) == "Paid"
        assert derive_invoice_status(Decimal("3675.00"), Decimal("5670.00")) == "Generated"
        assert derive_invoice_status(Decimal("0.00"), Decimal("5670.00")) == "Generated"


class TestStatusChanges:
    def test_entering_invoiced_sets_invoice_date(self):
        now = datetime(2024, 2, 1, tzinfo=timezone.utc)
        changes = status_changes(_sale(), SaleStatus.INVOICED.value, now=now)
        assert changes == {"sale_status": "Invoiced", "invoice_date": now}

    def test_existing_invoice_date_is_kept(self):
        sale = _sale(invoice_date=datetime(2024, 1, 20, tzinfo=timezone.utc))
        assert status_changes(sale, "Paid") == {"sale_status": "Paid"}

    def test_leaving_does_not_clear_invoice_date(self):
        sale = _sale(sale_status="Invoiced", invoice_date=datetime(2024, 1, 20, tzinfo=timezone.utc))
        assert status_changes(sale, "LPO Received") == {"sale_status": "LPO Received"}

    def test_unknown_status(self):
        with pytest.raises(ValueError):
            status_changes(_sale(), "Shipped")


class TestKeyedLocks:
    def test_lock_key(self):
        assert lock_key("invoice", "abc") == "invoice:abc"
        assert lock_key("invoice", None) is None

    @pytest.mark.asyncio
    async def test_same_key_serializes(self):
        locks = KeyedLocks()
        events = []

        async def worker(name):
            async with locks.hold(["invoice:1"]):
                events.append(f"{name}-in")
                await asyncio.sleep(0.01)
                events.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))

        assert events in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])

    @pytest.mark.asyncio
    async def test_overlapping_keys_in_any_order_do_not_deadlock(self):
        locks = KeyedLocks()

        async def worker(keys):
            async with locks.hold(keys):
                await asyncio.sleep(0.01)

        await asyncio.wait_for(asyncio.gather(
            worker(["invoice:1", "cashbook:2"]),
            worker(["cashbook:2", "invoice:1"]),
        ), timeout=1)

    @pytest.mark.asyncio
    async def test_idle_locks_are_dropped(self):
        locks = KeyedLocks()
        async with locks.hold(["sale:1", None, "sale:1"]):
            assert set(locks._locks) == {"sale:1"}
        assert locks._locks == {}
        assert locks._holders == {}
