import asyncio
from decimal import Decimal

import pytest

from fuelflow.models.cashbook import TransactionType
from fuelflow.repositories.cashbook_repo import AllocationRepository
from fuelflow.repositories.sale_repo import InvoiceRepository
from fuelflow.services.allocation_service import AllocationService
from fuelflow.utils.ledger_validation import (
    LedgerValidationError,
    NotFoundError,
    OverAllocationError,
)


@pytest.mark.asyncio
async def test_two_receipts_settle_invoice_and_third_is_rejected(test_db, make_invoice, make_entry):
    _, invoice = await make_invoice("INV-5670", sale_price="5.40")
    assert invoice.total_amount == Decimal("5670.00")
    first = await make_entry("3675.00")
    second = await make_entry("1995.00")
    third = await make_entry("500.00")
    service = AllocationService(test_db)
    invoices = InvoiceRepository(test_db)

    await service.create_allocation(first.id, invoice.id, "3675.00")
    assert (await invoices.get(invoice.id)).status == "Generated"

    await service.create_allocation(second.id, invoice.id, "1995.00")
    assert (await invoices.get(invoice.id)).status == "Paid"

    with pytest.raises(OverAllocationError) as exc_info:
        await service.create_allocation(third.id, invoice.id, "0.01")
    assert exc_info.value.remaining == Decimal("0.00")
    assert len(await AllocationRepository(test_db).list_by_invoice(invoice.id)) == 2


@pytest.mark.asyncio
async def test_one_receipt_split_across_three_invoices(test_db, make_invoice, make_entry):
    _, inv_a = await make_invoice("INV-A")
    _, inv_b = await make_invoice("INV-B", sale_price="5.40")
    _, inv_c = await make_invoice("INV-C")
    entry = await make_entry("12000.00")
    service = AllocationService(test_db)

    await service.create_allocation(entry.id, inv_a.id, "3675.00")
    await service.create_allocation(entry.id, inv_b.id, "5670.00")
    await service.create_allocation(entry.id, inv_c.id, "2655.00")

    allocations = AllocationRepository(test_db)
    assert await allocations.allocated_for_entry(entry.id) == Decimal("12000.00")

    with pytest.raises(OverAllocationError) as exc_info:
        await service.create_allocation(entry.id, inv_c.id, "0.01")
    assert exc_info.value.remaining == Decimal("0.00")

    invoices = InvoiceRepository(test_db)
    assert (await invoices.get(inv_a.id)).status == "Paid"
    assert (await invoices.get(inv_b.id)).status == "Paid"
    assert (await invoices.get(inv_c.id)).status == "Generated"


@pytest.mark.asyncio
async def test_invoice_cap_reports_pending_balance(test_db, make_invoice, make_entry):
    _, invoice = await make_invoice("INV-1")
    entry = await make_entry("5000.00")

    with pytest.raises(OverAllocationError) as exc_info:
        await AllocationService(test_db).create_allocation(entry.id, invoice.id, "3675.01")

    assert exc_info.value.remaining == Decimal("3675.00")
    assert "INV-1" in str(exc_info.value)


@pytest.mark.asyncio
async def test_rejects_non_positive_amount(test_db, make_invoice, make_entry):
    _, invoice = await make_invoice("INV-1")
    entry = await make_entry("100.00")

    for amount in ("0", "-5"):
        with pytest.raises(LedgerValidationError):
            await AllocationService(test_db).create_allocation(entry.id, invoice.id, amount)


@pytest.mark.asyncio
async def test_only_settled_inflows_fund_invoices(test_db, make_invoice, make_entry, supplier_head):
    _, invoice = await make_invoice("INV-1")
    outflow = await make_entry(
        "100.00",
        transaction_type=TransactionType.SUPPLIER_PAYMENT,
        is_inflow=False,
        account_head_id=supplier_head.id
    )
    pending = await make_entry("100.00", is_pending=True)
    service = AllocationService(test_db)

    with pytest.raises(LedgerValidationError):
        await service.create_allocation(outflow.id, invoice.id, "50.00")
    with pytest.raises(LedgerValidationError):
        await service.create_allocation(pending.id, invoice.id, "50.00")


@pytest.mark.asyncio
async def test_missing_entry_or_invoice(test_db, make_invoice, make_entry):
    _, invoice = await make_invoice("INV-1")
    entry = await make_entry("100.00")
    service = AllocationService(test_db)

    with pytest.raises(NotFoundError):
        await service.create_allocation("65a000000000000000000000", invoice.id, "10")
    with pytest.raises(NotFoundError):
        await service.create_allocation(entry.id, "65a000000000000000000000", "10")


@pytest.mark.asyncio
async def test_concurrent_allocations_cannot_exceed_invoice_total(test_db, make_invoice, make_entry):
    _, invoice = await make_invoice("INV-1")
    entry_a = await make_entry("3000.00")
    entry_b = await make_entry("3000.00")
    service = AllocationService(test_db)

    results = await asyncio.gather(
        service.create_allocation(entry_a.id, invoice.id, "3000.00"),
        service.create_allocation(entry_b.id, invoice.id, "3000.00"),
        return_exceptions=True
    )

    failures = [r for r in results if isinstance(r, OverAllocationError)]
    assert len(failures) == 1
    assert await AllocationRepository(test_db).allocated_for_invoice(invoice.id) == Decimal("3000.00")


@pytest.mark.asyncio
async def test_allocation_lookups(test_db, make_invoice, make_entry):
    _, invoice = await make_invoice("INV-1")
    entry = await make_entry("1000.00")
    service = AllocationService(test_db)
    await service.create_allocation(entry.id, invoice.id, "600.00")

    by_entry = await service.get_allocations_by_entry(entry.id)
    by_invoice = await service.get_allocations_by_invoice(invoice.id)

    assert [a.invoice_number for a in by_entry] == ["INV-1"]
    assert by_invoice[0].amount_allocated == Decimal("600.00")
    assert by_invoice[0].cashbook_entry_id == entry.id


@pytest.mark.asyncio
async def test_pending_invoices_for_allocation(test_db, make_invoice, make_entry, acme_head, supplier_head):
    _, partly_paid = await make_invoice("INV-1")
    _, paid = await make_invoice("INV-2")
    entry = await make_entry("5000.00")
    service = AllocationService(test_db)
    await service.create_allocation(entry.id, partly_paid.id, "1000.00")
    await service.create_allocation(entry.id, paid.id, "3675.00")

    pending = await service.get_pending_invoices_for_allocation()
    assert [p.invoice_number for p in pending] == ["INV-1"]
    assert pending[0].pending_amount == Decimal("2675.00")
    assert pending[0].client_name == "Acme Construction"

    scoped = await service.get_pending_invoices_for_allocation(acme_head.id)
    assert [p.invoice_id for p in scoped] == [partly_paid.id]

    assert await service.get_pending_invoices_for_allocation(supplier_head.id) == []

    with pytest.raises(NotFoundError):
        await service.get_pending_invoices_for_allocation("65a000000000000000000000")
