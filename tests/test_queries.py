"""Tests for read-side queries."""

from datetime import datetime
from decimal import Decimal

import pytest

from afactura.models.invoice import Invoice, InvoiceItem, InvoiceStatus
from afactura.queries import QueryExecutor
from afactura.services.storage import Collection

from tests.conftest import CLIENT_C1


async def add_invoice(store, number: int, status: InvoiceStatus, price: str) -> None:
    invoice = Invoice(
        series="2025A",
        number=number,
        date=datetime(2025, 1, number),
        due_date=datetime(2025, 2, 1),
        client_id="c1",
        client_name="Cliente Particular",
        client_nif="999999999",
        items=[InvoiceItem(description="Item", unit_price=Decimal(price))],
        status=status,
    )
    await store.add(Collection.INVOICES, invoice.to_record())


@pytest.fixture
def queries(store) -> QueryExecutor:
    return QueryExecutor(store)


class TestDashboard:
    """Tests for the dashboard summary."""

    @pytest.mark.asyncio
    async def test_empty(self, queries):
        summary = await queries.dashboard_summary()
        assert summary.total_revenue == Decimal("0.00")
        assert summary.invoice_count == 0

    @pytest.mark.asyncio
    async def test_revenue_excludes_drafts_and_cancelled(self, store, queries):
        await add_invoice(store, 1, InvoiceStatus.ISSUED, "100")
        await add_invoice(store, 2, InvoiceStatus.PAID, "200")
        await add_invoice(store, 3, InvoiceStatus.DRAFT, "1000")
        await add_invoice(store, 4, InvoiceStatus.CANCELLED, "1000")

        summary = await queries.dashboard_summary()
        assert summary.total_revenue == Decimal("342.00")
        assert summary.pending_count == 1
        assert summary.draft_count == 1
        assert summary.invoice_count == 4


class TestInvoiceList:
    """Tests for invoice listing."""

    @pytest.mark.asyncio
    async def test_highest_number_first(self, store, queries):
        for number in (2, 10, 1):
            await add_invoice(store, number, InvoiceStatus.ISSUED, "1")
        assert [i.number for i in await queries.list_invoices()] == [10, 2, 1]

    @pytest.mark.asyncio
    async def test_filter_by_status(self, store, queries):
        await add_invoice(store, 1, InvoiceStatus.ISSUED, "1")
        await add_invoice(store, 2, InvoiceStatus.DRAFT, "1")
        drafts = await queries.list_invoices(InvoiceStatus.DRAFT)
        assert [i.number for i in drafts] == [2]

    @pytest.mark.asyncio
    async def test_get_missing(self, queries):
        assert await queries.get_invoice("nope") is None


class TestClientSearch:
    """Tests for client search by name or NIF."""

    @pytest.mark.asyncio
    async def test_search(self, store, queries):
        await store.add(Collection.CLIENTS, dict(CLIENT_C1))
        await store.add(Collection.CLIENTS, {"id": "c2", "name": "Sonangol EP", "nif": "5000000000"})

        assert [c.id for c in await queries.search_clients("sonangol")] == ["c2"]
        assert [c.id for c in await queries.search_clients("9999")] == ["c1"]
        assert len(await queries.search_clients("  ")) == 2
        assert await queries.search_clients("Unitel") == []


class TestRecentLogs:
    """Tests for the logs viewer query."""

    @pytest.mark.asyncio
    async def test_newest_first_limited(self, audit, queries):
        for i in range(5):
            await audit.record("LOGIN", f"event {i}")
        logs = await queries.recent_logs(limit=3)
        assert [log.detail for log in logs] == ["event 4", "event 3", "event 2"]
