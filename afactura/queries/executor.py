"""
Read-Side Queries

DESIGN DECISION: Query execution is DETERMINISTIC and read-only.
Everything shown on the dashboard, invoice list, client search and logs
viewer is computed here from stored records; nothing is cached.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from afactura.models.audit import AuditLogEntry
from afactura.models.invoice import Client, Invoice, InvoiceStatus
from afactura.services.storage import Collection, RecordStoreInterface

# Documents that do not count as revenue
NON_REVENUE_STATUSES = frozenset({InvoiceStatus.DRAFT, InvoiceStatus.CANCELLED})


class DashboardSummary(BaseModel):
    total_revenue: Decimal = Field(default=Decimal("0.00"))
    pending_count: int = Field(default=0, ge=0, description="Issued, not yet paid")
    draft_count: int = Field(default=0, ge=0)
    invoice_count: int = Field(default=0, ge=0)


class QueryExecutor:
    """
    Executes read queries against the record store.

    GUARANTEES:
    - Only returns real data from storage
    - Never modifies stored records
    """

    def __init__(self, store: RecordStoreInterface, recent_logs_limit: int = 100):
        self._store = store
        self._recent_logs_limit = recent_logs_limit

    async def list_invoices(
        self,
        status: Optional[InvoiceStatus] = None,
    ) -> list[Invoice]:
        """All invoices, highest number first."""
        invoices = [
            Invoice.model_validate(record)
            for record in await self._store.list_all(Collection.INVOICES)
        ]
        if status is not None:
            invoices = [i for i in invoices if i.status == status]
        return sorted(invoices, key=lambda i: (i.series, i.number), reverse=True)

    async def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        record = await self._store.get(Collection.INVOICES, invoice_id)
        return Invoice.model_validate(record) if record is not None else None

    async def dashboard_summary(self) -> DashboardSummary:
        invoices = await self.list_invoices()
        revenue = sum(
            (i.total for i in invoices if i.status not in NON_REVENUE_STATUSES),
            Decimal("0.00"),
        )
        return DashboardSummary(
            total_revenue=revenue,
            pending_count=sum(1 for i in invoices if i.status == InvoiceStatus.ISSUED),
            draft_count=sum(1 for i in invoices if i.status == InvoiceStatus.DRAFT),
            invoice_count=len(invoices),
        )

    async def list_clients(self) -> list[Client]:
        return [
            Client.model_validate(record)
            for record in await self._store.list_all(Collection.CLIENTS)
        ]

    async def search_clients(self, term: str) -> list[Client]:
        """Case-insensitive match on name, or substring match on NIF."""
        term = term.strip()
        clients = await self.list_clients()
        if not term:
            return clients
        lowered = term.lower()
        return [
            c for c in clients
            if lowered in c.name.lower() or term in c.nif
        ]

    async def recent_logs(self, limit: Optional[int] = None) -> list[AuditLogEntry]:
        """Latest audit entries, newest first."""
        records = await self._store.latest(
            Collection.LOGS,
            order_by="timestamp",
            limit=limit if limit is not None else self._recent_logs_limit,
        )
        return [AuditLogEntry.model_validate(record) for record in records]
