"""
Main Orchestrator for AFACTURA

This module ties together all the components and defines the
end-to-end flows for:
1. Invoicing (draft -> validate -> number -> store -> audit)
2. Document status tracking and AGT export
3. Encrypted backup and restore

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is stored that failed validation
- Every operation takes an explicit SessionContext
- Every state change is audited

Audit entries for business actions are dispatched to the recorder's
background worker; backup/restore lifecycle entries are awaited inside
BackupService so they land in order around the snapshot.
"""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import structlog

from afactura.audit import AuditTrailRecorder
from afactura.backup import BackupArtifact, BackupService
from afactura.config import AppSettings, configure_logging, get_settings
from afactura.models.audit import AuditAction
from afactura.models.invoice import (
    Client,
    Invoice,
    InvoiceDraft,
    InvoiceStatus,
    InvoiceTrailEntry,
    can_transition,
)
from afactura.models.settings import (
    InvoiceNumbering,
    InvoiceSeriesSetting,
    SettingKey,
    parse_setting,
    setting_to_record,
)
from afactura.models.validation import ValidationResult
from afactura.queries import QueryExecutor
from afactura.services.export import ExportArtifact, export_invoice
from afactura.services.storage import (
    Collection,
    InMemoryRecordStore,
    JsonFileRecordStore,
    NotFoundError,
    RecordStoreInterface,
)
from afactura.session import (
    SessionContext,
    SessionManager,
    load_profile,
    require_authenticated,
)
from afactura.utils.helper import utc_now_iso
from afactura.validation import (
    InvoiceValidationError,
    InvoiceValidator,
    validate_client,
)


class InvalidStatusTransitionError(ValueError):
    """Requested status change is not allowed from the current status."""

    def __init__(self, current: InvoiceStatus, target: InvoiceStatus):
        self.current = current
        self.target = target
        super().__init__(f"Cannot change status from '{current.value}' to '{target.value}'")


class InvoicingFlow:
    """
    Orchestrates invoices and clients.

    Flow for a new document:
    1. Validate → client exists, lines are complete
    2. Number → next number of the current series
    3. Snapshot → copy client data into the invoice
    4. Save → store invoice, advance the series
    5. Audit → INVOICE_CREATE
    """

    def __init__(
        self,
        store: RecordStoreInterface,
        audit: AuditTrailRecorder,
        validator: Optional[InvoiceValidator] = None,
        series: str = "2025A",
    ):
        self._store = store
        self._audit = audit
        self._validator = validator or InvoiceValidator(store)
        self._series = series
        # Numbering is read-modify-write on the series setting
        self._numbering = asyncio.Lock()
        self._logger = structlog.get_logger(__name__)

    async def _load_numbering(self) -> InvoiceNumbering:
        record = await self._store.get(Collection.SETTINGS, SettingKey.INVOICE_SERIES.value)
        if record is not None:
            setting = parse_setting(record)
            if isinstance(setting, InvoiceSeriesSetting):
                return setting.value
        return InvoiceNumbering()

    async def _reserve_number(self) -> int:
        """
        Advance the current series and return the number taken.

        The counter is saved before the invoice, so a failed invoice write
        leaves a gap in the series instead of a repeated number.
        """
        numbering = await self._load_numbering()
        number = numbering.next_for(self._series)
        await self._store.put(
            Collection.SETTINGS,
            setting_to_record(InvoiceSeriesSetting(value=numbering.advanced(self._series))),
        )
        return number

    async def create_invoice(
        self,
        draft: InvoiceDraft,
        ctx: SessionContext,
    ) -> tuple[Invoice, ValidationResult]:
        """
        Validate, number and store a new document.

        Returns:
            (invoice, validation_result) - the result may carry warnings

        Raises:
            InvoiceValidationError: the draft has blocking issues
        """
        require_authenticated(ctx)

        result, client = await self._validator.validate_draft(draft)
        if result.has_errors or client is None:
            self._logger.info(
                "invoice_rejected",
                client_id=draft.client_id,
                errors=result.error_count,
            )
            raise InvoiceValidationError(result)

        async with self._numbering:
            number = await self._reserve_number()
            invoice = Invoice(
                series=self._series,
                number=number,
                type=draft.type,
                date=draft.date,
                due_date=draft.due_date,
                client_id=client.id,
                client_name=client.name,
                client_nif=client.nif,
                client_address=client.address or None,
                items=draft.items,
                status=draft.status,
                payment_method=draft.payment_method,
                audit_trail=[
                    InvoiceTrailEntry(
                        action="CREATED",
                        user=ctx.user,
                        timestamp=utc_now_iso(),
                        detail=f"Created with status {draft.status.value}",
                    )
                ],
            )
            await self._store.add(Collection.INVOICES, invoice.to_record())

        self._logger.info(
            "invoice_created",
            invoice_id=invoice.id,
            document=invoice.document_number,
            total=str(invoice.total),
        )
        self._audit.dispatch(
            AuditAction.INVOICE_CREATE,
            f"Invoice {invoice.document_number} created with status {invoice.status.value}",
            ctx.user,
        )
        return invoice, result

    async def _load_invoice(self, invoice_id: str) -> Invoice:
        record = await self._store.get(Collection.INVOICES, invoice_id)
        if record is None:
            raise NotFoundError(f"Invoice {invoice_id} not found")
        return Invoice.model_validate(record)

    async def change_invoice_status(
        self,
        invoice_id: str,
        status: InvoiceStatus,
        ctx: SessionContext,
    ) -> Invoice:
        """
        Move a document to a new status.

        Raises:
            NotFoundError: unknown invoice id
            InvalidStatusTransitionError: transition not allowed
        """
        require_authenticated(ctx)
        invoice = await self._load_invoice(invoice_id)
        previous = invoice.status

        if not can_transition(previous, status):
            raise InvalidStatusTransitionError(previous, status)

        detail = f"Status changed from {previous.value} to {status.value}"
        updated = invoice.model_copy(update={
            "status": status,
            "audit_trail": [
                *invoice.audit_trail,
                InvoiceTrailEntry(
                    action="STATUS_CHANGE",
                    user=ctx.user,
                    timestamp=utc_now_iso(),
                    detail=detail,
                ),
            ],
        })
        await self._store.put(Collection.INVOICES, updated.to_record())

        self._audit.dispatch(
            AuditAction.INVOICE_STATUS_CHANGE,
            f"Invoice {updated.document_number}: {detail}",
            ctx.user,
        )
        return updated

    async def add_client(self, client: Client, ctx: SessionContext) -> Client:
        """
        Store a new client.

        Raises:
            InvoiceValidationError: name or NIF missing
            DuplicateError: a client with this id already exists
        """
        require_authenticated(ctx)
        result = validate_client(client)
        if result.has_errors:
            raise InvoiceValidationError(result)

        await self._store.add(Collection.CLIENTS, client.model_dump(mode="json"))
        self._audit.dispatch(
            AuditAction.CLIENT_ADD,
            f"Client {client.name} ({client.nif}) added",
            ctx.user,
        )
        return client

    async def export_invoice(
        self,
        invoice_id: str,
        fmt: str,
        ctx: SessionContext,
    ) -> ExportArtifact:
        """AGT export ('xml' or 'json') issued by the session's company."""
        require_authenticated(ctx)
        invoice = await self._load_invoice(invoice_id)
        artifact = export_invoice(invoice, ctx.profile, fmt)
        self._audit.dispatch(
            AuditAction.INVOICE_EXPORT,
            f"Invoice {invoice.document_number} exported as {fmt.upper()}",
            ctx.user,
        )
        return artifact


class BackupFlow:
    """
    Session-aware wrapper around BackupService.

    Restoring replaces the profile along with everything else, so
    restore returns a refreshed SessionContext.
    """

    def __init__(
        self,
        store: RecordStoreInterface,
        backup_service: BackupService,
    ):
        self._store = store
        self._backup_service = backup_service

    @property
    def in_progress(self) -> bool:
        return self._backup_service.in_progress

    async def create_backup(
        self,
        password: str,
        ctx: SessionContext,
        directory: Optional[Path | str] = None,
    ) -> BackupArtifact:
        """Create a backup; optionally also write it into `directory`."""
        require_authenticated(ctx)
        artifact = await self._backup_service.create_backup(password, ctx.user)
        if directory is not None:
            await asyncio.to_thread(artifact.write_to, directory)
        return artifact

    async def restore_backup(
        self,
        content: bytes,
        password: str,
        ctx: SessionContext,
    ) -> SessionContext:
        require_authenticated(ctx)
        await self._backup_service.restore_backup(content, password, ctx.user)
        profile = await load_profile(self._store)
        if profile is None:
            return ctx
        return ctx.model_copy(update={"profile": profile})


@dataclass
class AppComponents:
    """Everything a front end needs, wired to one store and one recorder."""

    settings: AppSettings
    store: RecordStoreInterface
    audit: AuditTrailRecorder
    sessions: SessionManager
    invoicing: InvoicingFlow
    backups: BackupFlow
    queries: QueryExecutor


def create_app_components(
    settings: Optional[AppSettings] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Explicit settings; loaded from the environment if None.
                  A JSON-file store is used when store_path is set,
                  otherwise an in-memory store.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_json)

    store: RecordStoreInterface
    if settings.store_path is not None:
        store = JsonFileRecordStore(settings.store_path)
    else:
        store = InMemoryRecordStore()

    audit = AuditTrailRecorder(store, default_user=settings.default_user)
    backup_service = BackupService(
        store,
        audit,
        filename_prefix=settings.backup_filename_prefix,
    )

    structlog.get_logger(__name__).info(
        "components_created",
        store=type(store).__name__,
        series=settings.effective_invoice_series,
    )
    return AppComponents(
        settings=settings,
        store=store,
        audit=audit,
        sessions=SessionManager(store, audit, default_user=settings.default_user),
        invoicing=InvoicingFlow(store, audit, series=settings.effective_invoice_series),
        backups=BackupFlow(store, backup_service),
        queries=QueryExecutor(store, recent_logs_limit=settings.recent_logs_limit),
    )
