"""Integration tests for sessions and the invoicing and backup flows."""

from datetime import datetime
from decimal import Decimal

import pytest
import pytest_asyncio

from afactura.audit import AuditTrailRecorder
from afactura.backup import AuthenticationError
from afactura.config import AppSettings
from afactura.constants import DEFAULT_COMPANY
from afactura.models.invoice import (
    Client,
    CompanyProfile,
    InvoiceDraft,
    InvoiceItem,
    InvoiceStatus,
)
from afactura.orchestrator import (
    AppComponents,
    InvalidStatusTransitionError,
    InvoicingFlow,
    create_app_components,
)
from afactura.services.storage import (
    Collection,
    DuplicateError,
    JsonFileRecordStore,
    NotFoundError,
    StorageError,
)
from afactura.session import NotAuthenticatedError, SessionContext
from afactura.validation import InvoiceValidationError

from tests.conftest import CLIENT_C1, FlakyRecordStore

PASSWORD = "correcthorse"


def make_draft(**overrides) -> InvoiceDraft:
    fields = dict(
        client_id="c1",
        date=datetime(2025, 3, 1),
        due_date=datetime(2025, 3, 31),
        status=InvoiceStatus.ISSUED,
        items=[InvoiceItem(description="Consultoria", quantity=Decimal("2"), unit_price=Decimal("1000"))],
    )
    fields.update(overrides)
    return InvoiceDraft(**fields)


async def log_actions(app: AppComponents) -> list[str]:
    await app.audit.drain()
    return [log["action"] for log in await app.store.list_all(Collection.LOGS)]


@pytest_asyncio.fixture
async def app():
    components = create_app_components(AppSettings(invoice_series="2025A", log_json=False))
    yield components
    await components.audit.close()


class TestComponentFactory:
    """Tests for create_app_components."""

    def test_in_memory_by_default(self):
        app = create_app_components(AppSettings(log_json=False))
        assert not isinstance(app.store, JsonFileRecordStore)

    def test_json_store_when_path_set(self, tmp_path):
        app = create_app_components(AppSettings(store_path=tmp_path / "afactura.json", log_json=False))
        assert isinstance(app.store, JsonFileRecordStore)


class TestSession:
    """Tests for login, logout and profile updates."""

    @pytest.mark.asyncio
    async def test_login_seeds_defaults(self, app):
        ctx = await app.sessions.login()
        assert ctx.authenticated is True
        assert ctx.user == "Admin"
        assert ctx.profile == DEFAULT_COMPANY
        assert [c.id for c in await app.queries.list_clients()] == ["c1"]
        assert await log_actions(app) == ["LOGIN"]

    @pytest.mark.asyncio
    async def test_second_login_does_not_reseed(self, app):
        await app.sessions.login()
        await app.store.add(Collection.CLIENTS, {"id": "c2", "name": "Outro", "nif": "1"})
        await app.sessions.login("Ana")
        assert len(await app.queries.list_clients()) == 2

    @pytest.mark.asyncio
    async def test_logout(self, app):
        ctx = await app.sessions.login("Ana")
        ended = await app.sessions.logout(ctx)
        assert ended.authenticated is False
        assert ctx.authenticated is True
        assert await log_actions(app) == ["LOGIN", "LOGOUT"]

    @pytest.mark.asyncio
    async def test_update_profile(self, app):
        ctx = await app.sessions.login()
        profile = CompanyProfile(name="Nova Empresa", nif="5409999999")
        updated = await app.sessions.update_profile(ctx, profile)

        assert updated.profile == profile
        assert ctx.profile == DEFAULT_COMPANY
        assert (await app.sessions.login()).profile == profile
        assert "SETTINGS_UPDATE" in await log_actions(app)

    @pytest.mark.asyncio
    async def test_requires_login(self, app):
        anonymous = SessionContext(user="Admin")
        with pytest.raises(NotAuthenticatedError):
            await app.sessions.update_profile(anonymous, DEFAULT_COMPANY)
        with pytest.raises(NotAuthenticatedError):
            await app.invoicing.create_invoice(make_draft(), anonymous)


class TestInvoicing:
    """Tests for invoice creation, status changes and export."""

    @pytest.mark.asyncio
    async def test_create_invoice(self, app):
        ctx = await app.sessions.login("Ana")
        invoice, result = await app.invoicing.create_invoice(make_draft(), ctx)

        assert result.is_valid
        assert invoice.document_number == "2025A/1"
        assert invoice.client_name == "Cliente Particular"
        assert invoice.total == Decimal("2280.00")
        assert invoice.audit_trail[0].user == "Ana"
        assert await app.queries.get_invoice(invoice.id) == invoice
        assert await log_actions(app) == ["LOGIN", "INVOICE_CREATE"]

    @pytest.mark.asyncio
    async def test_numbers_increase(self, app):
        ctx = await app.sessions.login()
        numbers = []
        for _ in range(3):
            invoice, _ = await app.invoicing.create_invoice(make_draft(), ctx)
            numbers.append(invoice.number)
        assert numbers == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_series_keep_separate_counters(self, app):
        """Switching back to an older series continues its numbering."""
        ctx = await app.sessions.login()
        next_year = InvoicingFlow(app.store, app.audit, series="2026A")

        first, _ = await app.invoicing.create_invoice(make_draft(), ctx)
        other, _ = await next_year.create_invoice(make_draft(), ctx)
        second, _ = await app.invoicing.create_invoice(make_draft(), ctx)
        other_second, _ = await next_year.create_invoice(make_draft(), ctx)

        assert [first.document_number, second.document_number] == ["2025A/1", "2025A/2"]
        assert [other.document_number, other_second.document_number] == ["2026A/1", "2026A/2"]

    @pytest.mark.asyncio
    async def test_failed_invoice_write_never_reuses_number(self):
        store = FlakyRecordStore(fail_on={("add", Collection.INVOICES)})
        await store.add(Collection.CLIENTS, dict(CLIENT_C1))
        audit = AuditTrailRecorder(store)
        flow = InvoicingFlow(store, audit, series="2025A")
        ctx = SessionContext(user="Admin", authenticated=True, profile=DEFAULT_COMPANY)

        with pytest.raises(StorageError):
            await flow.create_invoice(make_draft(), ctx)
        assert await store.list_all(Collection.INVOICES) == []

        store.fail_on.clear()
        invoice, _ = await flow.create_invoice(make_draft(), ctx)
        assert invoice.number == 2
        await audit.close()

    @pytest.mark.asyncio
    async def test_invalid_draft_not_stored(self, app):
        ctx = await app.sessions.login()
        with pytest.raises(InvoiceValidationError) as exc_info:
            await app.invoicing.create_invoice(make_draft(client_id="ghost"), ctx)
        assert exc_info.value.result.has_errors
        assert await app.queries.list_invoices() == []

    @pytest.mark.asyncio
    async def test_status_change(self, app):
        ctx = await app.sessions.login()
        invoice, _ = await app.invoicing.create_invoice(make_draft(), ctx)

        paid = await app.invoicing.change_invoice_status(invoice.id, InvoiceStatus.PAID, ctx)
        assert paid.status == InvoiceStatus.PAID
        assert [entry.action for entry in paid.audit_trail] == ["CREATED", "STATUS_CHANGE"]
        assert (await app.queries.get_invoice(invoice.id)).status == InvoiceStatus.PAID
        assert (await log_actions(app))[-1] == "INVOICE_STATUS_CHANGE"

    @pytest.mark.asyncio
    async def test_terminal_status(self, app):
        ctx = await app.sessions.login()
        invoice, _ = await app.invoicing.create_invoice(make_draft(), ctx)
        await app.invoicing.change_invoice_status(invoice.id, InvoiceStatus.CANCELLED, ctx)
        with pytest.raises(InvalidStatusTransitionError):
            await app.invoicing.change_invoice_status(invoice.id, InvoiceStatus.PAID, ctx)

    @pytest.mark.asyncio
    async def test_status_change_unknown_invoice(self, app):
        ctx = await app.sessions.login()
        with pytest.raises(NotFoundError):
            await app.invoicing.change_invoice_status("nope", InvoiceStatus.PAID, ctx)

    @pytest.mark.asyncio
    async def test_add_client(self, app):
        ctx = await app.sessions.login()
        client = await app.invoicing.add_client(Client(id="c2", name="Sonangol", nif="5000000000"), ctx)
        assert [c.id for c in await app.queries.search_clients("5000")] == [client.id]
        assert (await log_actions(app))[-1] == "CLIENT_ADD"

        with pytest.raises(DuplicateError):
            await app.invoicing.add_client(Client(id="c2", name="Sonangol", nif="5000000000"), ctx)
        with pytest.raises(InvoiceValidationError):
            await app.invoicing.add_client(Client(name="Sem NIF", nif=""), ctx)

    @pytest.mark.asyncio
    async def test_export(self, app):
        ctx = await app.sessions.login()
        invoice, _ = await app.invoicing.create_invoice(make_draft(), ctx)
        artifact = await app.invoicing.export_invoice(invoice.id, "xml", ctx)
        assert artifact.filename == "fatura_2025A_1.xml"
        assert DEFAULT_COMPANY.nif in artifact.content
        assert (await log_actions(app))[-1] == "INVOICE_EXPORT"


class TestJsonBackedApp:
    """Flows over the JSON-file store, audit worker writing concurrently."""

    @pytest.mark.asyncio
    async def test_concurrent_audit_and_business_writes(self, tmp_path):
        path = tmp_path / "afactura.json"
        app = create_app_components(AppSettings(store_path=path, log_json=False))
        try:
            ctx = await app.sessions.login()
            await app.invoicing.add_client(Client(id="a", name="Cliente A", nif="5000000001"), ctx)
            await app.invoicing.add_client(Client(id="b", name="Cliente B", nif="5000000002"), ctx)
            assert await log_actions(app) == ["LOGIN", "CLIENT_ADD", "CLIENT_ADD"]
        finally:
            await app.audit.close()

        reopened = JsonFileRecordStore(path)
        assert [log["action"] for log in await reopened.list_all(Collection.LOGS)] == [
            "LOGIN", "CLIENT_ADD", "CLIENT_ADD",
        ]
        assert {c["id"] for c in await reopened.list_all(Collection.CLIENTS)} == {"c1", "a", "b"}


class TestBackupFlow:
    """Tests for backup and restore through the session-aware flow."""

    @pytest.mark.asyncio
    async def test_backup_and_restore(self, app, tmp_path):
        ctx = await app.sessions.login()
        invoice, _ = await app.invoicing.create_invoice(make_draft(), ctx)
        await app.audit.drain()

        artifact = await app.backups.create_backup(PASSWORD, ctx, directory=tmp_path)
        assert (tmp_path / artifact.filename).read_bytes() == artifact.content

        ctx = await app.sessions.update_profile(ctx, CompanyProfile(name="Depois", nif="1"))
        await app.invoicing.change_invoice_status(invoice.id, InvoiceStatus.PAID, ctx)
        await app.audit.drain()

        restored = await app.backups.restore_backup(artifact.content, PASSWORD, ctx)
        assert restored.profile == DEFAULT_COMPANY
        assert (await app.queries.get_invoice(invoice.id)).status == InvoiceStatus.ISSUED
        assert (await app.audit.verify_integrity()).valid is True

    @pytest.mark.asyncio
    async def test_wrong_password_keeps_data(self, app):
        ctx = await app.sessions.login()
        artifact = await app.backups.create_backup(PASSWORD, ctx)
        await app.invoicing.create_invoice(make_draft(), ctx)

        with pytest.raises(AuthenticationError):
            await app.backups.restore_backup(artifact.content, "not-the-password", ctx)
        assert len(await app.queries.list_invoices()) == 1
