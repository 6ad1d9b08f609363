"""Tests for the AGT XML and JSON exports."""

import json
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from afactura.constants import DEFAULT_COMPANY
from afactura.models.invoice import (
    Invoice,
    InvoiceItem,
    InvoiceStatus,
    InvoiceTrailEntry,
    TaxRate,
)
from afactura.services.export import (
    export_invoice,
    generate_invoice_json,
    generate_invoice_xml,
)
from afactura.services.export.agt import SAFT_NAMESPACE

NS = {"s": SAFT_NAMESPACE}
GENERATED_AT = datetime(2025, 3, 2, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def invoice() -> Invoice:
    return Invoice(
        id="inv-1",
        series="2025A",
        number=3,
        date=datetime(2025, 3, 1, 9, 30),
        due_date=datetime(2025, 3, 31),
        client_id="c1",
        client_name="Cliente Particular",
        client_nif="999999999",
        client_address="Luanda",
        items=[
            InvoiceItem(id="p1", description="Consultoria", quantity=Decimal("2"), unit_price=Decimal("1000")),
            InvoiceItem(
                id="p2",
                description="Livros",
                quantity=Decimal("1"),
                unit_price=Decimal("500"),
                tax_rate=TaxRate.EXEMPT,
                exemption_reason="M04",
            ),
            InvoiceItem(id="p3", description="Cesta", quantity=Decimal("1"), unit_price=Decimal("100"), tax_rate=TaxRate.REDUCED),
        ],
        status=InvoiceStatus.ISSUED,
        audit_trail=[InvoiceTrailEntry(
            action="CREATED", user="Ana", timestamp="2025-03-01T09:30:00.000Z", detail="",
        )],
    )


class TestXmlExport:
    """Tests for the SAF-T(AO) AuditFile."""

    def test_header_and_root(self, invoice):
        content = generate_invoice_xml(invoice, DEFAULT_COMPANY, GENERATED_AT)
        assert content.startswith('<?xml version="1.0" encoding="UTF-8"?>\n')
        root = ET.fromstring(content.split("\n", 1)[1])
        assert root.tag == f"{{{SAFT_NAMESPACE}}}AuditFile"
        assert root.findtext("s:Header/s:CompanyID", namespaces=NS) == DEFAULT_COMPANY.nif
        assert root.findtext("s:Header/s:FiscalYear", namespaces=NS) == "2025"

    def test_document_fields(self, invoice):
        root = ET.fromstring(generate_invoice_xml(invoice, DEFAULT_COMPANY, GENERATED_AT).split("\n", 1)[1])
        doc = root.find("s:SourceDocuments/s:SalesInvoices/s:Invoice", NS)
        assert doc.findtext("s:InvoiceNo", namespaces=NS) == "2025A/3"
        assert doc.findtext("s:DocumentStatus/s:InvoiceStatus", namespaces=NS) == "N"
        assert doc.findtext("s:DocumentStatus/s:SourceID", namespaces=NS) == "Ana"
        assert doc.findtext("s:DocumentTotals/s:NetTotal", namespaces=NS) == "2600.00"
        assert doc.findtext("s:DocumentTotals/s:TaxPayable", namespaces=NS) == "287.00"
        assert doc.findtext("s:DocumentTotals/s:GrossTotal", namespaces=NS) == "2887.00"

    def test_tax_codes_and_exemption(self, invoice):
        root = ET.fromstring(generate_invoice_xml(invoice, DEFAULT_COMPANY, GENERATED_AT).split("\n", 1)[1])
        lines = root.findall(".//s:Line", NS)
        assert [line.findtext("s:Tax/s:TaxCode", namespaces=NS) for line in lines] == ["NOR", "ISE", "RED"]
        assert [line.findtext("s:TaxExemptionReason", namespaces=NS) for line in lines] == [None, "M04", None]

    def test_cancelled_status(self, invoice):
        cancelled = invoice.model_copy(update={"status": InvoiceStatus.CANCELLED})
        root = ET.fromstring(generate_invoice_xml(cancelled, DEFAULT_COMPANY, GENERATED_AT).split("\n", 1)[1])
        assert root.findtext(".//s:DocumentStatus/s:InvoiceStatus", namespaces=NS) == "A"


class TestJsonExport:
    """Tests for the JSON document."""

    def test_structure(self, invoice):
        document = json.loads(generate_invoice_json(invoice, DEFAULT_COMPANY, GENERATED_AT))
        assert document["header"]["invoiceNo"] == "2025A/3"
        assert document["header"]["status"] == "Emitida"
        assert document["customer"]["nif"] == "999999999"
        assert [line["taxRate"] for line in document["lines"]] == [14, 0, 7]
        assert document["totals"]["grossTotal"] == 2887.0
        assert document["audit"]["createdAt"] == "2025-03-01T09:30:00.000Z"


class TestExportArtifact:
    """Tests for file naming and format selection."""

    @pytest.mark.parametrize("fmt,media_type", [("xml", "application/xml"), ("json", "application/json")])
    def test_filenames(self, invoice, fmt, media_type):
        artifact = export_invoice(invoice, DEFAULT_COMPANY, fmt, GENERATED_AT)
        assert artifact.filename == f"fatura_2025A_3.{fmt}"
        assert artifact.media_type == media_type

    def test_unknown_format(self, invoice):
        with pytest.raises(ValueError):
            export_invoice(invoice, DEFAULT_COMPANY, "pdf")
