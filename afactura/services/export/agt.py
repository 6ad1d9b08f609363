"""
AGT Export

Produces, for one invoice, the simplified SAF-T(AO) XML AuditFile and a
parallel JSON document. Both are pure formatting of an Invoice plus the
issuing CompanyProfile; nothing here touches storage.
"""

import json
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel

from afactura.models.invoice import (
    CompanyProfile,
    Invoice,
    InvoiceStatus,
    TaxRate,
)
from afactura.utils.helper import to_iso

SAFT_NAMESPACE = "urn:OECD:StandardAuditFile-Tax:AO_1.01_01"
AUDIT_FILE_VERSION = "1.01_01"
PRODUCT_NAME = "AFACTURA"
DEFAULT_EXEMPTION_REASON = "Isento Artigo 12.º alínea a)"


class ExportArtifact(BaseModel):
    filename: str
    media_type: str
    content: str


def _money(value: Decimal) -> str:
    return f"{value:.2f}"


def _tax_code(rate: TaxRate) -> str:
    if rate == TaxRate.STANDARD:
        return "NOR"
    if rate == TaxRate.EXEMPT:
        return "ISE"
    return "RED"


def _source_user(invoice: Invoice) -> str:
    return invoice.audit_trail[0].user if invoice.audit_trail else "System"


def _sub(parent: ET.Element, tag: str, text: Optional[Any] = None) -> ET.Element:
    element = ET.SubElement(parent, f"{{{SAFT_NAMESPACE}}}{tag}")
    if text is not None:
        element.text = str(text)
    return element


def generate_invoice_xml(
    invoice: Invoice,
    company: CompanyProfile,
    generated_at: Optional[datetime] = None,
) -> str:
    """SAF-T(AO) AuditFile containing a single sales invoice."""
    generated_at = generated_at or datetime.now(timezone.utc)
    day = invoice.date.date().isoformat()

    ET.register_namespace("", SAFT_NAMESPACE)
    root = ET.Element(f"{{{SAFT_NAMESPACE}}}AuditFile")

    header = _sub(root, "Header")
    _sub(header, "AuditFileVersion", AUDIT_FILE_VERSION)
    _sub(header, "CompanyID", company.nif)
    _sub(header, "TaxRegistrationNumber", company.nif)
    _sub(header, "TaxAccountingBasis", "F")
    _sub(header, "CompanyName", company.name)
    _sub(header, "BusinessName", PRODUCT_NAME)
    address = _sub(header, "CompanyAddress")
    _sub(address, "AddressDetail", company.address)
    _sub(address, "City", "Luanda")
    _sub(address, "Country", "AO")
    _sub(header, "FiscalYear", invoice.date.year)
    _sub(header, "StartDate", day)
    _sub(header, "EndDate", day)
    _sub(header, "CurrencyCode", invoice.currency)

    sales = _sub(_sub(root, "SourceDocuments"), "SalesInvoices")
    document = _sub(sales, "Invoice")
    _sub(document, "InvoiceNo", invoice.document_number)

    status = _sub(document, "DocumentStatus")
    _sub(status, "InvoiceStatus", "A" if invoice.status == InvoiceStatus.CANCELLED else "N")
    _sub(status, "InvoiceStatusDate", to_iso(generated_at))
    _sub(status, "SourceID", _source_user(invoice))
    _sub(status, "SourceBilling", "P")

    _sub(document, "Hash", invoice.hash or "0")
    _sub(document, "HashControl", "1")
    _sub(document, "Period", invoice.date.month)
    _sub(document, "InvoiceDate", day)
    _sub(document, "InvoiceType", invoice.type.value)
    _sub(document, "SourceID", invoice.id)
    _sub(document, "SystemEntryDate", to_iso(invoice.date))
    _sub(document, "CustomerID", invoice.client_id)

    for number, item in enumerate(invoice.items, start=1):
        line = _sub(document, "Line")
        _sub(line, "LineNumber", number)
        _sub(line, "ProductCode", item.id)
        _sub(line, "ProductDescription", item.description)
        _sub(line, "Quantity", item.quantity)
        _sub(line, "UnitOfMeasure", "UN")
        _sub(line, "UnitPrice", _money(item.unit_price))
        _sub(line, "TaxPointDate", day)
        _sub(line, "Description", item.description)
        _sub(line, "CreditAmount", _money(item.total))
        tax = _sub(line, "Tax")
        _sub(tax, "TaxType", "IVA")
        _sub(tax, "TaxCountryRegion", "AO")
        _sub(tax, "TaxCode", _tax_code(item.tax_rate))
        _sub(tax, "TaxPercentage", int(item.tax_rate))
        if item.tax_rate == TaxRate.EXEMPT:
            _sub(line, "TaxExemptionReason", item.exemption_reason or DEFAULT_EXEMPTION_REASON)
        _sub(line, "SettlementAmount", "0.00")

    totals = _sub(document, "DocumentTotals")
    _sub(totals, "TaxPayable", _money(invoice.tax_total))
    _sub(totals, "NetTotal", _money(invoice.subtotal))
    _sub(totals, "GrossTotal", _money(invoice.total))

    ET.indent(root, space="  ")
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(root, encoding="unicode")


def generate_invoice_json(
    invoice: Invoice,
    company: CompanyProfile,
    generated_at: Optional[datetime] = None,
) -> str:
    """JSON twin of the XML export, for API submission."""
    generated_at = generated_at or datetime.now(timezone.utc)
    payload = {
        "header": {
            "auditFileVersion": AUDIT_FILE_VERSION,
            "companyId": company.nif,
            "companyName": company.name,
            "invoiceNo": invoice.document_number,
            "hash": invoice.hash,
            "status": invoice.status.value,
            "currency": invoice.currency,
        },
        "customer": {
            "id": invoice.client_id,
            "name": invoice.client_name,
            "nif": invoice.client_nif,
            "address": invoice.client_address,
        },
        "document": {
            "type": invoice.type.value,
            "date": to_iso(invoice.date),
            "dueDate": to_iso(invoice.due_date),
            "paymentMethod": invoice.payment_method.value,
        },
        "lines": [
            {
                "lineNumber": number,
                "productCode": item.id,
                "description": item.description,
                "quantity": float(item.quantity),
                "unitPrice": float(item.unit_price),
                "taxRate": int(item.tax_rate),
                "exemptionReason": item.exemption_reason,
                "total": float(item.total),
            }
            for number, item in enumerate(invoice.items, start=1)
        ],
        "totals": {
            "taxPayable": float(invoice.tax_total),
            "netTotal": float(invoice.subtotal),
            "grossTotal": float(invoice.total),
        },
        "audit": {
            "createdAt": (
                invoice.audit_trail[0].timestamp
                if invoice.audit_trail
                else to_iso(generated_at)
            ),
            "source": f"{PRODUCT_NAME} Web",
        },
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)


def export_invoice(
    invoice: Invoice,
    company: CompanyProfile,
    fmt: str,
    generated_at: Optional[datetime] = None,
) -> ExportArtifact:
    """fmt is 'xml' or 'json'; the file is named fatura_<series>_<number>."""
    stem = f"fatura_{invoice.series}_{invoice.number}"
    if fmt == "xml":
        return ExportArtifact(
            filename=f"{stem}.xml",
            media_type="application/xml",
            content=generate_invoice_xml(invoice, company, generated_at),
        )
    if fmt == "json":
        return ExportArtifact(
            filename=f"{stem}.json",
            media_type="application/json",
            content=generate_invoice_json(invoice, company, generated_at),
        )
    raise ValueError(f"Unsupported export format: {fmt}")
