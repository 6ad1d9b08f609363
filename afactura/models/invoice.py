"""
Core Data Models for AFACTURA

These models define the schemas for invoices, clients and the company
profile. They are designed to:
1. Enforce type safety at runtime
2. Be serializable to plain JSON records for the record store
3. Carry the AGT (Angolan tax authority) fields needed for export

DESIGN DECISION: Money is Decimal and always quantized to 2 places.
Line totals and invoice totals are recomputed from the items, never
trusted from input.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum, IntEnum
from typing import Literal, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)

CENT = Decimal("0.01")


def quantize_money(value: Decimal) -> Decimal:
    """Round to cents, half up (AGT rounding)."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def new_record_id() -> str:
    return str(uuid4())


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TaxRate(IntEnum):
    """IVA rates in percent."""
    STANDARD = 14
    REDUCED = 7
    EXEMPT = 0


class InvoiceStatus(str, Enum):
    """
    Document status.

    Values are the labels shown to the user and written to exports.
    """
    DRAFT = "Rascunho"
    ISSUED = "Emitida"
    SENT_TO_AGT = "Enviada AGT"
    ACCEPTED_AGT = "Aceite AGT"
    CANCELLED = "Anulada"
    PAID = "Paga"


class PaymentMethod(str, Enum):
    """How the invoice is (to be) paid."""
    CASH = "Numerário"
    BANK_TRANSFER = "Transferência"
    MULTICAIXA = "Multicaixa"
    CREDIT_CARD = "Cartão Crédito"


class DocumentType(str, Enum):
    """SAF-T(AO) document type codes."""
    INVOICE = "FT"       # Factura
    RECEIPT = "RC"       # Recibo
    CREDIT_NOTE = "NC"   # Nota de Crédito
    DEBIT_NOTE = "ND"    # Nota de Débito


# =============================================================================
# PARTIES
# =============================================================================

class Client(BaseModel):
    """A customer. NIF = Número de Identificação Fiscal."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_record_id)
    name: str = Field(..., max_length=200)
    nif: str = Field(..., max_length=20)
    email: str = ""
    phone: str = ""
    address: str = ""


class CompanyProfile(BaseModel):
    """The issuing company, stored under the 'profile' setting."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=200)
    nif: str = Field(..., min_length=1, max_length=20)
    address: str = ""
    phone: str = ""
    email: str = ""
    regime: Literal["Geral", "Simplificado", "Exclusão"] = "Geral"
    retention_years: Optional[int] = Field(default=None, ge=1, le=50)


# =============================================================================
# INVOICE
# =============================================================================

class InvoiceItem(BaseModel):
    """
    Individual line of an invoice.

    `total` is the net line amount (quantity x unit price); tax is applied
    at invoice level by calculate_totals.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_record_id)
    description: str = Field(default="", max_length=200)
    quantity: Decimal = Decimal("1")
    unit_price: Decimal = Decimal("0")
    tax_rate: TaxRate = TaxRate.STANDARD
    exemption_reason: Optional[str] = Field(
        default=None,
        max_length=200,
        description="Required when tax_rate is 0"
    )
    total: Decimal = Decimal("0.00")

    @model_validator(mode='after')
    def compute_total(self) -> 'InvoiceItem':
        self.total = quantize_money(self.quantity * self.unit_price)
        return self

    @property
    def tax_amount(self) -> Decimal:
        return self.total * Decimal(int(self.tax_rate)) / Decimal(100)


class InvoiceTotals(BaseModel):
    subtotal: Decimal
    tax_total: Decimal
    total: Decimal


def calculate_totals(items: list[InvoiceItem]) -> InvoiceTotals:
    """Sum net line totals and IVA over all items."""
    subtotal = sum((item.total for item in items), Decimal("0"))
    tax_total = sum((item.tax_amount for item in items), Decimal("0"))
    subtotal = quantize_money(subtotal)
    tax_total = quantize_money(tax_total)
    return InvoiceTotals(
        subtotal=subtotal,
        tax_total=tax_total,
        total=subtotal + tax_total,
    )


class InvoiceTrailEntry(BaseModel):
    """Per-document history line, kept inside the invoice record."""

    action: str
    user: str
    timestamp: str
    detail: str


class InvoiceDraft(BaseModel):
    """
    What the user submits from the invoice form.

    Numbering, client snapshot and totals are filled in by the flow.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    client_id: str = ""
    type: DocumentType = DocumentType.INVOICE
    date: datetime
    due_date: datetime
    payment_method: PaymentMethod = PaymentMethod.CASH
    status: InvoiceStatus = InvoiceStatus.DRAFT
    items: list[InvoiceItem] = Field(default_factory=list)


class Invoice(BaseModel):
    """
    An issued (or draft) fiscal document.

    Client data is copied in at creation time so later edits to the
    client do not change historic documents.
    """

    id: str = Field(default_factory=new_record_id)
    series: str = Field(..., min_length=1, max_length=20)
    number: int = Field(..., ge=1)
    type: DocumentType = DocumentType.INVOICE
    date: datetime
    due_date: datetime

    # Client snapshot
    client_id: str
    client_name: str
    client_nif: str
    client_address: Optional[str] = None

    items: list[InvoiceItem] = Field(..., min_length=1)

    subtotal: Decimal = Decimal("0.00")
    tax_total: Decimal = Decimal("0.00")
    total: Decimal = Decimal("0.00")
    currency: Literal["AOA"] = "AOA"

    status: InvoiceStatus = InvoiceStatus.DRAFT
    payment_method: PaymentMethod = PaymentMethod.CASH

    # AGT compliance placeholders
    hash: Optional[str] = None
    agt_protocol: Optional[str] = None
    agt_response_timestamp: Optional[str] = None

    audit_trail: list[InvoiceTrailEntry] = Field(default_factory=list)

    @model_validator(mode='after')
    def apply_totals(self) -> 'Invoice':
        totals = calculate_totals(self.items)
        self.subtotal = totals.subtotal
        self.tax_total = totals.tax_total
        self.total = totals.total
        return self

    @property
    def document_number(self) -> str:
        """'2025A/7'"""
        return f"{self.series}/{self.number}"

    def to_record(self) -> dict:
        return self.model_dump(mode="json")


# Allowed status changes. Paid and Cancelled are terminal.
STATUS_TRANSITIONS: dict[InvoiceStatus, frozenset[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: frozenset({InvoiceStatus.ISSUED, InvoiceStatus.CANCELLED}),
    InvoiceStatus.ISSUED: frozenset({
        InvoiceStatus.SENT_TO_AGT,
        InvoiceStatus.PAID,
        InvoiceStatus.CANCELLED,
    }),
    InvoiceStatus.SENT_TO_AGT: frozenset({
        InvoiceStatus.ACCEPTED_AGT,
        InvoiceStatus.CANCELLED,
    }),
    InvoiceStatus.ACCEPTED_AGT: frozenset({InvoiceStatus.PAID, InvoiceStatus.CANCELLED}),
    InvoiceStatus.PAID: frozenset(),
    InvoiceStatus.CANCELLED: frozenset(),
}


def can_transition(current: InvoiceStatus, target: InvoiceStatus) -> bool:
    return target in STATUS_TRANSITIONS[current]
