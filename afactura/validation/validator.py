"""
Invoice and Client Validation

DESIGN DECISION: Validation reports issues, it never silently fixes them.
Error-level issues block saving; warnings are shown but do not block.

Checks mirror what the invoice form enforces:
- A client must be selected and must exist
- At least one line; every line needs a description, quantity > 0
  and a non-negative unit price
- A 0% (exempt) line needs an exemption reason for the AGT export
- The due date cannot be before the document date
"""

from typing import Optional

from afactura.constants import EXEMPTION_REASONS
from afactura.models.invoice import (
    Client,
    InvoiceDraft,
    InvoiceStatus,
    TaxRate,
)
from afactura.models.validation import ValidationIssue, ValidationResult
from afactura.services.storage import Collection, RecordStoreInterface

# Statuses a new document may be created with (save as draft / issue)
CREATABLE_STATUSES = frozenset({InvoiceStatus.DRAFT, InvoiceStatus.ISSUED})


class InvoiceValidationError(Exception):
    """Draft or client failed validation; carries the full result."""

    def __init__(self, result: ValidationResult, message: Optional[str] = None):
        self.result = result
        super().__init__(message or get_user_friendly_summary(result))


class InvoiceValidator:
    """
    Validates invoice drafts and new clients.

    Client existence is checked against the record store.
    """

    def __init__(self, store: RecordStoreInterface):
        self._store = store

    async def validate_draft(self, draft: InvoiceDraft) -> tuple[ValidationResult, Optional[Client]]:
        """
        Validate a draft.

        Returns: (result, client) - client is None when not found
        """
        issues: list[ValidationIssue] = []
        client: Optional[Client] = None

        if not draft.client_id:
            issues.append(ValidationIssue(
                field="client_id",
                issue_type="missing",
                message="Please select a client",
                severity="error",
            ))
        else:
            record = await self._store.get(Collection.CLIENTS, draft.client_id)
            if record is None:
                issues.append(ValidationIssue(
                    field="client_id",
                    issue_type="not_found",
                    message=f"Client {draft.client_id} does not exist",
                    severity="error",
                ))
            else:
                client = Client.model_validate(record)

        if draft.status not in CREATABLE_STATUSES:
            issues.append(ValidationIssue(
                field="status",
                issue_type="invalid_value",
                message=f"A new document cannot start as '{draft.status.value}'",
                severity="error",
                suggested_fix="Save as draft or issue the document",
            ))

        if draft.due_date < draft.date:
            issues.append(ValidationIssue(
                field="due_date",
                issue_type="invalid_value",
                message="Due date cannot be before the document date",
                severity="error",
            ))

        issues.extend(self._validate_items(draft))
        return ValidationResult(issues=issues), client

    def _validate_items(self, draft: InvoiceDraft) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []

        if not draft.items:
            issues.append(ValidationIssue(
                field="items",
                issue_type="missing",
                message="The document needs at least one line",
                severity="error",
            ))
            return issues

        for index, item in enumerate(draft.items, start=1):
            if not item.description:
                issues.append(ValidationIssue(
                    field=f"items[{index}].description",
                    issue_type="missing",
                    message=f"Line {index}: description is required",
                    severity="error",
                ))
            if item.quantity <= 0:
                issues.append(ValidationIssue(
                    field=f"items[{index}].quantity",
                    issue_type="invalid_value",
                    message=f"Line {index}: quantity must be greater than zero",
                    severity="error",
                ))
            if item.unit_price < 0:
                issues.append(ValidationIssue(
                    field=f"items[{index}].unit_price",
                    issue_type="invalid_value",
                    message=f"Line {index}: unit price cannot be negative",
                    severity="error",
                ))
            if item.tax_rate == TaxRate.EXEMPT and not item.exemption_reason:
                issues.append(ValidationIssue(
                    field=f"items[{index}].exemption_reason",
                    issue_type="missing",
                    message=f"Line {index}: exempt lines need an exemption reason",
                    severity="error",
                    suggested_fix="Pick one of: " + ", ".join(EXEMPTION_REASONS),
                ))
            elif item.unit_price == 0:
                issues.append(ValidationIssue(
                    field=f"items[{index}].unit_price",
                    issue_type="suspicious_value",
                    message=f"Line {index}: unit price is zero",
                    severity="warning",
                ))

        return issues


def validate_client(client: Client) -> ValidationResult:
    """Name and NIF are required; an unusual NIF only warns."""
    issues: list[ValidationIssue] = []

    if not client.name:
        issues.append(ValidationIssue(
            field="name",
            issue_type="missing",
            message="Client name is required",
            severity="error",
        ))
    if not client.nif:
        issues.append(ValidationIssue(
            field="nif",
            issue_type="missing",
            message="Client NIF is required",
            severity="error",
        ))
    elif not client.nif.isalnum():
        issues.append(ValidationIssue(
            field="nif",
            issue_type="invalid_format",
            message="NIF should only contain letters and digits",
            severity="warning",
        ))

    return ValidationResult(issues=issues)


def get_user_friendly_summary(result: ValidationResult) -> str:
    """One message for the user listing the blocking issues."""
    if result.is_valid:
        return "All checks passed."
    errors = [issue.message for issue in result.issues if issue.severity == "error"]
    return "Please fix: " + "; ".join(errors)
