"""Validation package."""

from afactura.validation.validator import (
    InvoiceValidationError,
    InvoiceValidator,
    get_user_friendly_summary,
    validate_client,
)

__all__ = [
    "InvoiceValidationError",
    "InvoiceValidator",
    "get_user_friendly_summary",
    "validate_client",
]
