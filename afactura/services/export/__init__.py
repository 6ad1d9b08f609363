"""AGT export (SAF-T(AO) XML and JSON)."""

from afactura.services.export.agt import (
    ExportArtifact,
    export_invoice,
    generate_invoice_json,
    generate_invoice_xml,
)

__all__ = [
    "ExportArtifact",
    "export_invoice",
    "generate_invoice_json",
    "generate_invoice_xml",
]
