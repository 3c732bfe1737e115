"""Data model shared by providers, parsers and the orchestrator.

All objects are created per request and discarded once the outcome is
returned.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


@dataclass
class ImageRef:
    """Opaque handle to a source image: either a URL or inline bytes."""

    url: str | None = None
    data: bytes | None = None
    mime_type: str | None = None

    def __post_init__(self) -> None:
        if (self.url is None) == (self.data is None):
            raise ValueError("ImageRef needs exactly one of url or data")

    @property
    def label(self) -> str:
        """Short description for log lines."""
        if self.url is not None:
            return self.url
        return f"<{len(self.data or b'')} bytes>"


@dataclass
class ImagePayload:
    """Resolved image bytes with the mime type they were served as."""

    data: bytes
    mime_type: str


class ResultKind(StrEnum):
    """Shape of a provider's raw answer, which selects the parsing path."""

    STRUCTURED = "structured"
    MARKDOWN = "markdown"
    TEXT = "text"


@dataclass
class ProviderResult:
    """One backend's raw answer.

    ``payload`` is a field mapping for structured results and a string
    for markdown or text results. It is ``None`` exactly when the call
    failed, in which case ``error`` says why.
    """

    provider: str
    kind: ResultKind
    payload: dict[str, Any] | str | None = None
    native_confidence: float | None = None
    error: str | None = None
    raw_text: str = ""

    @property
    def ok(self) -> bool:
        return self.payload is not None


@dataclass
class InvoiceItem:
    """A single line item of an invoice."""

    name: str
    quantity: float | None = None
    unit_price: float | None = None
    amount: float | None = None
    tax_rate: float | None = None
    tax_amount: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "quantity": self.quantity,
            "unitPrice": self.unit_price,
            "amount": self.amount,
            "taxRate": self.tax_rate,
            "taxAmount": self.tax_amount,
        }


# attribute name -> canonical wire name
FIELD_WIRE_NAMES: dict[str, str] = {
    "invoice_code": "invoiceCode",
    "invoice_number": "invoiceNumber",
    "invoice_date": "invoiceDate",
    "seller_name": "sellerName",
    "seller_tax_number": "sellerTaxNumber",
    "buyer_name": "buyerName",
    "buyer_tax_number": "buyerTaxNumber",
    "total_amount": "totalAmount",
    "total_sum": "totalSum",
    "tax_amount": "taxAmount",
    "check_code": "checkCode",
}

STRING_FIELDS: tuple[str, ...] = tuple(FIELD_WIRE_NAMES)


@dataclass
class InvoiceFields:
    """Canonical invoice record. Absent string fields are ``""``."""

    invoice_code: str = ""
    invoice_number: str = ""
    invoice_date: str = ""
    seller_name: str = ""
    seller_tax_number: str = ""
    buyer_name: str = ""
    buyer_tax_number: str = ""
    total_amount: str = ""
    total_sum: str = ""
    tax_amount: str = ""
    check_code: str = ""
    items: list[InvoiceItem] = field(default_factory=list)
    confidence: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the canonical camelCase field names."""
        data: dict[str, Any] = {
            wire: getattr(self, attr) for attr, wire in FIELD_WIRE_NAMES.items()
        }
        data["items"] = [item.to_dict() for item in self.items]
        data["confidence"] = self.confidence
        return data


@dataclass
class ExtractionOutcome:
    """Result handed back to the caller of ``extract_invoice``."""

    success: bool
    data: InvoiceFields | None = None
    error: str | None = None
    raw_text: str = ""
    confidence: float = 0.0
    provider: str | None = None
    recognition_confidence: float | None = None

    def __post_init__(self) -> None:
        if not self.success:
            self.data = None
