"""Tests for the shared data model and error types."""

from invoice_ocr.errors import ExtractionError, ImageFetchError, InvoiceOCRError, ProviderError
from invoice_ocr.models import (
    FIELD_WIRE_NAMES,
    ExtractionOutcome,
    InvoiceFields,
    InvoiceItem,
    ProviderResult,
    ResultKind,
)


class TestInvoiceFields:
    """Tests for the canonical record."""

    def test_defaults_empty(self) -> None:
        fields = InvoiceFields()
        assert all(getattr(fields, name) == "" for name in FIELD_WIRE_NAMES)
        assert fields.items == []
        assert fields.confidence == 0.0

    def test_to_dict_uses_wire_names(self) -> None:
        fields = InvoiceFields(
            seller_tax_number="91440101MA5FGHIJ2Y",
            items=[InvoiceItem(name="办公用品", amount=100.0, tax_rate=0.06)],
            confidence=0.1,
        )
        data = fields.to_dict()
        assert data["sellerTaxNumber"] == "91440101MA5FGHIJ2Y"
        assert data["items"] == [
            {
                "name": "办公用品",
                "quantity": None,
                "unitPrice": None,
                "amount": 100.0,
                "taxRate": 0.06,
                "taxAmount": None,
            }
        ]
        assert data["confidence"] == 0.1
        assert set(data) == set(FIELD_WIRE_NAMES.values()) | {"items", "confidence"}

    def test_items_not_shared(self) -> None:
        first = InvoiceFields()
        first.items.append(InvoiceItem(name="x"))
        assert InvoiceFields().items == []


class TestExtractionOutcome:
    """Tests for outcome invariants."""

    def test_failure_never_carries_data(self) -> None:
        outcome = ExtractionOutcome(success=False, data=InvoiceFields(), error="boom")
        assert outcome.data is None

    def test_success_keeps_data(self) -> None:
        fields = InvoiceFields(invoice_number="1")
        assert ExtractionOutcome(success=True, data=fields).data is fields


class TestProviderResult:
    """Tests for the provider result wrapper."""

    def test_ok_when_payload_present(self) -> None:
        assert ProviderResult(provider="a", kind=ResultKind.TEXT, payload="").ok
        assert not ProviderResult(provider="a", kind=ResultKind.TEXT, error="x").ok


class TestErrors:
    """Tests for the exception hierarchy."""

    def test_hierarchy(self) -> None:
        for error in (
            ImageFetchError("x"),
            ProviderError("x", provider="zhipu"),
            ExtractionError("x"),
        ):
            assert isinstance(error, InvoiceOCRError)

    def test_str_includes_details(self) -> None:
        error = ImageFetchError("Failed to download image: 404", url="u", status_code=404)
        assert str(error) == (
            "Failed to download image: 404 | Details: {'url': 'u', 'status_code': 404}"
        )
        assert error.message == "Failed to download image: 404"

    def test_str_without_details(self) -> None:
        assert str(ExtractionError("no fields")) == "no fields"

    def test_provider_attribute(self) -> None:
        assert ProviderError("x", provider="qiniu").provider == "qiniu"
