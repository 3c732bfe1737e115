"""Tests for confidence scoring and parsing of provider results."""

import pytest

from invoice_ocr.extraction.confidence import DEFAULT_KEY_FIELDS, score
from invoice_ocr.extraction.invoice_parser import (
    parse_free_text,
    parse_result,
    parse_structured,
)
from invoice_ocr.models import InvoiceFields, ProviderResult, ResultKind
from invoice_ocr.providers.qiniu import QINIU_FIELD_MAP
from invoice_ocr.providers.zhipu import ZHIPU_KEY_FIELDS


class TestScore:
    """Tests for the completeness score."""

    def test_all_empty(self) -> None:
        assert score({}) == 0.0

    def test_all_present(self) -> None:
        assert score({name: "x" for name in DEFAULT_KEY_FIELDS}) == 1.0

    def test_partial(self) -> None:
        fields = {name: "x" for name in DEFAULT_KEY_FIELDS[:8]}
        assert score(fields) == 0.8

    def test_rounded_to_two_decimals(self) -> None:
        assert score({"a": "x"}, ["a", "b", "c"]) == 0.33

    def test_whitespace_not_counted(self) -> None:
        assert score({"a": "  ", "b": "x"}, ["a", "b"]) == 0.5

    def test_non_strings_not_counted(self) -> None:
        assert score({"a": 12, "b": None}, ["a", "b"]) == 0.0

    def test_extra_fields_ignored(self) -> None:
        assert score({"a": "x", "z": "y"}, ["a"]) == 1.0

    def test_empty_key_list(self) -> None:
        assert score({"a": "x"}, []) == 0.0

    def test_accepts_invoice_fields(self) -> None:
        fields = InvoiceFields(invoice_number="12345678", total_amount="100.00")
        assert score(fields) == 0.2

    @pytest.mark.parametrize("count", range(0, 11))
    def test_bounded(self, count: int) -> None:
        fields = {name: "x" for name in DEFAULT_KEY_FIELDS[:count]}
        assert 0.0 <= score(fields) <= 1.0


class TestParseFreeText:
    """Tests for the free-text parsing path."""

    def test_empty_text(self) -> None:
        fields = parse_free_text("")
        assert fields == InvoiceFields()
        assert fields.items == []
        assert fields.confidence == 0.0

    def test_blank_text(self) -> None:
        assert parse_free_text(" \n\t ") == InvoiceFields()

    def test_unrelated_text(self) -> None:
        fields = parse_free_text("hello world")
        assert fields.invoice_number == ""
        assert fields.items == []
        assert fields.confidence == 0.0

    def test_full_invoice(self, invoice_text: str) -> None:
        fields = parse_free_text(invoice_text)
        assert fields.invoice_number == "24442000000123456789"
        assert fields.invoice_date == "2026-03-05"
        assert fields.seller_name == "广州市样本贸易有限公司"
        assert fields.buyer_tax_number == "91440300MA5ABCDE1X"
        assert fields.total_sum == "120.00"
        assert fields.tax_amount == "7.20"
        assert fields.total_amount == "127.20"
        assert len(fields.items) == 2
        assert fields.confidence == 0.8

    def test_total_falls_back_to_sum_plus_tax(self) -> None:
        fields = parse_free_text("合计 ¥394.06 ¥3.94")
        assert fields.total_sum == "394.06"
        assert fields.tax_amount == "3.94"
        assert fields.total_amount == "398.00"

    def test_amounts_cleaned(self) -> None:
        fields = parse_free_text("价税合计 ¥1,234.56")
        assert fields.total_amount == "1234.56"

    def test_check_code_compacted(self) -> None:
        fields = parse_free_text("校验码：12345 67890 12345 67890")
        assert fields.check_code == "12345678901234567890"

    def test_markdown_with_provider_key_fields(self, invoice_markdown: str) -> None:
        fields = parse_free_text(invoice_markdown, ZHIPU_KEY_FIELDS)
        assert fields.invoice_code == "044001900111"
        assert fields.invoice_number == "12345678"
        assert fields.invoice_date == "2026-01-15"
        assert fields.buyer_name == "北京示例有限公司"
        assert fields.seller_name == "上海样本服务有限公司"
        assert fields.seller_tax_number == "91310000MA1FL0000X"
        assert fields.total_amount == "106.00"
        assert fields.confidence == 1.0

    def test_deterministic(self, invoice_text: str) -> None:
        assert parse_free_text(invoice_text) == parse_free_text(invoice_text)


class TestParseStructured:
    """Tests for the structured-field path."""

    def test_maps_and_normalizes(self) -> None:
        payload = {
            "InvoiceCode": "044001900111",
            "InvoiceNum": "12345678",
            "InvoiceDate": "2026年3月5日",
            "SellerName": " 广州市样本贸易有限公司 ",
            "TotalAmount": "¥1,234.56",
            "TotalTax": "￥71.86",
        }
        fields = parse_structured(payload, QINIU_FIELD_MAP, list(QINIU_FIELD_MAP.values()))
        assert fields.invoice_code == "044001900111"
        assert fields.invoice_date == "2026-03-05"
        assert fields.seller_name == "广州市样本贸易有限公司"
        assert fields.total_amount == "1234.56"
        assert fields.tax_amount == "71.86"
        assert fields.buyer_name == ""
        assert fields.confidence == 0.6

    def test_missing_and_null_values(self) -> None:
        fields = parse_structured({"InvoiceNum": None}, QINIU_FIELD_MAP)
        assert fields.invoice_number == ""
        assert fields.confidence == 0.0

    def test_numeric_values_stringified(self) -> None:
        fields = parse_structured({"TotalAmount": 106.5}, QINIU_FIELD_MAP)
        assert fields.total_amount == "106.5"

    def test_unmapped_keys_ignored(self) -> None:
        fields = parse_structured({"Unknown": "x"}, QINIU_FIELD_MAP)
        assert fields == InvoiceFields()


class TestParseResult:
    """Tests for routing by result kind."""

    def test_structured_route(self) -> None:
        result = ProviderResult(
            provider="qiniu",
            kind=ResultKind.STRUCTURED,
            payload={"InvoiceNum": "12345678"},
        )
        fields = parse_result(result, list(QINIU_FIELD_MAP.values()), QINIU_FIELD_MAP)
        assert fields.invoice_number == "12345678"
        assert fields.confidence == 0.1

    def test_text_route(self, invoice_text: str) -> None:
        result = ProviderResult(provider="tesseract", kind=ResultKind.TEXT, payload=invoice_text)
        fields = parse_result(result)
        assert fields.total_amount == "127.20"

    def test_markdown_route(self, invoice_markdown: str) -> None:
        result = ProviderResult(
            provider="zhipu", kind=ResultKind.MARKDOWN, payload=invoice_markdown
        )
        assert parse_result(result, ZHIPU_KEY_FIELDS).confidence == 1.0
