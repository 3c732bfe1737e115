"""Turns a provider's raw answer into canonical invoice fields.

Structured answers already carry segmented fields and only pass through
the normalizers. Markdown and plain text answers take the free-text
path: sanitize, run the regex cascades, then rebuild the item table.
"""

from collections.abc import Callable, Mapping, Sequence
from decimal import Decimal, InvalidOperation
from typing import Any

from invoice_ocr.models import InvoiceFields, ProviderResult, ResultKind, STRING_FIELDS
from invoice_ocr.utils.logger import get_logger

from .confidence import DEFAULT_KEY_FIELDS, score
from .normalizers import clean_amount, normalize_date
from .rule_extractor import RuleExtractor
from .sanitizer import sanitize
from .table_parser import parse_items

logger = get_logger(__name__)

_AMOUNT_FIELDS = ("total_amount", "total_sum", "tax_amount")


def _compact(value: str) -> str:
    return "".join(value.split())


# Per-field normalization applied on both paths
_FIELD_NORMALIZERS: dict[str, Callable[[str], str]] = {
    "invoice_date": normalize_date,
    "check_code": _compact,
    **{name: clean_amount for name in _AMOUNT_FIELDS},
}


def _normalize(name: str, value: Any) -> str:
    if value is None:
        return ""
    text = str(value).strip()
    normalizer = _FIELD_NORMALIZERS.get(name)
    return normalizer(text) if normalizer and text else text


def _sum_amounts(first: str, second: str) -> str:
    try:
        return str((Decimal(first) + Decimal(second)).quantize(Decimal("0.01")))
    except InvalidOperation:
        return ""


def parse_free_text(
    text: str,
    key_fields: Sequence[str] = DEFAULT_KEY_FIELDS,
    extractor: RuleExtractor | None = None,
) -> InvoiceFields:
    """Extract invoice fields from recognized text or layout markdown.

    Never raises: empty or unrecognizable text gives an all-empty record
    with zero confidence.

    Args:
        text: Raw recognized text.
        key_fields: Fields the confidence score is computed over.
        extractor: Regex-cascade extractor; a default one is created
            when omitted.

    Returns:
        Canonical invoice fields with items and confidence filled in.
    """
    cleaned = sanitize(text)
    if not cleaned:
        return InvoiceFields()

    extractor = extractor or RuleExtractor()
    values = extractor.extract(cleaned)
    total_sum, tax_amount = extractor.extract_subtotal(cleaned)
    values["total_sum"] = total_sum
    values["tax_amount"] = tax_amount
    values["total_amount"] = extractor.extract_total_amount(cleaned)

    fields = InvoiceFields(
        **{name: _normalize(name, values.get(name, "")) for name in STRING_FIELDS}
    )
    if not fields.total_amount and fields.total_sum and fields.tax_amount:
        fields.total_amount = _sum_amounts(fields.total_sum, fields.tax_amount)

    fields.items = parse_items(cleaned)
    fields.confidence = score(fields, key_fields)
    return fields


def parse_structured(
    payload: Mapping[str, Any],
    field_map: Mapping[str, str],
    key_fields: Sequence[str] = DEFAULT_KEY_FIELDS,
) -> InvoiceFields:
    """Map a provider's native field names onto canonical fields.

    Args:
        payload: Provider field map, e.g. ``{"InvoiceNum": "..."}``.
        field_map: Provider field name to canonical field name.
        key_fields: Fields the confidence score is computed over.

    Returns:
        Canonical invoice fields with confidence filled in.
    """
    fields = InvoiceFields()
    for native_name, canonical_name in field_map.items():
        setattr(fields, canonical_name, _normalize(canonical_name, payload.get(native_name)))
    fields.confidence = score(fields, key_fields)
    return fields


def parse_result(
    result: ProviderResult,
    key_fields: Sequence[str] = DEFAULT_KEY_FIELDS,
    field_map: Mapping[str, str] | None = None,
) -> InvoiceFields:
    """Route a successful provider result to its parsing path.

    Args:
        result: A provider result whose payload is set.
        key_fields: Fields the confidence score is computed over.
        field_map: Native-to-canonical names, required for structured
            results.

    Returns:
        Canonical invoice fields.
    """
    if result.kind is ResultKind.STRUCTURED:
        payload = result.payload if isinstance(result.payload, Mapping) else {}
        fields = parse_structured(payload, field_map or {}, key_fields)
    else:
        fields = parse_free_text(result.payload if isinstance(result.payload, str) else "", key_fields)

    logger.info(
        "Parsed %s result from %s: confidence %.2f, %d items",
        result.kind.value,
        result.provider,
        fields.confidence,
        len(fields.items),
    )
    return fields
