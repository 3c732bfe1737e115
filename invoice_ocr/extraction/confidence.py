"""Completeness score over a provider's key fields."""

from collections.abc import Mapping, Sequence
from typing import Any

# Canonical fields a complete VAT invoice record carries
DEFAULT_KEY_FIELDS: tuple[str, ...] = (
    "invoice_code",
    "invoice_number",
    "invoice_date",
    "seller_name",
    "seller_tax_number",
    "buyer_name",
    "buyer_tax_number",
    "total_amount",
    "tax_amount",
    "check_code",
)


def score(fields: Mapping[str, Any] | object, key_fields: Sequence[str] = DEFAULT_KEY_FIELDS) -> float:
    """Share of key fields holding a non-blank string.

    Args:
        fields: Field mapping, or an object whose attributes are the fields.
        key_fields: Ordered key field names for the provider.

    Returns:
        ``present / len(key_fields)`` rounded to two decimals, in [0, 1].
    """
    if not key_fields:
        return 0.0

    values = fields if isinstance(fields, Mapping) else vars(fields)
    present = sum(
        1
        for name in key_fields
        if isinstance(values.get(name), str) and values[name].strip()
    )
    return min(round(present / len(key_fields), 2), 1.0)
