"""Line-item reconstruction from the item table of an invoice.

The item table arrives as text rows whose column count varies with what
the recognizer managed to read. Numbers are assigned to columns by
position and count only. Rows with an unusual column order are
misassigned, and this parser accepts that rather than guessing.
"""

import re

from invoice_ocr.models import InvoiceItem
from invoice_ocr.utils.logger import get_logger

from .rule_extractor import label

logger = get_logger(__name__)

MIN_LINE_LENGTH = 4
MIN_NAME_LENGTH = 2

_HEADER = re.compile(
    "(?:" + label("项目名称") + "|" + label("货物或应税劳务、服务名称")
    + "|" + label("货物或应税劳务名称") + ")"
)
_SECTION_END = re.compile(label("合计"))

# Column headers and the footer word; any line containing one is not an item
_SKIP_TOKENS = re.compile(
    "|".join(
        label(token)
        for token in ("规格型号", "单位", "数量", "单价", "金额", "税率", "税额", "征收率", "合计")
    )
)

_WHITESPACE = re.compile(r"\s+")
_SPLIT_DECIMAL = re.compile(r"(\d)\s*\.\s+(\d)")
_LEADING_NAME = re.compile(r"^([^\d]+)")
_PERCENT = re.compile(r"(\d+(?:\.\d+)?)\s*%")
_NUMBER = re.compile(r"-?\d[\d,]*(?:\.\d+)?")

_NAME_TRIM = " \t*:：,，.。;；、-_()（）[]【】/\\"


def _item_section(text: str) -> str:
    header = _HEADER.search(text)
    if not header:
        return ""
    end = _SECTION_END.search(text, header.end())
    if not end:
        return ""
    return text[header.end():end.start()]


def _to_float(token: str) -> float | None:
    try:
        return float(token.replace(",", ""))
    except ValueError:
        return None


def parse_item_line(line: str) -> InvoiceItem | None:
    """Parse one table row into an item.

    Args:
        line: A single row of the item section.

    Returns:
        The parsed item, or ``None`` when the row has no usable name or
        fewer than two numbers.
    """
    row = _WHITESPACE.sub(" ", line).strip()
    row = _SPLIT_DECIMAL.sub(r"\1.\2", row)

    name_match = _LEADING_NAME.match(row)
    if not name_match:
        return None
    name = name_match.group(1).strip(_NAME_TRIM)
    if len(name) < MIN_NAME_LENGTH:
        return None

    remainder = row[name_match.end():]
    rate_match = _PERCENT.search(remainder)
    tax_rate = None
    if rate_match:
        rate = _to_float(rate_match.group(1))
        tax_rate = round(rate / 100, 4) if rate is not None else None
        remainder = _PERCENT.sub(" ", remainder)

    numbers = [n for n in (_to_float(t) for t in _NUMBER.findall(remainder)) if n is not None]

    quantity = unit_price = amount = tax_amount = None
    if len(numbers) >= 3:
        quantity, unit_price, amount = numbers[0], numbers[1], numbers[2]
        tax_amount = numbers[-1]
    elif len(numbers) == 2:
        amount, tax_amount = numbers
    else:
        return None

    if amount is None and unit_price is not None and quantity is not None:
        amount = round(unit_price * quantity, 2)
    if unit_price is None and amount is not None and quantity is None:
        unit_price = amount
        quantity = 1.0

    if not name or amount is None:
        return None

    return InvoiceItem(
        name=name,
        quantity=quantity,
        unit_price=unit_price,
        amount=amount,
        tax_rate=tax_rate,
        tax_amount=tax_amount,
    )


def parse_items(text: str) -> list[InvoiceItem]:
    """Reconstruct the ordered line items of an invoice.

    The section runs from the item-name column header to the first
    "合计" after it. Without either marker there is no section and no
    items.

    Args:
        text: Sanitized free text of the whole invoice.

    Returns:
        Items in the order they appear.
    """
    if not text:
        return []

    section = _item_section(text)
    if not section:
        logger.debug("No item section found")
        return []

    items: list[InvoiceItem] = []
    for line in section.split("\n"):
        line = line.strip()
        if len(line) < MIN_LINE_LENGTH or _SKIP_TOKENS.search(line):
            continue
        item = parse_item_line(line)
        if item is not None:
            items.append(item)

    logger.info("Parsed %d line items", len(items))
    return items
