"""Rule-based field extraction using ordered regex cascades.

Each canonical field owns an ordered list of patterns. The first pattern
that matches wins, so specific patterns come before loose fallbacks.
Labels are written with an optional single space between glyphs because
recognizers often split CJK runs ("发 票 号 码").
"""

import re

from invoice_ocr.utils.logger import get_logger

logger = get_logger(__name__)


def label(text: str) -> str:
    """Build a regex for a label that tolerates one space between glyphs."""
    return " ?".join(re.escape(ch) for ch in text)


# Separator between a label and its value
_SEP = r"[ \t]*[：:]?[ \t]*"

# A name value stops at the end of the line or where the next label starts
_NAME_VALUE = (
    r"([^\n：:]+?)(?=[ \t]*(?:$|统 ?一|纳 ?税|销 ?售 ?方|购 ?买 ?方|地 ?址|电 ?话|开 ?户))"
)

_DATE_CN = r"(\d{4} ?年 ?\d{1,2} ?月 ?\d{1,2} ?日)"
_DATE_SEP = r"(\d{4}[-/.]\d{1,2}[-/.]\d{1,2})"
_TAX_ID = r"([A-Z0-9]{15,20})"
_AMOUNT = r"(\d[\d,]*\.\d{1,2})"


def _compile(*patterns: str) -> list[re.Pattern[str]]:
    return [re.compile(p, re.MULTILINE) for p in patterns]


FIELD_PATTERNS: dict[str, list[re.Pattern[str]]] = {
    "invoice_number": _compile(
        label("发票号码") + _SEP + r"(\d{8,20})",
        label("发票号码") + r"[ \t：:]*(\d+)",
        r"\bNo[.:：]?[ \t]*(\d{8,20})",
    ),
    "invoice_code": _compile(
        label("发票代码") + _SEP + r"(\d{10,12})",
        label("发票代码") + r"[ \t：:]*([0-9A-Za-z]+)",
    ),
    "invoice_date": _compile(
        label("开票日期") + _SEP + _DATE_CN,
        label("开票日期") + _SEP + _DATE_SEP,
        label("开票日期") + _SEP + r"(\d{8})",
        _DATE_CN,
        _DATE_SEP,
    ),
    "seller_name": _compile(
        label("销售方信息") + r"[\s\S]*?" + label("名称") + _SEP + r"([^\n统：:]+)",
        "(?:" + label("销售方名称") + "|" + label("销方名称") + ")" + _SEP + _NAME_VALUE,
        label("销售方") + r"[\s\S]{0,40}?" + label("名称") + _SEP + _NAME_VALUE,
    ),
    "buyer_name": _compile(
        label("购买方信息") + r"[\s\S]*?" + label("名称") + _SEP + r"([^\n统：:]+)",
        "(?:" + label("购买方名称") + "|" + label("购方名称") + ")" + _SEP + _NAME_VALUE,
        label("购买方") + r"[\s\S]{0,40}?" + label("名称") + _SEP + _NAME_VALUE,
    ),
    "seller_tax_number": _compile(
        label("销售方") + r"[\s\S]*?" + label("统一社会信用代码/纳税人识别号") + _SEP + _TAX_ID,
        label("销售方") + r"[\s\S]*?" + label("纳税人识别号") + _SEP + _TAX_ID,
        "(?:" + label("销方税号") + "|" + label("销售方税号") + ")" + _SEP + _TAX_ID,
    ),
    "buyer_tax_number": _compile(
        label("购买方") + r"[\s\S]*?" + label("统一社会信用代码/纳税人识别号") + _SEP + _TAX_ID,
        label("购买方") + r"[\s\S]*?" + label("纳税人识别号") + _SEP + _TAX_ID,
        "(?:" + label("购方税号") + "|" + label("购买方税号") + ")" + _SEP + _TAX_ID,
    ),
    "check_code": _compile(
        label("校验码") + _SEP + r"(\d{5} ?\d{5} ?\d{5} ?\d{5})",
        label("校验码") + _SEP + r"(\d{8,})",
    ),
}

# Pre-tax subtotal and tax on the "合计" row, not the "价税合计" row
SUBTOTAL_PATTERNS: list[re.Pattern[str]] = _compile(
    r"(?<!税)(?<!税 )" + label("合计") + r"[ \t]*[¥￥$]?[ \t]*" + _AMOUNT
    + r"(?:[ \t]*[¥￥$][ \t]*|[ \t]+)" + _AMOUNT,
)

TOTAL_PATTERNS: list[re.Pattern[str]] = _compile(
    label("小写") + r"[ \t]*[）)]?[ \t]*[¥￥$]+[ \t]*(\d[\d,]*(?:\.\d+)?)",
    label("价税合计") + r"[\s\S]*?[¥￥$][ \t]*(\d[\d,]*(?:\.\d+)?)",
    label("价税合计") + r"[ \t：:]*(\d[\d,]*\.\d{2})",
)

_TOTAL_MARKER = re.compile(label("价税合计"))
_WORDS_MARKER = re.compile(label("大写"))
_NUMBER_TOKEN = re.compile(r"\d[\d,]*(?:\.\d+)?")
_SPLIT_DECIMAL = re.compile(r"(\d)\. (\d)")


def extract_groups(text: str, patterns: list[re.Pattern[str]]) -> tuple[str, ...]:
    """Return the trimmed groups of the first matching pattern.

    Args:
        text: Sanitized text to search.
        patterns: Ordered candidate patterns.

    Returns:
        Captured groups of the first match, or an empty tuple.
    """
    if not text:
        return ()
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return tuple((group or "").strip() for group in match.groups())
    return ()


def extract_field(text: str, patterns: list[re.Pattern[str]]) -> str:
    """Return the first capture group of the first matching pattern, or ``""``."""
    groups = extract_groups(text, patterns)
    return groups[0] if groups else ""


class RuleExtractor:
    """Regex-cascade extractor for Chinese VAT invoice text.

    Args:
        patterns: Field name to ordered pattern list. Defaults to
            ``FIELD_PATTERNS``.
    """

    def __init__(self, patterns: dict[str, list[re.Pattern[str]]] | None = None) -> None:
        self.patterns = patterns if patterns is not None else FIELD_PATTERNS

    def extract(self, text: str, fields: list[str] | None = None) -> dict[str, str]:
        """Run the cascade for each requested field.

        Args:
            text: Sanitized free text.
            fields: Field names to extract. If ``None``, extracts all.

        Returns:
            Mapping of field name to value; missing fields map to ``""``.
        """
        results: dict[str, str] = {}
        for field_name in fields or list(self.patterns):
            if field_name not in self.patterns:
                continue
            results[field_name] = extract_field(text, self.patterns[field_name])

        found = sum(1 for value in results.values() if value)
        logger.info("Rule extraction found %d of %d fields", found, len(results))
        return results

    def extract_subtotal(self, text: str) -> tuple[str, str]:
        """Extract the pre-tax sum and tax from the "合计" row.

        Returns:
            ``(total_sum, tax_amount)``, each ``""`` when not found.
        """
        groups = extract_groups(text, SUBTOTAL_PATTERNS)
        if len(groups) < 2:
            return "", ""
        logger.debug("Found subtotal row: %s / %s", groups[0], groups[1])
        return groups[0], groups[1]

    def extract_total_amount(self, text: str) -> str:
        """Extract the tax-inclusive total.

        The line carrying both the "价税合计" marker and the amount-in-words
        marker is checked first, taking its trailing number so the words
        region is never captured. Pattern fallbacks cover layouts where the
        figure sits elsewhere.

        Returns:
            The total as recognized, or ``""``.
        """
        if not text:
            return ""

        for line in text.split("\n"):
            if _TOTAL_MARKER.search(line) and _WORDS_MARKER.search(line):
                tokens = _NUMBER_TOKEN.findall(_SPLIT_DECIMAL.sub(r"\1.\2", line))
                if tokens:
                    logger.debug("Found total on amount-in-words line: %s", tokens[-1])
                    return tokens[-1]

        return extract_field(text, TOTAL_PATTERNS)
