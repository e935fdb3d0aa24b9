"""
Identifier normalization and filename token extraction.
Pure helpers shared by the candidate index and the matcher; no I/O happens here.
"""

import re
import logging
from typing import Callable, List, Tuple
from .config import (
    MIN_SEARCH_DIGITS,
    KNOWN_PREFIXES,
    PARCEL_SUFFIX_PATTERN,
    LEADING_SERIES_PREFIX,
    SERIES_PREFIX_PATTERN,
    SERIES_PREFIX_LENGTH,
    PAD_WIDTHS,
    CURRENCY_MARKERS,
    CURRENCY_AMOUNT_PATTERN,
)

logger = logging.getLogger(__name__)

_NON_DIGIT = re.compile(r'\D')
_ALL_DIGITS = re.compile(r'^\d+$')
_PARCEL_SUFFIX = re.compile(PARCEL_SUFFIX_PATTERN)
_SERIES_PREFIX = re.compile(SERIES_PREFIX_PATTERN)
_TOKEN = re.compile(r'\d{%d,}' % MIN_SEARCH_DIGITS)

# Longest markers first so "R$" wins over "$"
_CURRENCY_AMOUNT = re.compile(
    '(?:' + '|'.join(re.escape(m) for m in sorted(CURRENCY_MARKERS, key=len, reverse=True)) + ')'
    + CURRENCY_AMOUNT_PATTERN,
    re.IGNORECASE,
)


def strip_leading_zeros(value: str) -> str:
    """Remove leading zeros; may return an empty string."""
    return value.lstrip("0")


def digits_only(value: str) -> str:
    return _NON_DIGIT.sub("", value)


def _strip_known_prefix(value: str) -> str:
    for prefix in KNOWN_PREFIXES:
        if value.startswith(prefix):
            return value[len(prefix):]
    return value


def _strip_parcel_suffix(value: str) -> str:
    return _PARCEL_SUFFIX.sub("", value)


def _strip_leading_series(value: str) -> str:
    if value.startswith(LEADING_SERIES_PREFIX):
        return value[len(LEADING_SERIES_PREFIX):]
    return value


def _collapse_zeros(value: str) -> str:
    if _ALL_DIGITS.match(value):
        return strip_leading_zeros(value) or "0"
    return value


# Ordered normalization rules, applied one after the other
NORMALIZATION_RULES: List[Tuple[str, Callable[[str], str]]] = [
    ("prefix", _strip_known_prefix),
    ("parcel_suffix", _strip_parcel_suffix),
    ("leading_series", _strip_leading_series),
    ("leading_zeros", _collapse_zeros),
]


def normalize_number(raw: str) -> str:
    """
    Turn a raw invoice number into its canonical key.

    Trims and uppercases, then applies NORMALIZATION_RULES in order:
    strip one known prefix, strip an installment suffix, strip a leading
    "1-", collapse leading zeros of an all-digit result (keeping one digit).

    Args:
        raw: Invoice number as it came from the spreadsheet

    Returns:
        Canonical key, possibly "0" or an empty string
    """
    if not raw:
        return ""

    result = raw.strip().upper()
    for _name, rule in NORMALIZATION_RULES:
        result = rule(result)
    return result


def generate_variants(raw: str) -> List[str]:
    """
    Build the ordered lookup variants for an invoice number.

    Order: digits of the canonical key, digits of the raw input and their
    zero-stripped form, zero-padded forms, series-prefix-stripped form.
    Every variant has at least MIN_SEARCH_DIGITS digits. An empty list means
    the number is too short to search and must be reported as ignored.

    Args:
        raw: Invoice number as it came from the spreadsheet

    Returns:
        Deduplicated variants in priority order
    """
    key = digits_only(normalize_number(raw))
    if len(key) < MIN_SEARCH_DIGITS:
        return []

    variants = [key]

    raw_digits = digits_only(raw)
    if len(raw_digits) >= MIN_SEARCH_DIGITS:
        variants.append(raw_digits)
        raw_stripped = strip_leading_zeros(raw_digits)
        if len(raw_stripped) >= MIN_SEARCH_DIGITS:
            variants.append(raw_stripped)

    for width in PAD_WIDTHS:
        variants.append(key.zfill(width))

    if _SERIES_PREFIX.match(key):
        without_series = strip_leading_zeros(key[SERIES_PREFIX_LENGTH:])
        if len(without_series) >= MIN_SEARCH_DIGITS:
            variants.append(without_series)

    return list(dict.fromkeys(variants))


def strip_currency_amounts(filename: str) -> str:
    """Blank out monetary amounts such as 'R$ 11.101,15' from a filename."""
    return _CURRENCY_AMOUNT.sub(" ", filename)


def extract_numeric_tokens(filename: str) -> List[str]:
    """
    Extract indexable numeric tokens from a filename.

    Monetary amounts are removed first, then every digit run of at least
    MIN_SEARCH_DIGITS digits is kept together with its zero-stripped form
    when that form is still long enough.

    Args:
        filename: Base name of a candidate file

    Returns:
        Deduplicated tokens in order of appearance
    """
    cleaned = strip_currency_amounts(filename)
    tokens = []
    for run in _TOKEN.findall(cleaned):
        tokens.append(run)
        stripped = strip_leading_zeros(run)
        if stripped != run and len(stripped) >= MIN_SEARCH_DIGITS:
            tokens.append(stripped)
    return list(dict.fromkeys(tokens))


def filename_matches(variants: List[str], filename: str) -> bool:
    """Check whether any variant is one of the filename's tokens."""
    if not variants:
        return False
    tokens = set(extract_numeric_tokens(filename))
    return any(variant in tokens for variant in variants)
