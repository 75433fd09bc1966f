# src/lab_ingestion/utils/parsing.py
"""
Parsing utilities for lab value strings.
"""

import re
from typing import NamedTuple, Optional


QUALITATIVE_TOKENS = frozenset({"negative", "positive", "trace", "normal"})

_COMPARATOR_PREFIX = re.compile(r'^(?:<=|>=|[<>≤≥])\s*')
_NUMERIC = re.compile(r'^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$')
_THOUSANDS = re.compile(r'(?<=\d),(?=\d)')


class ReferenceRange(NamedTuple):
    """Parsed reference range. Open ends are None."""
    low: Optional[float]
    high: Optional[float]


def strip_thousands_separators(value_str: str) -> str:
    """'1,234,567' -> '1234567'. Commas not between digits are kept."""
    return _THOUSANDS.sub('', value_str)


def parse_numeric_value(value_str: Optional[str]) -> Optional[float]:
    """
    Strictly parse a single numeric lab value.

    Accepts:
    - "12.5", "1,024", " 95 "
    - "< 0.01", ">=1000"  (comparator is dropped)
    - "1.2e3"

    Rejects anything with trailing text or embedded units ("95mg/dL",
    "12-15", "x10E3/uL") so that corrupted extractions are not silently
    turned into numbers.
    """
    if value_str is None:
        return None

    cleaned = strip_thousands_separators(value_str.strip())
    cleaned = _COMPARATOR_PREFIX.sub('', cleaned)
    cleaned = re.sub(r'\s+', '', cleaned)

    if not cleaned or not _NUMERIC.match(cleaned):
        return None

    try:
        return float(cleaned)
    except ValueError:
        return None


def is_qualitative_token(value_str: Optional[str]) -> bool:
    """True for accepted qualitative results (Negative, Positive, Trace, Normal)."""
    if not value_str:
        return False
    return value_str.strip().lower() in QUALITATIVE_TOKENS


def looks_like_range(value_str: str) -> bool:
    """True for strings like '12-15' or '4.5 - 11.0' that belong in the range column."""
    return re.search(r'\d\s*[-–—]\s*\d', value_str) is not None


def parse_reference_range(ref_str: Optional[str]) -> Optional[ReferenceRange]:
    """
    Parse reference range string.

    Handles multiple formats:
    - "12.0-15.5" or "12.0 - 15.5" (standard range)
    - "4.5-11.0 x10E3/uL" (range with unit)
    - "-2 - 3" (negative lower bound)
    - ">=10" or "> 5.0" (greater than, no upper bound)
    - "<=100" or "< 0.5" (less than, no lower bound)
    - "Negative" or "Non-Reactive" (qualitative - return None)
    """
    if not ref_str:
        return None

    ref_str = strip_thousands_separators(ref_str.strip())

    # Skip qualitative results
    qualitative_patterns = [
        r'^negative$', r'^positive$', r'^non[\-\s]?reactive$',
        r'^reactive$', r'^normal$', r'^abnormal$', r'^see\s+', r'^n/a$',
        r'^unknown$',
    ]
    for pattern in qualitative_patterns:
        if re.match(pattern, ref_str, re.IGNORECASE):
            return None

    range_match = re.search(r'(-?\d+\.?\d*)\s*[-–—]\s*(-?\d+\.?\d*)', ref_str)
    if range_match:
        try:
            low = float(range_match.group(1))
            high = float(range_match.group(2))
        except ValueError:
            return None
        if low > high:
            return None
        return ReferenceRange(low, high)

    gt_match = re.match(r'^(?:>=|[>≥])\s*=?\s*(-?\d+\.?\d*)', ref_str)
    if gt_match:
        try:
            return ReferenceRange(float(gt_match.group(1)), None)
        except ValueError:
            return None

    lt_match = re.match(r'^(?:<=|[<≤])\s*=?\s*(-?\d+\.?\d*)', ref_str)
    if lt_match:
        try:
            return ReferenceRange(None, float(lt_match.group(1)))
        except ValueError:
            return None

    return None
