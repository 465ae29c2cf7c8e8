"""
File-number values: a single number, an inclusive range, or blank.

Persisted takes carry these values in two legacy shapes, an inline display
string (``"0001"`` / ``"0001-0005"``) and stable ``*_from``/``*_to`` keys.
``read_value``/``write_value`` are the only places that know about either.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Union

from .errors import InvalidFileNumber
from .fields import is_blank, range_keys

logger = logging.getLogger(__name__)

FILE_NUMBER_WIDTH = 4
SEPARATORS = ("-", "–")


@dataclass(frozen=True)
class Single:
    value: int

    @property
    def lower(self) -> int:
        return self.value

    @property
    def upper(self) -> int:
        return self.value


@dataclass(frozen=True)
class Range:
    start: int
    end: int

    @property
    def lower(self) -> int:
        return min(self.start, self.end)

    @property
    def upper(self) -> int:
        return max(self.start, self.end)


@dataclass(frozen=True)
class Blank:
    pass


BLANK = Blank()

FileValue = Union[Single, Range, Blank]


def _split(raw: str) -> List[str]:
    for sep in SEPARATORS[1:]:
        raw = raw.replace(sep, SEPARATORS[0])
    return raw.split(SEPARATORS[0])


def parse_field(raw: Any) -> FileValue:
    if is_blank(raw):
        return BLANK
    s = str(raw).strip()
    if any(sep in s for sep in SEPARATORS):
        parts = [p.strip() for p in _split(s)]
        if len(parts) == 2 and all(p.isdigit() for p in parts):
            return Range(int(parts[0]), int(parts[1]))
        raise InvalidFileNumber(s)
    if s.isdigit():
        return Single(int(s))
    raise InvalidFileNumber(s)


def format_number(n: int) -> str:
    return str(int(n)).zfill(FILE_NUMBER_WIDTH)


def format_value(value: FileValue) -> str:
    if isinstance(value, Single):
        return format_number(value.value)
    if isinstance(value, Range):
        return f"{format_number(value.start)}-{format_number(value.end)}"
    return ""


def lower_bound(value: FileValue) -> int:
    if isinstance(value, Blank):
        raise ValueError("blank value has no bounds")
    return value.lower


def upper_bound(value: FileValue) -> int:
    if isinstance(value, Blank):
        raise ValueError("blank value has no bounds")
    return value.upper


def expand(value: FileValue) -> List[int]:
    if isinstance(value, Blank):
        return []
    return list(range(value.lower, value.upper + 1))


def span(value: FileValue) -> int:
    """Number of files a value covers; this is the shift delta when it is inserted."""
    if isinstance(value, Blank):
        return 0
    return value.upper - value.lower + 1


def overlaps(a: FileValue, b: FileValue) -> bool:
    if isinstance(a, Blank) or isinstance(b, Blank):
        return False
    return not (a.upper < b.lower or a.lower > b.upper)


def shifted(value: FileValue, delta: int) -> FileValue:
    if isinstance(value, Single):
        return Single(value.value + delta)
    if isinstance(value, Range):
        return Range(value.start + delta, value.end + delta)
    return value


def slot(lower: int, size: int) -> FileValue:
    """The value covering ``size`` files starting at ``lower``."""
    if size <= 1:
        return Single(lower)
    return Range(lower, lower + size - 1)


def _parse_lenient(raw: Any, field_id: str) -> FileValue:
    try:
        return parse_field(raw)
    except InvalidFileNumber:
        logger.warning("Ignoring unparseable %s value %r", field_id, raw)
        return BLANK


def read_value(fields: Dict[str, Any], field_id: str) -> FileValue:
    """
    Resolve a take's value for a file field. Stable range keys win over the
    display value so an already-canonical range is never re-derived.
    """
    from_key, to_key = range_keys(field_id)
    lo, hi = fields.get(from_key), fields.get(to_key)
    if not is_blank(lo) and not is_blank(hi):
        bounds = _parse_lenient(f"{lo}-{hi}", field_id)
        if not isinstance(bounds, Blank):
            return bounds
    return _parse_lenient(fields.get(field_id), field_id)


def write_value(fields: Dict[str, Any], field_id: str, value: FileValue) -> Dict[str, Any]:
    out = dict(fields)
    from_key, to_key = range_keys(field_id)
    out.pop(from_key, None)
    out.pop(to_key, None)
    if isinstance(value, Blank):
        out.pop(field_id, None)
    elif isinstance(value, Range):
        out[from_key] = format_number(value.start)
        out[to_key] = format_number(value.end)
        out[field_id] = format_value(value)
    else:
        out[field_id] = format_value(value)
    return out


def clear_value(fields: Dict[str, Any], field_id: str) -> Dict[str, Any]:
    return write_value(fields, field_id, BLANK)


def highest_in(fields: Dict[str, Any], field_id: str) -> int:
    """Largest number held for a field, scanning the display value and the stable keys."""
    highest = 0
    for raw in (fields.get(field_id), *(fields.get(k) for k in range_keys(field_id))):
        value = _parse_lenient(raw, field_id)
        if not isinstance(value, Blank):
            highest = max(highest, value.upper)
    return highest
