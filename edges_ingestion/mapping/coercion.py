"""
Cell coercion: pure conversion of one raw sheet cell to a typed value.

Workbook parsers hand over text (or, for native cells, numbers and
datetimes); this converts to int, Decimal, date, time, etc. according to the
column's SemanticType. ZERO I/O.

Null handling lives in the normalizer. Here, a cell that is empty after
trimming coerces successfully to None (a null-equivalent value); the caller
decides whether that becomes the null marker or the type's default.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import UTC, date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any

from edges_ingestion.domain.types import SemanticType

INT32_MIN, INT32_MAX = -(2**31), 2**31 - 1
INT64_MIN, INT64_MAX = -(2**63), 2**63 - 1

TRUE_TEXT = frozenset({"true", "1", "yes", "y", "on"})
FALSE_TEXT = frozenset({"false", "0", "no", "n", "off"})

_INTEGER = re.compile(r"[+-]?[0-9]+")
_GROUPED_NUMBER = re.compile(r"[+-]?[0-9]{1,3}(?:,[0-9]{3})+(?:\.[0-9]+)?")

_TIME_PART = r"(?P<H>\d{1,2}):(?P<M>\d{2})(?::(?P<S>\d{2})(?:\.(?P<f>\d{1,6}))?)?"
_YMD = re.compile(
    r"(?P<y>\d{4})(?:[-/.](?P<m>\d{1,2})[-/.](?P<d>\d{1,2})|年(?P<jm>\d{1,2})月(?P<jd>\d{1,2})日)"
    rf"(?:[ T]+{_TIME_PART})?"
)
_MDY = re.compile(rf"(?P<m>\d{{1,2}})/(?P<d>\d{{1,2}})/(?P<y>\d{{4}})(?:[ T]+{_TIME_PART})?")
_TIME_ONLY = re.compile(_TIME_PART)
_DATE_TIME_SPLIT = re.compile(r"[ T]+")


# -----------------------------------------------------------------------------
# Result type
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class CoercionResult:
    """Result of coercing one cell to a target type."""

    success: bool
    value: Any = None
    reason: str = ""

    @classmethod
    def ok(cls, value: Any) -> CoercionResult:
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, reason: str) -> CoercionResult:
        return cls(success=False, reason=reason)


# -----------------------------------------------------------------------------
# Date / time parsing (pure)
# -----------------------------------------------------------------------------


def _naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(UTC).replace(tzinfo=None)


def _time_from_match(m: re.Match) -> time:
    if m.group("H") is None:
        return time.min
    fraction = m.group("f") or "0"
    return time(
        int(m.group("H")),
        int(m.group("M")),
        int(m.group("S") or 0),
        int(fraction.ljust(6, "0")),
    )


def parse_datetime(text: str) -> datetime | None:
    """
    Generic date-time parse. Returns None when ``text`` is not a date-time.

    Accepts ISO 8601 (``T`` or space separator, fraction, offset, ``Z``),
    year-first dates separated by ``-``, ``/`` or ``.``, ``yyyy年m月d日``, and
    ``m/d/yyyy``; hours, months and days may be single digits. A date without
    a time is midnight. Aware values become naive UTC.
    """
    s = text.strip()
    if not s:
        return None
    try:
        return _naive_utc(datetime.fromisoformat(s.replace("Z", "+00:00")))
    except ValueError:
        pass

    m = _YMD.fullmatch(s)
    if m is not None:
        month = m.group("m") or m.group("jm")
        day = m.group("d") or m.group("jd")
        try:
            return datetime.combine(date(int(m.group("y")), int(month), int(day)), _time_from_match(m))
        except ValueError:
            return None

    m = _MDY.fullmatch(s)
    if m is not None:
        try:
            return datetime.combine(
                date(int(m.group("y")), int(m.group("m")), int(m.group("d"))),
                _time_from_match(m),
            )
        except ValueError:
            return None
    return None


def parse_date_literal(text: str) -> date | None:
    s = text.strip()
    try:
        return date.fromisoformat(s)
    except ValueError:
        pass
    dt = parse_datetime(s)
    return dt.date() if dt is not None else None


def parse_time_literal(text: str) -> time | None:
    s = text.strip()
    m = _TIME_ONLY.fullmatch(s)
    if m is not None:
        try:
            return _time_from_match(m)
        except ValueError:
            return None
    try:
        return time.fromisoformat(s).replace(tzinfo=None)
    except ValueError:
        return None


def parse_date(text: str) -> date | None:
    """
    Date-only parse, three tiers:
    full date-time then its date; date literal; first token of a
    space/``T`` split as a date.
    """
    dt = parse_datetime(text)
    if dt is not None:
        return dt.date()
    d = parse_date_literal(text)
    if d is not None:
        return d
    parts = _DATE_TIME_SPLIT.split(text.strip())
    return parse_date_literal(parts[0]) if parts and parts[0] else None


def parse_time(text: str) -> time | None:
    """
    Time-only parse, three tiers:
    full date-time then its time; time literal; second token of a
    space/``T`` split (or the whole text when there is one token).
    """
    dt = parse_datetime(text)
    if dt is not None:
        return dt.time()
    t = parse_time_literal(text)
    if t is not None:
        return t
    parts = [p for p in _DATE_TIME_SPLIT.split(text.strip()) if p]
    if len(parts) >= 2:
        return parse_time_literal(parts[1])
    return None


# -----------------------------------------------------------------------------
# Coercion (pure)
# -----------------------------------------------------------------------------


def cell_text(value: Any) -> str:
    """
    Text form of a non-null cell, trimmed.

    Integral floats lose their fraction (``3.0`` -> ``"3"``) so numeric cells
    read from a workbook parse as integers.
    """
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.strftime("%Y/%m/%d %H:%M:%S")
    return str(value).strip()


def _coerce_int(value: Any, low: int, high: int, label: str) -> CoercionResult:
    if isinstance(value, int) and not isinstance(value, bool):
        n = value
    else:
        s = cell_text(value)
        if not _INTEGER.fullmatch(s):
            return CoercionResult.fail(f"not a base-10 integer: {s!r}")
        n = int(s)
    if not low <= n <= high:
        return CoercionResult.fail(f"{n} is out of range for {label}")
    return CoercionResult.ok(n)


def _coerce_decimal(value: Any) -> CoercionResult:
    if isinstance(value, Decimal):
        d = value
    elif isinstance(value, int) and not isinstance(value, bool):
        d = Decimal(value)
    else:
        s = cell_text(value)
        if "_" in s:
            return CoercionResult.fail(f"not a decimal number: {s!r}")
        if _GROUPED_NUMBER.fullmatch(s):
            s = s.replace(",", "")
        try:
            d = Decimal(s)
        except InvalidOperation:
            return CoercionResult.fail(f"not a decimal number: {s!r}")
    if not d.is_finite():
        return CoercionResult.fail(f"non-finite decimal: {value!r}")
    return CoercionResult.ok(d)


def _coerce_double(value: Any) -> CoercionResult:
    if isinstance(value, float):
        return CoercionResult.ok(value)
    if isinstance(value, (int, Decimal)) and not isinstance(value, bool):
        return CoercionResult.ok(float(value))
    s = cell_text(value)
    if "_" in s:
        return CoercionResult.fail(f"not a number: {s!r}")
    if _GROUPED_NUMBER.fullmatch(s):
        s = s.replace(",", "")
    try:
        f = float(s)
    except ValueError:
        return CoercionResult.fail(f"not a number: {s!r}")
    if math.isnan(f):
        return CoercionResult.fail(f"not a number: {s!r}")
    return CoercionResult.ok(f)


def _coerce_bool(value: Any) -> CoercionResult:
    if isinstance(value, bool):
        return CoercionResult.ok(value)
    low = cell_text(value).lower()
    if low in TRUE_TEXT:
        return CoercionResult.ok(True)
    if low in FALSE_TEXT:
        return CoercionResult.ok(False)
    return CoercionResult.fail(f"not a boolean: {low!r}")


def _coerce_other(value: Any, python_type: type | None) -> CoercionResult:
    if python_type is None or isinstance(value, python_type):
        return CoercionResult.ok(value)
    try:
        return CoercionResult.ok(python_type(cell_text(value)))
    except (TypeError, ValueError) as exc:
        return CoercionResult.fail(str(exc))


def coerce_value(
    value: Any,
    semantic_type: SemanticType,
    python_type: type | None = None,
) -> CoercionResult:
    """
    Coerce a non-null cell to ``semantic_type``. Pure function.

    Values already of the target type pass through. Text that is empty after
    trimming yields ``CoercionResult.ok(None)``.
    """
    if semantic_type is not SemanticType.TEXT and isinstance(value, str) and not value.strip():
        return CoercionResult.ok(None)

    match semantic_type:
        case SemanticType.TEXT:
            return CoercionResult.ok(value if isinstance(value, str) else cell_text(value))
        case SemanticType.INT32:
            return _coerce_int(value, INT32_MIN, INT32_MAX, "int32")
        case SemanticType.INT64:
            return _coerce_int(value, INT64_MIN, INT64_MAX, "int64")
        case SemanticType.DECIMAL:
            return _coerce_decimal(value)
        case SemanticType.DOUBLE:
            return _coerce_double(value)
        case SemanticType.BOOL:
            return _coerce_bool(value)
        case SemanticType.DATETIME:
            if isinstance(value, datetime):
                return CoercionResult.ok(_naive_utc(value))
            if isinstance(value, date):
                return CoercionResult.ok(datetime.combine(value, time.min))
            dt = parse_datetime(cell_text(value))
            return CoercionResult.ok(dt) if dt is not None else CoercionResult.fail("unrecognized date-time")
        case SemanticType.DATE:
            if isinstance(value, datetime):
                return CoercionResult.ok(value.date())
            if isinstance(value, date):
                return CoercionResult.ok(value)
            d = parse_date(cell_text(value))
            return CoercionResult.ok(d) if d is not None else CoercionResult.fail("unrecognized date")
        case SemanticType.TIME:
            if isinstance(value, datetime):
                return CoercionResult.ok(value.time())
            if isinstance(value, time):
                return CoercionResult.ok(value)
            t = parse_time(cell_text(value))
            return CoercionResult.ok(t) if t is not None else CoercionResult.fail("unrecognized time")
        case SemanticType.OTHER:
            return _coerce_other(value, python_type)
