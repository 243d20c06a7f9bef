"""
Calendar-date normalization for ingested values.

Spreadsheet rows, API payloads and extracted drafts deliver dates in one of
four recognized encodings. Each raw value is classified into exactly one
variant of a closed set, and each variant knows how to turn itself into a
``datetime.date``:

    IsoDate       "2025-01-15" (a trailing time part is ignored)
    DayFirstDate  "15/01/2025"
    SerialDate    45672 (days since 1899-12-30, spreadsheet convention)
    NativeDate    date / datetime objects
    Unparsable    anything else

Nothing in this module raises on bad input: unparsable values become None
(``to_calendar_date``) or "" (``normalize_date``).
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Union

SERIAL_EPOCH = date(1899, 12, 30)

_ISO_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:[T ].*)?$")
_DAY_FIRST_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


@dataclass(frozen=True)
class IsoDate:
    text: str

    def to_date(self) -> date | None:
        m = _ISO_RE.match(self.text)
        return _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))


@dataclass(frozen=True)
class DayFirstDate:
    text: str

    def to_date(self) -> date | None:
        m = _DAY_FIRST_RE.match(self.text)
        return _safe_date(int(m.group(3)), int(m.group(2)), int(m.group(1)))


@dataclass(frozen=True)
class SerialDate:
    days: float

    def to_date(self) -> date | None:
        # Fractional serials carry a time of day; round half up to the nearest day.
        whole = math.floor(self.days + 0.5)
        try:
            return SERIAL_EPOCH + timedelta(days=whole)
        except OverflowError:
            return None


@dataclass(frozen=True)
class NativeDate:
    value: date

    def to_date(self) -> date | None:
        if isinstance(self.value, datetime):
            return self.value.date()
        return self.value


@dataclass(frozen=True)
class Unparsable:
    raw: object

    def to_date(self) -> date | None:
        return None


RawDate = Union[IsoDate, DayFirstDate, SerialDate, NativeDate, Unparsable]


def classify_date(raw) -> RawDate:
    """Classify ``raw`` into one of the recognized date encodings."""
    if isinstance(raw, date):
        return NativeDate(raw)
    if isinstance(raw, bool):
        return Unparsable(raw)
    if isinstance(raw, (int, float)):
        try:
            days = float(raw)
        except OverflowError:
            return Unparsable(raw)
        if not math.isfinite(days):
            return Unparsable(raw)
        return SerialDate(days)
    if isinstance(raw, str):
        text = raw.strip()
        if _ISO_RE.match(text):
            return IsoDate(text)
        if _DAY_FIRST_RE.match(text):
            return DayFirstDate(text)
    return Unparsable(raw)


def to_calendar_date(raw) -> date | None:
    """Return ``raw`` as a calendar date, or None when absent or unparsable."""
    if raw is None or raw == "":
        return None
    return classify_date(raw).to_date()


def normalize_date(raw) -> str:
    """Return ``raw`` as a canonical ``yyyy-mm-dd`` string, or "" if unparsable."""
    value = to_calendar_date(raw)
    return value.isoformat() if value else ""
