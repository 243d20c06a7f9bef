"""
Revision query pipeline — filter → sort → paginate.

Three independent pure stages over the same collection type. All UI state
(filters, sort, page, row selection) is owned by the caller and passed in
explicitly as frozen values; every stage returns a new list and leaves its
input untouched.

Usage:
    resolver = CatalogNameResolver.from_catalog(ventures, works, disciplines, designers)
    filtered = apply_filters(revisions, filters, resolver)
    ordered = apply_sort(filtered, sort, resolver)
    page = paginate(ordered, page=2, page_size=100)
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Iterable, Mapping

from revtrack.core.records import ENTITY_ID_FIELDS, EntityKind, RevisionRecord
from revtrack.core.status_engine import STATUS_VALUES

PAGE_SIZE_PRESETS = (100, 500, 1000)
DEFAULT_PAGE_SIZE = PAGE_SIZE_PRESETS[0]


# ═════════════════════════════════════════════════════════════════════════════
# Columns & name resolution
# ═════════════════════════════════════════════════════════════════════════════

class Column(str, Enum):
    VENTURE = "venture"
    WORK = "work"
    DISCIPLINE = "discipline"
    DESIGNER = "designer"
    REVISION_NUMBER = "revision_number"
    EXPECTED_DELIVERY_DATE = "expected_delivery_date"
    ACTUAL_DELIVERY_DATE = "actual_delivery_date"
    EXPECTED_ANALYSIS_DATE = "expected_analysis_date"
    ACTUAL_ANALYSIS_DATE = "actual_analysis_date"
    DELIVERY_STATUS = "delivery_status"
    ANALYSIS_STATUS = "analysis_status"


NAME_COLUMNS: dict[Column, EntityKind] = {
    Column.VENTURE: EntityKind.VENTURE,
    Column.WORK: EntityKind.WORK,
    Column.DISCIPLINE: EntityKind.DISCIPLINE,
    Column.DESIGNER: EntityKind.DESIGNER,
}
STATUS_COLUMNS = (Column.DELIVERY_STATUS, Column.ANALYSIS_STATUS)
DATE_COLUMNS = (
    Column.EXPECTED_DELIVERY_DATE,
    Column.ACTUAL_DELIVERY_DATE,
    Column.EXPECTED_ANALYSIS_DATE,
    Column.ACTUAL_ANALYSIS_DATE,
)
CATEGORICAL_COLUMNS = (*NAME_COLUMNS, Column.REVISION_NUMBER, *STATUS_COLUMNS)


class NameResolver(ABC):
    """Maps a related entity id to its display name."""

    @abstractmethod
    def resolve(self, entity_id, kind: EntityKind) -> str:
        """Return the display name, or "" for an unknown id. Never raises."""
        ...


class CatalogNameResolver(NameResolver):
    """Resolver over in-memory ``{kind: {id: name}}`` lookup tables."""

    def __init__(self, names: Mapping[EntityKind, Mapping]):
        self._names = {kind: dict(names.get(kind, {})) for kind in EntityKind}

    @classmethod
    def from_catalog(cls, ventures=(), works=(), disciplines=(), designers=()) -> "CatalogNameResolver":
        """Build from iterables of objects exposing ``id`` and ``name``."""
        return cls({
            EntityKind.VENTURE: {v.id: v.name for v in ventures},
            EntityKind.WORK: {w.id: w.name for w in works},
            EntityKind.DISCIPLINE: {d.id: d.name for d in disciplines},
            EntityKind.DESIGNER: {d.id: d.name for d in designers},
        })

    def resolve(self, entity_id, kind: EntityKind) -> str:
        return self._names.get(kind, {}).get(entity_id) or ""


def cell_text(record: RevisionRecord, column: Column, resolver: NameResolver) -> str:
    """Display text of ``column`` for ``record`` (the value categorical filters compare)."""
    if column in NAME_COLUMNS:
        kind = NAME_COLUMNS[column]
        return resolver.resolve(getattr(record, ENTITY_ID_FIELDS[kind]), kind)
    if column is Column.REVISION_NUMBER:
        return "" if record.revision_number is None else str(record.revision_number)
    value = getattr(record, column.value)
    if isinstance(value, date):
        return value.isoformat()
    return "" if value is None else str(value)


# ═════════════════════════════════════════════════════════════════════════════
# State values
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class DateRange:
    """Inclusive date bounds; an unset side does not constrain."""
    start: date | None = None
    end: date | None = None

    @property
    def is_active(self) -> bool:
        return self.start is not None or self.end is not None

    def admits(self, value: date | None) -> bool:
        if value is None:
            return True
        if self.start is not None and value < self.start:
            return False
        if self.end is not None and value > self.end:
            return False
        return True


@dataclass(frozen=True)
class FilterState:
    """Per-column constraints. An empty selection means "no constraint"."""
    venture: frozenset = frozenset()
    work: frozenset = frozenset()
    discipline: frozenset = frozenset()
    designer: frozenset = frozenset()
    revision_number: frozenset = frozenset()
    delivery_status: frozenset = frozenset()
    analysis_status: frozenset = frozenset()
    expected_delivery_date: DateRange = field(default_factory=DateRange)
    actual_delivery_date: DateRange = field(default_factory=DateRange)
    expected_analysis_date: DateRange = field(default_factory=DateRange)
    actual_analysis_date: DateRange = field(default_factory=DateRange)

    def with_values(self, column: Column, values: Iterable[str]) -> "FilterState":
        return replace(self, **{column.value: frozenset(str(v) for v in values)})

    def with_range(self, column: Column, start: date | None = None, end: date | None = None) -> "FilterState":
        return replace(self, **{column.value: DateRange(start, end)})

    def active_columns(self) -> list[Column]:
        active = [c for c in CATEGORICAL_COLUMNS if getattr(self, c.value)]
        active += [c for c in DATE_COLUMNS if getattr(self, c.value).is_active]
        return active

    @property
    def is_empty(self) -> bool:
        return not self.active_columns()


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortState:
    """At most one active (column, direction); ``column=None`` means unsorted."""
    column: Column | None = None
    direction: SortDirection = SortDirection.ASC

    @property
    def is_active(self) -> bool:
        return self.column is not None


UNSORTED = SortState()


def toggle_sort(state: SortState, column: Column) -> SortState:
    """Three-state cycle per column: none → asc → desc → none."""
    if state.column is not column:
        return SortState(column, SortDirection.ASC)
    if state.direction is SortDirection.ASC:
        return SortState(column, SortDirection.DESC)
    return UNSORTED


@dataclass(frozen=True)
class Page:
    items: tuple
    page: int
    page_size: int
    total: int
    total_pages: int


# ═════════════════════════════════════════════════════════════════════════════
# Stages
# ═════════════════════════════════════════════════════════════════════════════

def unique_values(collection: Iterable[RevisionRecord], resolver: NameResolver) -> dict[str, list[str]]:
    """Distinct non-empty display values per categorical column.

    Text columns sort ascending; the revision-number column sorts numerically.
    """
    records = list(collection)
    result: dict[str, list[str]] = {}
    for column in NAME_COLUMNS:
        values = {cell_text(r, column, resolver) for r in records}
        result[column.value] = sorted(v for v in values if v)
    numbers = {r.revision_number for r in records if r.revision_number is not None}
    result[Column.REVISION_NUMBER.value] = [str(n) for n in sorted(numbers)]
    for column in STATUS_COLUMNS:
        present = {getattr(r, column.value) for r in records}
        result[column.value] = [s for s in STATUS_VALUES if s in present]
    return result


def _passes(record: RevisionRecord, filters: FilterState, column: Column, resolver: NameResolver) -> bool:
    if column in DATE_COLUMNS:
        return getattr(filters, column.value).admits(getattr(record, column.value))
    return cell_text(record, column, resolver) in getattr(filters, column.value)


def apply_filters(
    collection: Iterable[RevisionRecord],
    filters: FilterState,
    resolver: NameResolver,
) -> list[RevisionRecord]:
    """Keep records satisfying every active column constraint (logical AND)."""
    active = filters.active_columns()
    return [
        r for r in collection
        if all(_passes(r, filters, column, resolver) for column in active)
    ]


def _sort_key(column: Column, resolver: NameResolver):
    if column is Column.REVISION_NUMBER:
        return lambda r: r.revision_number if r.revision_number is not None else -1
    return lambda r: cell_text(r, column, resolver)


def apply_sort(
    filtered: Iterable[RevisionRecord],
    sort: SortState,
    resolver: NameResolver,
) -> list[RevisionRecord]:
    """Stable sort on the active column; unsorted keeps the filtered order.

    Absent dates compare as "" and therefore come first ascending.
    """
    records = list(filtered)
    if not sort.is_active:
        return records
    return sorted(
        records,
        key=_sort_key(sort.column, resolver),
        reverse=sort.direction is SortDirection.DESC,
    )


def total_pages_for(count: int, page_size: int) -> int:
    return max(1, math.ceil(count / page_size))


def clamp_page(page: int, total_pages: int) -> int:
    return min(max(1, page), max(1, total_pages))


def paginate(ordered, page: int, page_size: int = DEFAULT_PAGE_SIZE) -> Page:
    """Slice the 1-based ``page``; out-of-range pages are clamped."""
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    records = list(ordered)
    total_pages = total_pages_for(len(records), page_size)
    page = clamp_page(page, total_pages)
    start = (page - 1) * page_size
    return Page(
        items=tuple(records[start:start + page_size]),
        page=page,
        page_size=page_size,
        total=len(records),
        total_pages=total_pages,
    )


def run_query(collection, filters: FilterState, sort: SortState, page: int, page_size: int,
              resolver: NameResolver) -> Page:
    return paginate(apply_sort(apply_filters(collection, filters, resolver), sort, resolver), page, page_size)


# ═════════════════════════════════════════════════════════════════════════════
# Row selection (bulk-edit target set)
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SelectionState:
    """Selected record ids.

    Survives sort changes; cleared whenever filters or the page change.
    Select-all acts on the current page's visible ids only.
    """
    selected: frozenset = frozenset()

    def toggle(self, record_id) -> "SelectionState":
        if record_id in self.selected:
            return SelectionState(self.selected - {record_id})
        return SelectionState(self.selected | {record_id})

    def all_selected(self, page_ids: Iterable) -> bool:
        ids = set(page_ids)
        return bool(ids) and ids <= self.selected

    def toggle_all(self, page_ids: Iterable) -> "SelectionState":
        ids = frozenset(page_ids)
        if self.all_selected(ids):
            return SelectionState(self.selected - ids)
        return SelectionState(ids)

    def on_filters_changed(self) -> "SelectionState":
        return SelectionState()

    def on_page_changed(self) -> "SelectionState":
        return SelectionState()

    def on_sort_changed(self) -> "SelectionState":
        return self
