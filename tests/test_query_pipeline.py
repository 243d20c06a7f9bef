"""
Tests — revision query pipeline (filter → sort → paginate) and row selection.

Covers:
    - categorical filters on display names, AND across columns, order-independent
    - inclusive date ranges, absent dates always pass
    - stable sort, DESC, numeric revision-number ordering
    - three-state sort toggle
    - pagination slicing, page clamping, pages covering the collection once
    - unique_values per column
    - selection survives sort, cleared on filter / page change
"""

from datetime import date

import pytest

from revtrack.core.query_pipeline import (
    UNSORTED,
    CatalogNameResolver,
    Column,
    FilterState,
    SelectionState,
    SortDirection,
    SortState,
    apply_filters,
    apply_sort,
    paginate,
    run_query,
    toggle_sort,
    unique_values,
)
from revtrack.core.records import EntityKind, RevisionRecord

RESOLVER = CatalogNameResolver({
    EntityKind.VENTURE: {1: "Riverside", 2: "Harbour"},
    EntityKind.WORK: {1: "Block A", 2: "Block B"},
    EntityKind.DISCIPLINE: {1: "Structural"},
    EntityKind.DESIGNER: {1: "Acme"},
})


def _rev(rev_id, venture=1, work=1, number=1, delivered=None, status="pending"):
    return RevisionRecord(
        id=rev_id,
        venture_id=venture,
        work_id=work,
        discipline_id=1,
        designer_id=1,
        revision_number=number,
        actual_delivery_date=delivered,
        delivery_status=status,
    )


def _records():
    return [
        _rev(1, 1, 1, 1, date(2025, 1, 5), "on-time"),
        _rev(2, 1, 2, 10, date(2025, 2, 5), "late"),
        _rev(3, 2, 1, 2, None, "pending"),
        _rev(4, 2, 2, 1, date(2025, 3, 5), "late"),
    ]


def _ids(records):
    return [r.id for r in records]


# ═════════════════════════════════════════════════════════════════════════════
# Filters
# ═════════════════════════════════════════════════════════════════════════════

class TestFilters:
    def test_empty_filters_keep_everything(self):
        assert _ids(apply_filters(_records(), FilterState(), RESOLVER)) == [1, 2, 3, 4]

    def test_filter_by_display_name(self):
        filters = FilterState().with_values(Column.VENTURE, ["Harbour"])
        assert _ids(apply_filters(_records(), filters, RESOLVER)) == [3, 4]

    def test_multiple_values_are_or_within_column(self):
        filters = FilterState().with_values(Column.REVISION_NUMBER, ["1", "2"])
        assert _ids(apply_filters(_records(), filters, RESOLVER)) == [1, 3, 4]

    def test_columns_combine_with_and(self):
        filters = (
            FilterState()
            .with_values(Column.WORK, ["Block B"])
            .with_values(Column.DELIVERY_STATUS, ["late"])
            .with_values(Column.VENTURE, ["Riverside"])
        )
        assert _ids(apply_filters(_records(), filters, RESOLVER)) == [2]

    def test_date_range_is_inclusive(self):
        filters = FilterState().with_range(
            Column.ACTUAL_DELIVERY_DATE, date(2025, 2, 5), date(2025, 3, 5),
        )
        # Revision 3 has no delivery date and is never excluded by a range.
        assert _ids(apply_filters(_records(), filters, RESOLVER)) == [2, 3, 4]

    def test_open_ended_range(self):
        filters = FilterState().with_range(Column.ACTUAL_DELIVERY_DATE, end=date(2025, 1, 31))
        assert _ids(apply_filters(_records(), filters, RESOLVER)) == [1, 3]

    def test_active_columns(self):
        filters = FilterState().with_values(Column.DESIGNER, ["Acme"]).with_range(
            Column.EXPECTED_DELIVERY_DATE, start=date(2025, 1, 1),
        )
        assert filters.active_columns() == [Column.DESIGNER, Column.EXPECTED_DELIVERY_DATE]
        assert FilterState().is_empty

    def test_filters_commute(self):
        by_work = FilterState().with_values(Column.WORK, ["Block B"])
        by_date = FilterState().with_range(Column.ACTUAL_DELIVERY_DATE, start=date(2025, 3, 1))
        both = by_work.with_range(Column.ACTUAL_DELIVERY_DATE, start=date(2025, 3, 1))

        combined = apply_filters(_records(), both, RESOLVER)
        work_then_date = apply_filters(apply_filters(_records(), by_work, RESOLVER), by_date, RESOLVER)
        date_then_work = apply_filters(apply_filters(_records(), by_date, RESOLVER), by_work, RESOLVER)
        assert _ids(combined) == _ids(work_then_date) == _ids(date_then_work) == [4]

    def test_input_not_mutated(self):
        records = _records()
        apply_filters(records, FilterState().with_values(Column.VENTURE, ["Harbour"]), RESOLVER)
        assert _ids(records) == [1, 2, 3, 4]


# ═════════════════════════════════════════════════════════════════════════════
# Sort
# ═════════════════════════════════════════════════════════════════════════════

class TestSort:
    def test_unsorted_keeps_order(self):
        assert _ids(apply_sort(_records(), UNSORTED, RESOLVER)) == [1, 2, 3, 4]

    def test_revision_number_is_numeric(self):
        ordered = apply_sort(_records(), SortState(Column.REVISION_NUMBER), RESOLVER)
        assert [r.revision_number for r in ordered] == [1, 1, 2, 10]

    def test_sort_is_stable(self):
        ordered = apply_sort(_records(), SortState(Column.VENTURE), RESOLVER)
        # "Harbour" < "Riverside"; ties keep their filtered order.
        assert _ids(ordered) == [3, 4, 1, 2]

    def test_descending(self):
        ordered = apply_sort(
            _records(), SortState(Column.ACTUAL_DELIVERY_DATE, SortDirection.DESC), RESOLVER,
        )
        assert _ids(ordered) == [4, 2, 1, 3]

    def test_absent_dates_first_ascending(self):
        ordered = apply_sort(_records(), SortState(Column.ACTUAL_DELIVERY_DATE), RESOLVER)
        assert _ids(ordered)[0] == 3

    def test_toggle_cycle(self):
        state = toggle_sort(UNSORTED, Column.WORK)
        assert state == SortState(Column.WORK, SortDirection.ASC)
        state = toggle_sort(state, Column.WORK)
        assert state.direction is SortDirection.DESC
        assert toggle_sort(state, Column.WORK) == UNSORTED

    def test_toggle_other_column_restarts_ascending(self):
        state = SortState(Column.WORK, SortDirection.DESC)
        assert toggle_sort(state, Column.VENTURE) == SortState(Column.VENTURE, SortDirection.ASC)


# ═════════════════════════════════════════════════════════════════════════════
# Pagination
# ═════════════════════════════════════════════════════════════════════════════

class TestPaginate:
    def test_slices_page(self):
        page = paginate(list(range(250)), page=2, page_size=100)
        assert page.items == tuple(range(100, 200))
        assert page.total == 250
        assert page.total_pages == 3

    def test_last_partial_page(self):
        assert len(paginate(list(range(250)), page=3, page_size=100).items) == 50

    @pytest.mark.parametrize("requested, expected", [(0, 1), (-4, 1), (99, 3)])
    def test_page_is_clamped(self, requested, expected):
        assert paginate(list(range(250)), page=requested, page_size=100).page == expected

    def test_empty_collection_has_one_page(self):
        page = paginate([], page=5, page_size=100)
        assert page.page == 1
        assert page.total_pages == 1
        assert page.items == ()

    @pytest.mark.parametrize("size", [100, 500, 1000])
    def test_pages_cover_collection_once(self, size):
        records = list(range(1234))
        total_pages = paginate(records, page=1, page_size=size).total_pages
        pages = [paginate(records, page=n, page_size=size) for n in range(1, total_pages + 1)]
        assert sum(len(p.items) for p in pages) == len(records)
        assert [item for p in pages for item in p.items] == records

    def test_rejects_non_positive_page_size(self):
        with pytest.raises(ValueError):
            paginate([1], page=1, page_size=0)

    def test_run_query_composes_stages(self):
        filters = FilterState().with_values(Column.DELIVERY_STATUS, ["late"])
        sort = SortState(Column.REVISION_NUMBER, SortDirection.DESC)
        page = run_query(_records(), filters, sort, 1, 100, RESOLVER)
        assert _ids(page.items) == [2, 4]


# ═════════════════════════════════════════════════════════════════════════════
# Filter options & selection
# ═════════════════════════════════════════════════════════════════════════════

class TestUniqueValues:
    def test_values_per_column(self):
        values = unique_values(_records(), RESOLVER)
        assert values["venture"] == ["Harbour", "Riverside"]
        assert values["work"] == ["Block A", "Block B"]
        assert values["revision_number"] == ["1", "2", "10"]
        assert values["delivery_status"] == ["pending", "on-time", "late"]
        assert values["analysis_status"] == ["pending"]

    def test_unknown_ids_are_skipped(self):
        values = unique_values([_rev(9, venture=99)], RESOLVER)
        assert values["venture"] == []


class TestSelection:
    def test_toggle(self):
        state = SelectionState().toggle(1).toggle(2).toggle(1)
        assert state.selected == {2}

    def test_toggle_all_on_page(self):
        state = SelectionState().toggle(7).toggle_all([1, 2, 3])
        assert state.selected == {1, 2, 3}
        assert state.all_selected([1, 2, 3])
        assert state.toggle_all([1, 2, 3]).selected == set()

    def test_lifecycle(self):
        state = SelectionState().toggle(1)
        assert state.on_sort_changed().selected == {1}
        assert state.on_filters_changed().selected == set()
        assert state.on_page_changed().selected == set()
