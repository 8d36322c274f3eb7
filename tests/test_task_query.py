"""Tests for the list-query pipeline: normalizer, predicates, ordering and pager."""

from datetime import datetime, timezone

import pytest

from todo_app.errors import RequestValidationFailed
from todo_app.models.task import Priority, StoredStatus, TaskStatus
from todo_app.services.task_query import (
    TIE_BREAKERS,
    SortBy,
    SortDirection,
    TaskQuery,
    build_ordering,
    build_predicates,
    day_window,
    matches_all,
    normalize_query,
    order_tasks,
    page_window,
    total_pages,
)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestNormalizeQuery:
    """Test raw parameter normalization."""

    def test_defaults(self):
        """Test an empty request yields the documented defaults."""
        query = normalize_query({})

        assert query.q is None
        assert query.status is None
        assert query.sort_by == SortBy.DATE
        assert query.sort_dir == SortDirection.ASC
        assert query.page == 1
        assert query.page_size == 10
        assert query.date_from is None
        assert query.date_to is None
        assert query.pinned_only is None

    def test_full_query(self):
        """Test every parameter is parsed into its typed form."""
        query = normalize_query({
            "q": "  milk ",
            "status": "active",
            "sortBy": "createdAt",
            "sortDir": "desc",
            "page": "3",
            "pageSize": "25",
            "from": "2024-05-01",
            "to": "2024-05-31T23:59:59Z",
            "pinnedOnly": "true",
        })

        assert query.q == "milk"
        assert query.status == TaskStatus.ACTIVE
        assert query.sort_by == SortBy.CREATED_AT
        assert query.sort_dir == SortDirection.DESC
        assert query.page == 3
        assert query.page_size == 25
        assert query.date_from == utc(2024, 5, 1)
        assert query.date_to == utc(2024, 5, 31, 23, 59, 59)
        assert query.pinned_only is True

    def test_array_values_use_first_element(self):
        """Test repeated parameters collapse to their first value."""
        query = normalize_query({"status": ["completed", "pending"], "page": ["2"]})

        assert query.status == TaskStatus.COMPLETED
        assert query.page == 2

    def test_blank_values_are_absent(self):
        """Test empty strings fall back to defaults."""
        query = normalize_query({"q": "   ", "status": "", "page": "", "pinnedOnly": ""})

        assert query.q is None
        assert query.status is None
        assert query.page == 1
        assert query.pinned_only is None

    def test_status_all_means_no_filter(self):
        """Test 'all' is equivalent to omitting status."""
        assert normalize_query({"status": "all"}).status is None

    @pytest.mark.parametrize("raw, expected", [
        ("true", True),
        ("1", True),
        (True, True),
        ("false", False),
        ("0", False),
        (False, False),
        ("TRUE", True),
        ("maybe", None),
    ])
    def test_pinned_only_representations(self, raw, expected):
        """Test accepted spellings of the pinnedOnly flag."""
        assert normalize_query({"pinnedOnly": raw}).pinned_only is expected

    @pytest.mark.parametrize("field, value", [
        ("status", "done"),
        ("sortBy", "title"),
        ("sortDir", "sideways"),
        ("from", "yesterday"),
        ("to", "2024-13-01"),
    ])
    def test_invalid_values_name_the_field(self, field, value):
        """Test invalid values are rejected with the offending field named."""
        with pytest.raises(RequestValidationFailed) as exc_info:
            normalize_query({field: value})

        assert [error["field"] for error in exc_info.value.errors] == [field]

    @pytest.mark.parametrize("field, value", [
        ("page", "0"),
        ("page", "-1"),
        ("pageSize", "0"),
        ("page", "abc"),
    ])
    def test_numbers_below_floor_are_rejected(self, field, value):
        """Test page numbers are rejected rather than clamped."""
        with pytest.raises(RequestValidationFailed) as exc_info:
            normalize_query({field: value})

        assert exc_info.value.errors[0]["field"] == field

    def test_multiple_errors_reported_together(self):
        """Test every offending field appears in one error."""
        with pytest.raises(RequestValidationFailed) as exc_info:
            normalize_query({"status": "nope", "pageSize": "0"})

        fields = {error["field"] for error in exc_info.value.errors}
        assert fields == {"status", "pageSize"}

    def test_unknown_parameters_ignored(self):
        """Test parameters outside the contract are dropped."""
        query = normalize_query({"limit": "5", "page_size": "0"})

        assert query.page_size == 10


class TestBuildPredicates:
    """Test predicate construction and evaluation."""

    def test_owner_predicate_always_first(self, user_id):
        """Test the ownership anchor is present even with no filters."""
        predicates = build_predicates(user_id, TaskQuery())

        assert [p.name for p in predicates] == ["owner"]

    def test_owner_filter(self, make_task, user_id, other_user_id):
        """Test tasks of other users never match."""
        predicates = build_predicates(user_id, TaskQuery())

        assert matches_all(make_task(user_id), predicates)
        assert not matches_all(make_task(other_user_id), predicates)

    def test_status_filter_uses_storage_spelling(self, make_task, user_id):
        """Test the lowercase API status matches uppercase stored values."""
        predicates = build_predicates(user_id, normalize_query({"status": "completed"}))

        assert matches_all(make_task(user_id, status=StoredStatus.COMPLETED), predicates)
        assert not matches_all(make_task(user_id, status=StoredStatus.ACTIVE), predicates)

    def test_pinned_only(self, make_task, user_id):
        """Test pinnedOnly=true keeps pinned tasks only."""
        predicates = build_predicates(user_id, normalize_query({"pinnedOnly": "1"}))

        assert matches_all(make_task(user_id, pinned=True), predicates)
        assert not matches_all(make_task(user_id), predicates)

    def test_pinned_only_false_does_not_filter(self, user_id):
        """Test pinnedOnly=false adds no predicate."""
        predicates = build_predicates(user_id, normalize_query({"pinnedOnly": "false"}))

        assert "pinned" not in [p.name for p in predicates]

    def test_date_range_is_inclusive(self, make_task, user_id):
        """Test both range bounds are inclusive."""
        predicates = build_predicates(
            user_id, normalize_query({"from": "2024-05-01", "to": "2024-05-10"})
        )

        assert matches_all(make_task(user_id, date=utc(2024, 5, 1)), predicates)
        assert matches_all(make_task(user_id, date=utc(2024, 5, 10)), predicates)
        assert not matches_all(make_task(user_id, date=utc(2024, 5, 10, 0, 0, 1)), predicates)
        assert not matches_all(make_task(user_id, date=utc(2024, 4, 30, 23, 59)), predicates)
        assert not matches_all(make_task(user_id), predicates)

    def test_open_ended_range(self, make_task, user_id):
        """Test a single bound leaves the other side open."""
        predicates = build_predicates(user_id, normalize_query({"from": "2024-05-01"}))

        assert matches_all(make_task(user_id, date=utc(2030, 1, 1)), predicates)
        assert not matches_all(make_task(user_id, date=utc(2024, 1, 1)), predicates)

    def test_search_is_case_insensitive_substring(self, make_task, user_id):
        """Test text search over descriptions."""
        predicates = build_predicates(user_id, normalize_query({"q": "MILK"}))

        assert matches_all(make_task(user_id, "Buy milk"), predicates)
        assert not matches_all(make_task(user_id, "Buy bread"), predicates)

    def test_search_day_matches_due_date(self, make_task, user_id):
        """Test a YYYY-MM-DD term matches tasks due that day."""
        predicates = build_predicates(user_id, normalize_query({"q": "2024-05-01"}))

        assert matches_all(make_task(user_id, "Dentist", date=utc(2024, 5, 1, 10)), predicates)
        assert not matches_all(make_task(user_id, "Dentist", date=utc(2024, 5, 2)), predicates)
        assert not matches_all(make_task(user_id, "Dentist"), predicates)

    def test_search_day_is_unioned_with_text(self, make_task, user_id):
        """Test the date match does not exclude description matches."""
        predicates = build_predicates(user_id, normalize_query({"q": "2024-05-01"}))

        assert matches_all(make_task(user_id, "Report due 2024-05-01"), predicates)

    def test_filters_compose_with_and(self, make_task, user_id):
        """Test every predicate must hold."""
        predicates = build_predicates(
            user_id, normalize_query({"q": "milk", "status": "pending", "pinnedOnly": "true"})
        )

        assert matches_all(make_task(user_id, "Buy milk", pinned=True), predicates)
        assert not matches_all(make_task(user_id, "Buy milk"), predicates)
        assert not matches_all(
            make_task(user_id, "Buy milk", pinned=True, status=StoredStatus.ACTIVE), predicates
        )

    def test_day_window(self):
        """Test the UTC day window for a search term."""
        assert day_window("2024-05-01") == (utc(2024, 5, 1), utc(2024, 5, 2))
        assert day_window("2024-02-30") is None
        assert day_window("May 1") is None


class TestOrdering:
    """Test multi-key ordering."""

    def test_tie_breakers_always_appended(self):
        """Test every primary key is followed by the fixed suffix."""
        for sort_by in SortBy:
            for sort_dir in SortDirection:
                ordering = build_ordering(sort_by, sort_dir)
                assert tuple(ordering[-3:]) == TIE_BREAKERS

    def test_primary_key_first(self):
        """Test the requested key leads the chain."""
        assert build_ordering(SortBy.PRIORITY, SortDirection.DESC)[0] == ("priority", SortDirection.DESC)
        assert build_ordering(SortBy.CREATED_AT, SortDirection.ASC)[0] == ("created_at", SortDirection.ASC)

    def test_pinned_primary_adds_pinned_at(self):
        """Test sorting by pinned also orders by pin time."""
        ordering = build_ordering(SortBy.PINNED, SortDirection.ASC)

        assert ordering[:2] == [("pinned", SortDirection.ASC), ("pinned_at", SortDirection.DESC)]

    def test_priority_uses_rank_not_alphabet(self, make_task, user_id):
        """Test LOW < MEDIUM < HIGH."""
        tasks = [
            make_task(user_id, "medium", priority=Priority.MEDIUM),
            make_task(user_id, "high", priority=Priority.HIGH),
            make_task(user_id, "low", priority=Priority.LOW),
        ]

        ordered = order_tasks(tasks, build_ordering(SortBy.PRIORITY, SortDirection.ASC))

        assert [t.description for t in ordered] == ["low", "medium", "high"]

    def test_status_uses_lifecycle_order(self, make_task, user_id):
        """Test PENDING < ACTIVE < COMPLETED."""
        tasks = [
            make_task(user_id, "done", status=StoredStatus.COMPLETED),
            make_task(user_id, "todo", status=StoredStatus.PENDING),
            make_task(user_id, "doing", status=StoredStatus.ACTIVE),
        ]

        ordered = order_tasks(tasks, build_ordering(SortBy.STATUS, SortDirection.DESC))

        assert [t.description for t in ordered] == ["done", "doing", "todo"]

    @pytest.mark.parametrize("sort_by", list(SortBy))
    def test_pinned_wins_ties_for_any_primary_key(self, make_task, user_id, sort_by):
        """Test a pinned task never follows an unpinned one it ties with."""
        same = {
            "date": utc(2024, 6, 1),
            "priority": Priority.HIGH,
            "status": StoredStatus.ACTIVE,
            "created_at": utc(2024, 5, 1),
        }
        unpinned = make_task(user_id, "unpinned", **same)
        pinned = make_task(user_id, "pinned", pinned=True, pinned_at=utc(2024, 5, 2), **same)

        for sort_dir in SortDirection:
            ordered = order_tasks([unpinned, pinned], build_ordering(sort_by, sort_dir))
            if sort_by == SortBy.PINNED and sort_dir == SortDirection.ASC:
                # Explicit ascending pin sort is the one case where pinned goes last
                assert [t.description for t in ordered] == ["unpinned", "pinned"]
            else:
                assert [t.description for t in ordered] == ["pinned", "unpinned"]

    def test_recently_pinned_first_among_pinned(self, make_task, user_id):
        """Test pinned_at desc breaks ties between pinned tasks."""
        first = make_task(user_id, "pinned earlier", pinned=True, pinned_at=utc(2024, 5, 1))
        second = make_task(user_id, "pinned later", pinned=True, pinned_at=utc(2024, 5, 3))

        ordered = order_tasks([first, second], build_ordering(SortBy.DATE, SortDirection.ASC))

        assert [t.description for t in ordered] == ["pinned later", "pinned earlier"]

    def test_created_at_desc_breaks_remaining_ties(self, make_task, user_id):
        """Test newer tasks come first when everything else ties."""
        older = make_task(user_id, "older", created_at=utc(2024, 1, 1))
        newer = make_task(user_id, "newer", created_at=utc(2024, 2, 1))

        ordered = order_tasks([older, newer], build_ordering(SortBy.PRIORITY, SortDirection.ASC))

        assert [t.description for t in ordered] == ["newer", "older"]

    def test_undated_tasks_first_ascending_last_descending(self, make_task, user_id):
        """Test missing due dates sort below every date."""
        dated = make_task(user_id, "dated", date=utc(2024, 5, 1))
        undated = make_task(user_id, "undated")

        ascending = order_tasks([dated, undated], build_ordering(SortBy.DATE, SortDirection.ASC))
        descending = order_tasks([dated, undated], build_ordering(SortBy.DATE, SortDirection.DESC))

        assert [t.description for t in ascending] == ["undated", "dated"]
        assert [t.description for t in descending] == ["dated", "undated"]


class TestPager:
    """Test pagination arithmetic."""

    @pytest.mark.parametrize("page, page_size", [(1, 1), (1, 10), (2, 10), (7, 3), (100, 25)])
    def test_window(self, page, page_size):
        """Test skip/take for valid inputs."""
        assert page_window(page, page_size) == ((page - 1) * page_size, page_size)

    def test_window_floors(self):
        """Test take is floored at one and skip at zero."""
        assert page_window(1, 0) == (0, 1)
        assert page_window(0, 10) == (0, 10)

    @pytest.mark.parametrize("total, take, expected", [
        (0, 10, 1),
        (1, 10, 1),
        (10, 10, 1),
        (11, 10, 2),
        (25, 5, 5),
        (26, 5, 6),
    ])
    def test_total_pages(self, total, take, expected):
        """Test totalPages is max(1, ceil(total/take))."""
        assert total_pages(total, take) == expected
