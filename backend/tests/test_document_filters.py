from __future__ import annotations

from datetime import datetime, timezone

import pytest

from docsafe.services.documents.filters import (
    DocumentFilter,
    month_lower_bound,
    month_upper_bound,
    split_multi,
)


def test_month_lower_bound_starts_on_the_first() -> None:
    assert month_lower_bound("2024-02") == datetime(2024, 2, 1, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2024-01", datetime(2024, 1, 31, tzinfo=timezone.utc)),
        ("2024-02", datetime(2024, 3, 1, tzinfo=timezone.utc)),
        ("2023-02", datetime(2023, 3, 1, tzinfo=timezone.utc)),
        ("2024-04", datetime(2024, 5, 1, tzinfo=timezone.utc)),
        ("2024-12", datetime(2024, 12, 31, tzinfo=timezone.utc)),
    ],
)
def test_month_upper_bound_is_exclusive(value, expected) -> None:
    assert month_upper_bound(value) == (expected, True)


def test_full_dates_are_inclusive_instants() -> None:
    bound, exclusive = month_upper_bound("2024-02-15T10:00:00Z")
    assert bound == datetime(2024, 2, 15, 10, 0, tzinfo=timezone.utc)
    assert exclusive is False
    assert month_lower_bound("2024-02-15") == datetime(2024, 2, 15, tzinfo=timezone.utc)


def test_invalid_month_is_rejected() -> None:
    with pytest.raises(ValueError):
        month_lower_bound("2024-13")
    with pytest.raises(ValueError):
        month_upper_bound("not-a-date")


def test_split_multi_accepts_repeated_and_comma_values() -> None:
    assert split_multi(["processed,error", "uploaded", " ", ""]) == ["processed", "error", "uploaded"]
    assert split_multi(None) == []


def test_sort_defaults_and_allow_list() -> None:
    assert DocumentFilter().sort_key() == "created_at"
    assert DocumentFilter().ascending() is False
    assert DocumentFilter(sort_by="title; drop table").sort_key() == "created_at"
    assert DocumentFilter(sort_by="file_size", sort_order="ASC").ascending() is True


def test_folder_sentinels() -> None:
    assert DocumentFilter(folder_id="null").wants_unassigned
    assert DocumentFilter(folder_id="null").folder_uuid() is None
    assert not DocumentFilter(folder_id=None).wants_unassigned
    with pytest.raises(ValueError):
        DocumentFilter(folder_id="not-a-uuid").folder_uuid()


def test_malformed_values_raise_value_error() -> None:
    with pytest.raises(ValueError):
        DocumentFilter(status=["archived"]).conditions()
    with pytest.raises(ValueError):
        DocumentFilter(owner_id="someone").conditions()


def test_conditions_count_matches_supplied_predicates() -> None:
    filters = DocumentFilter(
        search="factura",
        status=["processed"],
        category=["Legal"],
        mime_type="application/pdf",
        date_from="2024-01",
        date_to="2024-02",
        folder_id="null",
    )
    assert len(filters.conditions()) == 7
    assert DocumentFilter().conditions() == []
