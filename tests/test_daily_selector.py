"""
tests/test_daily_selector.py — Unit tests for great-person-of-the-day selection
"""
from __future__ import annotations

import random
from datetime import date

import pytest

from app.core.errors import NoDataError, ValidationFailure
from app.services.daily_selector import (
    HINT_TEMPLATES,
    build_preview,
    category_label,
    compute_day_of_year,
    era_label,
    generate_hint,
    select_for_date,
    select_for_offset,
)


class FixedChoice(random.Random):
    """Random source that always picks the element at `position`."""

    def __init__(self, position: int) -> None:
        super().__init__(0)
        self.position = position

    def choice(self, seq):
        return seq[self.position]


def test_march_15_with_five_entries_selects_index_2():
    assert compute_day_of_year(3, 15) == 77
    assert select_for_date(3, 15, 5) == 2


def test_select_for_date_is_pure_and_in_range():
    for month in range(1, 13):
        for day in (1, 15, 28, 31):
            first = select_for_date(month, day, 7)
            assert first == select_for_date(month, day, 7)
            assert 0 <= first < 7


def test_month_boundary_approximation_is_kept():
    # Jan 31 and Feb 1 are consecutive keys; Feb 28 → Mar 1 skips three
    assert compute_day_of_year(1, 31) == 31
    assert compute_day_of_year(2, 1) == 32
    assert compute_day_of_year(3, 1) - compute_day_of_year(2, 28) == 4


def test_empty_list_signals_no_data():
    for month, day in [(1, 1), (6, 30), (12, 31)]:
        assert select_for_date(month, day, 0) is None


def test_invalid_month_or_day_rejected():
    with pytest.raises(ValidationFailure):
        select_for_date(13, 1, 5)
    with pytest.raises(ValidationFailure):
        select_for_date(1, 0, 5)


def test_offset_selection_matches_date_selection():
    today = date(2024, 3, 14)
    selection = select_for_offset(1, today, 5)
    assert selection.target_date == date(2024, 3, 15)
    assert selection.index == select_for_date(3, 15, 5) == 2
    assert selection.is_preview


def test_offset_zero_and_past_are_not_previews():
    today = date(2024, 1, 1)
    assert not select_for_offset(0, today, 5).is_preview
    past = select_for_offset(-1, today, 5)
    assert not past.is_preview
    assert past.target_date == date(2023, 12, 31)
    assert past.day_of_year == 11 * 31 + 31


@pytest.mark.parametrize("offset", [-366, 366, 10_000])
def test_offset_out_of_range_rejected(offset):
    with pytest.raises(ValidationFailure):
        select_for_offset(offset, date(2024, 1, 1), 5)


def test_offset_rejected_before_no_data_check():
    with pytest.raises(ValidationFailure):
        select_for_offset(400, date(2024, 1, 1), 0)


def test_offset_bounds_are_inclusive():
    assert select_for_offset(365, date(2024, 1, 1), 5) is not None
    assert select_for_offset(-365, date(2024, 1, 1), 5) is not None


def test_offset_with_empty_list_signals_no_data():
    assert select_for_offset(0, date(2024, 1, 1), 0) is None


def test_catalog_get_none_raises_no_data(catalog):
    with pytest.raises(NoDataError):
        catalog.get(None)


# ── Hints ─────────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("year,label", [
    (-551, "classical"), (1499, "classical"), (1500, "early-modern"),
    (1799, "early-modern"), (1800, "19th-century"), (1899, "19th-century"),
    (1900, "modern"), (1990, "modern"),
])
def test_era_thresholds(year, label):
    assert era_label(year) == label


@pytest.mark.parametrize("profession,label", [
    ("Physicist/Philosopher", "scientist"),
    ("Chemist", "scientist"),
    ("Computer Scientist", "scientist"),
    ("Painter/Engineer", "artist"),
    ("Ukiyo-e Artist", "artist"),
    ("Inventor/Businessman", "inventor"),
    ("Composer/Musician", "Composer"),
    ("Politician / Activist", "Politician"),
    ("Bacteriologist/Physician", "Bacteriologist"),
    ("Quarterback", "Quarterback"),
    ("Chartered Accountant", "Chartered Accountant"),
    ("Startup Founder/Investor", "Startup Founder"),
    ("Art Critic", "artist"),
])
def test_category_labels(profession, label):
    assert category_label(profession) == label


def test_hint_uses_injected_random_source(people):
    einstein = people[0]
    assert generate_hint(einstein, FixedChoice(0)) == (
        "Tomorrow brings a scientist from the 19th-century era"
    )
    assert generate_hint(einstein, FixedChoice(2)) == (
        "Look forward to a great scientist who lived in the 19th-century era"
    )


def test_seeded_hints_are_repeatable(people):
    hints_a = [generate_hint(people[1], random.Random(42)) for _ in range(3)]
    hints_b = [generate_hint(people[1], random.Random(42)) for _ in range(3)]
    assert hints_a == hints_b
    expected = random.Random(42).choice(HINT_TEMPLATES).format(
        era="classical", category="artist"
    )
    assert hints_a[0] == expected


def test_preview_never_discloses_entry_fields(people):
    for person in people:
        preview = build_preview(person, random.Random(1))
        dumped = preview.model_dump(by_alias=True)
        assert set(dumped) == {"hint", "category", "isPreview"}
        assert dumped["isPreview"] is True
        assert person.name not in dumped["hint"]
        assert person.quote not in dumped["hint"]


def test_preview_category_is_first_profession_segment(people):
    preview = build_preview(people[2], random.Random(0))
    assert preview.category == "Inventor"
