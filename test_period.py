"""Tests for the competitor-event period classifier"""
from datetime import date, timedelta

import pytest

from pos_impact.etl.period import PeriodClassifier, PERIOD_NAMES


@pytest.mark.parametrize("day,expected", [
    (date(2025, 3, 31), "Pre-Closure"),
    (date(2025, 4, 1), "Post-Closure"),
    (date(2025, 7, 31), "Post-Closure"),
    (date(2025, 8, 1), "Post-Opening"),
    (date(2024, 1, 1), "Pre-Closure"),
    (date(2026, 1, 1), "Post-Opening"),
])
def test_boundaries(day, expected):
    assert PeriodClassifier().classify(day).period_name == expected


def test_every_date_has_exactly_one_period():
    classifier = PeriodClassifier()
    closure, end = date(2025, 4, 1), date(2025, 7, 31)
    day = date(2024, 12, 1)

    while day <= date(2025, 9, 30):
        matches = [day < closure, closure <= day <= end, day > end]
        assert matches.count(True) == 1
        assert classifier.classify(day).period_name == PERIOD_NAMES[matches.index(True)]
        day += timedelta(days=1)


def test_period_order_matches_name():
    classifier = PeriodClassifier()

    assert classifier.classify(date(2025, 1, 1)).period_order == 1
    assert classifier.classify(date(2025, 5, 1)).period_order == 2
    assert classifier.classify(date(2025, 9, 1)).period_order == 3


def test_custom_boundaries():
    classifier = PeriodClassifier(date(2024, 6, 1), date(2024, 6, 30))

    assert classifier.classify(date(2024, 5, 31)).period_name == "Pre-Closure"
    assert classifier.classify(date(2024, 6, 30)).period_name == "Post-Closure"
    assert classifier.classify(date(2024, 7, 1)).period_name == "Post-Opening"


def test_single_day_post_closure_window():
    classifier = PeriodClassifier(date(2025, 4, 1), date(2025, 4, 1))

    assert classifier.classify(date(2025, 4, 1)).period_name == "Post-Closure"
    assert classifier.classify(date(2025, 4, 2)).period_name == "Post-Opening"


def test_inverted_boundaries_rejected():
    with pytest.raises(ValueError):
        PeriodClassifier(date(2025, 8, 1), date(2025, 7, 31))


def test_classify_all_deduplicates_and_orders():
    classifier = PeriodClassifier()
    dates = [date(2025, 8, 2), date(2025, 1, 5), date(2025, 8, 2), date(2025, 4, 1)]

    view = classifier.classify_all(dates)

    assert list(view.keys()) == [date(2025, 1, 5), date(2025, 4, 1), date(2025, 8, 2)]
    assert [a.period_order for a in view.values()] == [1, 2, 3]
    assert view[date(2025, 4, 1)].date == date(2025, 4, 1)


def test_classification_is_memoised():
    classifier = PeriodClassifier()

    assert classifier.classify(date(2025, 5, 5)) is classifier.classify(date(2025, 5, 5))


def test_period_view_rows():
    rows = PeriodClassifier().period_view([date(2025, 7, 31), date(2025, 3, 31)])

    assert rows == [
        {"date": date(2025, 3, 31), "period_name": "Pre-Closure", "period_order": 1},
        {"date": date(2025, 7, 31), "period_name": "Post-Closure", "period_order": 2},
    ]
