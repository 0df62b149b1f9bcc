"""Tests for cross-edition trend tracking."""

from datetime import date, timedelta

from policybrief.analysis.trends import (
    TrendTracker,
    _ordinal,
    detect_category,
    detect_reversal,
    extract_terms,
)
from tests.helpers import make_candidate

TODAY = date(2026, 10, 19)


def test_detect_category():
    assert detect_category(make_candidate("New tariff on steel imports")) == "trade"
    assert detect_category(make_candidate("EPA tightens emission limits")) == "environmental"
    assert detect_category(make_candidate("Senate passes farm bill", description="Lawmakers approved it.")) == "policy"


def test_detect_reversal():
    assert detect_reversal(make_candidate("Agency rescinds Biden rule")) == "Biden-era"
    assert detect_reversal(make_candidate("Court overturns permit")) == "previous administration"
    assert detect_reversal(make_candidate("Senate passes farm bill")) is None


def test_extract_terms():
    text = "Manufacturers gain while consumers and small businesses pay more."
    assert extract_terms(text, ("manufacturers", "banks")) == ["manufacturers"]
    assert extract_terms(text, ("consumers", "small businesses")) == ["consumers", "small businesses"]


def test_ordinal_suffixes():
    assert [_ordinal(n) for n in (1, 2, 3, 4, 11, 12, 13, 21, 22, 111)] == [
        "1st", "2nd", "3rd", "4th", "11th", "12th", "13th", "21st", "22nd", "111th",
    ]


def test_no_history_means_no_context(db):
    assert TrendTracker(db, today=TODAY).trend_context(make_candidate("New tariff on steel imports")) == ""


def test_track_persists_and_returns_category(db):
    tracker = TrendTracker(db, today=TODAY)
    category = tracker.track(
        make_candidate("New tariff on steel imports"),
        "Manufacturers gain while consumers pay more.",
    )
    assert category == "trade"
    (row,) = db.tracked_between(TODAY, TODAY + timedelta(days=1))
    assert row["beneficiaries"] == ["manufacturers"]
    assert row["affected"] == ["consumers"]


def test_context_summarizes_recent_history(db):
    for i in range(5):
        db.insert_tracked_analysis(
            "trade", TODAY - timedelta(days=i), f"Tariff story {i}", ["manufacturers"], [], None,
        )
    context = TrendTracker(db, today=TODAY).trend_context(make_candidate("New tariff on steel imports"))

    assert "This is the 6th trade story analyzed in the past month" in context
    assert "Manufacturers appeared as beneficiaries" in context
    assert "Trade stories are arriving at about 1.2 per week" in context
    assert context.endswith(".")


def test_history_survives_a_new_tracker(db):
    TrendTracker(db, today=TODAY).track(make_candidate("New tariff on steel imports"), "text")
    TrendTracker(db, today=TODAY).track(make_candidate("Tariff talks stall"), "text")
    context = TrendTracker(db, today=TODAY).trend_context(make_candidate("Export rules change"))
    assert "3rd trade story" in context


def test_old_history_is_ignored(db):
    for i in range(3):
        db.insert_tracked_analysis("trade", TODAY - timedelta(days=90 + i), "Old tariff story", [], [], None)
    assert TrendTracker(db, today=TODAY).trend_context(make_candidate("New tariff on steel imports")) == ""


def test_reversals_are_counted_across_categories(db):
    for i, category in enumerate(["trade", "energy", "healthcare"]):
        db.insert_tracked_analysis(category, TODAY - timedelta(days=i), "Rollback", [], [], "Biden-era")
    context = TrendTracker(db, today=TODAY).trend_context(make_candidate("Senate passes farm bill"))
    assert "3 stories analyzed this month involved reversing earlier policies" in context
