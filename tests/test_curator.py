"""Tests for edition curation."""

import sqlite3
from datetime import date, timedelta
from unittest.mock import MagicMock

import pytest

from policybrief.analysis.generator import ErrorKind, GenerationError
from policybrief.analysis.retry import FALLBACK_TEXT, AnalysisResult
from policybrief.analysis.trends import TrendTracker
from policybrief.curator import EditionCurator
from policybrief.models import ArticleStatus, Edition, EditionStatus
from policybrief.storage.database import Database
from tests.helpers import NOW, make_candidate, words

DAY = NOW.date()

NAMES = [
    "alpha", "bravo", "charlie", "delta", "echo", "foxtrot", "gamma", "hotel",
    "india", "juliet", "kilo", "lima", "mike", "november", "oscar",
]


class FakeSource:
    def __init__(self, candidates=None, error=None):
        self.candidates = candidates or []
        self.error = error
        self.calls = []

    def fetch(self, query=None, date_range=None):
        self.calls.append(date_range)
        if self.error:
            raise self.error
        return list(self.candidates)


def _candidates(n=15):
    # Distinct enough that none are title duplicates of each other
    return [make_candidate(f"Senate debates measure {name}") for name in NAMES[:n]]


def _analysis(candidate, now=None):
    return AnalysisResult(text=words(120, "analysis"), attempts=1)


@pytest.fixture
def analyzer():
    mock = MagicMock()
    mock.analyze.side_effect = _analysis
    return mock


@pytest.fixture
def source():
    return FakeSource(_candidates())


@pytest.fixture
def curator(db, source, analyzer):
    return EditionCurator(db, source, analyzer, num_analyzed=6)


def test_first_k_are_analyzed_and_the_rest_queued(curator, analyzer):
    edition = curator.curate(DAY, now=NOW)

    assert edition.id is not None
    assert edition.issue_number == 1
    assert len(edition.articles) == 15
    assert analyzer.analyze.call_count == 6

    analyzed = [a for a in edition.articles if a.analysis]
    queued = [a for a in edition.articles if not a.analysis]
    assert [a.ordinal for a in analyzed] == [1, 2, 3, 4, 5, 6]
    assert all(a.status is ArticleStatus.PUBLISHED for a in analyzed)
    assert all(a.word_count == 120 for a in analyzed)
    assert len(queued) == 9
    assert all(a.ordinal is None and a.status is ArticleStatus.QUEUE for a in queued)
    assert all(a.word_count == 0 for a in queued)

    assert edition.featured_headline == analyzed[0].title
    assert curator.stats.fetched == 15
    assert curator.stats.selected == 15
    assert curator.stats.analyzed == 6


def test_fetch_window_covers_the_day_before(curator, source):
    curator.curate(DAY, now=NOW)
    assert source.calls == [(date(2026, 10, 18), DAY)]


def test_curating_twice_returns_the_same_edition(curator, source, analyzer):
    first = curator.curate(DAY, now=NOW)
    second = curator.curate(DAY, now=NOW)

    assert second.id == first.id
    assert len(source.calls) == 1
    assert analyzer.analyze.call_count == 6
    assert curator.stats.reused_existing


def test_force_replaces_the_edition(curator, db, source):
    first = curator.curate(DAY, now=NOW)
    second = curator.curate(DAY, force=True, now=NOW)

    assert second.id != first.id
    # Issue numbers are never handed out twice
    assert second.issue_number == 2
    assert db.get_edition(first.id) is None
    assert db.get_articles(first.id) == []
    assert len(source.calls) == 2


def test_issue_numbers_increase_across_days(curator):
    first = curator.curate(date(2026, 10, 18), now=NOW)
    second = curator.curate(DAY, now=NOW)
    assert second.issue_number == first.issue_number + 1


def test_failed_fetch_produces_an_empty_edition(db, analyzer):
    curator = EditionCurator(db, FakeSource(error=RuntimeError("gnews down")), analyzer)
    edition = curator.curate(DAY, now=NOW)

    assert edition.id is not None
    assert edition.articles == []
    assert edition.featured_headline is None
    analyzer.analyze.assert_not_called()


def test_fewer_candidates_than_k(db, analyzer):
    curator = EditionCurator(db, FakeSource(_candidates(3)), analyzer, num_analyzed=6)
    edition = curator.curate(DAY, now=NOW)
    assert [a.ordinal for a in edition.articles] == [1, 2, 3]


def test_fallback_analyses_are_stored_but_not_tracked(db, source):
    analyzer = MagicMock()
    analyzer.analyze.return_value = AnalysisResult(
        text=FALLBACK_TEXT, attempts=3, used_fallback=True, failure_reason="transport",
    )
    tracker = MagicMock()
    curator = EditionCurator(db, source, analyzer, trend_tracker=tracker, num_analyzed=2)

    edition = curator.curate(DAY, now=NOW)

    assert [a.analysis for a in edition.articles[:2]] == [FALLBACK_TEXT, FALLBACK_TEXT]
    assert curator.stats.fallbacks == 2
    tracker.track.assert_not_called()


def test_accepted_analyses_are_tracked(db, source, analyzer):
    tracker = MagicMock()
    curator = EditionCurator(db, source, analyzer, trend_tracker=tracker, num_analyzed=2)
    curator.curate(DAY, now=NOW)
    assert tracker.track.call_count == 2


def test_auth_failure_propagates_and_stores_nothing(db, source):
    analyzer = MagicMock()
    analyzer.analyze.side_effect = GenerationError(ErrorKind.AUTH_FAILED, "invalid x-api-key", 401)
    curator = EditionCurator(db, source, analyzer)

    with pytest.raises(GenerationError):
        curator.curate(DAY, now=NOW)
    assert db.find_by_date(DAY) is None


def test_storage_errors_propagate(curator, db, monkeypatch):
    def broken(edition_id, articles):
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(db, "bulk_insert_articles", broken)
    with pytest.raises(sqlite3.OperationalError):
        curator.curate(DAY, now=NOW)
    assert db.find_by_date(DAY) is None


class RacingDatabase(Database):
    """Another run claims the date between the lookup and the insert."""

    def insert_edition(self, edition):
        super().insert_edition(Edition(edition_date=edition.edition_date))
        return super().insert_edition(edition)


def test_concurrent_creation_returns_the_winner(tmp_path, source, analyzer):
    with RacingDatabase(str(tmp_path / "race.db")) as db:
        curator = EditionCurator(db, source, analyzer)
        edition = curator.curate(DAY, now=NOW)

        assert edition.issue_number == 1
        assert db.next_issue_number() == 2
        assert edition.articles == []
        assert curator.stats.reused_existing
        assert len(db.recent_editions(days=1, today=DAY)) == 1


def test_publish_and_mark_sent(curator, db):
    edition = curator.curate(DAY, now=NOW)
    curator.mark_sent(edition.id)
    assert db.get_edition(edition.id).status is EditionStatus.SENT
    curator.publish(edition.id)
    assert db.get_edition(edition.id).status is EditionStatus.PUBLISHED


def test_mark_sent_failure_is_only_a_warning(curator, caplog):
    curator.mark_sent(999)
    assert "Failed to mark edition 999 as sent" in caplog.text


def test_run_daily_curates_and_marks_sent(curator):
    edition = curator.run_daily(DAY, now=NOW)
    assert edition.status is EditionStatus.SENT
    assert len(edition.articles) == 15


def test_reset(curator, db):
    assert not curator.reset(DAY)
    curator.curate(DAY, now=NOW)
    assert curator.reset(DAY)
    assert db.find_by_date(DAY) is None


def test_issue_number_is_not_reused_after_reset(curator):
    first = curator.curate(date(2026, 10, 18), now=NOW)
    second = curator.curate(DAY, now=NOW)
    curator.reset(DAY)
    third = curator.curate(DAY + timedelta(days=1), now=NOW)
    assert (first.issue_number, second.issue_number, third.issue_number) == (1, 2, 3)


def _tracked_titles(db):
    return sorted(row["title"] for row in db.tracked_between(date(2026, 1, 1), date(2027, 1, 1)))


def test_aborted_run_leaves_no_tracked_analyses(db):
    source = FakeSource(_candidates(3))
    tracker = TrendTracker(db, today=DAY)
    failing = MagicMock()
    failing.analyze.side_effect = [
        _analysis(None),
        GenerationError(ErrorKind.AUTH_FAILED, "invalid x-api-key", 401),
    ]

    with pytest.raises(GenerationError):
        EditionCurator(db, source, failing, trend_tracker=tracker, num_analyzed=3).curate(DAY, now=NOW)
    assert db.find_by_date(DAY) is None
    assert _tracked_titles(db) == []

    working = MagicMock()
    working.analyze.side_effect = _analysis
    EditionCurator(db, source, working, trend_tracker=tracker, num_analyzed=3).curate(DAY, now=NOW)
    assert _tracked_titles(db) == [c.title for c in _candidates(3)]


def test_force_does_not_track_stories_twice(db, source, analyzer):
    curator = EditionCurator(db, source, analyzer, trend_tracker=TrendTracker(db, today=DAY), num_analyzed=2)
    curator.curate(DAY, now=NOW)
    curator.curate(DAY, force=True, now=NOW)
    assert len(_tracked_titles(db)) == 2


def test_reset_forgets_tracked_analyses(db, source, analyzer):
    curator = EditionCurator(db, source, analyzer, trend_tracker=TrendTracker(db, today=DAY), num_analyzed=2)
    curator.curate(DAY, now=NOW)
    curator.reset(DAY)
    assert _tracked_titles(db) == []


def test_run_daily_leaves_a_sent_edition_alone(curator, db, monkeypatch):
    edition = curator.run_daily(DAY, now=NOW)
    set_status = MagicMock(wraps=db.set_edition_status)
    monkeypatch.setattr(db, "set_edition_status", set_status)

    again = curator.run_daily(DAY, now=NOW)

    assert again.id == edition.id
    assert again.status is EditionStatus.SENT
    set_status.assert_not_called()
