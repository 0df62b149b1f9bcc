"""Tests for generated-text sanitizing and validation."""

from datetime import datetime, timezone

import pytest

from policybrief.analysis.sanitizer import Sanitizer, normalize_text
from tests.helpers import NOW, make_candidate, words


@pytest.fixture
def sanitizer():
    return Sanitizer(min_words=100, max_words=250, year_lookback=5)


@pytest.fixture
def article():
    return make_candidate(
        "Senate passes 2025 farm bill",
        description="The bill funds programs through 2030.",
        published=datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc),
    )


def _paragraphs(*counts):
    return "\n\n".join(words(n, f"word{i}") for i, n in enumerate(counts))


def test_normalize_text():
    raw = "  First line.  \r\n\r\n\n   Second line.\r\nThird line.  \n\n"
    assert normalize_text(raw) == "First line.\n\nSecond line.\n\nThird line."


def test_valid_text_round_trips(sanitizer, article):
    text = _paragraphs(40, 40, 40)
    assert sanitizer.sanitize(article, text, now=NOW) == text


def test_valid_text_is_normalized(sanitizer, article):
    messy = "\r\n  " + words(60, "alpha") + "  \r\n" + words(60, "beta") + "\n\n\n"
    expected = words(60, "alpha") + "\n\n" + words(60, "beta")
    assert sanitizer.sanitize(article, messy, now=NOW) == expected


@pytest.mark.parametrize("count", [50, 99, 251, 300])
def test_word_count_outside_range_is_rejected(sanitizer, article, count):
    assert sanitizer.sanitize(article, words(count), now=NOW) is None


@pytest.mark.parametrize("count", [100, 250])
def test_word_count_bounds_are_inclusive(sanitizer, article, count):
    assert sanitizer.sanitize(article, words(count), now=NOW) is not None


@pytest.mark.parametrize("marker", ["- ", "* ", "1. ", "12. "])
def test_list_markers_are_rejected(sanitizer, article, marker):
    text = _paragraphs(60, 60) + "\n" + marker + "a listed point here"
    assert sanitizer.sanitize(article, text, now=NOW) is None


def test_hyphenated_numbers_are_not_list_markers(sanitizer, article):
    text = _paragraphs(60, 60) + "\n-5% is the expected change"
    assert sanitizer.sanitize(article, text, now=NOW) is not None


def test_unsourced_future_year_is_rejected(sanitizer, article):
    text = _paragraphs(60, 60) + " The rules take effect in 2031."
    assert sanitizer.sanitize(article, text, now=NOW) is None


def test_unsourced_recent_year_is_rejected(sanitizer, article):
    text = _paragraphs(60, 60) + " A similar law passed in 2023."
    assert sanitizer.sanitize(article, text, now=NOW) is None


def test_years_from_source_are_allowed(sanitizer, article):
    # 2025 is in the title, 2030 in the description, 2026 in the publish timestamp
    text = _paragraphs(60, 60) + " It extends the 2025 law to 2030, starting in 2026."
    assert sanitizer.sanitize(article, text, now=NOW) is not None


def test_years_before_window_are_ignored(sanitizer, article):
    text = _paragraphs(60, 60) + " The program dates back to 1996 and 2008."
    assert sanitizer.sanitize(article, text, now=NOW) is not None


def test_unsourced_years_lists_each_once(sanitizer, article):
    text = "In 2031 and again in 2031, then 2024."
    assert sanitizer.unsourced_years(article, text, 2026) == ["2031", "2024"]


def test_empty_text_is_rejected(sanitizer, article):
    assert sanitizer.sanitize(article, "", now=NOW) is None
