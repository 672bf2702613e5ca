"""Tests for query classification."""

import pytest

from launchsearch.engine.classifier import (
    QueryClassification,
    classify,
    has_date_time_hint,
    looks_like_url,
    normalize_query,
    parse_duration_minutes,
    to_url,
)


class TestClassify:
    """Shape detection on representative queries."""

    def test_arithmetic_is_not_contact_shaped(self):
        result = classify("2+3")

        assert not result.is_email
        assert not result.is_phone
        assert not result.is_url
        assert result.duration_minutes is None
        assert result.has_date_time_hint

    def test_phone_number(self):
        result = classify("555-1234")

        assert result.is_phone
        assert not result.is_email
        assert not result.is_url

    def test_international_phone(self):
        assert classify("+49 30 1234567").is_phone

    def test_email(self):
        result = classify("a@b.com")

        assert result.is_email
        assert not result.is_phone

    def test_url_with_path(self):
        result = classify("example.com/path")

        assert result.is_url
        assert not result.is_email
        assert not result.is_phone

    def test_minutes_duration(self):
        result = classify("10 min")

        assert result.duration_minutes == 10
        assert result.has_date_time_hint

    def test_hours_duration(self):
        assert classify("2 hours").duration_minutes == 120

    def test_plain_word_has_no_flags(self):
        assert classify("firefox") == QueryClassification()

    def test_empty_and_none(self):
        assert classify("") == QueryClassification()
        assert classify(None) == QueryClassification()
        assert classify("   ") == QueryClassification()

    def test_query_is_normalized(self):
        assert classify("  EXAMPLE.COM  ").is_url
        assert classify(" 10 MIN ").duration_minutes == 10


class TestDurations:
    @pytest.mark.parametrize("text,expected", [
        ("30 s", 0.5),
        ("90sec", 1.5),
        ("1 m", 1),
        ("5 minutes", 5),
        ("1h", 60),
        ("3 hr", 180),
        ("1 day", 1440),
        ("2 days", 2880),
    ])
    def test_units(self, text, expected):
        assert parse_duration_minutes(text) == pytest.approx(expected)

    @pytest.mark.parametrize("text", ["min", "10", "10 weeks", "ten min", "10  min"])
    def test_not_durations(self, text):
        assert parse_duration_minutes(text) is None


class TestDateTimeHints:
    def test_digits_are_a_hint(self):
        assert has_date_time_hint("lunch at 12")

    @pytest.mark.parametrize("word", ["today", "tomorrow", "next", "friday", "pm"])
    def test_keywords(self, word):
        assert has_date_time_hint(f"dentist {word}")

    def test_keywords_need_word_boundaries(self):
        assert not has_date_time_hint("camp")
        assert not has_date_time_hint("nextcloud")

    def test_duration_counts_as_hint(self):
        assert has_date_time_hint("no digits here", duration_minutes=5.0)


class TestUrls:
    def test_bare_domain(self):
        assert looks_like_url("github.com")

    def test_scheme_and_www(self):
        assert looks_like_url("https://www.github.com/python")

    def test_words_are_not_urls(self):
        assert not looks_like_url("hello world")
        assert not looks_like_url("firefox")

    def test_to_url_adds_https(self):
        assert to_url("example.com") == "https://example.com"

    def test_to_url_keeps_scheme(self):
        assert to_url("http://example.com") == "http://example.com"
        assert to_url("HTTPS://example.com") == "HTTPS://example.com"


def test_normalize_query():
    assert normalize_query("  Fire Fox ") == "fire fox"
    assert normalize_query(None) == ""
