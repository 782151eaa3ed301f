from __future__ import annotations

from datetime import datetime, timezone

import pytest

from synapse.search.query_parser import parse_query

NOW = datetime(2024, 5, 15, 13, 30, tzinfo=timezone.utc)


def test_tag_filter_and_residual():
    f = parse_query("pasta recipe tag:dinner", now=NOW)
    assert f.tags == ["dinner"]
    assert f.residual == "pasta recipe"
    # Bare type words are a hint only; they stay in the residual.
    assert f.type == "recipe"


def test_hashtags_and_tag_lists_are_lowercased():
    f = parse_query("#Python tags:AI,ml notes", now=NOW)
    assert f.tags == ["ai", "ml", "python"]
    assert f.residual == "notes"


def test_explicit_type_is_removed_from_residual():
    f = parse_query("type:video cooking", now=NOW)
    assert f.type == "video"
    assert f.residual == "cooking"


def test_unknown_type_stays_in_residual():
    f = parse_query("type:podcast cooking", now=NOW)
    assert f.type is None
    assert f.residual == "type:podcast cooking"


def test_author_forms():
    assert parse_query('author:"Jane Austen" novels', now=NOW).author == "Jane Austen"
    f = parse_query("books by Jane Austen", now=NOW)
    assert f.author == "Jane Austen"
    assert f.residual == "books"
    assert f.type == "book"


def test_price_phrases():
    f = parse_query("headphones under $100", now=NOW)
    assert f.price_max == 100
    assert f.price_min is None
    assert f.residual == "headphones"

    f = parse_query("desk between $50 and $200", now=NOW)
    assert (f.price_min, f.price_max) == (50, 200)
    assert f.residual == "desk"

    f = parse_query("lamp $20-$40", now=NOW)
    assert (f.price_min, f.price_max) == (20, 40)

    f = parse_query("chair over 30 dollars", now=NOW)
    assert f.price_min == 30

    f = parse_query("price:<15 socks", now=NOW)
    assert f.price_max == 15
    assert f.residual == "socks"


@pytest.mark.parametrize(
    "query,date_from,date_to",
    [
        ("notes today", datetime(2024, 5, 15, tzinfo=timezone.utc), None),
        (
            "notes yesterday",
            datetime(2024, 5, 14, tzinfo=timezone.utc),
            datetime(2024, 5, 14, 23, 59, 59, 999999, tzinfo=timezone.utc),
        ),
        ("notes from last 7 days", datetime(2024, 5, 8, 13, 30, tzinfo=timezone.utc), None),
        ("notes this month", datetime(2024, 5, 1, tzinfo=timezone.utc), None),
        (
            "notes last month",
            datetime(2024, 4, 1, tzinfo=timezone.utc),
            datetime(2024, 4, 30, 23, 59, 59, 999999, tzinfo=timezone.utc),
        ),
        (
            "notes in 2023",
            datetime(2023, 1, 1, tzinfo=timezone.utc),
            datetime(2023, 12, 31, 23, 59, 59, 999999, tzinfo=timezone.utc),
        ),
        ("notes since 2024-01-10", datetime(2024, 1, 10, tzinfo=timezone.utc), None),
    ],
)
def test_date_phrases(query, date_from, date_to):
    f = parse_query(query, now=NOW)
    assert f.date_from == date_from
    assert f.date_to == date_to
    assert f.residual == "notes"


def test_before_date_is_exclusive_of_that_day():
    f = parse_query("ideas before 2024-03-01", now=NOW)
    assert f.date_to == datetime(2024, 2, 29, 23, 59, 59, 999999, tzinfo=timezone.utc)


def test_this_week_starts_on_monday():
    f = parse_query("this week", now=NOW)
    assert f.date_from == datetime(2024, 5, 13, tzinfo=timezone.utc)
    assert f.residual == ""


@pytest.mark.parametrize(
    "query",
    [
        "pasta recipe tag:dinner",
        "books by Jane Austen from last 2 weeks under $30",
        "  cheap   #gadgets   type:amazon   price:>10 ",
        "tag:a tag:b #c videos this year",
        "",
    ],
)
def test_parsing_the_residual_again_is_stable(query):
    first = parse_query(query, now=NOW)
    second = parse_query(first.residual, now=NOW)
    assert second.residual == first.residual


def test_to_dict_serializes_dates():
    d = parse_query("notes today", now=NOW).to_dict()
    assert d["date_from"] == "2024-05-15T00:00:00+00:00"
    assert d["tags"] == []


@pytest.mark.parametrize("query", ["notes from the last 3000 years", "notes past 99999999 days"])
def test_huge_relative_spans_are_clamped(query):
    f = parse_query(query, now=NOW)
    assert f.date_from == datetime(1, 1, 1, 13, 30, tzinfo=timezone.utc)
    assert f.residual == "notes"
    assert parse_query(f.residual, now=NOW).residual == "notes"


def test_before_the_earliest_day():
    f = parse_query("notes before 0001-01-01", now=NOW)
    assert f.date_to == datetime.min.replace(tzinfo=timezone.utc)
    assert f.residual == "notes"
