from urllib.parse import parse_qs

import pytest

from repstar.queries import TestimonialQueries, TimeDuration, parse_time_duration


@pytest.mark.parametrize(
    "text, expected",
    [
        ("day", TimeDuration.LAST_DAY),
        ("week", TimeDuration.LAST_WEEK),
        ("month", TimeDuration.LAST_MONTH),
        ("year", TimeDuration.LAST_YEAR),
    ],
)
def test_parse_time_duration(text, expected):
    assert parse_time_duration(text) is expected


@pytest.mark.parametrize("text", ["", "Day", "days", "hour", " week"])
def test_parse_time_duration_rejects_unknown(text):
    with pytest.raises(ValueError):
        parse_time_duration(text)


@pytest.mark.parametrize(
    "duration, interval",
    [
        (TimeDuration.LAST_DAY, "1 day"),
        (TimeDuration.LAST_WEEK, "1 week"),
        (TimeDuration.LAST_MONTH, "1 month"),
        (TimeDuration.LAST_YEAR, "1 year"),
    ],
)
def test_interval(duration, interval):
    assert duration.interval() == interval


def test_every_duration_parses_back_from_its_value():
    assert [parse_time_duration(d.value) for d in TimeDuration] == list(TimeDuration)


def test_empty_queries_encode_to_empty_string():
    assert TestimonialQueries().to_query_string() == ""


def test_simple_query():
    assert TestimonialQueries(q="great").to_query_string() == "q=great"


def test_spaces_become_plus():
    assert TestimonialQueries(q="great service").to_query_string() == "q=great+service"


def test_tilde_is_percent_encoded():
    assert TestimonialQueries(q="a~b").to_query_string() == "q=a%7Eb"


def test_empty_string_query_is_kept():
    assert TestimonialQueries(q="").to_query_string() == "q="


@pytest.mark.parametrize(
    "text",
    ["hello world", "a&b=c", "100% sure?", "naïve café", "x+y/z", "*-._~", "line\nbreak"],
)
def test_query_string_round_trips(text):
    encoded = TestimonialQueries(q=text).to_query_string()
    assert parse_qs(encoded, keep_blank_values=True)["q"] == [text]
    assert "&" not in encoded
    assert " " not in encoded