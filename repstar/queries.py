"""Query parameters understood by the testimonial and insight endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from urllib.parse import quote_plus


class TimeDuration(Enum):
    """A look-back window selected by name."""

    LAST_DAY = "day"
    LAST_WEEK = "week"
    LAST_MONTH = "month"
    LAST_YEAR = "year"

    def interval(self) -> str:
        """Return the database interval literal for this window."""
        return _INTERVALS[self]


_INTERVALS = {
    TimeDuration.LAST_DAY: "1 day",
    TimeDuration.LAST_WEEK: "1 week",
    TimeDuration.LAST_MONTH: "1 month",
    TimeDuration.LAST_YEAR: "1 year",
}


def parse_time_duration(value: str) -> TimeDuration:
    """Parse ``day``, ``week``, ``month`` or ``year``; raise ValueError otherwise."""
    try:
        return TimeDuration(value)
    except ValueError:
        raise ValueError(f"unknown time duration: {value!r}") from None


def _form_quote(text: str) -> str:
    return quote_plus(text, safe="*").replace("~", "%7E")


@dataclass
class TestimonialQueries:
    """Search parameters for listing testimonials."""

    q: str | None = None

    def to_query_string(self) -> str:
        """Encode as an ``application/x-www-form-urlencoded`` query string."""
        if self.q is None:
            return ""
        return f"q={_form_quote(self.q)}"