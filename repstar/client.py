"""HTTP client for the testimonial API."""

from __future__ import annotations

from typing import Any

import requests

from repstar.models import (
    CreateMetric,
    CreateTestimonial,
    Insight,
    Metric,
    Testimonial,
    from_dict,
    to_dict,
)
from repstar.queries import TestimonialQueries

BASE_API_URL = "api/v1"
TESTIMONIAL_API = "testimonials"
INSIGHT_API = "insights"
METRIC_API = "metrics"

DEFAULT_HOST = "localhost:8000"
DEFAULT_PROTOCOL = "http:"
DEFAULT_TIMEOUT = 30.0


def _expect_list(data: Any) -> list[Any]:
    if not isinstance(data, list):
        raise ValueError("expected a JSON array in the response")
    return data


class ApiClient:
    """Calls the testimonial, insight and metric endpoints of a running server.

    Network failures and undecodable responses raise ``requests`` exceptions;
    responses that do not match the models raise ValueError.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        protocol: str = DEFAULT_PROTOCOL,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.host = host
        self.protocol = protocol if protocol.endswith(":") else protocol + ":"
        self.session = session or requests.Session()
        self.timeout = timeout

    def _endpoint(self, name: str) -> str:
        return f"{self.protocol}//{self.host}/{BASE_API_URL}/{name}"

    def _get_json(self, url: str) -> Any:
        return self.session.get(url, timeout=self.timeout).json()

    def _post_json(self, url: str, payload: dict[str, Any]) -> Any:
        return self.session.post(url, json=payload, timeout=self.timeout).json()

    def get_testimonials(self, queries: TestimonialQueries) -> list[Testimonial]:
        """List testimonials, searched by ``queries.q`` when given."""
        url = f"{self._endpoint(TESTIMONIAL_API)}?{queries.to_query_string()}"
        return [from_dict(Testimonial, item) for item in _expect_list(self._get_json(url))]

    def create_testimonial(self, create_testimonial: CreateTestimonial) -> Testimonial:
        """Submit a testimonial and return the stored one."""
        data = self._post_json(self._endpoint(TESTIMONIAL_API), to_dict(create_testimonial))
        return from_dict(Testimonial, data)

    def get_insights(self, duration: str) -> list[Insight]:
        """Fetch summaries of the testimonials from the given look-back window."""
        url = f"{self._endpoint(INSIGHT_API)}?duration={duration}"
        return [from_dict(Insight, item) for item in _expect_list(self._get_json(url))]

    def create_metric(self, create_metric: CreateMetric) -> Metric:
        """Record a metric and return the stored one."""
        data = self._post_json(self._endpoint(METRIC_API), to_dict(create_metric))
        return from_dict(Metric, data)