"""Storage interfaces used by the HTTP handlers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from uuid import UUID

from repstar.models import (
    CreateMetric,
    CreateTestimonial,
    CreateUser,
    Insight,
    Metric,
    Testimonial,
    TestimonialEmbedding,
    User,
)
from repstar.queries import TimeDuration


class RepositoryError(Exception):
    """A storage operation failed; ``message`` describes why."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InsightRepository(ABC):
    """Generates summaries of testimonials and metrics."""

    @abstractmethod
    def get_testimonials_summary(self, testimonials: Sequence[Testimonial]) -> list[Insight]:
        """Summarise the given testimonials."""

    @abstractmethod
    def get_metrics_summary(self, metrics: Sequence[str]) -> list[Insight]:
        """Summarise the given metric descriptions."""


class MetricRepository(ABC):
    """Stores recorded metrics."""

    @abstractmethod
    def get_metrics(self) -> list[Metric]:
        """Return all metrics."""

    @abstractmethod
    def get_metric(self, metric_id: UUID) -> Metric:
        """Return one metric by id."""

    @abstractmethod
    def create_metric(self, create_metric: CreateMetric) -> Metric:
        """Record a metric and return it."""

    @abstractmethod
    def delete_metric(self, metric_id: UUID) -> UUID:
        """Delete a metric and return its id."""


class TestimonialEmbeddingRepository(ABC):
    """Stores testimonial embeddings and searches them."""

    @abstractmethod
    def create_testimonial_embedding(self, testimonial: Testimonial) -> TestimonialEmbedding:
        """Embed a testimonial's content and store it."""

    @abstractmethod
    def get_testimonial_embeddings(self, query: str) -> list[TestimonialEmbedding]:
        """Return the embeddings nearest to the query text."""


class TestimonialRepository(ABC):
    """Stores testimonials."""

    @abstractmethod
    def get_testimonials(self) -> list[Testimonial]:
        """Return the most recent testimonials."""

    @abstractmethod
    def get_testimonials_by_ids(self, ids: Sequence[UUID]) -> list[Testimonial]:
        """Return the testimonials with the given ids, in the order given."""

    @abstractmethod
    def get_testimonials_by_time_duration(self, time_duration: TimeDuration) -> list[Testimonial]:
        """Return testimonials created within the window, newest first."""

    @abstractmethod
    def get_testimonial(self, testimonial_id: UUID) -> Testimonial:
        """Return one testimonial by id."""

    @abstractmethod
    def create_testimonial(self, create_testimonial: CreateTestimonial) -> Testimonial:
        """Store a testimonial and return it."""

    @abstractmethod
    def update_testimonial(self, testimonial: Testimonial) -> Testimonial:
        """Update a testimonial and return it."""

    @abstractmethod
    def delete_testimonial(self, testimonial_id: UUID) -> UUID:
        """Delete a testimonial and return its id."""


class UserRepository(ABC):
    """Stores users."""

    @abstractmethod
    def get_users(self) -> list[User]:
        """Return all users."""

    @abstractmethod
    def get_user(self, user_id: UUID) -> User:
        """Return one user by id."""

    @abstractmethod
    def create_user(self, create_user: CreateUser) -> User:
        """Store a user and return it."""

    @abstractmethod
    def update_user(self, user: User) -> User:
        """Update a user and return it."""

    @abstractmethod
    def delete_user(self, user_id: UUID) -> UUID:
        """Delete a user and return its id."""