"""PostgreSQL-backed repositories, with embeddings and summaries from the database AI extension."""

from __future__ import annotations

import os
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from repstar.models import (
    CreateMetric,
    CreateTestimonial,
    CreateUser,
    Insight,
    Metric,
    Testimonial,
    TestimonialEmbedding,
    User,
    from_dict,
)
from repstar.queries import TimeDuration
from repstar.repositories import (
    InsightRepository,
    MetricRepository,
    RepositoryError,
    TestimonialEmbeddingRepository,
    TestimonialRepository,
    UserRepository,
)

T = TypeVar("T")

NO_ROWS_MESSAGE = "no rows returned by a query that expected to return at least one row"

TESTIMONIALS_PROMPT = (
    "Act as a Customer Service Representative and summarize the provided feedback "
    "concisely in 20 words, highlighting key insights and areas for improvement for "
    "any business, return summary only."
)
METRICS_PROMPT = (
    "Act as a Data Analyst and summarize the provided metrics concisely in 20 words, "
    "highlighting key insights and areas for improvement for any business, return "
    "summary only."
)

_SET_OLLAMA_HOST = "SELECT set_config('ai.ollama_host', :host, false)"

_CHAT_COMPLETE = """
SELECT ai.ollama_chat_complete(:model,
        jsonb_build_array(
            jsonb_build_object('role', 'system', 'content', CAST(:system_prompt AS text)),
            jsonb_build_object('role', 'user', 'content', CAST(:user_prompt AS text))
        )
    ) -> 'message' ->> 'content' AS message
"""

_METRIC_COLUMNS = "time, value, metric_type_id, created_at, updated_at"
_TESTIMONIAL_COLUMNS = "id, content, rating, user_id, created_at, updated_at"
_USER_COLUMNS = "id, email, name, created_at, updated_at"


def _require_env(name: str) -> str:
    value = os.environ.get(name)
    if value is None:
        raise RuntimeError(f"{name} must be set in the environment")
    return value


def _build(model_type: type[T], row: Mapping[str, Any]) -> T:
    try:
        return from_dict(model_type, row)
    except ValueError as exc:
        raise RepositoryError(str(exc)) from exc


def _first(rows: list[dict[str, Any]]) -> dict[str, Any]:
    if not rows:
        raise RepositoryError(NO_ROWS_MESSAGE)
    return rows[0]


def _as_uuid(value: Any) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError as exc:
        raise RepositoryError(f"invalid UUID returned: {value!r}") from exc


class _PostgresRepository:
    """Holds the engine and runs statements inside transactions."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @contextmanager
    def _transaction(self) -> Iterator[Connection]:
        try:
            with self._engine.begin() as conn:
                yield conn
        except SQLAlchemyError as exc:
            raise RepositoryError(str(exc)) from exc

    @staticmethod
    def _query(conn: Connection, sql: str, **params: Any) -> list[dict[str, Any]]:
        return [dict(row) for row in conn.execute(text(sql), params).mappings().all()]

    def _fetch_all(self, sql: str, **params: Any) -> list[dict[str, Any]]:
        with self._transaction() as conn:
            return self._query(conn, sql, **params)

    def _fetch_one(self, sql: str, **params: Any) -> dict[str, Any]:
        return _first(self._fetch_all(sql, **params))

    def _set_ollama_host(self, conn: Connection) -> None:
        host = _require_env("OLLAMA_HOST")
        self._query(conn, _SET_OLLAMA_HOST, host=host)


class PostgresInsightRepository(_PostgresRepository, InsightRepository):
    """Summaries generated by the chat model available to the database."""

    def _summarise(self, system_prompt: str, user_prompt: str) -> list[Insight]:
        model = _require_env("OLLAMA_GEN_MODEL")
        with self._transaction() as conn:
            self._set_ollama_host(conn)
            rows = self._query(
                conn,
                _CHAT_COMPLETE,
                model=model,
                system_prompt=system_prompt,
                user_prompt=user_prompt,
            )
        return [_build(Insight, row) for row in rows]

    def get_testimonials_summary(self, testimonials: Sequence[Testimonial]) -> list[Insight]:
        content = " ".join(testimonial.content for testimonial in testimonials)
        return self._summarise(TESTIMONIALS_PROMPT, content)

    def get_metrics_summary(self, metrics: Sequence[str]) -> list[Insight]:
        return self._summarise(METRICS_PROMPT, " ".join(metrics))


class PostgresMetricRepository(_PostgresRepository, MetricRepository):
    """Metrics stored in the ``metrics`` table."""

    def get_metrics(self) -> list[Metric]:
        rows = self._fetch_all(f"SELECT {_METRIC_COLUMNS} FROM metrics")
        return [_build(Metric, row) for row in rows]

    def get_metric(self, metric_id: UUID) -> Metric:
        row = self._fetch_one(
            f"SELECT {_METRIC_COLUMNS} FROM metrics WHERE id = :id", id=str(metric_id)
        )
        return _build(Metric, row)

    def create_metric(self, create_metric: CreateMetric) -> Metric:
        row = self._fetch_one(
            "INSERT INTO metrics (value, metric_type_id) "
            "VALUES (:value, CAST(:metric_type_id AS uuid)) "
            f"RETURNING {_METRIC_COLUMNS}",
            value=create_metric.value,
            metric_type_id=str(create_metric.metric_type_id),
        )
        return _build(Metric, row)

    def delete_metric(self, metric_id: UUID) -> UUID:
        row = self._fetch_one(
            "DELETE FROM metrics WHERE id = :id RETURNING id", id=str(metric_id)
        )
        return _as_uuid(row["id"])


class PostgresTestimonialEmbeddingRepository(_PostgresRepository, TestimonialEmbeddingRepository):
    """Embeddings stored in ``testimonial_embeddings`` and searched by vector distance."""

    def create_testimonial_embedding(self, testimonial: Testimonial) -> TestimonialEmbedding:
        model = _require_env("OLLAMA_EMBED_MODEL")
        with self._transaction() as conn:
            self._set_ollama_host(conn)
            rows = self._query(
                conn,
                "INSERT INTO testimonial_embeddings "
                "(testimonial_id, testimonial_content, embedding) "
                "VALUES (CAST(:testimonial_id AS uuid), :content, "
                "(SELECT ollama_embed FROM ai.ollama_embed(:model, :content))) "
                "RETURNING id, testimonial_id, testimonial_content",
                testimonial_id=str(testimonial.id),
                content=testimonial.content,
                model=model,
            )
        return _build(TestimonialEmbedding, _first(rows))

    def get_testimonial_embeddings(self, query: str) -> list[TestimonialEmbedding]:
        model = _require_env("OLLAMA_EMBED_MODEL")
        with self._transaction() as conn:
            self._set_ollama_host(conn)
            rows = self._query(
                conn,
                "SELECT id, testimonial_id, testimonial_content "
                "FROM testimonial_embeddings "
                "ORDER BY embedding <-> "
                "(SELECT ollama_embed FROM ai.ollama_embed(:model, :query)) "
                "LIMIT 10",
                model=model,
                query=query,
            )
        return [_build(TestimonialEmbedding, row) for row in rows]


class PostgresTestimonialRepository(_PostgresRepository, TestimonialRepository):
    """Testimonials stored in the ``testimonials`` table."""

    def get_testimonials(self) -> list[Testimonial]:
        rows = self._fetch_all(
            f"SELECT {_TESTIMONIAL_COLUMNS} FROM testimonials "
            "ORDER BY created_at DESC LIMIT 50"
        )
        return [_build(Testimonial, row) for row in rows]

    def get_testimonials_by_ids(self, ids: Sequence[UUID]) -> list[Testimonial]:
        rows = self._fetch_all(
            f"SELECT {_TESTIMONIAL_COLUMNS} FROM testimonials "
            "WHERE id = ANY(CAST(:ids AS uuid[])) "
            "ORDER BY array_position(CAST(:ids AS uuid[]), id)",
            ids=[str(testimonial_id) for testimonial_id in ids],
        )
        return [_build(Testimonial, row) for row in rows]

    def get_testimonials_by_time_duration(self, time_duration: TimeDuration) -> list[Testimonial]:
        rows = self._fetch_all(
            f"SELECT {_TESTIMONIAL_COLUMNS} FROM testimonials "
            "WHERE NOW() - created_at < CAST(:interval AS INTERVAL) "
            "ORDER BY created_at DESC",
            interval=time_duration.interval(),
        )
        return [_build(Testimonial, row) for row in rows]

    def get_testimonial(self, testimonial_id: UUID) -> Testimonial:
        row = self._fetch_one(
            f"SELECT {_TESTIMONIAL_COLUMNS} FROM testimonials WHERE id = :id",
            id=str(testimonial_id),
        )
        return _build(Testimonial, row)

    def create_testimonial(self, create_testimonial: CreateTestimonial) -> Testimonial:
        created_at = create_testimonial.created_at or datetime.now(timezone.utc)
        user_id = create_testimonial.user_id
        row = self._fetch_one(
            "INSERT INTO testimonials (content, rating, user_id, created_at) "
            "VALUES (:content, :rating, CAST(:user_id AS uuid), :created_at) "
            f"RETURNING {_TESTIMONIAL_COLUMNS}",
            content=create_testimonial.content,
            rating=create_testimonial.rating,
            user_id=None if user_id is None else str(user_id),
            created_at=created_at,
        )
        return _build(Testimonial, row)

    def update_testimonial(self, testimonial: Testimonial) -> Testimonial:
        user_id = testimonial.user_id
        row = self._fetch_one(
            "UPDATE testimonials "
            "SET content = :content, rating = :rating, user_id = CAST(:user_id AS uuid) "
            "WHERE id = :id "
            f"RETURNING {_TESTIMONIAL_COLUMNS}",
            id=str(testimonial.id),
            content=testimonial.content,
            rating=testimonial.rating,
            user_id=None if user_id is None else str(user_id),
        )
        return _build(Testimonial, row)

    def delete_testimonial(self, testimonial_id: UUID) -> UUID:
        row = self._fetch_one(
            "DELETE FROM testimonials WHERE id = :id RETURNING id", id=str(testimonial_id)
        )
        return _as_uuid(row["id"])


class PostgresUserRepository(_PostgresRepository, UserRepository):
    """Users stored in the ``users`` table."""

    def get_users(self) -> list[User]:
        rows = self._fetch_all(f"SELECT {_USER_COLUMNS} FROM users")
        return [_build(User, row) for row in rows]

    def get_user(self, user_id: UUID) -> User:
        row = self._fetch_one(
            f"SELECT {_USER_COLUMNS} FROM users WHERE id = :id", id=str(user_id)
        )
        return _build(User, row)

    def create_user(self, create_user: CreateUser) -> User:
        row = self._fetch_one(
            "INSERT INTO users (email, name) VALUES (:email, :name) "
            f"RETURNING {_USER_COLUMNS}",
            email=create_user.email,
            name=create_user.name,
        )
        return _build(User, row)

    def update_user(self, user: User) -> User:
        row = self._fetch_one(
            f"UPDATE users SET name = :name WHERE id = :id RETURNING {_USER_COLUMNS}",
            id=str(user.id),
            name=user.name,
        )
        return _build(User, row)

    def delete_user(self, user_id: UUID) -> UUID:
        row = self._fetch_one(
            "DELETE FROM users WHERE id = :id RETURNING id", id=str(user_id)
        )
        return _as_uuid(row["id"])