"""HTTP application exposing testimonials, users, metrics and insights."""

from __future__ import annotations

import json
from html import escape
from pathlib import Path
from typing import Any, TypeVar
from urllib.parse import quote
from uuid import UUID

from flask import Blueprint, Flask, Response, abort, request, send_file

from repstar.health import create_blueprint as create_health_blueprint
from repstar.models import (
    CreateMetric,
    CreateTestimonial,
    CreateUser,
    Insight,
    Testimonial,
    User,
    from_dict,
    to_dict,
)
from repstar.queries import TimeDuration, parse_time_duration
from repstar.repositories import (
    InsightRepository,
    MetricRepository,
    RepositoryError,
    TestimonialEmbeddingRepository,
    TestimonialRepository,
    UserRepository,
)

T = TypeVar("T")

_DEFAULT_DURATION = "day"


def _json(data: Any, status: int = 200) -> Response:
    return Response(json.dumps(data), status=status, mimetype="application/json")


def _model(model: Any) -> Response:
    return _json(to_dict(model))


def _models(models: list[Any]) -> Response:
    return _json([to_dict(model) for model in models])


def _debug(message: str) -> str:
    return json.dumps(message, ensure_ascii=False)


def _failure(exc: RepositoryError, prefix: str = "Internal server error", status: int = 404) -> Response:
    return Response(f"{prefix}: {_debug(exc.message)}", status=status, mimetype="text/plain")


def _payload(model_type: type[T]) -> T:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, description="Json deserialize error: expected a JSON object")
    try:
        return from_dict(model_type, data)
    except ValueError as exc:
        abort(400, description=f"Json deserialize error: {exc}")


def _testimonial_blueprint(
    repo: TestimonialRepository, embedding_repo: TestimonialEmbeddingRepository
) -> Blueprint:
    blueprint = Blueprint("testimonials", __name__)

    @blueprint.get("")
    def get_all() -> Response:
        q = request.args.get("q")
        if q is not None and q.strip():
            try:
                embeddings = embedding_repo.get_testimonial_embeddings(q)
            except RepositoryError as exc:
                return _failure(exc)
            ids = [embedding.testimonial_id for embedding in embeddings]
            try:
                return _models(repo.get_testimonials_by_ids(ids))
            except RepositoryError as exc:
                return _failure(exc)
        try:
            return _models(repo.get_testimonials())
        except RepositoryError as exc:
            return _failure(exc)

    @blueprint.get("/<uuid:testimonial_id>")
    def get(testimonial_id: UUID) -> Response:
        try:
            return _model(repo.get_testimonial(testimonial_id))
        except RepositoryError as exc:
            return _failure(exc)

    @blueprint.post("")
    def post() -> Response:
        create = _payload(CreateTestimonial)
        try:
            testimonial = repo.create_testimonial(create)
        except RepositoryError as exc:
            return _failure(exc)
        if not testimonial.content:
            return _model(testimonial)
        try:
            embedding_repo.create_testimonial_embedding(testimonial)
        except RepositoryError as exc:
            return _failure(exc)
        return _model(testimonial)

    @blueprint.put("")
    def put() -> Response:
        testimonial = _payload(Testimonial)
        try:
            return _model(repo.update_testimonial(testimonial))
        except RepositoryError as exc:
            return _failure(exc)

    @blueprint.delete("/<uuid:testimonial_id>")
    def delete(testimonial_id: UUID) -> Response:
        try:
            return _json(str(repo.delete_testimonial(testimonial_id)))
        except RepositoryError as exc:
            return _failure(exc)

    return blueprint


def _user_blueprint(repo: UserRepository) -> Blueprint:
    blueprint = Blueprint("users", __name__)

    @blueprint.get("")
    def get_all() -> Response:
        try:
            return _models(repo.get_users())
        except RepositoryError as exc:
            return _failure(exc)

    @blueprint.get("/<uuid:user_id>")
    def get(user_id: UUID) -> Response:
        try:
            return _model(repo.get_user(user_id))
        except RepositoryError as exc:
            return _failure(exc)

    @blueprint.post("")
    def post() -> Response:
        create = _payload(CreateUser)
        try:
            return _model(repo.create_user(create))
        except RepositoryError as exc:
            return _failure(exc)

    @blueprint.put("")
    def put() -> Response:
        user = _payload(User)
        try:
            return _model(repo.update_user(user))
        except RepositoryError as exc:
            return _failure(exc)

    @blueprint.delete("/<uuid:user_id>")
    def delete(user_id: UUID) -> Response:
        try:
            return _json(str(repo.delete_user(user_id)))
        except RepositoryError as exc:
            return _failure(exc)

    return blueprint


def _metric_blueprint(repo: MetricRepository) -> Blueprint:
    blueprint = Blueprint("metrics", __name__)

    @blueprint.get("")
    def get_all() -> Response:
        try:
            return _models(repo.get_metrics())
        except RepositoryError as exc:
            return _failure(exc)

    @blueprint.get("/<uuid:metric_id>")
    def get(metric_id: UUID) -> Response:
        try:
            return _model(repo.get_metric(metric_id))
        except RepositoryError as exc:
            return _failure(exc)

    @blueprint.post("")
    def post() -> Response:
        create = _payload(CreateMetric)
        try:
            return _model(repo.create_metric(create))
        except RepositoryError as exc:
            return _failure(exc)

    @blueprint.delete("/<uuid:metric_id>")
    def delete(metric_id: UUID) -> Response:
        try:
            return _json(str(repo.delete_metric(metric_id)))
        except RepositoryError as exc:
            return _failure(exc)

    return blueprint


def _insight_blueprint(repo: InsightRepository, testimonial_repo: TestimonialRepository) -> Blueprint:
    blueprint = Blueprint("insights", __name__)

    @blueprint.get("")
    def get_testimonials_summary() -> Response:
        label = request.args.get("duration", _DEFAULT_DURATION)
        try:
            duration = parse_time_duration(label)
        except ValueError:
            duration = TimeDuration.LAST_DAY
        try:
            testimonials = testimonial_repo.get_testimonials_by_time_duration(duration)
        except RepositoryError as exc:
            return _failure(exc, prefix="Error fetching testimonials", status=500)
        if not testimonials:
            message = (
                f"No testimonials responded in the last {label}. "
                "Please choose greater duration."
            )
            return _models([Insight(message=message)])
        try:
            return _models(repo.get_testimonials_summary(testimonials))
        except RepositoryError as exc:
            return _failure(exc)

    return blueprint


def _listing(directory: Path, path: str) -> Response:
    shown = "/" + path.strip("/")
    base = shown.rstrip("/")
    items = []
    for entry in sorted(directory.iterdir(), key=lambda item: item.name):
        name = entry.name + ("/" if entry.is_dir() else "")
        items.append(f'<li><a href="{escape(base + "/" + quote(name))}">{escape(name)}</a></li>')
    title = escape(shown)
    body = (
        f'<html><head><meta charset="utf-8"><title>Index of {title}</title></head>'
        f"<body><h1>Index of {title}</h1><ul>{''.join(items)}</ul></body></html>"
    )
    return Response(body, mimetype="text/html")


def _inside(root: Path, path: str) -> Path | None:
    """Resolve ``path`` below ``root``, or return None when it would escape it."""
    if not path:
        return root
    if "\x00" in path or Path(path).is_absolute():
        return None
    candidate = (root / path).resolve()
    if candidate != root and root not in candidate.parents:
        return None
    return candidate


def _static_blueprint(folder: str | Path) -> Blueprint:
    root = Path(folder).resolve()
    blueprint = Blueprint("static_files", __name__)

    @blueprint.get("/", defaults={"path": ""})
    @blueprint.get("/<path:path>")
    def serve(path: str) -> Response:
        target_path = _inside(root, path)
        if target_path is None:
            abort(404)
        if target_path.is_dir():
            index = target_path / "index.html"
            if index.is_file():
                return send_file(index)
            return _listing(target_path, path)
        if target_path.is_file():
            return send_file(target_path)
        abort(404)

    return blueprint


def _allow_cross_origin(response: Response) -> Response:
    origin = request.headers.get("Origin")
    if origin:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers.add("Vary", "Origin")
    if request.method == "OPTIONS":
        method = request.headers.get("Access-Control-Request-Method")
        if method:
            response.headers["Access-Control-Allow-Methods"] = method
        headers = request.headers.get("Access-Control-Request-Headers")
        if headers:
            response.headers["Access-Control-Allow-Headers"] = headers
    return response


def create_app(
    testimonials: TestimonialRepository,
    embeddings: TestimonialEmbeddingRepository,
    metrics: MetricRepository,
    users: UserRepository,
    insights: InsightRepository,
    static_folder: str | Path | None = None,
) -> Flask:
    """Build the application: the API under ``/api`` and static files under ``/``."""
    app = Flask(__name__, static_folder=None)
    app.after_request(_allow_cross_origin)

    app.register_blueprint(create_health_blueprint(), url_prefix="/api")
    app.register_blueprint(
        _testimonial_blueprint(testimonials, embeddings), url_prefix="/api/v1/testimonials"
    )
    app.register_blueprint(_user_blueprint(users), url_prefix="/api/v1/users")
    app.register_blueprint(_metric_blueprint(metrics), url_prefix="/api/v1/metrics")
    app.register_blueprint(
        _insight_blueprint(insights, testimonials), url_prefix="/api/v1/insights"
    )
    if static_folder is not None:
        app.register_blueprint(_static_blueprint(static_folder))
    return app