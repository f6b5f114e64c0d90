"""Health-check endpoint reporting the API version."""

from __future__ import annotations

from flask import Blueprint, Response

API_VERSION = "v0.0.1"


def create_blueprint() -> Blueprint:
    """Return a blueprint serving ``GET /health`` with a ``version`` header."""
    blueprint = Blueprint("health", __name__)

    @blueprint.get("/health")
    def health() -> Response:
        return Response(status=200, headers={"version": API_VERSION})

    return blueprint