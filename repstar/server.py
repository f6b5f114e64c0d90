"""Command that connects to the database and serves the HTTP application."""

from __future__ import annotations

import argparse
import logging
import os
import time
from collections.abc import Sequence
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError

from repstar.api import create_app
from repstar.postgres import (
    PostgresInsightRepository,
    PostgresMetricRepository,
    PostgresTestimonialEmbeddingRepository,
    PostgresTestimonialRepository,
    PostgresUserRepository,
)

logger = logging.getLogger(__name__)

MAX_CONNECTIONS = 10
POOL_TIMEOUT_SECONDS = 10
DEFAULT_PORT = "8000"
DEFAULT_STATIC_FOLDER = "static"
BIND_HOST = "127.0.0.1"


def _create_engine(database_url: str) -> Engine:
    url = make_url(database_url)
    options = {}
    if url.get_backend_name() == "postgresql":
        # Embedding and summary queries are slow; keep the pool small.
        options.update(
            pool_size=MAX_CONNECTIONS,
            max_overflow=0,
            pool_timeout=POOL_TIMEOUT_SECONDS,
        )
    return create_engine(url, **options)


def build_app(database_url: str, static_folder: str | Path | None = DEFAULT_STATIC_FOLDER) -> Flask:
    """Connect to the database and build the application around its repositories.

    Raises ConnectionError when the database cannot be reached.
    """
    try:
        engine = _create_engine(database_url)
        with engine.connect():
            pass
    except SQLAlchemyError as exc:
        raise ConnectionError(f"could not connect to the database: {exc}") from exc

    app = create_app(
        testimonials=PostgresTestimonialRepository(engine),
        embeddings=PostgresTestimonialEmbeddingRepository(engine),
        metrics=PostgresMetricRepository(engine),
        users=PostgresUserRepository(engine),
        insights=PostgresInsightRepository(engine),
        static_folder=static_folder,
    )
    logger.info("Database connection pool created successfully!")
    return app


def _configure_logging() -> None:
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )
    formatter.converter = time.gmtime
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), handlers=[handler])


def main(argv: Sequence[str] | None = None) -> None:
    """Start the server on 127.0.0.1, configured from the environment and ``.env``."""
    parser = argparse.ArgumentParser(
        prog="repstar",
        description="Serve the testimonial API and the static front end. "
        "Configured by DATABASE_URL, PORT, STATIC_FOLDER, OLLAMA_HOST, "
        "OLLAMA_GEN_MODEL and OLLAMA_EMBED_MODEL.",
    )
    parser.parse_args(argv)

    load_dotenv()
    database_url = os.environ.get("DATABASE_URL")
    if database_url is None:
        raise SystemExit("DATABASE_URL must be set in the environment")

    _configure_logging()

    port_text = os.environ.get("PORT", DEFAULT_PORT)
    try:
        port = int(port_text)
    except ValueError:
        raise SystemExit(f"Couldn't start the server in port {port_text}: invalid port") from None

    static_folder = os.environ.get("STATIC_FOLDER", DEFAULT_STATIC_FOLDER)

    try:
        app = build_app(database_url, static_folder)
    except ConnectionError as exc:
        raise SystemExit(str(exc)) from exc

    try:
        app.run(host=BIND_HOST, port=port)
    except OSError as exc:
        raise SystemExit(f"Couldn't start the server in port {port}: {exc}") from exc


if __name__ == "__main__":
    main()