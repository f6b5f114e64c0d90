"""Testimonial service: data models, storage interfaces and PostgreSQL implementations, a Flask API, a server command and an HTTP client."""

__version__ = "0.1.0"