"""Data models shared by the API server and its clients, with JSON-friendly (de)serialisation."""

import dataclasses
import re
import types
import typing
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, TypeVar
from uuid import UUID

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_NIL_UUID = UUID(int=0)
_I32_MIN = -(2**31)
_I32_MAX = 2**31 - 1

_DATETIME_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[Tt ](\d{2}):(\d{2}):(\d{2})"
    r"(?:\.(\d+))?"
    r"(Z|z|[+-]\d{2}:\d{2})$"
)

T = TypeVar("T")


@dataclass(order=True)
class OllamaEmbed:
    """An embedding vector."""

    ollama_embed: list[float] = field(default_factory=list)


@dataclass(order=True)
class MetricType:
    """A kind of metric that can be recorded."""

    id: UUID = _NIL_UUID
    name: str = ""
    description: str | None = None
    created_at: datetime = _EPOCH
    updated_at: datetime = _EPOCH


@dataclass(order=True)
class Metric:
    """A single recorded metric value."""

    time: datetime = _EPOCH
    metric_type_id: UUID = _NIL_UUID
    value: float = 0.0
    created_at: datetime = _EPOCH
    updated_at: datetime = _EPOCH


@dataclass(order=True)
class CreateMetric:
    """Payload for recording a new metric."""

    metric_type_id: UUID = _NIL_UUID
    value: float = 0.0


@dataclass(order=True)
class User:
    """A registered user."""

    id: UUID = _NIL_UUID
    email: str = ""
    name: str | None = None
    created_at: datetime = _EPOCH
    updated_at: datetime = _EPOCH


@dataclass(order=True)
class CreateUser:
    """Payload for creating a user."""

    email: str = ""
    name: str | None = None


@dataclass
class Testimonial:
    """A stored testimonial."""

    id: UUID = _NIL_UUID
    content: str = ""
    rating: float = 0.0
    user_id: UUID | None = None
    created_at: datetime = _EPOCH
    updated_at: datetime = _EPOCH


@dataclass
class CreateTestimonial:
    """Payload for creating a testimonial."""

    content: str = ""
    rating: float = 0.0
    user_id: UUID | None = None
    created_at: datetime | None = None


@dataclass(order=True)
class TestimonialEmbedding:
    """The stored embedding row of a testimonial (without the vector)."""

    id: int = 0
    testimonial_id: UUID = _NIL_UUID
    testimonial_content: str = ""


@dataclass(order=True)
class Insight:
    """A generated summary message."""

    message: str = ""


def _format_datetime(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    text = value.strftime("%Y-%m-%dT%H:%M:%S")
    if value.microsecond:
        if value.microsecond % 1000 == 0:
            text += f".{value.microsecond // 1000:03d}"
        else:
            text += f".{value.microsecond:06d}"
    return text + "Z"


def _parse_datetime(text: str) -> datetime:
    match = _DATETIME_RE.match(text)
    if match is None:
        raise ValueError(f"invalid RFC 3339 datetime: {text!r}")
    year, month, day, hour, minute, second, fraction, offset = match.groups()
    microsecond = int((fraction or "0")[:6].ljust(6, "0"))
    if offset in ("Z", "z"):
        tz = timezone.utc
    else:
        sign = -1 if offset[0] == "-" else 1
        hours, minutes = offset[1:].split(":")
        tz = timezone(sign * timedelta(hours=int(hours), minutes=int(minutes)))
    try:
        parsed = datetime(
            int(year), int(month), int(day),
            int(hour), int(minute), int(second), microsecond, tzinfo=tz,
        )
    except ValueError as exc:
        raise ValueError(f"invalid RFC 3339 datetime: {text!r}") from exc
    return parsed.astimezone(timezone.utc)


def _encode(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, datetime):
        return _format_datetime(value)
    if isinstance(value, (list, tuple)):
        return [_encode(item) for item in value]
    return value


def _unwrap_optional(hint: Any) -> tuple[bool, Any]:
    origin = typing.get_origin(hint)
    if origin is typing.Union or origin is types.UnionType:
        args = [arg for arg in typing.get_args(hint) if arg is not type(None)]
        if len(args) == 1:
            return True, args[0]
    return False, hint


def _decode(hint: Any, value: Any, name: str) -> Any:
    if typing.get_origin(hint) is list:
        (item_hint,) = typing.get_args(hint)
        if not isinstance(value, list):
            raise ValueError(f"field `{name}` must be a list")
        return [_decode(item_hint, item, name) for item in value]
    if hint is UUID:
        if isinstance(value, UUID):
            return value
        if not isinstance(value, str):
            raise ValueError(f"field `{name}` must be a UUID string")
        try:
            return UUID(value)
        except ValueError as exc:
            raise ValueError(f"field `{name}` is not a valid UUID: {value!r}") from exc
    if hint is datetime:
        if isinstance(value, datetime):
            return value
        if not isinstance(value, str):
            raise ValueError(f"field `{name}` must be a datetime string")
        return _parse_datetime(value)
    if hint is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"field `{name}` must be a number")
        return float(value)
    if hint is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"field `{name}` must be an integer")
        if not _I32_MIN <= value <= _I32_MAX:
            raise ValueError(f"field `{name}` is out of range: {value}")
        return value
    if hint is str:
        if not isinstance(value, str):
            raise ValueError(f"field `{name}` must be a string")
        return value
    raise TypeError(f"unsupported field type for `{name}`: {hint!r}")


def to_dict(model: Any) -> dict[str, Any]:
    """Return the JSON-compatible mapping of a model instance."""
    if not dataclasses.is_dataclass(model) or isinstance(model, type):
        raise TypeError(f"expected a model instance, got {type(model).__name__}")
    return {f.name: _encode(getattr(model, f.name)) for f in dataclasses.fields(model)}


def from_dict(model_type: type[T], data: Mapping[str, Any]) -> T:
    """Build a model of ``model_type`` from a JSON-compatible mapping."""
    if not (isinstance(model_type, type) and dataclasses.is_dataclass(model_type)):
        raise TypeError(f"expected a model class, got {model_type!r}")
    if not isinstance(data, Mapping):
        raise ValueError(f"expected a mapping for {model_type.__name__}")
    values: dict[str, Any] = {}
    for f in dataclasses.fields(model_type):
        optional, hint = _unwrap_optional(f.type)
        raw = data.get(f.name)
        if raw is None:
            if optional:
                values[f.name] = None
                continue
            raise ValueError(f"missing field `{f.name}`")
        values[f.name] = _decode(hint, raw, f.name)
    return model_type(**values)