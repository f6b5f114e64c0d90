import json
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest

from repstar.models import (
    CreateMetric,
    CreateTestimonial,
    CreateUser,
    Insight,
    Metric,
    MetricType,
    OllamaEmbed,
    Testimonial,
    TestimonialEmbedding,
    User,
    from_dict,
    to_dict,
)

NOW = datetime(2024, 3, 4, 5, 6, 7, 123456, tzinfo=timezone.utc)

SAMPLES = [
    OllamaEmbed(ollama_embed=[0.5, -1.25, 3.0]),
    MetricType(id=uuid4(), name="hover", description="hover time", created_at=NOW, updated_at=NOW),
    MetricType(id=uuid4(), name="click", description=None, created_at=NOW, updated_at=NOW),
    Metric(time=NOW, metric_type_id=uuid4(), value=12.5, created_at=NOW, updated_at=NOW),
    CreateMetric(metric_type_id=uuid4(), value=3.0),
    User(id=uuid4(), email="someone@example.com", name="Someone", created_at=NOW, updated_at=NOW),
    CreateUser(email="someone@example.com", name=None),
    Testimonial(id=uuid4(), content="great", rating=8.0, user_id=uuid4(), created_at=NOW, updated_at=NOW),
    Testimonial(id=uuid4(), content="ok", rating=4.0, user_id=None, created_at=NOW, updated_at=NOW),
    CreateTestimonial(content="nice", rating=10.0, user_id=None, created_at=NOW),
    CreateTestimonial(content="nice", rating=10.0),
    TestimonialEmbedding(id=7, testimonial_id=uuid4(), testimonial_content="great"),
    Insight(message="customers love it"),
]


@pytest.mark.parametrize("model", SAMPLES)
def test_round_trip(model):
    assert from_dict(type(model), to_dict(model)) == model


@pytest.mark.parametrize("model", SAMPLES)
def test_to_dict_is_json_compatible(model):
    encoded = to_dict(model)
    assert json.loads(json.dumps(encoded)) == encoded


def test_default_testimonial_uses_nil_uuid_and_epoch():
    assert to_dict(Testimonial()) == {
        "id": "00000000-0000-0000-0000-000000000000",
        "content": "",
        "rating": 0.0,
        "user_id": None,
        "created_at": "1970-01-01T00:00:00Z",
        "updated_at": "1970-01-01T00:00:00Z",
    }


def test_insight_encoding():
    assert to_dict(Insight(message="hello")) == {"message": "hello"}


def test_millisecond_precision_formatting():
    metric = Metric(time=datetime(2024, 1, 2, 3, 4, 5, 250000, tzinfo=timezone.utc))
    assert to_dict(metric)["time"] == "2024-01-02T03:04:05.250Z"


def test_naive_datetime_is_treated_as_utc():
    naive = datetime(2024, 1, 2, 3, 4, 5)
    aware = naive.replace(tzinfo=timezone.utc)
    assert to_dict(User(created_at=naive)) == to_dict(User(created_at=aware))


def test_missing_optional_fields_become_none():
    created = from_dict(CreateTestimonial, {"content": "x", "rating": 4.0})
    assert created.user_id is None
    assert created.created_at is None
    assert created.content == "x"


def test_missing_required_field_raises():
    with pytest.raises(ValueError):
        from_dict(CreateTestimonial, {"rating": 4.0})


def test_null_required_field_raises():
    with pytest.raises(ValueError):
        from_dict(Insight, {"message": None})


def test_invalid_uuid_raises():
    with pytest.raises(ValueError):
        from_dict(CreateMetric, {"metric_type_id": "not-a-uuid", "value": 1.0})


def test_invalid_datetime_raises():
    data = to_dict(Metric())
    data["time"] = "yesterday"
    with pytest.raises(ValueError):
        from_dict(Metric, data)


def test_offset_datetime_is_equal_to_original_instant():
    data = to_dict(Metric())
    data["time"] = "2024-05-01T10:00:00+02:00"
    metric = from_dict(Metric, data)
    assert metric.time == datetime(2024, 5, 1, 10, tzinfo=timezone(timedelta(hours=2)))
    assert metric.time.utcoffset() == timedelta(0)


def test_nanosecond_fraction_is_truncated_to_microseconds():
    data = to_dict(Metric())
    data["time"] = "2024-05-01T10:00:00.123456789Z"
    assert from_dict(Metric, data).time.microsecond == 123456


def test_integer_rating_is_accepted_as_float():
    created = from_dict(CreateTestimonial, {"content": "x", "rating": 5})
    assert created.rating == 5.0
    assert isinstance(created.rating, float)


def test_bool_is_not_a_number():
    with pytest.raises(ValueError):
        from_dict(CreateTestimonial, {"content": "x", "rating": True})


def test_embedding_id_must_fit_in_i32():
    data = {"id": 2**31, "testimonial_id": str(uuid4()), "testimonial_content": "x"}
    with pytest.raises(ValueError):
        from_dict(TestimonialEmbedding, data)


def test_unknown_fields_are_ignored():
    assert from_dict(Insight, {"message": "m", "extra": 1}) == Insight(message="m")


def test_uuid_string_is_parsed():
    ident = uuid4()
    user = from_dict(CreateMetric, {"metric_type_id": str(ident), "value": 0.0})
    assert user.metric_type_id == ident
    assert isinstance(user.metric_type_id, UUID)


def test_to_dict_rejects_non_models():
    with pytest.raises(TypeError):
        to_dict({"message": "m"})


def test_from_dict_rejects_non_model_class():
    with pytest.raises(TypeError):
        from_dict(dict, {})