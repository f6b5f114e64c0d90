from uuid import uuid4

import pytest

from repstar.models import CreateUser, User
from repstar.repositories import (
    InsightRepository,
    MetricRepository,
    RepositoryError,
    TestimonialEmbeddingRepository,
    TestimonialRepository,
    UserRepository,
)


@pytest.mark.parametrize(
    "interface",
    [
        InsightRepository,
        MetricRepository,
        TestimonialEmbeddingRepository,
        TestimonialRepository,
        UserRepository,
    ],
)
def test_interfaces_cannot_be_instantiated(interface):
    with pytest.raises(TypeError):
        interface()


@pytest.mark.parametrize(
    "interface, expected",
    [
        (InsightRepository, {"get_testimonials_summary", "get_metrics_summary"}),
        (MetricRepository, {"get_metrics", "get_metric", "create_metric", "delete_metric"}),
        (
            TestimonialEmbeddingRepository,
            {"create_testimonial_embedding", "get_testimonial_embeddings"},
        ),
        (
            TestimonialRepository,
            {
                "get_testimonials",
                "get_testimonials_by_ids",
                "get_testimonials_by_time_duration",
                "get_testimonial",
                "create_testimonial",
                "update_testimonial",
                "delete_testimonial",
            },
        ),
        (UserRepository, {"get_users", "get_user", "create_user", "update_user", "delete_user"}),
    ],
)
def test_abstract_method_sets(interface, expected):
    assert set(interface.__abstractmethods__) == expected


def test_complete_implementation_is_usable():
    class Memory(UserRepository):
        def __init__(self):
            self.users = {}

        def get_users(self):
            return list(self.users.values())

        def get_user(self, user_id):
            try:
                return self.users[user_id]
            except KeyError:
                raise RepositoryError("no rows returned") from None

        def create_user(self, create_user):
            user = User(id=uuid4(), email=create_user.email, name=create_user.name)
            self.users[user.id] = user
            return user

        def update_user(self, user):
            self.users[user.id] = user
            return user

        def delete_user(self, user_id):
            self.users.pop(user_id)
            return user_id

    repo = Memory()
    created = repo.create_user(CreateUser(email="someone@example.com", name="Someone"))
    assert repo.get_user(created.id) == created
    assert repo.delete_user(created.id) == created.id
    with pytest.raises(RepositoryError):
        repo.get_user(created.id)


def test_repository_error_carries_message():
    error = RepositoryError("connection refused")
    assert error.message == "connection refused"
    assert str(error) == "connection refused"


def test_repository_error_is_catchable_as_exception():
    error = RepositoryError("boom")
    try:
        raise error
    except Exception as caught:
        assert caught.message == "boom"
        assert caught is error