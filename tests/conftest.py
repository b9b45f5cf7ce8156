"""Pytest configuration for django-inbox tests."""

import pytest


@pytest.fixture(autouse=True)
def outbox():
    """Envelopes published through the locmem broadcaster."""
    from django_inbox.broadcasting import locmem

    locmem.clear()
    yield locmem.outbox
    locmem.clear()


@pytest.fixture(autouse=True)
def broadcast_circuit():
    """Start every test with the broadcast circuit closed."""
    from django_inbox.services.broadcast import reset_circuit

    reset_circuit()
    yield
    reset_circuit()


@pytest.fixture
def make_user(db):
    """Factory for users with a role."""
    from django.contrib.auth import get_user_model

    User = get_user_model()
    counter = {"n": 0}

    def _make(role="customer", **kwargs):
        counter["n"] += 1
        kwargs.setdefault("email", f"{role}{counter['n']}@example.com")
        kwargs.setdefault("first_name", role.title())
        kwargs.setdefault("last_name", str(counter["n"]))
        return User.objects.create_user(role=role, password="testpass123", **kwargs)

    return _make


@pytest.fixture
def customer(make_user):
    return make_user("customer", first_name="Alice", last_name="Customer")


@pytest.fixture
def other_customer(make_user):
    return make_user("customer", first_name="Bob", last_name="Shopper")


@pytest.fixture
def clerk(make_user):
    return make_user("clerk", first_name="Carla", last_name="Clerk")


@pytest.fixture
def second_clerk(make_user):
    return make_user("clerk", first_name="Dan", last_name="Clerk")


@pytest.fixture
def store_admin(make_user):
    return make_user("admin", first_name="Erin", last_name="Admin")


@pytest.fixture
def staff(clerk, second_clerk, store_admin):
    """Three registered staff identities."""
    return [clerk, second_clerk, store_admin]


@pytest.fixture
def conversation(customer):
    from django_inbox.models import Conversation

    return Conversation.objects.create(customer=customer)


@pytest.fixture
def add_messages(conversation):
    """Append ``n`` alternating messages directly to the store."""
    from django_inbox.models import Message

    def _add(n, sender, receiver):
        return [
            Message.objects.create(
                conversation=conversation,
                sender=sender,
                receiver=receiver,
                body=f"message {i}",
            )
            for i in range(n)
        ]

    return _add
