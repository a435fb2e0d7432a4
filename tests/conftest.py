"""
Shared pytest fixtures for the member management tests.

Every test gets a fresh store, a synchronous event bus (so deliveries have
happened by the time a call returns) and a started email listener.
"""

import pytest

from members.models import Member
from members.service import MemberService
from members.store import MemberStore
from notifications.channels import EmailChannel
from notifications.email_listener import MemberEmailListener
from notifications.event_bus import EventBus


@pytest.fixture
def store() -> MemberStore:
    """Empty member store."""
    return MemberStore()


@pytest.fixture
def event_bus() -> EventBus:
    """Synchronous event bus."""
    return EventBus(asynchronous=False)


@pytest.fixture
def email_channel() -> EmailChannel:
    """Fresh EmailChannel that never fails."""
    return EmailChannel(fail_rate=0.0)


@pytest.fixture
def email_listener(event_bus: EventBus, email_channel: EmailChannel):
    """Welcome-email listener subscribed for the duration of the test."""
    listener = MemberEmailListener(event_bus, email_channel)
    listener.start()
    yield listener
    listener.stop()


@pytest.fixture
def service(store: MemberStore, event_bus: EventBus, email_listener) -> MemberService:
    """Member service wired to the fixtures above."""
    return MemberService(store, event_bus)


@pytest.fixture
def make_member():
    """Factory for unsaved candidate members."""
    def _make(email: str = "a@x.com", name: str = "A", phone: str = "010-1234-5678") -> Member:
        return Member(email=email, name=name, phone=phone)
    return _make


@pytest.fixture
def five_members(service: MemberService, make_member) -> list[Member]:
    """Service pre-loaded with members 1..5."""
    return [
        service.create_member(make_member(email=f"user{i}@x.com", name=f"User {i}"))
        for i in range(1, 6)
    ]
