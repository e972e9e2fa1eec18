"""Shared fixtures and fakes for the test suite."""

from __future__ import annotations

from datetime import datetime
from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from jym.core.errors import ErrorKind, GenerationError, Outcome
from jym.models import Base, UserProfile
from jym.services.ai.ai_service import GenerationResult
from jym.services.messaging.delivery import NaturalDelivery
from jym.services.messaging.splitter import TELEGRAM_PROFILE


@pytest.fixture()
def db():
    """Fresh in-memory SQLite session per test."""

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()
    engine.dispose()


class FakeAIService:
    """Scripted generation gateway.

    Each queued reply is a string, a GenerationResult or an exception to
    raise. Once the queue is empty it answers "reply <n>" with response id
    "resp_<n>", n counting every call.
    """

    def __init__(self, replies: list[Any] | None = None, fail: bool = False) -> None:
        self.replies = list(replies or [])
        self.fail = fail
        self.calls: list[dict[str, Any]] = []

    def generate(self, system_prompt, messages, previous_response_id=None, tools=None, model=None):
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "messages": list(messages),
                "previous_response_id": previous_response_id,
                "tools": tools,
                "model": model,
            }
        )
        n = len(self.calls)
        if self.fail:
            raise GenerationError("upstream down")
        if self.replies:
            reply = self.replies.pop(0)
            if isinstance(reply, Exception):
                raise reply
            if isinstance(reply, GenerationResult):
                return reply
            return GenerationResult(text=reply, response_id=f"resp_{n}")
        return GenerationResult(text=f"reply {n}", response_id=f"resp_{n}")


class FakeChannel:
    """Records everything a channel adapter would have sent."""

    def __init__(self, name: str = "telegram", profile=TELEGRAM_PROFILE, supports_typing: bool = True,
                 fail_on: set[str] | None = None) -> None:
        self.name = name
        self.profile = profile
        self.supports_typing = supports_typing
        self.fail_on = fail_on or set()
        self.sent: list[tuple[str, str]] = []
        self.typing: list[str] = []
        self.read: list[str | None] = []
        self.closed = False

    def send_message(self, recipient: str, text: str) -> Outcome:
        if text in self.fail_on:
            return Outcome.failure(ErrorKind.DELIVERY, "HTTP 500: boom")
        self.sent.append((recipient, text))
        return Outcome.success({"ok": True})

    def show_typing(self, recipient: str) -> None:
        self.typing.append(recipient)

    def mark_as_read(self, message_id: str | None) -> None:
        self.read.append(message_id)

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> FakeChannel:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def texts(self) -> list[str]:
        return [text for _, text in self.sent]


class FakeProfileWriter:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.writes: list[tuple[str, str, str]] = []
        self.completed: list[str] = []

    def update_onboarding_field(self, owner_id: str, key: str, value: str) -> Outcome:
        if self.fail:
            return Outcome.failure(ErrorKind.PERSISTENCE, "database is down")
        self.writes.append((owner_id, key, value))
        return Outcome.success([key])

    def complete_onboarding(self, owner_id: str) -> Outcome:
        if self.fail:
            return Outcome.failure(ErrorKind.PERSISTENCE, "database is down")
        self.completed.append(owner_id)
        return Outcome.success(["onboarding_complete"])


class FakeScheduler:
    def __init__(self) -> None:
        self.scheduled: list[tuple[str, datetime]] = []
        self.revoked: list[str] = []

    def schedule(self, trigger_id: str, eta: datetime) -> str:
        self.scheduled.append((trigger_id, eta))
        return f"task-{len(self.scheduled)}"

    def revoke(self, task_id: str) -> None:
        self.revoked.append(task_id)


@pytest.fixture()
def sleeps() -> list[float]:
    return []


@pytest.fixture()
def delivery(sleeps) -> NaturalDelivery:
    return NaturalDelivery(sleep=sleeps.append)


@pytest.fixture()
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture()
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture()
def make_profile(db):
    def _factory(user_id: str = "telegram_42", onboarded: bool = False, **fields: Any) -> UserProfile:
        profile = UserProfile(
            id=f"profile-{user_id}",
            user_id=user_id,
            platform=fields.pop("platform", "telegram"),
            channel_handle=fields.pop("channel_handle", "42"),
            onboarding_complete=onboarded,
            fitness_level=fields.pop("fitness_level", ""),
            goals=fields.pop("goals", ""),
            equipment=fields.pop("equipment", ""),
            injuries=fields.pop("injuries", ""),
            measuring_system="metric",
            **fields,
        )
        db.add(profile)
        db.commit()
        return profile

    return _factory
