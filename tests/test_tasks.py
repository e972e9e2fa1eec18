from __future__ import annotations

from datetime import datetime, timezone

import pytest

from jym.core.errors import ErrorKind, Outcome
from jym.tasks import conversation_tasks, trigger_tasks


def test_schedule_trigger_uses_eta(monkeypatch):
    captured = {}

    class FakeResult:
        id = "celery-1"

    def fake_apply_async(args=None, eta=None, **kwargs):
        captured.update(args=args, eta=eta)
        return FakeResult()

    monkeypatch.setattr(trigger_tasks.execute_trigger, "apply_async", fake_apply_async)
    eta = datetime(2030, 1, 1, 9, 0, tzinfo=timezone.utc)

    assert trigger_tasks.schedule_trigger("t1", eta) == "celery-1"
    assert captured == {"args": ["t1"], "eta": eta}


def test_send_channel_message_retries_on_failure(monkeypatch):
    class FailingChannel:
        def send_message(self, recipient, text):
            return Outcome.failure(ErrorKind.DELIVERY, "HTTP 500")

        def __enter__(self):
            return self

        def __exit__(self, *exc_info):
            return None

    class Retry(Exception):
        pass

    monkeypatch.setattr(conversation_tasks, "get_channel", lambda name: FailingChannel())
    monkeypatch.setattr(conversation_tasks.send_channel_message, "retry", lambda **kwargs: Retry())

    with pytest.raises(Retry):
        conversation_tasks.send_channel_message.run("whatsapp", "15551234567", "hi")
