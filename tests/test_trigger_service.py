from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from jym.models import Base
from jym.schemas.conversation_context import ConversationType, MessageRole
from jym.schemas.trigger import TriggerStatus
from jym.services.ai.ai_service import GenerationResult
from jym.services.conversation.context_manager import ConversationContextManager
from jym.services.messaging.delivery import NaturalDelivery
from jym.services.trigger.trigger_service import TriggerService, build_trigger_prompt

from tests.conftest import FakeAIService, FakeChannel


def make_service(db, scheduler, delivery, ai=None, channel=None) -> TriggerService:
    channel = channel or FakeChannel()
    return TriggerService(
        db,
        ai_service=ai or FakeAIService(),
        delivery=delivery,
        channel_factory=lambda name: channel,
        scheduler=scheduler,
    )


def create(service, **overrides):
    fields = dict(
        user_id="telegram_42",
        channel="telegram",
        recipient="42",
        trigger_message="ask how the legs feel",
        scheduled_time=datetime.now(timezone.utc) + timedelta(seconds=5),
        metadata={"type": "check_in", "context": "leg day yesterday"},
    )
    fields.update(overrides)
    return service.create_trigger(**fields)


def test_create_schedules_a_pending_trigger(db, scheduler, delivery):
    service = make_service(db, scheduler, delivery)

    trigger = create(service)

    assert trigger.status == TriggerStatus.PENDING.value
    assert trigger.scheduled_task_id == "task-1"
    assert scheduler.scheduled[0][0] == trigger.id


def test_scheduling_failure_marks_trigger_failed(db, delivery):
    class BrokenScheduler:
        def schedule(self, trigger_id, eta):
            raise ConnectionError("broker down")

    service = make_service(db, BrokenScheduler(), delivery)

    with pytest.raises(ConnectionError):
        create(service)

    [trigger] = service.get_user_triggers("telegram_42")
    assert trigger.status == TriggerStatus.FAILED.value
    assert "broker down" in trigger.error


def test_cancelled_trigger_never_fires(db, scheduler, delivery):
    ai = FakeAIService()
    channel = FakeChannel()
    service = make_service(db, scheduler, delivery, ai=ai, channel=channel)
    trigger = create(service)

    assert service.cancel_trigger(trigger.id, "telegram_42") == {"success": True, "message": "Trigger cancelled"}
    result = service.execute_trigger(trigger.id)

    assert result["skipped"] is True
    assert service.get_trigger(trigger.id).status == TriggerStatus.CANCELLED.value
    assert scheduler.revoked == ["task-1"]
    assert ai.calls == []
    assert channel.sent == []


def test_cancel_checks_owner_and_status(db, scheduler, delivery):
    service = make_service(db, scheduler, delivery)
    trigger = create(service)

    assert service.cancel_trigger("missing", "telegram_42")["message"] == "Trigger not found"
    assert service.cancel_trigger(trigger.id, "telegram_7")["message"] == "Unauthorized"

    service.cancel_trigger(trigger.id, "telegram_42")
    again = service.cancel_trigger(trigger.id, "telegram_42")
    assert again == {"success": False, "message": "Cannot cancel trigger with status: cancelled"}


def test_execute_delivers_into_the_thread(db, scheduler, delivery):
    ai = FakeAIService(replies=["hey! how are the legs?\nsore yet?"])
    channel = FakeChannel()
    service = make_service(db, scheduler, delivery, ai=ai, channel=channel)
    trigger = create(service)

    result = service.execute_trigger(trigger.id)

    assert result == {"success": True, "status": "completed"}
    assert channel.texts == ["hey! how are the legs?", "sore yet?"]
    prompt = ai.calls[0]["messages"][-1]["content"]
    assert prompt == "[TRIGGER: check_in] ask how the legs feel Context: leg day yesterday"

    stored = service.get_trigger(trigger.id)
    assert stored.status == TriggerStatus.COMPLETED.value
    assert stored.completed_at is not None

    context = ConversationContextManager(db)
    context.initialize("telegram_42", "42", ConversationType.FITNESS_CHAT)
    roles = [m.role for m in context.get_llm_messages()]
    assert roles == [MessageRole.SYSTEM, MessageRole.ASSISTANT]
    assert context.get_last_response_id() == "resp_1"


def test_execute_continues_an_existing_thread(db, scheduler, delivery):
    context = ConversationContextManager(db)
    conversation = context.initialize("telegram_42", "42", ConversationType.FITNESS_CHAT)
    context.add_message(MessageRole.USER, "leg day done")
    context.update_response_id("resp_prev")

    ai = FakeAIService()
    service = make_service(db, scheduler, delivery, ai=ai)
    trigger = create(service, thread_id=conversation.conversation_id)

    service.execute_trigger(trigger.id)

    assert ai.calls[0]["previous_response_id"] == "resp_prev"
    assert len(ai.calls[0]["messages"]) == 1


def test_execute_fails_on_empty_generation(db, scheduler, delivery):
    ai = FakeAIService(replies=[GenerationResult(text="", response_id="r")])
    channel = FakeChannel()
    service = make_service(db, scheduler, delivery, ai=ai, channel=channel)
    trigger = create(service)

    result = service.execute_trigger(trigger.id)

    assert result["success"] is False
    assert service.get_trigger(trigger.id).status == TriggerStatus.FAILED.value
    assert channel.sent == []


def test_execute_fails_when_nothing_is_delivered(db, scheduler, delivery):
    channel = FakeChannel(fail_on={"reply 1"})
    service = make_service(db, scheduler, delivery, channel=channel)
    trigger = create(service)

    service.execute_trigger(trigger.id)

    stored = service.get_trigger(trigger.id)
    assert stored.status == TriggerStatus.FAILED.value
    assert stored.error


def test_execute_runs_once(db, scheduler, delivery):
    ai = FakeAIService()
    service = make_service(db, scheduler, delivery, ai=ai)
    trigger = create(service)

    service.execute_trigger(trigger.id)
    second = service.execute_trigger(trigger.id)

    assert second["skipped"] is True
    assert len(ai.calls) == 1


def test_prompt_without_metadata(db, scheduler, delivery):
    service = make_service(db, scheduler, delivery)
    trigger = create(service, metadata=None)

    assert build_trigger_prompt(trigger) == "[SCHEDULED TRIGGER] ask how the legs feel"


def test_user_triggers_filter_by_status(db, scheduler, delivery):
    service = make_service(db, scheduler, delivery)
    first = create(service)
    create(service)
    service.cancel_trigger(first.id, "telegram_42")

    assert len(service.get_user_triggers("telegram_42")) == 2
    assert [t.id for t in service.get_user_triggers("telegram_42", status="cancelled")] == [first.id]
    assert service.get_user_triggers("telegram_7") == []


def test_redelivered_task_does_not_send_twice(tmp_path, scheduler):
    engine = create_engine(f"sqlite:///{tmp_path / 'jym.db'}")
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, autoflush=False)
    first_db, second_db = Session(), Session()

    ai = FakeAIService()
    channel = FakeChannel()
    quiet = NaturalDelivery(sleep=lambda s: None)
    second = make_service(second_db, scheduler, quiet, ai=ai, channel=channel)

    class RacingService(TriggerService):
        raced = False

        def get_trigger(self, trigger_id):
            trigger = super().get_trigger(trigger_id)
            if not self.raced:
                # the duplicate delivery runs after this worker saw "pending"
                self.raced = True
                second.execute_trigger(trigger_id)
            return trigger

    first = RacingService(
        first_db, ai_service=ai, delivery=quiet, channel_factory=lambda name: channel, scheduler=scheduler
    )
    trigger = create(first)

    result = first.execute_trigger(trigger.id)

    assert result["skipped"] is True
    assert result["status"] == TriggerStatus.COMPLETED.value
    assert channel.texts == ["reply 1"]
    assert len(ai.calls) == 1

    first_db.close()
    second_db.close()
    engine.dispose()


def test_execute_closes_the_channel(db, scheduler, delivery):
    channel = FakeChannel()
    service = make_service(db, scheduler, delivery, channel=channel)

    service.execute_trigger(create(service).id)

    assert channel.closed
