from __future__ import annotations

import pytest

from jym.core.errors import NotInitializedError
from jym.models import Conversation
from jym.schemas.conversation_context import ConversationStatus, ConversationType, MessageRole
from jym.services.conversation.context_manager import ConversationContextManager


@pytest.fixture()
def context(db) -> ConversationContextManager:
    manager = ConversationContextManager(db)
    manager.initialize("telegram_42", "42", ConversationType.FITNESS_CHAT)
    return manager


def test_operations_require_initialize(db):
    manager = ConversationContextManager(db)

    with pytest.raises(NotInitializedError):
        manager.add_message(MessageRole.USER, "hi")
    with pytest.raises(NotInitializedError):
        manager.get_context()


def test_initialize_reuses_the_active_conversation(db, context):
    again = ConversationContextManager(db)
    conversation = again.initialize("telegram_42", "42", ConversationType.FITNESS_CHAT)

    assert conversation.conversation_id == context.conversation_id
    assert conversation.conversation_id.startswith("fitness_chat_telegram_42_")


def test_initialize_keeps_types_apart(db, context):
    other = ConversationContextManager(db)
    other.initialize("telegram_42", "42", ConversationType.ONBOARDING)

    assert other.conversation_id != context.conversation_id


def active_count(db, user_key: str, type: ConversationType) -> int:
    return db.query(Conversation).filter(
        Conversation.user_key == user_key,
        Conversation.type == type.value,
        Conversation.status == ConversationStatus.ACTIVE.value,
    ).count()


def test_initialize_with_explicit_id(db):
    manager = ConversationContextManager(db)
    manager.initialize("telegram_42", "42", ConversationType.FITNESS_CHAT, conversation_id="thread-1")

    again = ConversationContextManager(db)
    again.initialize("telegram_42", "42", ConversationType.FITNESS_CHAT, conversation_id="thread-1")

    assert manager.conversation_id == "thread-1"
    assert again.conversation_id == "thread-1"


def test_explicit_id_does_not_duplicate_the_active_conversation(db, context):
    other = ConversationContextManager(db)
    other.initialize("telegram_42", "42", ConversationType.FITNESS_CHAT, conversation_id="thread-new")

    assert other.conversation_id == context.conversation_id
    assert active_count(db, "telegram_42", ConversationType.FITNESS_CHAT) == 1


def test_explicit_id_of_a_completed_conversation(db):
    first = ConversationContextManager(db)
    first.initialize("telegram_42", "42", ConversationType.FITNESS_CHAT, conversation_id="thread-1")
    first.complete()

    again = ConversationContextManager(db)
    conversation = again.initialize("telegram_42", "42", ConversationType.FITNESS_CHAT, conversation_id="thread-1")

    assert conversation.status == ConversationStatus.ACTIVE.value
    assert again.conversation_id != "thread-1"
    assert first.get_conversation().status == ConversationStatus.COMPLETED.value


def test_explicit_id_of_another_user(db):
    owner = ConversationContextManager(db)
    owner.initialize("telegram_42", "42", ConversationType.FITNESS_CHAT, conversation_id="thread-1")

    stranger = ConversationContextManager(db)
    conversation = stranger.initialize("telegram_7", "7", ConversationType.FITNESS_CHAT, conversation_id="thread-1")

    assert conversation.user_key == "telegram_7"
    assert stranger.conversation_id != "thread-1"
    assert active_count(db, "telegram_42", ConversationType.FITNESS_CHAT) == 1


def test_messages_are_capped_oldest_first(context):
    for i in range(55):
        context.add_message(MessageRole.USER, f"message {i}")

    messages = context.get_llm_messages()
    assert len(messages) == 50
    assert messages[0].content == "message 5"
    assert messages[-1].content == "message 54"
    assert context.get_context().session.message_count == 55


def test_custom_cap(db):
    manager = ConversationContextManager(db, max_messages=3)
    manager.initialize("telegram_42", "42", ConversationType.FITNESS_CHAT)
    for text in "abcde":
        manager.add_message(MessageRole.USER, text)

    assert [m.content for m in manager.get_llm_messages()] == ["c", "d", "e"]


def test_new_user_until_first_message(context):
    assert context.is_new_user()

    context.add_message(MessageRole.USER, "hi")

    assert not context.is_new_user()


def test_tool_details_are_kept_on_messages(context):
    calls = [{"name": "generate_challenge", "call_id": "c1", "arguments": {"difficulty": "easy"}}]
    results = [{"call_id": "c1", "name": "generate_challenge", "result": {"message": "go"}}]

    context.add_message(MessageRole.ASSISTANT, "go", tool_calls=calls, tool_results=results)

    message = context.get_llm_messages()[0]
    assert message.tool_calls == calls
    assert message.tool_results == results


def test_history_for_model_skips_system_messages(context):
    context.add_message(MessageRole.USER, "hi")
    context.add_message(MessageRole.SYSTEM, "[SCHEDULED TRIGGER] check in")
    context.add_message(MessageRole.ASSISTANT, "yo")

    assert context.history_for_model() == [
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "yo"},
    ]
    assert context.history_for_model(limit=1) == [{"role": "assistant", "content": "yo"}]


def test_response_id_update_and_clear(context):
    context.update_response_id("resp_1")
    context.update_response_id(None)
    assert context.get_last_response_id() == "resp_1"

    context.clear_response_id()
    assert context.get_last_response_id() is None


def test_update_context_merges_session(context):
    context.set_waiting("challenge_result")

    context.update_context({"session": {"current_phase": "onboarding"}}, current_step="goals")

    stored = context.get_context()
    assert stored.session.current_phase == "onboarding"
    assert stored.session.waiting_for == "challenge_result"
    assert context.get_conversation().current_step == "goals"


def test_last_activity_never_goes_back(context):
    before = context.get_context().session.last_activity

    context.update_context({"session": {"last_activity": 0}})

    assert context.get_context().session.last_activity >= before


def test_user_context_goals_are_deduplicated(context):
    context.update_user_context(fitness_level="beginner", current_goals=["strength", "cardio"])
    context.update_user_context(current_goals=["cardio", "mobility"], equipment=["dumbbells"])

    user = context.get_context().user
    assert user.fitness_level == "beginner"
    assert user.current_goals == ["strength", "cardio", "mobility"]
    assert user.preferences.equipment == ["dumbbells"]


def test_memory_fields_merge(context):
    context.update_conversation_memory(user_mood="tired")
    context.update_conversation_memory(summary="talked legs")

    memory = context.get_context().llm.conversation_memory
    assert memory.user_mood == "tired"
    assert memory.summary == "talked legs"


def test_completed_conversation_stays_completed(db, context):
    context.set_waiting("challenge_result")
    context.complete()
    context.complete()

    assert context.get_conversation().status == ConversationStatus.COMPLETED.value
    assert context.get_context().session.waiting_for is None

    fresh = ConversationContextManager(db)
    fresh.initialize("telegram_42", "42", ConversationType.FITNESS_CHAT)
    assert fresh.conversation_id != context.conversation_id


def test_summary(context):
    context.add_message(MessageRole.USER, "hi")

    summary = context.get_conversation_summary()

    assert summary.conversation_id == context.conversation_id
    assert summary.type == ConversationType.FITNESS_CHAT
    assert summary.status == ConversationStatus.ACTIVE
    assert summary.message_count == 1
    assert summary.duration_ms >= 0


def test_snapshots(context):
    context.add_message(MessageRole.USER, "hi")
    first = context.create_snapshot("fitness_level")
    context.create_snapshot("goals", data={"note": "custom"})

    assert context.get_latest_snapshot("fitness_level").id == first
    assert context.get_latest_snapshot("goals").snapshot_data == {"note": "custom"}
    assert context.get_latest_snapshot("injuries") is None
