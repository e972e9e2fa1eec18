# jym/services/conversation/context_manager.py
"""Durable per-conversation state for the coach threads"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, Dict, List, Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from jym.config.settings import get_settings
from jym.core.errors import NotInitializedError, PersistenceError
from jym.models.conversation import Conversation, ConversationSnapshot
from jym.schemas.conversation_context import (
    ConversationContext,
    ConversationMemory,
    ConversationStatus,
    ConversationSummary,
    ConversationType,
    LLMMessage,
    MessageRole,
    now_ms,
)

logger = logging.getLogger(__name__)
settings = get_settings()


class ConversationContextManager:
    """Wraps one conversation record.

    Every mutation re-reads the stored record, applies the change and writes
    it back, so concurrent workers only ever lose the overlap of a single
    operation. Everything except initialize() raises NotInitializedError
    until a conversation is bound.
    """

    def __init__(self, db: Session, max_messages: Optional[int] = None):
        self.db = db
        self.max_messages = max_messages or settings.CONTEXT_MAX_MESSAGES
        self.conversation_id: Optional[str] = None

    # ---- lifecycle -------------------------------------------------------

    def initialize(
            self,
            user_key: str,
            chat_key: str,
            type: ConversationType,
            conversation_id: Optional[str] = None
    ) -> Conversation:
        """Bind to the active conversation of this kind, creating it if needed.

        An explicit `conversation_id` is only used while that conversation is
        active and belongs to the same user and kind. Otherwise the active
        conversation for (user_key, chat_key, type) wins, and a new one is
        created only when neither exists.
        """
        type = ConversationType(type)

        existing = None
        if conversation_id:
            existing = self.db.query(Conversation).filter(
                Conversation.conversation_id == conversation_id,
                Conversation.user_key == str(user_key),
                Conversation.type == type.value,
                Conversation.status == ConversationStatus.ACTIVE.value,
            ).first()

        if not existing:
            existing = self.db.query(Conversation).filter(
                Conversation.user_key == str(user_key),
                Conversation.chat_key == str(chat_key),
                Conversation.type == type.value,
                Conversation.status == ConversationStatus.ACTIVE.value,
            ).first()

        if existing:
            self.conversation_id = existing.conversation_id
            return existing

        # A taken id (closed or someone else's) cannot be reused as the key
        if conversation_id and self.db.get(Conversation, conversation_id) is not None:
            conversation_id = None

        conversation = Conversation(
            conversation_id=conversation_id or f"{type.value}_{user_key}_{uuid.uuid4().hex[:12]}",
            user_key=str(user_key),
            chat_key=str(chat_key),
            type=type.value,
            status=ConversationStatus.ACTIVE.value,
            context=ConversationContext().model_dump(mode="json"),
        )
        try:
            self.db.add(conversation)
            self.db.commit()
            self.db.refresh(conversation)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to create {type.value} conversation for {user_key}: {e}")
            raise PersistenceError(f"could not create conversation: {e}", cause=e) from e

        self.conversation_id = conversation.conversation_id
        logger.info(f"🆕 Created {type.value} conversation {self.conversation_id}")
        return conversation

    def _load(self) -> Conversation:
        if not self.conversation_id:
            raise NotInitializedError("conversation context used before initialize()")
        conversation = (
            self.db.query(Conversation)
            .filter(Conversation.conversation_id == self.conversation_id)
            .populate_existing()
            .first()
        )
        if not conversation:
            raise NotInitializedError(f"conversation {self.conversation_id} no longer exists")
        return conversation

    def _save(self, conversation: Conversation, context: ConversationContext) -> None:
        context.session.last_activity = max(context.session.last_activity, now_ms())
        conversation.context = context.model_dump(mode="json")
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to save conversation {self.conversation_id}: {e}")
            raise PersistenceError(f"could not save conversation: {e}", cause=e) from e

    # ---- reads -----------------------------------------------------------

    def get_conversation(self) -> Conversation:
        return self._load()

    def get_context(self) -> ConversationContext:
        return ConversationContext.model_validate(self._load().context or {})

    def get_llm_messages(self) -> List[LLMMessage]:
        return self.get_context().llm.messages

    def get_last_response_id(self) -> Optional[str]:
        return self.get_context().llm.last_response_id

    def is_new_user(self) -> bool:
        return len(self.get_llm_messages()) == 0

    def history_for_model(self, limit: Optional[int] = None) -> List[Dict[str, str]]:
        """Recent user/assistant turns as generation input messages"""
        limit = limit or settings.CHAT_HISTORY_WINDOW
        messages = [
            {"role": m.role.value, "content": m.content}
            for m in self.get_llm_messages()
            if m.role in (MessageRole.USER, MessageRole.ASSISTANT)
        ]
        return messages[-limit:]

    def get_conversation_summary(self) -> ConversationSummary:
        conversation = self._load()
        context = ConversationContext.model_validate(conversation.context or {})
        return ConversationSummary(
            conversation_id=conversation.conversation_id,
            type=conversation.type,
            status=conversation.status,
            message_count=context.session.message_count,
            duration_ms=context.session.last_activity - context.session.start_time,
            current_phase=context.session.current_phase,
        )

    # ---- mutations -------------------------------------------------------

    def add_message(
            self,
            role: MessageRole,
            content: str,
            tool_calls: Optional[List[Dict[str, Any]]] = None,
            tool_results: Optional[List[Dict[str, Any]]] = None
    ) -> None:
        conversation = self._load()
        context = ConversationContext.model_validate(conversation.context or {})

        context.llm.messages.append(LLMMessage(
            role=MessageRole(role),
            content=content,
            tool_calls=tool_calls or None,
            tool_results=tool_results or None,
        ))
        # Oldest messages go first
        if len(context.llm.messages) > self.max_messages:
            context.llm.messages = context.llm.messages[-self.max_messages:]
        context.session.message_count += 1

        self._save(conversation, context)

    def update_response_id(self, response_id: Optional[str]) -> None:
        if not response_id:
            return
        conversation = self._load()
        context = ConversationContext.model_validate(conversation.context or {})
        context.llm.last_response_id = response_id
        self._save(conversation, context)

    def clear_response_id(self) -> None:
        """Drop the continuation token; the next call resends recent history"""
        conversation = self._load()
        context = ConversationContext.model_validate(conversation.context or {})
        context.llm.last_response_id = None
        self._save(conversation, context)

    def update_context(self, partial: Dict[str, Any], current_step: Optional[str] = None) -> None:
        """Merge `partial` into the stored context.

        Top-level keys replace the stored value, except `session`, whose keys
        are merged into the stored session.
        """
        conversation = self._load()
        data = ConversationContext.model_validate(conversation.context or {}).model_dump(mode="json")

        for key, value in partial.items():
            if key == "session" and isinstance(value, dict):
                data["session"] = {**data["session"], **value}
            else:
                data[key] = value

        previous_activity = (conversation.context or {}).get("session", {}).get("last_activity", 0)
        context = ConversationContext.model_validate(data)
        context.session.last_activity = max(context.session.last_activity, previous_activity)

        if current_step is not None:
            conversation.current_step = current_step
        self._save(conversation, context)

    def update_user_context(
            self,
            fitness_level: Optional[str] = None,
            current_goals: Optional[List[str]] = None,
            equipment: Optional[List[str]] = None,
            injuries: Optional[List[str]] = None
    ) -> None:
        conversation = self._load()
        context = ConversationContext.model_validate(conversation.context or {})
        user = context.user

        if fitness_level is not None:
            user.fitness_level = fitness_level
        if current_goals:
            user.current_goals = list(dict.fromkeys([*user.current_goals, *current_goals]))
        if equipment is not None:
            user.preferences.equipment = equipment
        if injuries is not None:
            user.preferences.injuries = injuries

        self._save(conversation, context)

    def set_waiting(self, waiting_for: Optional[str]) -> None:
        conversation = self._load()
        context = ConversationContext.model_validate(conversation.context or {})
        context.session.is_waiting = waiting_for is not None
        context.session.waiting_for = waiting_for
        self._save(conversation, context)

    def update_conversation_memory(self, **fields: Any) -> None:
        conversation = self._load()
        context = ConversationContext.model_validate(conversation.context or {})
        memory = context.llm.conversation_memory or ConversationMemory()
        context.llm.conversation_memory = memory.model_copy(update=fields)
        self._save(conversation, context)

    def complete(self) -> None:
        """Mark the conversation completed; a closed conversation stays closed"""
        conversation = self._load()
        if conversation.status != ConversationStatus.ACTIVE.value:
            return
        context = ConversationContext.model_validate(conversation.context or {})
        conversation.status = ConversationStatus.COMPLETED.value
        context.session.is_waiting = False
        context.session.waiting_for = None
        self._save(conversation, context)
        logger.info(f"🏁 Completed conversation {self.conversation_id}")

    # ---- snapshots -------------------------------------------------------

    def create_snapshot(self, step: str, data: Optional[Dict[str, Any]] = None) -> str:
        conversation = self._load()
        snapshot = ConversationSnapshot(
            id=str(uuid.uuid4()),
            conversation_id=conversation.conversation_id,
            step=step,
            snapshot_data=data if data is not None else conversation.context,
            created_at=datetime.now(timezone.utc),
        )
        try:
            self.db.add(snapshot)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"could not save snapshot: {e}", cause=e) from e
        return snapshot.id

    def get_latest_snapshot(self, step: Optional[str] = None) -> Optional[ConversationSnapshot]:
        conversation = self._load()
        query = self.db.query(ConversationSnapshot).filter(
            ConversationSnapshot.conversation_id == conversation.conversation_id
        )
        if step:
            query = query.filter(ConversationSnapshot.step == step)
        return query.order_by(ConversationSnapshot.created_at.desc(), ConversationSnapshot.id.desc()).first()
