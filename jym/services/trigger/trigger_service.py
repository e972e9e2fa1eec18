# jym/services/trigger/trigger_service.py
"""Deferred proactive messages ("triggers")"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, Dict, List, Any, Callable

from sqlalchemy.orm import Session

from jym.core.errors import GenerationError, DeliveryError
from jym.models.trigger import Trigger
from jym.schemas.conversation_context import ConversationType, MessageRole
from jym.schemas.trigger import TriggerStatus
from jym.services.ai import prompts
from jym.services.ai.ai_service import AIService
from jym.services.conversation.context_manager import ConversationContextManager
from jym.services.messaging.base import MessageChannel
from jym.services.messaging.channels import get_channel
from jym.services.messaging.delivery import NaturalDelivery
from jym.services.user.user_profile_service import UserProfileService

logger = logging.getLogger(__name__)


class CeleryTriggerScheduler:
    """Schedules trigger execution as an ETA task on the triggers queue"""

    def schedule(self, trigger_id: str, eta: datetime) -> str:
        from jym.tasks.trigger_tasks import schedule_trigger
        return schedule_trigger(trigger_id, eta)

    def revoke(self, task_id: str) -> None:
        from jym.tasks.trigger_tasks import revoke_trigger
        revoke_trigger(task_id)


def build_trigger_prompt(trigger: Trigger) -> str:
    """Internal instruction handed to the model when a trigger fires"""
    metadata = trigger.trigger_metadata or {}
    prefix = f"[TRIGGER: {metadata['type']}] " if metadata.get("type") else "[SCHEDULED TRIGGER] "
    suffix = f" Context: {metadata['context']}" if metadata.get("context") else ""
    return f"{prefix}{trigger.trigger_message}{suffix}"


class TriggerService:
    """Create, cancel, list and fire triggers"""

    def __init__(
            self,
            db: Session,
            ai_service: Optional[AIService] = None,
            delivery: Optional[NaturalDelivery] = None,
            channel_factory: Callable[[str], MessageChannel] = get_channel,
            scheduler: Optional[CeleryTriggerScheduler] = None
    ):
        self.db = db
        self.ai_service = ai_service
        self.delivery = delivery or NaturalDelivery()
        self.channel_factory = channel_factory
        self.scheduler = scheduler or CeleryTriggerScheduler()

    def get_trigger(self, trigger_id: str) -> Optional[Trigger]:
        return self.db.query(Trigger).filter(Trigger.id == trigger_id).populate_existing().first()

    def create_trigger(
            self,
            user_id: str,
            channel: str,
            recipient: str,
            trigger_message: str,
            scheduled_time: datetime,
            thread_id: Optional[str] = None,
            metadata: Optional[Dict[str, Any]] = None
    ) -> Trigger:
        """Store a pending trigger and schedule it to fire at `scheduled_time`"""
        if scheduled_time.tzinfo is None:
            scheduled_time = scheduled_time.replace(tzinfo=timezone.utc)

        trigger = Trigger(
            id=str(uuid.uuid4()),
            user_id=user_id,
            channel=channel,
            recipient=recipient,
            trigger_message=trigger_message,
            scheduled_time=scheduled_time,
            thread_id=thread_id,
            trigger_metadata=metadata or {},
            status=TriggerStatus.PENDING.value,
        )
        self.db.add(trigger)
        self.db.commit()

        try:
            trigger.scheduled_task_id = self.scheduler.schedule(trigger.id, scheduled_time)
        except Exception as e:
            logger.error(f"❌ Could not schedule trigger {trigger.id}: {e}", exc_info=True)
            trigger.status = TriggerStatus.FAILED.value
            trigger.error = f"scheduling failed: {e}"
            self.db.commit()
            raise

        self.db.commit()
        self.db.refresh(trigger)
        logger.info(f"⏰ Created trigger {trigger.id} for {user_id} at {scheduled_time.isoformat()}")
        return trigger

    def cancel_trigger(self, trigger_id: str, user_id: str) -> Dict[str, Any]:
        """Cancel a pending trigger owned by `user_id`"""
        trigger = self.get_trigger(trigger_id)
        if not trigger:
            return {"success": False, "message": "Trigger not found"}
        if trigger.user_id != user_id:
            return {"success": False, "message": "Unauthorized"}
        if trigger.status != TriggerStatus.PENDING.value:
            return {"success": False, "message": f"Cannot cancel trigger with status: {trigger.status}"}

        if trigger.scheduled_task_id:
            self.scheduler.revoke(trigger.scheduled_task_id)

        trigger.status = TriggerStatus.CANCELLED.value
        self.db.commit()
        logger.info(f"🚫 Cancelled trigger {trigger_id}")
        return {"success": True, "message": "Trigger cancelled"}

    def get_user_triggers(self, user_id: str, status: Optional[str] = None, limit: int = 50) -> List[Trigger]:
        query = self.db.query(Trigger).filter(Trigger.user_id == user_id)
        if status:
            query = query.filter(Trigger.status == status)
        return query.order_by(Trigger.scheduled_time.desc()).limit(limit).all()

    def _finish(self, trigger: Trigger, status: TriggerStatus, error: Optional[str] = None) -> None:
        trigger.status = status.value
        trigger.error = error
        if status == TriggerStatus.COMPLETED:
            trigger.completed_at = datetime.now(timezone.utc)
        self.db.commit()

    def execute_trigger(self, trigger_id: str) -> Dict[str, Any]:
        """Fire a trigger: generate a message in the user's thread and deliver it.

        Anything but a pending trigger is left untouched. Any failure after
        that marks the trigger failed; triggers are never retried.
        """
        trigger = self.get_trigger(trigger_id)
        if not trigger:
            logger.error(f"Trigger {trigger_id} not found")
            return {"success": False, "reason": "not_found"}

        # Claim the trigger in one statement; a redelivered task finds it taken
        claimed = self.db.query(Trigger).filter(
            Trigger.id == trigger_id,
            Trigger.status == TriggerStatus.PENDING.value,
        ).update({Trigger.status: TriggerStatus.EXECUTING.value}, synchronize_session=False)
        self.db.commit()

        trigger = self.get_trigger(trigger_id)
        if claimed != 1:
            logger.info(f"Trigger {trigger_id} already processed with status: {trigger.status}")
            return {"success": True, "skipped": True, "status": trigger.status}

        logger.info(f"🔔 Executing trigger {trigger_id} for user {trigger.user_id}")

        try:
            ai_service = self.ai_service or AIService()

            context = ConversationContextManager(self.db)
            context.initialize(
                trigger.user_id,
                trigger.recipient,
                ConversationType.FITNESS_CHAT,
                conversation_id=trigger.thread_id,
            )

            profile = UserProfileService.get_profile(self.db, trigger.user_id)
            if profile and profile.onboarding_complete:
                system_prompt = prompts.with_clock(f"{prompts.MAIN_COACH_PROMPT}\n{prompts.profile_block(profile)}")
            else:
                system_prompt = prompts.with_clock(prompts.ONBOARDING_PROMPT)

            instruction = build_trigger_prompt(trigger)
            response_id = context.get_last_response_id()
            messages = [{"role": "user", "content": instruction}]
            if not response_id:
                messages = context.history_for_model() + messages

            result = ai_service.generate(system_prompt, messages, previous_response_id=response_id)
            if not result.text:
                raise GenerationError("No response generated for trigger")

            with self.channel_factory(trigger.channel) as channel:
                outcomes = self.delivery.deliver(channel, trigger.recipient, result.text)
            if outcomes and not any(o.ok for o in outcomes):
                raise DeliveryError(outcomes[0].error or "delivery failed")

            context.add_message(MessageRole.SYSTEM, instruction)
            context.add_message(MessageRole.ASSISTANT, result.text)
            context.update_response_id(result.response_id)

            self._finish(trigger, TriggerStatus.COMPLETED)
            logger.info(f"✅ Successfully executed trigger {trigger_id}")
            return {"success": True, "status": TriggerStatus.COMPLETED.value}

        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Error executing trigger {trigger_id}: {e}", exc_info=True)
            trigger = self.get_trigger(trigger_id)
            self._finish(trigger, TriggerStatus.FAILED, error=str(e) or e.__class__.__name__)
            return {"success": False, "status": TriggerStatus.FAILED.value, "error": str(e)}
