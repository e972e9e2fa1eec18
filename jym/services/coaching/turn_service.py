# jym/services/coaching/turn_service.py
"""One inbound message in, one (multi-bubble) reply out"""
import logging
from typing import Optional, Dict, List, Any, Callable, Tuple

from sqlalchemy.orm import Session

from jym.config.settings import get_settings
from jym.core.errors import FALLBACK_REPLY
from jym.models.user_profile import UserProfile
from jym.schemas.conversation_context import ConversationType, MessageRole
from jym.schemas.tool_calls import ChallengeResult
from jym.schemas.webhook_events import InboundMessage
from jym.services.ai import prompts
from jym.services.ai.ai_service import AIService, GenerationResult
from jym.services.ai.tools import TOOL_DEFINITIONS, ToolExecutor
from jym.services.coaching.challenge_service import WARM_UP_CHALLENGE, ChallengeService
from jym.services.conversation.context_manager import ConversationContextManager
from jym.services.messaging.base import MessageChannel
from jym.services.messaging.channels import get_channel
from jym.services.messaging.delivery import NaturalDelivery
from jym.services.onboarding.onboarding_flow import OnboardingFlow
from jym.services.onboarding.onboarding_store import OnboardingSessionStore
from jym.services.onboarding.questions import ONBOARDING_QUESTIONS
from jym.services.trigger.trigger_service import TriggerService
from jym.services.user.user_profile_service import UserProfileService, UserProfileWriter

logger = logging.getLogger(__name__)
settings = get_settings()

CHAT_FALLBACK = "how you feeling? ready to move?"
WAITING_FOR_CHALLENGE = "challenge_result"

MOOD_WORDS = ("tired", "excited", "motivated")


def infer_mood(text: str) -> Optional[str]:
    lowered = text.lower()
    for mood in MOOD_WORDS:
        if mood in lowered:
            return mood
    return None


class TurnService:
    """Routes a message to the warm-up, onboarding or coach chat and replies"""

    def __init__(
            self,
            db: Session,
            ai_service: Optional[AIService] = None,
            delivery: Optional[NaturalDelivery] = None,
            channel_factory: Callable[[str], MessageChannel] = get_channel,
            challenge_service: Optional[ChallengeService] = None,
            trigger_service: Optional[TriggerService] = None,
            correlation_id: Optional[str] = None
    ):
        self.db = db
        self._ai_service = ai_service
        self.delivery = delivery or NaturalDelivery()
        self.channel_factory = channel_factory
        self.challenge_service = challenge_service or ChallengeService()
        self.trigger_service = trigger_service
        self.correlation_id = correlation_id or "unknown"

    @property
    def ai_service(self) -> AIService:
        if self._ai_service is None:
            self._ai_service = AIService()
        return self._ai_service

    def handle_message(self, inbound: InboundMessage) -> Dict[str, Any]:
        """Process one inbound message end to end.

        This is the error boundary of a turn: any failure is logged with the
        correlation id and the user gets FALLBACK_REPLY instead.
        """
        channel: Optional[MessageChannel] = None
        try:
            channel = self.channel_factory(inbound.channel)
            profile = UserProfileService.get_or_create_profile(
                self.db,
                user_id=inbound.user_key,
                platform=inbound.channel,
                channel_handle=inbound.chat_id,
                display_name=inbound.sender_name,
                telegram_id=inbound.telegram_id,
            )
            channel.mark_as_read(inbound.message_id)

            if profile.onboarding_complete:
                replies, stage = [self._chat_turn(profile, inbound)], "chat"
            else:
                replies, stage = self._onboarding_turn(profile, inbound)

            for reply in replies:
                self.delivery.deliver(channel, inbound.chat_id, reply)

            logger.info(f"[{self.correlation_id}] ✅ {stage} turn done for {inbound.user_key}")
            return {"success": True, "stage": stage, "replies": len(replies)}

        except Exception as e:
            self.db.rollback()
            logger.error(
                f"[{self.correlation_id}] ❌ Turn failed for {inbound.user_key}: {e}",
                exc_info=True,
            )
            if channel is not None:
                channel.send_message(inbound.chat_id, FALLBACK_REPLY)
            return {"success": False, "error": str(e)}
        finally:
            if channel is not None:
                channel.close()

    # ---- onboarding --------------------------------------------------------

    def _onboarding_turn(self, profile: UserProfile, inbound: InboundMessage) -> Tuple[List[str], str]:
        store = OnboardingSessionStore(self.db)
        writer = UserProfileWriter(self.db)
        flow = store.load(inbound.user_key, self.ai_service, writer)

        if flow is None:
            challenge = ConversationContextManager(self.db)
            challenge.initialize(inbound.user_key, inbound.chat_id, ConversationType.QUICK_CHALLENGE)
            challenge.add_message(MessageRole.USER, inbound.text)

            if challenge.get_context().session.waiting_for != WAITING_FOR_CHALLENGE:
                # First contact: get them moving before any questions
                challenge.add_message(MessageRole.ASSISTANT, WARM_UP_CHALLENGE)
                challenge.set_waiting(WAITING_FOR_CHALLENGE)
                return [WARM_UP_CHALLENGE], "warm_up"

            challenge.complete()

            flow = OnboardingFlow(inbound.user_key, self.ai_service, writer)
            question = flow.get_next_question()
            store.save(flow)

            onboarding = self._onboarding_context(inbound)
            onboarding.add_message(MessageRole.ASSISTANT, question.text)
            onboarding.update_context({"session": {"current_phase": "onboarding"}}, current_step=ONBOARDING_QUESTIONS[0].key)
            return [question.text], "onboarding_started"

        step = flow.process_response(inbound.text)
        onboarding = self._onboarding_context(inbound)
        onboarding.add_message(MessageRole.USER, inbound.text)
        onboarding.add_message(MessageRole.ASSISTANT, step.acknowledgment)

        if not step.is_complete:
            store.save(flow)
            onboarding.update_context({}, current_step=ONBOARDING_QUESTIONS[flow.current_question_index].key)
            return [step.acknowledgment], "onboarding"

        completion = flow.get_next_question()
        store.delete(inbound.user_key)
        onboarding.add_message(MessageRole.ASSISTANT, completion.text)
        onboarding.update_context({"session": {"current_phase": "active_chat"}}, current_step="complete")
        onboarding.complete()

        # The coach thread picks up where onboarding left off
        chat = ConversationContextManager(self.db)
        chat.initialize(inbound.user_key, inbound.chat_id, ConversationType.FITNESS_CHAT)
        chat.add_message(MessageRole.ASSISTANT, completion.text)
        chat.update_response_id(flow.last_response_id)
        chat.update_user_context(
            fitness_level=profile.fitness_level or None,
            current_goals=[profile.goals] if profile.goals else None,
            equipment=[profile.equipment] if profile.equipment else None,
            injuries=[profile.injuries] if profile.injuries else None,
        )

        return [step.acknowledgment, completion.text], "onboarding_complete"

    def _onboarding_context(self, inbound: InboundMessage) -> ConversationContextManager:
        context = ConversationContextManager(self.db)
        context.initialize(inbound.user_key, inbound.chat_id, ConversationType.ONBOARDING)
        return context

    # ---- coach chat --------------------------------------------------------

    def _chat_turn(self, profile: UserProfile, inbound: InboundMessage) -> str:
        context = ConversationContextManager(self.db)
        conversation = context.initialize(inbound.user_key, inbound.chat_id, ConversationType.FITNESS_CHAT)

        response_id = context.get_last_response_id()
        messages: List[Dict[str, Any]] = [{"role": "user", "content": inbound.text}]
        if not response_id:
            messages = context.history_for_model() + messages
        context.add_message(MessageRole.USER, inbound.text)

        executor = ToolExecutor(
            self.db,
            user_id=profile.user_id,
            channel=profile.platform,
            recipient=profile.channel_handle,
            thread_id=conversation.conversation_id,
            fitness_level=profile.fitness_level,
            challenge_service=self.challenge_service,
            trigger_service=self.trigger_service,
        )
        system_prompt = prompts.with_clock(f"{prompts.MAIN_COACH_PROMPT}\n{prompts.profile_block(profile)}")

        result = self.ai_service.generate(
            system_prompt, messages, previous_response_id=response_id, tools=TOOL_DEFINITIONS
        )
        tool_calls, tool_results, result = self._run_tools(system_prompt, executor, result)

        text = result.text or self._text_from_tools(tool_results) or CHAT_FALLBACK
        context.add_message(MessageRole.ASSISTANT, text, tool_calls=tool_calls, tool_results=tool_results)

        if result.tool_calls or result.rejected_call_ids:
            # Unanswered calls would break the next chained request
            context.clear_response_id()
        else:
            context.update_response_id(result.response_id)

        mood = infer_mood(inbound.text)
        if mood:
            context.update_conversation_memory(user_mood=mood)

        return text

    def _run_tools(
            self,
            system_prompt: str,
            executor: ToolExecutor,
            result: GenerationResult
    ) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]], GenerationResult]:
        tool_calls: List[Dict[str, Any]] = []
        tool_results: List[Dict[str, Any]] = []
        rounds = 0

        while (result.tool_calls or result.rejected_call_ids) and rounds < settings.MAX_TOOL_ROUNDS:
            rounds += 1
            outputs = []
            for call in result.tool_calls:
                output = executor.execute(call).model_dump(mode="json")
                tool_calls.append(call.model_dump(mode="json"))
                tool_results.append({"call_id": call.call_id, "name": call.name, "result": output})
                outputs.append(AIService.tool_output(call.call_id, output))
            for call_id in result.rejected_call_ids:
                outputs.append(AIService.tool_output(call_id, {"error": "unknown tool or invalid arguments"}))

            result = self.ai_service.generate(
                system_prompt, outputs, previous_response_id=result.response_id, tools=TOOL_DEFINITIONS
            )

        if rounds >= settings.MAX_TOOL_ROUNDS and (result.tool_calls or result.rejected_call_ids):
            logger.warning(f"[{self.correlation_id}] ⚠️ Tool round limit reached, dropping pending calls")

        return tool_calls, tool_results, result

    @staticmethod
    def _text_from_tools(tool_results: List[Dict[str, Any]]) -> Optional[str]:
        for entry in tool_results:
            if entry["name"] == "generate_challenge" and "message" in entry["result"]:
                return ChallengeResult.model_validate(entry["result"]).message
        return None
