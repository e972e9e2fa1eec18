# jym/services/onboarding/onboarding_flow.py
"""Four-question onboarding state machine"""
import logging
from typing import Optional, Dict, List, Any, Protocol

from pydantic import BaseModel

from jym.config.settings import get_settings
from jym.core.errors import FALLBACK_ACKNOWLEDGMENT, GenerationError, Outcome
from jym.services.ai import prompts
from jym.services.ai.ai_service import AIService
from jym.services.onboarding.questions import ONBOARDING_QUESTIONS, COMPLETION_FALLBACK

logger = logging.getLogger(__name__)
settings = get_settings()


class GeneratedReply(BaseModel):
    text: str
    response_id: Optional[str] = None


class OnboardingStep(BaseModel):
    acknowledgment: str
    is_complete: bool
    response_id: Optional[str] = None


class ProfileWriter(Protocol):
    def update_onboarding_field(self, owner_id: str, key: str, value: str) -> Outcome: ...

    def complete_onboarding(self, owner_id: str) -> Outcome: ...


class OnboardingFlow:
    """Walks one user through the onboarding questions.

    The question index only moves forward, by exactly one per processed
    answer, and stops at len(ONBOARDING_QUESTIONS). Generation failures never
    stall the flow: questions fall back to their static wording and
    acknowledgments to a fixed line.

    Coach-thread calls pass the stored continuation token and replace it with
    the token of every successful call. The answer rewrite is a separate,
    stateless call and never touches the token.
    """

    def __init__(
            self,
            owner_id: str,
            ai_service: AIService,
            profile_writer: ProfileWriter,
            current_question_index: int = 0,
            conversation_history: Optional[List[Dict[str, str]]] = None,
            last_response_id: Optional[str] = None
    ):
        self.owner_id = owner_id
        self.ai_service = ai_service
        self.profile_writer = profile_writer
        self.current_question_index = current_question_index
        self.conversation_history: List[Dict[str, str]] = list(conversation_history or [])
        self.last_response_id = last_response_id

    # ---- state -----------------------------------------------------------

    def is_complete(self) -> bool:
        return self.current_question_index >= len(ONBOARDING_QUESTIONS)

    def get_conversation_history(self) -> List[Dict[str, str]]:
        return [dict(m) for m in self.conversation_history]

    def to_state(self) -> Dict[str, Any]:
        return {
            "owner_id": self.owner_id,
            "current_question_index": self.current_question_index,
            "conversation_history": self.get_conversation_history(),
            "last_response_id": self.last_response_id,
        }

    @classmethod
    def from_state(cls, state: Dict[str, Any], ai_service: AIService, profile_writer: ProfileWriter) -> "OnboardingFlow":
        return cls(
            owner_id=state["owner_id"],
            ai_service=ai_service,
            profile_writer=profile_writer,
            current_question_index=state.get("current_question_index", 0),
            conversation_history=state.get("conversation_history") or [],
            last_response_id=state.get("last_response_id"),
        )

    # ---- generation helpers ---------------------------------------------

    def _thread_input(self, new_messages: List[Dict[str, str]], prior: Optional[List[Dict[str, str]]] = None) -> List[Dict[str, str]]:
        # A continuation token already carries the history server-side
        if self.last_response_id:
            return new_messages
        history = self.conversation_history if prior is None else prior
        return [*history, *new_messages]

    def _generate_in_thread(self, system_prompt: str, messages: List[Dict[str, str]]) -> GeneratedReply:
        """Coach-thread call; raises GenerationError or returns non-empty text"""
        result = self.ai_service.generate(
            system_prompt=system_prompt,
            messages=messages,
            previous_response_id=self.last_response_id,
        )
        if not result.text:
            raise GenerationError("empty generation")
        if result.response_id:
            self.last_response_id = result.response_id
        return GeneratedReply(text=result.text, response_id=result.response_id)

    def _rewrite_answer(self, question: str, user_response: str) -> str:
        try:
            result = self.ai_service.generate(
                system_prompt=prompts.REWRITE_SYSTEM,
                messages=[{
                    "role": "user",
                    "content": f"Question: {question}.\n\nUser response: {user_response}.",
                }],
                model=settings.OPENAI_REWRITE_MODEL,
            )
        except GenerationError as e:
            logger.warning(f"⚠️ Rewrite failed for {self.owner_id}, keeping raw answer: {e}")
            return user_response
        return result.text or user_response

    # ---- operations ------------------------------------------------------

    def get_next_question(self) -> GeneratedReply:
        """Text for the current question, or the welcome message once complete.

        Never changes the question index.
        """
        if self.is_complete():
            return self._complete()

        question = ONBOARDING_QUESTIONS[self.current_question_index]
        is_first = self.current_question_index == 0
        instruction = (
            f"{'User just completed initial challenge. ' if is_first else ''}"
            f"Ask about: {question.question}. Context: {question.context}. "
            f"Make it feel natural and conversational."
        )

        try:
            return self._generate_in_thread(
                prompts.QUESTION_SYSTEM_FIRST if is_first else prompts.QUESTION_SYSTEM,
                self._thread_input([{"role": "user", "content": instruction}]),
            )
        except GenerationError as e:
            logger.warning(f"⚠️ Question generation failed for {self.owner_id}, using static text: {e}")
            return GeneratedReply(text=question.fallback_text)

    def process_response(self, user_response: str) -> OnboardingStep:
        """Record the answer to the current question and move to the next one"""
        if self.is_complete():
            logger.warning(f"⚠️ Onboarding answer after completion for {self.owner_id}, ignoring")
            return OnboardingStep(acknowledgment=FALLBACK_ACKNOWLEDGMENT, is_complete=True)

        question = ONBOARDING_QUESTIONS[self.current_question_index]
        self.conversation_history.append({"role": "user", "content": user_response})

        rewritten = self._rewrite_answer(question.question, user_response)

        outcome = self.profile_writer.update_onboarding_field(self.owner_id, question.key, rewritten)
        if outcome.ok:
            logger.info(f"✅ Saved {question.key} for {self.owner_id}")
        else:
            logger.warning(f"⚠️ Saving {question.key} failed for {self.owner_id}, continuing: {outcome.error}")

        next_index = self.current_question_index + 1
        response_id = None
        try:
            if next_index < len(ONBOARDING_QUESTIONS):
                next_question = ONBOARDING_QUESTIONS[next_index]
                turn = [
                    {"role": "user", "content": user_response},
                    {
                        "role": "user",
                        "content": (
                            f"Now smoothly transition to asking about: {next_question.question}. "
                            f"Context: {next_question.context}. Make it feel like one natural response."
                        ),
                    },
                ]
                reply = self._generate_in_thread(
                    prompts.TRANSITION_SYSTEM,
                    self._thread_input(turn, prior=self.conversation_history[:-1]),
                )
            else:
                reply = self._generate_in_thread(
                    prompts.ACKNOWLEDGE_SYSTEM,
                    [{
                        "role": "user",
                        "content": (
                            f'User just told me about their {question.key}: "{user_response}". '
                            f"Give a brief encouraging response."
                        ),
                    }],
                )
            acknowledgment = reply.text
            response_id = reply.response_id
        except GenerationError as e:
            logger.error(f"❌ Acknowledgment generation failed for {self.owner_id}: {e}")
            acknowledgment = FALLBACK_ACKNOWLEDGMENT

        self.conversation_history.append({"role": "assistant", "content": acknowledgment})
        self.current_question_index = next_index

        return OnboardingStep(
            acknowledgment=acknowledgment,
            is_complete=self.is_complete(),
            response_id=response_id,
        )

    def _complete(self) -> GeneratedReply:
        outcome = self.profile_writer.complete_onboarding(self.owner_id)
        if outcome.ok:
            logger.info(f"✅ Completed onboarding for {self.owner_id}")
        else:
            logger.warning(f"⚠️ Onboarding completion write failed for {self.owner_id}, continuing: {outcome.error}")

        try:
            return self._generate_in_thread(
                prompts.COMPLETION_SYSTEM,
                [{
                    "role": "user",
                    "content": (
                        "User just finished onboarding. Welcome them to the program and get them "
                        "excited about their fitness journey."
                    ),
                }],
            )
        except GenerationError as e:
            logger.error(f"❌ Completion message failed for {self.owner_id}: {e}")
            return GeneratedReply(text=COMPLETION_FALLBACK)
