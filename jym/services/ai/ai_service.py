# jym/services/ai/ai_service.py
"""Generation gateway over the OpenAI Responses API"""
import json
import logging
from typing import Optional, Dict, List, Any

from openai import OpenAI, OpenAIError
from pydantic import BaseModel, Field

from jym.config.settings import get_settings
from jym.core.errors import GenerationError
from jym.schemas.tool_calls import ToolCall, parse_tool_call

logger = logging.getLogger(__name__)
settings = get_settings()


class GenerationResult(BaseModel):
    text: str = ""
    tool_calls: List[ToolCall] = Field(default_factory=list)
    # call ids of function calls that failed validation; they still need an output
    rejected_call_ids: List[str] = Field(default_factory=list)
    response_id: Optional[str] = None


class AIService:
    """Handles generation calls"""

    def __init__(self, client: Optional[OpenAI] = None):
        self.client = client or OpenAI(
            api_key=settings.OPENAI_API_KEY,
            timeout=settings.OPENAI_TIMEOUT_SECONDS,
        )
        self.model = settings.OPENAI_MODEL

    def generate(
            self,
            system_prompt: str,
            messages: List[Dict[str, Any]],
            previous_response_id: Optional[str] = None,
            tools: Optional[List[Dict[str, Any]]] = None,
            model: Optional[str] = None
    ) -> GenerationResult:
        """Run one generation call.

        Args:
            system_prompt: Instructions for this call
            messages: Input items, either {"role", "content"} messages or
                function_call_output items
            previous_response_id: Continuation token of the thread, if any
            tools: Function tool definitions
            model: Override the default model

        Raises:
            GenerationError: on any upstream failure or timeout
        """
        request: Dict[str, Any] = {
            "model": model or self.model,
            "instructions": system_prompt,
            "input": messages or [],
        }
        if previous_response_id:
            request["previous_response_id"] = previous_response_id
        if tools:
            request["tools"] = tools
        if settings.OPENAI_TEMPERATURE is not None:
            request["temperature"] = settings.OPENAI_TEMPERATURE

        try:
            response = self.client.responses.create(**request)
        except OpenAIError as e:
            logger.error(f"❌ Generation call failed ({request['model']}): {e}")
            raise GenerationError(str(e), cause=e) from e

        result = GenerationResult(text=(response.output_text or "").strip(), response_id=response.id)

        for item in response.output or []:
            if getattr(item, "type", None) != "function_call":
                continue
            call = parse_tool_call(item.name, item.call_id, item.arguments)
            if call is None:
                result.rejected_call_ids.append(item.call_id)
            else:
                result.tool_calls.append(call)

        logger.info(
            f"🤖 Generated {len(result.text)} chars, {len(result.tool_calls)} tool call(s), "
            f"response {result.response_id}"
        )
        return result

    @staticmethod
    def tool_output(call_id: str, output: Dict[str, Any]) -> Dict[str, Any]:
        """Input item returning a tool result to the model"""
        return {
            "type": "function_call_output",
            "call_id": call_id,
            "output": json.dumps(output),
        }
