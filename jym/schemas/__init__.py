# jym/schemas/__init__.py
from .conversation_context import (
    ConversationType,
    ConversationStatus,
    MessageRole,
    SessionContext,
    LLMMessage,
    ConversationMemory,
    LLMContext,
    UserPreferences,
    UserContext,
    ConversationContext,
    ConversationSummary,
)

from .webhook_events import (
    InboundMessage,
    TelegramUpdate,
    WhatsAppWebhook,
    LoopMessageWebhook,
    is_valid_phone_number,
)

from .tool_calls import (
    ToolCall,
    ToolResult,
    parse_tool_call,
)

from .trigger import (
    TriggerStatus,
    TriggerDTO,
    CancelTriggerRequest,
    OnboardingStatusDTO,
)
