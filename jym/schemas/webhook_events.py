# jym/schemas/webhook_events.py
from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, Literal, List, Dict, Any
import re

Channel = Literal["telegram", "whatsapp", "loopmessage"]

PHONE_PATTERN = re.compile(r"^(\+[1-9]\d{7,15}|[1-9]\d{9,14})$")


def is_valid_phone_number(phone: str) -> bool:
    return bool(PHONE_PATTERN.match(phone or ""))


class InboundMessage(BaseModel):
    """Channel-independent inbound text message queued for a worker"""
    channel: Channel = Field(..., description="Source channel")
    user_key: str = Field(..., description="Stable owner key, e.g. telegram_123 or whatsapp_+1555...")
    chat_id: str = Field(..., description="Handle used to reply (chat id or phone)")
    text: str = Field(..., description="Message text")
    message_id: Optional[str] = Field(None, description="Channel message id, used for read receipts")
    sender_name: Optional[str] = Field(None)
    telegram_id: Optional[int] = Field(None)

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("text must not be empty")
        return v


# --- Telegram -------------------------------------------------------------

class TelegramUser(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: int
    is_bot: bool = False
    first_name: Optional[str] = None
    username: Optional[str] = None


class TelegramChat(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: int
    type: str = "private"


class TelegramMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")
    message_id: int
    chat: TelegramChat
    from_user: Optional[TelegramUser] = Field(None, alias="from")
    text: Optional[str] = None
    date: Optional[int] = None


class TelegramUpdate(BaseModel):
    """Telegram Bot API Update, only the fields we read"""
    model_config = ConfigDict(extra="ignore")
    update_id: int
    message: Optional[TelegramMessage] = None
    edited_message: Optional[TelegramMessage] = None


# --- WhatsApp Cloud API ---------------------------------------------------

class WhatsAppText(BaseModel):
    body: str


class WhatsAppMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: str
    sender: str = Field(..., alias="from")
    timestamp: Optional[str] = None
    type: str
    text: Optional[WhatsAppText] = None


class WhatsAppStatus(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: str
    status: str
    recipient_id: Optional[str] = None
    errors: Optional[List[Dict[str, Any]]] = None


class WhatsAppProfile(BaseModel):
    name: Optional[str] = None


class WhatsAppContact(BaseModel):
    model_config = ConfigDict(extra="ignore")
    wa_id: Optional[str] = None
    profile: Optional[WhatsAppProfile] = None


class WhatsAppValue(BaseModel):
    model_config = ConfigDict(extra="ignore")
    messaging_product: Optional[str] = None
    contacts: List[WhatsAppContact] = Field(default_factory=list)
    messages: List[WhatsAppMessage] = Field(default_factory=list)
    statuses: List[WhatsAppStatus] = Field(default_factory=list)


class WhatsAppChange(BaseModel):
    model_config = ConfigDict(extra="ignore")
    field: Optional[str] = None
    value: WhatsAppValue


class WhatsAppEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: Optional[str] = None
    changes: List[WhatsAppChange] = Field(default_factory=list)


class WhatsAppWebhook(BaseModel):
    """WhatsApp Business webhook notification"""
    model_config = ConfigDict(extra="ignore")
    object: Optional[str] = None
    entry: List[WhatsAppEntry] = Field(default_factory=list)


# --- LoopMessage ----------------------------------------------------------

class LoopMessageWebhook(BaseModel):
    """LoopMessage alert; only message_inbound carries user text"""
    model_config = ConfigDict(extra="ignore")
    alert_type: str
    recipient: Optional[str] = None
    text: Optional[str] = None
    message_id: Optional[str] = None
    webhook_id: Optional[str] = None
    message_type: Optional[str] = None
    reaction: Optional[str] = None
    error_code: Optional[int] = None
