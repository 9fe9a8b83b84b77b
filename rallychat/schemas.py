"""
Pydantic schemas for request/response validation.

This module contains:
- Request models for chat actions
- Response models for conversations, messages and stats
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from rallychat.models import ConversationKind, MessageStatus


# =============================================================================
# Pydantic Request Models
# =============================================================================

class SendMessageRequest(BaseModel):
    """
    Body of a send action.

    text is not required to be non-blank: a blank send is accepted and
    ignored rather than rejected.
    """
    text: str = Field(
        ...,
        max_length=4096,
        description="Message text; surrounding whitespace is trimmed"
    )
    reply_to_id: Optional[int] = Field(
        None,
        description="Quote this message instead of the active reply context"
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"text": "See you at the courts!"},
                {"text": "Same time next week?", "reply_to_id": 1},
            ]
        }
    }


class ReactionRequest(BaseModel):
    emoji: str = Field(..., min_length=1, max_length=32, description="Emoji to toggle")

    @field_validator("emoji")
    @classmethod
    def strip_emoji(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("emoji must not be blank")
        return v


class ReplyContextRequest(BaseModel):
    message_id: int = Field(..., description="Message to quote in the next send")


class DeleteConfirmRequest(BaseModel):
    confirmed: bool = Field(True, description="False declines the pending delete")


class ForwardRequest(BaseModel):
    target_conversation_id: str = Field(..., min_length=1, description="Conversation to forward into")


# =============================================================================
# Pydantic Response Models
# =============================================================================

class HealthResponse(BaseModel):
    status: str = Field(..., description="ok, ready or not_ready")
    reason: Optional[str] = Field(None, description="Why the service is not ready")


class ErrorResponse(BaseModel):
    """Response model for error responses."""
    detail: str = Field(..., description="Error description")


class StatusResponse(BaseModel):
    status: str = Field(default="ok", description="Operation status")


class ReplySnapshotResponse(BaseModel):
    id: int
    text: str
    sender: str

    model_config = {"from_attributes": True}


class MessageResponse(BaseModel):
    """
    Response model for a single message.
    Built straight from the in-memory Message record.
    """
    id: int = Field(..., description="Creation-time message id")
    text: str
    timestamp: str = Field(..., description="Display timestamp")
    is_sender: bool = Field(..., description="True if authored by the local user")
    sender: str
    status: MessageStatus = Field(..., description="none, sent, delivered or read")
    reactions: list[str] = Field(default_factory=list)
    reply_to: Optional[ReplySnapshotResponse] = None

    model_config = {"from_attributes": True}


class MessagesListResponse(BaseModel):
    """
    Ordered view of one conversation.

    Contains:
    - data: messages, oldest first
    - total: number of messages
    - reply_context: message the next send will quote, if any
    """
    conversation_id: str
    data: list[MessageResponse] = Field(default_factory=list)
    total: int = Field(..., ge=0)
    reply_context: Optional[ReplySnapshotResponse] = None


class SendResponse(BaseModel):
    status: Literal["sent", "ignored"]
    message: Optional[MessageResponse] = None


class ReactionResponse(BaseModel):
    status: Literal["added", "removed"]
    message: MessageResponse


class DeleteResponse(BaseModel):
    status: Literal["pending", "deleted", "declined"]
    message_id: int


class LastMessagePreview(BaseModel):
    sender: str
    content: str
    timestamp: str
    status: Optional[MessageStatus] = Field(None, description="Only set for the local user's messages")


class ConversationResponse(BaseModel):
    id: str
    name: str
    kind: ConversationKind
    is_online: bool
    typing: bool = Field(False, description="The other participant is composing a message")
    member_count: Optional[int] = None
    unread: int = Field(..., ge=0)
    last_message: Optional[LastMessagePreview] = None


class ConversationsListResponse(BaseModel):
    data: list[ConversationResponse] = Field(default_factory=list)
    total: int = Field(..., ge=0)


class ConversationCount(BaseModel):
    conversation_id: str
    count: int = Field(..., ge=0)


class StatsResponse(BaseModel):
    """
    Response model for GET /stats endpoint.

    - total_messages: total count of all messages
    - conversations_count: number of conversations
    - messages_per_conversation: conversations sorted by message count (descending)
    - status_counts: outgoing messages per status (sent, delivered, read)
    """
    total_messages: int = Field(..., ge=0)
    conversations_count: int = Field(..., ge=0)
    messages_per_conversation: list[ConversationCount] = Field(default_factory=list)
    status_counts: dict[str, int] = Field(default_factory=dict)
