"""
Domain errors raised by the conversation store and lifecycle manager.

The HTTP layer maps these onto status codes; nothing below the routes
knows about HTTP.
"""


class ChatError(Exception):
    """Base class for chat domain errors."""


class ConversationNotFound(ChatError):
    def __init__(self, conversation_id: str):
        super().__init__(f"conversation not found: {conversation_id}")
        self.conversation_id = conversation_id


class MessageNotFound(ChatError):
    def __init__(self, conversation_id: str, message_id: int):
        super().__init__(f"message {message_id} not found in {conversation_id}")
        self.conversation_id = conversation_id
        self.message_id = message_id


class DeleteNotRequested(ChatError):
    """Raised when a delete is confirmed without a matching pending request."""

    def __init__(self, conversation_id: str, message_id: int):
        super().__init__(f"no pending delete for message {message_id} in {conversation_id}")
        self.conversation_id = conversation_id
        self.message_id = message_id
