"""Pydantic models shared by the gateway and the chat pipeline.

Provides type safety, validation, and JSON (de)serialization.

Models:
    - ChatMessage: A transcript message, streamed into while its turn is active
    - Conversation: Explicit transcript state persisted by the caller
    - OutgoingRequest: Chat body forwarded to the inference backend
    - RetrievalResult / ContextBlock: Retrieval output and its merged rendering
    - Attachment: User file read to text
"""

from ragrelay.models.schemas import (
    Attachment,
    ChatMessage,
    ContextBlock,
    Conversation,
    ErrorResponse,
    MessageMeta,
    OutgoingMessage,
    OutgoingRequest,
    RagSource,
    RetrievalResult,
    Role,
    SourceTitle,
    TurnState,
)

__all__ = [
    "Attachment",
    "ChatMessage",
    "ContextBlock",
    "Conversation",
    "ErrorResponse",
    "MessageMeta",
    "OutgoingMessage",
    "OutgoingRequest",
    "RagSource",
    "RetrievalResult",
    "Role",
    "SourceTitle",
    "TurnState",
]
