import json
import uuid
from datetime import UTC, datetime
from enum import Enum

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    ValidationError,
    field_validator,
)


class Role(str, Enum):
    """Speaker roles understood by the inference backend."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class SourceTitle(str, Enum):
    """Retrieval sources, in rendering order."""

    SEMANTIC = "Semantic"
    VECTOR = "Vector"
    GRAPH = "Graph"


class TurnState(str, Enum):
    """Lifecycle of a single chat turn on the consuming side."""

    IDLE = "idle"
    DISPATCHED = "dispatched"
    STREAMING = "streaming"
    FAILED_FALLBACK = "failed_fallback"
    COMPLETED = "completed"
    ABORTED = "aborted"
    FAILED = "failed"


def new_message_id() -> str:
    return uuid.uuid4().hex


class RagSource(BaseModel):
    """Provenance entry for one retrieval source used in a turn."""

    model_config = ConfigDict(frozen=True)

    title: str
    count: int = Field(ge=0)


class MessageMeta(BaseModel):
    """Retrieval metadata attached to an assistant message."""

    rag_enabled: bool = False
    rag_sources: list[RagSource] = Field(default_factory=list)


class ChatMessage(BaseModel):
    """A message in the conversation transcript.

    Assistant messages accumulate streamed deltas through ``append`` until
    the turn seals them.

    Attributes:
        id: Opaque message identifier.
        role: The speaker (system, user, or assistant).
        content: The message text.
        created_at: Creation timestamp (UTC).
        meta: Retrieval provenance for assistant messages.
    """

    id: str = Field(default_factory=new_message_id)
    role: Role
    content: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    meta: MessageMeta | None = None

    _sealed: bool = PrivateAttr(default=False)

    @property
    def sealed(self) -> bool:
        return self._sealed

    def append(self, delta: str) -> None:
        """Append a streamed delta to an open assistant message."""
        if self.role is not Role.ASSISTANT:
            raise RuntimeError("Only assistant messages accept streamed content")
        if self._sealed:
            raise RuntimeError(f"Message {self.id} is sealed")
        self.content += delta

    def seal(self) -> None:
        self._sealed = True


class OutgoingMessage(BaseModel):
    """A message as sent upstream (role and content only)."""

    model_config = ConfigDict(frozen=True, extra="allow")

    role: Role
    content: str


class OutgoingRequest(BaseModel):
    """Chat request body forwarded to the inference backend.

    Attributes:
        model: Backend model name.
        stream: Whether the backend should stream NDJSON.
        messages: Ordered messages, system prompt first.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    model: str = Field(..., min_length=1)
    stream: bool = True
    messages: list[OutgoingMessage] = Field(default_factory=list)

    @field_validator("model", mode="before")
    @classmethod
    def strip_model(cls, v: str) -> str:
        """Strip whitespace from the model name before validation."""
        if isinstance(v, str):
            return v.strip()
        return v


class RetrievalResult(BaseModel):
    """Items returned by one retrieval source for one query."""

    source_title: SourceTitle
    items: list[str] = Field(default_factory=list)

    @property
    def item_count(self) -> int:
        return len(self.items)


class ContextBlock(BaseModel):
    """Merged, size-bounded retrieval context for one turn."""

    model_config = ConfigDict(frozen=True)

    text: str = ""
    sources: list[RagSource] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.text


class Attachment(BaseModel):
    """A user-supplied file already read to (clamped) text.

    Attributes:
        name: Original file name.
        text: Extracted text, at most 8000 characters plus truncation marker.
    """

    name: str = Field(..., min_length=1)
    text: str = ""


class ErrorResponse(BaseModel):
    """Gateway error body."""

    error: str


class Conversation(BaseModel):
    """Explicit transcript state passed into and returned from each turn.

    Attributes:
        messages: Ordered transcript, oldest first.
        attachments: Files attached to upcoming turns, in upload order.
    """

    messages: list[ChatMessage] = Field(default_factory=list)
    attachments: list[Attachment] = Field(default_factory=list)

    def add_attachments(self, attachments: list[Attachment]) -> None:
        self.attachments.extend(attachments)

    def clear(self) -> None:
        self.messages.clear()
        self.attachments.clear()

    @classmethod
    def from_json(cls, raw: str | bytes | None) -> "Conversation":
        """Load a persisted conversation, falling back to an empty one.

        Accepts either a full conversation object or a bare message array.
        """
        if not raw:
            return cls()
        try:
            data = json.loads(raw)
        except ValueError:
            return cls()
        if isinstance(data, list):
            data = {"messages": data}
        if not isinstance(data, dict):
            return cls()
        try:
            conversation = cls.model_validate(data)
        except ValidationError:
            return cls()
        for message in conversation.messages:
            message.seal()
        return conversation
