"""Chat transcript assembly.

Pure transforms over already-available inputs: conversation history, the
user's prompt, retrieval context and attachments become the outgoing request.
"""

from collections.abc import Sequence

from ragrelay.models.schemas import (
    Attachment,
    ChatMessage,
    ContextBlock,
    OutgoingMessage,
    OutgoingRequest,
    Role,
)
from ragrelay.parsing.text import MAX_ATTACHMENT_CHARS, clamp_text

SYSTEM_PROMPT = (
    "You are a helpful assistant. Use CONTEXT when it is relevant. "
    "If CONTEXT is irrelevant, ignore it. Keep responses concise unless asked for detail."
)

HISTORY_WINDOW = 12


def history_window(
    history: Sequence[ChatMessage], size: int = HISTORY_WINDOW
) -> list[OutgoingMessage]:
    """Last ``size`` messages, role and content only, original order."""
    recent = list(history)[-size:] if size > 0 else []
    return [OutgoingMessage(role=m.role, content=m.content) for m in recent]


def render_context_section(context: ContextBlock | str | None) -> str:
    text = context.text if isinstance(context, ContextBlock) else context
    if not text:
        return ""
    return f"\n\nCONTEXT (from knowledge base):\n{text}"


def render_attachments(attachments: Sequence[Attachment]) -> str:
    """Render attachments as titled blocks in upload order."""
    if not attachments:
        return ""
    blocks = "\n\n".join(
        f"--- {a.name} ---\n{clamp_text(a.text, MAX_ATTACHMENT_CHARS)}" for a in attachments
    )
    return f"\n\nATTACHMENTS:\n{blocks}"


def build_outgoing(
    history: Sequence[ChatMessage],
    user_input: str,
    context: ContextBlock | str | None,
    attachments: Sequence[Attachment],
    model: str,
    stream: bool = True,
    window: int = HISTORY_WINDOW,
) -> OutgoingRequest:
    """Build the request for one chat turn.

    Args:
        history: Messages prior to this turn, oldest first.
        user_input: The user's prompt as typed.
        context: Retrieval context; omitted from the prompt when empty.
        attachments: Files attached to the turn; omitted when there are none.
        model: Backend model name.
        stream: Whether to request a streamed response.
        window: Number of prior messages to carry.

    Returns:
        OutgoingRequest with the system prompt, the history window and the
        final user message.
    """
    content = user_input + render_context_section(context) + render_attachments(attachments)
    messages = [
        OutgoingMessage(role=Role.SYSTEM, content=SYSTEM_PROMPT),
        *history_window(history, window),
        OutgoingMessage(role=Role.USER, content=content),
    ]
    return OutgoingRequest(model=model, stream=stream, messages=messages)
