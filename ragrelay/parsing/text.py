"""Text bounding helpers shared by retrieval context and attachments."""

TRUNCATION_MARKER = "\n\n[...truncated...]"

MAX_CONTEXT_CHARS = 6000
MAX_ATTACHMENT_CHARS = 8000


def clamp_text(text: str | None, limit: int) -> str:
    """Cut ``text`` to ``limit`` characters, appending the truncation marker if cut.

    Text of exactly ``limit`` characters is returned unchanged.
    """
    text = "" if text is None else str(text)
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_MARKER
