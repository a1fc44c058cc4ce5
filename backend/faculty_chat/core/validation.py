import re

from faculty_chat.config import settings
from faculty_chat.core.errors import EmptyContent

# everything below 0x20 except tab and newline, plus DEL
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")


def clean_message_text(value) -> str:
    """Normalise a message body to trimmed plain text.

    Bodies are never interpreted as markup here; rendering layers must escape
    them. Raises ``EmptyContent`` when nothing is left after trimming.
    """
    text = _CONTROL_CHARS.sub("", str(value or "")).strip()
    if not text:
        raise EmptyContent()
    return text


def preview_of(text: str | None) -> str:
    if not text:
        return settings.EMPTY_PREVIEW_TEXT
    limit = settings.PREVIEW_MAX_LENGTH
    if len(text) <= limit:
        return text
    return text[: limit - 1].rstrip() + "…"
