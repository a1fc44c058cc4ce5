from faculty_chat.core.errors import InvalidParticipants

SEPARATOR = "--"
MAX_IDENTIFIER_LENGTH = 64


def validate_participant_id(participant_id) -> str:
    if not isinstance(participant_id, str) or not participant_id.strip():
        raise InvalidParticipants("Participant identifier is required")
    if participant_id != participant_id.strip():
        raise InvalidParticipants("Participant identifier has surrounding whitespace")
    # a leading or trailing dash would let the joined key be split two ways
    if SEPARATOR in participant_id or participant_id.startswith("-") or participant_id.endswith("-"):
        raise InvalidParticipants(f"Participant identifier cannot contain '{SEPARATOR}' or start/end with '-'")
    if len(participant_id) > MAX_IDENTIFIER_LENGTH:
        raise InvalidParticipants("Participant identifier is too long")
    return participant_id


def ordered_participants(a: str, b: str) -> tuple[str, str]:
    a = validate_participant_id(a)
    b = validate_participant_id(b)
    if a == b:
        raise InvalidParticipants("Cannot create self conversation")
    first, second = sorted([a, b])
    return first, second


def canonical_conversation_id(a: str, b: str) -> str:
    """Order-independent conversation key for a pair of participants.

    The identifiers are sorted and joined with ``SEPARATOR``, which is
    rejected inside identifiers, so distinct pairs never share a key.
    """
    first, second = ordered_participants(a, b)
    return f"{first}{SEPARATOR}{second}"
