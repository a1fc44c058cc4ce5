from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from sqlalchemy.orm import Session

from faculty_chat.models.user import DirectoryUser

# identifier prefixes that carry a readable role label, e.g. "faculty-anya"
STRUCTURED_PREFIXES = ("faculty", "student", "admin")


@dataclass(frozen=True)
class DirectoryEntry:
    id: str
    name: str
    role: str
    is_active: bool = True
    department: Optional[str] = None
    designation: Optional[str] = None


def fallback_display_name(participant_id: str) -> str:
    """Readable label for an identifier missing from the roster.

    ``faculty-jane-wilson`` becomes ``Faculty Jane Wilson``; anything else
    becomes ``User`` plus the first six characters of the identifier.
    """
    for prefix in STRUCTURED_PREFIXES:
        if participant_id.startswith(prefix + "-") and len(participant_id) > len(prefix) + 1:
            words = [part for part in participant_id.split("-") if part]
            return " ".join(word[:1].upper() + word[1:] for word in words)
    return f"User {participant_id[:6]}"


class DirectorySearch:
    """Read-only view over the roster the directory collaborator supplies."""

    def __init__(self, entries: Iterable[DirectoryEntry] | Mapping[str, DirectoryEntry] = ()):
        if isinstance(entries, Mapping):
            entries = entries.values()
        self._entries: dict[str, DirectoryEntry] = {entry.id: entry for entry in entries}

    @classmethod
    def from_db(cls, db: Session) -> "DirectorySearch":
        users = db.query(DirectoryUser).all()
        return cls(
            DirectoryEntry(
                id=user.id,
                name=user.name,
                role=user.role,
                is_active=bool(user.is_active),
                department=user.department,
                designation=user.designation,
            )
            for user in users
        )

    def get(self, participant_id: str) -> Optional[DirectoryEntry]:
        return self._entries.get(participant_id)

    def resolve_name(self, participant_id: str) -> str:
        entry = self._entries.get(participant_id)
        if entry and entry.name:
            return entry.name
        return fallback_display_name(participant_id)

    def role_of(self, participant_id: str) -> Optional[str]:
        entry = self._entries.get(participant_id)
        return entry.role if entry else None

    def search(self, query: str | None = None, role_filter: str | None = None, exclude_id: str | None = None) -> list[DirectoryEntry]:
        needle = (query or "").strip().casefold()
        matches = [
            entry
            for entry in self._entries.values()
            if entry.is_active
            and entry.id != exclude_id
            and (not role_filter or entry.role == role_filter)
            and needle in entry.name.casefold()
        ]
        return sorted(matches, key=lambda entry: (entry.name.casefold(), entry.id))
