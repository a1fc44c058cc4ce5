from fastapi import status


class ChatError(Exception):
    """Base class for messaging failures surfaced to the caller.

    Each subclass carries a stable ``kind`` tag and the HTTP status the REST
    boundary maps it to. Raised before any write, so the store is left as it
    was.
    """

    kind = "chat_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail()
        super().__init__(self.detail)

    @classmethod
    def default_detail(cls) -> str:
        return cls.kind.replace("_", " ").capitalize()

    def to_payload(self) -> dict:
        return {"detail": self.detail, "error": self.kind}


class InvalidParticipants(ChatError):
    kind = "invalid_participants"
    status_code = status.HTTP_400_BAD_REQUEST


class EmptyContent(ChatError):
    kind = "empty_content"
    status_code = status.HTTP_400_BAD_REQUEST

    @classmethod
    def default_detail(cls) -> str:
        return "Message cannot be empty"


class NotFound(ChatError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class Forbidden(ChatError):
    kind = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN

    @classmethod
    def default_detail(cls) -> str:
        return "Not allowed"


def describe_validation_errors(errors: list[dict]) -> list[str]:
    """Readable one-liners for pydantic request errors, duplicates dropped."""
    described: list[str] = []
    for err in errors:
        location = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(location) or "request"
        kind = str(err.get("type", ""))

        if kind == "missing":
            described.append(f"{field} is required")
        elif kind == "string_too_short":
            described.append(f"{field} cannot be empty")
        elif kind == "string_too_long":
            described.append(f"{field} is too long")
        else:
            described.append(f"{field}: {err.get('msg', 'Invalid value')}")
    return list(dict.fromkeys(described))
