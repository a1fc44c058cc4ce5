from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from faculty_chat.core.security import decode_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


@dataclass(frozen=True)
class CurrentUser:
    id: str
    role: str


def user_from_token(token: str | None) -> CurrentUser | None:
    """Identity supplied by the auth collaborator; trusted as-is once the
    signature checks out."""
    if not token:
        return None
    payload = decode_token(token)
    if payload is None or payload.get("token_type") != "access":
        return None
    sub = payload.get("sub")
    if not sub or not isinstance(sub, str):
        return None
    return CurrentUser(id=sub, role=str(payload.get("role") or "faculty"))


def get_current_user(token: str = Depends(oauth2_scheme)) -> CurrentUser:
    payload = decode_token(token)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token"
        )

    if payload.get("token_type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type"
        )

    user = user_from_token(token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload"
        )
    return user
