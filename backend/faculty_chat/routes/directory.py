from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from faculty_chat.core.dependencies import CurrentUser, get_current_user
from faculty_chat.database.session import get_db
from faculty_chat.models.user import DirectoryUser
from faculty_chat.schemas.user import DirectoryMatch, DirectoryUserOut, ResolvedName
from faculty_chat.services.directory_service import DirectorySearch

router = APIRouter(prefix="/directory", tags=["Directory"])


@router.get("/users", response_model=list[DirectoryUserOut])
def list_chat_users(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    return db.query(DirectoryUser).filter(
        DirectoryUser.is_active == True,  # noqa: E712
        DirectoryUser.id != current_user.id,
    ).order_by(DirectoryUser.name.asc()).all()


@router.get("/search", response_model=list[DirectoryMatch])
def search_directory(
    q: str = Query(default=""),
    role: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    directory = DirectorySearch.from_db(db)
    return [
        DirectoryMatch(id=entry.id, name=entry.name)
        for entry in directory.search(q, role_filter=role, exclude_id=current_user.id)
    ]


@router.get("/{participant_id}/name", response_model=ResolvedName)
def resolve_name(
    participant_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    directory = DirectorySearch.from_db(db)
    return ResolvedName(id=participant_id, name=directory.resolve_name(participant_id))
