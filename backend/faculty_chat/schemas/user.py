from typing import Optional

from pydantic import BaseModel


class DirectoryUserOut(BaseModel):
    id: str
    name: str
    role: str
    department: Optional[str] = None
    designation: Optional[str] = None

    model_config = {"from_attributes": True}


class DirectoryMatch(BaseModel):
    id: str
    name: str


class ResolvedName(BaseModel):
    id: str
    name: str
