"""Identities supplied by the auth and profile collaborators."""

from pydantic import BaseModel, ConfigDict
from enum import Enum
from typing import Optional


class Role(str, Enum):
    CLIENT = "CLIENT"
    PROFESSIONAL = "PROFESSIONAL"


class Actor(BaseModel):
    """The authenticated caller of an operation."""
    id: str
    role: Role = Role.CLIENT


class Professional(BaseModel):
    """Professional profile reduced to what booking rules need: its owning user."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    display_name: Optional[str] = None
