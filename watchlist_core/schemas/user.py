from pydantic import BaseModel, Field, ConfigDict, field_validator
from datetime import datetime
from typing import Optional


class InsertUser(BaseModel):
    """Fields accepted when creating a user. `password` is already hashed by the caller."""
    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)
    display_name: Optional[str] = None
    environment: Optional[str] = None

    @field_validator('username')
    @classmethod
    def strip_username(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Username cannot be blank')
        return v


class UserUpdate(BaseModel):
    """Partial update - only the mutable user fields"""
    password: Optional[str] = Field(None, min_length=1)
    display_name: Optional[str] = None
    environment: Optional[str] = None


class UserPublic(BaseModel):
    """User as returned to untrusted callers (no credential)"""
    id: int
    username: str
    display_name: Optional[str] = None
    created_at: Optional[datetime] = None
    environment: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class UserRecord(UserPublic):
    """Full stored user, including the hashed credential"""
    password: str

    def to_public(self) -> UserPublic:
        return UserPublic(**self.model_dump(exclude={"password"}))
