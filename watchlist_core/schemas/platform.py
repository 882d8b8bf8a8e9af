from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Optional


class InsertPlatform(BaseModel):
    user_id: int
    name: str = Field(..., min_length=1, max_length=100)
    logo_url: Optional[str] = None
    is_default: bool = False


class PlatformUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    logo_url: Optional[str] = None
    is_default: Optional[bool] = None


class PlatformRecord(InsertPlatform):
    id: int
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)
