"""
Pydantic schemas for connection codes.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class ConnectionCodeIssue(BaseModel):
    # None means the configured default.
    ttl_minutes: int | None = Field(default=None, gt=0, le=60)


class ConnectionCodeResponse(BaseModel):
    account_id: int
    code: str
    expires_at: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class ConnectionStatus(BaseModel):
    account_id: int
    is_linked: bool
    platform_user_id: str | None
    active_code: ConnectionCodeResponse | None


class SweepResult(BaseModel):
    deleted: int


class ConnectionCodeConsume(BaseModel):
    code: str = Field(min_length=1, max_length=32)
    platform_user_id: str = Field(min_length=1, max_length=64)
