"""
Pydantic schemas for accounts, groups and memberships.
"""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from chat_ledger.models.enums import MemberRole


class AccountCreate(BaseModel):
    display_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8, max_length=72)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        # bcrypt rejects secrets over 72 bytes.
        if len(v.encode("utf-8")) > 72:
            raise ValueError("Password must be at most 72 bytes")
        return v


class AccountLogin(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=72)


class AccountResponse(BaseModel):
    id: int
    display_name: str
    email: str | None
    platform_user_id: str | None
    is_shadow: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class SenderProfile(BaseModel):
    """Display data the platform reports for a sender."""
    display_name: str | None = None
    avatar_url: str | None = None


class MembershipResponse(BaseModel):
    account_id: int
    role: MemberRole
    joined_at: datetime

    model_config = {"from_attributes": True}
