"""
Inbound platform events, after the transport layer has checked
their signature.
"""

import enum

from pydantic import BaseModel

from chat_ledger.schemas.account import SenderProfile


class EventType(str, enum.Enum):
    MESSAGE = "message"
    FOLLOW = "follow"
    UNFOLLOW = "unfollow"
    JOIN = "join"
    LEAVE = "leave"


class InboundEvent(BaseModel):
    type: EventType
    platform_user_id: str | None = None
    platform_group_id: str | None = None
    raw_text: str | None = None
    reply_handle: str | None = None
    profile: SenderProfile | None = None
    group_name: str | None = None

    @property
    def in_group(self) -> bool:
        return self.platform_group_id is not None
