"""
Messaging-platform webhook payloads.

Only the fields the ledger reads are modelled; everything else
in the platform's JSON is ignored.

The platform's own events carry ids, not names. A relay that
looks senders and groups up may add `profile` (the profile
lookup's displayName and pictureUrl) to an event and `groupName`
to its source; those are mapped through when present. Without
them a new shadow account gets a fallback name and a new group
the default one.
"""

from pydantic import BaseModel, Field

from chat_ledger.schemas.account import SenderProfile
from chat_ledger.schemas.event import EventType, InboundEvent
from chat_ledger.schemas.reply import OutboundReply


class WebhookSource(BaseModel):
    type: str
    user_id: str | None = Field(default=None, alias="userId")
    group_id: str | None = Field(default=None, alias="groupId")
    group_name: str | None = Field(default=None, alias="groupName")


class WebhookProfile(BaseModel):
    display_name: str | None = Field(default=None, alias="displayName")
    picture_url: str | None = Field(default=None, alias="pictureUrl")


class WebhookMessage(BaseModel):
    type: str
    text: str | None = None


class WebhookEvent(BaseModel):
    type: str
    reply_token: str | None = Field(default=None, alias="replyToken")
    source: WebhookSource | None = None
    message: WebhookMessage | None = None
    profile: WebhookProfile | None = None

    def to_inbound(self) -> InboundEvent | None:
        """Map to an InboundEvent, or None for events the ledger ignores."""
        try:
            event_type = EventType(self.type)
        except ValueError:
            return None
        if event_type == EventType.MESSAGE:
            if self.message is None or self.message.type != "text":
                return None

        source = self.source or WebhookSource(type="user")
        in_group = source.type == "group"
        profile = None
        if self.profile is not None:
            profile = SenderProfile(
                display_name=self.profile.display_name,
                avatar_url=self.profile.picture_url,
            )
        return InboundEvent(
            type=event_type,
            platform_user_id=source.user_id,
            platform_group_id=source.group_id if in_group else None,
            raw_text=self.message.text if self.message else None,
            reply_handle=self.reply_token,
            profile=profile,
            group_name=source.group_name if in_group else None,
        )


class WebhookBody(BaseModel):
    destination: str | None = None
    events: list[WebhookEvent] = []


class WebhookResponse(BaseModel):
    replies: list[OutboundReply]
