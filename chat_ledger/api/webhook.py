"""
Messaging-platform webhook.

The signature header is checked against the raw body before
anything is parsed. A batch is one unit of work: every event is
dispatched, then the batch is committed once. If any event fails
with a StorageError nothing from the batch is kept, so a platform
redelivery replays it from a clean slate. Reply intents are
returned for an outbound sender to render.
"""

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import ValidationError as PayloadError
from sqlalchemy.orm import Session

from chat_ledger.api.errors import http_error
from chat_ledger.config import get_settings
from chat_ledger.errors import AppError
from chat_ledger.models.base import commit, get_db
from chat_ledger.schemas.reply import OutboundReply
from chat_ledger.schemas.webhook import WebhookBody, WebhookResponse
from chat_ledger.security import verify_signature
from chat_ledger.services.dispatcher import EventDispatcher

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Webhook"])

SIGNATURE_HEADER = "X-Line-Signature"


async def raw_body(request: Request) -> bytes:
    return await request.body()


@router.post("/webhook", response_model=WebhookResponse)
def receive_webhook(
    body: bytes = Depends(raw_body),
    signature: str | None = Header(default=None, alias=SIGNATURE_HEADER),
    db: Session = Depends(get_db),
):
    """
    Verify, parse and dispatch a batch of platform events.

    401 on a bad signature, 400 on a malformed body. A storage
    failure rolls back the whole batch and returns 503.
    """
    if not verify_signature(body, signature, get_settings().CHANNEL_SECRET):
        logger.warning("Rejected webhook call with an invalid signature")
        raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        payload = WebhookBody.model_validate_json(body)
    except PayloadError:
        raise HTTPException(status_code=400, detail="Invalid event payload")

    dispatcher = EventDispatcher(db)
    replies = []
    try:
        for webhook_event in payload.events:
            event = webhook_event.to_inbound()
            if event is None:
                continue
            intent = dispatcher.dispatch(event)
            if intent is not None:
                replies.append(
                    OutboundReply(reply_handle=event.reply_handle, intent=intent)
                )
        commit(db)
    except AppError as e:
        db.rollback()
        logger.warning(
            "Rolled back a batch of %d events: %s", len(payload.events), e.code
        )
        raise http_error(e)

    return WebhookResponse(replies=replies)
