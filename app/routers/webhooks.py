"""
Webhook routes for inbound ticketing platform notifications.

Intercom POSTs notification envelopes here; we relay matching tickets to
chat and always return 200 once the body is valid JSON.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from app.commands.webhooks.intercom_command import IntercomWebhookCommand

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@lru_cache
def get_intercom_webhook_command() -> IntercomWebhookCommand:
    return IntercomWebhookCommand()


@router.head("/intercom")
async def intercom_webhook_check() -> Response:
    """Intercom validates the endpoint with a HEAD request before subscribing."""
    return Response(status_code=200)


@router.post("/intercom")
async def intercom_webhook(
    request: Request,
    command: IntercomWebhookCommand = Depends(get_intercom_webhook_command),
) -> dict[str, str]:
    """Receive Intercom notifications. Relay, then acknowledge."""
    try:
        body = await request.json()
    except Exception as e:
        logger.warning("Intercom webhook invalid JSON: %s", e)
        raise HTTPException(status_code=400, detail="Invalid JSON body") from e
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Body must be a JSON object")
    return await command.execute(body)
