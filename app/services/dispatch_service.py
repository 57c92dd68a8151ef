"""
Fan-out delivery of one notification to many chat destinations.

Settle-all, fail-none: every destination is attempted concurrently, each
failure is logged and recorded on its own outcome, and dispatch itself
never raises. Delivery is at-most-once; nothing is retried.
"""

from __future__ import annotations

import asyncio
import time
from typing import Optional, Sequence

from app.adapters.base import BaseChatAdapter
from app.infra.logging_config import get_logger
from app.schemas.notification import (
    Destination,
    DispatchOutcome,
    Notification,
    OutboundSendResult,
)

logger = get_logger("dispatch_service")


class DispatchService:
    def __init__(self, adapter: BaseChatAdapter, send_timeout_seconds: float) -> None:
        self._adapter = adapter
        self._timeout = send_timeout_seconds

    async def dispatch(
        self,
        notification: Notification,
        destinations: Sequence[Destination],
        ticket_id: Optional[str] = None,
    ) -> list[DispatchOutcome]:
        """Send to all destinations; outcomes keep the destination order."""
        if not destinations:
            return []
        results = await asyncio.gather(
            *(
                self._send_one(notification, destination, ticket_id)
                for destination in destinations
            ),
            return_exceptions=True,
        )
        outcomes = [
            result
            if isinstance(result, DispatchOutcome)
            else self._failed(destination, ticket_id, f"{type(result).__name__}: {result}")
            for destination, result in zip(destinations, results)
        ]
        succeeded = sum(1 for outcome in outcomes if outcome.success)
        logger.info(
            "Dispatched ticket %s to %d/%d destinations",
            ticket_id,
            succeeded,
            len(outcomes),
        )
        return outcomes

    async def _send_one(
        self,
        notification: Notification,
        destination: Destination,
        ticket_id: Optional[str],
    ) -> DispatchOutcome:
        started = time.monotonic()
        try:
            result = await asyncio.wait_for(
                self._adapter.send(destination.chat_id, notification),
                timeout=self._timeout,
            )
            if not isinstance(result, OutboundSendResult):
                raise TypeError(
                    f"Adapter returned {type(result).__name__}, expected OutboundSendResult"
                )
        except asyncio.TimeoutError:
            error = f"Send timed out after {self._timeout}s"
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
        else:
            elapsed_ms = int((time.monotonic() - started) * 1000)
            if result.success:
                logger.info(
                    "Sent ticket %s to %s (%s) message_id=%s",
                    ticket_id,
                    destination.name,
                    destination.chat_id,
                    result.platform_message_id,
                )
                return DispatchOutcome(
                    destination=destination,
                    success=True,
                    platform_message_id=result.platform_message_id,
                    elapsed_ms=elapsed_ms,
                )
            error = "Platform reported unsuccessful send"

        return self._failed(
            destination,
            ticket_id,
            error,
            elapsed_ms=int((time.monotonic() - started) * 1000),
        )

    @staticmethod
    def _failed(
        destination: Destination,
        ticket_id: Optional[str],
        error: str,
        elapsed_ms: Optional[int] = None,
    ) -> DispatchOutcome:
        logger.error(
            "Failed to send ticket %s to %s (%s): %s",
            ticket_id,
            destination.name,
            destination.chat_id,
            error,
        )
        return DispatchOutcome(
            destination=destination,
            success=False,
            error=error,
            elapsed_ms=elapsed_ms,
        )
