"""
Command to handle Intercom webhook notifications.

Parses the envelope into a ticket event and runs the relay pipeline. The
platform only ever sees an acknowledgement; delivery results are logged.
"""

from __future__ import annotations

from typing import Any, Optional

from app.adapters.intercom import IntercomAdapter, resolve_topic
from app.commands.notify_ticket_command import NotifyTicketCommand, PipelineResult
from app.config import Settings, get_settings
from app.infra.logging_config import get_logger

logger = get_logger("intercom_webhook_command")

ACK = {"status": "ok"}


class IntercomWebhookCommand:
    """Parse the Intercom envelope, relay matching tickets, acknowledge."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        notify_command: Optional[NotifyTicketCommand] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._adapter = IntercomAdapter()
        self._notify = notify_command or NotifyTicketCommand(self.settings)

    async def execute(self, payload: dict[str, Any]) -> dict[str, str]:
        """
        Execute the webhook: parse the envelope, run the pipeline.

        Returns:
            dict: {"status": "ok"} regardless of downstream delivery.
        """
        await self.relay(payload)
        return ACK

    async def relay(self, payload: dict[str, Any]) -> Optional[PipelineResult]:
        """Parse and relay one envelope; None when the envelope is ignored."""
        try:
            event = self._adapter.parse_webhook(payload)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Intercom webhook parse error: %s", e)
            return None
        if event is None:
            logger.info(
                "Ignoring Intercom webhook: topic=%s type=%s",
                resolve_topic(payload),
                payload.get("type"),
            )
            return None

        logger.info(
            "Intercom webhook received: topic=%s ticket=%s",
            event.topic,
            event.ticket.id,
        )
        result = await self._notify.execute(event)
        logger.info(
            "Relayed ticket %s: delivered=%d/%d skipped=%s",
            result.ticket_id,
            sum(1 for outcome in result.outcomes if outcome.success),
            len(result.outcomes),
            result.skipped_reason,
        )
        return result
