"""
Command relaying one ticket event to the configured chat groups.

classify -> enrich -> compose -> resolve destinations -> fan out. The
command never raises: every failure is logged and reflected in the result.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from app.adapters.base import BaseChatAdapter
from app.adapters.conversation_fetcher import ConversationFetcher
from app.adapters.lark import LarkAdapter
from app.config import Settings
from app.infra.logging_config import get_logger
from app.schemas.notification import (
    DispatchOutcome,
    Notification,
    OutboundSendResult,
)
from app.schemas.ticket import (
    Actor,
    ClassificationVerdict,
    EventKind,
    TicketEvent,
)
from app.services.classification_service import ClassificationService
from app.services.destination_resolver import DestinationResolver
from app.services.dispatch_service import DispatchService
from app.services.enrichment_service import EnrichmentService
from app.services.message_composer import MessageComposer

logger = get_logger("notify_ticket_command")

SKIP_NOT_MONITORED = "not_monitored"
SKIP_NO_DESTINATIONS = "no_destinations"
SKIP_ERROR = "error"


@dataclass
class PipelineResult:
    ticket_id: str
    verdict: Optional[ClassificationVerdict] = None
    enriched: bool = False
    outcomes: list[DispatchOutcome] = field(default_factory=list)
    skipped_reason: Optional[str] = None

    @property
    def dispatched(self) -> bool:
        return bool(self.outcomes)


class UnconfiguredChatAdapter(BaseChatAdapter):
    """Stand-in used when Lark credentials are missing; every send fails."""

    async def send(
        self, chat_id: str, notification: Notification
    ) -> OutboundSendResult:
        raise RuntimeError("Lark credentials are not configured")


def build_chat_adapter(settings: Settings) -> BaseChatAdapter:
    if not settings.lark_app_id or not settings.lark_app_secret:
        logger.warning("LARK_APP_ID / LARK_APP_SECRET not set; sends will fail")
        return UnconfiguredChatAdapter()
    return LarkAdapter(
        app_id=settings.lark_app_id,
        app_secret=settings.lark_app_secret,
        base_url=settings.lark_api_url,
        timeout_seconds=settings.lark_send_timeout_seconds,
    )


def attribution_actor(event: TicketEvent) -> Optional[Actor]:
    if event.kind == EventKind.ASSIGNED:
        return event.assignee or event.actor
    return event.actor


class NotifyTicketCommand:
    """
    Relay a ticket event to chat. All configuration comes from the Settings
    passed at construction; collaborators can be injected for tests.
    """

    def __init__(
        self,
        settings: Settings,
        fetcher: Optional[ConversationFetcher] = None,
        chat_adapter: Optional[BaseChatAdapter] = None,
    ) -> None:
        self.settings = settings
        self.classifier = ClassificationService.for_program(
            settings.monitored_team_id,
            require_site_inspection=settings.require_site_inspection,
        )
        self.enrichment_service = EnrichmentService(
            fetcher
            or ConversationFetcher(
                token=settings.intercom_token,
                base_url=settings.intercom_api_url,
                api_version=settings.intercom_api_version,
                timeout_seconds=settings.intercom_timeout_seconds,
            ),
            timeout_seconds=settings.intercom_timeout_seconds,
        )
        self.composer = MessageComposer(
            app_id=settings.intercom_app_id,
            notification_format=settings.notification_format,
        )
        self.destination_resolver = DestinationResolver(settings)
        self.dispatch_service = DispatchService(
            chat_adapter or build_chat_adapter(settings),
            send_timeout_seconds=settings.lark_send_timeout_seconds,
        )

    async def execute(self, event: TicketEvent) -> PipelineResult:
        """
        Run the pipeline for one event.

        Returns:
            PipelineResult: verdict, enrichment flag and per-destination outcomes;
                skipped_reason is set when nothing was dispatched.
        """
        result = PipelineResult(ticket_id=event.ticket.id)
        try:
            await self._run(event, result)
        except Exception:
            logger.exception(
                "Unexpected failure relaying ticket %s (%s)",
                event.ticket.id,
                event.kind.value,
            )
            result.skipped_reason = SKIP_ERROR
        return result

    async def _run(self, event: TicketEvent, result: PipelineResult) -> None:
        verdict = self.classifier.classify(event.ticket)
        result.verdict = verdict
        if not verdict.matched:
            logger.debug("Skipping ticket %s: not monitored", event.ticket.id)
            result.skipped_reason = SKIP_NOT_MONITORED
            return
        logger.info(
            "Ticket %s matched by %s (%s)",
            event.ticket.id,
            verdict.rule,
            event.kind.value,
        )

        enriched = await self.enrichment_service.enrich(event.ticket)
        result.enriched = enriched.enriched

        notification = self.composer.compose(
            enriched, event.kind, attribution_actor(event)
        )

        destinations = self.destination_resolver.resolve()
        if not destinations:
            logger.warning(
                "No chat groups configured; ticket %s (%s) not relayed",
                event.ticket.id,
                event.kind.value,
            )
            result.skipped_reason = SKIP_NO_DESTINATIONS
            return

        result.outcomes = await self.dispatch_service.dispatch(
            notification, destinations, ticket_id=event.ticket.id
        )
