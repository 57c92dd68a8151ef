"""Service completing webhook snapshots with the authoritative conversation record."""

from __future__ import annotations

import asyncio

from app.adapters.conversation_fetcher import ConversationFetcher, FetchResult
from app.infra.logging_config import get_logger
from app.schemas.ticket import EnrichedTicket, TicketSnapshot

logger = get_logger("enrichment_service")

_FETCHED_PREFERRED_FIELDS = (
    "state",
    "admin_assignee_id",
    "title",
    "source_body",
    "created_at",
    "updated_at",
    "url",
)


def merge_snapshots(webhook: TicketSnapshot, fetched: TicketSnapshot) -> TicketSnapshot:
    """
    Merge a webhook snapshot with the fetched record into a new snapshot.

    Conversation parts come from the fetched record when it has any. Team
    assignment and custom attributes default to the fetched record, with the
    webhook's values winning where both are set; a null webhook value counts
    as unset. Remaining fields prefer the fetched record and fall back to the
    webhook.
    """
    update: dict = {
        "conversation_parts": fetched.conversation_parts
        or webhook.conversation_parts,
        "team_assignee_id": (
            webhook.team_assignee_id
            if webhook.team_assignee_id is not None
            else fetched.team_assignee_id
        ),
        "custom_attributes": {
            **fetched.custom_attributes,
            **{
                key: value
                for key, value in webhook.custom_attributes.items()
                if value is not None or key not in fetched.custom_attributes
            },
        },
    }
    for field in _FETCHED_PREFERRED_FIELDS:
        fetched_value = getattr(fetched, field)
        update[field] = (
            fetched_value if fetched_value is not None else getattr(webhook, field)
        )
    return webhook.model_copy(update=update)


class EnrichmentService:
    """Best-effort enrichment: one fetch, bounded by a timeout, never fatal."""

    def __init__(self, fetcher: ConversationFetcher, timeout_seconds: float) -> None:
        self._fetcher = fetcher
        self._timeout = timeout_seconds

    async def enrich(self, snapshot: TicketSnapshot) -> EnrichedTicket:
        try:
            result: FetchResult = await asyncio.wait_for(
                asyncio.to_thread(self._fetcher.fetch, snapshot.id),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            result = FetchResult(
                error=f"Conversation fetch timed out after {self._timeout}s"
            )
        except Exception as e:
            result = FetchResult(error=f"{type(e).__name__}: {e}")

        if result.snapshot is None:
            error = result.error or "Empty conversation response"
            logger.warning(
                "Enrichment failed for ticket %s, using webhook snapshot: %s",
                snapshot.id,
                error,
            )
            return EnrichedTicket(ticket=snapshot, enriched=False, error=error)

        merged = merge_snapshots(snapshot, result.snapshot)
        logger.info(
            "Enriched ticket %s: %d conversation parts (webhook had %d)",
            snapshot.id,
            len(merged.conversation_parts),
            len(snapshot.conversation_parts),
        )
        return EnrichedTicket(ticket=merged, enriched=True)
