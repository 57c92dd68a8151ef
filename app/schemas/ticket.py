"""
Ticket-side contracts of the relay pipeline.

Snapshots are built from webhook payloads or the conversation read API and
never mutated; enrichment produces a new snapshot.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class EventKind(str, Enum):
    """What happened to the ticket."""

    OPENED = "opened"
    ASSIGNED = "assigned"
    REPLIED = "replied"
    NOTE_ADDED = "note_added"
    CLOSED = "closed"
    SNOOZED = "snoozed"
    UNSNOOZED = "unsnoozed"
    STATE_CHANGED = "state_changed"


TOPIC_EVENT_KINDS: dict[str, EventKind] = {
    "conversation.admin.opened": EventKind.OPENED,
    "conversation.admin.assigned": EventKind.ASSIGNED,
    "conversation.admin.replied": EventKind.REPLIED,
    "conversation.admin.note.created": EventKind.NOTE_ADDED,
    "conversation.admin.noted": EventKind.NOTE_ADDED,
    "conversation.admin.closed": EventKind.CLOSED,
    "conversation.admin.snoozed": EventKind.SNOOZED,
    "conversation.admin.unsnoozed": EventKind.UNSNOOZED,
    "conversation.state.changed": EventKind.STATE_CHANGED,
    "conversation.status.changed": EventKind.STATE_CHANGED,
}


class Actor(BaseModel):
    """Admin, assignee or author reference."""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None

    @property
    def display_name(self) -> Optional[str]:
        return self.name or self.email or self.id


class ConversationPart(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    part_type: Optional[str] = None
    author: Optional[Actor] = None
    body: Optional[str] = None
    created_at: Optional[int] = None  # unix seconds


class TicketSnapshot(BaseModel):
    """Point-in-time view of a ticket/conversation."""

    model_config = ConfigDict(frozen=True)

    id: str
    state: Optional[str] = None
    team_assignee_id: Optional[Union[str, int]] = None
    admin_assignee_id: Optional[str] = None
    title: Optional[str] = None
    source_body: Optional[str] = None
    custom_attributes: dict[str, Any] = Field(default_factory=dict)
    conversation_parts: tuple[ConversationPart, ...] = ()
    created_at: Optional[int] = None
    updated_at: Optional[int] = None
    url: Optional[str] = None


class TicketEvent(BaseModel):
    """One inbound webhook call, normalized."""

    model_config = ConfigDict(frozen=True)

    kind: EventKind
    ticket: TicketSnapshot
    actor: Optional[Actor] = None
    assignee: Optional[Actor] = None
    topic: Optional[str] = None


class MatchMode(str, Enum):
    ANY = "any"
    ALL = "all"


class ClassificationVerdict(BaseModel):
    """Outcome of classifying a snapshot; `rule` is the first rule that matched."""

    matched: bool
    rule: Optional[str] = None
    checks: dict[str, bool] = Field(default_factory=dict)
    mode: MatchMode = MatchMode.ANY


class EnrichedTicket(BaseModel):
    """Snapshot after the best-effort fetch; `enriched` is False on fallback."""

    ticket: TicketSnapshot
    enriched: bool = False
    error: Optional[str] = None
