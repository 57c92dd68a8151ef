"""
Intercom platform adapter.

Normalizes webhook envelopes and conversation records into ticket
snapshots. Parsing is lenient: unexpected shapes become missing fields,
never exceptions, so classification can treat them as non-matches.
"""

from __future__ import annotations

from typing import Any, Optional

from app.constants.onsite_program import AttributeKey
from app.schemas.ticket import (
    TOPIC_EVENT_KINDS,
    Actor,
    ConversationPart,
    EventKind,
    TicketEvent,
    TicketSnapshot,
)

NOTIFICATION_EVENT_TYPE = "notification_event"


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    return str(value)


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _team_id(value: Any) -> Optional[str | int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (str, int)):
        return value
    return None


def parse_actor(raw: Any) -> Optional[Actor]:
    data = _as_dict(raw)
    if not data:
        return None
    actor = Actor(
        id=_as_str(data.get("id")),
        name=_as_str(data.get("name")),
        email=_as_str(data.get("email")),
    )
    return actor if actor.display_name else None


def _parse_parts(raw: Any) -> tuple[ConversationPart, ...]:
    # Intercom nests the list: {"conversation_parts": {"conversation_parts": [...]}}
    container = raw
    if isinstance(container, dict):
        container = container.get("conversation_parts")
    if not isinstance(container, list):
        return ()
    parts = []
    for item in container:
        if not isinstance(item, dict):
            continue
        parts.append(
            ConversationPart(
                id=_as_str(item.get("id")),
                part_type=_as_str(item.get("part_type") or item.get("type")),
                author=parse_actor(item.get("author")),
                body=_as_str(item.get("body")),
                created_at=_as_int(item.get("created_at")),
            )
        )
    return tuple(parts)


def _flatten_attributes(
    conversation_attrs: dict[str, Any], ticket: dict[str, Any]
) -> dict[str, Any]:
    """Conversation-level attributes win over ticket-level ones."""
    merged: dict[str, Any] = {}
    for key, value in _as_dict(ticket.get("custom_attributes")).items():
        if isinstance(value, dict) and "value" in value:
            value = value["value"]
        merged[key] = value
    ticket_type = ticket.get("ticket_type")
    if isinstance(ticket_type, dict):
        ticket_type = ticket_type.get("name")
    if isinstance(ticket_type, str) and ticket_type:
        merged.setdefault(AttributeKey.TICKET_TYPE.value, ticket_type)
    merged.update(conversation_attrs)
    return merged


def parse_conversation(raw: Any) -> Optional[TicketSnapshot]:
    """Build a snapshot from a conversation/ticket record; None without an id."""
    item = _as_dict(raw)
    ticket_id = _as_str(item.get("id"))
    if not ticket_id:
        return None
    ticket = _as_dict(item.get("ticket"))
    source = _as_dict(item.get("source"))
    return TicketSnapshot(
        id=ticket_id,
        state=_as_str(item.get("state")) or _as_str(ticket.get("state")),
        team_assignee_id=_team_id(item.get("team_assignee_id")),
        admin_assignee_id=_as_str(item.get("admin_assignee_id")),
        title=_as_str(item.get("title")) or _as_str(source.get("subject")),
        source_body=_as_str(source.get("body")),
        custom_attributes=_flatten_attributes(
            _as_dict(item.get("custom_attributes")), ticket
        ),
        conversation_parts=_parse_parts(item.get("conversation_parts")),
        created_at=_as_int(item.get("created_at")),
        updated_at=_as_int(item.get("updated_at")),
        url=_as_str(ticket.get("url")),
    )


def resolve_topic(payload: dict[str, Any]) -> Optional[str]:
    """For generic notification envelopes the nested topic takes precedence."""
    event_type = _as_str(payload.get("type"))
    topic = _as_str(payload.get("topic"))
    if event_type == NOTIFICATION_EVENT_TYPE:
        return topic
    return topic or event_type


class IntercomAdapter:
    """Intercom adapter: parse webhook notifications into ticket events."""

    def parse_webhook(self, raw_payload: dict[str, Any]) -> Optional[TicketEvent]:
        """
        Parse a webhook envelope. Returns None for topics the relay does not
        handle or when the payload carries no conversation.
        """
        topic = resolve_topic(raw_payload)
        kind = TOPIC_EVENT_KINDS.get(topic or "")
        if kind is None:
            return None
        data = _as_dict(raw_payload.get("data"))
        item = data.get("item") or data.get("conversation")
        snapshot = parse_conversation(item)
        if snapshot is None:
            return None
        assignee = parse_actor(data.get("assignee"))
        if kind == EventKind.ASSIGNED and assignee is None:
            assignee = parse_actor(_as_dict(item).get("assignee"))
        return TicketEvent(
            kind=kind,
            ticket=snapshot,
            actor=parse_actor(data.get("admin")) or self._latest_author(snapshot),
            assignee=assignee,
            topic=topic,
        )

    @staticmethod
    def _latest_author(snapshot: TicketSnapshot) -> Optional[Actor]:
        for part in reversed(snapshot.conversation_parts):
            if part.author is not None:
                return part.author
        return None
