"""
Service rendering enriched tickets into chat notifications.

Two renderers share one field extraction: a markdown text message and a
Lark-style card. Rendering is total; missing data shows as a placeholder.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from app.constants.onsite_program import (
    ATTRIBUTE_FALLBACKS,
    EXPRESS_AFFIRMATIVE_VALUES,
    TICKET_URL_TEMPLATE,
    AttributeKey,
)
from app.schemas.notification import (
    Card,
    CardAction,
    CardBlock,
    CardHeader,
    CardNotification,
    Notification,
    TextNotification,
)
from app.schemas.ticket import (
    Actor,
    ConversationPart,
    EnrichedTicket,
    EventKind,
    TicketSnapshot,
)

UNKNOWN = "Unknown"
NO_CONTENT = "_No content_"
ELLIPSIS = "..."

TEXT_PART_LIMIT = 10
TEXT_BODY_BUDGET = 700
CARD_PART_LIMIT = 5
CARD_BODY_BUDGET = 300

NOTIFICATION_FORMATS = ("card", "text")

EXPRESS_TEXT = "⚡ YES - EXPRESS (3 HOURS)"
STANDARD_TEXT = "⏱️ NO - STANDARD"
EXPRESS_CARD = "⚡ EXPRESS (3 HOURS)"
STANDARD_CARD = "⏱️ STANDARD REQUEST"

_TAG_RE = re.compile(r"<[^>]*>")


@dataclass(frozen=True)
class EventDescriptor:
    icon: str
    title: str
    template: str
    attribution_label: str
    default_actor: str


EVENT_DESCRIPTORS: dict[EventKind, EventDescriptor] = {
    EventKind.OPENED: EventDescriptor(
        "🆕", "NEW SITE INSPECTION REQUEST", "blue", "🆕 Opened by", UNKNOWN
    ),
    EventKind.ASSIGNED: EventDescriptor(
        "👤", "SITE INSPECTION ASSIGNED", "blue", "👤 Assigned to", UNKNOWN
    ),
    EventKind.REPLIED: EventDescriptor(
        "💬", "ADMIN REPLY ADDED", "turquoise", "💬 Replied by", "Agent"
    ),
    EventKind.NOTE_ADDED: EventDescriptor(
        "📝", "NOTE ADDED", "yellow", "📝 Note by", "Agent"
    ),
    EventKind.CLOSED: EventDescriptor(
        "🔒", "SITE INSPECTION CLOSED", "green", "🔒 Closed by", "System"
    ),
    EventKind.SNOOZED: EventDescriptor(
        "😴", "SITE INSPECTION SNOOZED", "grey", "😴 Snoozed by", "System"
    ),
    EventKind.UNSNOOZED: EventDescriptor(
        "⏰", "SITE INSPECTION RESUMED", "orange", "⏰ Resumed by", "System"
    ),
    EventKind.STATE_CHANGED: EventDescriptor(
        "🔄", "SITE INSPECTION STATE CHANGED", "purple", "🔄 Changed by", "System"
    ),
}

STATE_ICONS = {"open": "🟢", "closed": "🔴", "snoozed": "🟡"}

PART_TYPE_ICONS = {
    "comment": "💬",
    "note": "📝",
    "assignment": "👤",
    "close": "🔒",
    "open": "🔓",
    "reply": "↩️",
    "user_comment": "👤",
    "admin_comment": "👨‍💼",
    "ticket_note": "📋",
}


def clean_body(body: Optional[str]) -> str:
    """Strip HTML tags and entities from a conversation part body."""
    if not body:
        return ""
    text = html.unescape(_TAG_RE.sub("", body))
    return text.replace("\xa0", " ").strip()


def truncate(text: str, budget: int) -> str:
    """Cut text to exactly `budget` characters plus an ellipsis when longer."""
    if len(text) <= budget:
        return text
    return text[:budget] + ELLIPSIS


def format_timestamp(value: Optional[int]) -> str:
    if value is None:
        return UNKNOWN
    try:
        moment = datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return UNKNOWN
    return moment.strftime("%Y-%m-%d %H:%M UTC")


def is_express(ticket: TicketSnapshot) -> bool:
    value: Any = ticket.custom_attributes.get(AttributeKey.EXPRESS_REQUEST)
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in EXPRESS_AFFIRMATIVE_VALUES
    return False


def attribute(ticket: TicketSnapshot, key: AttributeKey) -> str:
    """Attribute value as display text, or the Unknown placeholder."""
    for candidate in (key.value, *ATTRIBUTE_FALLBACKS.get(key, ())):
        value = ticket.custom_attributes.get(candidate)
        if value is None or isinstance(value, (dict, list)):
            continue
        text = str(value).strip()
        if text:
            return text
    return UNKNOWN


def recent_parts(
    ticket: TicketSnapshot, limit: int
) -> tuple[list[ConversationPart], int]:
    """Most recent parts in chronological order, plus how many were left out."""
    ordered = sorted(
        ticket.conversation_parts,
        key=lambda part: part.created_at if part.created_at is not None else 0,
    )
    if len(ordered) <= limit:
        return ordered, 0
    return ordered[-limit:], len(ordered) - limit


def _author_name(part: ConversationPart) -> str:
    if part.author is None:
        return UNKNOWN
    return part.author.display_name or UNKNOWN


class MessageComposer:
    """Render notifications for the monitored program."""

    def __init__(
        self,
        app_id: Optional[str] = None,
        notification_format: str = "card",
        text_body_budget: int = TEXT_BODY_BUDGET,
        card_body_budget: int = CARD_BODY_BUDGET,
    ) -> None:
        if notification_format not in NOTIFICATION_FORMATS:
            raise ValueError(
                f"Unknown notification format {notification_format!r}, "
                f"expected one of {', '.join(NOTIFICATION_FORMATS)}"
            )
        self.app_id = app_id
        self.notification_format = notification_format
        self.text_body_budget = text_body_budget
        self.card_body_budget = card_body_budget

    def compose(
        self,
        enriched: EnrichedTicket,
        kind: EventKind,
        actor: Optional[Actor] = None,
    ) -> Notification:
        if self.notification_format == "text":
            return self.render_text(enriched.ticket, kind, actor)
        return self.render_card(enriched.ticket, kind, actor)

    def ticket_url(self, ticket: TicketSnapshot) -> str:
        if ticket.url:
            return ticket.url
        return TICKET_URL_TEMPLATE.format(
            app_id=self.app_id or UNKNOWN, ticket_id=ticket.id
        )

    @staticmethod
    def attribution(kind: EventKind, actor: Optional[Actor]) -> str:
        descriptor = EVENT_DESCRIPTORS[kind]
        name = actor.display_name if actor is not None else None
        return f"{descriptor.attribution_label}: {name or descriptor.default_actor}"

    def render_text(
        self,
        ticket: TicketSnapshot,
        kind: EventKind,
        actor: Optional[Actor] = None,
    ) -> TextNotification:
        descriptor = EVENT_DESCRIPTORS[kind]
        express = is_express(ticket)
        lines = [f"{'🚨' if express else '📋'} 🔍 **SITE INSPECTION UPDATE**", ""]
        if express:
            lines += [
                "🚨🚨🚨 **URGENT - EXPRESS REQUEST** 🚨🚨🚨",
                "⏰ **3 HOURS ONSITE REQUEST** ⏰",
                "",
            ]
        lines += [
            f"{descriptor.icon} **{descriptor.title}**",
            "",
            f"**Ticket ID:** {ticket.id}",
            f"**State:** {ticket.state or UNKNOWN}",
            f"**Express Request:** {EXPRESS_TEXT if express else STANDARD_TEXT}",
            f"**Merchant:** {attribute(ticket, AttributeKey.MERCHANT_NAME)}",
            f"**Country:** {attribute(ticket, AttributeKey.COUNTRY)}",
            f"**PIC:** {attribute(ticket, AttributeKey.PIC_NAME)}",
            f"**Email:** {attribute(ticket, AttributeKey.PIC_EMAIL)}",
            f"**Contact:** {attribute(ticket, AttributeKey.PIC_CONTACT)}",
            f"**Address:** {attribute(ticket, AttributeKey.STORE_ADDRESS)}",
            f"**Description:** {attribute(ticket, AttributeKey.DESCRIPTION)}",
            "",
            "💬 **CONVERSATION & NOTES:**",
        ]
        parts, hidden = recent_parts(ticket, TEXT_PART_LIMIT)
        if not parts:
            lines.append("_No conversation content available_")
        for part in parts:
            part_type = part.part_type or "comment"
            icon = PART_TYPE_ICONS.get(part_type, "💬")
            lines.append("")
            lines.append(
                f"{icon} **{_author_name(part)}** "
                f"({part_type}, {format_timestamp(part.created_at)}):"
            )
            body = clean_body(part.body)
            lines.append(truncate(body, self.text_body_budget) if body else NO_CONTENT)
        if hidden:
            lines += ["", f"_... and {hidden} more conversation parts_"]
        lines += [
            "",
            f"**{self.attribution(kind, actor)}**",
            "",
            f"**Updated:** {format_timestamp(ticket.updated_at)}",
        ]
        if express:
            lines += [
                "",
                "🚨🚨🚨 **URGENT EXPRESS REQUEST** 🚨🚨🚨",
                "⏰ **MUST BE COMPLETED WITHIN 3 HOURS** ⏰",
            ]
        lines += ["", f"🔗 [View Ticket]({self.ticket_url(ticket)})"]
        return TextNotification(text="\n".join(lines))

    def render_card(
        self,
        ticket: TicketSnapshot,
        kind: EventKind,
        actor: Optional[Actor] = None,
    ) -> CardNotification:
        descriptor = EVENT_DESCRIPTORS[kind]
        state = ticket.state or UNKNOWN
        blocks = [
            CardBlock(
                tag="fields",
                items=[
                    f"{STATE_ICONS.get(state, '⚪')} State: {state}",
                    EXPRESS_CARD if is_express(ticket) else STANDARD_CARD,
                ],
            ),
            CardBlock(
                tag="markdown",
                content=(
                    "**Merchant Details:**\n"
                    f"• **Name:** {attribute(ticket, AttributeKey.MERCHANT_NAME)}\n"
                    f"• **Country:** {attribute(ticket, AttributeKey.COUNTRY)}\n"
                    f"• **Contact:** {attribute(ticket, AttributeKey.PIC_NAME)} - "
                    f"{attribute(ticket, AttributeKey.PIC_CONTACT)}\n"
                    f"• **Address:** {attribute(ticket, AttributeKey.STORE_ADDRESS)}"
                ),
            ),
        ]

        description = attribute(ticket, AttributeKey.DESCRIPTION)
        if description != UNKNOWN:
            blocks += [
                CardBlock(tag="divider"),
                CardBlock(
                    tag="markdown",
                    content=f"**Request Description:**\n{description}",
                ),
            ]

        blocks.append(CardBlock(tag="divider"))
        blocks += self._activity_blocks(ticket)

        blocks += [
            CardBlock(tag="divider"),
            CardBlock(
                tag="note",
                items=[
                    self.attribution(kind, actor),
                    f"Updated: {format_timestamp(ticket.updated_at)}",
                ],
            ),
        ]
        card = Card(
            header=CardHeader(
                title=f"{descriptor.icon} {descriptor.title}",
                subtitle=f"Ticket #{ticket.id}",
                template=descriptor.template,
            ),
            blocks=blocks,
            action=CardAction(label="View in Intercom", url=self.ticket_url(ticket)),
        )
        return CardNotification(card=card)

    def _activity_blocks(self, ticket: TicketSnapshot) -> list[CardBlock]:
        parts, hidden = recent_parts(ticket, CARD_PART_LIMIT)
        if not parts:
            return [
                CardBlock(
                    tag="markdown",
                    content="**💬 Recent Activity:**\n_No conversation content available_",
                )
            ]
        entries = []
        for part in parts:
            body = clean_body(part.body)
            entries.append(
                f"**{_author_name(part)}** ({format_timestamp(part.created_at)}):\n"
                f"{truncate(body, self.card_body_budget) if body else NO_CONTENT}"
            )
        blocks = [
            CardBlock(
                tag="markdown",
                content="**💬 Recent Activity:**\n\n" + "\n\n".join(entries),
            )
        ]
        if hidden:
            blocks.append(
                CardBlock(
                    tag="note", items=[f"... and {hidden} more conversation parts"]
                )
            )
        return blocks
