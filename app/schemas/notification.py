"""
Outbound contracts: rendered notifications, destinations and send outcomes.

Delivery is at-most-once with no retry; outcomes exist for logging only.
"""

from __future__ import annotations

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field


class CardHeader(BaseModel):
    title: str
    subtitle: Optional[str] = None
    template: str = "blue"


class CardBlock(BaseModel):
    """
    One content block of a card.

    tag: "fields" (short plain-text items side by side), "markdown",
    "divider" or "note" (small plain-text footer items).
    """

    tag: Literal["fields", "markdown", "divider", "note"]
    content: Optional[str] = None
    items: list[str] = Field(default_factory=list)


class CardAction(BaseModel):
    label: str
    url: str


class Card(BaseModel):
    header: CardHeader
    blocks: list[CardBlock] = Field(default_factory=list)
    action: CardAction

    def to_lark(self) -> dict[str, Any]:
        """Render as a Lark interactive card payload."""
        elements: list[dict[str, Any]] = []
        for block in self.blocks:
            if block.tag == "divider":
                elements.append({"tag": "hr"})
            elif block.tag == "markdown":
                elements.append(
                    {"tag": "div", "text": {"tag": "lark_md", "content": block.content}}
                )
            elif block.tag == "fields":
                elements.append(
                    {
                        "tag": "div",
                        "fields": [
                            {"tag": "plain_text", "content": item}
                            for item in block.items
                        ],
                    }
                )
            else:
                elements.append(
                    {
                        "tag": "note",
                        "elements": [
                            {"tag": "plain_text", "content": item}
                            for item in block.items
                        ],
                    }
                )
        elements.append(
            {
                "tag": "action",
                "actions": [
                    {
                        "tag": "button",
                        "text": {"tag": "plain_text", "content": self.action.label},
                        "type": "primary",
                        "url": self.action.url,
                    }
                ],
            }
        )
        header: dict[str, Any] = {
            "title": {"tag": "plain_text", "content": self.header.title},
            "template": self.header.template,
        }
        if self.header.subtitle:
            header["subtitle"] = {"tag": "plain_text", "content": self.header.subtitle}
        return {
            "config": {"wide_screen_mode": True, "enable_forward": True},
            "header": header,
            "elements": elements,
        }


class TextNotification(BaseModel):
    kind: Literal["text"] = "text"
    text: str


class CardNotification(BaseModel):
    kind: Literal["card"] = "card"
    card: Card


Notification = Union[TextNotification, CardNotification]


class Destination(BaseModel):
    """A named chat group receiving notifications."""

    name: str
    chat_id: str


class OutboundSendResult(BaseModel):
    """Result of sending one message (success + optional message_id)."""

    success: bool
    platform_message_id: Optional[str] = None


class DispatchOutcome(BaseModel):
    destination: Destination
    success: bool
    error: Optional[str] = None
    platform_message_id: Optional[str] = None
    elapsed_ms: Optional[int] = None
