"""
Chat platform adapter interface.

Adapters encapsulate platform-specific delivery and accept the normalized
notification shapes produced by the composer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from app.schemas.notification import Notification, OutboundSendResult


class BaseChatAdapter(ABC):
    """Contract for chat destinations. New platforms implement this interface."""

    @abstractmethod
    async def send(
        self, chat_id: str, notification: Notification
    ) -> OutboundSendResult:
        """Deliver one notification to one chat. Raise on platform failure."""
        ...
