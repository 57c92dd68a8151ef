"""Fetcher for full conversation records from the Intercom REST API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import requests

from app.adapters.intercom import parse_conversation
from app.infra.logging_config import get_logger
from app.schemas.ticket import TicketSnapshot

logger = get_logger("conversation_fetcher")

CONVERSATION_PATH = "/conversations/{conversation_id}"
DEFAULT_TIMEOUT_SECONDS = 5.0


@dataclass
class FetchResult:
    """Result of a conversation fetch."""

    snapshot: Optional[TicketSnapshot] = None
    error: Optional[str] = None


class ConversationFetcher:
    """Fetches one conversation by id. Exactly one HTTP call per fetch."""

    def __init__(
        self,
        token: Optional[str],
        base_url: str = "https://api.intercom.io",
        api_version: str = "2.11",
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._api_version = api_version
        self._timeout = timeout_seconds

    @property
    def is_ready(self) -> bool:
        return bool(self._token)

    def fetch(self, conversation_id: str) -> FetchResult:
        """
        Fetch the conversation with all its parts.

        Never raises; failures come back as FetchResult.error.
        """
        if not self.is_ready:
            return FetchResult(error="Intercom token is not configured")

        url = f"{self._base_url}{CONVERSATION_PATH.format(conversation_id=conversation_id)}"
        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {self._token}",
            "Intercom-Version": self._api_version,
        }
        logger.debug("Fetching conversation %s from %s", conversation_id, url)

        try:
            resp = requests.get(
                url,
                params={"display_as": "plaintext"},
                headers=headers,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            return FetchResult(error=str(e))

        if resp.status_code != 200:
            return FetchResult(
                error=f"HTTP {resp.status_code}: {resp.text[:500] if resp.text else 'no body'}"
            )

        try:
            data = resp.json()
        except ValueError as e:
            return FetchResult(error=f"Invalid JSON: {e}")

        if not data:
            return FetchResult(error="Empty conversation response")

        snapshot = parse_conversation(data)
        if snapshot is None:
            return FetchResult(error="Conversation response has no id")
        return FetchResult(snapshot=snapshot)
