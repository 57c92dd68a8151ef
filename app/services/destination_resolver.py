"""Resolve the chat groups that receive ticket notifications."""

from __future__ import annotations

from typing import Iterable, Optional

from app.config import Settings
from app.constants.onsite_program import PLACEHOLDER_CHAT_IDS
from app.infra.logging_config import get_logger
from app.schemas.notification import Destination

logger = get_logger("destination_resolver")

FALLBACK_DESTINATION_NAME = "Main Group"


class DestinationResolver:
    """
    Named groups first; when none is usable, the generic default group.
    Unset, blank and placeholder chat ids count as "not configured".
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._placeholders = PLACEHOLDER_CHAT_IDS | settings.extra_placeholder_chat_ids

    def named_groups(self) -> list[tuple[str, Optional[str]]]:
        return [
            ("MY/PH FE", self._settings.lark_chat_group_id_myphfe),
            ("Complex Setup Process", self._settings.lark_chat_group_id_complex_setup),
        ]

    def is_configured(self, chat_id: Optional[str]) -> bool:
        return bool(chat_id and chat_id.strip()) and chat_id.strip() not in self._placeholders

    def resolve(self) -> list[Destination]:
        destinations = self._usable(self.named_groups())
        if destinations:
            return destinations

        fallback = self._usable(
            [(FALLBACK_DESTINATION_NAME, self._settings.lark_chat_group_id)]
        )
        if fallback:
            logger.info(
                "No named chat groups configured, using fallback group %s",
                fallback[0].chat_id,
            )
        return fallback

    def _usable(
        self, groups: Iterable[tuple[str, Optional[str]]]
    ) -> list[Destination]:
        destinations: list[Destination] = []
        seen: set[str] = set()
        for name, chat_id in groups:
            if not self.is_configured(chat_id):
                continue
            chat_id = chat_id.strip()
            if chat_id in seen:
                continue
            seen.add(chat_id)
            destinations.append(Destination(name=name, chat_id=chat_id))
        return destinations
