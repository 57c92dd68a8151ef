"""
Lark platform adapter.

Sends text and interactive-card messages to group chats through the Lark
Open API using a tenant access token.
"""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any, Optional

import requests

from app.adapters.base import BaseChatAdapter
from app.infra.logging_config import get_logger
from app.schemas.notification import (
    CardNotification,
    Notification,
    OutboundSendResult,
    TextNotification,
)

logger = get_logger("lark_adapter")

AUTH_PATH = "/auth/v3/tenant_access_token/internal"
MESSAGES_PATH = "/im/v1/messages"
TOKEN_REFRESH_MARGIN_SECONDS = 60


class LarkAPIError(RuntimeError):
    """Lark returned an HTTP error or a non-zero `code`."""


class LarkAdapter(BaseChatAdapter):
    """Lark adapter: send messages to chats via the IM API."""

    def __init__(
        self,
        app_id: str,
        app_secret: str,
        base_url: str = "https://open.larksuite.com/open-apis",
        timeout_seconds: float = 10.0,
    ) -> None:
        self._app_id = app_id
        self._app_secret = app_secret
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._token: Optional[str] = None
        self._token_expires_at = 0.0

    async def send(
        self, chat_id: str, notification: Notification
    ) -> OutboundSendResult:
        """Send one message to chat_id. Raises LarkAPIError on failure."""
        return await asyncio.to_thread(self._send_sync, chat_id, notification)

    def _send_sync(self, chat_id: str, notification: Notification) -> OutboundSendResult:
        msg_type, content = self._message_content(notification)
        data = self._request(
            "POST",
            MESSAGES_PATH,
            params={"receive_id_type": "chat_id"},
            body={
                "receive_id": chat_id,
                "msg_type": msg_type,
                "content": json.dumps(content, ensure_ascii=False),
            },
        )
        message_id = (data.get("data") or {}).get("message_id")
        return OutboundSendResult(
            success=True,
            platform_message_id=str(message_id) if message_id else None,
        )

    @staticmethod
    def _message_content(notification: Notification) -> tuple[str, dict[str, Any]]:
        if isinstance(notification, CardNotification):
            return "interactive", notification.card.to_lark()
        if isinstance(notification, TextNotification):
            return "text", {"text": notification.text}
        raise TypeError(f"Unsupported notification: {type(notification).__name__}")

    def _get_token(self) -> str:
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token
        try:
            resp = requests.post(
                f"{self._base_url}{AUTH_PATH}",
                json={"app_id": self._app_id, "app_secret": self._app_secret},
                timeout=self._timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise LarkAPIError(f"Token request failed: {e}") from e
        if data.get("code") != 0:
            raise LarkAPIError(f"Token request rejected: {data.get('msg')}")
        self._token = data["tenant_access_token"]
        expires_in = int(data.get("expire", 0))
        self._token_expires_at = (
            time.monotonic() + expires_in - TOKEN_REFRESH_MARGIN_SECONDS
        )
        return self._token

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, str]] = None,
        body: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self._get_token()}",
            "Content-Type": "application/json; charset=utf-8",
        }
        try:
            resp = requests.request(
                method,
                f"{self._base_url}{path}",
                params=params,
                json=body,
                headers=headers,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise LarkAPIError(f"{method} {path} failed: {e}") from e
        try:
            data = resp.json()
        except ValueError as e:
            raise LarkAPIError(
                f"{method} {path}: HTTP {resp.status_code}, invalid JSON"
            ) from e
        if resp.status_code != 200 or data.get("code") != 0:
            logger.warning(
                "Lark API %s %s returned status=%s code=%s msg=%s",
                method,
                path,
                resp.status_code,
                data.get("code"),
                data.get("msg"),
            )
            raise LarkAPIError(
                f"{method} {path}: HTTP {resp.status_code}, code={data.get('code')}, "
                f"msg={data.get('msg')}"
            )
        return data
