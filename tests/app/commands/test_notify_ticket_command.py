"""End-to-end tests for the relay pipeline with fake collaborators."""

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.adapters.conversation_fetcher import FetchResult
from app.commands.notify_ticket_command import (
    SKIP_ERROR,
    SKIP_NO_DESTINATIONS,
    SKIP_NOT_MONITORED,
    NotifyTicketCommand,
    UnconfiguredChatAdapter,
    attribution_actor,
    build_chat_adapter,
)
from app.adapters.lark import LarkAdapter
from app.schemas.notification import (
    CardNotification,
    OutboundSendResult,
    TextNotification,
)
from app.schemas.ticket import Actor, EventKind
from tests.fixtures.ticket_fixtures import (
    MONITORED_TEAM_ID,
    OTHER_TEAM_ID,
    make_event,
    make_settings,
    make_snapshot,
)


def _fetcher(result=None, side_effect=None):
    fetcher = MagicMock()
    fetcher.fetch = MagicMock(return_value=result, side_effect=side_effect)
    return fetcher


def _chat_adapter(side_effect=None):
    adapter = MagicMock()
    adapter.send = AsyncMock(
        return_value=OutboundSendResult(success=True, platform_message_id="om_1"),
        side_effect=side_effect,
    )
    return adapter


@pytest.mark.asyncio
async def test_monitored_ticket_with_fallback_group(monitored_snapshot):
    settings = make_settings(
        lark_chat_group_id_myphfe="oc_myphfe_group_id",
        lark_chat_group_id_complex_setup="oc_complex_setup_group_id",
        lark_chat_group_id="oc_main",
    )
    fetcher = _fetcher(FetchResult(snapshot=monitored_snapshot))
    adapter = _chat_adapter()
    command = NotifyTicketCommand(settings, fetcher=fetcher, chat_adapter=adapter)

    result = await command.execute(make_event(ticket=monitored_snapshot))

    assert result.verdict.matched is True
    assert result.verdict.rule == "team_assignment"
    assert result.enriched is True
    assert result.skipped_reason is None
    assert result.dispatched is True
    assert [o.destination.chat_id for o in result.outcomes] == ["oc_main"]
    adapter.send.assert_awaited_once()
    chat_id, notification = adapter.send.await_args.args
    assert chat_id == "oc_main"
    assert isinstance(notification, CardNotification)
    assert notification.card.header.title == "🆕 NEW SITE INSPECTION REQUEST"
    assert monitored_snapshot.id in notification.card.header.subtitle


@pytest.mark.asyncio
async def test_opened_event_text_names_new_request_and_ticket(monitored_snapshot):
    adapter = _chat_adapter()
    command = NotifyTicketCommand(
        make_settings(lark_chat_group_id="oc_main", notification_format="text"),
        fetcher=_fetcher(FetchResult(snapshot=monitored_snapshot)),
        chat_adapter=adapter,
    )

    result = await command.execute(make_event(ticket=monitored_snapshot))

    assert result.dispatched is True
    notification = adapter.send.await_args.args[1]
    assert isinstance(notification, TextNotification)
    assert "🆕 **NEW SITE INSPECTION REQUEST**" in notification.text
    assert f"**Ticket ID:** {monitored_snapshot.id}" in notification.text


@pytest.mark.asyncio
async def test_unmonitored_ticket_is_skipped_without_side_effects():
    fetcher = _fetcher()
    adapter = _chat_adapter()
    command = NotifyTicketCommand(
        make_settings(lark_chat_group_id="oc_main"), fetcher=fetcher, chat_adapter=adapter
    )

    result = await command.execute(
        make_event(ticket=make_snapshot(team_assignee_id=OTHER_TEAM_ID))
    )

    assert result.skipped_reason == SKIP_NOT_MONITORED
    assert result.dispatched is False
    fetcher.fetch.assert_not_called()
    adapter.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_enrichment_failure_still_dispatches(caplog):
    snapshot = make_snapshot(team_assignee_id=MONITORED_TEAM_ID, bodies=("from webhook",))
    fetcher = _fetcher(side_effect=ConnectionError("intercom down"))
    adapter = _chat_adapter()
    command = NotifyTicketCommand(
        make_settings(lark_chat_group_id_myphfe="oc_a", notification_format="text"),
        fetcher=fetcher,
        chat_adapter=adapter,
    )

    with caplog.at_level(logging.WARNING):
        result = await command.execute(make_event(kind=EventKind.REPLIED, ticket=snapshot))

    assert result.enriched is False
    assert result.dispatched is True
    notification = adapter.send.await_args.args[1]
    assert isinstance(notification, TextNotification)
    assert "from webhook" in notification.text
    assert "Enrichment failed for ticket" in caplog.text


@pytest.mark.asyncio
async def test_one_destination_failure_is_isolated(caplog):
    async def send(chat_id, notification):
        if chat_id == "oc_b":
            raise RuntimeError("chat not found")
        return OutboundSendResult(success=True, platform_message_id=f"om_{chat_id}")

    command = NotifyTicketCommand(
        make_settings(
            lark_chat_group_id_myphfe="oc_a", lark_chat_group_id_complex_setup="oc_b"
        ),
        fetcher=_fetcher(FetchResult(error="HTTP 500: boom")),
        chat_adapter=_chat_adapter(side_effect=send),
    )

    with caplog.at_level(logging.ERROR):
        result = await command.execute(make_event())

    assert [(o.destination.chat_id, o.success) for o in result.outcomes] == [
        ("oc_a", True),
        ("oc_b", False),
    ]
    assert "oc_b" in caplog.text


@pytest.mark.asyncio
async def test_no_destinations_skips_send(caplog):
    adapter = _chat_adapter()
    command = NotifyTicketCommand(
        make_settings(lark_chat_group_id="oc_placeholder_for_now"),
        fetcher=_fetcher(FetchResult(error="HTTP 500: boom")),
        chat_adapter=adapter,
    )

    with caplog.at_level(logging.WARNING):
        result = await command.execute(make_event())

    assert result.skipped_reason == SKIP_NO_DESTINATIONS
    adapter.send.assert_not_awaited()
    assert "No chat groups configured" in caplog.text


@pytest.mark.asyncio
async def test_unexpected_error_is_contained():
    command = NotifyTicketCommand(
        make_settings(lark_chat_group_id="oc_main"),
        fetcher=_fetcher(FetchResult(error="x")),
        chat_adapter=_chat_adapter(),
    )
    with patch.object(command.composer, "compose", side_effect=KeyError("boom")):
        result = await command.execute(make_event())
    assert result.skipped_reason == SKIP_ERROR
    assert result.dispatched is False


@pytest.mark.asyncio
async def test_strict_mode_setting_is_honored():
    adapter = _chat_adapter()
    command = NotifyTicketCommand(
        make_settings(lark_chat_group_id="oc_main", require_site_inspection=True),
        fetcher=_fetcher(FetchResult(error="x")),
        chat_adapter=adapter,
    )
    result = await command.execute(make_event())
    assert result.skipped_reason == SKIP_NOT_MONITORED
    adapter.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_assignment_is_attributed_to_assignee():
    adapter = _chat_adapter()
    command = NotifyTicketCommand(
        make_settings(lark_chat_group_id="oc_main", notification_format="text"),
        fetcher=_fetcher(FetchResult(error="x")),
        chat_adapter=adapter,
    )
    await command.execute(
        make_event(
            kind=EventKind.ASSIGNED,
            actor=Actor(name="Lead"),
            assignee=Actor(name="Field Engineer"),
        )
    )
    notification = adapter.send.await_args.args[1]
    assert "👤 Assigned to: Field Engineer" in notification.text


def test_attribution_actor_falls_back_to_actor():
    event = make_event(kind=EventKind.ASSIGNED, actor=Actor(name="Lead"))
    assert attribution_actor(event).name == "Lead"
    event = make_event(
        kind=EventKind.CLOSED, actor=Actor(name="Lead"), assignee=Actor(name="FE")
    )
    assert attribution_actor(event).name == "Lead"


def test_build_chat_adapter():
    assert isinstance(build_chat_adapter(make_settings()), UnconfiguredChatAdapter)
    adapter = build_chat_adapter(make_settings(lark_app_id="cli_a", lark_app_secret="s"))
    assert isinstance(adapter, LarkAdapter)


@pytest.mark.asyncio
async def test_missing_lark_credentials_fail_per_destination():
    command = NotifyTicketCommand(
        make_settings(lark_chat_group_id="oc_main"),
        fetcher=_fetcher(FetchResult(error="x")),
    )
    result = await command.execute(make_event())
    assert len(result.outcomes) == 1
    assert result.outcomes[0].success is False
    assert "not configured" in result.outcomes[0].error
