"""Tests for IntercomWebhookCommand."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.commands.notify_ticket_command import PipelineResult
from app.commands.webhooks.intercom_command import ACK, IntercomWebhookCommand
from app.schemas.ticket import EventKind
from tests.fixtures.ticket_fixtures import intercom_webhook, make_settings


@pytest.fixture
def notify_command():
    command = MagicMock()
    command.execute = AsyncMock(return_value=PipelineResult(ticket_id="215470123"))
    return command


@pytest.fixture
def webhook_command(notify_command):
    return IntercomWebhookCommand(settings=make_settings(), notify_command=notify_command)


@pytest.mark.asyncio
async def test_handled_topic_runs_pipeline(webhook_command, notify_command):
    response = await webhook_command.execute(
        intercom_webhook(topic="conversation.admin.note.created")
    )

    assert response == ACK
    notify_command.execute.assert_awaited_once()
    event = notify_command.execute.await_args.args[0]
    assert event.kind == EventKind.NOTE_ADDED


@pytest.mark.asyncio
async def test_relay_returns_pipeline_result(webhook_command):
    result = await webhook_command.relay(intercom_webhook(topic="conversation.admin.closed"))
    assert result.ticket_id == "215470123"


@pytest.mark.asyncio
async def test_command_keeps_no_per_run_state(webhook_command):
    before = dict(vars(webhook_command))
    await webhook_command.execute(intercom_webhook(topic="conversation.admin.replied"))
    assert vars(webhook_command) == before


@pytest.mark.asyncio
async def test_unhandled_topic_is_acknowledged(webhook_command, notify_command):
    response = await webhook_command.execute(intercom_webhook(topic="user.created"))
    assert response == {"status": "ok"}
    assert await webhook_command.relay(intercom_webhook(topic="user.created")) is None
    notify_command.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_payload_without_conversation_is_acknowledged(webhook_command, notify_command):
    response = await webhook_command.execute({"type": "notification_event", "data": {}})
    assert response == ACK
    notify_command.execute.assert_not_awaited()
