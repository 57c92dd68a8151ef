"""Tests for LarkAdapter."""

import json
from unittest.mock import MagicMock, patch

import pytest

from app.adapters.lark import AUTH_PATH, MESSAGES_PATH, LarkAdapter, LarkAPIError
from app.schemas.notification import (
    Card,
    CardAction,
    CardBlock,
    CardHeader,
    CardNotification,
    TextNotification,
)

BASE_URL = "https://open.larksuite.com/open-apis"


def _response(status_code=200, payload=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload if payload is not None else {}
    return resp


def _token_response(expire=7200):
    return _response(
        payload={"code": 0, "tenant_access_token": "t-123", "expire": expire}
    )


def _card():
    return Card(
        header=CardHeader(title="🆕 NEW SITE INSPECTION REQUEST", subtitle="Ticket #1"),
        blocks=[CardBlock(tag="markdown", content="**Merchant Details:**")],
        action=CardAction(label="View in Intercom", url="https://example.com/1"),
    )


@pytest.fixture
def lark_adapter():
    return LarkAdapter(app_id="cli_a", app_secret="secret", base_url=BASE_URL + "/")


@pytest.mark.asyncio
@patch("app.adapters.lark.requests.request")
@patch("app.adapters.lark.requests.post")
async def test_send_text(mock_post, mock_request, lark_adapter):
    mock_post.return_value = _token_response()
    mock_request.return_value = _response(
        payload={"code": 0, "data": {"message_id": "om_1"}}
    )

    result = await lark_adapter.send("oc_chat", TextNotification(text="héllo"))

    assert result.success is True
    assert result.platform_message_id == "om_1"
    mock_post.assert_called_once()
    assert mock_post.call_args.args[0] == BASE_URL + AUTH_PATH
    method, url = mock_request.call_args.args
    kwargs = mock_request.call_args.kwargs
    assert (method, url) == ("POST", BASE_URL + MESSAGES_PATH)
    assert kwargs["params"] == {"receive_id_type": "chat_id"}
    assert kwargs["headers"]["Authorization"] == "Bearer t-123"
    assert kwargs["json"]["receive_id"] == "oc_chat"
    assert kwargs["json"]["msg_type"] == "text"
    assert json.loads(kwargs["json"]["content"]) == {"text": "héllo"}
    assert "héllo" in kwargs["json"]["content"]


@pytest.mark.asyncio
@patch("app.adapters.lark.requests.request")
@patch("app.adapters.lark.requests.post")
async def test_send_card(mock_post, mock_request, lark_adapter):
    mock_post.return_value = _token_response()
    mock_request.return_value = _response(
        payload={"code": 0, "data": {"message_id": "om_2"}}
    )

    await lark_adapter.send("oc_chat", CardNotification(card=_card()))

    body = mock_request.call_args.kwargs["json"]
    assert body["msg_type"] == "interactive"
    content = json.loads(body["content"])
    assert content["header"]["title"]["content"] == "🆕 NEW SITE INSPECTION REQUEST"
    assert content["elements"][-1]["actions"][0]["url"] == "https://example.com/1"


@pytest.mark.asyncio
@patch("app.adapters.lark.requests.request")
@patch("app.adapters.lark.requests.post")
async def test_token_is_cached(mock_post, mock_request, lark_adapter):
    mock_post.return_value = _token_response()
    mock_request.return_value = _response(payload={"code": 0, "data": {}})

    await lark_adapter.send("oc_a", TextNotification(text="1"))
    result = await lark_adapter.send("oc_b", TextNotification(text="2"))

    assert mock_post.call_count == 1
    assert mock_request.call_count == 2
    assert result.platform_message_id is None


@pytest.mark.asyncio
@patch("app.adapters.lark.requests.request")
@patch("app.adapters.lark.requests.post")
async def test_expired_token_is_refreshed(mock_post, mock_request, lark_adapter):
    mock_post.return_value = _token_response(expire=0)
    mock_request.return_value = _response(payload={"code": 0, "data": {}})

    await lark_adapter.send("oc_a", TextNotification(text="1"))
    await lark_adapter.send("oc_a", TextNotification(text="2"))

    assert mock_post.call_count == 2


@pytest.mark.asyncio
@patch("app.adapters.lark.requests.post")
async def test_token_rejected_raises(mock_post, lark_adapter):
    mock_post.return_value = _response(payload={"code": 10003, "msg": "invalid app_secret"})

    with pytest.raises(LarkAPIError, match="invalid app_secret"):
        await lark_adapter.send("oc_a", TextNotification(text="1"))


@pytest.mark.asyncio
@patch("app.adapters.lark.requests.request")
@patch("app.adapters.lark.requests.post")
async def test_api_error_code_raises(mock_post, mock_request, lark_adapter):
    mock_post.return_value = _token_response()
    mock_request.return_value = _response(
        status_code=400, payload={"code": 230002, "msg": "bot not in chat"}
    )

    with pytest.raises(LarkAPIError, match="bot not in chat"):
        await lark_adapter.send("oc_a", TextNotification(text="1"))


def test_unsupported_notification_type():
    with pytest.raises(TypeError):
        LarkAdapter._message_content("plain string")
