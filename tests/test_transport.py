"""Tests for magi/transport.py — no network."""

from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, urlsplit

import pytest
from websockets.datastructures import Headers
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK, InvalidStatus
from websockets.http11 import Response

from magi.errors import ReviewConnectionError, ReviewTransportError
from magi.transport import WebSocketConnection, WebSocketConnector


async def test_recv_returns_frames():
    ws = AsyncMock()
    ws.recv = AsyncMock(return_value='{"type": "pong"}')
    assert await WebSocketConnection(ws).recv() == '{"type": "pong"}'


async def test_normal_close_is_end_of_stream():
    ws = AsyncMock()
    ws.recv = AsyncMock(side_effect=ConnectionClosedOK(None, None))
    assert await WebSocketConnection(ws).recv() is None


async def test_abnormal_close_is_transport_error():
    ws = AsyncMock()
    ws.recv = AsyncMock(side_effect=ConnectionClosedError(None, None))
    with pytest.raises(ReviewTransportError):
        await WebSocketConnection(ws).recv()


async def test_send_failure_is_transport_error():
    ws = AsyncMock()
    ws.send = AsyncMock(side_effect=OSError("broken pipe"))
    with pytest.raises(ReviewTransportError, match="broken pipe"):
        await WebSocketConnection(ws).send("{}")


async def test_connect_signs_url(sample_gateway_config):
    fake_connect = AsyncMock(return_value=AsyncMock())
    with patch("magi.transport.connect", fake_connect):
        connection = await WebSocketConnector(sample_gateway_config).connect()

    assert isinstance(connection, WebSocketConnection)
    url = fake_connect.await_args.args[0]
    query = parse_qs(urlsplit(url).query)
    assert query["appid"] == ["test-app"]
    assert len(query["token"][0]) == 10
    assert fake_connect.await_args.kwargs["open_timeout"] == sample_gateway_config.open_timeout_sec


async def test_connect_failure_is_connection_error(sample_gateway_config):
    with patch("magi.transport.connect", AsyncMock(side_effect=OSError("Connection refused"))):
        with pytest.raises(ReviewConnectionError, match="Connection refused"):
            await WebSocketConnector(sample_gateway_config).connect()


async def test_connect_timeout_is_connection_error(sample_gateway_config):
    with patch("magi.transport.connect", AsyncMock(side_effect=TimeoutError())):
        with pytest.raises(ReviewConnectionError):
            await WebSocketConnector(sample_gateway_config).connect()


def _rejected() -> InvalidStatus:
    return InvalidStatus(Response(401, "Unauthorized", Headers(), b""))


async def test_rejected_token_at_minute_boundary_retries_once(sample_gateway_config):
    fake_connect = AsyncMock(side_effect=[_rejected(), AsyncMock()])
    with patch("magi.transport.connect", fake_connect), patch("magi.transport.minute_bucket", side_effect=[100, 101]):
        connection = await WebSocketConnector(sample_gateway_config).connect()

    assert isinstance(connection, WebSocketConnection)
    assert fake_connect.await_count == 2
    first, second = (parse_qs(urlsplit(call.args[0]).query)["token"][0] for call in fake_connect.await_args_list)
    assert first != second


async def test_rejected_token_within_same_minute_is_connection_error(sample_gateway_config):
    fake_connect = AsyncMock(side_effect=[_rejected(), AsyncMock()])
    with patch("magi.transport.connect", fake_connect), patch("magi.transport.minute_bucket", side_effect=[100, 100]):
        with pytest.raises(ReviewConnectionError):
            await WebSocketConnector(sample_gateway_config).connect()

    assert fake_connect.await_count == 1


async def test_second_rejection_after_retry_is_connection_error(sample_gateway_config):
    fake_connect = AsyncMock(side_effect=[_rejected(), _rejected()])
    with patch("magi.transport.connect", fake_connect), patch("magi.transport.minute_bucket", side_effect=[100, 101]):
        with pytest.raises(ReviewConnectionError):
            await WebSocketConnector(sample_gateway_config).connect()

    assert fake_connect.await_count == 2
