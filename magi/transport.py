"""Duplex message transport to the review gateway."""

import logging
import time
from abc import ABC, abstractmethod

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import (
    ConnectionClosedError,
    ConnectionClosedOK,
    InvalidStatus,
    InvalidURI,
    WebSocketException,
)

from config.config_loader import GatewayConfig
from magi.auth import minute_bucket, signed_url
from magi.errors import ReviewConnectionError, ReviewTransportError

logger = logging.getLogger(__name__)


class Connection(ABC):
    """One open request/response stream."""

    @abstractmethod
    async def send(self, text: str) -> None:
        """Send one text frame.

        Raises:
            ReviewTransportError: If the frame cannot be sent.
        """
        ...

    @abstractmethod
    async def recv(self) -> str | bytes | None:
        """Return the next frame, or None once the peer closed the stream normally.

        Raises:
            ReviewTransportError: On an abnormal close or receive failure.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        ...


class Connector(ABC):
    @abstractmethod
    async def connect(self) -> Connection:
        """Open an authenticated connection.

        Raises:
            ReviewConnectionError: If the gateway cannot be reached or rejects us.
        """
        ...


class WebSocketConnection(Connection):
    def __init__(self, ws: ClientConnection) -> None:
        self._ws = ws

    async def send(self, text: str) -> None:
        try:
            await self._ws.send(text)
        except (WebSocketException, OSError) as exc:
            raise ReviewTransportError(f"Failed to send review request: {exc}") from exc

    async def recv(self) -> str | bytes | None:
        try:
            return await self._ws.recv()
        except ConnectionClosedOK:
            return None
        except ConnectionClosedError as exc:
            raise ReviewTransportError(f"Connection closed unexpectedly: {exc}") from exc
        except (WebSocketException, OSError) as exc:
            raise ReviewTransportError(f"Error receiving message: {exc}") from exc

    async def close(self) -> None:
        await self._ws.close()


class WebSocketConnector(Connector):
    """Connects to the gateway with a minute-bucketed token.

    A token minted just before a minute boundary may be rejected by the
    gateway; in that case the handshake is retried once with a fresh token.
    """

    def __init__(self, config: GatewayConfig) -> None:
        self._config = config

    def _url(self, bucket: int) -> str:
        return signed_url(
            self._config.url,
            self._config.app_id,
            self._config.app_secret,
            bucket,
            self._config.token_length,
        )

    async def _open(self, bucket: int) -> ClientConnection:
        return await connect(self._url(bucket), open_timeout=self._config.open_timeout_sec)

    async def connect(self) -> Connection:
        bucket = minute_bucket()
        logger.debug("Connecting to review gateway %s", self._config.url)
        try:
            try:
                ws = await self._open(bucket)
            except InvalidStatus:
                fresh = minute_bucket(time.time())
                if fresh == bucket:
                    raise
                logger.info("Gateway rejected token at minute boundary, retrying")
                ws = await self._open(fresh)
        except InvalidURI as exc:
            raise ReviewConnectionError(f"Invalid WebSocket URL: {exc}") from exc
        except (WebSocketException, OSError, TimeoutError) as exc:
            raise ReviewConnectionError(f"Failed to connect to review gateway: {exc}") from exc
        return WebSocketConnection(ws)
