"""
RabbitMQ connection manager
Owns one broker connection and the shared publishing channel
"""

import asyncio
from enum import Enum
from typing import Any, Optional

import aio_pika
from aio_pika.abc import AbstractChannel, AbstractConnection

from intake_service.core.logger import logger
from intake_service.messaging.errors import (
    TRANSPORT_EXCEPTIONS,
    ConfigurationError,
    TransportError,
)


class ConnectionState(str, Enum):
    """Connection states for the RabbitMQ connection manager.

    Attributes:
        DISCONNECTED: The connection or the shared channel is missing.
        CONNECTING: A connection attempt is in progress.
        CONNECTED: Connection and shared channel are open.
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class RabbitMQConnection:
    """
    Holds the broker connection and a shared channel used for publishing.

    Connecting is lazy and idempotent. When the broker closes the connection
    (or it fails) the cached handles are dropped, and the next call to
    ``get_channel`` or ``create_channel`` connects again.
    """

    CONNECT_RETRY_DELAY = 0.1

    def __init__(
        self,
        uri: str,
        heartbeat: int = 600,
        timeout: Optional[float] = None,
        publisher_confirms: bool = True,
    ):
        if not uri:
            raise ConfigurationError("A RabbitMQ URI is required")
        self.uri = uri
        self.heartbeat = heartbeat
        self.timeout = timeout
        self.publisher_confirms = publisher_confirms
        self._connection: Optional[AbstractConnection] = None
        self._channel: Optional[AbstractChannel] = None
        self._state = ConnectionState.DISCONNECTED

    @property
    def state(self) -> ConnectionState:
        return self._state

    def is_connected(self) -> bool:
        """True when both the connection and the shared channel are held"""
        return self._connection is not None and self._channel is not None

    async def connect(self) -> None:
        """
        Connect to RabbitMQ and open the shared channel.

        Raises:
            TransportError: if the broker cannot be reached
        """
        if self.is_connected():
            return

        if self._state == ConnectionState.CONNECTING:
            # Wait for the ongoing attempt instead of opening a second connection
            await asyncio.sleep(self.CONNECT_RETRY_DELAY)
            return await self.connect()

        self._state = ConnectionState.CONNECTING
        try:
            if self._connection is None or self._connection.is_closed:
                logger.info("Connecting to RabbitMQ...")
                connection = await aio_pika.connect(
                    self.uri,
                    heartbeat=self.heartbeat,
                    timeout=self.timeout,
                )
                connection.close_callbacks.add(self._on_connection_closed)
                self._connection = connection

            channel = await self._connection.channel(publisher_confirms=self.publisher_confirms)
            channel.close_callbacks.add(self._on_channel_closed)
            self._channel = channel
        except TRANSPORT_EXCEPTIONS as e:
            self._state = ConnectionState.DISCONNECTED
            logger.error(
                "Failed to connect to RabbitMQ",
                error=e,
                metadata={"event": "rabbitmq_connection_error"}
            )
            raise TransportError(f"Failed to connect to RabbitMQ: {e}") from e
        except BaseException:
            self._state = ConnectionState.DISCONNECTED
            raise

        self._state = ConnectionState.CONNECTED
        logger.info(
            "Connected to RabbitMQ successfully",
            metadata={"event": "rabbitmq_connected", "heartbeat": self.heartbeat}
        )

    def _on_connection_closed(self, sender: Any, exc: Optional[BaseException] = None) -> None:
        if sender is not self._connection:
            return
        if exc is not None:
            logger.error(
                "RabbitMQ connection error",
                error=exc,
                metadata={"event": "rabbitmq_connection_lost"}
            )
        else:
            logger.info("RabbitMQ connection closed")
        self._connection = None
        self._channel = None
        self._state = ConnectionState.DISCONNECTED

    def _on_channel_closed(self, sender: Any, exc: Optional[BaseException] = None) -> None:
        if sender is not self._channel:
            return
        logger.warning(
            "Shared RabbitMQ channel closed",
            metadata={"event": "rabbitmq_channel_closed", "reason": repr(exc) if exc else None}
        )
        self._channel = None
        self._state = ConnectionState.DISCONNECTED

    async def get_channel(self) -> AbstractChannel:
        """Shared channel, connecting first if necessary"""
        if self._channel is None:
            await self.connect()

        if self._channel is None:
            raise TransportError("Failed to establish RabbitMQ channel")

        return self._channel

    async def create_channel(self) -> AbstractChannel:
        """
        Open a new channel on the shared connection.

        Consumers get their own channel so a channel-level error on one of
        them cannot close the publishing channel.
        """
        if self._connection is None:
            await self.connect()

        if self._connection is None:
            raise TransportError("Failed to establish RabbitMQ connection")

        try:
            return await self._connection.channel()
        except TRANSPORT_EXCEPTIONS as e:
            raise TransportError(f"Failed to open RabbitMQ channel: {e}") from e

    async def close(self) -> None:
        """Close the shared channel and the connection"""
        channel, self._channel = self._channel, None
        connection, self._connection = self._connection, None
        self._state = ConnectionState.DISCONNECTED

        if channel is not None and not channel.is_closed:
            try:
                await channel.close()
            except TRANSPORT_EXCEPTIONS as e:
                logger.warning("Error closing RabbitMQ channel", metadata={"error": str(e)})

        if connection is not None and not connection.is_closed:
            try:
                await connection.close()
            except TRANSPORT_EXCEPTIONS as e:
                logger.warning("Error closing RabbitMQ connection", metadata={"error": str(e)})

        logger.info("RabbitMQ connection closed")


# Process-wide instance
_rabbitmq_connection: Optional[RabbitMQConnection] = None


def get_rabbitmq_connection(uri: Optional[str] = None, **options) -> RabbitMQConnection:
    """
    Get the process-wide RabbitMQ connection manager.

    The first call must supply the broker URI; later calls return the
    existing instance and ignore their arguments.

    Raises:
        ConfigurationError: if no instance exists yet and no URI is given
    """
    global _rabbitmq_connection
    if _rabbitmq_connection is None:
        if not uri:
            raise ConfigurationError("URI is required for first initialization")
        _rabbitmq_connection = RabbitMQConnection(uri, **options)
    return _rabbitmq_connection


def reset_rabbitmq_connection() -> None:
    """Forget the process-wide instance (it is not closed)"""
    global _rabbitmq_connection
    _rabbitmq_connection = None
