"""
RabbitMQ messaging: connection management, event dispatch and consumption
"""

from .connection import (
    ConnectionState,
    RabbitMQConnection,
    get_rabbitmq_connection,
    reset_rabbitmq_connection,
)
from .consumer import ConsumerConfig, ConsumerState, EventConsumer, EventHandler
from .dispatcher import DispatchResult, DispatcherConfig, EventDispatcher
from .errors import (
    ConfigurationError,
    ConsumerStoppedError,
    DecodeError,
    HandlerError,
    MessagingError,
    TransportError,
)
from .routing import any_pattern_matches, routing_key_for, routing_key_matches

__all__ = [
    "ConnectionState",
    "RabbitMQConnection",
    "get_rabbitmq_connection",
    "reset_rabbitmq_connection",
    "ConsumerConfig",
    "ConsumerState",
    "EventConsumer",
    "EventHandler",
    "DispatchResult",
    "DispatcherConfig",
    "EventDispatcher",
    "ConfigurationError",
    "ConsumerStoppedError",
    "DecodeError",
    "HandlerError",
    "MessagingError",
    "TransportError",
    "any_pattern_matches",
    "routing_key_for",
    "routing_key_matches",
]
