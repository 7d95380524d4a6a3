"""
Messaging error taxonomy
"""

import asyncio

from aio_pika.exceptions import AMQPException, ChannelInvalidStateError

# Exceptions raised at the broker-client boundary
TRANSPORT_EXCEPTIONS = (AMQPException, ChannelInvalidStateError, OSError, asyncio.TimeoutError)


class MessagingError(Exception):
    """Base class for messaging failures"""


class ConfigurationError(MessagingError):
    """Messaging used before it was configured (e.g. no broker URI)"""


class TransportError(MessagingError):
    """Connect, declare, bind, publish or acknowledgement failure"""


class DecodeError(MessagingError):
    """Message body is not a valid domain event"""


class HandlerError(MessagingError):
    """A registered event handler failed"""

    def __init__(self, event_type: str, handler_name: str, cause: BaseException):
        self.event_type = event_type
        self.handler_name = handler_name
        self.cause = cause
        super().__init__(f"Handler {handler_name} failed for {event_type}: {cause!r}")


class ConsumerStoppedError(MessagingError):
    """Lifecycle call on a consumer that has already been stopped"""
