"""
Dependency injection for RabbitMQ messaging
"""

from intake_service.core.config import config
from intake_service.dispatchers.intake_completed import IntakeCompletedDispatcher
from intake_service.messaging.connection import RabbitMQConnection, get_rabbitmq_connection


def get_connection() -> RabbitMQConnection:
    """Process-wide RabbitMQ connection built from configuration"""
    return get_rabbitmq_connection(
        config.rabbitmq_uri,
        heartbeat=config.rabbitmq_heartbeat,
        timeout=config.rabbitmq_connect_timeout,
        publisher_confirms=config.rabbitmq_publisher_confirms,
    )


_intake_completed_dispatcher = None


def get_intake_completed_dispatcher() -> IntakeCompletedDispatcher:
    """Get singleton IntakeCompleted dispatcher instance"""
    global _intake_completed_dispatcher
    if _intake_completed_dispatcher is None:
        _intake_completed_dispatcher = IntakeCompletedDispatcher(
            get_connection(),
            exchange=config.intake_exchange,
            exchange_type=config.intake_exchange_type,
            durable=config.intake_exchange_durable,
        )
    return _intake_completed_dispatcher
