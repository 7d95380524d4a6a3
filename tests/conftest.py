"""Shared test fixtures"""
import pytest
from unittest.mock import AsyncMock, MagicMock
from datetime import datetime, timezone

from intake_service.events.domain_event import DomainEvent
from intake_service.messaging.connection import reset_rabbitmq_connection
from intake_service.models.form import Form, FormField

from broker_mocks import make_channel, make_exchange, make_queue


@pytest.fixture(autouse=True)
def reset_connection_singleton():
    """Each test starts without a process-wide RabbitMQ connection"""
    reset_rabbitmq_connection()
    yield
    reset_rabbitmq_connection()


@pytest.fixture
def exchange():
    return make_exchange()


@pytest.fixture
def queue():
    return make_queue()


@pytest.fixture
def publish_channel(exchange):
    return make_channel(exchange=exchange)


@pytest.fixture
def consumer_channel(queue):
    return make_channel(queue=queue)


@pytest.fixture
def mock_connection(publish_channel, consumer_channel):
    """Mock RabbitMQConnection handing out a shared and a dedicated channel"""
    connection = MagicMock()
    connection.get_channel = AsyncMock(return_value=publish_channel)
    connection.create_channel = AsyncMock(return_value=consumer_channel)
    connection.connect = AsyncMock()
    connection.close = AsyncMock()
    connection.is_connected.return_value = True
    return connection


@pytest.fixture
def mock_collection():
    """Mock MongoDB collection for testing"""
    collection = AsyncMock()
    return collection


@pytest.fixture
def sample_fields():
    """Field definitions for a small intake form"""
    return {
        "name": FormField(id="name", label="Full name", type="text"),
        "dob": FormField(id="dob", label="Date of birth", type="date"),
    }


@pytest.fixture
def sample_form(sample_fields):
    return Form(id="form-123", fields=sample_fields)


@pytest.fixture
def mock_form_doc():
    """Mock form document from MongoDB"""
    now = datetime(2024, 5, 1, 12, 0, 0)
    return {
        "_id": "65f0c0ffee0000000000abcd",
        "id": "form-123",
        "fields": {
            "name": {"id": "name", "label": "Full name", "type": "text"},
        },
        "created_at": now,
        "updated_at": now,
        "completed_at": None,
        "answers": None,
    }


@pytest.fixture
def completed_event():
    """IntakeCompleted event as it arrives from the wire"""
    return DomainEvent.restore({
        "eventId": "evt-1",
        "eventType": "IntakeCompleted",
        "aggregateId": "form-123",
        "occurredOn": datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc),
        "payload": {
            "formId": "form-123",
            "completedBy": "2024-05-01T12:30:00Z",
            "answers": {"name": "Ada Lovelace"},
        },
    })
