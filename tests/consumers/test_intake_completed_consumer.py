"""Tests for the IntakeCompleted consumer process"""
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from datetime import datetime, timezone

from intake_service.consumers.intake_completed import (
    IntakeCompletedHandler,
    IntakeCompletedWorker,
    build_consumer_config,
    check_bindings,
)
from intake_service.messaging.consumer import ConsumerConfig, ConsumerState
from intake_service.models.form import Form
from intake_service.repositories.form import FormRepository
from intake_service.repositories.processed_events import ProcessedEventRepository


class TestIntakeCompletedHandler:
    """Test the handler that records completions"""

    @pytest.fixture
    def forms(self):
        return AsyncMock(spec=FormRepository)

    @pytest.fixture
    def processed_events(self):
        ledger = AsyncMock(spec=ProcessedEventRepository)
        ledger.is_processed.return_value = False
        return ledger

    @pytest.mark.asyncio
    async def test_records_completion(self, forms, processed_events, completed_event):
        # Arrange
        forms.mark_completed.return_value = Form(id="form-123")
        handler = IntakeCompletedHandler(forms, processed_events)

        # Act
        await handler(completed_event)

        # Assert
        form_id, completed_at, answers = forms.mark_completed.call_args.args
        assert form_id == "form-123"
        assert completed_at == datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
        assert answers == {"name": "Ada Lovelace"}
        processed_events.mark_processed.assert_awaited_once()
        assert processed_events.mark_processed.call_args.args == (completed_event,)

    @pytest.mark.asyncio
    async def test_skips_processed_event(self, forms, processed_events, completed_event):
        processed_events.is_processed.return_value = True
        handler = IntakeCompletedHandler(forms, processed_events)

        await handler(completed_event)

        forms.mark_completed.assert_not_awaited()
        processed_events.mark_processed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_form_is_recorded_not_raised(self, forms, processed_events, completed_event):
        forms.mark_completed.return_value = None
        handler = IntakeCompletedHandler(forms, processed_events)

        await handler(completed_event)

        assert processed_events.mark_processed.call_args.kwargs["outcome"] == {"formFound": False}

    @pytest.mark.asyncio
    async def test_database_failure_propagates(self, forms, processed_events, completed_event):
        """Test failures reach the consumer so the delivery is requeued"""
        forms.mark_completed.side_effect = RuntimeError("database down")
        handler = IntakeCompletedHandler(forms, processed_events)

        with pytest.raises(RuntimeError):
            await handler(completed_event)

        processed_events.mark_processed.assert_not_awaited()


class TestConsumerSetup:
    """Test worker configuration"""

    def test_build_consumer_config_binds_intake_completed(self):
        consumer_config = build_consumer_config()

        assert consumer_config.routing_keys == ["intake.completed"]
        assert consumer_config.queue_name == "intake_completed_queue"
        assert consumer_config.exchange == "intake_events"

    def test_check_bindings_accepts_matching_pattern(self):
        assert check_bindings(ConsumerConfig(routing_keys=["intake.*"])) is True

    def test_check_bindings_flags_default_pattern(self):
        with patch("intake_service.consumers.intake_completed.logger") as mock_logger:
            assert check_bindings(ConsumerConfig(routing_keys=["form.*"])) is False

        mock_logger.warning.assert_called_once()


class TestIntakeCompletedWorker:
    """Test worker start and stop"""

    @pytest.mark.asyncio
    async def test_start_and_stop(self, mock_connection, queue, consumer_channel):
        # Arrange
        database = MagicMock()
        database.__getitem__.return_value = AsyncMock()
        worker = IntakeCompletedWorker(mock_connection)

        # Act
        with patch(
            "intake_service.consumers.intake_completed.get_database",
            AsyncMock(return_value=database),
        ), patch(
            "intake_service.consumers.intake_completed.close_mongo_connection",
            AsyncMock(),
        ) as mock_close_mongo:
            await worker.start()
            consuming = worker.consumer.state
            await worker.stop()

        # Assert
        assert consuming == ConsumerState.CONSUMING
        assert worker.consumer.handlers_for("IntakeCompleted")
        queue.consume.assert_awaited_once()
        consumer_channel.close.assert_awaited_once()
        mock_connection.close.assert_awaited_once()
        mock_close_mongo.assert_awaited_once()
