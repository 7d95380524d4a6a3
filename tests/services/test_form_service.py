"""Unit tests for FormService"""
import pytest
from unittest.mock import AsyncMock, MagicMock
from datetime import datetime, timezone

from intake_service.core.errors import ErrorResponse
from intake_service.dispatchers.intake_completed import IntakeCompletedDispatcher
from intake_service.messaging.errors import TransportError
from intake_service.models.form import Form, FormField
from intake_service.repositories.form import FormRepository
from intake_service.services.form import FormService


class TestFormService:
    """Test cases for FormService CRUD"""

    @pytest.fixture
    def mock_repository(self):
        """Mock FormRepository"""
        repo = AsyncMock(spec=FormRepository)
        repo.save.side_effect = lambda form: form
        return repo

    @pytest.fixture
    def form_service(self, mock_repository):
        return FormService(mock_repository)

    @pytest.mark.asyncio
    async def test_create_generates_id(self, form_service, mock_repository, sample_fields):
        form = await form_service.create(sample_fields)

        assert form.id
        assert form.fields == sample_fields
        mock_repository.save.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_by_id(self, form_service, mock_repository, sample_form):
        mock_repository.find_by_id.return_value = sample_form

        assert await form_service.get_by_id("form-123") is sample_form
        mock_repository.find_by_id.assert_awaited_once_with("form-123")

    @pytest.mark.asyncio
    async def test_get_all(self, form_service, mock_repository, sample_form):
        mock_repository.find_all.return_value = [sample_form]

        assert await form_service.get_all() == [sample_form]

    @pytest.mark.asyncio
    async def test_update_replaces_fields(self, form_service, mock_repository, sample_form):
        # Arrange
        mock_repository.find_by_id.return_value = sample_form
        new_fields = {"email": FormField(id="email", label="Email", type="text")}

        # Act
        form = await form_service.update("form-123", new_fields)

        # Assert
        assert form.id == "form-123"
        assert form.fields == new_fields
        assert form.created_at == sample_form.created_at
        assert form.updated_at >= sample_form.updated_at

    @pytest.mark.asyncio
    async def test_update_missing_form(self, form_service, mock_repository):
        mock_repository.find_by_id.return_value = None

        assert await form_service.update("missing", {}) is None
        mock_repository.save.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete(self, form_service, mock_repository):
        mock_repository.delete.return_value = True

        assert await form_service.delete("form-123") is True
        mock_repository.delete.assert_awaited_once_with("form-123")


class TestCompleteForm:
    """Test cases for intake completion"""

    @pytest.fixture
    def mock_repository(self, sample_form):
        repo = AsyncMock(spec=FormRepository)
        repo.find_by_id.return_value = sample_form
        return repo

    @pytest.fixture
    def mock_dispatcher(self):
        dispatcher = MagicMock(spec=IntakeCompletedDispatcher)
        dispatcher.build_event.side_effect = IntakeCompletedDispatcher.build_event
        dispatcher.dispatch_event = AsyncMock(return_value=True)
        return dispatcher

    @pytest.mark.asyncio
    async def test_publishes_intake_completed(self, mock_repository, mock_dispatcher):
        # Arrange
        service = FormService(mock_repository, mock_dispatcher)
        completed_at = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)

        # Act
        result = await service.complete_form("form-123", {"name": "Ada"}, completed_at)

        # Assert
        event = mock_dispatcher.dispatch_event.call_args.args[0]
        assert event.event_type == "IntakeCompleted"
        assert event.aggregate_id == "form-123"
        assert event.typed_payload.completed_by == completed_at
        assert event.answers == {"name": "Ada"}
        assert result.form_id == "form-123"
        assert result.event_id == event.event_id
        assert result.published is True

    @pytest.mark.asyncio
    async def test_defaults_completion_time(self, mock_repository, mock_dispatcher):
        service = FormService(mock_repository, mock_dispatcher)

        await service.complete_form("form-123", {})

        event = mock_dispatcher.dispatch_event.call_args.args[0]
        assert event.typed_payload.completed_by.tzinfo is not None

    @pytest.mark.asyncio
    async def test_rejected_publish_reported(self, mock_repository, mock_dispatcher):
        mock_dispatcher.dispatch_event.return_value = False
        service = FormService(mock_repository, mock_dispatcher)

        result = await service.complete_form("form-123", {})

        assert result.published is False

    @pytest.mark.asyncio
    async def test_missing_form(self, mock_repository, mock_dispatcher):
        mock_repository.find_by_id.return_value = None
        service = FormService(mock_repository, mock_dispatcher)

        with pytest.raises(ErrorResponse) as exc_info:
            await service.complete_form("missing", {})

        assert exc_info.value.status_code == 404
        mock_dispatcher.dispatch_event.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_broker_unavailable(self, mock_repository, mock_dispatcher):
        mock_dispatcher.dispatch_event.side_effect = TransportError("connection refused")
        service = FormService(mock_repository, mock_dispatcher)

        with pytest.raises(ErrorResponse) as exc_info:
            await service.complete_form("form-123", {})

        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_no_dispatcher(self, mock_repository):
        service = FormService(mock_repository)

        with pytest.raises(ErrorResponse) as exc_info:
            await service.complete_form("form-123", {})

        assert exc_info.value.status_code == 503
