"""
Form service containing business logic layer
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from intake_service.core.errors import ErrorResponse
from intake_service.core.logger import logger
from intake_service.dispatchers.intake_completed import IntakeCompletedDispatcher
from intake_service.events.intake_completed import IntakeCompletedPayload
from intake_service.messaging.errors import TransportError
from intake_service.models.form import Form, FormField
from intake_service.repositories.form import FormRepository
from intake_service.schemas.form import FormCompletionResponse


class FormService:
    """Service layer for intake form business logic"""

    def __init__(
        self,
        repository: FormRepository,
        dispatcher: Optional[IntakeCompletedDispatcher] = None,
    ):
        self.repository = repository
        self.dispatcher = dispatcher

    async def create(self, fields: Dict[str, FormField]) -> Form:
        """Create a new form with a generated id"""
        form = await self.repository.save(Form(fields=fields))

        logger.info(
            f"Created form {form.id}",
            metadata={"event": "create_form", "form_id": form.id, "field_count": len(fields)}
        )
        return form

    async def get_by_id(self, form_id: str) -> Optional[Form]:
        return await self.repository.find_by_id(form_id)

    async def get_all(self) -> List[Form]:
        forms = await self.repository.find_all()
        logger.info(f"Fetched {len(forms)} forms", metadata={"event": "list_forms", "count": len(forms)})
        return forms

    async def update(self, form_id: str, fields: Dict[str, FormField]) -> Optional[Form]:
        """Replace the fields of a form, keeping its id and creation time"""
        existing = await self.repository.find_by_id(form_id)
        if existing is None:
            return None

        updated = existing.model_copy(update={
            "fields": fields,
            "updated_at": datetime.now(timezone.utc),
        })
        form = await self.repository.save(updated)

        logger.info(f"Updated form {form_id}", metadata={"event": "update_form", "form_id": form_id})
        return form

    async def delete(self, form_id: str) -> bool:
        deleted = await self.repository.delete(form_id)
        if deleted:
            logger.info(f"Deleted form {form_id}", metadata={"event": "delete_form", "form_id": form_id})
        return deleted

    async def complete_form(
        self,
        form_id: str,
        answers: Dict[str, Any],
        completed_by: Optional[datetime] = None,
    ) -> FormCompletionResponse:
        """
        Publish an IntakeCompleted event for an existing form.

        The form document itself is updated by the IntakeCompleted consumer.
        """
        if self.dispatcher is None:
            raise ErrorResponse("Event publishing is not configured", status_code=503)

        form = await self.repository.find_by_id(form_id)
        if form is None:
            raise ErrorResponse("Form not found", status_code=404)

        event = self.dispatcher.build_event(
            form.id,
            IntakeCompletedPayload(
                form_id=form.id,
                completed_by=completed_by or datetime.now(timezone.utc),
                answers=answers,
            ),
        )

        try:
            published = await self.dispatcher.dispatch_event(event)
        except TransportError as e:
            raise ErrorResponse(
                "Could not publish intake completion",
                status_code=503,
                details={"form_id": form_id, "event_id": event.event_id, "reason": str(e)}
            )

        logger.info(
            f"Intake completed for form {form_id}",
            metadata={"event": "complete_form", "form_id": form_id, "event_id": event.event_id, "published": published}
        )
        return FormCompletionResponse(form_id=form.id, event_id=event.event_id, published=published)
