"""
Form repository for data access layer following Repository pattern
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import ValidationError
from pymongo.errors import PyMongoError

from intake_service.core.errors import ErrorResponse
from intake_service.models.form import Form
from intake_service.repositories.base import MongoRepository


class FormRepository(MongoRepository[Form]):
    """Repository for intake form documents"""

    entity_name = "form"

    def to_entity(self, document: Dict[str, Any]) -> Form:
        doc = {key: value for key, value in document.items() if key != "_id"}
        try:
            return Form.model_validate(doc)
        except ValidationError as e:
            raise ErrorResponse(
                "Invalid form document structure",
                status_code=500,
                details={"form_id": doc.get("id"), "errors": e.error_count()}
            )

    def to_document(self, entity: Form) -> Dict[str, Any]:
        return entity.model_dump()

    async def mark_completed(
        self,
        form_id: str,
        completed_at: datetime,
        answers: Dict[str, Any],
    ) -> Optional[Form]:
        """Record completion on the form; None if the form does not exist"""
        try:
            result = await self.collection.update_one(
                {"id": form_id},
                {"$set": {
                    "completed_at": completed_at,
                    "answers": answers,
                    "updated_at": datetime.now(timezone.utc),
                }}
            )
        except PyMongoError as e:
            raise self._database_error("completion", e)

        if result.matched_count == 0:
            return None
        return await self.find_by_id(form_id)
