"""
Dependency injection for Form service and repository
"""

from fastapi import Depends

from intake_service.db.mongodb import get_form_collection
from intake_service.dependencies.messaging import get_intake_completed_dispatcher
from intake_service.dispatchers.intake_completed import IntakeCompletedDispatcher
from intake_service.repositories.form import FormRepository
from intake_service.services.form import FormService


async def get_form_repository() -> FormRepository:
    """Get form repository instance"""
    collection = await get_form_collection()
    return FormRepository(collection)


async def get_form_service(
    repository: FormRepository = Depends(get_form_repository),
    dispatcher: IntakeCompletedDispatcher = Depends(get_intake_completed_dispatcher),
) -> FormService:
    """Get form service instance"""
    return FormService(repository, dispatcher)
