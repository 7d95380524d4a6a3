"""
Form API endpoints
Clean API layer with dependency injection
"""

from typing import List

from fastapi import APIRouter, Depends, Response, status

from intake_service.core.errors import ErrorResponse, ErrorResponseModel
from intake_service.dependencies.form import get_form_service
from intake_service.schemas.form import (
    FormCompletionRequest,
    FormCompletionResponse,
    FormCreate,
    FormResponse,
    FormUpdate,
)
from intake_service.services.form import FormService

router = APIRouter()


@router.get("", response_model=List[FormResponse])
async def list_forms(service: FormService = Depends(get_form_service)):
    """Retrieve all forms"""
    return await service.get_all()


@router.get(
    "/{form_id}",
    response_model=FormResponse,
    responses={404: {"model": ErrorResponseModel}},
)
async def get_form(form_id: str, service: FormService = Depends(get_form_service)):
    """Retrieve a form by id"""
    form = await service.get_by_id(form_id)
    if form is None:
        raise ErrorResponse("Form not found", status_code=404)
    return form


@router.post("", response_model=FormResponse, status_code=status.HTTP_201_CREATED)
async def create_form(body: FormCreate, service: FormService = Depends(get_form_service)):
    """Create a new form"""
    return await service.create(body.fields)


@router.put(
    "/{form_id}",
    response_model=FormResponse,
    responses={404: {"model": ErrorResponseModel}},
)
async def update_form(form_id: str, body: FormUpdate, service: FormService = Depends(get_form_service)):
    """Replace the fields of an existing form"""
    form = await service.update(form_id, body.fields)
    if form is None:
        raise ErrorResponse("Form not found", status_code=404)
    return form


@router.delete(
    "/{form_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponseModel}},
)
async def delete_form(form_id: str, service: FormService = Depends(get_form_service)):
    """Delete a form by id"""
    if not await service.delete(form_id):
        raise ErrorResponse("Form not found", status_code=404)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{form_id}/complete",
    response_model=FormCompletionResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={404: {"model": ErrorResponseModel}, 503: {"model": ErrorResponseModel}},
)
async def complete_form(
    form_id: str,
    body: FormCompletionRequest,
    service: FormService = Depends(get_form_service),
):
    """
    Mark an intake form as completed.

    Publishes an IntakeCompleted event; the form is updated asynchronously
    by the consumer, hence 202.
    """
    return await service.complete_form(form_id, body.answers, body.completed_by)
