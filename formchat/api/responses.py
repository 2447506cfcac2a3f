"""API endpoints for submitting and deleting form responses."""

from fastapi import APIRouter, Depends, HTTPException, status

from formchat.core.auth_middleware import AuthContext, require_admin
from formchat.core.logging import get_logger
from formchat.core.schemas_forms import MessageResponse
from formchat.core.schemas_responses import (
    ResponseRecord,
    ResponsesDelete,
    ResponsesDeleted,
    ResponseSubmit,
)
from formchat.db import responses as responses_db

logger = get_logger(__name__)

router = APIRouter(prefix="/responses", tags=["responses"])


@router.post("/{form_id}", response_model=ResponseRecord)
async def submit_response(form_id: int, body: ResponseSubmit) -> ResponseRecord:
    """
    Store the full answer set of a response.

    A null ``responseid`` creates a new response; otherwise the existing row
    is overwritten.
    """
    try:
        return responses_db.save_response(form_id, body.responseid, body.answers)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Response not found") from e
    except Exception as e:
        logger.exception(f"Failed to save response for form {form_id}")
        raise HTTPException(status_code=500, detail="Failed to save response") from e


@router.post("/{form_id}/delete", response_model=ResponsesDeleted)
async def delete_responses(
    form_id: int,
    body: ResponsesDelete,
    auth: AuthContext = Depends(require_admin),
) -> ResponsesDeleted:
    """Delete the listed responses of a form."""
    if not body.responseIds:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="No response IDs provided"
        )

    try:
        count = responses_db.delete_responses(form_id, body.responseIds)
    except Exception as e:
        logger.exception(f"Failed to delete responses of form {form_id}")
        raise HTTPException(status_code=500, detail="Failed to delete responses") from e

    return ResponsesDeleted(message=f"Deleted {count} responses", count=count)


@router.delete("/{form_id}/{response_id}", response_model=MessageResponse)
async def delete_response(
    form_id: int,
    response_id: int,
    auth: AuthContext = Depends(require_admin),
) -> MessageResponse:
    try:
        deleted = responses_db.delete_response(form_id, response_id)
    except Exception as e:
        logger.exception(f"Failed to delete response {response_id}")
        raise HTTPException(status_code=500, detail="Failed to delete response") from e

    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Response not found")
    return MessageResponse(message="Response deleted successfully")
