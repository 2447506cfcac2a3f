"""API endpoints for forms, prompts and the per-form LLM helpers."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response

from formchat.api.deps import get_gateway
from formchat.api.errors import to_http_exception
from formchat.chains.answer_guidance import get_answer_guidance
from formchat.chains.generate_output import generate_output
from formchat.chains.validate_answer import validate_answer
from formchat.chains.welcome_message import generate_welcome_message, make_prompt_conversational
from formchat.core.auth_middleware import AuthContext, require_admin
from formchat.core.errors import FormChatError
from formchat.core.llm import LLMGateway
from formchat.core.logging import get_logger
from formchat.core.schemas_forms import (
    Form,
    FormCreated,
    FormInput,
    FormSummary,
    GuidanceRequest,
    GuidanceResponse,
    MessageResponse,
    OutputAnswer,
    OutputRequest,
    OutputResponse,
    ValidateRequest,
    ValidateResponse,
    WelcomeResponse,
)
from formchat.core.schemas_responses import OUTPUT_VARIABLE, Answer
from formchat.db import forms as forms_db
from formchat.db import responses as responses_db
from formchat.services.exports import responses_to_csv

logger = get_logger(__name__)

router = APIRouter(prefix="/forms", tags=["forms"])


def _load_form(form_id: int) -> Form:
    form = forms_db.get_form(form_id)
    if form is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Form not found")
    return form


# ============================================================================
# Form CRUD
# ============================================================================


@router.get("", response_model=list[FormSummary])
async def list_forms(auth: AuthContext = Depends(require_admin)) -> list[FormSummary]:
    """List all forms with response and question counts."""
    try:
        return forms_db.list_forms()
    except Exception as e:
        logger.exception("Failed to list forms")
        raise HTTPException(status_code=500, detail="Failed to fetch forms") from e


@router.post("", response_model=FormCreated, status_code=status.HTTP_201_CREATED)
async def create_form(
    body: FormInput,
    auth: AuthContext = Depends(require_admin),
) -> FormCreated:
    """Create a form; prompt order is the order of ``prompts``."""
    if not body.title or not body.title.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Title is required")

    try:
        form_id = forms_db.create_form(body)
        return FormCreated(formId=form_id)
    except Exception as e:
        logger.exception("Failed to create form")
        raise HTTPException(status_code=500, detail="Failed to create form") from e


@router.get("/{form_id}", response_model=Form)
async def get_form(form_id: int) -> Form:
    """Form details with prompts ordered by ``order``."""
    try:
        return _load_form(form_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Failed to get form {form_id}")
        raise HTTPException(status_code=500, detail="Error getting form details") from e


@router.put("/{form_id}", response_model=MessageResponse)
async def update_form(
    form_id: int,
    body: FormInput,
    auth: AuthContext = Depends(require_admin),
) -> MessageResponse:
    """Update form fields and replace all prompts."""
    if not body.title or not body.title.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Title is required")

    try:
        forms_db.update_form(form_id, body)
        return MessageResponse(message="Form updated successfully")
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Form not found") from e
    except Exception as e:
        logger.exception(f"Failed to update form {form_id}")
        raise HTTPException(status_code=500, detail="Failed to update form") from e


@router.patch("/{form_id}/deactivate", response_model=MessageResponse)
async def deactivate_form(
    form_id: int,
    auth: AuthContext = Depends(require_admin),
) -> MessageResponse:
    try:
        forms_db.deactivate_form(form_id)
        return MessageResponse(message="Form deactivated successfully")
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Form not found") from e
    except Exception as e:
        logger.exception(f"Failed to deactivate form {form_id}")
        raise HTTPException(status_code=500, detail="Failed to deactivate form") from e


@router.delete("/{form_id}", response_model=MessageResponse)
async def delete_form(
    form_id: int,
    auth: AuthContext = Depends(require_admin),
) -> MessageResponse:
    """Delete a form together with its prompts and responses."""
    try:
        deleted = forms_db.delete_form(form_id)
    except Exception as e:
        logger.exception(f"Failed to delete form {form_id}")
        raise HTTPException(status_code=500, detail="Failed to delete form") from e

    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Form not found")
    return MessageResponse(message="Form deleted successfully")


# ============================================================================
# Responses (admin views)
# ============================================================================


@router.get("/{form_id}/responses")
async def list_form_responses(
    form_id: int,
    auth: AuthContext = Depends(require_admin),
) -> dict:
    """The form, its prompts and all stored responses, newest first."""
    form = _load_form(form_id)
    try:
        records = responses_db.list_responses(form_id)
    except Exception as e:
        logger.exception(f"Failed to list responses for form {form_id}")
        raise HTTPException(status_code=500, detail="Failed to get responses") from e

    return {
        "form": form.model_dump(exclude={"prompts"}),
        "prompts": [p.model_dump() for p in form.prompts],
        "responses": [
            {**r.model_dump(), "answers": [a.model_dump() for a in r.answers]} for r in records
        ],
    }


@router.get("/{form_id}/export")
async def export_responses(
    form_id: int,
    responseIds: str | None = Query(None, description="Comma-separated response IDs"),
    auth: AuthContext = Depends(require_admin),
) -> Response:
    """Stored responses as a CSV attachment."""
    form = _load_form(form_id)

    ids = None
    if responseIds:
        try:
            ids = [int(part) for part in responseIds.split(",") if part.strip()]
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid responseIds"
            ) from e

    try:
        records = responses_db.list_responses(form_id, ids)
    except Exception as e:
        logger.exception(f"Failed to export responses for form {form_id}")
        raise HTTPException(status_code=500, detail="Failed to export responses") from e

    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    return Response(
        content=responses_to_csv(form, records),
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename=form_responses_{form_id}_{stamp}.csv"
        },
    )


# ============================================================================
# LLM helpers
# ============================================================================


@router.post("/{form_id}/validate", response_model=ValidateResponse)
async def validate_form_answer(
    form_id: int,
    body: ValidateRequest,
    gateway: LLMGateway = Depends(get_gateway),
) -> ValidateResponse:
    """
    Validate one answer.

    Returns ``{"validation": null}`` when the answer is valid, otherwise the
    full feedback text.
    """
    if body.promptIndex is None or not body.answer:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Prompt index and answer are required",
        )

    form = _load_form(form_id)
    if not 0 <= body.promptIndex < len(form.prompts):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Prompt not found")

    prompt = form.prompts[body.promptIndex]
    try:
        result = await validate_answer(
            gateway,
            prompt.question_text,
            body.answer,
            prompt.variable_name,
            body.validationCriteria or prompt.validation_criteria,
        )
    except FormChatError as e:
        raise to_http_exception(e) from e

    return ValidateResponse(validation=result.feedback)


@router.post("/{form_id}/output", response_model=OutputResponse)
async def generate_form_output(
    form_id: int,
    body: OutputRequest,
    gateway: LLMGateway = Depends(get_gateway),
) -> OutputResponse:
    """Synthesize the final document from the submitted answers."""
    form = _load_form(form_id)
    if not form.has_output_prompt:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No output prompt configured for this form",
        )

    answers = [Answer(**r.model_dump()) for r in body.responses]
    try:
        output = await generate_output(gateway, form.output_prompt, form.prompts, answers)
    except FormChatError as e:
        raise to_http_exception(e) from e

    return OutputResponse(
        output=output,
        answers=[
            OutputAnswer(variable_name="output_prompt", response_text=form.output_prompt),
            OutputAnswer(variable_name=OUTPUT_VARIABLE, response_text=output),
        ],
    )


@router.post("/{form_id}/prompts/{prompt_id}/guidance", response_model=GuidanceResponse)
async def get_prompt_guidance(
    form_id: int,
    prompt_id: int,
    body: GuidanceRequest,
    gateway: LLMGateway = Depends(get_gateway),
) -> GuidanceResponse:
    """Advice on improving an answer, steered by the form's starter prompt."""
    form = _load_form(form_id)
    prompt = next((p for p in form.prompts if p.promptid == prompt_id), None)
    if prompt is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Prompt not found")

    try:
        guidance = await get_answer_guidance(
            gateway,
            prompt.question_text,
            body.answer,
            prompt.validation_criteria,
            body.previousQA,
            form.starter_prompt,
        )
    except FormChatError as e:
        raise to_http_exception(e) from e

    return GuidanceResponse(guidance=guidance)


@router.post("/{form_id}/prompts/{prompt_id}/conversational", response_model=MessageResponse)
async def get_conversational_prompt(
    form_id: int,
    prompt_id: int,
    gateway: LLMGateway = Depends(get_gateway),
) -> MessageResponse:
    """The prompt's question reworded in a chattier tone."""
    form = _load_form(form_id)
    prompt = next((p for p in form.prompts if p.promptid == prompt_id), None)
    if prompt is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Prompt not found")

    try:
        message = await make_prompt_conversational(gateway, prompt.question_text)
    except FormChatError as e:
        raise to_http_exception(e) from e

    return MessageResponse(message=message)


@router.post("/{form_id}/welcome", response_model=WelcomeResponse)
async def get_welcome_message(
    form_id: int,
    gateway: LLMGateway = Depends(get_gateway),
) -> WelcomeResponse:
    form = _load_form(form_id)
    try:
        message = await generate_welcome_message(gateway, form.title, form.description)
    except FormChatError as e:
        raise to_http_exception(e) from e

    return WelcomeResponse(message=message)
