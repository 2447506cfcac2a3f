"""API endpoints for the stored LLM settings."""

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import ValidationError

from formchat.api.deps import get_gateway
from formchat.core.auth_middleware import AuthContext, require_admin
from formchat.core.config import get_settings
from formchat.core.llm import LLMGateway
from formchat.core.logging import get_logger
from formchat.core.schemas_forms import MessageResponse
from formchat.db import settings as settings_db

logger = get_logger(__name__)

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("")
async def get_all_settings(auth: AuthContext = Depends(require_admin)) -> dict[str, Any]:
    """Stored settings as a nested dict."""
    try:
        return settings_db.get_settings_tree()
    except Exception as e:
        logger.exception("Failed to get settings")
        raise HTTPException(status_code=500, detail="Failed to get settings") from e


@router.post("", response_model=MessageResponse)
async def update_settings(
    body: dict[str, Any] = Body(...),
    auth: AuthContext = Depends(require_admin),
    gateway: LLMGateway = Depends(get_gateway),
) -> MessageResponse:
    """
    Upsert every non-empty leaf of ``body`` and reload the gateway from storage.

    The merged settings are checked first; a wrongly typed value is rejected
    with 422 and nothing is written.
    """
    try:
        settings_db.check_settings_update(body, get_settings())
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False)) from e
    except Exception as e:
        logger.exception("Failed to read settings")
        raise HTTPException(status_code=500, detail="Failed to update settings") from e

    try:
        settings_db.update_settings(body)
        gateway.reconfigure(settings_db.load_llm_settings(get_settings()))
    except Exception as e:
        logger.exception("Failed to update settings")
        raise HTTPException(status_code=500, detail="Failed to update settings") from e

    return MessageResponse(message="Settings updated successfully")


@router.delete("/{key}", response_model=MessageResponse)
async def delete_setting(
    key: str,
    auth: AuthContext = Depends(require_admin),
    gateway: LLMGateway = Depends(get_gateway),
) -> MessageResponse:
    try:
        settings_db.delete_setting(key)
        gateway.reconfigure(settings_db.load_llm_settings(get_settings()))
    except Exception as e:
        logger.exception(f"Failed to delete setting {key}")
        raise HTTPException(status_code=500, detail="Failed to delete setting") from e

    return MessageResponse(message="Setting deleted successfully")
