"""Database operations for responses table."""

from datetime import datetime, timezone

from formchat.core.logging import get_logger
from formchat.core.schemas_responses import Answer, ResponseRecord
from formchat.db.supabase_client import get_supabase

logger = get_logger(__name__)


def save_response(form_id: int, response_id: int | None, answers: list[Answer]) -> ResponseRecord:
    """
    Create or update a stored response with the full answer set.

    Args:
        form_id: Form ID
        response_id: Existing response ID, or None to create one
        answers: Complete, insertion-ordered answer list

    Returns:
        Stored ResponseRecord

    Raises:
        ValueError: If ``response_id`` is given but no such response exists
    """
    supabase = get_supabase()
    payload = {"answers": [a.model_dump() for a in answers]}

    if response_id is None:
        response = (
            supabase.table("responses")
            .insert({"formid": form_id, "responses": payload})
            .execute()
        )
        record = ResponseRecord(**response.data[0])
        logger.info(
            f"Created response {record.responseid} for form {form_id}",
            extra={"formid": form_id, "extra_data": {"answer_count": len(answers)}},
        )
        return record

    response = (
        supabase.table("responses")
        .update({"responses": payload, "updated_at": datetime.now(timezone.utc).isoformat()})
        .eq("responseid", response_id)
        .eq("formid", form_id)
        .execute()
    )
    if not response.data:
        raise ValueError(f"Response not found: {response_id}")

    logger.info(
        f"Updated response {response_id} for form {form_id}",
        extra={"formid": form_id, "extra_data": {"answer_count": len(answers)}},
    )
    return ResponseRecord(**response.data[0])


def list_responses(form_id: int, response_ids: list[int] | None = None) -> list[ResponseRecord]:
    """
    List stored responses for a form, newest first.

    Args:
        form_id: Form ID
        response_ids: Optional filter

    Returns:
        ResponseRecord list
    """
    supabase = get_supabase()

    query = supabase.table("responses").select("*").eq("formid", form_id)
    if response_ids:
        query = query.in_("responseid", response_ids)
    response = query.order("created_at", desc=True).execute()

    return [ResponseRecord(**row) for row in response.data or []]


def get_response(form_id: int, response_id: int) -> ResponseRecord | None:
    supabase = get_supabase()

    response = (
        supabase.table("responses")
        .select("*")
        .eq("responseid", response_id)
        .eq("formid", form_id)
        .execute()
    )
    if not response.data:
        return None
    return ResponseRecord(**response.data[0])


def delete_response(form_id: int, response_id: int) -> bool:
    """Delete one response. Returns False if it did not exist."""
    supabase = get_supabase()

    response = (
        supabase.table("responses")
        .delete()
        .eq("responseid", response_id)
        .eq("formid", form_id)
        .execute()
    )
    if not response.data:
        return False

    logger.info(f"Deleted response {response_id} of form {form_id}")
    return True


def delete_responses(form_id: int, response_ids: list[int]) -> int:
    """
    Delete several responses of a form.

    Args:
        form_id: Form ID
        response_ids: Responses to delete; ids of other forms are left alone

    Returns:
        Number of rows deleted
    """
    supabase = get_supabase()

    response = (
        supabase.table("responses")
        .delete()
        .eq("formid", form_id)
        .in_("responseid", response_ids)
        .execute()
    )
    count = len(response.data or [])

    logger.info(f"Deleted {count} responses of form {form_id}")
    return count
