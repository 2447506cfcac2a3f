"""Database operations for forms and prompts tables."""

from datetime import datetime, timezone

from formchat.core.logging import get_logger
from formchat.core.schemas_forms import Form, FormInput, FormSummary, Prompt
from formchat.db.supabase_client import get_supabase

logger = get_logger(__name__)


def list_forms() -> list[FormSummary]:
    """
    List all forms with their response and question counts.

    Returns:
        FormSummary list, newest first
    """
    supabase = get_supabase()

    forms = (
        supabase.table("forms")
        .select("formid, title, description, active, created_at")
        .order("created_at", desc=True)
        .execute()
    ).data or []

    prompts = supabase.table("prompts").select("formid").execute().data or []
    responses = supabase.table("responses").select("formid").execute().data or []

    question_counts: dict[int, int] = {}
    for row in prompts:
        question_counts[row["formid"]] = question_counts.get(row["formid"], 0) + 1
    response_counts: dict[int, int] = {}
    for row in responses:
        response_counts[row["formid"]] = response_counts.get(row["formid"], 0) + 1

    return [
        FormSummary(
            **form,
            question_count=question_counts.get(form["formid"], 0),
            response_count=response_counts.get(form["formid"], 0),
        )
        for form in forms
    ]


def list_prompts(form_id: int) -> list[Prompt]:
    """Prompts of a form ordered by ``order`` ascending."""
    supabase = get_supabase()

    response = (
        supabase.table("prompts")
        .select("*")
        .eq("formid", form_id)
        .order("order", desc=False)
        .execute()
    )
    return [Prompt(**row) for row in response.data or []]


def get_form(form_id: int) -> Form | None:
    """
    Get a form together with its ordered prompts.

    Args:
        form_id: Form ID

    Returns:
        Form, or None if not found
    """
    supabase = get_supabase()

    response = supabase.table("forms").select("*").eq("formid", form_id).execute()
    if not response.data:
        return None

    form = Form(**response.data[0])
    form.prompts = list_prompts(form_id)
    return form


def _insert_prompts(form_id: int, form: FormInput) -> None:
    if not form.prompts:
        return
    rows = [
        {
            "formid": form_id,
            "question_text": prompt.question_text,
            "variable_name": prompt.variable_name,
            "validation_criteria": prompt.validation_criteria or None,
            "order": index,
        }
        for index, prompt in enumerate(form.prompts)
    ]
    get_supabase().table("prompts").insert(rows).execute()


def create_form(form: FormInput) -> int:
    """
    Create a form and its prompts with dense 0-based order.

    The form row is deleted again if inserting its prompts fails.

    Args:
        form: Form definition

    Returns:
        New form ID
    """
    supabase = get_supabase()

    response = (
        supabase.table("forms")
        .insert({
            "title": form.title,
            "description": form.description or "",
            "starter_prompt": form.starter_prompt or "",
            "output_prompt": form.output_prompt or "",
            "active": True,
        })
        .execute()
    )
    form_id = response.data[0]["formid"]

    try:
        _insert_prompts(form_id, form)
    except Exception:
        logger.error(f"Failed to insert prompts for form {form_id}, removing form row")
        supabase.table("forms").delete().eq("formid", form_id).execute()
        raise

    logger.info(
        f"Created form '{form.title}' with {len(form.prompts)} prompts",
        extra={"formid": form_id},
    )
    return form_id


def update_form(form_id: int, form: FormInput) -> None:
    """
    Update form fields and replace its prompts.

    Args:
        form_id: Form ID
        form: New definition; prompt order is the list order

    Raises:
        ValueError: If the form does not exist
    """
    supabase = get_supabase()

    response = (
        supabase.table("forms")
        .update({
            "title": form.title,
            "description": form.description or "",
            "starter_prompt": form.starter_prompt or "",
            "output_prompt": form.output_prompt or "",
            "updated_at": datetime.now(timezone.utc).isoformat(),
        })
        .eq("formid", form_id)
        .execute()
    )
    if not response.data:
        raise ValueError(f"Form not found: {form_id}")

    # Snapshot so a failed insert can put the old prompts back
    previous = list_prompts(form_id)
    supabase.table("prompts").delete().eq("formid", form_id).execute()
    try:
        _insert_prompts(form_id, form)
    except Exception:
        logger.error(f"Failed to replace prompts for form {form_id}, restoring previous prompts")
        supabase.table("prompts").delete().eq("formid", form_id).execute()
        if previous:
            supabase.table("prompts").insert([
                p.model_dump(exclude={"promptid"}) for p in previous
            ]).execute()
        raise

    logger.info(f"Updated form {form_id} ({len(form.prompts)} prompts)")


def deactivate_form(form_id: int) -> None:
    """
    Mark a form inactive.

    Raises:
        ValueError: If the form does not exist
    """
    supabase = get_supabase()

    response = (
        supabase.table("forms")
        .update({"active": False, "updated_at": datetime.now(timezone.utc).isoformat()})
        .eq("formid", form_id)
        .execute()
    )
    if not response.data:
        raise ValueError(f"Form not found: {form_id}")

    logger.info(f"Deactivated form {form_id}")


def delete_form(form_id: int) -> bool:
    """
    Delete a form with its prompts and responses.

    Returns:
        False if the form does not exist
    """
    supabase = get_supabase()

    existing = supabase.table("forms").select("formid").eq("formid", form_id).execute()
    if not existing.data:
        return False

    supabase.table("prompts").delete().eq("formid", form_id).execute()
    supabase.table("responses").delete().eq("formid", form_id).execute()
    supabase.table("forms").delete().eq("formid", form_id).execute()

    logger.info(f"Deleted form {form_id}")
    return True
