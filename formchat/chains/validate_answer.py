"""LLM chain that judges whether a form answer is adequate.

The model replies with the literal token ``VALID`` or with friendly feedback
that ends in exactly one enumerated replacement answer::

    Your answer could be more specific. Here's a suggestion:
    1. "The quarterly revenue grew 12%."

Usage:
    from formchat.chains.validate_answer import validate_answer

    result = await validate_answer(gateway, question, answer, "revenue", criteria)
    if not result.is_valid:
        show(result.feedback, result.suggestion)
"""

import logging
import re

from pydantic import BaseModel

from formchat.core.errors import FormChatError, ValidationUnavailable
from formchat.core.llm import LLMGateway
from formchat.core.logging import get_logger, log_with_context
from formchat.core.schemas_settings import LLMProfile

logger = get_logger(__name__)

VALID_TOKEN = "VALID"

SYSTEM_PROMPT = (
    "You are a helpful assistant that validates form responses. "
    "Be friendly and constructive in your feedback."
)

_QUOTED = re.compile(r'"([^"]+)"')


class ValidationResult(BaseModel):
    """Outcome of one validation; ``feedback`` is None when the answer is valid."""

    feedback: str | None = None
    suggestion: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.feedback is None


def build_validation_messages(
    question: str,
    answer: str,
    validation_criteria: str | None = None,
) -> list[dict[str, str]]:
    """Messages for the validation call."""
    criteria_line = f"Validation Criteria: {validation_criteria}" if validation_criteria else ""
    criteria_check = (
        "   - Does it meet the validation criteria listed above?" if validation_criteria else ""
    )

    user_prompt = f"""Please validate the following answer for a form question.

Question: {question}
Answer: "{answer}"
{criteria_line}

Instructions:
1. Evaluate if the answer meets these criteria:
   - Is it complete and relevant to the question?
   - Does it satisfy any specific validation criteria provided?
{criteria_check}

2. If the answer is good, respond with exactly "{VALID_TOKEN}"

3. If the answer needs improvement, provide:
   - A friendly explanation of what could be improved
   - Exactly one specific, concretely worded suggested answer

Format your response like this if improvements are needed:
Your answer could be more [improvement area]. Here's a suggestion:
1. [Complete suggested answer]

Remember to be constructive and encouraging!"""

    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]


def extract_suggestion(feedback: str | None) -> str | None:
    """
    Pull the suggested replacement answer out of validation feedback.

    Takes the first line that starts with ``1.``; returns the first
    double-quoted substring on it, otherwise the rest of the line after the
    marker. Returns None when there is no such line or nothing follows it.
    """
    if not feedback:
        return None

    for line in feedback.splitlines():
        stripped = line.strip()
        if not stripped.startswith("1."):
            continue
        match = _QUOTED.search(stripped)
        if match:
            return match.group(1)
        remainder = stripped[2:].strip()
        return remainder or None

    return None


def parse_validation(raw: str) -> ValidationResult:
    """Map raw model text to a ValidationResult (exact, case-sensitive ``VALID``)."""
    text = raw.strip()
    if text == VALID_TOKEN:
        return ValidationResult()
    return ValidationResult(feedback=text, suggestion=extract_suggestion(text))


async def validate_answer(
    gateway: LLMGateway,
    question: str,
    answer: str,
    variable_name: str,
    validation_criteria: str | None = None,
) -> ValidationResult:
    """
    Ask the LLM whether ``answer`` adequately answers ``question``.

    Args:
        gateway: LLM gateway (throttled)
        question: Prompt question text
        answer: User's answer, verbatim
        variable_name: Prompt variable name (for logging)
        validation_criteria: Optional free-text criteria

    Returns:
        ValidationResult

    Raises:
        ValidationUnavailable: If the gateway call fails
    """
    log_with_context(
        logger,
        logging.INFO,
        "Validating form response",
        variable_name=variable_name,
        has_criteria=bool(validation_criteria),
    )

    messages = build_validation_messages(question, answer, validation_criteria)
    try:
        response = await gateway.chat(messages, LLMProfile.VALIDATION)
    except FormChatError as e:
        logger.error(f"Validation unavailable for {variable_name}: {e}")
        raise ValidationUnavailable(str(e)) from e

    result = parse_validation(response.content)
    log_with_context(
        logger,
        logging.INFO,
        "Validation result",
        variable_name=variable_name,
        is_valid=result.is_valid,
        has_suggestion=result.suggestion is not None,
    )
    return result
