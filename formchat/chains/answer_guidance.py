"""Guidance on improving an answer, steered by the form's starter prompt."""

from formchat.core.llm import LLMGateway
from formchat.core.logging import get_logger
from formchat.core.schemas_forms import PreviousQA
from formchat.core.schemas_settings import LLMProfile

logger = get_logger(__name__)

SYSTEM_PROMPT = "You are a helpful assistant guiding users to improve their form responses."
DEFAULT_ASK = "How can I improve my answer?"


def build_guidance_messages(
    question: str,
    answer: str,
    validation_criteria: str | None,
    previous_qa: list[PreviousQA] | None = None,
    starter_prompt: str | None = None,
) -> list[dict[str, str]]:
    messages = [{"role": "system", "content": SYSTEM_PROMPT}]
    for qa in previous_qa or []:
        messages.append({"role": "user", "content": qa.question})
        messages.append({"role": "assistant", "content": qa.answer})

    messages.append({
        "role": "user",
        "content": (
            f"Question: {question}\n"
            f"Current Answer: {answer}\n"
            f"Validation Criteria: {validation_criteria or ''}\n"
            f"{starter_prompt or DEFAULT_ASK}"
        ),
    })
    return messages


async def get_answer_guidance(
    gateway: LLMGateway,
    question: str,
    answer: str,
    validation_criteria: str | None = None,
    previous_qa: list[PreviousQA] | None = None,
    starter_prompt: str | None = None,
) -> str:
    """
    Ask for advice on improving ``answer``.

    Args:
        gateway: LLM gateway
        question: Prompt question text
        answer: Current answer draft
        validation_criteria: Prompt criteria, if any
        previous_qa: Earlier question/answer pairs replayed as chat turns
        starter_prompt: Form-level persona instruction (replaces the default ask)

    Returns:
        Guidance text, stripped
    """
    logger.info(f"Getting answer guidance ({len(previous_qa or [])} previous answers)")
    response = await gateway.chat(
        build_guidance_messages(question, answer, validation_criteria, previous_qa, starter_prompt),
        LLMProfile.GUIDANCE,
    )
    return response.content.strip()
