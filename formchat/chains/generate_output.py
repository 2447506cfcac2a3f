"""LLM chain that synthesizes the final document from a completed form."""

from formchat.core.errors import FormChatError, OutputGenerationFailure
from formchat.core.llm import LLMGateway
from formchat.core.logging import get_logger
from formchat.core.schemas_forms import Prompt
from formchat.core.schemas_responses import Answer
from formchat.core.schemas_settings import LLMProfile

logger = get_logger(__name__)

SYSTEM_PROMPT = "You are a helpful assistant generating final output based on form responses."


def build_output_messages(
    output_prompt: str,
    prompts: list[Prompt],
    answers: list[Answer],
) -> list[dict[str, str]]:
    """
    Transcript context for the output call.

    Pairs follow the order of ``answers`` rather than prompt order; answers
    whose variable has no prompt (e.g. a previous ``output``) are skipped.
    """
    by_variable = {p.variable_name: p for p in prompts}
    messages = [{"role": "system", "content": SYSTEM_PROMPT}]

    for answer in answers:
        prompt = by_variable.get(answer.variable_name)
        if prompt is None:
            continue
        messages.append({"role": "user", "content": prompt.question_text})
        messages.append({"role": "assistant", "content": answer.response_text})

    messages.append({"role": "user", "content": output_prompt})
    return messages


async def generate_output(
    gateway: LLMGateway,
    output_prompt: str,
    prompts: list[Prompt],
    answers: list[Answer],
) -> str:
    """
    Generate the final document for a completed form.

    Args:
        gateway: LLM gateway
        output_prompt: The form's output instruction
        prompts: Form prompts
        answers: Committed answers

    Returns:
        Generated text, verbatim

    Raises:
        OutputGenerationFailure: If the gateway call fails
    """
    logger.info(
        f"Generating final output ({len(prompts)} prompts, {len(answers)} answers)"
    )

    messages = build_output_messages(output_prompt, prompts, answers)
    try:
        response = await gateway.chat(messages, LLMProfile.OUTPUT)
    except FormChatError as e:
        logger.error(f"Error generating final output: {e}")
        raise OutputGenerationFailure(str(e)) from e

    return response.content
