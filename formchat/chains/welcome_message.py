"""Short conversational copy: form welcome lines and friendlier question wording."""

from formchat.core.llm import LLMGateway
from formchat.core.logging import get_logger
from formchat.core.schemas_settings import LLMProfile

logger = get_logger(__name__)

WELCOME_SYSTEM_PROMPT = (
    "You are a friendly assistant. Create a brief, welcoming message for a form. "
    "Keep it under 2 sentences."
)

REPHRASE_SYSTEM_PROMPT = (
    "You are a friendly conversational assistant. Rephrase the following form question "
    "in a more natural, chatty way. Keep it concise but friendly. "
    "Don't add any additional questions or information."
)


async def generate_welcome_message(gateway: LLMGateway, title: str, description: str | None) -> str:
    """One or two sentence greeting for the start of a form."""
    logger.info(f"Generating welcome message for form '{title}'")
    response = await gateway.chat(
        [
            {"role": "system", "content": WELCOME_SYSTEM_PROMPT},
            {"role": "user", "content": f"Form title: {title}\nDescription: {description or ''}"},
        ],
        LLMProfile.WELCOME,
    )
    return response.content.strip()


async def make_prompt_conversational(gateway: LLMGateway, question_text: str) -> str:
    """Reword a form question in a chattier tone without changing what it asks."""
    response = await gateway.chat(
        [
            {"role": "system", "content": REPHRASE_SYSTEM_PROMPT},
            {"role": "user", "content": question_text},
        ],
        LLMProfile.CHAT,
    )
    return response.content.strip()
