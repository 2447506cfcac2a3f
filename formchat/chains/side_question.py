"""Answer a free-text side question asked while filling in a form."""

from formchat.core.llm import LLMGateway
from formchat.core.logging import get_logger
from formchat.core.schemas_chat import ChatContext
from formchat.core.schemas_settings import LLMProfile

logger = get_logger(__name__)


def build_side_question_messages(question: str, context: ChatContext) -> list[dict[str, str]]:
    """System message carrying the form context, then the user's question."""
    history = "\n".join(
        f"Q{i}: {qa.question}\nA{i}: {qa.answer}\n"
        for i, qa in enumerate(context.previousQuestions, start=1)
    )
    system_message = (
        "You are a helpful AI assistant helping users fill out a form. Here is the context:\n"
        f"Title: {context.title}\n"
        f"Description: {context.description or ''}\n"
        f"Current Question: {context.currentPrompt}\n"
        "\n"
        "Previous questions and answers:\n"
        f"{history}"
    )
    return [
        {"role": "system", "content": system_message},
        {"role": "user", "content": question},
    ]


async def answer_side_question(gateway: LLMGateway, question: str, context: ChatContext) -> str:
    """Return the assistant's reply; gateway errors propagate."""
    logger.info(f"Answering side question for prompt: {context.currentPrompt[:80]}")
    response = await gateway.chat(
        build_side_question_messages(question, context), LLMProfile.CONVERSATIONAL
    )
    return response.content
