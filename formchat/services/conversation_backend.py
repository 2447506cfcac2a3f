"""In-process conversation backend: database plus LLM chains."""

import asyncio

from formchat.chains.generate_output import generate_output
from formchat.chains.side_question import answer_side_question
from formchat.chains.validate_answer import ValidationResult, validate_answer
from formchat.core.errors import PersistenceFailure
from formchat.core.llm import LLMGateway
from formchat.core.logging import get_logger
from formchat.core.schemas_chat import ChatContext
from formchat.core.schemas_forms import Form
from formchat.core.schemas_responses import Answer
from formchat.db import forms as forms_db
from formchat.db import responses as responses_db

logger = get_logger(__name__)


class LocalConversationBackend:
    """Backend used by the server's own session endpoints."""

    def __init__(self, gateway: LLMGateway):
        self.gateway = gateway

    async def load_form(self, form_id: int) -> Form | None:
        return await asyncio.to_thread(forms_db.get_form, form_id)

    async def validate_answer(self, form: Form, prompt_index: int, answer: str) -> ValidationResult:
        prompt = form.prompts[prompt_index]
        return await validate_answer(
            self.gateway,
            prompt.question_text,
            answer,
            prompt.variable_name,
            prompt.validation_criteria,
        )

    async def save_response(
        self, form_id: int, response_id: int | None, answers: list[Answer]
    ) -> int:
        try:
            record = await asyncio.to_thread(
                responses_db.save_response, form_id, response_id, answers
            )
        except Exception as e:
            logger.exception(f"Failed to save response for form {form_id}")
            raise PersistenceFailure(f"Failed to save response: {e}") from e
        return record.responseid

    async def generate_output(self, form: Form, answers: list[Answer]) -> str:
        return await generate_output(self.gateway, form.output_prompt or "", form.prompts, answers)

    async def answer_side_question(self, question: str, context: ChatContext) -> str:
        return await answer_side_question(self.gateway, question, context)
