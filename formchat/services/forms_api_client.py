"""HTTP conversation backend: drives a session against a running FormChat server.

Used by ``scripts/chat_form.py``; the state machine itself runs client-side
and every side effect goes through the REST API.
"""

import httpx

from formchat.chains.validate_answer import ValidationResult, extract_suggestion
from formchat.core.errors import (
    OutputGenerationFailure,
    PersistenceFailure,
    ProtocolError,
    ProviderError,
    ValidationUnavailable,
)
from formchat.core.logging import get_logger
from formchat.core.schemas_chat import ChatContext
from formchat.core.schemas_forms import Form
from formchat.core.schemas_responses import Answer

logger = get_logger(__name__)


class HttpConversationBackend:
    """Conversation backend speaking to ``{base_url}/api``."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=f"{self.base_url}/api", timeout=self.timeout, transport=self._transport
        )

    async def load_form(self, form_id: int) -> Form | None:
        try:
            async with self._client() as client:
                resp = await client.get(f"/forms/{form_id}")
                if resp.status_code == 404:
                    return None
                resp.raise_for_status()
            return Form(**resp.json())
        except httpx.HTTPError as e:
            logger.error(f"Loading form {form_id} failed: {e}")
            raise ProviderError(str(e)) from e
        except (ValueError, TypeError) as e:
            logger.error(f"Unreadable form {form_id} from server: {e}")
            raise ProtocolError(str(e)) from e

    async def validate_answer(self, form: Form, prompt_index: int, answer: str) -> ValidationResult:
        prompt = form.prompts[prompt_index]
        try:
            async with self._client() as client:
                resp = await client.post(
                    f"/forms/{form.formid}/validate",
                    json={
                        "promptIndex": prompt_index,
                        "answer": answer,
                        "validationCriteria": prompt.validation_criteria,
                    },
                )
                resp.raise_for_status()
            feedback = resp.json()["validation"]
        except httpx.HTTPError as e:
            logger.error(f"Validation request failed: {e}")
            raise ValidationUnavailable(str(e)) from e
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Unreadable validation reply: {e}")
            raise ValidationUnavailable(str(e)) from e

        if feedback is None:
            return ValidationResult()
        return ValidationResult(feedback=feedback, suggestion=extract_suggestion(feedback))

    async def save_response(
        self, form_id: int, response_id: int | None, answers: list[Answer]
    ) -> int:
        try:
            async with self._client() as client:
                resp = await client.post(
                    f"/responses/{form_id}",
                    json={
                        "responseid": response_id,
                        "answers": [a.model_dump() for a in answers],
                    },
                )
                resp.raise_for_status()
            return int(resp.json()["responseid"])
        except httpx.HTTPError as e:
            logger.error(f"Saving response failed: {e}")
            raise PersistenceFailure(str(e)) from e
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Unreadable save reply: {e}")
            raise PersistenceFailure(str(e)) from e

    async def generate_output(self, form: Form, answers: list[Answer]) -> str:
        try:
            async with self._client() as client:
                resp = await client.post(
                    f"/forms/{form.formid}/output",
                    json={"responses": [a.model_dump() for a in answers]},
                )
                resp.raise_for_status()
            return resp.json()["output"]
        except httpx.HTTPError as e:
            logger.error(f"Output generation request failed: {e}")
            raise OutputGenerationFailure(str(e)) from e
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Unreadable output reply: {e}")
            raise OutputGenerationFailure(str(e)) from e

    async def answer_side_question(self, question: str, context: ChatContext) -> str:
        try:
            async with self._client() as client:
                resp = await client.post(
                    "/chat", json={"question": question, "context": context.model_dump()}
                )
                resp.raise_for_status()
            return resp.json()["response"]
        except httpx.HTTPError as e:
            logger.error(f"Chat request failed: {e}")
            raise ProviderError(str(e)) from e
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Unreadable chat reply: {e}")
            raise ProtocolError(str(e)) from e
