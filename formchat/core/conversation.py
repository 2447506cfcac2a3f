"""Conversation state machine that walks one user through a form.

A session is always in exactly one of the states below. Events are methods on
:class:`ConversationSession`; an event that is not legal in the current state
raises :class:`InvalidTransition`, and an event arriving while another one is
still running raises :class:`SessionBusy`.

    AwaitingAnswer(i)
        submit_answer ──valid──────────────► commit ─► advance
                      └─invalid────────────► AwaitingValidationDecision(i)
        ask_question ──────────────────────► AskingSideQuestion(i)

    AwaitingValidationDecision(i)
        accept_suggestion / use_original ──► commit ─► advance
        revise_answer ─────────────────────► AwaitingAnswer(i, draft)
        ask_question ──────────────────────► AskingSideQuestion(i)

    AskingSideQuestion(i)
        submit_side_question ──────────────► (stays)
        return_to_question ────────────────► AwaitingAnswer(i)

    advance: next prompt, else GeneratingOutput (if the form has an output
    prompt), else Completed.

The machine talks to the outside world only through a
:class:`ConversationBackend`, so the same code runs in-process against the
database or remotely against the REST API.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass, field
from typing import Protocol
from uuid import uuid4

from formchat.chains.validate_answer import ValidationResult
from formchat.core.errors import (
    FormChatError,
    FormNotFound,
    InvalidTransition,
    MalformedFormFailure,
    OutputGenerationFailure,
    PersistenceFailure,
    SessionBusy,
    ValidationUnavailable,
)
from formchat.core.logging import get_logger, log_with_context
from formchat.core.schemas_chat import ChatContext, QAPair
from formchat.core.schemas_forms import Form, Prompt
from formchat.core.schemas_responses import OUTPUT_VARIABLE, Answer, upsert_answer

logger = get_logger(__name__)

SIDE_QUESTION_INTRO = (
    "What would you like to know? I can help explain the question or provide guidance."
)
SIDE_QUESTION_FOLLOWUP = (
    "Would you like to ask another question or return to answering the form?"
)
OUTPUT_INTRO = "Based on your responses, here is the generated output:"
COMPLETED_MESSAGE = (
    "Thank you for completing the form! Your responses have been saved successfully."
)


class ConversationBackend(Protocol):
    """Everything the state machine needs from the outside world."""

    async def load_form(self, form_id: int) -> Form | None: ...

    async def validate_answer(self, form: Form, prompt_index: int, answer: str) -> ValidationResult:
        """Raises ValidationUnavailable."""
        ...

    async def save_response(
        self, form_id: int, response_id: int | None, answers: list[Answer]
    ) -> int:
        """Persist the full answer set and return the response id. Raises PersistenceFailure."""
        ...

    async def generate_output(self, form: Form, answers: list[Answer]) -> str:
        """Raises OutputGenerationFailure."""
        ...

    async def answer_side_question(self, question: str, context: ChatContext) -> str: ...


# States ----------------------------------------------------------------------


@dataclass(frozen=True)
class AwaitingAnswer:
    prompt_index: int
    draft: str | None = None


@dataclass(frozen=True)
class AwaitingValidationDecision:
    prompt_index: int
    rejected_answer: str
    feedback: str
    suggestion: str | None = None


@dataclass(frozen=True)
class AskingSideQuestion:
    return_prompt_index: int
    # Held while the user is away; not used to resume
    decision: AwaitingValidationDecision | None = None


@dataclass(frozen=True)
class GeneratingOutput:
    pass


@dataclass(frozen=True)
class Completed:
    pass


ConversationState = (
    AwaitingAnswer
    | AwaitingValidationDecision
    | AskingSideQuestion
    | GeneratingOutput
    | Completed
)


@dataclass
class ChatMessage:
    """One line of the transcript shown to the user."""

    role: str  # "assistant" | "user"
    text: str
    kind: str = "message"  # message | title | description | question | validation | error | output


@dataclass
class PendingCommit:
    """An accepted answer whose write has not succeeded yet."""

    prompt_index: int
    text: str


@dataclass
class ConversationSession:
    """
    One user's walk through one form.

    Build it with :meth:`start`; drive it with the event methods. Failures are
    appended to the transcript as an error line and then raised.
    """

    backend: ConversationBackend
    form: Form
    session_id: str = field(default_factory=lambda: uuid4().hex)
    state: ConversationState = field(default_factory=lambda: AwaitingAnswer(0))
    answers: list[Answer] = field(default_factory=list)
    response_id: int | None = None
    pending: PendingCommit | None = None
    output: str | None = None
    transcript: list[ChatMessage] = field(default_factory=list)
    busy: bool = False

    @classmethod
    async def start(
        cls,
        backend: ConversationBackend,
        form_id: int,
        session_id: str | None = None,
    ) -> "ConversationSession":
        """
        Load the form and open a session at its first prompt.

        Raises:
            FormNotFound: If the form does not exist
            MalformedFormFailure: If the form has no prompts
        """
        form = await backend.load_form(form_id)
        if form is None:
            raise FormNotFound(f"Form not found: {form_id}")
        if not form.prompts:
            raise MalformedFormFailure(f"Form {form_id} has no prompts")

        session = cls(backend=backend, form=form)
        if session_id:
            session.session_id = session_id

        session._say(form.title, kind="title")
        if form.description:
            session._say(form.description, kind="description")
        session._say(form.prompts[0].question_text, kind="question")

        session._log("Conversation started", prompt_count=len(form.prompts))
        return session

    # Read-only views -----------------------------------------------------------

    @property
    def state_name(self) -> str:
        return type(self.state).__name__

    @property
    def is_complete(self) -> bool:
        return isinstance(self.state, Completed)

    @property
    def current_prompt(self) -> Prompt | None:
        index = self._prompt_index()
        if index is None:
            return None
        return self.form.prompts[index]

    def state_fields(self) -> dict:
        return asdict(self.state)

    # Events --------------------------------------------------------------------

    async def submit_answer(self, text: str) -> None:
        """
        Validate an answer to the current prompt.

        Valid answers are committed and the session advances; invalid ones
        move to AwaitingValidationDecision with the feedback shown.

        Raises:
            ValueError: If ``text`` is blank
            InvalidTransition: If not awaiting an answer
            ValidationUnavailable: If the validator failed (nothing committed)
            PersistenceFailure: If the commit could not be stored
        """
        async with self._interaction():
            state = self._expect(AwaitingAnswer, "submit_answer")
            if not text or not text.strip():
                raise ValueError("Answer must not be empty")

            self._say(text, role="user")
            try:
                result = await self.backend.validate_answer(self.form, state.prompt_index, text)
            except ValidationUnavailable as e:
                self._fail(e)
                raise

            if result.is_valid:
                await self._commit(state.prompt_index, text)
                return

            self.state = AwaitingValidationDecision(
                prompt_index=state.prompt_index,
                rejected_answer=text,
                feedback=result.feedback or "",
                suggestion=result.suggestion,
            )
            self._say(result.feedback or "", kind="validation")
            self._log(
                "Answer rejected",
                prompt_index=state.prompt_index,
                has_suggestion=result.suggestion is not None,
            )

    async def accept_suggestion(self) -> None:
        """Commit the suggested answer without validating it again."""
        async with self._interaction():
            state = self._expect(AwaitingValidationDecision, "accept_suggestion")
            if state.suggestion is None:
                raise InvalidTransition("No suggestion is available for this answer")

            self._say(state.suggestion, role="user")
            await self._commit(state.prompt_index, state.suggestion)

    async def use_original(self) -> None:
        """Commit the rejected answer as-is."""
        async with self._interaction():
            state = self._expect(AwaitingValidationDecision, "use_original")
            await self._commit(state.prompt_index, state.rejected_answer)

    async def revise_answer(self) -> None:
        """Go back to answering, with the rejected text as the draft."""
        async with self._interaction():
            state = self._expect(AwaitingValidationDecision, "revise_answer")
            self.state = AwaitingAnswer(state.prompt_index, draft=state.rejected_answer)

    async def ask_question(self) -> None:
        """Open the side-question channel for the current prompt."""
        async with self._interaction():
            state = self._expect((AwaitingAnswer, AwaitingValidationDecision), "ask_question")
            decision = state if isinstance(state, AwaitingValidationDecision) else None
            self.state = AskingSideQuestion(state.prompt_index, decision=decision)
            self._say(SIDE_QUESTION_INTRO)

    async def submit_side_question(self, question: str) -> str:
        """
        Forward a free-text question along with the form context.

        A failure is shown in the transcript and re-raised; the state is left
        as it was.

        Returns:
            The assistant's reply
        """
        async with self._interaction():
            state = self._expect(AskingSideQuestion, "submit_side_question")
            if not question or not question.strip():
                raise ValueError("Question must not be empty")

            self._say(question, role="user")
            try:
                reply = await self.backend.answer_side_question(
                    question, self._side_question_context(state.return_prompt_index)
                )
            except FormChatError as e:
                self._fail(e, "Sorry, there was an error processing your question. Please try again.")
                raise

            self._say(reply)
            self._say(SIDE_QUESTION_FOLLOWUP)
            return reply

    async def return_to_question(self) -> None:
        async with self._interaction():
            state = self._expect(AskingSideQuestion, "return_to_question")
            self.state = AwaitingAnswer(state.return_prompt_index)
            self._say(self.form.prompts[state.return_prompt_index].question_text, kind="question")

    async def retry_commit(self) -> None:
        """Re-attempt the accepted answer whose write failed."""
        async with self._interaction():
            if self.pending is None or isinstance(self.state, Completed):
                raise InvalidTransition("There is no unsaved answer to retry")
            await self._commit(self.pending.prompt_index, self.pending.text)

    async def retry_output(self) -> None:
        """Re-run output generation after a failure."""
        async with self._interaction():
            self._expect(GeneratingOutput, "retry_output")
            await self._generate_output()

    # Internals -----------------------------------------------------------------

    @asynccontextmanager
    async def _interaction(self) -> AsyncIterator[None]:
        if self.busy:
            raise SessionBusy(f"Session {self.session_id} is busy")
        self.busy = True
        try:
            yield
        finally:
            self.busy = False

    def _expect(self, expected, event: str):
        if not isinstance(self.state, expected):
            raise InvalidTransition(f"{event} is not allowed in state {self.state_name}")
        return self.state

    def _prompt_index(self) -> int | None:
        state = self.state
        if isinstance(state, (AwaitingAnswer, AwaitingValidationDecision)):
            return state.prompt_index
        if isinstance(state, AskingSideQuestion):
            return state.return_prompt_index
        return None

    async def _commit(self, prompt_index: int, text: str) -> None:
        prompt = self.form.prompts[prompt_index]
        answers = upsert_answer(self.answers, Answer(variable_name=prompt.variable_name, response_text=text))

        try:
            response_id = await self.backend.save_response(self.form.formid, self.response_id, answers)
        except PersistenceFailure as e:
            self.pending = PendingCommit(prompt_index, text)
            self._fail(e)
            raise

        self.answers = answers
        self.response_id = response_id
        self.pending = None
        self._log("Answer committed", prompt_index=prompt_index, response_id=response_id)
        await self._advance(prompt_index)

    async def _advance(self, prompt_index: int) -> None:
        next_index = prompt_index + 1
        if next_index < len(self.form.prompts):
            self.state = AwaitingAnswer(next_index)
            self._say(self.form.prompts[next_index].question_text, kind="question")
            return

        if self.form.has_output_prompt:
            self.state = GeneratingOutput()
            self._say("Generating your output based on all responses...")
            await self._generate_output()
            return

        self.state = Completed()
        self._say(COMPLETED_MESSAGE)
        self._log("Conversation completed", answer_count=len(self.answers))

    async def _generate_output(self) -> None:
        try:
            output = await self.backend.generate_output(self.form, self.answers)
        except OutputGenerationFailure as e:
            self._fail(e)
            raise

        answers = upsert_answer(self.answers, Answer(variable_name=OUTPUT_VARIABLE, response_text=output))
        try:
            response_id = await self.backend.save_response(self.form.formid, self.response_id, answers)
        except PersistenceFailure as e:
            self._fail(e)
            raise

        self.answers = answers
        self.response_id = response_id
        self.output = output
        self.state = Completed()
        self._say(OUTPUT_INTRO)
        self._say(output, kind="output")
        self._say(COMPLETED_MESSAGE)
        self._log("Conversation completed with output", answer_count=len(self.answers))

    def _side_question_context(self, prompt_index: int) -> ChatContext:
        previous = []
        for answer in self.answers:
            prompt = self.form.prompt_for(answer.variable_name)
            if prompt is not None:
                previous.append(QAPair(question=prompt.question_text, answer=answer.response_text))
        return ChatContext(
            title=self.form.title,
            description=self.form.description,
            currentPrompt=self.form.prompts[prompt_index].question_text,
            previousQuestions=previous,
        )

    def _say(self, text: str, role: str = "assistant", kind: str = "message") -> None:
        self.transcript.append(ChatMessage(role=role, text=text, kind=kind))

    def _fail(self, error: FormChatError, text: str | None = None) -> None:
        self._say(text or error.user_message, kind="error")
        log_with_context(
            logger,
            logging.WARNING,
            f"Conversation step failed: {error}",
            session_id=self.session_id,
            error_type=type(error).__name__,
            state=self.state_name,
        )

    def _log(self, msg: str, **fields) -> None:
        log_with_context(
            logger,
            logging.INFO,
            msg,
            session_id=self.session_id,
            formid=self.form.formid,
            state=self.state_name,
            **fields,
        )
