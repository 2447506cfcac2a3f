"""Server-driven conversation sessions.

Each endpoint fires one event on a :class:`ConversationSession` kept in the
in-memory session store and returns the session's updated view. Core errors
are mapped to status codes by :mod:`formchat.api.errors`.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from formchat.api.deps import get_conversation_backend, get_session_store
from formchat.api.errors import to_http_exception
from formchat.core.conversation import ConversationSession
from formchat.core.errors import FormChatError
from formchat.services.conversation_backend import LocalConversationBackend
from formchat.services.session_store import SessionStore

router = APIRouter(prefix="/sessions", tags=["sessions"])


# ============================================================================
# Pydantic Models
# ============================================================================


class SessionCreate(BaseModel):
    formId: int


class AnswerSubmit(BaseModel):
    text: str = Field(..., min_length=1)


class SideQuestionSubmit(BaseModel):
    question: str = Field(..., min_length=1, max_length=4000)


class TranscriptMessage(BaseModel):
    role: str
    text: str
    kind: str


class SessionView(BaseModel):
    """Snapshot of a session after an event."""

    sessionId: str
    formId: int | None
    state: str
    stateData: dict[str, Any]
    currentQuestion: str | None = None
    responseId: int | None = None
    answers: list[dict[str, str]]
    hasPendingCommit: bool
    output: str | None = None
    complete: bool
    transcript: list[TranscriptMessage]
    reply: str | None = None


def _view(session: ConversationSession, reply: str | None = None) -> SessionView:
    prompt = session.current_prompt
    return SessionView(
        sessionId=session.session_id,
        formId=session.form.formid,
        state=session.state_name,
        stateData=session.state_fields(),
        currentQuestion=prompt.question_text if prompt else None,
        responseId=session.response_id,
        answers=[a.model_dump() for a in session.answers],
        hasPendingCommit=session.pending is not None,
        output=session.output,
        complete=session.is_complete,
        transcript=[
            TranscriptMessage(role=m.role, text=m.text, kind=m.kind) for m in session.transcript
        ],
        reply=reply,
    )


def _lookup(session_id: str, store: SessionStore) -> ConversationSession:
    session = store.get(session_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return session


async def _fire(event: Callable[[], Awaitable[Any]]) -> Any:
    try:
        return await event()
    except FormChatError as e:
        raise to_http_exception(e) from e
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e


# ============================================================================
# Endpoints
# ============================================================================


@router.post("", response_model=SessionView, status_code=status.HTTP_201_CREATED)
async def create_session(
    body: SessionCreate,
    backend: LocalConversationBackend = Depends(get_conversation_backend),
    store: SessionStore = Depends(get_session_store),
) -> SessionView:
    """Open a conversation at the form's first question."""
    try:
        session = await ConversationSession.start(backend, body.formId)
    except FormChatError as e:
        raise to_http_exception(e) from e

    store.add(session)
    return _view(session)


@router.get("/{session_id}", response_model=SessionView)
async def get_session(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
) -> SessionView:
    return _view(_lookup(session_id, store))


@router.post("/{session_id}/answer", response_model=SessionView)
async def submit_answer(
    session_id: str,
    body: AnswerSubmit,
    store: SessionStore = Depends(get_session_store),
) -> SessionView:
    session = _lookup(session_id, store)
    await _fire(lambda: session.submit_answer(body.text))
    return _view(session)


@router.post("/{session_id}/accept-suggestion", response_model=SessionView)
async def accept_suggestion(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
) -> SessionView:
    session = _lookup(session_id, store)
    await _fire(session.accept_suggestion)
    return _view(session)


@router.post("/{session_id}/use-original", response_model=SessionView)
async def use_original(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
) -> SessionView:
    session = _lookup(session_id, store)
    await _fire(session.use_original)
    return _view(session)


@router.post("/{session_id}/revise", response_model=SessionView)
async def revise_answer(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
) -> SessionView:
    session = _lookup(session_id, store)
    await _fire(session.revise_answer)
    return _view(session)


@router.post("/{session_id}/ask-question", response_model=SessionView)
async def ask_question(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
) -> SessionView:
    session = _lookup(session_id, store)
    await _fire(session.ask_question)
    return _view(session)


@router.post("/{session_id}/side-question", response_model=SessionView)
async def submit_side_question(
    session_id: str,
    body: SideQuestionSubmit,
    store: SessionStore = Depends(get_session_store),
) -> SessionView:
    session = _lookup(session_id, store)
    reply = await _fire(lambda: session.submit_side_question(body.question))
    return _view(session, reply=reply)


@router.post("/{session_id}/return", response_model=SessionView)
async def return_to_question(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
) -> SessionView:
    session = _lookup(session_id, store)
    await _fire(session.return_to_question)
    return _view(session)


@router.post("/{session_id}/retry-commit", response_model=SessionView)
async def retry_commit(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
) -> SessionView:
    session = _lookup(session_id, store)
    await _fire(session.retry_commit)
    return _view(session)


@router.post("/{session_id}/retry-output", response_model=SessionView)
async def retry_output(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
) -> SessionView:
    session = _lookup(session_id, store)
    await _fire(session.retry_output)
    return _view(session)
