"""Request-scoped dependencies resolved from application state."""

from fastapi import Depends, Request

from formchat.core.llm import LLMGateway
from formchat.services.conversation_backend import LocalConversationBackend
from formchat.services.session_store import SessionStore


def get_gateway(request: Request) -> LLMGateway:
    """The process-wide gateway built in the application lifespan."""
    return request.app.state.gateway


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.sessions


def get_conversation_backend(
    gateway: LLMGateway = Depends(get_gateway),
) -> LocalConversationBackend:
    return LocalConversationBackend(gateway)
