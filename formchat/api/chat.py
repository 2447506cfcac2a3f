"""Side-question chat endpoint."""

from fastapi import APIRouter, Depends

from formchat.api.deps import get_gateway
from formchat.api.errors import to_http_exception
from formchat.chains.side_question import answer_side_question
from formchat.core.errors import FormChatError
from formchat.core.llm import LLMGateway
from formchat.core.schemas_chat import ChatRequest, ChatResponse

router = APIRouter(tags=["chat"])


@router.post("/chat", response_model=ChatResponse)
async def chat(body: ChatRequest, gateway: LLMGateway = Depends(get_gateway)) -> ChatResponse:
    """Answer a question the user asks while filling in a form."""
    try:
        reply = await answer_side_question(gateway, body.question, body.context)
    except FormChatError as e:
        raise to_http_exception(e) from e
    return ChatResponse(response=reply)
