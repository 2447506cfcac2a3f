"""Schemas for the side-question chat channel."""

from pydantic import BaseModel, Field


class QAPair(BaseModel):
    question: str
    answer: str


class ChatContext(BaseModel):
    """Form context forwarded with a side question."""

    title: str = ""
    description: str | None = ""
    currentPrompt: str = ""
    previousQuestions: list[QAPair] = Field(default_factory=list)


class ChatRequest(BaseModel):
    question: str = Field(..., min_length=1, max_length=4000)
    context: ChatContext = Field(default_factory=ChatContext)


class ChatResponse(BaseModel):
    response: str
