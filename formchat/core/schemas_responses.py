"""Pydantic schemas for submitted form responses."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

OUTPUT_VARIABLE = "output"


class Answer(BaseModel):
    """One (variable_name, response_text) pair."""

    variable_name: str
    response_text: str


def upsert_answer(answers: list[Answer], answer: Answer) -> list[Answer]:
    """Return a new list where ``answer`` replaces any entry with the same name.

    The replaced entry is dropped and the new one appended, so the list stays
    insertion-ordered and never holds two answers for one variable.
    """
    kept = [a for a in answers if a.variable_name != answer.variable_name]
    kept.append(answer)
    return kept


def answers_to_map(answers: list[Answer]) -> dict[str, str]:
    """Latest value per variable name."""
    return {a.variable_name: a.response_text for a in answers}


class ResponseSubmit(BaseModel):
    """Body of ``POST /responses/{formId}``; ``responseid`` null creates."""

    responseid: int | None = None
    answers: list[Answer] = Field(default_factory=list)


class ResponseRecord(BaseModel):
    """A stored response row."""

    model_config = ConfigDict(extra="ignore")

    responseid: int
    formid: int
    responses: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def answers(self) -> list[Answer]:
        return [Answer(**a) for a in self.responses.get("answers", [])]


class ResponsesDelete(BaseModel):
    """Body of ``POST /responses/{formId}/delete``."""

    responseIds: list[int] = Field(default_factory=list)


class ResponsesDeleted(BaseModel):
    message: str
    count: int
