"""Pydantic schemas for forms and their prompts."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Prompt(BaseModel):
    """One question of a form, as stored."""

    model_config = ConfigDict(extra="ignore")

    promptid: int | None = None
    formid: int | None = None
    question_text: str
    variable_name: str
    validation_criteria: str | None = None
    order: int = 0


class Form(BaseModel):
    """A form together with its prompts ordered by ``order`` ascending."""

    model_config = ConfigDict(extra="ignore")

    formid: int | None = None
    title: str
    description: str | None = ""
    starter_prompt: str | None = ""
    output_prompt: str | None = ""
    active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None
    prompts: list[Prompt] = Field(default_factory=list)

    @property
    def has_output_prompt(self) -> bool:
        return bool(self.output_prompt and self.output_prompt.strip())

    def prompt_for(self, variable_name: str) -> Prompt | None:
        for prompt in self.prompts:
            if prompt.variable_name == variable_name:
                return prompt
        return None


class PromptInput(BaseModel):
    question_text: str = Field(..., min_length=1)
    variable_name: str = Field(..., min_length=1)
    validation_criteria: str | None = None


class FormInput(BaseModel):
    """Body of form create/update. Prompt order is the list order."""

    title: str
    description: str | None = ""
    starter_prompt: str | None = ""
    output_prompt: str | None = ""
    prompts: list[PromptInput] = Field(default_factory=list)

    @field_validator("prompts")
    @classmethod
    def variable_names_unique(cls, prompts: list[PromptInput]) -> list[PromptInput]:
        seen: set[str] = set()
        for prompt in prompts:
            if prompt.variable_name in seen:
                raise ValueError(f"Duplicate variable_name: {prompt.variable_name}")
            seen.add(prompt.variable_name)
        return prompts


class FormSummary(BaseModel):
    formid: int
    title: str
    description: str | None = ""
    active: bool = True
    created_at: datetime | None = None
    response_count: int = 0
    question_count: int = 0


class FormCreated(BaseModel):
    formId: int


class MessageResponse(BaseModel):
    message: str


# Validation / output / guidance -------------------------------------------


class ValidateRequest(BaseModel):
    promptIndex: int | None = None
    answer: str | None = None
    validationCriteria: str | None = None


class ValidateResponse(BaseModel):
    validation: str | None = None


class OutputAnswer(BaseModel):
    variable_name: str
    response_text: str


class OutputRequest(BaseModel):
    responses: list[OutputAnswer] = Field(default_factory=list)


class OutputResponse(BaseModel):
    output: str
    answers: list[OutputAnswer]


class PreviousQA(BaseModel):
    question: str
    answer: str


class GuidanceRequest(BaseModel):
    answer: str = ""
    previousQA: list[PreviousQA] = Field(default_factory=list)


class GuidanceResponse(BaseModel):
    guidance: str


class WelcomeResponse(BaseModel):
    message: str
