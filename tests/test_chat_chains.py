"""Tests for side-question, guidance and welcome chains."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from formchat.chains.answer_guidance import build_guidance_messages, get_answer_guidance
from formchat.chains.side_question import answer_side_question, build_side_question_messages
from formchat.chains.welcome_message import generate_welcome_message, make_prompt_conversational
from formchat.core.errors import ProviderError
from formchat.core.llm import LLMResult
from formchat.core.schemas_chat import ChatContext, QAPair
from formchat.core.schemas_forms import PreviousQA
from formchat.core.schemas_settings import LLMProfile


def _gateway(content="reply", side_effect=None):
    gateway = MagicMock()
    gateway.chat = AsyncMock(
        return_value=LLMResult(content=content, model="gpt-4o-mini"), side_effect=side_effect
    )
    return gateway


CONTEXT = ChatContext(
    title="Travel Survey",
    description="Tell us about trips",
    currentPrompt="Where did you go?",
    previousQuestions=[QAPair(question="Your name?", answer="Ada")],
)


def test_side_question_context_message():
    messages = build_side_question_messages("What counts as a trip?", CONTEXT)

    system = messages[0]["content"]
    assert "Title: Travel Survey" in system
    assert "Description: Tell us about trips" in system
    assert "Current Question: Where did you go?" in system
    assert "Q1: Your name?\nA1: Ada" in system
    assert messages[1] == {"role": "user", "content": "What counts as a trip?"}


@pytest.mark.asyncio
async def test_side_question_uses_conversational_profile():
    gateway = _gateway("Any overnight stay.")

    reply = await answer_side_question(gateway, "What counts as a trip?", CONTEXT)

    assert reply == "Any overnight stay."
    assert gateway.chat.await_args.args[1] == LLMProfile.CONVERSATIONAL


@pytest.mark.asyncio
async def test_side_question_errors_propagate():
    gateway = _gateway(side_effect=ProviderError("down"))

    with pytest.raises(ProviderError):
        await answer_side_question(gateway, "?", CONTEXT)


def test_guidance_replays_previous_answers_and_uses_starter_prompt():
    messages = build_guidance_messages(
        "Where did you go?",
        "Spain",
        "Name a city",
        [PreviousQA(question="Your name?", answer="Ada")],
        "You are a travel journalist. Push for vivid details.",
    )

    assert messages[1] == {"role": "user", "content": "Your name?"}
    assert messages[2] == {"role": "assistant", "content": "Ada"}
    last = messages[-1]["content"]
    assert "Current Answer: Spain" in last
    assert "Validation Criteria: Name a city" in last
    assert last.endswith("You are a travel journalist. Push for vivid details.")


def test_guidance_default_ask():
    last = build_guidance_messages("Q?", "A", None)[-1]["content"]
    assert last.endswith("How can I improve my answer?")


@pytest.mark.asyncio
async def test_guidance_is_stripped():
    gateway = _gateway("  Mention the city.  ")

    guidance = await get_answer_guidance(gateway, "Where?", "Spain")

    assert guidance == "Mention the city."
    assert gateway.chat.await_args.args[1] == LLMProfile.GUIDANCE


@pytest.mark.asyncio
async def test_welcome_message_profile():
    gateway = _gateway(" Welcome aboard! ")

    message = await generate_welcome_message(gateway, "Travel Survey", None)

    assert message == "Welcome aboard!"
    assert gateway.chat.await_args.args[1] == LLMProfile.WELCOME
    assert "Form title: Travel Survey" in gateway.chat.await_args.args[0][1]["content"]


@pytest.mark.asyncio
async def test_make_prompt_conversational():
    gateway = _gateway("So, where did you head off to?")

    text = await make_prompt_conversational(gateway, "Where did you go?")

    assert text == "So, where did you head off to?"
    assert gateway.chat.await_args.args[1] == LLMProfile.CHAT
