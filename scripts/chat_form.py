"""Fill in a form from the terminal against a running FormChat server.

Usage:
    python scripts/chat_form.py <form_id> [--base-url http://localhost:8000]

The conversation runs locally; validation, storage, output generation and
side questions go through the server's REST API.

Commands while answering:
    /ask       ask a side question about the current prompt
    /back      return from side questions to the form
    /retry     retry saving the last accepted answer, or the output step
    /quit      stop
After a rejected answer:
    1          use the suggested answer
    2          keep your original answer
    3          revise your answer
"""

import argparse
import asyncio

from formchat.core.conversation import (
    AskingSideQuestion,
    AwaitingValidationDecision,
    ConversationSession,
    GeneratingOutput,
)
from formchat.core.errors import FormChatError
from formchat.services.forms_api_client import HttpConversationBackend


def _print_new(session: ConversationSession, shown: int) -> int:
    for message in session.transcript[shown:]:
        if message.role == "user":
            continue
        prefix = {"error": "!!", "title": "##", "output": ">>"}.get(message.kind, "--")
        print(f"{prefix} {message.text}")
    return len(session.transcript)


async def _step(session: ConversationSession, line: str) -> bool:
    """Dispatch one line of input; returns False to stop."""
    state = session.state

    if line == "/quit":
        return False
    if line == "/retry":
        if isinstance(state, GeneratingOutput):
            await session.retry_output()
        else:
            await session.retry_commit()
        return True
    if line == "/ask":
        await session.ask_question()
        return True

    if isinstance(state, AskingSideQuestion):
        if line == "/back":
            await session.return_to_question()
        else:
            await session.submit_side_question(line)
        return True

    if isinstance(state, AwaitingValidationDecision):
        if line == "1":
            await session.accept_suggestion()
        elif line == "2":
            await session.use_original()
        elif line == "3":
            await session.revise_answer()
            print(f"(your answer was: {state.rejected_answer})")
        else:
            print("Choose 1 (use suggestion), 2 (keep original) or 3 (revise).")
        return True

    await session.submit_answer(line)
    return True


async def handle_line(session: ConversationSession, line: str) -> bool:
    """Run one line of input, printing errors the transcript does not already show."""
    before = len(session.transcript)
    try:
        return await _step(session, line)
    except FormChatError as e:
        if not any(m.kind == "error" for m in session.transcript[before:]):
            print(f"!! {e.user_message}")
    except ValueError as e:
        print(f"!! {e}")
    return True


async def run(form_id: int, base_url: str) -> None:
    backend = HttpConversationBackend(base_url)
    try:
        session = await ConversationSession.start(backend, form_id)
    except FormChatError as e:
        print(f"!! {e.user_message}")
        return

    shown = _print_new(session, 0)
    while not session.is_complete:
        if isinstance(session.state, AwaitingValidationDecision):
            print("   [1] use suggestion  [2] keep original  [3] revise")
        line = input("> ").strip()
        if not line:
            continue
        if not await handle_line(session, line):
            break
        shown = _print_new(session, shown)

    if session.response_id is not None:
        print(f"(response {session.response_id})")


def main() -> None:
    parser = argparse.ArgumentParser(description="Fill in a form conversationally.")
    parser.add_argument("form_id", type=int, help="Form ID")
    parser.add_argument("--base-url", default="http://localhost:8000", help="FormChat server URL")
    args = parser.parse_args()

    asyncio.run(run(args.form_id, args.base_url))


if __name__ == "__main__":
    main()
