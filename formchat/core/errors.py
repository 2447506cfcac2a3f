"""Error taxonomy for the conversation core.

Every failure the core can produce derives from :class:`FormChatError` and
carries a ``user_message`` that is safe to show to the person filling in the
form. The core never retries; callers decide what to do next.
"""


class FormChatError(Exception):
    """Base class for conversation-core failures."""

    user_message = "Sorry, something went wrong. Please try again."

    def __init__(self, message: str | None = None, *, user_message: str | None = None):
        super().__init__(message or self.user_message)
        if user_message:
            self.user_message = user_message


# Gateway-internal ----------------------------------------------------------


class ProviderError(FormChatError):
    """LLM provider call failed (network, HTTP status, timeout)."""

    user_message = "The assistant is unavailable right now. Please try again."

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        error_type: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.error_type = error_type


class ProtocolError(FormChatError):
    """Provider answered but the payload had no usable choice/content."""

    user_message = "The assistant returned an unexpected reply. Please try again."


# Conversation-level ----------------------------------------------------------


class ValidationUnavailable(FormChatError):
    """Answer could not be validated; nothing was committed."""

    user_message = "Sorry, there was an error validating your response. Please try again."


class PersistenceFailure(FormChatError):
    """Storage write failed after an answer was accepted."""

    user_message = "Sorry, your answer was not saved. Please try again."


class OutputGenerationFailure(FormChatError):
    """Final synthesis call failed; no output was stored."""

    user_message = "Sorry, there was an error generating the output."


class MalformedFormFailure(FormChatError):
    """Form has no prompts, or a prompt index is out of range."""

    user_message = "This form cannot be started because it has no questions."


class InvalidTransition(FormChatError):
    """Event is not legal in the session's current state."""

    user_message = "That action is not available right now."


class SessionBusy(FormChatError):
    """An interaction is already in progress for this session."""

    user_message = "Please wait for the current reply before sending another message."


class FormNotFound(FormChatError):
    """Requested form does not exist."""

    user_message = "Sorry, this form could not be found."
