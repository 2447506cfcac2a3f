"""Mapping from conversation-core errors to HTTP responses."""

from fastapi import HTTPException, status

from formchat.core.errors import (
    FormChatError,
    FormNotFound,
    InvalidTransition,
    MalformedFormFailure,
    OutputGenerationFailure,
    PersistenceFailure,
    ProtocolError,
    ProviderError,
    SessionBusy,
    ValidationUnavailable,
)

_STATUS_BY_ERROR: list[tuple[type[FormChatError], int]] = [
    (FormNotFound, status.HTTP_404_NOT_FOUND),
    (MalformedFormFailure, 422),
    (ValidationUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
    (ProviderError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (ProtocolError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (OutputGenerationFailure, status.HTTP_502_BAD_GATEWAY),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (SessionBusy, status.HTTP_409_CONFLICT),
    (PersistenceFailure, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def status_for(error: FormChatError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def to_http_exception(error: FormChatError) -> HTTPException:
    """HTTPException carrying the error's user-facing message."""
    return HTTPException(status_code=status_for(error), detail=error.user_message)
