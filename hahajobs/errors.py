"""Domain errors and status-coded errors raised by repositories."""

from __future__ import annotations

from enum import IntEnum


class StatusCode(IntEnum):
    """Status codes attached to errors that cross the repository boundary."""

    ALREADY_EXISTS = 400
    WRONG_LOGIN_OR_PASSWORD = 400
    NOT_FOUND = 404
    WRONG_SID = 500


class StatusError(Exception):
    """An error that carries a numeric status code and a message."""

    def __init__(self, code: int, message: str = "") -> None:
        super().__init__(message)
        self.code = int(code)
        self.message = message

    def __str__(self) -> str:
        return self.message


def status_code(error: BaseException | None) -> int | None:
    """Return the status code carried by ``error``, or None if it has none."""
    if isinstance(error, StatusError):
        return error.code
    return None


class _DefaultMessageError(Exception):
    default_message = ""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(self.default_message if message is None else message)


class AuthError(_DefaultMessageError):
    """Base class for authentication errors."""


class WrongLoginOrPasswordError(AuthError):
    default_message = "wrong login or password"


class WrongSessionError(AuthError):
    default_message = "wrong sid"


class UserNotPersonError(AuthError):
    default_message = "user is not a person"


class UserNotOrganizationError(AuthError):
    default_message = "user is not a organization"


class UserAlreadyExistsError(AuthError):
    default_message = "user already exists"


class UserNotFoundError(AuthError):
    default_message = "user not found"


class InterviewError(_DefaultMessageError):
    """Base class for interview and summary errors."""


class SummaryAlreadyExistsError(InterviewError):
    default_message = "summary already exists"


class NoSummaryToRefreshError(InterviewError):
    default_message = "no summary to refresh"


class PersonIsNotOwnerError(InterviewError):
    default_message = "person doesn't own summary"


class OrganizationIsNotOwnerError(InterviewError):
    default_message = "organization doesn't own this vacancy"


class SummaryNotFoundError(InterviewError):
    default_message = "summary not found"


class SummaryAlreadySentError(InterviewError):
    default_message = "summary already sent"