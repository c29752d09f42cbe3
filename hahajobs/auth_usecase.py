"""Authentication use cases on top of an auth repository."""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass
from typing import Protocol

from hahajobs.errors import (
    StatusCode,
    UserAlreadyExistsError,
    UserNotFoundError,
    UserNotOrganizationError,
    UserNotPersonError,
    WrongLoginOrPasswordError,
    WrongSessionError,
    status_code,
)

SESSION_ID_LENGTH = 64


class _AuthRepository(Protocol):
    def register_person(self, login: str, password: str, name: str) -> None: ...

    def register_organization(self, login: str, password: str, name: str) -> None: ...

    def login(self, login: str, password: str, session_id: str) -> int: ...

    def logout(self, session_id: str) -> None: ...

    def session_exists(self, session_id: str) -> int: ...

    def does_user_exist(self, login: str) -> None: ...

    def get_role(self, user_id: int) -> str: ...


def generate_session_id(length: int) -> str:
    """Return a random string of ASCII letters of the given length."""
    return "".join(secrets.choice(string.ascii_letters) for _ in range(length))


@dataclass(frozen=True)
class LoginResult:
    user_id: int
    role: str
    session_id: str


class AuthUseCase:
    """Registration, login and session checks."""

    def __init__(self, repository: _AuthRepository) -> None:
        self._repo = repository

    def _ensure_user_absent(self, login: str) -> None:
        try:
            self._repo.does_user_exist(login)
        except Exception as err:
            if status_code(err) == StatusCode.ALREADY_EXISTS:
                raise UserAlreadyExistsError() from err
            raise

    def register_person(self, login: str, password: str, name: str) -> None:
        self._ensure_user_absent(login)
        self._repo.register_person(login, password, name)

    def register_organization(self, login: str, password: str, name: str) -> None:
        self._ensure_user_absent(login)
        self._repo.register_organization(login, password, name)

    def login(self, login: str, password: str) -> LoginResult:
        session_id = generate_session_id(SESSION_ID_LENGTH)
        try:
            user_id = self._repo.login(login, password, session_id)
        except Exception as err:
            if status_code(err) == StatusCode.WRONG_LOGIN_OR_PASSWORD:
                raise WrongLoginOrPasswordError() from err
            raise
        role = self._repo.get_role(user_id)
        return LoginResult(user_id=user_id, role=role, session_id=session_id)

    def logout(self, session_id: str) -> None:
        self._repo.logout(session_id)

    def session_exists(self, session_id: str) -> int:
        try:
            return self._repo.session_exists(session_id)
        except Exception as err:
            if status_code(err) == StatusCode.WRONG_SID:
                raise WrongSessionError() from err
            raise

    def get_role(self, user_id: int) -> str:
        try:
            return self._repo.get_role(user_id)
        except Exception as err:
            if status_code(err) == StatusCode.NOT_FOUND:
                raise UserNotFoundError() from err
            raise

    def _session_with_role(self, session_id: str) -> tuple[int, str]:
        user_id = self.session_exists(session_id)
        return user_id, self.get_role(user_id)

    def person_session(self, session_id: str) -> int:
        user_id, role = self._session_with_role(session_id)
        if role != "person":
            raise UserNotPersonError(f"{UserNotPersonError.default_message}, user id: {user_id}")
        return user_id

    def organization_session(self, session_id: str) -> int:
        user_id, role = self._session_with_role(session_id)
        if role != "organization":
            raise UserNotOrganizationError(
                f"{UserNotOrganizationError.default_message}, user id: {user_id}"
            )
        return user_id