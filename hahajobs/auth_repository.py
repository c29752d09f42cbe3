"""Auth repository backed by a SQL database (DB-API connection, ``%s`` placeholders).

The connection is expected to be in autocommit mode; every statement stands alone.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Iterator, Sequence

import bcrypt

from hahajobs.errors import StatusCode, StatusError

SESSION_LIFETIME = timedelta(hours=10)

_INSERT_USER = (
    "INSERT INTO users (login, password, organization_id, person_id) "
    "VALUES(NULLIF(%s, ''), NULLIF(%s, ''), NULLIF(%s, 0), NULLIF(%s, 0))"
)
_INSERT_PERSON = "INSERT INTO person (name) VALUES(%s) RETURNING id"
_INSERT_ORGANIZATION = "INSERT INTO organization (name) VALUES(%s) RETURNING id"
_SELECT_CREDENTIALS = "SELECT id, password FROM users WHERE login = %s"
_INSERT_SESSION = "INSERT INTO session (user_id, session_id, expires) VALUES(%s, %s, %s)"
_DELETE_SESSION = "DELETE FROM session WHERE session_id = %s;"
_SELECT_SESSION = "SELECT user_id, expires FROM session WHERE session_id = %s;"
_COUNT_USERS = "SELECT count(*) FROM users WHERE login = %s"
_SELECT_ROLE = "SELECT person_id, organization_id FROM users WHERE id = %s;"


def hash_password(password: str) -> str:
    """Return a salted bcrypt hash of ``password``."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("ascii")


def check_password(hashed: str, password: str) -> bool:
    """Return True if ``password`` matches the bcrypt hash ``hashed``."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def _is_expired(expires: datetime) -> bool:
    if expires.tzinfo is None:
        return expires < datetime.now()
    return expires < datetime.now(timezone.utc)


class AuthRepository:
    """Users, people, organizations and sessions stored in SQL tables."""

    def __init__(self, db: Any) -> None:
        self._db = db

    @contextmanager
    def _query(self, sql: str, params: Sequence[Any] = ()) -> Iterator[Any]:
        cursor = self._db.cursor()
        try:
            cursor.execute(sql, tuple(params))
            yield cursor
        finally:
            cursor.close()

    def _fetch_one(self, sql: str, params: Sequence[Any]) -> tuple:
        with self._query(sql, params) as cursor:
            row = cursor.fetchone()
        if row is None:
            raise LookupError("no rows in result set")
        return tuple(row)

    def _execute(self, sql: str, params: Sequence[Any]) -> None:
        with self._query(sql, params):
            pass

    def create_user(self, login: str, password: str, person_id: int, organization_id: int) -> None:
        hashed = hash_password(password)
        self._execute(_INSERT_USER, (login, hashed, organization_id, person_id))

    def register_person(self, login: str, password: str, name: str) -> None:
        (person_id,) = self._fetch_one(_INSERT_PERSON, (name,))
        self.create_user(login, password, person_id, 0)

    def register_organization(self, login: str, password: str, name: str) -> None:
        (organization_id,) = self._fetch_one(_INSERT_ORGANIZATION, (name,))
        self.create_user(login, password, 0, organization_id)

    def login(self, login: str, password: str, session_id: str) -> int:
        try:
            user_id, hashed = self._fetch_one(_SELECT_CREDENTIALS, (login,))
        except Exception as err:
            raise StatusError(StatusCode.WRONG_LOGIN_OR_PASSWORD, "wrong login or password") from err
        if not check_password(hashed, password):
            raise StatusError(StatusCode.WRONG_LOGIN_OR_PASSWORD, "wrong login or password")

        expires = datetime.now(timezone.utc) + SESSION_LIFETIME
        self._execute(_INSERT_SESSION, (user_id, session_id, expires))
        return user_id

    def logout(self, session_id: str) -> None:
        self._execute(_DELETE_SESSION, (session_id,))

    def session_exists(self, session_id: str) -> int:
        try:
            user_id, expires = self._fetch_one(_SELECT_SESSION, (session_id,))
        except Exception as err:
            raise StatusError(StatusCode.WRONG_SID, "wrong sid") from err

        if _is_expired(expires):
            self._execute(_DELETE_SESSION, (session_id,))
            raise StatusError(StatusCode.WRONG_SID, "wrong sid")
        return user_id

    def does_user_exist(self, login: str) -> None:
        """Raise a status error with ALREADY_EXISTS if ``login`` is taken."""
        (count,) = self._fetch_one(_COUNT_USERS, (login,))
        if count != 0:
            raise StatusError(StatusCode.ALREADY_EXISTS, "user already exists")

    def get_role(self, user_id: int) -> str:
        try:
            person_id, organization_id = self._fetch_one(_SELECT_ROLE, (user_id,))
        except Exception as err:
            raise StatusError(StatusCode.NOT_FOUND, "not found") from err

        if person_id is not None:
            return "person"
        if organization_id is not None:
            return "organization"
        return ""