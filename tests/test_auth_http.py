import json
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

import pytest
from werkzeug.test import EnvironBuilder
from werkzeug.wrappers import Request

from hahajobs.auth_http import register_endpoints
from hahajobs.auth_usecase import LoginResult
from hahajobs.errors import (
    UserAlreadyExistsError,
    UserNotFoundError,
    WrongLoginOrPasswordError,
    WrongSessionError,
)
from hahajobs.middleware import RecoveryHandler, Router, SessionHandler


class FakeAuth:
    def __init__(self):
        self.calls = []
        self.error = None
        self.role = "person"
        self.user_id = 1
        self.session_error = None

    def _maybe_raise(self):
        if self.error is not None:
            raise self.error

    def register_person(self, login, password, name):
        self.calls.append(("register_person", login, password, name))
        self._maybe_raise()

    def register_organization(self, login, password, name):
        self.calls.append(("register_organization", login, password, name))
        self._maybe_raise()

    def login(self, login, password):
        self.calls.append(("login", login, password))
        self._maybe_raise()
        return LoginResult(user_id=self.user_id, role=self.role, session_id="token")

    def logout(self, session_id):
        self.calls.append(("logout", session_id))
        self._maybe_raise()

    def get_role(self, user_id):
        self.calls.append(("get_role", user_id))
        self._maybe_raise()
        return self.role

    def session_exists(self, session_id):
        self.calls.append(("session_exists", session_id))
        if self.session_error is not None:
            raise self.session_error
        return self.user_id


@pytest.fixture
def auth():
    return FakeAuth()


@pytest.fixture
def router(auth):
    r = Router("/api")
    r.use(RecoveryHandler().log_middleware)
    register_endpoints(r, SessionHandler(auth), auth)
    return r


def call(router, path, body=None, cookie=None, method="POST"):
    headers = {}
    if cookie is not None:
        headers["Cookie"] = f"session_id={cookie}"
    data = json.dumps(body).encode() if isinstance(body, dict) else body
    environ = EnvironBuilder(path=path, method=method, data=data, headers=headers).get_environ()
    return router.dispatch(Request(environ))


def set_cookie_header(response):
    cookies = response.headers.getlist("Set-Cookie")
    assert len(cookies) == 1
    return cookies[0]


def test_register_person_created(router, auth):
    body = {"login": "user", "password": "password", "firstName": "first"}
    response = call(router, "/api/users", body)
    assert response.status_code == 201
    assert auth.calls == [("register_person", "user", "password", "first")]


def test_register_person_already_exists(router, auth):
    auth.error = UserAlreadyExistsError()
    body = {"login": "user", "password": "password"}
    response = call(router, "/api/users", body)
    assert response.status_code == 400
    assert json.loads(response.get_data()) == {"message": "user already exists"}


def test_register_person_other_error(router, auth):
    auth.error = RuntimeError("boom")
    response = call(router, "/api/users", {"login": "user", "password": "password"})
    assert response.status_code == 500
    assert json.loads(response.get_data()) == {"message": "boom"}


@pytest.mark.parametrize("body", [b"", b"{not json", {"login": "user"}, {"password": "password"}])
def test_register_person_bad_body(router, auth, body):
    response = call(router, "/api/users", body)
    assert response.status_code == 400
    assert auth.calls == []


def test_register_organization_created(router, auth):
    body = {"login": "org", "password": "password", "name": "name"}
    response = call(router, "/api/organizations", body)
    assert response.status_code == 201
    assert auth.calls == [("register_organization", "org", "password", "name")]


def test_register_organization_already_exists(router, auth):
    auth.error = UserAlreadyExistsError()
    response = call(router, "/api/organizations", {"login": "org", "password": "password"})
    assert response.status_code == 400


def test_register_wrong_method_rejected(router, auth):
    response = call(router, "/api/users", method="GET")
    assert response.status_code == 405
    assert auth.calls == []


def test_login_sets_session_cookie(router, auth):
    auth.user_id = 7
    auth.role = "organization"
    response = call(router, "/api/users/login", {"login": "user", "password": "password"})
    assert response.status_code == 201
    assert json.loads(response.get_data()) == {"id": 7, "role": "organization"}
    cookie = set_cookie_header(response)
    assert cookie.startswith("session_id=token")
    assert "HttpOnly" in cookie
    assert "Max-Age=100000" in cookie
    assert "Path=/" in cookie
    assert "SameSite=Strict" in cookie


def test_login_wrong_password(router, auth):
    auth.error = WrongLoginOrPasswordError()
    response = call(router, "/api/users/login", {"login": "user", "password": "password"})
    assert response.status_code == 400
    assert json.loads(response.get_data()) == {"message": "wrong login or password"}
    assert response.headers.getlist("Set-Cookie") == []


def test_login_other_error(router, auth):
    auth.error = RuntimeError("down")
    response = call(router, "/api/users/login", {"login": "user", "password": "password"})
    assert response.status_code == 500


def test_login_empty_credentials(router, auth):
    response = call(router, "/api/users/login", {"login": "", "password": ""})
    assert response.status_code == 400
    assert auth.calls == []


def test_logout_without_cookie(router, auth):
    response = call(router, "/api/users/logout")
    assert response.status_code == 401
    assert auth.calls == []


def test_logout_expires_cookie(router, auth):
    response = call(router, "/api/users/logout", cookie="token")
    assert response.status_code == 201
    assert auth.calls == [("logout", "token")]
    cookie = set_cookie_header(response)
    assert cookie.startswith("session_id=token")
    expires = re.search(r"Expires=([^;]+)", cookie).group(1)
    assert parsedate_to_datetime(expires) < datetime.now(timezone.utc)


def test_logout_failure(router, auth):
    auth.error = RuntimeError("down")
    response = call(router, "/api/users/logout", cookie="token")
    assert response.status_code == 500


def test_check_returns_role(router, auth):
    auth.user_id = 5
    auth.role = "organization"
    response = call(router, "/api/users/check", cookie="token")
    assert response.status_code == 201
    assert json.loads(response.get_data()) == {"id": 5, "role": "organization"}
    assert ("get_role", 5) in auth.calls


def test_check_not_found(router, auth):
    auth.error = UserNotFoundError()
    response = call(router, "/api/users/check", cookie="token")
    assert response.status_code == 404
    assert json.loads(response.get_data()) == {"message": "user not found"}


def test_check_other_error(router, auth):
    auth.error = RuntimeError("down")
    response = call(router, "/api/users/check", cookie="token")
    assert response.status_code == 500


def test_check_requires_session(router, auth):
    assert call(router, "/api/users/check").status_code == 401
    auth.session_error = WrongSessionError()
    assert call(router, "/api/users/check", cookie="token").status_code == 401