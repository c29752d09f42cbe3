"""HTTP handlers for registration, login, logout and session checks."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from werkzeug.wrappers import Request, Response

from hahajobs.errors import (
    UserAlreadyExistsError,
    UserNotFoundError,
    WrongLoginOrPasswordError,
)
from hahajobs.middleware import (
    SESSION_COOKIE,
    USER_ID_KEY,
    Router,
    SessionHandler,
    request_id,
)
from hahajobs.models import Organization, Person, ResponseRole, UserLogin

logger = logging.getLogger("hahajobs")

COOKIE_LIFETIME = timedelta(hours=1)
COOKIE_MAX_AGE = 100000


def _json_response(payload: Any, status: int) -> Response:
    return Response(json.dumps(payload), status=status, mimetype="application/json")


def _error_response(err: BaseException, status: int) -> Response:
    return _json_response({"message": str(err)}, status)


def _read_json(request: Request) -> Any:
    return json.loads(request.get_data())


class AuthHandler:
    """Request handlers on top of an auth use case."""

    def __init__(self, use_case: Any) -> None:
        self._use_case = use_case

    def _register(self, request: Request, parse, register) -> Response:
        rid = request_id(request)
        try:
            user = parse(_read_json(request))
        except ValueError as err:
            logger.error("#%s: %s", rid, err)
            return Response(status=400)

        try:
            register(user)
        except UserAlreadyExistsError as err:
            logger.error("#%s: %s", rid, err)
            return _error_response(err, 400)
        except Exception as err:
            logger.error("#%s: %s", rid, err)
            return _error_response(err, 500)
        logger.info("#%s: success", rid)
        return Response(status=201)

    def register_person(self, request: Request) -> Response:
        return self._register(
            request,
            Person.from_dict,
            lambda p: self._use_case.register_person(p.login, p.password, p.first_name),
        )

    def register_organization(self, request: Request) -> Response:
        return self._register(
            request,
            Organization.from_dict,
            lambda o: self._use_case.register_organization(o.login, o.password, o.name),
        )

    def login(self, request: Request) -> Response:
        rid = request_id(request)
        try:
            user = UserLogin.from_dict(_read_json(request))
        except ValueError as err:
            logger.error("#%s: %s", rid, err)
            return Response(status=400)

        try:
            result = self._use_case.login(user.login, user.password)
        except WrongLoginOrPasswordError as err:
            logger.error("#%s: %s", rid, err)
            return _error_response(err, 400)
        except Exception as err:
            logger.error("#%s: %s", rid, err)
            return _error_response(err, 500)

        response = _json_response(
            ResponseRole(id=result.user_id, role=result.role).to_dict(), 201
        )
        response.set_cookie(
            SESSION_COOKIE,
            result.session_id,
            max_age=COOKIE_MAX_AGE,
            expires=datetime.now(timezone.utc) + COOKIE_LIFETIME,
            path="/",
            httponly=True,
            samesite="Strict",
        )
        return response

    def logout(self, request: Request) -> Response:
        rid = request_id(request)
        session = request.cookies.get(SESSION_COOKIE)
        if session is None:
            logger.error("#%s: no session cookie", rid)
            return Response(status=401)

        try:
            self._use_case.logout(session)
        except Exception as err:
            logger.error("#%s: %s", rid, err)
            return Response(status=500)

        response = Response(status=201)
        response.set_cookie(
            SESSION_COOKIE,
            session,
            expires=datetime.now(timezone.utc) - timedelta(days=1),
            path="/",
        )
        return response

    def check(self, request: Request) -> Response:
        rid = request_id(request)
        user_id = request.environ.get(USER_ID_KEY, 0)
        try:
            role = self._use_case.get_role(user_id)
        except (UserNotFoundError, LookupError) as err:
            logger.error("#%s: %s", rid, err)
            return _error_response(err, 404)
        except Exception as err:
            logger.error("#%s: %s", rid, err)
            return _error_response(err, 500)
        return _json_response(ResponseRole(id=user_id, role=role).to_dict(), 201)


def register_endpoints(router: Router, session: SessionHandler, use_case: Any) -> AuthHandler:
    """Add the auth routes to ``router`` and return the handler serving them."""
    handler = AuthHandler(use_case)
    router.add("/users/login", handler.login, ["POST"])
    router.add("/users/check", session.user_required(handler.check), ["POST"])
    router.add("/users/logout", handler.logout, ["POST"])
    router.add("/users", handler.register_person, ["POST"])
    router.add("/organizations", handler.register_organization, ["POST"])
    return handler