"""Request routing and the CORS, session and recovery middlewares."""

from __future__ import annotations

import json
import logging
import re
import secrets
import string
import time
from typing import Any, Callable, Iterable, Sequence

from werkzeug.exceptions import HTTPException
from werkzeug.routing import Map, Rule
from werkzeug.wrappers import Request, Response

from hahajobs.errors import (
    UserNotOrganizationError,
    UserNotPersonError,
    WrongSessionError,
)

logger = logging.getLogger("hahajobs")

Handler = Callable[[Request], Response]
Middleware = Callable[[Handler], Handler]

REQUEST_ID_KEY = "hahajobs.request_id"
USER_ID_KEY = "hahajobs.user_id"
URL_VARS_KEY = "hahajobs.url_vars"
SESSION_COOKIE = "session_id"
NO_REQUEST_ID = "no request id"
METRICS_PATH = "/api/metrics"
REQUEST_ID_LENGTH = 6

_INTEGER = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_CORS_HEADERS = (
    "Access-Control-Allow-Headers",
    "Access-Control-Allow-Methods",
    "Access-Control-Allow-Origin",
    "Access-Control-Allow-Credentials",
    "Content-Type",
)


def _is_integer(segment: str) -> bool:
    if not _INTEGER.fullmatch(segment):
        return False
    return _INT64_MIN <= int(segment) <= _INT64_MAX


def format_path(path: str) -> str:
    """Replace every integer path segment with ``*`` so paths can be grouped."""
    segments = path[1:].split("/")
    return "/" + "/".join("*" if _is_integer(s) else s for s in segments)


def generate_request_id(length: int) -> str:
    """Return a random string of decimal digits of the given length."""
    return "".join(secrets.choice(string.digits) for _ in range(length))


def request_id(request: Request) -> str:
    """Return the id given to ``request`` by the log middleware."""
    value = request.environ.get(REQUEST_ID_KEY)
    return value if isinstance(value, str) else NO_REQUEST_ID


class Router:
    """A WSGI application that routes requests to handlers through middlewares."""

    def __init__(self, prefix: str = "") -> None:
        self._prefix = prefix
        self._map = Map(strict_slashes=False)
        self._middlewares: list[Middleware] = []

    def add(self, rule: str, endpoint: Handler, methods: Sequence[str] | None = None) -> None:
        """Route ``rule`` (under the router's prefix) to ``endpoint``."""
        path = self._prefix + rule or "/"
        self._map.add(Rule(path, endpoint=endpoint, methods=list(methods) if methods else None))

    def use(self, middleware: Middleware) -> None:
        """Wrap every matched handler; middlewares added first run outermost."""
        self._middlewares.append(middleware)

    def dispatch(self, request: Request) -> Response:
        adapter = self._map.bind_to_environ(request.environ)
        try:
            endpoint, url_vars = adapter.match()
        except HTTPException as exc:
            return exc.get_response(request.environ)
        request.environ[URL_VARS_KEY] = url_vars
        handler: Handler = endpoint
        for middleware in reversed(self._middlewares):
            handler = middleware(handler)
        return handler(request)

    def __call__(self, environ: dict[str, Any], start_response: Callable) -> Iterable[bytes]:
        response = self.dispatch(Request(environ))
        return response(environ, start_response)


class CorsHandler:
    """Lets requests through only from allowed origins and sets CORS headers."""

    def __init__(self, origins: Iterable[str] = ()) -> None:
        self._origins: list[str] = list(origins)

    def add_origin(self, origin: str) -> None:
        self._origins.append(origin)

    def private_api(self, request: Request, response: Response) -> bool:
        """Set CORS headers on ``response`` and return True if the origin is allowed."""
        referer = request.headers.get("Referer", "")
        origin = request.headers.get("Origin", "")
        logger.info("Origin: %s. Referer: %s", origin, referer)

        allowed = any(origin == o or referer.startswith(o) for o in self._origins)
        if allowed:
            logger.info("Allowed")
            headers = response.headers
            headers["Access-Control-Allow-Headers"] = (
                "Content-Type, Access-Control-Allow-Origin, Set-Cookie, "
                "Access-Control-Allow-Methods, Access-Control-Allow-Credentials, Connection"
            )
            headers["Access-Control-Allow-Methods"] = "POST, OPTIONS, GET, PUT, DELETE"
            headers["Access-Control-Allow-Origin"] = origin
            headers["Access-Control-Allow-Credentials"] = "true"
            headers["Content-Type"] = "application/json"
        return allowed

    def preflight(self, request: Request) -> Response:
        response = Response()
        self.private_api(request, response)
        return response

    def middleware(self, handler: Handler) -> Handler:
        def wrapped(request: Request) -> Response:
            cors = Response()
            if not self.private_api(request, cors):
                logger.info("Not allowed origin")
                return cors
            response = handler(request)
            for name in _CORS_HEADERS:
                response.headers[name] = cors.headers[name]
            return response

        return wrapped


class SessionHandler:
    """Requires a valid session cookie and stores the user id on the request."""

    def __init__(self, auth: Any) -> None:
        self._auth = auth

    def _require(
        self,
        check: Callable[[str], int],
        unauthorized: tuple[type[BaseException], ...],
        handler: Handler,
    ) -> Handler:
        def wrapped(request: Request) -> Response:
            rid = request_id(request)
            session = request.cookies.get(SESSION_COOKIE)
            if session is None:
                logger.info("#%s: No cookie", rid)
                return Response(status=401)
            logger.info("#%s: %s", rid, session)
            try:
                user_id = check(session)
            except unauthorized as err:
                logger.error("#%s: %s", rid, err)
                return Response(status=401)
            except Exception as err:
                logger.error("#%s: %s", rid, err)
                return Response(status=500)
            logger.info("#%s: success", rid)
            request.environ[USER_ID_KEY] = user_id
            return handler(request)

        return wrapped

    def user_required(self, handler: Handler) -> Handler:
        return self._require(self._auth.session_exists, (WrongSessionError,), handler)

    def person_required(self, handler: Handler) -> Handler:
        return self._require(
            self._auth.person_session, (UserNotPersonError, WrongSessionError), handler
        )

    def organization_required(self, handler: Handler) -> Handler:
        return self._require(
            self._auth.organization_session,
            (UserNotOrganizationError, WrongSessionError),
            handler,
        )


class RecoveryHandler:
    """Request logging and conversion of unexpected exceptions into 500 responses."""

    def log_middleware(self, handler: Handler) -> Handler:
        def wrapped(request: Request) -> Response:
            rid = generate_request_id(REQUEST_ID_LENGTH)
            request.environ[REQUEST_ID_KEY] = rid
            logger.info("#%s: %s %s", rid, request.method, request.url)

            start = time.monotonic()
            response = handler(request)
            elapsed_ms = int((time.monotonic() - start) * 1000)

            if request.path != METRICS_PATH:
                logger.debug(
                    "#%s: %s %s took %d ms",
                    rid,
                    request.method,
                    format_path(request.path),
                    elapsed_ms,
                )
            logger.info("#%s: code %d", rid, response.status_code)
            return response

        return wrapped

    def recovery_middleware(self, handler: Handler) -> Handler:
        def wrapped(request: Request) -> Response:
            try:
                return handler(request)
            except Exception as err:
                rid = request.environ.get(REQUEST_ID_KEY)
                if isinstance(rid, str):
                    logger.error("#%s Panic: %s", rid, err)
                else:
                    logger.error("Panic with no id: %s", err)
                body = json.dumps({"error": "There was an internal haha error"})
                return Response(body, status=500, mimetype="application/json")

        return wrapped