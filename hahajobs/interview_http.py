"""HTTP handlers for summary responses and chat history."""

from __future__ import annotations

import json
import logging
from typing import Any

from werkzeug.wrappers import Request, Response

from hahajobs.errors import NoSummaryToRefreshError, OrganizationIsNotOwnerError
from hahajobs.middleware import (
    URL_VARS_KEY,
    USER_ID_KEY,
    Router,
    SessionHandler,
    request_id,
)
from hahajobs.models import ChatParameters, SendSummary

logger = logging.getLogger("hahajobs")

_UINT64_LIMIT = 2**64


def _json_response(payload: Any, status: int) -> Response:
    return Response(json.dumps(payload), status=status, mimetype="application/json")


def _error_response(err: BaseException, status: int) -> Response:
    return _json_response({"message": str(err)}, status)


def _parse_uint(value: Any) -> int:
    """Parse an unsigned decimal integer; anything unparsable gives 0."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value if 0 <= value < _UINT64_LIMIT else 0
    if isinstance(value, str) and value.isascii() and value.isdigit():
        number = int(value)
        return number if number < _UINT64_LIMIT else 0
    return 0


def _url_var(request: Request, name: str) -> int:
    return _parse_uint(request.environ.get(URL_VARS_KEY, {}).get(name))


class InterviewHandler:
    """Request handlers on top of an interview use case."""

    def __init__(self, use_case: Any) -> None:
        self._use_case = use_case

    def response_summary(self, request: Request) -> Response:
        rid = request_id(request)
        try:
            send_summary = SendSummary.from_dict(json.loads(request.get_data()))
        except ValueError as err:
            logger.error("#%s: %s", rid, err)
            return Response(status=400)

        send_summary.summary_id = _url_var(request, "summary_id")
        send_summary.organization_id = request.environ.get(USER_ID_KEY, 0)

        try:
            self._use_case.response_summary(send_summary)
        except OrganizationIsNotOwnerError as err:
            logger.error("#%s: %s", rid, err)
            return _error_response(err, 403)
        except NoSummaryToRefreshError as err:
            logger.error("#%s: %s", rid, err)
            return _error_response(err, 404)
        except Exception as err:
            logger.error("#%s: %s", rid, err)
            return _error_response(err, 500)
        return Response(status=200)

    def history(self, request: Request) -> Response:
        rid = request_id(request)
        parameters = ChatParameters(
            from_id=request.environ.get(USER_ID_KEY, 0),
            to_id=_url_var(request, "user_id"),
            page=_parse_uint(request.values.get("page")),
        )
        try:
            result = self._use_case.get_history(parameters)
        except Exception as err:
            logger.error("#%s: %s", rid, err)
            return _error_response(err, 500)
        return _json_response(result.to_dict(), 200)

    def get_conversations(self, request: Request) -> Response:
        rid = request_id(request)
        user_id = request.environ.get(USER_ID_KEY, 0)
        try:
            result = self._use_case.get_conversations(user_id)
        except Exception as err:
            logger.error("#%s: %s", rid, err)
            return _error_response(err, 500)
        return _json_response([title.to_dict() for title in result], 200)


def register_endpoints(router: Router, session: SessionHandler, use_case: Any) -> InterviewHandler:
    """Add the interview routes to ``router`` and return the handler serving them."""
    handler = InterviewHandler(use_case)
    router.add(
        "/summaries/<int:summary_id>/response",
        session.organization_required(handler.response_summary),
        ["PUT"],
    )
    router.add(
        "/chat/conversation/<int:user_id>",
        session.user_required(handler.history),
        ["GET"],
    )
    router.add(
        "/chat/conversation",
        session.user_required(handler.get_conversations),
        ["GET"],
    )
    return handler