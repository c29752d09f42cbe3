import json

import pytest
from werkzeug.test import Client, EnvironBuilder
from werkzeug.wrappers import Request, Response

from hahajobs.errors import (
    UserNotFoundError,
    UserNotOrganizationError,
    UserNotPersonError,
    WrongSessionError,
)
from hahajobs.middleware import (
    CorsHandler,
    NO_REQUEST_ID,
    REQUEST_ID_KEY,
    RecoveryHandler,
    Router,
    SessionHandler,
    URL_VARS_KEY,
    USER_ID_KEY,
    format_path,
    generate_request_id,
    request_id,
)


def make_request(path="/", method="GET", headers=None):
    return Request(EnvironBuilder(path=path, method=method, headers=headers or {}).get_environ())


def with_cookie():
    return {"Cookie": "session_id=token"}


class FakeAuth:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.seen = []

    def _answer(self, session_id):
        self.seen.append(session_id)
        if self.error is not None:
            raise self.error
        return self.result

    session_exists = _answer
    person_session = _answer
    organization_session = _answer


def echo_user(request):
    return Response(str(request.environ[USER_ID_KEY]))


# format_path, ids


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/api/summaries/12/response", "/api/summaries/*/response"),
        ("/api/users", "/api/users"),
        ("/api/a/-3/+4", "/api/a/*/*"),
        ("/api/summaries/3a/response", "/api/summaries/3a/response"),
    ],
)
def test_format_path(path, expected):
    assert format_path(path) == expected


def test_format_path_keeps_segment_count():
    path = "/api/chat/conversation/7"
    assert format_path(path).count("/") == path.count("/")


def test_generate_request_id_is_digits_of_length():
    rid = generate_request_id(6)
    assert len(rid) == 6
    assert rid.isdigit()


def test_request_id_default():
    assert request_id(make_request()) == NO_REQUEST_ID


def test_request_id_from_environ():
    request = make_request()
    request.environ[REQUEST_ID_KEY] = "123456"
    assert request_id(request) == "123456"


# CORS


def test_private_api_allows_origin():
    cors = CorsHandler()
    cors.add_origin("http://localhost:8080")
    response = Response()
    request = make_request(headers={"Origin": "http://localhost:8080"})
    assert cors.private_api(request, response) is True
    assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:8080"
    assert response.headers["Access-Control-Allow-Credentials"] == "true"
    assert response.headers["Content-Type"] == "application/json"


def test_private_api_allows_referer_prefix():
    cors = CorsHandler()
    cors.add_origin("https://hahao.ru")
    request = make_request(headers={"Referer": "https://hahao.ru/vacancies"})
    assert cors.private_api(request, Response()) is True


def test_private_api_rejects_unknown_origin():
    cors = CorsHandler()
    cors.add_origin("http://localhost:8080")
    response = Response()
    request = make_request(headers={"Origin": "http://evil.example.com"})
    assert cors.private_api(request, response) is False
    assert "Access-Control-Allow-Origin" not in response.headers


def test_cors_middleware_blocks_handler():
    calls = []
    cors = CorsHandler(["http://localhost:8080"])
    handler = cors.middleware(lambda r: calls.append(r) or Response("ok"))
    response = handler(make_request(headers={"Origin": "http://evil.example.com"}))
    assert calls == []
    assert response.get_data() == b""


def test_cors_middleware_passes_and_sets_headers():
    cors = CorsHandler(["http://localhost:8080"])
    handler = cors.middleware(lambda r: Response("ok", status=201))
    response = handler(make_request(headers={"Origin": "http://localhost:8080"}))
    assert response.status_code == 201
    assert response.get_data() == b"ok"
    assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:8080"
    assert response.headers["Access-Control-Allow-Methods"] == "POST, OPTIONS, GET, PUT, DELETE"


def test_preflight():
    cors = CorsHandler(["http://localhost:9090"])
    response = cors.preflight(make_request(method="OPTIONS", headers={"Origin": "http://localhost:9090"}))
    assert response.status_code == 200
    assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:9090"


# sessions


def test_user_required_without_cookie():
    auth = FakeAuth(result=1)
    response = SessionHandler(auth).user_required(echo_user)(make_request())
    assert response.status_code == 401
    assert auth.seen == []


def test_user_required_success():
    auth = FakeAuth(result=13)
    response = SessionHandler(auth).user_required(echo_user)(make_request(headers=with_cookie()))
    assert response.status_code == 200
    assert response.get_data() == b"13"
    assert auth.seen == ["token"]


def test_user_required_wrong_sid():
    auth = FakeAuth(error=WrongSessionError())
    response = SessionHandler(auth).user_required(echo_user)(make_request(headers=with_cookie()))
    assert response.status_code == 401


def test_user_required_other_error():
    auth = FakeAuth(error=RuntimeError("db down"))
    response = SessionHandler(auth).user_required(echo_user)(make_request(headers=with_cookie()))
    assert response.status_code == 500


def test_person_required_not_person():
    auth = FakeAuth(error=UserNotPersonError())
    response = SessionHandler(auth).person_required(echo_user)(make_request(headers=with_cookie()))
    assert response.status_code == 401


def test_person_required_success():
    auth = FakeAuth(result=4)
    response = SessionHandler(auth).person_required(echo_user)(make_request(headers=with_cookie()))
    assert response.get_data() == b"4"


def test_organization_required_not_organization():
    auth = FakeAuth(error=UserNotOrganizationError())
    handler = SessionHandler(auth).organization_required(echo_user)
    assert handler(make_request(headers=with_cookie())).status_code == 401


def test_organization_required_not_found_is_server_error():
    auth = FakeAuth(error=UserNotFoundError())
    handler = SessionHandler(auth).organization_required(echo_user)
    assert handler(make_request(headers=with_cookie())).status_code == 500


# recovery and logging


def test_recovery_turns_exception_into_500():
    def broken(request):
        raise ValueError("boom")

    response = RecoveryHandler().recovery_middleware(broken)(make_request())
    assert response.status_code == 500
    assert json.loads(response.get_data()) == {"error": "There was an internal haha error"}


def test_recovery_passes_response():
    response = RecoveryHandler().recovery_middleware(lambda r: Response("fine"))(make_request())
    assert response.status_code == 200
    assert response.get_data() == b"fine"


def test_log_middleware_sets_request_id():
    handler = RecoveryHandler().log_middleware(lambda r: Response(request_id(r)))
    body = handler(make_request("/api/users")).get_data(as_text=True)
    assert len(body) == 6
    assert body.isdigit()


# router


def test_router_matches_and_stores_url_vars():
    router = Router("/api")
    router.add(
        "/summaries/<int:summary_id>/response",
        lambda r: Response(str(r.environ[URL_VARS_KEY]["summary_id"])),
        ["PUT"],
    )
    response = router.dispatch(make_request("/api/summaries/5/response", "PUT"))
    assert response.status_code == 200
    assert response.get_data() == b"5"


def test_router_rejects_non_numeric_segment():
    router = Router("/api")
    router.add("/summaries/<int:summary_id>/response", lambda r: Response("x"), ["PUT"])
    response = router.dispatch(make_request("/api/summaries/3a/response", "PUT"))
    assert response.status_code == 404


def test_router_wrong_method():
    router = Router("/api")
    router.add("/users/login", lambda r: Response("x"), ["POST"])
    assert router.dispatch(make_request("/api/users/login", "GET")).status_code == 405


def test_router_applies_middlewares_in_order():
    order = []

    def tag(name):
        def middleware(handler):
            def wrapped(request):
                order.append(name)
                return handler(request)

            return wrapped

        return middleware

    router = Router("/api")
    router.use(tag("first"))
    router.use(tag("second"))
    router.add("/users", lambda r: Response("x"), ["POST"])
    response = router.dispatch(make_request("/api/users", "POST"))
    assert response.get_data() == b"x"
    assert order == ["first", "second"]


def test_router_as_wsgi_app():
    router = Router("/api")
    router.use(RecoveryHandler().recovery_middleware)
    router.add("/users", lambda r: Response("created", status=201), ["POST"])
    response = Client(router).post("/api/users")
    assert response.status_code == 201
    assert response.get_data() == b"created"
    assert Client(router).post("/api/unknown").status_code == 404