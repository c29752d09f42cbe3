# hahajobs

The backend of a small job board, built as a WSGI application on
werkzeug. People and organizations register and then sign in, which
gives them a session cookie. Organizations answer the summaries that
people send to their vacancies. Both sides can read their chat history
and their list of conversations.

## Modules

### `hahajobs.errors`

- Domain errors, all with a fixed default message:
  - `AuthError` and its subclasses: `WrongLoginOrPasswordError`,
    `WrongSessionError`, `UserNotPersonError`,
    `UserNotOrganizationError`, `UserAlreadyExistsError` and
    `UserNotFoundError`.
  - `InterviewError` and its subclasses: `SummaryAlreadyExistsError`,
    `NoSummaryToRefreshError`, `PersonIsNotOwnerError`,
    `OrganizationIsNotOwnerError`, `SummaryNotFoundError` and
    `SummaryAlreadySentError`.
- `StatusError`, which carries a numeric `code` (see `StatusCode`).
  The storage layer raises it.
- `status_code(error)`, which returns that code, or `None` if the
  error carries no code.

### `hahajobs.models`

Dataclasses for request and response bodies:

- `Person`, `Organization`, `UserLogin` and `SendSummary` are read from
  JSON with `from_dict`. It raises `ValueError` on a malformed body.
  The first three also raise it when the login or the password is
  empty.
- `ResponseRole`, `Message`, `Messages` and `ConversationTitle` are
  written out with `to_dict`.
- `ChatParameters` and `SummaryCredentials` carry values between the
  layers.

### `hahajobs.auth_repository`

- `AuthRepository` stores people, organizations, users and sessions.
  It works through a DB-API connection that uses `%s` placeholders and
  runs in autocommit mode.
- Sessions last 10 hours. An expired session is deleted when it is
  checked.
- Passwords are stored as bcrypt hashes made with `hash_password` and
  checked with `check_password`.
- Failures are raised as `StatusError`:
  - wrong login or password
  - unknown or expired session
  - user already exists
  - user not found

### `hahajobs.auth_usecase`

`AuthUseCase` turns the repository's status codes into the domain
errors. It offers these operations:

- `register_person` and `register_organization`.
- `login`, which returns a `LoginResult` with the user id, the role and
  a fresh 64-letter session id.
- `logout`.
- `session_exists` and `get_role`.
- `person_session` and `organization_session`. Each of these checks
  both the session and the role.

`generate_session_id(length)` makes the random session ids.

### `hahajobs.interview_repository`

`InterviewRepository` handles these operations:

- checking that an organization owns a vacancy
- updating a response to a summary
- saving messages
- reading chat history, 40 messages per page, split into messages sent
  by the requester and messages sent to them
- looking up who a response belongs to
- listing conversations

### `hahajobs.interview_usecase`

- `InterviewUseCase` wraps the interview repository.
- `Room` is an in-process message queue. Listeners are added with
  `subscribe`. Messages are delivered by `run` until `close` is called.
- `enable_room(room)` attaches a room and runs it in a background
  thread.
- When a summary is answered, `response_summary` uses
  `generate_message` to build a notice for the person and sends it to
  the room. If no room is attached, it raises `RuntimeError`.

### `hahajobs.middleware`

- `Router` is a WSGI callable with an optional path prefix. Routes are
  added with `add`, and middlewares are wrapped around every matched
  handler with `use`.
- `CorsHandler` keeps a list of allowed origins. A request is allowed
  when its `Origin` header equals an allowed origin, or when its
  `Referer` starts with one. Allowed requests get the CORS headers.
  Other requests get an empty response and never reach the handler.
- `SessionHandler` reads the `session_id` cookie and stores the user id
  on the request. It offers `user_required`, `person_required` and
  `organization_required`.
- `RecoveryHandler` has two middlewares:
  - `log_middleware` gives each request a six-digit id and logs the
    request, its duration and its status code.
  - `recovery_middleware` turns an unexpected exception into a 500
    response with the body `{"error": "There was an internal haha error"}`.
- Helpers: `format_path`, `generate_request_id` and `request_id`.

### `hahajobs.auth_http` and `hahajobs.interview_http`

Each module has a handler class (`AuthHandler` or `InterviewHandler`)
and a `register_endpoints(router, session, use_case)` function. That
function adds the routes below and returns the handler.

## Endpoints

| Method | Path                                  | Access                 | Success |
|--------|---------------------------------------|------------------------|---------|
| POST   | `/users`                              | public                 | 201     |
| POST   | `/organizations`                      | public                 | 201     |
| POST   | `/users/login`                        | public                 | 201     |
| POST   | `/users/logout`                       | `session_id` cookie    | 201     |
| POST   | `/users/check`                        | any signed-in user     | 201     |
| PUT    | `/summaries/<summary_id>/response`    | organization           | 200     |
| GET    | `/chat/conversation/<user_id>?page=N` | any signed-in user     | 200     |
| GET    | `/chat/conversation`                  | any signed-in user     | 200     |

A successful login replies with `{"id": ..., "role": ...}`. It also
sets an HTTP-only, `SameSite=Strict` `session_id` cookie with a max age
of 100000 seconds. Logout deletes the session and expires the cookie.

A body that cannot be parsed gets a 400 with no body. Other failures
come back as `{"message": ...}` with these status codes:

- 400 for an existing user or a wrong login
- 403 when the organization does not own the vacancy
- 404 when there is no summary to refresh or the user is unknown
- 500 otherwise

A missing or invalid session, or the wrong role, gets a 401.

## Putting it together

```python
from hahajobs import auth_http, interview_http
from hahajobs.auth_repository import AuthRepository
from hahajobs.auth_usecase import AuthUseCase
from hahajobs.interview_repository import InterviewRepository
from hahajobs.interview_usecase import InterviewUseCase, Room
from hahajobs.middleware import CorsHandler, RecoveryHandler, Router, SessionHandler


def build_app(connection):
    cors = CorsHandler()
    cors.add_origin("http://localhost:8080")

    auth = AuthUseCase(AuthRepository(connection))
    interview = InterviewUseCase(InterviewRepository(connection))
    interview.enable_room(Room())

    recovery = RecoveryHandler()
    session = SessionHandler(auth)

    router = Router()
    router.use(recovery.recovery_middleware)
    router.use(recovery.log_middleware)
    router.use(cors.middleware)

    auth_http.register_endpoints(router, session, auth)
    interview_http.register_endpoints(router, session, interview)
    return router
```

`connection` is a DB-API connection in autocommit mode. The returned
router can be served by any WSGI server. In tests, you can call
`router.dispatch(request)` with a werkzeug `Request`.

## What the package does not do

- It has no command-line entry point and does not start a server
  itself.
- It does not create the database schema. It expects the tables that
  its queries name to exist: `users`, `person`, `organization`,
  `session`, `vacancy`, `summary`, `response` and `message`.
- It has no live chat endpoint. Notices sent to a `Room` reach only the
  listeners subscribed in the same process.
- It does not collect request metrics. Durations are only logged.