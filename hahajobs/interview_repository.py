"""Interview repository backed by a SQL database (DB-API connection, ``%s`` placeholders)."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Sequence

from hahajobs.errors import NoSummaryToRefreshError, OrganizationIsNotOwnerError
from hahajobs.models import (
    ChatParameters,
    ConversationTitle,
    Message,
    Messages,
    SendSummary,
    SummaryCredentials,
)

HISTORY_PAGE_SIZE = 40

_CHECK_AUTHOR = """SELECT v.organization_id = %s
    FROM vacancy v
    WHERE v.id = %s"""

_UPDATE_RESPONSE = """UPDATE response
    SET date = CURRENT_TIMESTAMP,
        approved = %s,
        rejected = %s,
        interview_date = %s
    WHERE summary_id = %s
    AND vacancy_id = %s;"""

_INSERT_MESSAGE = """INSERT INTO message (user_one_id, user_two_id, user_one, user_two, body)
    VALUES (%s, %s, %s, %s, %s);"""

_SELECT_HISTORY = """SELECT user_one_id, user_two_id, user_one, user_two, body, created
    FROM message
    WHERE (user_one_id = %s AND user_two_id = %s)
    OR (user_one_id = %s AND user_two_id = %s)
    ORDER BY created desc
    LIMIT %s OFFSET %s;"""

_SELECT_PERSON = """SELECT u.id, p.name
    FROM summary s
    JOIN users u on s.author = u.id
    JOIN person p on u.person_id = p.id
    WHERE s.id = %s"""

_SELECT_ORGANIZATION = """SELECT u.id, o.name
    FROM vacancy v
    JOIN users u on v.organization_id = u.id
    JOIN organization o on u.organization_id = o.id
    WHERE v.id = %s"""

_SELECT_CONVERSATIONS = """SELECT u_to.id, u_to.avatar,
        CASE WHEN u_to.person_id IS NOT NULL THEN per.name
            WHEN u_to.organization_id IS NOT NULL THEN org.name
        END,
        u_to.tag
    FROM response r
    JOIN summary s on r.summary_id = s.id
    JOIN vacancy v on r.vacancy_id = v.id
    JOIN users u_to on (s.author = u_to.id or v.organization_id = u_to.id)
    JOIN users u_from on (s.author = u_from.id or v.organization_id = u_from.id)
    LEFT JOIN organization org on org.id = u_to.organization_id
    LEFT JOIN person per on per.id = u_to.person_id
    WHERE u_from.id = %s
    AND u_to.id != %s
    AND ((rejected = false AND approved = false)
        OR date >= (CURRENT_TIMESTAMP - INTERVAL '1 DAY'))
    GROUP BY u_to.id, per.id, org.id;"""


class InterviewRepository:
    """Summary responses, chat messages and conversations stored in SQL tables."""

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

    def is_organization_vacancy(self, vacancy_id: int, user_id: int) -> None:
        """Raise OrganizationIsNotOwnerError unless ``user_id`` owns the vacancy."""
        (is_author,) = self._fetch_one(_CHECK_AUTHOR, (user_id, vacancy_id))
        if not is_author:
            raise OrganizationIsNotOwnerError()

    def response_summary(self, send_summary: SendSummary) -> None:
        params = (
            send_summary.accepted,
            send_summary.denied,
            send_summary.interview_date,
            send_summary.summary_id,
            send_summary.vacancy_id,
        )
        with self._query(_UPDATE_RESPONSE, params) as cursor:
            affected = cursor.rowcount
        if affected == 0:
            raise NoSummaryToRefreshError()

    def save_message(self, message: Message) -> None:
        params = (
            message.user_one_id,
            message.user_two_id,
            message.user_one,
            message.user_two,
            message.message,
        )
        with self._query(_INSERT_MESSAGE, params):
            pass

    def get_history(self, parameters: ChatParameters) -> Messages:
        params = (
            parameters.from_id,
            parameters.to_id,
            parameters.to_id,
            parameters.from_id,
            HISTORY_PAGE_SIZE,
            parameters.page * HISTORY_PAGE_SIZE,
        )
        with self._query(_SELECT_HISTORY, params) as cursor:
            rows = cursor.fetchall()

        history = Messages()
        for user_one_id, user_two_id, user_one, user_two, body, created in rows:
            message = Message(
                message=body,
                user_one_id=user_one_id,
                user_one=user_one,
                user_two_id=user_two_id,
                user_two=user_two,
                created=created,
            )
            if user_one_id == parameters.from_id:
                history.from_user.append(message)
            else:
                history.to_user.append(message)
        return history

    def get_response_credentials(self, summary_id: int, vacancy_id: int) -> SummaryCredentials:
        user_id, user_name = self._fetch_one(_SELECT_PERSON, (summary_id,))
        organization_id, organization_name = self._fetch_one(_SELECT_ORGANIZATION, (vacancy_id,))
        return SummaryCredentials(
            user_id=user_id,
            user_name=user_name,
            organization_id=organization_id,
            organization_name=organization_name,
        )

    def get_conversations(self, user_id: int) -> list[ConversationTitle]:
        with self._query(_SELECT_CONVERSATIONS, (user_id, user_id)) as cursor:
            rows = cursor.fetchall()
        return [
            ConversationTitle(
                chatter_id=chatter_id,
                avatar=avatar or "",
                chatter_name=name or "",
                tag=tag or "",
            )
            for chatter_id, avatar, name, tag in rows
        ]