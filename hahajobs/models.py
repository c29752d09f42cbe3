"""Data models exchanged between handlers, use cases and repositories."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping


def _mapping(data: Any) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError("expected a JSON object")
    return data


def _string(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string")
    return value


def _uint(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"field {key!r} must be a non-negative integer")
    return value


def _bool(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"field {key!r} must be a boolean")
    return value


def _time(data: Mapping[str, Any], key: str) -> datetime | None:
    value = data.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a timestamp string")
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _require_credentials(login: str, password: str) -> None:
    if not login or not password:
        raise ValueError("login and password are required")


@dataclass
class Person:
    login: str
    password: str
    id: int = 0
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    tag: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "Person":
        data = _mapping(data)
        person = cls(
            login=_string(data, "login"),
            password=_string(data, "password"),
            id=_uint(data, "id"),
            first_name=_string(data, "firstName"),
            last_name=_string(data, "lastName"),
            email=_string(data, "email"),
            phone=_string(data, "phone"),
            tag=_string(data, "tag"),
        )
        _require_credentials(person.login, person.password)
        return person


@dataclass
class Organization:
    login: str
    password: str
    id: int = 0
    name: str = ""
    site: str = ""
    email: str = ""
    phone: str = ""
    tag: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "Organization":
        data = _mapping(data)
        org = cls(
            login=_string(data, "login"),
            password=_string(data, "password"),
            id=_uint(data, "id"),
            name=_string(data, "name"),
            site=_string(data, "site"),
            email=_string(data, "email"),
            phone=_string(data, "phone"),
            tag=_string(data, "tag"),
        )
        _require_credentials(org.login, org.password)
        return org


@dataclass
class UserLogin:
    login: str
    password: str

    @classmethod
    def from_dict(cls, data: Any) -> "UserLogin":
        data = _mapping(data)
        user = cls(login=_string(data, "login"), password=_string(data, "password"))
        _require_credentials(user.login, user.password)
        return user


@dataclass
class ResponseRole:
    id: int
    role: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "role": self.role}


@dataclass
class SendSummary:
    vacancy_id: int = 0
    summary_id: int = 0
    user_id: int = 0
    organization_id: int = 0
    interview_date: datetime | None = None
    accepted: bool = False
    denied: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> "SendSummary":
        data = _mapping(data)
        return cls(
            vacancy_id=_uint(data, "vacancyID"),
            summary_id=_uint(data, "summaryID"),
            user_id=_uint(data, "userID"),
            organization_id=_uint(data, "organizationID"),
            interview_date=_time(data, "interviewDate"),
            accepted=_bool(data, "accepted"),
            denied=_bool(data, "denied"),
        )


@dataclass
class ChatParameters:
    from_id: int = 0
    to_id: int = 0
    page: int = 0


@dataclass
class Message:
    message: str = ""
    user_one_id: int = 0
    user_one: str = ""
    user_two_id: int = 0
    user_two: str = ""
    created: datetime | None = None
    vacancy_id: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "userOneId": self.user_one_id,
            "userOne": self.user_one,
            "userTwoId": self.user_two_id,
            "userTwo": self.user_two,
            "created": _iso(self.created),
            "vacancyId": self.vacancy_id,
        }


@dataclass
class Messages:
    """Chat history split into messages sent by and sent to the requester."""

    from_user: list[Message] = field(default_factory=list)
    to_user: list[Message] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": [m.to_dict() for m in self.from_user],
            "to": [m.to_dict() for m in self.to_user],
        }


@dataclass
class SummaryCredentials:
    user_id: int = 0
    user_name: str = ""
    organization_id: int = 0
    organization_name: str = ""


@dataclass
class ConversationTitle:
    chatter_id: int = 0
    avatar: str = ""
    chatter_name: str = ""
    tag: str = ""
    interview_date: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "chatterID": self.chatter_id,
            "avatar": self.avatar,
            "chatterName": self.chatter_name,
            "tag": self.tag,
            "interviewDate": _iso(self.interview_date),
        }