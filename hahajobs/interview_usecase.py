"""Interview use cases: summary responses and chat messages."""

from __future__ import annotations

import queue
import threading
from datetime import datetime, timezone
from typing import Callable, Protocol

from hahajobs.models import (
    ChatParameters,
    ConversationTitle,
    Message,
    Messages,
    SendSummary,
    SummaryCredentials,
)

_STOP = object()


class Room:
    """An in-process chat room that delivers messages to its listeners."""

    def __init__(self) -> None:
        self._queue: queue.Queue = queue.Queue()
        self._listeners: list[Callable[[Message], None]] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Callable[[Message], None]) -> None:
        with self._lock:
            self._listeners.append(listener)

    def send_generated_message(self, message: Message) -> None:
        """Queue a message for delivery to every listener."""
        self._queue.put(message)

    def close(self) -> None:
        """Make ``run`` return once the messages queued so far are delivered."""
        self._queue.put(_STOP)

    def run(self) -> None:
        """Deliver queued messages until the room is closed."""
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            with self._lock:
                listeners = list(self._listeners)
            for listener in listeners:
                listener(item)


class _InterviewRepository(Protocol):
    def is_organization_vacancy(self, vacancy_id: int, user_id: int) -> None: ...

    def response_summary(self, send_summary: SendSummary) -> None: ...

    def save_message(self, message: Message) -> None: ...

    def get_history(self, parameters: ChatParameters) -> Messages: ...

    def get_response_credentials(self, summary_id: int, vacancy_id: int) -> SummaryCredentials: ...

    def get_conversations(self, user_id: int) -> list[ConversationTitle]: ...


class InterviewUseCase:
    """Responses to summaries and chat history on top of an interview repository."""

    def __init__(self, repository: _InterviewRepository) -> None:
        self._repo = repository
        self._room: Room | None = None

    def enable_room(self, room: Room) -> None:
        """Attach a room and start delivering its messages in a background thread."""
        self._room = room
        threading.Thread(target=room.run, daemon=True).start()

    def generate_message(self, send_summary: SendSummary) -> Message:
        credentials = self.get_response_credentials(send_summary.summary_id, send_summary.vacancy_id)

        if send_summary.accepted:
            status = "одобрено."
        elif send_summary.denied:
            status = "отклонено."
        else:
            status = "просмотренно, Вы приглашены на собеседование."

        return Message(
            message=f"Ваше резюме было {status}",
            user_one_id=credentials.organization_id,
            user_one=credentials.organization_name,
            user_two_id=credentials.user_id,
            created=datetime.now(timezone.utc),
        )

    def response_summary(self, send_summary: SendSummary) -> None:
        self._repo.is_organization_vacancy(send_summary.vacancy_id, send_summary.organization_id)
        self._repo.response_summary(send_summary)
        message = self.generate_message(send_summary)
        if self._room is None:
            raise RuntimeError("chat room is not enabled")
        self._room.send_generated_message(message)

    def save_message(self, message: Message) -> None:
        self._repo.save_message(message)

    def get_history(self, parameters: ChatParameters) -> Messages:
        return self._repo.get_history(parameters)

    def get_response_credentials(self, summary_id: int, vacancy_id: int) -> SummaryCredentials:
        return self._repo.get_response_credentials(summary_id, vacancy_id)

    def get_conversations(self, user_id: int) -> list[ConversationTitle]:
        return self._repo.get_conversations(user_id)