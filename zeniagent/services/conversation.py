from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import uuid4

from zeniagent.exceptions import UnknownConversationError

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
_VALID_ROLES = {ROLE_USER, ROLE_ASSISTANT}
_TITLE_LENGTH = 30
_DEFAULT_TITLE = "New Conversation"


@dataclass(frozen=True)
class Message:
    id: str
    conversation_id: str
    role: str
    content: str
    created_at: datetime
    attached_entity_id: str | None = None

    def as_chat_turn(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


class Conversation:
    """Append-only transcript. Past messages are never edited or removed."""

    def __init__(self, conversation_id: str, created_at: datetime | None = None) -> None:
        self.id = conversation_id
        self.created_at = created_at or datetime.now(timezone.utc)
        self.title = _DEFAULT_TITLE
        self._lock = threading.Lock()
        self._messages: list[Message] = []

    @property
    def messages(self) -> tuple[Message, ...]:
        with self._lock:
            return tuple(self._messages)

    def append(
        self,
        role: str,
        content: str,
        attached_entity_id: str | None = None,
    ) -> Message:
        if role not in _VALID_ROLES:
            raise ValueError(f"Unsupported message role '{role}'.")
        message = Message(
            id=uuid4().hex,
            conversation_id=self.id,
            role=role,
            content=content,
            created_at=datetime.now(timezone.utc),
            attached_entity_id=attached_entity_id,
        )
        with self._lock:
            if role == ROLE_USER and not any(m.role == ROLE_USER for m in self._messages):
                self.title = _derive_title(content)
            self._messages.append(message)
        return message

    def history(self, limit: int | None = None) -> list[dict[str, str]]:
        turns = [message.as_chat_turn() for message in self.messages]
        if limit is not None and limit > 0:
            return turns[-limit:]
        return turns


class ConversationStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._conversations: dict[str, Conversation] = {}

    def create(self) -> Conversation:
        conversation = Conversation(uuid4().hex)
        with self._lock:
            self._conversations[conversation.id] = conversation
        return conversation

    def get(self, conversation_id: str) -> Conversation:
        with self._lock:
            conversation = self._conversations.get(conversation_id)
        if conversation is None:
            raise UnknownConversationError(f"Conversation '{conversation_id}' does not exist.")
        return conversation


def _derive_title(text: str) -> str:
    cleaned = " ".join((text or "").split())
    if not cleaned:
        return _DEFAULT_TITLE
    if len(cleaned) <= _TITLE_LENGTH:
        return cleaned
    return cleaned[:_TITLE_LENGTH] + "..."
