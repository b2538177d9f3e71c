from __future__ import annotations

import threading

from .base import Navigator


class RecordingNavigator(Navigator):
    """Collects navigation and picker requests for the presentation layer.

    Events are keyed by conversation so the HTTP layer can hand each client
    only its own instructions. ``bind`` sets the conversation the next
    requests belong to.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._local = threading.local()
        self._events: dict[str, list[dict[str, object]]] = {}

    def bind(self, conversation_id: str) -> None:
        self._local.conversation_id = conversation_id

    def navigate(self, screen: str, params: dict[str, object] | None = None) -> None:
        self.emit({"type": "navigate", "screen": screen, "params": dict(params or {})})

    def request_selection(self, prompt: str, purpose: str) -> None:
        self.emit({"type": "select_document", "prompt": prompt, "purpose": purpose})

    def drain(self, conversation_id: str) -> list[dict[str, object]]:
        with self._lock:
            return self._events.pop(conversation_id, [])

    def emit(self, event: dict[str, object]) -> None:
        """Queue an arbitrary UI event for the bound conversation."""
        conversation_id = getattr(self._local, "conversation_id", None) or "_unbound"
        with self._lock:
            self._events.setdefault(conversation_id, []).append(event)
