from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone

from zeniagent.capabilities.base import DocumentStore
from zeniagent.exceptions import NoPendingActionError, PendingActionConflictError
from zeniagent.services.action_validator import ActionRequest

logger = logging.getLogger(__name__)

STATE_IDLE = "idle"
STATE_AWAITING_CONFIRMATION = "awaiting_confirmation"
STATE_EXECUTING = "executing"


@dataclass(frozen=True)
class PendingAction:
    conversation_id: str
    action: ActionRequest
    prompt: str
    created_at: datetime


@dataclass
class _Slot:
    state: str = STATE_IDLE
    pending: PendingAction | None = None


class ConfirmationGate:
    """Per-conversation state machine: idle -> [awaiting_confirmation ->] executing -> idle.

    A conversation holds at most one action outside ``idle``. Nothing reaches
    ``executing`` from ``awaiting_confirmation`` without an explicit ``confirm``.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._slots: dict[str, _Slot] = {}

    def state(self, conversation_id: str) -> str:
        with self._lock:
            slot = self._slots.get(conversation_id)
            return slot.state if slot else STATE_IDLE

    def pending(self, conversation_id: str) -> PendingAction | None:
        with self._lock:
            slot = self._slots.get(conversation_id)
            return slot.pending if slot else None

    def hold(self, conversation_id: str, action: ActionRequest, prompt: str) -> PendingAction:
        with self._lock:
            slot = self._require_idle(conversation_id)
            pending = PendingAction(
                conversation_id=conversation_id,
                action=action,
                prompt=prompt,
                created_at=datetime.now(timezone.utc),
            )
            slot.state = STATE_AWAITING_CONFIRMATION
            slot.pending = pending
        logger.debug("Conversation %s awaiting confirmation for %s", conversation_id, action.kind)
        return pending

    def begin(self, conversation_id: str, action: ActionRequest) -> None:
        if action.confirmation_required:
            raise PendingActionConflictError(
                f"Action '{action.kind}' requires confirmation before it can run."
            )
        with self._lock:
            slot = self._require_idle(conversation_id)
            slot.state = STATE_EXECUTING
        logger.debug("Conversation %s executing %s", conversation_id, action.kind)

    def confirm(self, conversation_id: str) -> ActionRequest:
        with self._lock:
            slot = self._slots.get(conversation_id)
            if slot is None or slot.state != STATE_AWAITING_CONFIRMATION or slot.pending is None:
                raise NoPendingActionError("There is no action waiting for confirmation.")
            action = slot.pending.action
            slot.pending = None
            slot.state = STATE_EXECUTING
        logger.debug("Conversation %s confirmed %s", conversation_id, action.kind)
        return action

    def cancel(self, conversation_id: str) -> PendingAction:
        with self._lock:
            slot = self._slots.get(conversation_id)
            if slot is None or slot.state != STATE_AWAITING_CONFIRMATION or slot.pending is None:
                raise NoPendingActionError("There is no action waiting for confirmation.")
            pending = slot.pending
            slot.pending = None
            slot.state = STATE_IDLE
        logger.debug("Conversation %s cancelled %s", conversation_id, pending.action.kind)
        return pending

    def complete(self, conversation_id: str) -> None:
        with self._lock:
            slot = self._slots.get(conversation_id)
            if slot is None or slot.state != STATE_EXECUTING:
                return
            slot.state = STATE_IDLE
            slot.pending = None
        logger.debug("Conversation %s back to idle", conversation_id)

    def _require_idle(self, conversation_id: str) -> _Slot:
        slot = self._slots.setdefault(conversation_id, _Slot())
        if slot.state != STATE_IDLE:
            raise PendingActionConflictError(
                "Another action is still pending for this conversation. Confirm or cancel it first."
            )
        return slot


def render_confirmation_prompt(action: ActionRequest, documents: DocumentStore | None = None) -> str:
    params = action.params
    kind = action.kind

    if kind == "delete_document":
        name = _document_name(documents, params.get("document_id"), params.get("document_name"))
        return f"Delete '{name}'? This cannot be undone."
    if kind == "delete_folder":
        name = _folder_name(documents, params.get("folder_id"), params.get("folder_name"))
        return f"Delete folder '{name}'? Its documents will be kept but unfiled."
    if kind == "create_document":
        return f"Create {str(params.get('kind', 'text')).replace('_', ' ')} '{params.get('name')}'?"
    if kind == "clear_notifications":
        return "Clear all notifications? This cannot be undone."
    if kind == "clear_activity_history":
        return "Clear your entire activity history? This cannot be undone."
    if kind == "clear_fax_history":
        return "Clear your share and fax history? This cannot be undone."
    if kind == "send_email":
        return f"Send email '{params.get('subject')}' to {params.get('to')}?"
    if kind == "send_fax":
        name = _document_name(documents, params.get("document_id"), None)
        return f"Fax '{name}' to {params.get('recipient_name')} at {params.get('fax_number')}?"
    if kind in {"move_to_folder", "remove_from_folder"}:
        doc = _document_name(documents, params.get("document_id"), None)
        folder = _folder_name(documents, params.get("folder_id"), params.get("folder_name"))
        verb = "Move" if kind == "move_to_folder" else "Remove"
        preposition = "to" if kind == "move_to_folder" else "from"
        return f"{verb} '{doc}' {preposition} '{folder}'?"
    # Kinds that only reach the gate because the agent asked for confirmation.
    if action.agent_confirmation_message:
        return action.agent_confirmation_message
    return f"{action.spec.label}?"


def render_cancellation_notice(action: ActionRequest, documents: DocumentStore | None = None) -> str:
    params = action.params
    kind = action.kind

    if kind == "delete_document":
        name = _document_name(documents, params.get("document_id"), params.get("document_name"))
        return f"Cancelled. '{name}' was not deleted."
    if kind == "delete_folder":
        name = _folder_name(documents, params.get("folder_id"), params.get("folder_name"))
        return f"Cancelled. Folder '{name}' was not deleted."
    if kind == "create_document":
        return f"Cancelled. '{params.get('name')}' was not created."
    if kind == "clear_notifications":
        return "Cancelled. Your notifications were kept."
    if kind == "clear_activity_history":
        return "Cancelled. Your activity history was kept."
    if kind == "clear_fax_history":
        return "Cancelled. Your share and fax history was kept."
    if kind == "send_email":
        return f"Cancelled. The email to {params.get('to')} was not sent."
    if kind == "send_fax":
        name = _document_name(documents, params.get("document_id"), None)
        return f"Cancelled. '{name}' was not faxed."
    if kind in {"move_to_folder", "remove_from_folder"}:
        name = _document_name(documents, params.get("document_id"), None)
        return f"Cancelled. '{name}' was not moved."
    return f"Cancelled. {action.spec.label} did not run."


def _document_name(documents: DocumentStore | None, document_id: object, fallback: object) -> str:
    if documents is not None and isinstance(document_id, str):
        document = documents.get_document(document_id)
        if document is not None:
            return document.name
    if isinstance(fallback, str) and fallback:
        return fallback
    return str(document_id or "document")


def _folder_name(documents: DocumentStore | None, folder_id: object, fallback: object) -> str:
    if documents is not None and isinstance(folder_id, str):
        folder = documents.get_folder(folder_id)
        if folder is not None:
            return folder.name
    if isinstance(fallback, str) and fallback:
        return fallback
    return str(folder_id or "folder")
