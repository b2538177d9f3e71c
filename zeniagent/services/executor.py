from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from zeniagent.capabilities.base import Capabilities
from zeniagent.services.action_validator import ActionRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionResult:
    success: bool
    message: str


@dataclass(frozen=True)
class _Outcome:
    success: bool
    message: str
    audit_title: str | None = None
    audit_subtitle: str | None = None
    document_id: str | None = None
    notice_title: str | None = None
    notice_message: str | None = None


class ActionExecutor:
    """Runs validated actions against the injected capability ports.

    Every call yields an ActionResult. Exceptions raised by a store or
    transport become failed results; they never propagate to the caller.
    """

    def __init__(self, capabilities: Capabilities, *, assistant_name: str = "Zai") -> None:
        self._caps = capabilities
        self._assistant_name = assistant_name
        self._handlers: dict[str, Callable[[dict[str, object]], _Outcome]] = {
            "delete_document": self._delete_document,
            "delete_folder": self._delete_folder,
            "move_to_folder": self._move_to_folder,
            "remove_from_folder": self._remove_from_folder,
            "rename_document": self._rename_document,
            "rename_folder": self._rename_folder,
            "create_folder": self._create_folder,
            "create_document": self._create_document,
            "duplicate_document": self._duplicate_document,
            "send_email": self._send_email,
            "send_fax": self._send_fax,
            "navigate": self._navigate,
            "request_document_selection": self._request_document_selection,
            "clear_notifications": self._clear_notifications,
            "mark_notifications_read": self._mark_notifications_read,
            "clear_activity_history": self._clear_activity_history,
            "clear_fax_history": self._clear_fax_history,
            "update_profile": self._update_profile,
            "toggle_setting": self._toggle_setting,
        }

    def supported_kinds(self) -> list[str]:
        return sorted(self._handlers.keys())

    def execute(self, action: ActionRequest) -> ActionResult:
        handler = self._handlers.get(action.kind)
        if handler is None:
            return ActionResult(success=False, message=f"Unknown action type: {action.kind}")
        try:
            outcome = handler(action.params)
        except Exception as exc:
            logger.exception("Action %s failed", action.kind)
            return ActionResult(success=False, message=str(exc) or "Failed to execute action")

        if outcome.success:
            self._record_side_channel(action, outcome)
        logger.info(
            "Action %s finished: success=%s message=%s",
            action.kind,
            outcome.success,
            outcome.message,
        )
        return ActionResult(success=outcome.success, message=outcome.message)

    def _record_side_channel(self, action: ActionRequest, outcome: _Outcome) -> None:
        spec = action.spec
        try:
            if spec.audit_kind and outcome.audit_title:
                self._caps.activities.add_activity(
                    kind=spec.audit_kind,
                    title=outcome.audit_title,
                    subtitle=outcome.audit_subtitle or f"by {self._assistant_name}",
                    document_id=outcome.document_id,
                )
            if spec.notify and outcome.notice_title:
                self._caps.notifications.add_notification(
                    kind="ai_complete",
                    title=outcome.notice_title,
                    message=outcome.notice_message or outcome.message,
                )
        except Exception:
            # The mutation already happened; a lost audit row must not turn it into a failure.
            logger.exception("Could not record audit trail for %s", action.kind)

    # Documents and folders

    def _delete_document(self, params: dict[str, object]) -> _Outcome:
        document_id = str(params["document_id"])
        document = self._caps.documents.get_document(document_id)
        name = document.name if document else str(params.get("document_name") or document_id)
        if not self._caps.documents.delete_document(document_id):
            return _Outcome(False, f'"{name}" no longer exists, so nothing was deleted')
        return _Outcome(
            True,
            f'Successfully deleted "{name}"',
            audit_title=f'Deleted "{name}"',
            document_id=document_id,
        )

    def _delete_folder(self, params: dict[str, object]) -> _Outcome:
        folder_id = str(params["folder_id"])
        folder = self._caps.documents.get_folder(folder_id)
        name = folder.name if folder else str(params.get("folder_name") or folder_id)
        if not self._caps.documents.delete_folder(folder_id):
            return _Outcome(False, f'Folder "{name}" no longer exists')
        return _Outcome(True, f'Folder "{name}" deleted', audit_title=f'Deleted folder "{name}"')

    def _move_to_folder(self, params: dict[str, object]) -> _Outcome:
        document_id = str(params["document_id"])
        folder_id = str(params["folder_id"])
        document = self._caps.documents.get_document(document_id)
        folder = self._caps.documents.get_folder(folder_id)
        if document is None:
            return _Outcome(False, f"Document {document_id} no longer exists")
        if folder is None:
            return _Outcome(False, f'Folder "{params.get("folder_name") or folder_id}" no longer exists')
        if not self._caps.documents.add_to_folder(document_id, folder_id):
            return _Outcome(False, f'Could not move "{document.name}"')
        return _Outcome(
            True,
            f'Successfully moved "{document.name}" to "{folder.name}"',
            audit_title=f'Moved "{document.name}" to "{folder.name}"',
            audit_subtitle=f"Organized by {self._assistant_name}",
            document_id=document_id,
        )

    def _remove_from_folder(self, params: dict[str, object]) -> _Outcome:
        document_id = str(params["document_id"])
        folder_id = str(params["folder_id"])
        document = self._caps.documents.get_document(document_id)
        if not self._caps.documents.remove_from_folder(document_id, folder_id):
            return _Outcome(False, "Document is not in that folder")
        name = document.name if document else document_id
        return _Outcome(
            True,
            f'"{name}" removed from folder',
            audit_title=f'Removed "{name}" from folder',
            document_id=document_id,
        )

    def _rename_document(self, params: dict[str, object]) -> _Outcome:
        document_id = str(params["document_id"])
        new_name = str(params["new_name"])
        if not self._caps.documents.rename_document(document_id, new_name):
            return _Outcome(False, f"Document {document_id} no longer exists")
        return _Outcome(
            True,
            f'Successfully renamed to "{new_name}"',
            audit_title=f'Renamed document to "{new_name}"',
            document_id=document_id,
        )

    def _rename_folder(self, params: dict[str, object]) -> _Outcome:
        folder_id = str(params["folder_id"])
        new_name = str(params["new_name"])
        if not self._caps.documents.rename_folder(folder_id, new_name):
            return _Outcome(False, f"Folder {folder_id} no longer exists")
        return _Outcome(
            True,
            f'Folder renamed to "{new_name}"',
            audit_title=f'Renamed folder to "{new_name}"',
        )

    def _create_folder(self, params: dict[str, object]) -> _Outcome:
        name = str(params["name"])
        icon = params.get("icon")
        self._caps.documents.create_folder(name, icon=str(icon) if icon else None)
        return _Outcome(
            True,
            f'Created folder "{name}"',
            audit_title=f'Created folder "{name}"',
            notice_title="Folder Created",
            notice_message=f'{self._assistant_name} created a new folder: "{name}"',
        )

    def _create_document(self, params: dict[str, object]) -> _Outcome:
        name = str(params["name"])
        folder_id = params.get("folder_id")
        document = self._caps.documents.create_document(
            name=name,
            content=str(params["content"]),
            kind=str(params["kind"]),
            folder_id=str(folder_id) if folder_id else None,
        )
        return _Outcome(
            True,
            f'Created "{name}" successfully!',
            audit_title=f'Created "{name}"',
            audit_subtitle=f"Created by {self._assistant_name}",
            document_id=document.id,
            notice_title="Document Created",
            notice_message=f'{self._assistant_name} created: "{name}"',
        )

    def _duplicate_document(self, params: dict[str, object]) -> _Outcome:
        document_id = str(params["document_id"])
        copy = self._caps.documents.duplicate_document(document_id)
        if copy is None:
            return _Outcome(False, "Failed to duplicate document: it no longer exists")
        return _Outcome(
            True,
            f'Document duplicated as "{copy.name}"',
            audit_title=f'Duplicated "{params.get("document_name") or copy.name}"',
            audit_subtitle=f"Copied by {self._assistant_name}",
            document_id=copy.id,
            notice_title="Document Duplicated",
            notice_message=f'{self._assistant_name} created a copy: "{copy.name}"',
        )

    # Transports

    def _send_email(self, params: dict[str, object]) -> _Outcome:
        to = str(params["to"])
        subject = str(params["subject"])
        attachment_ids = params.get("attachment_ids")
        sent = self._caps.email.send(
            to=to,
            subject=subject,
            body=str(params["body"]),
            attachment_ids=list(attachment_ids) if isinstance(attachment_ids, list) else None,
        )
        if not sent:
            return _Outcome(False, "Failed to open email composer")
        return _Outcome(
            True,
            "Email composer opened",
            audit_title=f"Sent email to {to}",
            audit_subtitle=subject,
        )

    def _send_fax(self, params: dict[str, object]) -> _Outcome:
        document_id = str(params["document_id"])
        recipient_name = str(params["recipient_name"])
        document = self._caps.documents.get_document(document_id)
        if document is None:
            return _Outcome(False, f"Document {document_id} no longer exists, so no fax was queued")
        self._caps.fax.send(
            recipient_name=recipient_name,
            fax_number=str(params["fax_number"]),
            document_id=document_id,
        )
        return _Outcome(
            True,
            f"Fax queued to {recipient_name}",
            audit_title=f'Faxed "{document.name}" to {recipient_name}',
            document_id=document_id,
        )

    # Presentation only: no audit trail

    def _navigate(self, params: dict[str, object]) -> _Outcome:
        screen = str(params["screen"])
        nav_params = params.get("params")
        self._caps.navigator.navigate(screen, nav_params if isinstance(nav_params, dict) else None)
        return _Outcome(True, f"Navigating to {screen}")

    def _request_document_selection(self, params: dict[str, object]) -> _Outcome:
        self._caps.navigator.request_selection(str(params["prompt"]), str(params["purpose"]))
        return _Outcome(True, "Please select a document from the list below")

    # Bulk operations

    def _clear_notifications(self, params: dict[str, object]) -> _Outcome:
        count = self._caps.notifications.clear_notifications()
        return _Outcome(True, "All notifications cleared", audit_title=f"Cleared {count} notification(s)")

    def _mark_notifications_read(self, params: dict[str, object]) -> _Outcome:
        count = self._caps.notifications.mark_all_notifications_read()
        return _Outcome(
            True,
            "All notifications marked as read",
            audit_title=f"Marked {count} notification(s) as read",
        )

    def _clear_activity_history(self, params: dict[str, object]) -> _Outcome:
        self._caps.activities.clear_activities()
        return _Outcome(True, "Activity history cleared", audit_title="Cleared activity history")

    def _clear_fax_history(self, params: dict[str, object]) -> _Outcome:
        count = self._caps.shares.clear_share_history()
        return _Outcome(True, "Fax history cleared", audit_title=f"Cleared {count} share/fax record(s)")

    # Profile and settings

    def _update_profile(self, params: dict[str, object]) -> _Outcome:
        fields = {key: str(value) for key, value in params.items()}
        self._caps.profile.update_profile(**fields)
        changed = ", ".join(key.replace("_", " ") for key in fields)
        return _Outcome(True, "Profile updated successfully", audit_title=f"Updated profile ({changed})")

    def _toggle_setting(self, params: dict[str, object]) -> _Outcome:
        key = str(params["key"])
        value = bool(params["value"])
        self._caps.settings.set_setting(key, value)
        state = "enabled" if value else "disabled"
        return _Outcome(True, f'Setting "{key}" {state}', audit_title=f'Setting "{key}" {state}')
