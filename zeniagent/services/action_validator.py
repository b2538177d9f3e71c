from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from zeniagent.capabilities.base import KNOWN_SETTINGS

logger = logging.getLogger(__name__)

NONE_KIND = "none"
DOCUMENT_KINDS = ("study_guide", "notes", "summary", "text")
PROFILE_FIELDS = ("first_name", "last_name", "email", "phone", "school")

_KIND_ALIASES = {
    "clear_share_history": "clear_fax_history",
    "clear_share_fax_history": "clear_fax_history",
    "request_selection": "request_document_selection",
    "select_document": "request_document_selection",
    "move_document": "move_to_folder",
    "copy_document": "duplicate_document",
    "email": "send_email",
    "fax": "send_fax",
}
_EMAIL_PATTERN = r"[^@\s]+@[^@\s]+"
_ENVELOPE_KEYS = {
    "type",
    "kind",
    "params",
    "confirmationRequired",
    "confirmation_required",
    "confirmationMessage",
    "confirmation_message",
}


@dataclass(frozen=True)
class FieldSpec:
    name: str
    type: str
    wire_keys: tuple[str, ...]
    required: bool = True
    container: str | None = None
    choices: tuple[str, ...] = ()
    pattern: str | None = None
    description: str = ""


@dataclass(frozen=True)
class ActionSpec:
    kind: str
    label: str
    description: str
    fields: tuple[FieldSpec, ...] = ()
    confirmation_mandatory: bool = False
    audit_kind: str | None = None
    notify: bool = False
    requires_any: tuple[str, ...] = ()


@dataclass(frozen=True)
class ActionRequest:
    kind: str
    params: dict[str, object] = field(default_factory=dict)
    confirmation_required: bool = False
    agent_confirmation_message: str | None = None

    @property
    def spec(self) -> ActionSpec:
        return ACTION_SPECS[self.kind]


@dataclass(frozen=True)
class ValidationOutcome:
    kind: str
    action: ActionRequest | None
    reason: str

    @property
    def accepted(self) -> bool:
        return self.action is not None

    @property
    def rejected(self) -> bool:
        return self.action is None and self.reason != "no_action"


def _str(name: str, *wire_keys: str, required: bool = True, container: str | None = None, **extra) -> FieldSpec:
    return FieldSpec(
        name=name,
        type="string",
        wire_keys=wire_keys or (name,),
        required=required,
        container=container,
        **extra,
    )


_DOCUMENT_ID = _str("document_id", "documentId", "document_id", description="Document ID from context.")
_DOCUMENT_NAME = _str("document_name", "documentName", "document_name", required=False)
_FOLDER_ID = _str("folder_id", "folderId", "folder_id", description="Folder ID from context.")
_FOLDER_NAME = _str("folder_name", "folderName", "folder_name", required=False)
_NEW_NAME = _str("new_name", "newName", "new_name", description="Replacement name.")

ACTION_SPECS: dict[str, ActionSpec] = {
    spec.kind: spec
    for spec in (
        ActionSpec(
            kind="delete_document",
            label="Delete document",
            description="Permanently delete a document.",
            fields=(_DOCUMENT_ID, _DOCUMENT_NAME),
            confirmation_mandatory=True,
            audit_kind="delete",
        ),
        ActionSpec(
            kind="delete_folder",
            label="Delete folder",
            description="Delete a folder; its documents become unfiled.",
            fields=(_FOLDER_ID, _FOLDER_NAME),
            confirmation_mandatory=True,
            audit_kind="delete",
        ),
        ActionSpec(
            kind="move_to_folder",
            label="Move to folder",
            description="Move a document into a folder.",
            fields=(_DOCUMENT_ID, _FOLDER_ID, _FOLDER_NAME),
            audit_kind="move",
        ),
        ActionSpec(
            kind="remove_from_folder",
            label="Remove from folder",
            description="Take a document out of a folder (unfiled).",
            fields=(_DOCUMENT_ID, _FOLDER_ID),
            audit_kind="move",
        ),
        ActionSpec(
            kind="rename_document",
            label="Rename document",
            description="Rename a document.",
            fields=(_DOCUMENT_ID, _NEW_NAME),
            audit_kind="edit",
        ),
        ActionSpec(
            kind="rename_folder",
            label="Rename folder",
            description="Rename a folder.",
            fields=(_FOLDER_ID, _NEW_NAME),
            audit_kind="edit",
        ),
        ActionSpec(
            kind="create_folder",
            label="Create folder",
            description="Create a new folder.",
            fields=(
                _str("name", "folderName", "folder_name", "name", description="Folder name."),
                _str("icon", "icon", required=False),
            ),
            audit_kind="upload",
            notify=True,
        ),
        ActionSpec(
            kind="create_document",
            label="Create document",
            description="Create a text document (study guide, notes, summary) with full content.",
            fields=(
                _str("name", "name", container="newDocument", description="Document title."),
                _str("content", "content", container="newDocument", description="Full document text."),
                _str(
                    "kind",
                    "type",
                    "kind",
                    container="newDocument",
                    choices=DOCUMENT_KINDS,
                    description="One of: " + ", ".join(DOCUMENT_KINDS) + ".",
                ),
                _str("folder_id", "folderId", "folder_id", required=False, container="newDocument"),
            ),
            confirmation_mandatory=True,
            audit_kind="ai_chat",
            notify=True,
        ),
        ActionSpec(
            kind="duplicate_document",
            label="Duplicate document",
            description="Make a copy of a document.",
            fields=(_DOCUMENT_ID, _DOCUMENT_NAME),
            audit_kind="upload",
            notify=True,
        ),
        ActionSpec(
            kind="send_email",
            label="Send email",
            description="Open the mail composer with a drafted email.",
            fields=(
                _str("to", "to", container="email", pattern=_EMAIL_PATTERN, description="Recipient address."),
                _str("subject", "subject", container="email"),
                _str("body", "body", container="email"),
                FieldSpec(
                    name="attachment_ids",
                    type="string_list",
                    wire_keys=("attachmentIds", "attachment_ids"),
                    required=False,
                    container="email",
                    description="Document IDs to attach.",
                ),
            ),
            audit_kind="share",
        ),
        ActionSpec(
            kind="send_fax",
            label="Send fax",
            description="Queue a document for faxing.",
            fields=(
                _str("recipient_name", "recipientName", "recipient_name", container="fax"),
                _str("fax_number", "faxNumber", "fax_number", container="fax"),
                _str("document_id", "documentId", "document_id", container="fax"),
            ),
            audit_kind="fax",
        ),
        ActionSpec(
            kind="navigate",
            label="Navigate",
            description="Open a screen in the app.",
            fields=(
                _str("screen", "screen", container="navigation"),
                FieldSpec(
                    name="params",
                    type="object",
                    wire_keys=("params",),
                    required=False,
                    container="navigation",
                ),
            ),
        ),
        ActionSpec(
            kind="request_document_selection",
            label="Request document selection",
            description="Ask the user to pick a document when none was specified.",
            fields=(
                _str("prompt", "selectionPrompt", "selection_prompt", "prompt"),
                _str("purpose", "selectionPurpose", "selection_purpose", "purpose"),
            ),
        ),
        ActionSpec(
            kind="clear_notifications",
            label="Clear notifications",
            description="Remove all notifications.",
            confirmation_mandatory=True,
            audit_kind="delete",
        ),
        ActionSpec(
            kind="mark_notifications_read",
            label="Mark notifications read",
            description="Mark every notification as read.",
            audit_kind="edit",
        ),
        ActionSpec(
            kind="clear_activity_history",
            label="Clear activity history",
            description="Erase the activity history.",
            confirmation_mandatory=True,
            audit_kind="delete",
        ),
        ActionSpec(
            kind="clear_fax_history",
            label="Clear share/fax history",
            description="Erase the share and fax history.",
            confirmation_mandatory=True,
            audit_kind="delete",
        ),
        ActionSpec(
            kind="update_profile",
            label="Update profile",
            description="Change profile fields; only supplied fields change.",
            fields=(
                _str("first_name", "firstName", "first_name", required=False, container="profileUpdate"),
                _str("last_name", "lastName", "last_name", required=False, container="profileUpdate"),
                _str(
                    "email",
                    "email",
                    required=False,
                    container="profileUpdate",
                    pattern=_EMAIL_PATTERN,
                ),
                _str("phone", "phone", required=False, container="profileUpdate"),
                _str("school", "school", required=False, container="profileUpdate"),
            ),
            audit_kind="edit",
            requires_any=PROFILE_FIELDS,
        ),
        ActionSpec(
            kind="toggle_setting",
            label="Toggle setting",
            description="Turn an app setting on or off.",
            fields=(
                _str(
                    "key",
                    "key",
                    container="setting",
                    choices=tuple(KNOWN_SETTINGS),
                    description="One of: " + ", ".join(KNOWN_SETTINGS) + ".",
                ),
                FieldSpec(
                    name="value",
                    type="boolean",
                    wire_keys=("value",),
                    container="setting",
                ),
            ),
            audit_kind="edit",
        ),
    )
}


def normalize_kind(raw: object) -> str:
    text = str(raw or "").strip().lower().replace("-", "_").replace(" ", "_")
    if not text:
        return NONE_KIND
    return _KIND_ALIASES.get(text, text)


def validate_action(payload: dict[str, object] | None) -> ValidationOutcome:
    if not payload:
        return ValidationOutcome(kind=NONE_KIND, action=None, reason="no_action")
    kind = normalize_kind(payload.get("type") or payload.get("kind"))
    if kind == NONE_KIND:
        return ValidationOutcome(kind=NONE_KIND, action=None, reason="no_action")

    spec = ACTION_SPECS.get(kind)
    if spec is None:
        return _reject(kind, f"Unknown action type '{kind}'.")

    raw_params = payload.get("params")
    if raw_params is None:
        raw_params = {}
    if not isinstance(raw_params, dict):
        return _reject(kind, f"Action '{kind}' params must be an object.")

    params: dict[str, object] = {}
    for field_spec in spec.fields:
        found, value = _lookup(raw_params, payload, field_spec)
        if not found or value is None:
            if field_spec.required:
                return _reject(kind, f"Action '{kind}' is missing required field '{field_spec.name}'.")
            continue
        problem, clean = _coerce(field_spec, value)
        if problem:
            if field_spec.required or not _is_blank(value):
                return _reject(kind, f"Action '{kind}' field '{field_spec.name}' {problem}.")
            continue
        params[field_spec.name] = clean

    if spec.requires_any and not any(name in params for name in spec.requires_any):
        return _reject(
            kind,
            f"Action '{kind}' needs at least one of: {', '.join(spec.requires_any)}.",
        )

    # The static table wins; the agent's flag may only add a confirmation step.
    agent_flag = payload.get("confirmationRequired", payload.get("confirmation_required"))
    confirmation_required = spec.confirmation_mandatory or agent_flag is True
    agent_message = payload.get("confirmationMessage", payload.get("confirmation_message"))
    action = ActionRequest(
        kind=kind,
        params=params,
        confirmation_required=confirmation_required,
        agent_confirmation_message=(
            agent_message.strip() if isinstance(agent_message, str) and agent_message.strip() else None
        ),
    )
    return ValidationOutcome(kind=kind, action=action, reason="valid")


def render_action_catalog() -> str:
    lines = ["ACTION TYPES"]
    for spec in ACTION_SPECS.values():
        note = " - REQUIRES CONFIRMATION" if spec.confirmation_mandatory else ""
        lines.append(f'- "{spec.kind}": {spec.description}{note}')
        for field_spec in spec.fields:
            where = f"{field_spec.container}." if field_spec.container else ""
            optional = "" if field_spec.required else "?"
            detail = f": {field_spec.description}" if field_spec.description else ""
            lines.append(
                f"  - params.{where}{field_spec.wire_keys[0]}{optional} ({field_spec.type}){detail}"
            )
        if spec.requires_any:
            lines.append("  - at least one profile field must be supplied")
    return "\n".join(lines)


def _lookup(
    raw_params: dict[str, object],
    payload: dict[str, object],
    field_spec: FieldSpec,
) -> tuple[bool, object]:
    sources: list[dict[str, object]] = []
    if field_spec.container:
        nested = raw_params.get(field_spec.container)
        if isinstance(nested, dict):
            sources.append(nested)
    sources.append(raw_params)
    for source in sources:
        for key in field_spec.wire_keys:
            if key in source:
                return True, source[key]
    if field_spec.type != "object":
        # Some replies put parameters beside "type" instead of under "params".
        for key in field_spec.wire_keys:
            if key not in _ENVELOPE_KEYS and key in payload:
                return True, payload[key]
    return False, None


def _coerce(field_spec: FieldSpec, value: object) -> tuple[str | None, object]:
    if field_spec.type == "string":
        if not isinstance(value, str):
            return "must be a string", None
        text = value.strip()
        if not text:
            return "must not be empty", None
        if field_spec.choices and text not in field_spec.choices:
            return f"must be one of: {', '.join(field_spec.choices)}", None
        if field_spec.pattern and not re.fullmatch(field_spec.pattern, text):
            return "is not well-formed", None
        return None, text
    if field_spec.type == "boolean":
        if not isinstance(value, bool):
            return "must be true or false", None
        return None, value
    if field_spec.type == "string_list":
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            return "must be a list of strings", None
        return None, [v.strip() for v in value if v.strip()]
    if field_spec.type == "object":
        if not isinstance(value, dict):
            return "must be an object", None
        return None, dict(value)
    return None, value


def _is_blank(value: object) -> bool:
    return isinstance(value, str) and not value.strip()


def _reject(kind: str, reason: str) -> ValidationOutcome:
    logger.info("Rejected action directive: %s", reason)
    return ValidationOutcome(kind=kind, action=None, reason=reason)
