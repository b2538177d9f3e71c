from __future__ import annotations

import json
import threading
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from uuid import uuid4

from .base import (
    KNOWN_SETTINGS,
    Activity,
    ActivityLog,
    Document,
    DocumentStore,
    Folder,
    Notification,
    NotificationStore,
    ProfileStore,
    SettingsStore,
    ShareHistory,
    ShareRecord,
    Signature,
    UserProfile,
    utc_now,
)

_PROFILE_FIELDS = {"first_name", "last_name", "email", "phone", "school"}


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid4().hex[:12]}"


class InMemoryWorkspace(
    DocumentStore,
    NotificationStore,
    ActivityLog,
    ShareHistory,
    ProfileStore,
    SettingsStore,
):
    """Process-local implementation of every workspace store.

    Entities are immutable dataclasses; each mutation swaps in a new value
    under a single lock.
    """

    def __init__(self, profile: UserProfile | None = None) -> None:
        self._lock = threading.RLock()
        self._documents: dict[str, Document] = {}
        self._folders: dict[str, Folder] = {}
        self._activities: list[Activity] = []
        self._notifications: list[Notification] = []
        self._shares: list[ShareRecord] = []
        self._signatures: list[Signature] = []
        self._settings: dict[str, bool] = dict(KNOWN_SETTINGS)
        self._profile = profile

    # Documents

    def add_document(self, document: Document) -> Document:
        with self._lock:
            self._documents[document.id] = document
            if document.folder_id and document.folder_id in self._folders:
                self._attach(document.id, document.folder_id)
            return document

    def list_documents(self) -> list[Document]:
        with self._lock:
            return list(self._documents.values())

    def get_document(self, document_id: str) -> Document | None:
        with self._lock:
            return self._documents.get(document_id)

    def create_document(
        self,
        *,
        name: str,
        content: str,
        kind: str,
        folder_id: str | None = None,
    ) -> Document:
        with self._lock:
            target_folder = folder_id if folder_id in self._folders else None
            encoded = content.encode("utf-8")
            document = Document(
                id=_new_id("doc"),
                name=name,
                kind=kind,
                page_count=max(1, len(content) // 3000 + 1),
                file_size=len(encoded),
                created_at=utc_now(),
                folder_id=target_folder,
                mime_type="text/plain",
                content=content,
            )
            return self.add_document(document)

    def rename_document(self, document_id: str, new_name: str) -> bool:
        with self._lock:
            document = self._documents.get(document_id)
            if document is None:
                return False
            self._documents[document_id] = replace(document, name=new_name)
            return True

    def delete_document(self, document_id: str) -> bool:
        with self._lock:
            document = self._documents.pop(document_id, None)
            if document is None:
                return False
            for folder_id, folder in list(self._folders.items()):
                if document_id in folder.document_ids:
                    self._folders[folder_id] = replace(
                        folder,
                        document_ids=tuple(d for d in folder.document_ids if d != document_id),
                    )
            return True

    def duplicate_document(self, document_id: str) -> Document | None:
        with self._lock:
            source = self._documents.get(document_id)
            if source is None:
                return None
            copy = replace(
                source,
                id=_new_id("doc"),
                name=_copy_name(source.name),
                created_at=utc_now(),
            )
            return self.add_document(copy)

    # Folders

    def add_folder(self, folder: Folder) -> Folder:
        with self._lock:
            self._folders[folder.id] = folder
            return folder

    def list_folders(self) -> list[Folder]:
        with self._lock:
            return list(self._folders.values())

    def get_folder(self, folder_id: str) -> Folder | None:
        with self._lock:
            return self._folders.get(folder_id)

    def create_folder(self, name: str, icon: str | None = None) -> Folder:
        with self._lock:
            folder = Folder(
                id=_new_id("folder"),
                name=name,
                document_ids=(),
                created_at=utc_now(),
                icon=icon,
            )
            return self.add_folder(folder)

    def rename_folder(self, folder_id: str, new_name: str) -> bool:
        with self._lock:
            folder = self._folders.get(folder_id)
            if folder is None:
                return False
            self._folders[folder_id] = replace(folder, name=new_name)
            return True

    def delete_folder(self, folder_id: str) -> bool:
        with self._lock:
            folder = self._folders.pop(folder_id, None)
            if folder is None:
                return False
            # Documents survive their folder and become unfiled.
            for document_id in folder.document_ids:
                document = self._documents.get(document_id)
                if document is not None and document.folder_id == folder_id:
                    self._documents[document_id] = replace(document, folder_id=None)
            return True

    def add_to_folder(self, document_id: str, folder_id: str) -> bool:
        with self._lock:
            document = self._documents.get(document_id)
            if document is None or folder_id not in self._folders:
                return False
            if document.folder_id and document.folder_id != folder_id:
                self._detach(document_id, document.folder_id)
            self._documents[document_id] = replace(document, folder_id=folder_id)
            self._attach(document_id, folder_id)
            return True

    def remove_from_folder(self, document_id: str, folder_id: str) -> bool:
        with self._lock:
            folder = self._folders.get(folder_id)
            document = self._documents.get(document_id)
            if folder is None or document is None or document_id not in folder.document_ids:
                return False
            self._detach(document_id, folder_id)
            if document.folder_id == folder_id:
                self._documents[document_id] = replace(document, folder_id=None)
            return True

    def _attach(self, document_id: str, folder_id: str) -> None:
        folder = self._folders[folder_id]
        if document_id not in folder.document_ids:
            self._folders[folder_id] = replace(
                folder, document_ids=folder.document_ids + (document_id,)
            )

    def _detach(self, document_id: str, folder_id: str) -> None:
        folder = self._folders.get(folder_id)
        if folder is None:
            return
        self._folders[folder_id] = replace(
            folder,
            document_ids=tuple(d for d in folder.document_ids if d != document_id),
        )

    # Notifications

    def add_notification(self, *, kind: str, title: str, message: str) -> Notification:
        with self._lock:
            notification = Notification(
                id=_new_id("ntf"),
                kind=kind,
                title=title,
                message=message,
                created_at=utc_now(),
            )
            self._notifications.append(notification)
            return notification

    def list_notifications(self) -> list[Notification]:
        with self._lock:
            return list(self._notifications)

    def clear_notifications(self) -> int:
        with self._lock:
            count = len(self._notifications)
            self._notifications = []
            return count

    def mark_all_notifications_read(self) -> int:
        with self._lock:
            unread = sum(1 for n in self._notifications if not n.is_read)
            self._notifications = [replace(n, is_read=True) for n in self._notifications]
            return unread

    # Activity log

    def add_activity(
        self,
        *,
        kind: str,
        title: str,
        subtitle: str = "",
        document_id: str | None = None,
    ) -> Activity:
        with self._lock:
            activity = Activity(
                id=_new_id("act"),
                kind=kind,
                title=title,
                created_at=utc_now(),
                subtitle=subtitle,
                document_id=document_id,
            )
            self._activities.append(activity)
            return activity

    def list_activities(self) -> list[Activity]:
        with self._lock:
            return list(self._activities)

    def clear_activities(self) -> int:
        with self._lock:
            count = len(self._activities)
            self._activities = []
            return count

    # Share / fax history

    def record_share(
        self,
        *,
        recipient_name: str,
        method: str,
        status: str,
        document_id: str | None = None,
    ) -> ShareRecord:
        with self._lock:
            record = ShareRecord(
                id=_new_id("share"),
                recipient_name=recipient_name,
                method=method,
                status=status,
                timestamp=utc_now(),
                document_id=document_id,
            )
            self._shares.append(record)
            return record

    def list_shares(self) -> list[ShareRecord]:
        with self._lock:
            return list(self._shares)

    def clear_share_history(self) -> int:
        with self._lock:
            count = len(self._shares)
            self._shares = []
            return count

    # Profile

    def get_profile(self) -> UserProfile | None:
        with self._lock:
            return self._profile

    def update_profile(self, **fields: str) -> UserProfile:
        unknown = set(fields) - _PROFILE_FIELDS
        if unknown:
            raise ValueError(f"Unknown profile fields: {', '.join(sorted(unknown))}.")
        with self._lock:
            current = self._profile or UserProfile(id="guest", first_name="")
            self._profile = replace(current, **fields)
            return self._profile

    def add_signature(self, signature: Signature) -> Signature:
        with self._lock:
            self._signatures.append(signature)
            return signature

    def list_signatures(self) -> list[Signature]:
        with self._lock:
            return list(self._signatures)

    # Settings

    def get_setting(self, key: str) -> bool | None:
        with self._lock:
            return self._settings.get(key)

    def set_setting(self, key: str, value: bool) -> None:
        if key not in KNOWN_SETTINGS:
            raise ValueError(f"Unknown setting '{key}'.")
        with self._lock:
            self._settings[key] = bool(value)

    @classmethod
    def from_seed(cls, path: str | Path) -> "InMemoryWorkspace":
        """Load a workspace from a JSON seed file (profile, folders, documents, ...)."""
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError("Workspace seed must be a JSON object.")

        profile_row = raw.get("profile")
        profile = None
        if isinstance(profile_row, dict):
            profile = UserProfile(
                id=str(profile_row.get("id") or "guest"),
                first_name=str(profile_row.get("first_name") or ""),
                last_name=profile_row.get("last_name"),
                email=profile_row.get("email"),
                phone=profile_row.get("phone"),
                school=profile_row.get("school"),
                level=profile_row.get("level"),
                account_type=str(profile_row.get("account_type") or "standard"),
                is_premium=bool(profile_row.get("is_premium", False)),
            )
        workspace = cls(profile=profile)

        for row in _rows(raw, "folders"):
            folder = Folder(
                id=str(row["id"]),
                name=str(row["name"]),
                document_ids=(),
                created_at=_parse_time(row.get("created_at")),
                icon=row.get("icon"),
            )
            workspace.add_folder(folder)
        for row in _rows(raw, "documents"):
            workspace.add_document(
                Document(
                    id=str(row["id"]),
                    name=str(row["name"]),
                    kind=str(row.get("kind") or "uploaded"),
                    page_count=int(row.get("page_count") or 1),
                    file_size=int(row.get("file_size") or 0),
                    created_at=_parse_time(row.get("created_at")),
                    folder_id=row.get("folder_id"),
                    mime_type=str(row.get("mime_type") or "application/pdf"),
                    content=row.get("content"),
                )
            )
        for row in _rows(raw, "activities"):
            workspace._activities.append(
                Activity(
                    id=str(row.get("id") or _new_id("act")),
                    kind=str(row.get("kind") or "upload"),
                    title=str(row.get("title") or ""),
                    created_at=_parse_time(row.get("created_at")),
                    subtitle=str(row.get("subtitle") or ""),
                    document_id=row.get("document_id"),
                )
            )
        for row in _rows(raw, "shares"):
            workspace._shares.append(
                ShareRecord(
                    id=str(row.get("id") or _new_id("share")),
                    recipient_name=str(row.get("recipient_name") or ""),
                    method=str(row.get("method") or "fax"),
                    status=str(row.get("status") or "pending"),
                    timestamp=_parse_time(row.get("timestamp")),
                    document_id=row.get("document_id"),
                )
            )
        for row in _rows(raw, "signatures"):
            workspace.add_signature(
                Signature(
                    id=str(row.get("id") or _new_id("sig")),
                    kind=str(row.get("kind") or "drawn"),
                    created_at=_parse_time(row.get("created_at")),
                )
            )
        settings_row = raw.get("settings")
        if isinstance(settings_row, dict):
            for key, value in settings_row.items():
                if key in KNOWN_SETTINGS and isinstance(value, bool):
                    workspace._settings[key] = value
        return workspace


def _rows(raw: dict[str, object], key: str) -> list[dict[str, object]]:
    rows = raw.get(key)
    if not isinstance(rows, list):
        return []
    return [row for row in rows if isinstance(row, dict)]


def _parse_time(raw: object) -> datetime:
    if isinstance(raw, str) and raw.strip():
        value = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value
    return utc_now()


def _copy_name(name: str) -> str:
    stem, dot, ext = name.rpartition(".")
    if dot and stem:
        return f"{stem} (copy).{ext}"
    return f"{name} (copy)"
