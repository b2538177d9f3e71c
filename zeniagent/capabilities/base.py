from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone


# Boolean app settings and their defaults. Keys outside this map never reach a SettingsStore.
KNOWN_SETTINGS: dict[str, bool] = {
    "pushNotificationsEnabled": True,
    "emailNotificationsEnabled": True,
    "scanCompleteNotifications": True,
    "shareStatusNotifications": True,
    "aiResponseNotifications": True,
    "tipsNotifications": False,
    "updateNotifications": True,
    "biometricEnabled": False,
    "autoLockEnabled": True,
    "saveActivityHistory": True,
    "analyticsEnabled": True,
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Document:
    id: str
    name: str
    kind: str
    page_count: int
    file_size: int
    created_at: datetime
    folder_id: str | None = None
    mime_type: str = "application/pdf"
    content: str | None = None


@dataclass(frozen=True)
class Folder:
    id: str
    name: str
    document_ids: tuple[str, ...]
    created_at: datetime
    icon: str | None = None


@dataclass(frozen=True)
class Activity:
    id: str
    kind: str
    title: str
    created_at: datetime
    subtitle: str = ""
    document_id: str | None = None


@dataclass(frozen=True)
class Notification:
    id: str
    kind: str
    title: str
    message: str
    created_at: datetime
    is_read: bool = False


@dataclass(frozen=True)
class ShareRecord:
    id: str
    recipient_name: str
    method: str
    status: str
    timestamp: datetime
    document_id: str | None = None


@dataclass(frozen=True)
class Signature:
    id: str
    kind: str
    created_at: datetime


@dataclass(frozen=True)
class UserProfile:
    id: str
    first_name: str
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    school: str | None = None
    level: str | None = None
    account_type: str = "standard"
    is_premium: bool = False


class DocumentStore(ABC):
    """Documents, folders and folder membership.

    Mutations that target an id which no longer exists return ``False`` or
    ``None`` instead of raising, so stale agent references stay harmless.
    """

    @abstractmethod
    def list_documents(self) -> list[Document]:
        raise NotImplementedError

    @abstractmethod
    def get_document(self, document_id: str) -> Document | None:
        raise NotImplementedError

    @abstractmethod
    def create_document(
        self,
        *,
        name: str,
        content: str,
        kind: str,
        folder_id: str | None = None,
    ) -> Document:
        raise NotImplementedError

    @abstractmethod
    def rename_document(self, document_id: str, new_name: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def delete_document(self, document_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def duplicate_document(self, document_id: str) -> Document | None:
        raise NotImplementedError

    @abstractmethod
    def list_folders(self) -> list[Folder]:
        raise NotImplementedError

    @abstractmethod
    def get_folder(self, folder_id: str) -> Folder | None:
        raise NotImplementedError

    @abstractmethod
    def create_folder(self, name: str, icon: str | None = None) -> Folder:
        raise NotImplementedError

    @abstractmethod
    def rename_folder(self, folder_id: str, new_name: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def delete_folder(self, folder_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def add_to_folder(self, document_id: str, folder_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def remove_from_folder(self, document_id: str, folder_id: str) -> bool:
        raise NotImplementedError


class NotificationStore(ABC):
    @abstractmethod
    def add_notification(self, *, kind: str, title: str, message: str) -> Notification:
        raise NotImplementedError

    @abstractmethod
    def clear_notifications(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def mark_all_notifications_read(self) -> int:
        raise NotImplementedError


class ActivityLog(ABC):
    @abstractmethod
    def add_activity(
        self,
        *,
        kind: str,
        title: str,
        subtitle: str = "",
        document_id: str | None = None,
    ) -> Activity:
        raise NotImplementedError

    @abstractmethod
    def list_activities(self) -> list[Activity]:
        raise NotImplementedError

    @abstractmethod
    def clear_activities(self) -> int:
        raise NotImplementedError


class ShareHistory(ABC):
    @abstractmethod
    def record_share(
        self,
        *,
        recipient_name: str,
        method: str,
        status: str,
        document_id: str | None = None,
    ) -> ShareRecord:
        raise NotImplementedError

    @abstractmethod
    def list_shares(self) -> list[ShareRecord]:
        raise NotImplementedError

    @abstractmethod
    def clear_share_history(self) -> int:
        raise NotImplementedError


class ProfileStore(ABC):
    @abstractmethod
    def get_profile(self) -> UserProfile | None:
        raise NotImplementedError

    @abstractmethod
    def update_profile(self, **fields: str) -> UserProfile:
        raise NotImplementedError

    def list_signatures(self) -> list[Signature]:
        return []


class SettingsStore(ABC):
    @abstractmethod
    def get_setting(self, key: str) -> bool | None:
        raise NotImplementedError

    @abstractmethod
    def set_setting(self, key: str, value: bool) -> None:
        raise NotImplementedError


class EmailTransport(ABC):
    @abstractmethod
    def send(
        self,
        *,
        to: str,
        subject: str,
        body: str,
        attachment_ids: list[str] | None = None,
    ) -> bool:
        raise NotImplementedError


class FaxTransport(ABC):
    @abstractmethod
    def send(self, *, recipient_name: str, fax_number: str, document_id: str) -> str:
        raise NotImplementedError


class Navigator(ABC):
    @abstractmethod
    def navigate(self, screen: str, params: dict[str, object] | None = None) -> None:
        raise NotImplementedError

    @abstractmethod
    def request_selection(self, prompt: str, purpose: str) -> None:
        raise NotImplementedError


@dataclass(frozen=True)
class Capabilities:
    documents: DocumentStore
    notifications: NotificationStore
    activities: ActivityLog
    shares: ShareHistory
    profile: ProfileStore
    settings: SettingsStore
    email: EmailTransport
    fax: FaxTransport
    navigator: Navigator
