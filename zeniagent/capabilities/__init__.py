from .base import (
    KNOWN_SETTINGS,
    Activity,
    ActivityLog,
    Capabilities,
    Document,
    DocumentStore,
    EmailTransport,
    FaxTransport,
    Folder,
    Navigator,
    Notification,
    NotificationStore,
    ProfileStore,
    SettingsStore,
    ShareHistory,
    ShareRecord,
    Signature,
    UserProfile,
)
from .email import ComposerEmailTransport, MailtoEmailTransport
from .fax import QueuedFaxTransport
from .navigation import RecordingNavigator
from .workspace import InMemoryWorkspace

__all__ = [
    "KNOWN_SETTINGS",
    "Activity",
    "ActivityLog",
    "Capabilities",
    "ComposerEmailTransport",
    "Document",
    "DocumentStore",
    "EmailTransport",
    "FaxTransport",
    "Folder",
    "InMemoryWorkspace",
    "MailtoEmailTransport",
    "Navigator",
    "Notification",
    "NotificationStore",
    "ProfileStore",
    "QueuedFaxTransport",
    "RecordingNavigator",
    "SettingsStore",
    "ShareHistory",
    "ShareRecord",
    "Signature",
    "UserProfile",
    "build_in_memory_capabilities",
]


def build_in_memory_capabilities(
    workspace: InMemoryWorkspace,
    *,
    email: EmailTransport | None = None,
    navigator: Navigator | None = None,
) -> Capabilities:
    navigator = navigator or RecordingNavigator()
    if email is None:
        if not isinstance(navigator, RecordingNavigator):
            raise ValueError("an email transport is required when the navigator does not record UI events")
        email = ComposerEmailTransport(navigator)
    return Capabilities(
        documents=workspace,
        notifications=workspace,
        activities=workspace,
        shares=workspace,
        profile=workspace,
        settings=workspace,
        email=email,
        fax=QueuedFaxTransport(workspace),
        navigator=navigator,
    )
