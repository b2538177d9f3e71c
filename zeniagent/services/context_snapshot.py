from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from zeniagent.capabilities.base import Capabilities, Document

MAX_DOCUMENTS = 15
MAX_ACTIVITIES = 10
MAX_SHARES = 10
MAX_SIGNATURES = 10
DOCUMENT_PREVIEW_CHARS = 2000
DELIVERED_STATUSES = {"delivered", "sent"}


@dataclass(frozen=True)
class DocumentSummary:
    id: str
    name: str
    kind: str
    page_count: int
    file_size: int
    folder_id: str | None
    created_at: datetime


@dataclass(frozen=True)
class FolderSummary:
    id: str
    name: str
    document_count: int
    icon: str | None = None


@dataclass(frozen=True)
class ActivitySummary:
    kind: str
    title: str
    created_at: datetime


@dataclass(frozen=True)
class ShareSummary:
    recipient_name: str
    method: str
    status: str
    timestamp: datetime


@dataclass(frozen=True)
class SignatureSummary:
    id: str
    kind: str
    created_at: datetime


@dataclass(frozen=True)
class ProfileSummary:
    id: str
    first_name: str
    last_name: str | None
    email: str | None
    school: str | None
    level: str | None
    account_type: str
    is_premium: bool


@dataclass(frozen=True)
class WorkspaceStats:
    total_documents: int
    total_folders: int
    delivered_shares: int
    storage_used: int


@dataclass(frozen=True)
class DocumentContext:
    """The document the user is looking at while chatting, if any."""

    name: str
    kind: str
    page_count: int
    id: str | None = None
    content: str | None = None

    @classmethod
    def from_document(cls, document: Document) -> "DocumentContext":
        return cls(
            id=document.id,
            name=document.name,
            kind=document.kind,
            page_count=document.page_count,
            content=document.content,
        )

    def render_for_prompt(self) -> str:
        lines = [
            "CURRENTLY VIEWING DOCUMENT:",
            f"- Name: {self.name}",
            f"- Type: {self.kind}",
            f"- Pages: {self.page_count}",
        ]
        if self.content:
            lines.append("")
            lines.append("Document Content Preview:")
            lines.append(self.content[:DOCUMENT_PREVIEW_CHARS])
        return "\n".join(lines)


@dataclass(frozen=True)
class ContextSnapshot:
    documents: tuple[DocumentSummary, ...]
    documents_total: int
    folders: tuple[FolderSummary, ...]
    activities: tuple[ActivitySummary, ...]
    shares: tuple[ShareSummary, ...]
    stats: WorkspaceStats
    profile: ProfileSummary | None = None
    signatures: tuple[SignatureSummary, ...] = field(default_factory=tuple)
    signatures_total: int = 0

    @property
    def documents_remaining(self) -> int:
        return max(0, self.documents_total - len(self.documents))

    @property
    def first_name(self) -> str:
        if self.profile and self.profile.first_name:
            return self.profile.first_name
        return "there"

    def render_for_prompt(self) -> str:
        sections: list[str] = []
        if self.profile is not None:
            profile_lines = ["User Profile:", f"- Name: {_full_name(self.profile)}"]
            if self.profile.email:
                profile_lines.append(f"- Email: {self.profile.email}")
            if self.profile.school:
                profile_lines.append(f"- School/Institution: {self.profile.school}")
            if self.profile.level:
                profile_lines.append(f"- Level: {self.profile.level}")
            profile_lines.append(f"- Account Type: {self.profile.account_type}")
            if self.profile.is_premium:
                profile_lines.append("- Premium User")
            sections.append("\n".join(profile_lines))

        sections.append(
            "\n".join(
                [
                    "Workspace Stats:",
                    f"- Total Documents: {self.stats.total_documents}",
                    f"- Total Folders: {self.stats.total_folders}",
                    f"- Shares/Faxes Delivered: {self.stats.delivered_shares}",
                    f"- Storage Used: {self.stats.storage_used / (1024 * 1024):.1f} MB",
                ]
            )
        )

        if self.documents:
            doc_lines = [f"Documents ({self.documents_total} total):"]
            for index, doc in enumerate(self.documents, start=1):
                placement = f'[in folder "{doc.folder_id}"]' if doc.folder_id else "[unfiled]"
                doc_lines.append(
                    f'{index}. ID:"{doc.id}" - "{doc.name}" ({doc.kind}, {doc.page_count} pages) {placement}'
                )
            if self.documents_remaining:
                doc_lines.append(f"... and {self.documents_remaining} more documents")
            sections.append("\n".join(doc_lines))

        if self.folders:
            folder_lines = [f"Folders ({len(self.folders)} total):"]
            for index, folder in enumerate(self.folders, start=1):
                folder_lines.append(
                    f'{index}. ID:"{folder.id}" - "{folder.name}" ({folder.document_count} documents)'
                )
            sections.append("\n".join(folder_lines))

        if self.activities:
            sections.append(
                "\n".join(
                    ["Recent Activities:"]
                    + [f"- {activity.kind}: {activity.title}" for activity in self.activities]
                )
            )

        if self.shares:
            sections.append(
                "\n".join(
                    ["Recent Share/Fax History:"]
                    + [
                        f"- To: {share.recipient_name} via {share.method} ({share.status})"
                        for share in self.shares
                    ]
                )
            )

        if self.signatures_total:
            sections.append(f"Saved Signatures: {self.signatures_total} signature(s)")

        return "\n\n".join(sections)

    def to_dict(self) -> dict[str, object]:
        return {
            "documents": [
                {
                    "id": doc.id,
                    "name": doc.name,
                    "kind": doc.kind,
                    "page_count": doc.page_count,
                    "file_size": doc.file_size,
                    "folder_id": doc.folder_id,
                    "created_at": doc.created_at.isoformat(),
                }
                for doc in self.documents
            ],
            "documents_total": self.documents_total,
            "documents_remaining": self.documents_remaining,
            "folders": [
                {
                    "id": folder.id,
                    "name": folder.name,
                    "document_count": folder.document_count,
                    "icon": folder.icon,
                }
                for folder in self.folders
            ],
            "activities": [
                {
                    "kind": activity.kind,
                    "title": activity.title,
                    "created_at": activity.created_at.isoformat(),
                }
                for activity in self.activities
            ],
            "shares": [
                {
                    "recipient_name": share.recipient_name,
                    "method": share.method,
                    "status": share.status,
                    "timestamp": share.timestamp.isoformat(),
                }
                for share in self.shares
            ],
            "stats": {
                "total_documents": self.stats.total_documents,
                "total_folders": self.stats.total_folders,
                "delivered_shares": self.stats.delivered_shares,
                "storage_used": self.stats.storage_used,
            },
            "profile": (
                {
                    "id": self.profile.id,
                    "first_name": self.profile.first_name,
                    "last_name": self.profile.last_name,
                    "email": self.profile.email,
                    "school": self.profile.school,
                    "level": self.profile.level,
                    "account_type": self.profile.account_type,
                    "is_premium": self.profile.is_premium,
                }
                if self.profile
                else None
            ),
            "signatures": [
                {
                    "id": signature.id,
                    "kind": signature.kind,
                    "created_at": signature.created_at.isoformat(),
                }
                for signature in self.signatures
            ],
            "signatures_total": self.signatures_total,
        }


def build_context_snapshot(capabilities: Capabilities) -> ContextSnapshot:
    """Project the current workspace into a bounded, read-only snapshot.

    Newest entries win when a list is truncated. Raw document content is
    never copied in.
    """
    documents = sorted(
        capabilities.documents.list_documents(),
        key=lambda doc: doc.created_at,
        reverse=True,
    )
    folders = capabilities.documents.list_folders()
    activities = sorted(
        capabilities.activities.list_activities(),
        key=lambda activity: activity.created_at,
        reverse=True,
    )
    shares = sorted(
        capabilities.shares.list_shares(),
        key=lambda share: share.timestamp,
        reverse=True,
    )
    signatures = sorted(
        capabilities.profile.list_signatures(),
        key=lambda signature: signature.created_at,
        reverse=True,
    )
    profile = capabilities.profile.get_profile()

    return ContextSnapshot(
        documents=tuple(
            DocumentSummary(
                id=doc.id,
                name=doc.name,
                kind=doc.kind,
                page_count=doc.page_count,
                file_size=doc.file_size,
                folder_id=doc.folder_id,
                created_at=doc.created_at,
            )
            for doc in documents[:MAX_DOCUMENTS]
        ),
        documents_total=len(documents),
        folders=tuple(
            FolderSummary(
                id=folder.id,
                name=folder.name,
                document_count=len(folder.document_ids),
                icon=folder.icon,
            )
            for folder in folders
        ),
        activities=tuple(
            ActivitySummary(kind=activity.kind, title=activity.title, created_at=activity.created_at)
            for activity in activities[:MAX_ACTIVITIES]
        ),
        shares=tuple(
            ShareSummary(
                recipient_name=share.recipient_name,
                method=share.method,
                status=share.status,
                timestamp=share.timestamp,
            )
            for share in shares[:MAX_SHARES]
        ),
        stats=WorkspaceStats(
            total_documents=len(documents),
            total_folders=len(folders),
            delivered_shares=sum(
                1 for share in shares if share.status.lower() in DELIVERED_STATUSES
            ),
            storage_used=sum(doc.file_size for doc in documents),
        ),
        profile=(
            ProfileSummary(
                id=profile.id,
                first_name=profile.first_name,
                last_name=profile.last_name,
                email=profile.email,
                school=profile.school,
                level=profile.level,
                account_type=profile.account_type,
                is_premium=profile.is_premium,
            )
            if profile is not None
            else None
        ),
        signatures=tuple(
            SignatureSummary(id=signature.id, kind=signature.kind, created_at=signature.created_at)
            for signature in signatures[:MAX_SIGNATURES]
        ),
        signatures_total=len(signatures),
    )


def _full_name(profile: ProfileSummary) -> str:
    parts = [profile.first_name or "", profile.last_name or ""]
    name = " ".join(part for part in parts if part).strip()
    return name or "there"
