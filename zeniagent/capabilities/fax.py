from __future__ import annotations

import re
import threading
from dataclasses import dataclass
from datetime import datetime
from uuid import uuid4

from .base import FaxTransport, ShareHistory, utc_now


@dataclass(frozen=True)
class FaxJob:
    id: str
    recipient_name: str
    fax_number: str
    document_id: str
    status: str
    created_at: datetime


def format_fax_number(number: str) -> str:
    cleaned = re.sub(r"[^\d+]", "", number or "")
    if not cleaned.startswith("+"):
        # Bare 10/11 digit numbers are treated as North American.
        if len(cleaned) == 10:
            cleaned = "+1" + cleaned
        elif len(cleaned) == 11 and cleaned.startswith("1"):
            cleaned = "+" + cleaned
    return cleaned


def validate_fax_number(number: str) -> str | None:
    """Return an error message for an unusable number, or None when it is valid."""
    formatted = format_fax_number(number)
    if len(formatted) < 10:
        return "Fax number is too short"
    if len(formatted) > 15:
        return "Fax number is too long"
    if not re.fullmatch(r"\+?\d+", formatted):
        return "Invalid characters in fax number"
    return None


class QueuedFaxTransport(FaxTransport):
    """Queues fax jobs for a provider worker; delivery status is tracked elsewhere."""

    def __init__(self, share_history: ShareHistory) -> None:
        self._share_history = share_history
        self._lock = threading.Lock()
        self._queue: list[FaxJob] = []

    def send(self, *, recipient_name: str, fax_number: str, document_id: str) -> str:
        problem = validate_fax_number(fax_number)
        if problem:
            raise ValueError(problem)
        job = FaxJob(
            id=f"fax-{uuid4().hex[:12]}",
            recipient_name=recipient_name,
            fax_number=format_fax_number(fax_number),
            document_id=document_id,
            status="pending",
            created_at=utc_now(),
        )
        with self._lock:
            self._queue.append(job)
        self._share_history.record_share(
            recipient_name=recipient_name,
            method="fax",
            status="pending",
            document_id=document_id,
        )
        return job.id

    def pending_jobs(self) -> list[FaxJob]:
        with self._lock:
            return list(self._queue)
