from __future__ import annotations

import logging
import webbrowser
from typing import Callable
from urllib.parse import quote

from .base import EmailTransport
from .navigation import RecordingNavigator

logger = logging.getLogger(__name__)


def build_mailto_url(*, to: str, subject: str, body: str) -> str:
    return (
        f"mailto:{quote(to.strip(), safe='@,')}"
        f"?subject={quote(subject, safe='')}"
        f"&body={quote(body, safe='')}"
    )


class ComposerEmailTransport(EmailTransport):
    """Asks the client to open its own mail composer.

    The draft travels back with the turn as a ``compose_email`` UI event, so
    ``True`` means the event was queued, not that the mail was delivered.
    """

    def __init__(self, events: RecordingNavigator) -> None:
        self._events = events

    def send(
        self,
        *,
        to: str,
        subject: str,
        body: str,
        attachment_ids: list[str] | None = None,
    ) -> bool:
        self._events.emit(
            {
                "type": "compose_email",
                "mailto_url": build_mailto_url(to=to, subject=subject, body=body),
                "to": to,
                "subject": subject,
                "body": body,
                "attachment_ids": list(attachment_ids or []),
            }
        )
        return True


class MailtoEmailTransport(EmailTransport):
    """Opens a mail composer on the machine running the service.

    Only useful when the service runs on the user's own desktop. Attachments
    cannot travel through mailto, so their ids are only logged.
    """

    def __init__(self, opener: Callable[[str], bool] | None = None) -> None:
        self._opener = opener or webbrowser.open

    def send(
        self,
        *,
        to: str,
        subject: str,
        body: str,
        attachment_ids: list[str] | None = None,
    ) -> bool:
        url = build_mailto_url(to=to, subject=subject, body=body)
        if attachment_ids:
            logger.info(
                "mailto composer cannot carry %d attachment(s); sending without them",
                len(attachment_ids),
            )
        opened = self._opener(url)
        if not opened:
            logger.warning("Could not open mail composer for %s", to)
        return bool(opened)
