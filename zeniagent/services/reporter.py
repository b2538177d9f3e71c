from __future__ import annotations

from zeniagent.capabilities.base import DocumentStore
from zeniagent.services.confirmation_gate import PendingAction, render_cancellation_notice
from zeniagent.services.conversation import ROLE_ASSISTANT, Conversation, Message
from zeniagent.services.executor import ActionResult

SUCCESS_MARKER = "✅"
FAILURE_MARKER = "⚠️"


class TranscriptReporter:
    """Turns action outcomes into exactly one appended assistant message each."""

    def __init__(self, documents: DocumentStore | None = None) -> None:
        self._documents = documents

    def report_result(self, conversation: Conversation, result: ActionResult) -> Message:
        marker = SUCCESS_MARKER if result.success else FAILURE_MARKER
        return conversation.append(ROLE_ASSISTANT, f"{marker} {result.message}")

    def report_cancellation(self, conversation: Conversation, pending: PendingAction) -> Message:
        return conversation.append(
            ROLE_ASSISTANT,
            render_cancellation_notice(pending.action, self._documents),
        )
