from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable

from zeniagent.capabilities.base import Capabilities
from zeniagent.capabilities.navigation import RecordingNavigator
from zeniagent.exceptions import (
    ContentPolicyError,
    ConversationBusyError,
    PendingActionConflictError,
    ReasoningUnavailableError,
)
from zeniagent.services.action_validator import ActionRequest, validate_action
from zeniagent.services.confirmation_gate import (
    STATE_IDLE,
    ConfirmationGate,
    PendingAction,
    render_confirmation_prompt,
)
from zeniagent.services.context_snapshot import (
    ContextSnapshot,
    DocumentContext,
    build_context_snapshot,
)
from zeniagent.services.conversation import (
    ROLE_ASSISTANT,
    ROLE_USER,
    Conversation,
    ConversationStore,
    Message,
)
from zeniagent.services.directive_parser import parse_agent_reply
from zeniagent.services.executor import ActionExecutor, ActionResult
from zeniagent.services.fallback import generate_fallback_reply
from zeniagent.services.reasoning_client import ReasoningClient, ReasoningConfig
from zeniagent.services.reporter import TranscriptReporter

logger = logging.getLogger(__name__)

CONTENT_POLICY_REPLY = "Sorry, I can't help with that request."


@dataclass(frozen=True)
class TurnResult:
    conversation_id: str
    messages: tuple[Message, ...]
    state: str
    pending: PendingAction | None = None
    ui_events: list[dict[str, object]] = field(default_factory=list)
    used_fallback: bool = False
    action_result: ActionResult | None = None
    rejection: str | None = None


class AssistantOrchestrator:
    """Sequences one conversational round-trip.

    user message -> snapshot -> reasoning call (or fallback) -> parse ->
    validate -> gate -> execute -> report.
    """

    def __init__(
        self,
        capabilities: Capabilities,
        *,
        reasoning: ReasoningConfig | None = None,
        conversations: ConversationStore | None = None,
        gate: ConfirmationGate | None = None,
        assistant_name: str = "Zai",
        history_limit: int = 20,
        client_factory: Callable[[ReasoningConfig], ReasoningClient] = ReasoningClient,
    ) -> None:
        self.capabilities = capabilities
        self.conversations = conversations or ConversationStore()
        self.gate = gate or ConfirmationGate()
        self.assistant_name = assistant_name
        self.history_limit = history_limit
        self._executor = ActionExecutor(capabilities, assistant_name=assistant_name)
        self._reporter = TranscriptReporter(capabilities.documents)
        self._client_factory = client_factory
        self._client_lock = threading.Lock()
        self._reasoning_config: ReasoningConfig | None = None
        self._client: ReasoningClient | None = None
        self._in_flight_lock = threading.Lock()
        self._in_flight: set[str] = set()
        self.reload_reasoning(reasoning)

    @property
    def reasoning_configured(self) -> bool:
        with self._client_lock:
            return self._client is not None

    def reload_reasoning(self, config: ReasoningConfig | None) -> None:
        """Swap the reasoning configuration. ``None`` or a missing key means fallback only."""
        client = None
        if config is not None and config.is_configured:
            client = self._client_factory(config)
        with self._client_lock:
            self._reasoning_config = config
            self._client = client
        logger.info(
            "Reasoning client %s",
            f"configured for {config.provider}/{config.model}" if client else "disabled; using local fallback",
        )

    def create_conversation(self) -> Conversation:
        return self.conversations.create()

    def snapshot(self) -> ContextSnapshot:
        return build_context_snapshot(self.capabilities)

    def describe(self, conversation_id: str) -> TurnResult:
        conversation = self.conversations.get(conversation_id)
        return TurnResult(
            conversation_id=conversation.id,
            messages=conversation.messages,
            state=self.gate.state(conversation.id),
            pending=self.gate.pending(conversation.id),
        )

    def send_message(
        self,
        conversation_id: str,
        text: str,
        attached_document_id: str | None = None,
    ) -> TurnResult:
        conversation = self.conversations.get(conversation_id)
        self._enter(conversation.id)
        try:
            if self.gate.state(conversation.id) != STATE_IDLE:
                raise PendingActionConflictError(
                    "An action is waiting for confirmation. Confirm or cancel it first."
                )
            start = len(conversation.messages)
            conversation.append(ROLE_USER, text, attached_entity_id=attached_document_id)

            document = self._document_context(attached_document_id)
            snapshot = build_context_snapshot(self.capabilities)
            history = conversation.history(self.history_limit)
            reply, used_fallback = self._reason(history, document, snapshot)

            parsed = parse_agent_reply(reply)
            if parsed.display_text:
                conversation.append(ROLE_ASSISTANT, parsed.display_text)

            outcome = validate_action(parsed.action_payload)
            action_result = None
            if outcome.accepted and outcome.action is not None:
                action_result = self._dispatch(conversation, outcome.action)
            return self._turn(
                conversation,
                start,
                used_fallback=used_fallback,
                action_result=action_result,
                rejection=outcome.reason if outcome.rejected else None,
            )
        finally:
            self._leave(conversation.id)

    def confirm_pending(self, conversation_id: str) -> TurnResult:
        conversation = self.conversations.get(conversation_id)
        start = len(conversation.messages)
        action = self.gate.confirm(conversation.id)
        result = self._run(conversation, action)
        return self._turn(conversation, start, action_result=result)

    def cancel_pending(self, conversation_id: str) -> TurnResult:
        conversation = self.conversations.get(conversation_id)
        start = len(conversation.messages)
        pending = self.gate.cancel(conversation.id)
        self._reporter.report_cancellation(conversation, pending)
        logger.info("Cancelled pending %s for conversation %s", pending.action.kind, conversation.id)
        return self._turn(conversation, start)

    def _dispatch(self, conversation: Conversation, action: ActionRequest) -> ActionResult | None:
        if action.confirmation_required:
            prompt = render_confirmation_prompt(action, self.capabilities.documents)
            self.gate.hold(conversation.id, action, prompt)
            return None
        self.gate.begin(conversation.id, action)
        return self._run(conversation, action)

    def _run(self, conversation: Conversation, action: ActionRequest) -> ActionResult:
        navigator = self.capabilities.navigator
        if isinstance(navigator, RecordingNavigator):
            navigator.bind(conversation.id)
        try:
            result = self._executor.execute(action)
        finally:
            self.gate.complete(conversation.id)
        self._reporter.report_result(conversation, result)
        return result

    def _reason(
        self,
        history: list[dict[str, str]],
        document: DocumentContext | None,
        snapshot: ContextSnapshot,
    ) -> tuple[str, bool]:
        with self._client_lock:
            client = self._client
        if client is not None:
            try:
                return client.complete(history, document=document, snapshot=snapshot), False
            except ContentPolicyError as exc:
                logger.warning("Reasoning request refused on content grounds: %s", exc)
                return CONTENT_POLICY_REPLY, False
            except ReasoningUnavailableError as exc:
                logger.warning("Reasoning call failed, using local fallback: %s", exc)
            except Exception:
                logger.exception("Reasoning client raised unexpectedly, using local fallback")
        reply = generate_fallback_reply(
            history,
            document=document,
            snapshot=snapshot,
            assistant_name=self.assistant_name,
        )
        return reply, True

    def _document_context(self, document_id: str | None) -> DocumentContext | None:
        if not document_id:
            return None
        document = self.capabilities.documents.get_document(document_id)
        if document is None:
            logger.info("Attached document %s no longer exists; continuing without it", document_id)
            return None
        return DocumentContext.from_document(document)

    def _turn(
        self,
        conversation: Conversation,
        start: int,
        *,
        used_fallback: bool = False,
        action_result: ActionResult | None = None,
        rejection: str | None = None,
    ) -> TurnResult:
        navigator = self.capabilities.navigator
        events = navigator.drain(conversation.id) if isinstance(navigator, RecordingNavigator) else []
        return TurnResult(
            conversation_id=conversation.id,
            messages=conversation.messages[start:],
            state=self.gate.state(conversation.id),
            pending=self.gate.pending(conversation.id),
            ui_events=events,
            used_fallback=used_fallback,
            action_result=action_result,
            rejection=rejection,
        )

    def _enter(self, conversation_id: str) -> None:
        with self._in_flight_lock:
            if conversation_id in self._in_flight:
                raise ConversationBusyError(
                    "A reply is still being prepared for this conversation."
                )
            self._in_flight.add(conversation_id)

    def _leave(self, conversation_id: str) -> None:
        with self._in_flight_lock:
            self._in_flight.discard(conversation_id)
