from .action_validator import ActionRequest, ValidationOutcome, validate_action
from .confirmation_gate import ConfirmationGate, PendingAction
from .context_snapshot import ContextSnapshot, DocumentContext, build_context_snapshot
from .conversation import Conversation, ConversationStore, Message
from .directive_parser import ParsedReply, parse_agent_reply
from .executor import ActionExecutor, ActionResult
from .fallback import generate_fallback_reply
from .reporter import TranscriptReporter

__all__ = [
    "ActionExecutor",
    "ActionRequest",
    "ActionResult",
    "ConfirmationGate",
    "ContextSnapshot",
    "Conversation",
    "ConversationStore",
    "DocumentContext",
    "Message",
    "ParsedReply",
    "PendingAction",
    "TranscriptReporter",
    "ValidationOutcome",
    "build_context_snapshot",
    "generate_fallback_reply",
    "parse_agent_reply",
    "validate_action",
    "AssistantOrchestrator",
    "TurnResult",
]


def __getattr__(name: str):
    if name in {"AssistantOrchestrator", "TurnResult"}:
        from .assistant import AssistantOrchestrator, TurnResult

        return {
            "AssistantOrchestrator": AssistantOrchestrator,
            "TurnResult": TurnResult,
        }[name]
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
