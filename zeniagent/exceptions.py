"""Exception hierarchy for zeniagent."""


class ZeniAgentError(Exception):
    """Base exception for the assistant service."""
    pass


class ReasoningUnavailableError(ZeniAgentError):
    """Raised when the remote reasoning call fails, times out or is not configured."""
    pass


class ContentPolicyError(ZeniAgentError):
    """Raised when the reasoning provider refuses a request on content grounds."""
    pass


class UnknownConversationError(ZeniAgentError, KeyError):
    """Raised when a conversation id does not exist."""

    def __str__(self) -> str:
        return Exception.__str__(self)


class ConversationBusyError(ZeniAgentError):
    """Raised when a message arrives while the previous round-trip is still in flight."""
    pass


class PendingActionConflictError(ZeniAgentError):
    """Raised when an action is already pending or executing for the conversation."""
    pass


class NoPendingActionError(ZeniAgentError):
    """Raised when confirm or cancel is requested with nothing awaiting confirmation."""
    pass
