from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException

from zeniagent import config
from zeniagent.capabilities import InMemoryWorkspace, build_in_memory_capabilities
from zeniagent.exceptions import (
    ConversationBusyError,
    NoPendingActionError,
    PendingActionConflictError,
    UnknownConversationError,
)
from zeniagent.logging_config import setup_logging
from zeniagent.models import (
    ConversationCreatedResponse,
    ConversationResponse,
    MessageOut,
    PendingActionOut,
    SendMessageRequest,
    SettingsReloadResponse,
    TurnResponse,
)
from zeniagent.services.assistant import AssistantOrchestrator, TurnResult
from zeniagent.services.confirmation_gate import PendingAction
from zeniagent.services.conversation import Message
from zeniagent.services.reasoning_client import ReasoningConfig

settings = config.settings
setup_logging(settings.log_level, json_logs=settings.log_json)
logger = logging.getLogger(__name__)

app = FastAPI(title="Zeni Agent API", version="0.1.0")


def _build_workspace() -> InMemoryWorkspace:
    if settings.workspace_seed_path:
        logger.info("Loading workspace seed from %s", settings.workspace_seed_path)
        return InMemoryWorkspace.from_seed(settings.workspace_seed_path)
    return InMemoryWorkspace()


def _build_orchestrator(workspace: InMemoryWorkspace) -> AssistantOrchestrator:
    return AssistantOrchestrator(
        build_in_memory_capabilities(workspace),
        reasoning=ReasoningConfig.from_settings(settings),
        assistant_name=settings.assistant_name,
        history_limit=settings.reasoning_history_messages,
    )


workspace = _build_workspace()
orchestrator = _build_orchestrator(workspace)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/v1/conversations", response_model=ConversationCreatedResponse)
def create_conversation() -> ConversationCreatedResponse:
    conversation = orchestrator.create_conversation()
    return ConversationCreatedResponse(conversation_id=conversation.id, title=conversation.title)


@app.get("/v1/conversations/{conversation_id}", response_model=ConversationResponse)
def get_conversation(conversation_id: str) -> ConversationResponse:
    try:
        conversation = orchestrator.conversations.get(conversation_id)
        view = orchestrator.describe(conversation_id)
    except UnknownConversationError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return ConversationResponse(
        conversation_id=view.conversation_id,
        title=conversation.title,
        messages=[_message_out(message) for message in view.messages],
        state=view.state,
        pending=_pending_out(view.pending),
    )


@app.post("/v1/conversations/{conversation_id}/messages", response_model=TurnResponse)
def send_message(conversation_id: str, payload: SendMessageRequest) -> TurnResponse:
    text = payload.text.strip()
    if not text:
        raise HTTPException(status_code=400, detail="Message text is required.")
    try:
        result = orchestrator.send_message(
            conversation_id,
            text,
            attached_document_id=payload.attached_document_id,
        )
    except UnknownConversationError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except (ConversationBusyError, PendingActionConflictError) as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _turn_out(result)


@app.post("/v1/conversations/{conversation_id}/pending/confirm", response_model=TurnResponse)
def confirm_pending(conversation_id: str) -> TurnResponse:
    try:
        result = orchestrator.confirm_pending(conversation_id)
    except UnknownConversationError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except NoPendingActionError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _turn_out(result)


@app.post("/v1/conversations/{conversation_id}/pending/cancel", response_model=TurnResponse)
def cancel_pending(conversation_id: str) -> TurnResponse:
    try:
        result = orchestrator.cancel_pending(conversation_id)
    except UnknownConversationError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except NoPendingActionError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _turn_out(result)


@app.get("/v1/workspace/snapshot")
def workspace_snapshot() -> dict[str, object]:
    return orchestrator.snapshot().to_dict()


@app.post("/v1/settings/reload", response_model=SettingsReloadResponse)
def reload_settings() -> SettingsReloadResponse:
    global settings
    fresh = config.load_settings()
    try:
        orchestrator.reload_reasoning(ReasoningConfig.from_settings(fresh))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    settings = fresh
    logger.info("Settings reloaded")
    return SettingsReloadResponse(
        reasoning_configured=orchestrator.reasoning_configured,
        provider=fresh.reasoning_llm_provider,
        model=fresh.reasoning_llm_model,
    )


def _message_out(message: Message) -> MessageOut:
    return MessageOut(
        id=message.id,
        role=message.role,
        content=message.content,
        created_at=message.created_at.isoformat(),
        attached_entity_id=message.attached_entity_id,
    )


def _pending_out(pending: PendingAction | None) -> PendingActionOut | None:
    if pending is None:
        return None
    return PendingActionOut(
        kind=pending.action.kind,
        prompt=pending.prompt,
        params=dict(pending.action.params),
        created_at=pending.created_at.isoformat(),
    )


def _turn_out(result: TurnResult) -> TurnResponse:
    return TurnResponse(
        conversation_id=result.conversation_id,
        messages=[_message_out(message) for message in result.messages],
        state=result.state,
        pending=_pending_out(result.pending),
        ui_events=result.ui_events,
        used_fallback=result.used_fallback,
        rejection=result.rejection,
    )
