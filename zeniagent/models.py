from pydantic import BaseModel, Field


class SendMessageRequest(BaseModel):
    text: str = Field(min_length=1, max_length=6000)
    attached_document_id: str | None = Field(default=None, min_length=1, max_length=200)


class MessageOut(BaseModel):
    id: str
    role: str
    content: str
    created_at: str
    attached_entity_id: str | None = None


class PendingActionOut(BaseModel):
    kind: str
    prompt: str
    params: dict[str, object] = Field(default_factory=dict)
    created_at: str


class ConversationCreatedResponse(BaseModel):
    conversation_id: str
    title: str


class ConversationResponse(BaseModel):
    conversation_id: str
    title: str
    messages: list[MessageOut] = Field(default_factory=list)
    state: str
    pending: PendingActionOut | None = None


class TurnResponse(BaseModel):
    conversation_id: str
    messages: list[MessageOut] = Field(default_factory=list)
    state: str
    pending: PendingActionOut | None = None
    ui_events: list[dict[str, object]] = Field(default_factory=list)
    used_fallback: bool = False
    rejection: str | None = None


class SettingsReloadResponse(BaseModel):
    reasoning_configured: bool
    provider: str
    model: str
