from __future__ import annotations

import logging
from dataclasses import dataclass

import requests

from zeniagent.config import Settings
from zeniagent.exceptions import ContentPolicyError, ReasoningUnavailableError
from zeniagent.services.action_validator import render_action_catalog
from zeniagent.services.context_snapshot import ContextSnapshot, DocumentContext

logger = logging.getLogger(__name__)

_CONTENT_POLICY_CODES = {"content_policy_violation", "content_filter"}


@dataclass(frozen=True)
class ReasoningConfig:
    provider: str
    model: str
    api_key: str | None
    timeout_seconds: int
    max_tokens: int = 4000
    temperature: float = 0.7
    api_base_url: str | None = None
    assistant_name: str = "Zai"

    @property
    def is_configured(self) -> bool:
        return bool((self.api_key or "").strip())

    @classmethod
    def from_settings(cls, settings: Settings) -> "ReasoningConfig":
        return cls(
            provider=settings.reasoning_llm_provider,
            model=settings.reasoning_llm_model,
            api_key=settings.reasoning_llm_api_key,
            timeout_seconds=settings.reasoning_llm_timeout_seconds,
            max_tokens=settings.reasoning_llm_max_tokens,
            temperature=settings.reasoning_llm_temperature,
            api_base_url=settings.reasoning_llm_api_base_url,
            assistant_name=settings.assistant_name,
        )


class ReasoningClient:
    """OpenAI-compatible chat completions client. Text in, text out."""

    def __init__(self, cfg: ReasoningConfig) -> None:
        provider = (cfg.provider or "").strip().lower()
        if provider not in {"groq", "openai", "openai_compatible"}:
            raise ValueError("provider must be one of: groq, openai, openai_compatible")

        api_key = (cfg.api_key or "").strip()
        if not api_key:
            raise ReasoningUnavailableError("Reasoning API key is not configured.")

        self._model = (cfg.model or "").strip()
        if not self._model:
            raise ValueError("Reasoning model is required.")

        self._api_key = api_key
        self._timeout_seconds = max(1, int(cfg.timeout_seconds))
        self._max_tokens = cfg.max_tokens
        self._temperature = cfg.temperature
        self._assistant_name = cfg.assistant_name
        base = (cfg.api_base_url or "").strip()
        if not base:
            if provider == "groq":
                base = "https://api.groq.com/openai/v1"
            else:
                base = "https://api.openai.com/v1"
        self._base_url = base.rstrip("/")

    def complete(
        self,
        history: list[dict[str, str]],
        document: DocumentContext | None = None,
        snapshot: ContextSnapshot | None = None,
    ) -> str:
        system_prompt = build_system_prompt(
            snapshot=snapshot,
            document=document,
            assistant_name=self._assistant_name,
        )
        payload = {
            "model": self._model,
            "messages": [{"role": "system", "content": system_prompt}, *history],
            "temperature": self._temperature,
            "max_tokens": self._max_tokens,
        }
        logger.debug("Reasoning call model=%s turns=%d", self._model, len(history))
        try:
            response = requests.post(
                f"{self._base_url}/chat/completions",
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
                timeout=self._timeout_seconds,
            )
        except requests.Timeout as exc:
            raise ReasoningUnavailableError(
                f"Reasoning call timed out after {self._timeout_seconds}s."
            ) from exc
        except requests.RequestException as exc:
            raise ReasoningUnavailableError(f"Reasoning call failed: {exc}") from exc

        if not response.ok:
            detail = response.text.strip()
            if _is_content_policy_refusal(response):
                raise ContentPolicyError(detail[:400] or "Request refused by content policy.")
            raise ReasoningUnavailableError(
                f"Reasoning completion failed ({response.status_code}): {detail[:400] or 'request failed'}"
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise ReasoningUnavailableError("Reasoning completion returned invalid JSON.") from exc
        if not isinstance(body, dict):
            raise ReasoningUnavailableError("Reasoning completion returned unexpected payload.")
        choices = body.get("choices")
        if not isinstance(choices, list) or not choices:
            raise ReasoningUnavailableError("Reasoning completion returned no choices.")
        row = choices[0]
        if not isinstance(row, dict):
            raise ReasoningUnavailableError("Reasoning completion returned malformed choice row.")
        if row.get("finish_reason") == "content_filter":
            raise ContentPolicyError("Response withheld by content filter.")
        message = row.get("message")
        if not isinstance(message, dict):
            raise ReasoningUnavailableError("Reasoning completion missing message payload.")
        content = message.get("content")
        if isinstance(content, str) and content.strip():
            return content.strip()
        raise ReasoningUnavailableError("Reasoning completion missing content.")


def build_system_prompt(
    *,
    snapshot: ContextSnapshot | None,
    document: DocumentContext | None,
    assistant_name: str = "Zai",
) -> str:
    name = snapshot.first_name if snapshot is not None else "there"
    parts = [
        (
            f"You are {assistant_name}, the assistant built into Zeni, a document workspace "
            "for students and professionals. You can read the user's workspace and ask the "
            "app to change it on their behalf."
        ),
        (
            f"Address the user as {name}. Keep answers short and friendly. Use plain '-' "
            "bullets and '1.' numbering. Do not use code blocks for regular text."
        ),
        (
            "When the user asks you to change something, end your reply with exactly one "
            "fenced block labeled action holding one JSON object:\n"
            "```action\n"
            '{"type": "<action type>", "params": {...}, '
            '"confirmationRequired": true, "confirmationMessage": "Are you sure...?"}\n'
            "```\n"
            "Reference only IDs that appear in the workspace context. If the user wants to "
            "work on a document but did not say which, use request_document_selection."
        ),
        render_action_catalog(),
    ]
    if snapshot is not None:
        parts.append(snapshot.render_for_prompt())
    if document is not None:
        parts.append(document.render_for_prompt())
    return "\n\n".join(parts)


def _is_content_policy_refusal(response: requests.Response) -> bool:
    try:
        body = response.json()
    except ValueError:
        return False
    if not isinstance(body, dict):
        return False
    error = body.get("error")
    if not isinstance(error, dict):
        return False
    code = str(error.get("code") or error.get("type") or "").lower()
    return code in _CONTENT_POLICY_CODES
