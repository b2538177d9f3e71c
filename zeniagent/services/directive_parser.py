from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass

from zeniagent.services.action_validator import NONE_KIND, normalize_kind

logger = logging.getLogger(__name__)

# A fenced block labeled "action" holding one JSON object. Only the first block counts.
_DIRECTIVE_BLOCK = re.compile(r"```action[ \t]*\r?\n?(.*?)\s*```", re.DOTALL)


@dataclass(frozen=True)
class ParsedReply:
    display_text: str
    action_payload: dict[str, object] | None = None

    @property
    def kind(self) -> str:
        if not self.action_payload:
            return NONE_KIND
        return normalize_kind(self.action_payload.get("type") or self.action_payload.get("kind"))

    @property
    def has_action(self) -> bool:
        return self.kind != NONE_KIND


def parse_agent_reply(text: str) -> ParsedReply:
    raw = text or ""
    match = _DIRECTIVE_BLOCK.search(raw)
    if match is None:
        return ParsedReply(display_text=raw.strip())

    body = match.group(1).strip()
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as exc:
        logger.warning("Ignoring malformed action directive: %s", exc)
        return ParsedReply(display_text=raw.strip())
    if not isinstance(payload, dict):
        logger.warning(
            "Ignoring action directive that is not a JSON object (got %s)",
            type(payload).__name__,
        )
        return ParsedReply(display_text=raw.strip())

    display = (raw[: match.start()] + raw[match.end() :]).strip()
    return ParsedReply(display_text=display, action_payload=payload)


def strip_directive_blocks(text: str) -> str:
    """Remove every directive fence, parsed or not. Used on text that must never carry one."""
    cleaned = _DIRECTIVE_BLOCK.sub("", text or "")
    return cleaned.replace("```action", "").strip()
