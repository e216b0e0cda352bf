import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from chatcache.core.store import Message, Role
from chatcache.llm.client import OllamaClient
from chatcache.llm.prompts import SYSTEM_PROMPT

logger = logging.getLogger(__name__)

_OLLAMA_ROLES = {Role.HUMAN: "user", Role.AGENT: "assistant"}


@dataclass(frozen=True)
class EngineMetadata:
    metrics: Optional[Dict[str, Any]] = None
    intervention_level: Optional[str] = None
    warden_intent: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class EngineResult:
    reply: Message
    metadata: EngineMetadata = field(default_factory=EngineMetadata)


class ReasoningEngine(Protocol):
    """
    Turns a complete, ordered conversation history into the next agent turn.
    Implementations keep no state between calls.
    """

    def invoke(self, history: List[Message]) -> EngineResult:
        ...


def _parse_llm_json_payload(raw_text: str) -> dict:
    """
    Parse LLM output into JSON, tolerating Markdown code fences.
    """
    text = raw_text.strip()

    # Fast path: already valid JSON.
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    fence_match = re.search(r"```(?:json)?\s*(.*?)\s*```", text, flags=re.DOTALL | re.IGNORECASE)
    if fence_match:
        try:
            return json.loads(fence_match.group(1).strip())
        except json.JSONDecodeError:
            pass

    # Last chance: extract the first JSON object-like region.
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end != -1 and end > start:
        return json.loads(text[start : end + 1])

    raise json.JSONDecodeError("No valid JSON object found in LLM response.", text, 0)


def _content_as_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    return json.dumps(content, ensure_ascii=False)


def _optional_dict(value: Any) -> Optional[Dict[str, Any]]:
    return value if isinstance(value, dict) else None


class OllamaReasoningEngine:
    """
    Reasoning engine backed by an Ollama chat model.
    """

    def __init__(self, client: OllamaClient, system_prompt: str = SYSTEM_PROMPT):
        self.client = client
        self.system_prompt = system_prompt

    def build_messages(self, history: List[Message]) -> List[Dict[str, str]]:
        messages = [{"role": "system", "content": self.system_prompt}]
        for entry in history:
            messages.append({"role": _OLLAMA_ROLES[entry.role], "content": _content_as_text(entry.content)})
        return messages

    def invoke(self, history: List[Message]) -> EngineResult:
        raw_reply = self.client.chat(self.build_messages(history), json_mode=True)
        logger.debug(f"LLM raw response: {raw_reply}")

        try:
            payload = _parse_llm_json_payload(raw_reply)
        except json.JSONDecodeError:
            logger.warning("LLM reply was not JSON; passing it through as plain text.")
            return EngineResult(reply=Message(role=Role.AGENT, content=raw_reply.strip()))

        if not isinstance(payload, dict) or not isinstance(payload.get("response"), str):
            logger.warning("LLM JSON reply has no 'response' text; passing raw output through.")
            return EngineResult(reply=Message(role=Role.AGENT, content=raw_reply.strip()))

        level = payload.get("intervention_level")
        metadata = EngineMetadata(
            metrics=_optional_dict(payload.get("metrics")),
            intervention_level=str(level) if level is not None else None,
            warden_intent=_optional_dict(payload.get("intent")),
        )
        logger.info(f"Engine replied with intervention_level={metadata.intervention_level}")
        return EngineResult(reply=Message(role=Role.AGENT, content=payload["response"]), metadata=metadata)
