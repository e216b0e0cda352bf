import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from chatcache.core.settings import DEFAULT_OLLAMA_MODEL, Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OllamaModelDetection:
    ollama_up: bool
    model_available: bool
    selected_model: Optional[str]
    reason: str
    fallback_used: bool


class OllamaConnectionError(Exception):
    """The Ollama server could not be reached or answered badly."""
    pass


class OllamaModelUnavailableError(Exception):
    """Raised when none of the configured models is installed."""
    pass


class OllamaClient:
    """
    Chat client for the reasoning engine's Ollama backend.

    The model is picked on first use (configured, then default, then
    fallback) rather than at construction, so building an app never touches
    the network. Every call is bounded by the configured timeout.
    """

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.base_url = settings.ollama_base_url
        self.timeout = settings.ollama_timeout_sec
        self.client = httpx.Client(base_url=self.base_url, timeout=self.timeout)
        # (model, label, is_fallback) in preference order
        self._candidates = [
            (settings.ollama_model, "environment", False),
            (DEFAULT_OLLAMA_MODEL, "default", False),
            (settings.ollama_fallback_model, "fallback", True),
        ]
        self._detection: Optional[OllamaModelDetection] = None
        self.model: Optional[str] = None

    def _failure_message(self, exc: httpx.HTTPError) -> str:
        if isinstance(exc, httpx.ConnectError):
            return f"Could not connect to Ollama server at {self.base_url}. Is it running?"
        if isinstance(exc, httpx.TimeoutException):
            return f"Ollama request timed out after {self.timeout}s."
        if isinstance(exc, httpx.HTTPStatusError):
            return f"Ollama HTTP error: {exc.response.status_code} - {exc.response.text}"
        return f"Unexpected Ollama error: {exc}"

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            response = self.client.request(method, path, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            message = self._failure_message(e)
            logger.error(message)
            raise OllamaConnectionError(message) from e
        except ValueError as e:
            logger.error(f"Ollama returned a non-JSON body for {path}: {e}")
            raise OllamaConnectionError(f"Unexpected response format from Ollama {path} endpoint.") from e

    def detect_ollama_model(self) -> OllamaModelDetection:
        try:
            tags = self._request("GET", "/api/tags")
        except OllamaConnectionError as e:
            return OllamaModelDetection(False, False, None, str(e), False)

        models = tags.get("models") if isinstance(tags, dict) else None
        installed = {
            str(m["name"]) for m in (models if isinstance(models, list) else [])
            if isinstance(m, dict) and "name" in m
        }
        for model, label, is_fallback in self._candidates:
            if model and model in installed:
                return OllamaModelDetection(True, True, model, f"Using {label} model '{model}'.", is_fallback)

        return OllamaModelDetection(
            True, False, None,
            "Ollama is running but no preferred models are installed. "
            f"Install '{DEFAULT_OLLAMA_MODEL}' or a fallback model.",
            False,
        )

    def refresh_detection(self) -> OllamaModelDetection:
        self._detection = self.detect_ollama_model()
        self.model = self._detection.selected_model
        return self._detection

    def get_detection_status(self, refresh: bool = False) -> OllamaModelDetection:
        if refresh or self._detection is None:
            return self.refresh_detection()
        return self._detection

    def ensure_model(self) -> str:
        if self.model:
            return self.model
        logger.info("No Ollama model selected yet; detecting installed models.")
        detection = self.refresh_detection()
        if not detection.selected_model:
            raise OllamaModelUnavailableError(
                f"No suitable Ollama model is available ({detection.reason}) "
                "Configure OLLAMA_MODEL or pull a supported model."
            )
        return detection.selected_model

    def chat(self, messages: List[Dict[str, str]], temperature: float = 0.4, json_mode: bool = False) -> str:
        """Sends one non-streaming chat completion and returns the reply text."""
        payload: Dict[str, Any] = {
            "model": self.ensure_model(),
            "messages": messages,
            "stream": False,
            "options": {"temperature": temperature},
        }
        if json_mode:
            payload["format"] = "json"
        logger.debug(f"Ollama chat request: model={payload['model']} turns={len(messages)}")

        data = self._request("POST", "/api/chat", json=payload)
        message = data.get("message") if isinstance(data, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            logger.error(f"Unexpected Ollama chat response format: {data}")
            raise OllamaConnectionError("Unexpected response format from Ollama chat endpoint.")
        return content

    def close(self) -> None:
        self.client.close()
