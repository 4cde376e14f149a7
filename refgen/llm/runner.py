"""Chat-completions client used for namespace article enrichment."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Callable, Optional, Sequence
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen


class LLMRequestError(RuntimeError):
    """Raised when the generative endpoint rejects a request or cannot be reached."""

    def __init__(self, message: str, *, status: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class RateLimitError(LLMRequestError):
    """Raised for throttling responses (HTTP 429) that are worth retrying."""


@dataclass
class LLMRequest:
    """Represents one chat-completions call."""

    prompt: str
    system: Optional[str]
    model: str
    temperature: Optional[float]
    max_tokens: Optional[int]
    base_url: Optional[str]
    api_key: Optional[str]
    api_version: Optional[str]
    request_timeout: Optional[float]


class LLMRunner:
    """Executes prompts against an OpenAI-compatible or Azure OpenAI endpoint."""

    DEFAULT_MODEL = "gpt-4o"
    ENV_MODEL_KEYS = ("REFGEN_LLM_MODEL", "OPENAI_MODEL")
    ENV_BASE_URL_KEYS = ("REFGEN_LLM_BASE_URL", "OPENAI_BASE_URL")
    ENV_API_KEY_KEYS = ("REFGEN_LLM_API_KEY", "OPENAI_API_KEY")
    ENV_API_VERSION_KEYS = ("REFGEN_LLM_API_VERSION", "OPENAI_API_VERSION")

    def __init__(
        self,
        model: str | None = None,
        *,
        base_url: str | None = None,
        temperature: Optional[float] = 0.3,
        max_tokens: Optional[int] = None,
        api_key: str | None = None,
        api_version: str | None = None,
        request_timeout: Optional[float] = 120.0,
        runner: Callable[[LLMRequest], str] | None = None,
    ) -> None:
        self.model = model or self._first_env_value(self.ENV_MODEL_KEYS) or self.DEFAULT_MODEL
        resolved_url = base_url or self._first_env_value(self.ENV_BASE_URL_KEYS)
        self.base_url = resolved_url.rstrip("/") if resolved_url else None
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.api_key = api_key or self._first_env_value(self.ENV_API_KEY_KEYS)
        self.api_version = api_version or self._first_env_value(self.ENV_API_VERSION_KEYS)
        self.request_timeout = request_timeout
        self._custom_runner = runner is not None
        self._runner = runner if runner is not None else self._http_runner

    @property
    def is_configured(self) -> bool:
        """True when a transport is injected or an endpoint URL is known."""
        return self._custom_runner or bool(self.base_url)

    def run(self, prompt: str, *, system: str | None = None) -> str:
        """Send the prompt to the configured endpoint and return the response text."""
        request = LLMRequest(
            prompt=prompt,
            system=system,
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            base_url=self.base_url,
            api_key=self.api_key,
            api_version=self.api_version,
            request_timeout=self.request_timeout,
        )
        return self._runner(request)

    @staticmethod
    def build_endpoint(request: LLMRequest) -> str:
        if not request.base_url:
            raise LLMRequestError("HTTP runner requires a base_url to be configured.")
        if request.api_version:
            deployment = quote(request.model, safe="")
            return (
                f"{request.base_url}/openai/deployments/{deployment}/chat/completions"
                f"?api-version={quote(request.api_version, safe='')}"
            )
        return f"{request.base_url}/chat/completions"

    @staticmethod
    def _http_runner(request: LLMRequest) -> str:
        endpoint = LLMRunner.build_endpoint(request)
        payload: dict[str, object] = {
            "messages": LLMRunner._build_messages(request.system, request.prompt),
        }
        if not request.api_version:
            payload["model"] = request.model
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens

        data = json.dumps(payload).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        if request.api_key:
            if request.api_version:
                headers["api-key"] = request.api_key
            else:
                headers["Authorization"] = f"Bearer {request.api_key}"

        http_request = Request(endpoint, data=data, headers=headers, method="POST")
        timeout = request.request_timeout or 120.0

        try:
            with urlopen(http_request, timeout=timeout) as response:
                raw = response.read()
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="ignore") if hasattr(exc, "read") else ""
            raise LLMRunner.error_for_status(exc.code, detail.strip() or str(exc.reason)) from exc
        except URLError as exc:
            raise LLMRequestError(f"LLM HTTP runner failed: {exc.reason}") from exc
        except OSError as exc:
            # Read timeouts and connection resets surface here rather than as URLError.
            raise LLMRequestError(f"LLM HTTP runner failed: {exc}") from exc

        try:
            response_payload = json.loads(raw.decode("utf-8"))
        except json.JSONDecodeError as exc:
            raise LLMRequestError("LLM HTTP runner returned invalid JSON") from exc

        content = LLMRunner._extract_content(response_payload)
        if not content:
            raise LLMRequestError("LLM HTTP runner returned an empty response")
        return content.strip()

    @staticmethod
    def error_for_status(status: int, body: str) -> LLMRequestError:
        """Map an HTTP failure to the matching error class."""
        message = f"LLM HTTP runner failed with status {status}: {body}"
        if status == 429:
            return RateLimitError(message, status=status, body=body)
        return LLMRequestError(message, status=status, body=body)

    @staticmethod
    def _build_messages(system: str | None, prompt: str) -> list[dict[str, str]]:
        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return messages

    @staticmethod
    def _extract_content(payload: object) -> str:
        if not isinstance(payload, dict):
            return ""
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            return ""
        first = choices[0]
        if not isinstance(first, dict):
            return ""
        message = first.get("message")
        if not isinstance(message, dict):
            return ""
        content = message.get("content")
        return content if isinstance(content, str) else ""

    @staticmethod
    def _first_env_value(keys: Sequence[str]) -> str | None:
        for key in keys:
            value = os.getenv(key)
            if value:
                return value
        return None


__all__ = ["LLMRequest", "LLMRequestError", "LLMRunner", "RateLimitError"]
