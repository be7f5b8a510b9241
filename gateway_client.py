"""
Client for the AI gateway's OpenAI-compatible chat-completions endpoint.

The client makes exactly one HTTP call per completion: no retries, and no
timeout beyond what ``requests`` does by default. Failures are mapped onto a
small exception hierarchy so the HTTP layer can tell rate limiting and
exhausted credits apart from everything else.
"""

import time
from typing import Any, Dict, List, Optional

import requests

from logging_config import get_logger, log_service_call

logger = get_logger(__name__)

GENERIC_GATEWAY_ERROR = "AI gateway error"


class GatewayError(Exception):
    """Any failure to obtain a reply from the AI gateway."""
    status_code = 500

    def __init__(self, message: str = GENERIC_GATEWAY_ERROR):
        super().__init__(message)
        self.message = message


class ConfigurationError(GatewayError):
    """Raised before any network call when the credential is missing."""


class RateLimitError(GatewayError):
    status_code = 429

    def __init__(self, message: str = "Rate limit exceeded. Please try again later."):
        super().__init__(message)


class PaymentRequiredError(GatewayError):
    status_code = 402

    def __init__(self, message: str = "Payment required. Please add credits to your workspace."):
        super().__init__(message)


class GatewayClient:
    """
    Sends a system prompt plus an ordered list of turns and returns the
    generated reply text.

    Args:
        api_key: Bearer credential for the gateway. May be None; the error
                 is raised when a completion is requested.
        url: Full chat-completions URL
        model: Model identifier, e.g. "google/gemini-2.5-flash"
        temperature: Sampling temperature
        max_tokens: Upper bound on generated tokens
        session: Optional ``requests.Session`` (or compatible) to send with
    """

    def __init__(
        self,
        api_key: Optional[str],
        url: str,
        model: str,
        temperature: float,
        max_tokens: int,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.url = url
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._http = session or requests

    @classmethod
    def from_settings(cls, settings) -> "GatewayClient":
        return cls(
            api_key=settings.gateway_api_key,
            url=settings.gateway_url,
            model=settings.model,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
        )

    def build_payload(self, system_prompt: str, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [{"role": "system", "content": system_prompt}, *messages],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

    def complete(self, system_prompt: str, messages: List[Dict[str, str]]) -> str:
        """
        Request one completion.

        Args:
            system_prompt: Instruction prepended as the "system" turn
            messages: Conversation as ``{"role", "content"}`` dicts, oldest first

        Returns:
            The reply text (``choices[0].message.content``)

        Raises:
            ConfigurationError: No API key configured; nothing was sent
            RateLimitError: Gateway answered 429
            PaymentRequiredError: Gateway answered 402
            GatewayError: Any other failure
        """
        if not self.api_key:
            raise ConfigurationError("AI_GATEWAY_API_KEY is not configured")

        payload = self.build_payload(system_prompt, messages)
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        call_context = {"model": self.model, "turns": len(messages)}

        start_time = time.time()
        try:
            response = self._http.post(self.url, json=payload, headers=headers)
        except requests.RequestException as e:
            duration_ms = (time.time() - start_time) * 1000
            log_service_call(logger, "ai_gateway", "chat_completions", False,
                             duration_ms=duration_ms, error=e, extra=call_context)
            raise GatewayError() from e
        duration_ms = (time.time() - start_time) * 1000

        if not response.ok:
            log_service_call(
                logger, "ai_gateway", "chat_completions", False,
                duration_ms=duration_ms,
                extra={**call_context, "status_code": response.status_code, "body": response.text[:1000]},
            )
            if response.status_code == 429:
                raise RateLimitError()
            if response.status_code == 402:
                raise PaymentRequiredError()
            raise GatewayError()

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            log_service_call(logger, "ai_gateway", "chat_completions", False,
                             duration_ms=duration_ms, error=e, extra=call_context)
            raise GatewayError() from e

        if not isinstance(content, str):
            log_service_call(logger, "ai_gateway", "chat_completions", False,
                             duration_ms=duration_ms,
                             extra={**call_context, "content_type": type(content).__name__})
            raise GatewayError()

        log_service_call(logger, "ai_gateway", "chat_completions", True,
                         duration_ms=duration_ms, extra=call_context)
        return content
