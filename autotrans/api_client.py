"""Chat-completion clients used as the translation service."""

import logging
import re
from abc import ABC, abstractmethod
from typing import NamedTuple

import requests

log = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.deepseek.com/v1/chat/completions"
DEFAULT_MODEL = "deepseek-chat"


class TranslationServiceError(ConnectionError):
    """Service call failed.  ``code`` is machine-readable (e.g. "http_429")."""

    def __init__(self, message: str, code: str = "error"):
        super().__init__(message)
        self.code = code


class Completion(NamedTuple):
    text: str
    prompt_tokens: int = 0
    completion_tokens: int = 0


class TranslationService(ABC):
    """Anything that can answer a BatchRequest with a completion string."""

    @abstractmethod
    def complete(self, request, temperature: float = 0.3) -> Completion:
        """Send ``request.messages()`` and return the reply.

        Raises:
            TranslationServiceError: on network, auth, rate-limit or
                malformed-response failures.
        """

    def estimate_cost(self, prompt_tokens: int, completion_tokens: int) -> float:
        return 0.0


class DeepSeekClient(TranslationService):
    """Client for DeepSeek's (OpenAI-compatible) chat completions endpoint."""

    # USD per million tokens
    PRICING = {"input": 0.14, "output": 0.28}
    MAX_TOKENS = 4000

    def __init__(self, api_key: str, api_url: str = DEFAULT_API_URL,
                 model: str = DEFAULT_MODEL, timeout: int = 120):
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.timeout = timeout
        self._session = requests.Session()

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    def _post(self, payload: dict, timeout: int) -> dict:
        """POST a chat payload and return the decoded JSON body."""
        try:
            r = self._session.post(self.api_url, json=payload,
                                   headers=self._headers(), timeout=timeout)
        except requests.Timeout as e:
            raise TranslationServiceError(f"Request timed out: {e}", "timeout") from e
        except requests.RequestException as e:
            raise TranslationServiceError(f"Connection failed: {e}", "connection") from e

        if not r.ok:
            raise TranslationServiceError(
                self._error_message(r), f"http_{r.status_code}")
        try:
            return r.json()
        except ValueError as e:
            raise TranslationServiceError(
                f"Invalid JSON from API: {r.text[:200]}", "bad_response") from e

    @staticmethod
    def _error_message(r) -> str:
        """Pull the human-readable message out of an API error body."""
        try:
            body = r.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            err = body.get("error")
            if isinstance(err, dict) and err.get("message"):
                return str(err["message"])
            if isinstance(err, str):
                return err
        return f"API Error: {r.status_code}"

    def complete(self, request, temperature: float = 0.3) -> Completion:
        data = self._post({
            "model": self.model,
            "messages": request.messages(),
            "temperature": temperature,
            "max_tokens": self.MAX_TOKENS,
            "stream": False,
        }, timeout=self.timeout)

        try:
            text = data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise TranslationServiceError(
                f"Unexpected API response: {str(data)[:200]}", "bad_response") from e

        usage = data.get("usage") or {}
        return Completion(
            text=text.strip(),
            prompt_tokens=int(usage.get("prompt_tokens") or 0),
            completion_tokens=int(usage.get("completion_tokens") or 0),
        )

    def estimate_cost(self, prompt_tokens: int, completion_tokens: int) -> float:
        return (prompt_tokens / 1_000_000 * self.PRICING["input"]
                + completion_tokens / 1_000_000 * self.PRICING["output"])

    def is_available(self) -> bool:
        """Check that the endpoint is reachable and the key is accepted."""
        if not self.api_key.strip():
            return False
        try:
            self._post({
                "model": self.model,
                "messages": [{"role": "user", "content": "test"}],
                "max_tokens": 10,
            }, timeout=15)
            return True
        except TranslationServiceError as e:
            log.warning("API connection test failed (%s): %s", e.code, e)
            return False


class EchoClient(TranslationService):
    """Answers every request with its own numbered lines (dry runs)."""

    _LINE_RE = re.compile(r'^\d+\. ')

    def complete(self, request, temperature: float = 0.3) -> Completion:
        lines = [line for line in request.user_message.split("\n")
                 if self._LINE_RE.match(line)]
        return Completion(text="\n".join(lines))
