"""Ollama HTTP API client: generate (plain and streaming) and model listing."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable

log = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:11434"
DEFAULT_MODEL = "codellama:7b-instruct-q5_K_M"

_PROMPT_WITH_CONTEXT = """\
Project context:
{context}

User question:
{message}"""


class OllamaError(Exception):
    """Base class for Ollama client failures."""


class BackendUnavailable(OllamaError):
    """Ollama is unreachable or answered with a non-2xx status."""


class MalformedResponse(OllamaError):
    """Ollama answered, but the body is not the expected JSON shape."""


def build_prompt(message: str, context: str | None = None) -> str:
    """Combine optional context and the user message into one free-text prompt."""
    if not context:
        return message
    return _PROMPT_WITH_CONTEXT.format(context=context, message=message)


class OllamaClient:
    """Wrapper around the Ollama HTTP API (localhost:11434 by default).

    Only two endpoints are used: ``GET /api/tags`` for availability and model
    listing, and ``POST /api/generate`` for completions.
    """

    def __init__(self, config: dict | None = None) -> None:
        config = config or {}
        self._model = config.get("model", DEFAULT_MODEL)
        self._base_url = config.get("base_url", DEFAULT_BASE_URL).rstrip("/")
        self._timeout = config.get("timeout", 120.0)

    @property
    def model(self) -> str:
        return self._model

    @property
    def base_url(self) -> str:
        return self._base_url

    @base_url.setter
    def base_url(self, url: str) -> None:
        self._base_url = url.rstrip("/")

    def is_available(self) -> bool:
        """Check if the Ollama server answers /api/tags with a 2xx status."""
        import httpx

        try:
            resp = httpx.get(f"{self._base_url}/api/tags", timeout=5.0)
            return 200 <= resp.status_code < 300
        except (httpx.HTTPError, OSError):
            return False

    def available_models(self) -> list[str]:
        """Return installed model names.

        Raises:
            BackendUnavailable: If the request fails or the body is malformed.
        """
        import httpx

        try:
            resp = httpx.get(f"{self._base_url}/api/tags", timeout=10.0)
            resp.raise_for_status()
            data = resp.json()
            return [m["name"] for m in data.get("models") or []]
        except (httpx.TransportError, OSError) as e:
            raise BackendUnavailable(f"Ollama not reachable at {self._base_url}: {e}") from e
        except httpx.HTTPStatusError as e:
            raise BackendUnavailable(f"Ollama API error: {e}") from e
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise BackendUnavailable(f"Unexpected model list from {self._base_url}: {e}") from e

    def generate(
        self,
        message: str,
        model: str | None = None,
        context: str | None = None,
    ) -> str:
        """Generate a complete response via /api/generate (stream=False).

        Args:
            message: The user's message.
            model: Override the default model for this call.
            context: Optional text prepended to the prompt.

        Returns:
            The full response text.

        Raises:
            BackendUnavailable: Network failure or non-2xx status.
            MalformedResponse: The body is not ``{"response": "..."}``-shaped JSON.
        """
        import httpx

        payload = self._payload(message, model, context, stream=False)
        try:
            resp = httpx.post(
                f"{self._base_url}/api/generate",
                json=payload,
                timeout=self._timeout,
            )
            resp.raise_for_status()
        except (httpx.TransportError, OSError) as e:
            raise BackendUnavailable(
                f"Ollama not reachable at {self._base_url}: {e}"
            ) from e
        except httpx.HTTPStatusError as e:
            raise BackendUnavailable(f"Ollama API error: {e}") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise MalformedResponse(f"Ollama returned invalid JSON: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("response"), str):
            raise MalformedResponse("Ollama response has no 'response' text field")
        return data["response"]

    def generate_stream(
        self,
        message: str,
        on_chunk: Callable[[str], None],
        model: str | None = None,
        context: str | None = None,
    ) -> None:
        """Generate via /api/generate (stream=True), calling ``on_chunk`` per fragment.

        The body is newline-delimited JSON. Lines are reassembled across
        network reads before parsing. Each parsed line with a non-empty
        ``response`` field is passed to ``on_chunk`` in arrival order; lines
        that don't parse are skipped. Returns once the server closes the stream.

        Raises:
            BackendUnavailable: The request fails, returns non-2xx, or the
                connection drops mid-stream.
        """
        import httpx

        payload = self._payload(message, model, context, stream=True)
        try:
            with httpx.stream(
                "POST",
                f"{self._base_url}/api/generate",
                json=payload,
                timeout=self._timeout,
            ) as resp:
                resp.raise_for_status()
                for line in resp.iter_lines():
                    chunk = _parse_fragment(line)
                    if chunk:
                        on_chunk(chunk)
        except (httpx.TransportError, OSError) as e:
            raise BackendUnavailable(
                f"Ollama not reachable at {self._base_url}: {e}"
            ) from e
        except httpx.HTTPStatusError as e:
            raise BackendUnavailable(f"Ollama API error: {e}") from e

    def _payload(self, message: str, model: str | None, context: str | None, stream: bool) -> dict:
        return {
            "model": model or self._model,
            "prompt": build_prompt(message, context),
            "stream": stream,
        }


def _parse_fragment(line: str) -> str:
    """Return the ``response`` text of one stream line, or "" if there is none."""
    line = line.strip()
    if not line:
        return ""
    try:
        data = json.loads(line)
    except ValueError:
        log.debug("Dropping unparseable stream fragment: %.80r", line)
        return ""
    if not isinstance(data, dict):
        return ""
    chunk = data.get("response")
    return chunk if isinstance(chunk, str) else ""
