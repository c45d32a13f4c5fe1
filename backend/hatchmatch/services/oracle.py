"""Text-completion oracle boundary.

Every language-model call in the pipeline goes through a single narrow
interface, ``complete(prompt) -> str``.  Replies are treated as untyped
free-form text: callers pull a JSON object or array out of them with
``extract_json_object`` / ``extract_json_array``, which raise
``ExtractionError`` instead of letting a malformed reply escape as a
``JSONDecodeError`` or ``KeyError``.
"""

import json
import logging
import re
from typing import Any, Optional, Protocol

import anthropic

from ..config import Settings
from ..exceptions import ConfigurationError, ExtractionError, OracleError

logger = logging.getLogger(__name__)


class Oracle(Protocol):
    """Anything that turns a prompt into text."""

    async def complete(self, prompt: str, max_tokens: Optional[int] = None) -> str:
        ...


class AnthropicOracle:
    """Oracle backed by the Anthropic Messages API."""

    def __init__(
        self,
        api_key: str,
        model: str,
        max_tokens: int = 1024,
        timeout: float = 30.0,
    ) -> None:
        if not api_key:
            raise ConfigurationError("ANTHROPIC_API_KEY not configured", missing_credentials=True)
        self._model = model
        self._max_tokens = max_tokens
        # One shot per call: failures go to the caller's failure path.
        self._client = anthropic.AsyncAnthropic(
            api_key=api_key, timeout=timeout, max_retries=0,
        )

    async def complete(self, prompt: str, max_tokens: Optional[int] = None) -> str:
        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=max_tokens or self._max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.AuthenticationError as exc:
            logger.error("Oracle call failed: invalid Anthropic API key")
            raise OracleError("Invalid Anthropic API key") from exc
        except anthropic.APIError as exc:
            logger.warning("Oracle call failed: %s", exc)
            raise OracleError(f"Oracle call failed: {exc}") from exc

        if response.stop_reason == "max_tokens":
            logger.warning("Oracle reply truncated at max_tokens")

        return "".join(
            block.text for block in response.content
            if getattr(block, "type", None) == "text"
        )


def build_oracle(settings: Settings) -> AnthropicOracle:
    """Create the production oracle, failing fast when no key is configured."""
    return AnthropicOracle(
        api_key=settings.resolved_api_key,
        model=settings.oracle_model,
        max_tokens=settings.oracle_max_tokens,
        timeout=settings.oracle_timeout_sec,
    )


_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)


def _extract_json(raw_text: str, opener: str) -> Any:
    text = (raw_text or "").strip()
    if not text:
        raise ExtractionError("Empty oracle reply")

    # Models like to wrap JSON in markdown fences.
    fence_match = _FENCE_RE.search(text)
    if fence_match:
        text = fence_match.group(1).strip()

    start = text.find(opener)
    if start == -1:
        raise ExtractionError(f"No JSON {'object' if opener == '{' else 'array'} in oracle reply")
    text = text[start:]

    # Trailing commas are the most common malformation.
    text = re.sub(r",\s*}", "}", text)
    text = re.sub(r",\s*]", "]", text)

    # raw_decode ignores any commentary after the JSON value.
    try:
        parsed, _ = json.JSONDecoder().raw_decode(text)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ExtractionError(f"Unparseable JSON in oracle reply: {exc}") from exc
    return parsed


def extract_json_object(raw_text: str) -> dict[str, Any]:
    """Return the first JSON object found in ``raw_text``."""
    parsed = _extract_json(raw_text, "{")
    if not isinstance(parsed, dict):
        raise ExtractionError("Oracle reply JSON is not an object")
    return parsed


def extract_json_array(raw_text: str) -> list[Any]:
    """Return the first JSON array found in ``raw_text``."""
    parsed = _extract_json(raw_text, "[")
    if not isinstance(parsed, list):
        raise ExtractionError("Oracle reply JSON is not an array")
    return parsed
