"""LLM client utilities and structured decoding of free-form responses.

Generation capabilities answer with free text that is expected to embed one
JSON object. ``extract_json_object`` locates and decodes that object; anything
it cannot decode becomes a ``MalformedCapabilityOutput``.
"""

import json
import re
from typing import Any, Protocol, TypeVar

from anthropic import APIConnectionError as AnthropicConnectionError
from anthropic import AsyncAnthropic
from anthropic import InternalServerError as AnthropicServerError
from anthropic import RateLimitError as AnthropicRateLimitError
from openai import APIConnectionError as OpenAIConnectionError
from openai import AsyncOpenAI
from openai import InternalServerError as OpenAIServerError
from openai import RateLimitError as OpenAIRateLimitError
from pydantic import BaseModel, ValidationError

from enrichment_engine.core.capabilities import CapabilityKind
from enrichment_engine.core.config import Settings, get_settings
from enrichment_engine.core.errors import MalformedCapabilityOutput

T = TypeVar("T", bound=BaseModel)

# Timeouts are subclasses of the connection errors in both SDKs
TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    TimeoutError,
    OpenAIConnectionError,
    OpenAIRateLimitError,
    OpenAIServerError,
    AnthropicConnectionError,
    AnthropicRateLimitError,
    AnthropicServerError,
)


class CompletionClient(Protocol):
    """A text-completion backend used by every prompt-driven capability."""

    provider: str

    async def complete(
        self,
        *,
        model: str,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        temperature: float = 0.0,
    ) -> str: ...


class OpenAICompletionClient:
    """Chat completions through the OpenAI SDK (OpenAI or OpenRouter)."""

    def __init__(self, client: AsyncOpenAI, provider: str = "openai") -> None:
        self._client = client
        self.provider = provider

    async def complete(
        self,
        *,
        model: str,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        temperature: float = 0.0,
    ) -> str:
        response = await self._client.chat.completions.create(
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        )
        return response.choices[0].message.content or ""


class AnthropicCompletionClient:
    """Messages API through the Anthropic SDK."""

    provider = "anthropic"

    def __init__(self, client: AsyncAnthropic) -> None:
        self._client = client

    async def complete(
        self,
        *,
        model: str,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        temperature: float = 0.0,
    ) -> str:
        # OpenRouter-style ids carry a vendor prefix ("anthropic/claude-...")
        model_name = model.split("/", 1)[-1]
        response = await self._client.messages.create(
            model=model_name,
            max_tokens=max_tokens,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
            temperature=temperature,
        )
        return "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )


def build_completion_client(settings: Settings | None = None) -> CompletionClient:
    """
    Build the completion client selected by ``LLM_PROVIDER``.

    Args:
        settings: Application settings (defaults to cached settings)

    Returns:
        CompletionClient for the configured provider

    Raises:
        ValueError: If the provider is unknown or its API key is missing
    """
    settings = settings or get_settings()
    provider = settings.LLM_PROVIDER.lower()

    if provider == "openrouter":
        if not settings.OPENROUTER_API_KEY:
            raise ValueError("OPENROUTER_API_KEY is required when LLM_PROVIDER=openrouter")
        client = AsyncOpenAI(
            api_key=settings.OPENROUTER_API_KEY,
            base_url=settings.OPENROUTER_BASE_URL,
        )
        return OpenAICompletionClient(client, provider="openrouter")

    if provider == "openai":
        return OpenAICompletionClient(AsyncOpenAI(api_key=settings.OPENAI_API_KEY))

    if provider == "anthropic":
        if not settings.ANTHROPIC_API_KEY:
            raise ValueError("ANTHROPIC_API_KEY is required when LLM_PROVIDER=anthropic")
        return AnthropicCompletionClient(AsyncAnthropic(api_key=settings.ANTHROPIC_API_KEY))

    raise ValueError(f"Unknown LLM_PROVIDER: {settings.LLM_PROVIDER}")


def is_transient_error(exc: BaseException) -> bool:
    """Whether a failed remote call is worth one more attempt."""
    return isinstance(exc, TRANSIENT_ERRORS)


def _strip_llm_fences(raw_output: str) -> str:
    """Strip markdown code fences from LLM output.

    Handles: ```json ... ```, ``` ... ```, leading/trailing whitespace.
    """
    cleaned = raw_output.strip()

    # Extract JSON from markdown code fences
    fence_match = re.search(r"```(?:json)?\s*\n?(.*?)```", cleaned, re.DOTALL)
    if fence_match:
        return fence_match.group(1).strip()

    # Unterminated fence: strip the opening marker only
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    return cleaned.strip()


def extract_json_object(raw_output: str, kind: CapabilityKind | None = None) -> dict[str, Any]:
    """
    Locate and decode the first JSON object embedded in free-form LLM output.

    Handles common LLM response quirks:
    - Markdown code fences (```json ... ```)
    - Prose before or after the object
    - Several objects (takes the first that decodes)

    Args:
        raw_output: Raw string from LLM response
        kind: Capability that produced the output (attached to errors)

    Returns:
        Decoded JSON object

    Raises:
        MalformedCapabilityOutput: If no JSON object can be decoded
    """
    if not raw_output or not raw_output.strip():
        raise MalformedCapabilityOutput("Empty response from capability", kind=kind)

    cleaned = _strip_llm_fences(raw_output)

    try:
        parsed = json.loads(cleaned)
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass

    decoder = json.JSONDecoder()
    for match in re.finditer(r"\{", cleaned):
        try:
            parsed, _ = decoder.raw_decode(cleaned, match.start())
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    raise MalformedCapabilityOutput(
        "No valid JSON object found in response",
        kind=kind,
        details={"response_chars": len(raw_output)},
    )


def parse_llm_json(raw_output: str, model: type[T], kind: CapabilityKind | None = None) -> T:
    """
    Decode the embedded JSON object and validate it against a Pydantic model.

    Raises:
        MalformedCapabilityOutput: If decoding or validation fails
    """
    data = extract_json_object(raw_output, kind=kind)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise MalformedCapabilityOutput(
            f"Response does not match {model.__name__}: {e.error_count()} error(s)",
            kind=kind,
        ) from e
