"""Single entry point for invoking one generation capability.

``CapabilityInvoker.invoke`` dispatches a ``CapabilityKind`` through a closed
``kind -> handler`` mapping. Each remote call runs under a bounded timeout with
at most ``CAPABILITY_MAX_RETRIES`` retries on transient errors. Parsing happens
after the call returns, so malformed or insufficient output is never retried.

Usage:
    invoker = CapabilityInvoker(completion_client, embedding_client, settings)
    result = await invoker.invoke(CapabilityKind.TAGGING, document_text)
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from enrichment_engine.chains import (
    assess_quality,
    classify_content,
    generate_embedding,
    generate_image_prompt,
    generate_schema_org,
    generate_seo_metadata,
    generate_summaries,
    generate_tags,
)
from enrichment_engine.core.capabilities import CapabilityKind
from enrichment_engine.core.config import Settings
from enrichment_engine.core.embeddings import EmbeddingClient
from enrichment_engine.core.errors import (
    CapabilityError,
    CapabilityUnavailable,
    EmptyInput,
    InputTooLarge,
)
from enrichment_engine.core.llm import CompletionClient, is_transient_error
from enrichment_engine.core.logging import get_logger, log_with_context
from enrichment_engine.core.schemas_capabilities import (
    CapabilityPayload,
    CapabilityResult,
    EmbeddingOutput,
)

logger = get_logger(__name__)

T = TypeVar("T")

CapabilityContext = Mapping[CapabilityKind, Any]
Handler = Callable[[CapabilityKind, str, CapabilityContext | None], Awaitable[CapabilityPayload]]


@dataclass(frozen=True)
class PromptCapability:
    """Prompt, parser and model setting for one completion-backed capability."""

    system_prompt: str
    parse: Callable[[str], CapabilityPayload]
    model_setting: str
    build_prompt: Callable[[str], str] | None = None


PROMPT_CAPABILITIES: dict[CapabilityKind, PromptCapability] = {
    CapabilityKind.SHORT_FORM_SUMMARIES: PromptCapability(
        system_prompt=generate_summaries.SYSTEM_PROMPT,
        build_prompt=generate_summaries.build_prompt,
        parse=generate_summaries.parse_summaries,
        model_setting="SUMMARY_MODEL",
    ),
    CapabilityKind.SEARCH_METADATA: PromptCapability(
        system_prompt=generate_seo_metadata.SYSTEM_PROMPT,
        build_prompt=generate_seo_metadata.build_prompt,
        parse=generate_seo_metadata.parse_seo_metadata,
        model_setting="SEO_MODEL",
    ),
    CapabilityKind.CLASSIFICATION: PromptCapability(
        system_prompt=classify_content.SYSTEM_PROMPT,
        build_prompt=classify_content.build_prompt,
        parse=classify_content.parse_classification,
        model_setting="CATEGORY_MODEL",
    ),
    CapabilityKind.TAGGING: PromptCapability(
        system_prompt=generate_tags.SYSTEM_PROMPT,
        build_prompt=generate_tags.build_prompt,
        parse=generate_tags.parse_tags,
        model_setting="TAGS_MODEL",
    ),
    CapabilityKind.STRUCTURED_DESCRIPTION: PromptCapability(
        system_prompt=generate_schema_org.SYSTEM_PROMPT,
        build_prompt=generate_schema_org.build_prompt,
        parse=generate_schema_org.parse_schema_org,
        model_setting="SCHEMA_MODEL",
    ),
    CapabilityKind.VISUAL_PROMPT: PromptCapability(
        system_prompt=generate_image_prompt.SYSTEM_PROMPT,
        build_prompt=generate_image_prompt.build_prompt,
        parse=generate_image_prompt.parse_image_prompt,
        model_setting="IMAGE_PROMPT_MODEL",
    ),
    # Prompt is built from the aggregated outputs, see _invoke_quality_assessment
    CapabilityKind.QUALITY_ASSESSMENT: PromptCapability(
        system_prompt=assess_quality.SYSTEM_PROMPT,
        parse=assess_quality.parse_quality_judgment,
        model_setting="QUALITY_MODEL",
    ),
}


def check_document_text(text: str, settings: Settings) -> None:
    """
    Reject document text outside the accepted length range.

    Raises:
        EmptyInput: If the stripped text is shorter than MIN_DOCUMENT_CHARS
        InputTooLarge: If the text is longer than MAX_DOCUMENT_CHARS
    """
    if not isinstance(text, str) or len(text.strip()) < settings.MIN_DOCUMENT_CHARS:
        raise EmptyInput(
            f"Document text must be at least {settings.MIN_DOCUMENT_CHARS} characters",
            details={"length": len(text.strip()) if isinstance(text, str) else 0},
        )
    if len(text) > settings.MAX_DOCUMENT_CHARS:
        raise InputTooLarge(
            f"Document text must be at most {settings.MAX_DOCUMENT_CHARS} characters",
            details={"length": len(text)},
        )


class CapabilityInvoker:
    """Invokes capabilities against injected completion and embedding clients."""

    def __init__(
        self,
        completion_client: CompletionClient,
        embedding_client: EmbeddingClient,
        settings: Settings,
    ) -> None:
        self.completion_client = completion_client
        self.embedding_client = embedding_client
        self.settings = settings

        self._handlers: dict[CapabilityKind, Handler] = {
            kind: self._invoke_prompt_capability for kind in PROMPT_CAPABILITIES
        }
        self._handlers[CapabilityKind.QUALITY_ASSESSMENT] = self._invoke_quality_assessment
        self._handlers[CapabilityKind.EMBEDDING_VECTOR] = self._invoke_embedding

        if set(self._handlers) != set(CapabilityKind):
            raise RuntimeError("Every capability kind must have a handler")

    async def invoke(
        self,
        kind: CapabilityKind,
        document_text: str,
        context: CapabilityContext | None = None,
    ) -> CapabilityResult:
        """
        Invoke one capability on a document.

        Args:
            kind: Capability to run
            document_text: Raw document text
            context: Phase 1 and Phase 2 payloads (quality assessment only)

        Returns:
            CapabilityResult tagged with ``kind``

        Raises:
            EmptyInput: If the document is too short
            InputTooLarge: If the document is too long
            MalformedCapabilityOutput: If the response cannot be decoded
            InsufficientOutput: If the decoded output fails a semantic check
            DimensionMismatch: If an embedding has the wrong length
            CapabilityUnavailable: If the remote call times out or keeps failing
        """
        check_document_text(document_text, self.settings)

        start = time.perf_counter()
        log_with_context(logger, logging.DEBUG, "Invoking capability", capability=kind.value)

        payload = await self._handlers[kind](kind, document_text, context)

        duration_ms = int((time.perf_counter() - start) * 1000)
        log_with_context(
            logger,
            logging.DEBUG,
            "Capability completed",
            capability=kind.value,
            duration_ms=duration_ms,
        )
        return CapabilityResult(kind=kind, payload=payload, duration_ms=duration_ms)

    async def embed_query(self, query_text: str) -> tuple[float, ...]:
        """
        Embed free text (e.g. a search query) into the document vector space.

        Uses the same preparation and validation as document embeddings.

        Raises:
            EmptyInput: If the query is blank
            DimensionMismatch: If the returned vector has the wrong length
            CapabilityUnavailable: If the remote call fails
        """
        if not isinstance(query_text, str) or not query_text.strip():
            raise EmptyInput("Query text must not be blank")
        output = await self._embed(query_text)
        return output.vector

    async def _invoke_prompt_capability(
        self,
        kind: CapabilityKind,
        document_text: str,
        context: CapabilityContext | None,
    ) -> CapabilityPayload:
        capability = PROMPT_CAPABILITIES[kind]
        return await self._complete_and_parse(kind, capability.build_prompt(document_text))

    async def _invoke_quality_assessment(
        self,
        kind: CapabilityKind,
        document_text: str,
        context: CapabilityContext | None,
    ) -> CapabilityPayload:
        user_prompt = assess_quality.build_prompt(
            document_text,
            context or {},
            excerpt_chars=self.settings.QUALITY_SOURCE_EXCERPT_CHARS,
        )
        return await self._complete_and_parse(kind, user_prompt)

    async def _invoke_embedding(
        self,
        kind: CapabilityKind,
        document_text: str,
        context: CapabilityContext | None,
    ) -> CapabilityPayload:
        return await self._embed(document_text)

    async def _complete_and_parse(self, kind: CapabilityKind, user_prompt: str) -> CapabilityPayload:
        capability = PROMPT_CAPABILITIES[kind]
        model = getattr(self.settings, capability.model_setting)

        raw_output = await self._call_with_policy(
            kind,
            lambda: self.completion_client.complete(
                model=model,
                system_prompt=capability.system_prompt,
                user_prompt=user_prompt,
                max_tokens=self.settings.CAPABILITY_MAX_TOKENS,
                temperature=0.0,
            ),
        )
        return capability.parse(raw_output)

    async def _embed(self, text: str) -> EmbeddingOutput:
        prepared = generate_embedding.prepare_embedding_input(
            text, self.settings.MAX_EMBEDDING_INPUT_CHARS
        )
        vector = await self._call_with_policy(
            CapabilityKind.EMBEDDING_VECTOR,
            lambda: self.embedding_client.embed(prepared),
        )
        return generate_embedding.validate_embedding(vector)

    async def _call_with_policy(
        self,
        kind: CapabilityKind,
        call: Callable[[], Awaitable[T]],
    ) -> T:
        """
        Run one remote call with a timeout and bounded retries on transient errors.

        Raises:
            CapabilityUnavailable: On timeout, non-transient API error, or retries exhausted
        """
        timeout = self.settings.CAPABILITY_TIMEOUT_SECONDS
        max_retries = self.settings.CAPABILITY_MAX_RETRIES

        for attempt in range(max_retries + 1):
            try:
                return await asyncio.wait_for(call(), timeout=timeout)
            except CapabilityError:
                raise
            except Exception as e:
                transient = is_transient_error(e)
                if transient and attempt < max_retries:
                    delay = self.settings.CAPABILITY_RETRY_DELAY_SECONDS
                    log_with_context(
                        logger,
                        logging.WARNING,
                        f"Capability attempt {attempt + 1}/{max_retries + 1} failed "
                        f"({type(e).__name__}), retrying in {delay}s",
                        capability=kind.value,
                    )
                    await asyncio.sleep(delay)
                    continue

                reason = f"timed out after {timeout}s" if isinstance(e, TimeoutError) else str(e)
                raise CapabilityUnavailable(
                    f"Capability call failed: {reason}",
                    kind=kind,
                    details={
                        "error_type": type(e).__name__,
                        "attempts": attempt + 1,
                        "transient": transient,
                    },
                ) from e

        raise RuntimeError("unreachable")
