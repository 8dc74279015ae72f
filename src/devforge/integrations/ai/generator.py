"""Structured content generation through LangChain chat models.

Each generation kind pairs a prompt template with a Pydantic output schema.
The chat model is bound to the schema with ``with_structured_output`` and the
result is validated again on the way out, so callers always receive an
instance of the declared schema or a ``GenerationError``.

Example usage:
    >>> generator = LangChainGenerator(AIConfig())
    >>> plan = await generator.generate(
    ...     GenerationKind.plan, {"idea": idea}, AppSettings(ai_provider="openai")
    ... )
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, TypeVar, runtime_checkable

import structlog
from langchain_anthropic import ChatAnthropic
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_openai import ChatOpenAI
from pydantic import BaseModel, ValidationError

from devforge.config import AIConfig
from devforge.integrations.ai.prompts import PROMPTS, GenerationKind, build_prompt_variables
from devforge.integrations.errors import GenerationError
from devforge.workflow.models import (
    AppSettings,
    DeployConfigDraft,
    GeneratedDocs,
    GeneratedScaffold,
    ProjectPlan,
    PromptPolicy,
)

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

OUTPUT_SCHEMAS: dict[GenerationKind, type[BaseModel]] = {
    GenerationKind.plan: ProjectPlan,
    GenerationKind.docs: GeneratedDocs,
    GenerationKind.scaffold: GeneratedScaffold,
    GenerationKind.policy: PromptPolicy,
    GenerationKind.deploy_config: DeployConfigDraft,
}

ModelFactory = Callable[[AppSettings, AIConfig], BaseChatModel]


@runtime_checkable
class ContentGenerator(Protocol):
    """Anything that can turn a step payload into structured content."""

    async def generate(
        self,
        kind: GenerationKind,
        payload: dict[str, Any],
        settings: AppSettings,
    ) -> BaseModel:
        """Generate content for ``kind``.

        Raises:
            GenerationError: If generation fails for any reason.
        """
        ...


def get_chat_model(settings: AppSettings, config: AIConfig) -> BaseChatModel:
    """Construct the chat model selected by the project's settings.

    API keys come from AIConfig when set, otherwise from the provider's
    usual environment variable.
    """
    model_name = settings.model or config.default_model(settings.ai_provider)
    kwargs: dict[str, Any] = {
        "model": model_name,
        "temperature": config.temperature,
        "timeout": config.timeout_seconds,
        "max_retries": config.max_retries,
    }

    if settings.ai_provider == "anthropic":
        if config.anthropic_api_key is not None:
            kwargs["api_key"] = config.anthropic_api_key.get_secret_value()
        return ChatAnthropic(**kwargs)

    if config.openai_api_key is not None:
        kwargs["api_key"] = config.openai_api_key.get_secret_value()
    return ChatOpenAI(**kwargs)


def normalize_structured_output(raw_output: Any, schema: type[ModelT]) -> ModelT:
    """Validate raw structured output against ``schema``.

    Accepts a schema instance, another Pydantic model, a plain dict, or the
    ``include_raw=True`` envelope ``{"parsed": ..., "parsing_error": ...}``.

    Raises:
        GenerationError: If the output cannot be validated.
    """
    payload = raw_output
    if isinstance(payload, dict) and "parsed" in payload and "parsing_error" in payload:
        if payload["parsing_error"] is not None:
            raise GenerationError(
                f"Structured output parsing failed for {schema.__name__}: "
                f"{payload['parsing_error']!r}"
            )
        payload = payload["parsed"]

    if isinstance(payload, schema):
        return payload
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json")
    if not isinstance(payload, dict):
        raise GenerationError(
            f"Structured output for {schema.__name__} returned unsupported payload type "
            f"{type(payload).__name__}"
        )

    try:
        return schema.model_validate(payload)
    except ValidationError as exc:
        raise GenerationError(
            f"Structured output validation failed for {schema.__name__}: {exc}"
        ) from exc


class LangChainGenerator:
    """ContentGenerator backed by OpenAI or Anthropic chat models.

    Attributes:
        config: AI configuration (defaults, keys, timeouts).
    """

    def __init__(self, config: AIConfig, model_factory: ModelFactory = get_chat_model) -> None:
        self.config = config
        self._model_factory = model_factory

    async def generate(
        self,
        kind: GenerationKind,
        payload: dict[str, Any],
        settings: AppSettings,
    ) -> BaseModel:
        schema = OUTPUT_SCHEMAS[kind]
        try:
            variables = build_prompt_variables(kind, payload)
        except KeyError as exc:
            raise GenerationError(f"Missing input {exc} for {kind.value} generation") from exc

        logger.info(
            "generation_started",
            kind=kind.value,
            provider=settings.ai_provider,
            model=settings.model or self.config.default_model(settings.ai_provider),
        )
        try:
            model = self._model_factory(settings, self.config)
            chain = PROMPTS[kind] | model.with_structured_output(schema)
            raw_output = await chain.ainvoke(variables)
        except Exception as exc:
            # Provider SDKs raise their own hierarchies; surface them uniformly
            logger.error("generation_failed", kind=kind.value, error=str(exc))
            message = str(exc) or f"{kind.value} generation failed"
            raise GenerationError(message) from exc

        result = normalize_structured_output(raw_output, schema)
        logger.info("generation_completed", kind=kind.value)
        return result
