"""AI generation backend for plan, docs, scaffold, policy and deploy content."""

from __future__ import annotations

from devforge.integrations.ai.generator import (
    OUTPUT_SCHEMAS,
    ContentGenerator,
    LangChainGenerator,
    get_chat_model,
    normalize_structured_output,
)
from devforge.integrations.ai.prompts import GenerationKind, build_prompt_variables

__all__ = [
    "OUTPUT_SCHEMAS",
    "ContentGenerator",
    "GenerationKind",
    "LangChainGenerator",
    "build_prompt_variables",
    "get_chat_model",
    "normalize_structured_output",
]
