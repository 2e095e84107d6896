"""
Structured extraction over hosted language models.

Key Components:
- llm_client: Unified OpenAI/Anthropic client with retry and strict JSON decoding
- prompts: Prompt templates and helpers for every extraction call site
"""

from venture_eval.agentic.llm_client import (
    EmptyResponseError,
    ExtractionResult,
    LLMClient,
    LLMResponse,
    ResponseParseError,
    decode_json_object,
    get_llm_client,
)

__all__ = [
    "EmptyResponseError",
    "ExtractionResult",
    "LLMClient",
    "LLMResponse",
    "ResponseParseError",
    "decode_json_object",
    "get_llm_client",
]
