"""
LLM Client - Unified async wrapper for OpenAI and Anthropic.

Provides:
- Async API calls with linear backoff (doubled on throttling)
- Strict JSON-object decoding into a tagged ExtractionResult
- Token counting and cost tracking
- Support for both OpenAI and Anthropic
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from venture_eval.core.api_errors import (
    ConfigurationError,
    RetryableError,
    is_throttling_error,
)

logger = logging.getLogger(__name__)


# Pricing per 1M tokens
MODEL_PRICING = {
    # OpenAI
    "gpt-4o": {"input": 2.50, "output": 10.00},
    "gpt-4o-mini": {"input": 0.15, "output": 0.60},
    "gpt-4-turbo": {"input": 10.00, "output": 30.00},
    # Anthropic
    "claude-3-5-sonnet-20241022": {"input": 3.00, "output": 15.00},
    "claude-3-5-haiku-20241022": {"input": 0.80, "output": 4.00},
}

DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-5-haiku-20241022",
}


class EmptyResponseError(RetryableError):
    """The provider returned no content at all."""

    def __init__(self, source: Optional[str] = None):
        super().__init__(message="Empty response from model", source=source)


class ResponseParseError(RetryableError):
    """The provider returned content that is not a JSON object."""

    def __init__(self, message: str, source: Optional[str] = None, content: str = ""):
        super().__init__(message=message, source=source)
        self.content = content[:500]


@dataclass
class ExtractionResult:
    """
    Tagged outcome of a structured extraction.

    Exactly one of ``data`` (ok) or ``reason`` (err) is meaningful.
    """

    ok: bool
    data: Dict[str, Any] = field(default_factory=dict)
    reason: Optional[str] = None
    error: Optional[Exception] = None

    @classmethod
    def success(cls, data: Dict[str, Any]) -> "ExtractionResult":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, reason: str, error: Optional[Exception] = None) -> "ExtractionResult":
        return cls(ok=False, reason=reason, error=error)


def _strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code block (```json ... ```)."""
    if text.startswith("```"):
        lines = text.split("\n")
        lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        text = "\n".join(lines)
    return text.strip()


def decode_json_object(content: Optional[str]) -> ExtractionResult:
    """
    Strictly decode model output into a JSON object.

    Returns err("empty") for missing/blank content and err("parse") for
    anything that is not a JSON object.
    """
    if content is None or not content.strip():
        return ExtractionResult.failure("empty")

    text = _strip_code_fence(content.strip())
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        return ExtractionResult.failure(f"parse: {e}")

    if not isinstance(parsed, dict):
        return ExtractionResult.failure(
            f"parse: expected JSON object, got {type(parsed).__name__}"
        )
    return ExtractionResult.success(parsed)


@dataclass
class LLMResponse:
    """Response from LLM call."""

    content: str
    input_tokens: int
    output_tokens: int
    total_tokens: int
    model: str
    cost_usd: float
    raw_response: Any = None

    def decode(self) -> ExtractionResult:
        return decode_json_object(self.content)


class LLMClient:
    """
    Unified async LLM client supporting OpenAI and Anthropic.

    Usage:
        client = LLMClient(provider="openai", api_key="sk-...")
        data = await client.extract("Score this startup ...")
    """

    def __init__(
        self,
        provider: str = "openai",
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: int = 500,
        temperature: float = 0.1,
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ):
        """
        Initialize LLM client.

        Args:
            provider: "openai" or "anthropic"
            api_key: Provider API key
            model: Model name (uses provider default)
            max_tokens: Default token budget per response
            temperature: Default sampling temperature (0-1)
            max_retries: Attempts per call
            retry_delay: Base delay for linear backoff
        """
        self.provider = provider.lower()
        self.api_key = api_key
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.model = model or DEFAULT_MODELS.get(self.provider, DEFAULT_MODELS["openai"])

        self._client = None
        self._total_tokens_used = 0
        self._total_cost_usd = 0.0

    @property
    def is_available(self) -> bool:
        """Check if the selected provider is configured."""
        return self.provider in DEFAULT_MODELS and bool(self.api_key)

    def _get_client(self):
        """
        Get or create the provider SDK client.

        SDK retries are off; _with_retries owns the attempt count and backoff.
        """
        if self._client is None:
            if self.provider == "openai":
                self._client = AsyncOpenAI(api_key=self.api_key, max_retries=0)
            else:
                self._client = AsyncAnthropic(api_key=self.api_key, max_retries=0)
        return self._client

    def _calculate_cost(
        self, model: str, input_tokens: int, output_tokens: int
    ) -> float:
        """Calculate cost in USD for token usage."""
        pricing = MODEL_PRICING.get(model, {"input": 0.0, "output": 0.0})
        input_cost = (input_tokens / 1_000_000) * pricing["input"]
        output_cost = (output_tokens / 1_000_000) * pricing["output"]
        return input_cost + output_cost

    def retry_delay_for(self, attempt: int, throttled: bool) -> float:
        """
        Delay after failed attempt number ``attempt`` (1-based).

        attempt * base normally, attempt * base * 2 on throttling.
        """
        delay = attempt * self.retry_delay
        return delay * 2 if throttled else delay

    def _require_available(self) -> None:
        if not self.is_available:
            env_var = f"{self.provider.upper()}_API_KEY"
            raise ConfigurationError(
                f"LLM provider '{self.provider}' is not configured. Set {env_var}.",
                source=self.provider,
                missing_config=env_var,
            )

    async def _call_provider(
        self,
        prompt: str,
        system_prompt: Optional[str],
        json_mode: bool,
        max_tokens: int,
        temperature: float,
    ) -> LLMResponse:
        client = self._get_client()
        if self.provider == "openai":
            response = await self._openai_complete(
                client, prompt, system_prompt, json_mode, max_tokens, temperature
            )
        else:
            response = await self._anthropic_complete(
                client, prompt, system_prompt, max_tokens, temperature
            )
        self._total_tokens_used += response.total_tokens
        self._total_cost_usd += response.cost_usd
        return response

    async def _with_retries(self, operation, description: str):
        """Run ``operation`` up to max_retries times with linear backoff."""
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                return await operation()
            except ConfigurationError:
                raise
            except Exception as e:
                last_error = e
                throttled = is_throttling_error(e)
                logger.warning(
                    f"{description} failed (attempt {attempt}/{self.max_retries}"
                    f"{', throttled' if throttled else ''}): {e}"
                )
                if attempt < self.max_retries:
                    await asyncio.sleep(self.retry_delay_for(attempt, throttled))

        raise last_error or RetryableError(
            f"{description} failed after all retries", source=self.provider
        )

    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        json_mode: bool = False,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> LLMResponse:
        """
        Send a completion request to the LLM.

        Raises:
            ConfigurationError: If the provider key is not set
            Exception: The last provider error after all attempts
        """
        self._require_available()
        tokens = max_tokens or self.max_tokens
        temp = self.temperature if temperature is None else temperature

        async def attempt():
            return await self._call_provider(prompt, system_prompt, json_mode, tokens, temp)

        return await self._with_retries(attempt, "LLM request")

    async def extract(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Request a JSON object and decode it strictly.

        Empty and undecodable responses count as failed attempts.

        Raises:
            ConfigurationError: If the provider key is not set
            EmptyResponseError: Last attempt returned nothing
            ResponseParseError: Last attempt returned a non-object
            Exception: The last provider error after all attempts
        """
        self._require_available()
        tokens = max_tokens or self.max_tokens
        temp = self.temperature if temperature is None else temperature

        async def attempt() -> Dict[str, Any]:
            response = await self._call_provider(prompt, system_prompt, True, tokens, temp)
            result = response.decode()
            if result.ok:
                return result.data
            if result.reason == "empty":
                raise EmptyResponseError(source=self.provider)
            raise ResponseParseError(
                result.reason or "parse", source=self.provider, content=response.content
            )

        return await self._with_retries(attempt, "LLM extraction")

    async def try_extract(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> ExtractionResult:
        """
        extract() as a tagged result.

        Provider and decoding failures become err results. Configuration
        errors still raise.
        """
        try:
            data = await self.extract(prompt, system_prompt, max_tokens, temperature)
        except ConfigurationError:
            raise
        except Exception as e:
            return ExtractionResult.failure(f"{type(e).__name__}: {e}", error=e)
        return ExtractionResult.success(data)

    async def _openai_complete(
        self,
        client: AsyncOpenAI,
        prompt: str,
        system_prompt: Optional[str],
        json_mode: bool,
        max_tokens: int,
        temperature: float,
    ) -> LLMResponse:
        """Send request to OpenAI API."""
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        kwargs = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = await client.chat.completions.create(**kwargs)

        content = response.choices[0].message.content or ""
        input_tokens = response.usage.prompt_tokens if response.usage else 0
        output_tokens = response.usage.completion_tokens if response.usage else 0

        return LLMResponse(
            content=content,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=input_tokens + output_tokens,
            model=self.model,
            cost_usd=self._calculate_cost(self.model, input_tokens, output_tokens),
            raw_response=response,
        )

    async def _anthropic_complete(
        self,
        client: AsyncAnthropic,
        prompt: str,
        system_prompt: Optional[str],
        max_tokens: int,
        temperature: float,
    ) -> LLMResponse:
        """Send request to Anthropic API."""
        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }

        if system_prompt:
            kwargs["system"] = system_prompt

        response = await client.messages.create(**kwargs)

        content = response.content[0].text if response.content else ""
        input_tokens = response.usage.input_tokens if response.usage else 0
        output_tokens = response.usage.output_tokens if response.usage else 0

        return LLMResponse(
            content=content,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=input_tokens + output_tokens,
            model=self.model,
            cost_usd=self._calculate_cost(self.model, input_tokens, output_tokens),
            raw_response=response,
        )

    @property
    def total_tokens_used(self) -> int:
        """Total tokens used across all requests."""
        return self._total_tokens_used

    @property
    def total_cost_usd(self) -> float:
        """Total cost in USD across all requests."""
        return self._total_cost_usd

    def reset_stats(self):
        """Reset token and cost tracking."""
        self._total_tokens_used = 0
        self._total_cost_usd = 0.0


def get_llm_client(
    provider: Optional[str] = None,
    model: Optional[str] = None,
) -> LLMClient:
    """
    Build an LLM client from settings.

    Without any configured key the returned client raises
    ConfigurationError on first use.
    """
    from venture_eval.core.config import get_settings

    settings = get_settings()
    provider = provider or settings.llm_provider

    if provider is None:
        if settings.get_openai_api_key():
            provider = "openai"
        elif settings.get_anthropic_api_key():
            provider = "anthropic"
        else:
            logger.warning(
                "No LLM API key configured (OPENAI_API_KEY or ANTHROPIC_API_KEY)"
            )
            provider = "openai"

    if provider == "openai":
        api_key = settings.get_openai_api_key()
    else:
        api_key = settings.get_anthropic_api_key()

    return LLMClient(
        provider=provider,
        api_key=api_key,
        model=model or settings.llm_model,
        max_tokens=settings.llm_max_tokens,
        max_retries=settings.llm_max_retries,
        retry_delay=settings.llm_retry_delay,
    )
