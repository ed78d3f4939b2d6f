"""LLM service for OpenAI integration, response caching and cost tracking."""

import hashlib
import json
import logging
from datetime import date
from typing import Any, Dict, Optional

import redis.asyncio as redis
from openai import AsyncOpenAI

from listing_ingest.config import settings

logger = logging.getLogger(__name__)


class LLMService:
    """
    Service for LLM interactions with OpenAI.

    Features:
    - Structured JSON output
    - Caching (Redis-based)
    - Daily cost guard
    """

    def __init__(self):
        self._client: Optional[AsyncOpenAI] = None
        self._redis: Optional[redis.Redis] = None
        self._daily_cost: float = 0.0
        self._cost_day: date = date.today()
        self._call_count: int = 0

    @property
    def is_configured(self) -> bool:
        return bool(settings.openai_api_key)

    async def _get_client(self) -> AsyncOpenAI:
        """Get or create OpenAI client."""
        if self._client is None:
            if not settings.openai_api_key:
                raise ValueError("OpenAI API key not configured")
            self._client = AsyncOpenAI(api_key=settings.openai_api_key)
        return self._client

    async def _get_redis(self) -> Optional[redis.Redis]:
        """Get or create Redis connection for caching."""
        if not settings.llm_cache_enabled:
            return None

        if self._redis is None:
            try:
                self._redis = redis.from_url(
                    settings.redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                )
            except Exception as e:
                logger.warning(f"Failed to connect to Redis for LLM cache: {e}")
                return None
        return self._redis

    def _get_cache_key(self, prompt: str, system_prompt: str, model: str) -> str:
        """Generate cache key for prompt."""
        combined = f"{system_prompt}:{prompt}:{model}"
        key_hash = hashlib.sha256(combined.encode("utf-8")).hexdigest()
        return f"llm_cache:{key_hash}"

    def _check_cost_limit(self) -> bool:
        """Check if daily cost limit is exceeded, rolling the counter over at midnight."""
        if not settings.track_llm_costs:
            return True

        today = date.today()
        if today != self._cost_day:
            self.reset_daily_stats()
            self._cost_day = today

        if self._daily_cost >= settings.llm_cost_limit_per_day:
            logger.warning(
                f"Daily LLM cost limit reached: ${self._daily_cost:.2f} >= ${settings.llm_cost_limit_per_day:.2f}"
            )
            return False
        return True

    def _estimate_cost(self, model: str, prompt_tokens: int, completion_tokens: int) -> float:
        """
        Estimate cost for LLM call.

        Pricing (approximate, per 1K tokens):
        - gpt-4o-mini: $0.00015 input, $0.0006 output
        - gpt-4o: $0.0025 input, $0.01 output
        """
        model = model.lower()
        if "mini" in model:
            input_cost = (prompt_tokens / 1000) * 0.00015
            output_cost = (completion_tokens / 1000) * 0.0006
        else:
            input_cost = (prompt_tokens / 1000) * 0.0025
            output_cost = (completion_tokens / 1000) * 0.01

        return input_cost + output_cost

    async def _cache_get(self, key: str) -> Optional[str]:
        redis_client = await self._get_redis()
        if not redis_client:
            return None
        try:
            return await redis_client.get(key)
        except redis.RedisError as e:
            logger.warning(f"LLM cache read failed: {e}")
            return None

    async def _cache_set(self, key: str, value: str) -> None:
        redis_client = await self._get_redis()
        if not redis_client:
            return
        try:
            await redis_client.setex(key, settings.llm_cache_ttl_seconds, value)
        except redis.RedisError as e:
            logger.warning(f"LLM cache write failed: {e}")

    async def call_llm(
        self,
        prompt: str,
        system_prompt: str = "",
        temperature: Optional[float] = None,
        model: Optional[str] = None,
        use_cache: bool = True,
    ) -> str:
        """
        Call LLM with a prompt and return text response.

        Args:
            prompt: User prompt
            system_prompt: System prompt/instructions
            temperature: Temperature (defaults to settings.llm_temperature)
            model: Model name (defaults to settings.llm_model)
            use_cache: Whether to use cache

        Returns:
            LLM response text

        Raises:
            RuntimeError: Daily cost limit exceeded
        """
        model = model or settings.llm_model
        temperature = temperature if temperature is not None else settings.llm_temperature

        if not self._check_cost_limit():
            raise RuntimeError("Daily LLM cost limit exceeded")

        cache_key = self._get_cache_key(prompt, system_prompt, model)
        use_cache = use_cache and settings.llm_cache_enabled

        if use_cache:
            cached = await self._cache_get(cache_key)
            if cached:
                logger.debug(f"LLM cache hit for prompt: {prompt[:50]}...")
                self._call_count += 1
                return cached

        try:
            client = await self._get_client()

            messages = []
            if system_prompt:
                messages.append({"role": "system", "content": system_prompt})
            messages.append({"role": "user", "content": prompt})

            response = await client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                max_tokens=settings.llm_max_tokens,
                timeout=settings.llm_timeout_seconds,
            )

            result = response.choices[0].message.content or ""

            if settings.track_llm_costs and response.usage:
                prompt_tokens = response.usage.prompt_tokens
                completion_tokens = response.usage.completion_tokens
                cost = self._estimate_cost(model, prompt_tokens, completion_tokens)
                self._daily_cost += cost
                logger.debug(
                    f"LLM call cost: ${cost:.4f} "
                    f"(tokens: {prompt_tokens}+{completion_tokens}, total: ${self._daily_cost:.2f})"
                )

            self._call_count += 1

            if use_cache and result:
                await self._cache_set(cache_key, result)

            return result

        except Exception as e:
            logger.error(f"LLM API call failed: {e}")
            raise

    async def call_llm_structured(
        self,
        prompt: str,
        response_schema: Dict[str, Any],
        system_prompt: str = "",
        temperature: Optional[float] = None,
        model: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Call LLM with structured JSON output.

        Args:
            prompt: User prompt
            response_schema: JSON schema describing expected response structure
            system_prompt: System prompt/instructions
            temperature: Temperature (defaults to settings.llm_temperature)
            model: Model name (defaults to settings.llm_model)

        Returns:
            Parsed JSON response as dictionary

        Raises:
            ValueError: Reply is not a JSON object
        """
        enhanced_system = system_prompt
        if enhanced_system:
            enhanced_system += "\n\n"
        enhanced_system += (
            f"Respond with valid JSON matching this schema: {json.dumps(response_schema, indent=2)}\n"
            "Return only the JSON object, no additional text."
        )

        response_text = await self.call_llm(
            prompt=prompt,
            system_prompt=enhanced_system,
            temperature=temperature,
            model=model,
        )

        # Models sometimes wrap the object in a markdown fence
        response_text = response_text.strip()
        if response_text.startswith("```json"):
            response_text = response_text[7:]
        if response_text.startswith("```"):
            response_text = response_text[3:]
        if response_text.endswith("```"):
            response_text = response_text[:-3]
        response_text = response_text.strip()

        try:
            parsed = json.loads(response_text)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse LLM JSON response: {e}\nResponse: {response_text[:200]}")
            raise ValueError(f"Invalid JSON response from LLM: {e}") from e

        if not isinstance(parsed, dict):
            raise ValueError(f"Expected a JSON object from LLM, got {type(parsed).__name__}")
        return parsed

    def get_stats(self) -> Dict[str, Any]:
        """
        Get LLM service statistics.

        Returns:
            Dictionary with call count, daily cost, etc.
        """
        return {
            "configured": self.is_configured,
            "call_count": self._call_count,
            "daily_cost": self._daily_cost,
            "cost_limit": settings.llm_cost_limit_per_day,
            "cache_enabled": settings.llm_cache_enabled,
        }

    def reset_daily_stats(self):
        """Reset daily cost and call count."""
        self._daily_cost = 0.0
        self._call_count = 0
        logger.info("LLM daily stats reset")

    async def close(self):
        """Close connections."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
        if self._client:
            await self._client.close()
            self._client = None


# Global LLM service instance
llm_service = LLMService()
