"""
AI Email Generator Module

OpenAI-powered text generation used by the bulk pipeline.

Features:
- Single-prompt draft generation with simple retry logic
- Value proposition rewrite into outcome-focused language
- Failure classification (quota, API, configuration)
"""

import asyncio
import logging
import os
from typing import Optional
from dataclasses import dataclass
from enum import Enum

# OpenAI import
from openai import AsyncOpenAI

from .errors import GenerationError
from .prompt_builder import build_value_proposition_prompt, clean_value_proposition

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert cold email copywriter. Write concise, specific emails "
    "that feel personal and never invent facts about the sender."
)


class GenerationStatus(Enum):
    """Status of AI generation operation"""
    SUCCESS = "success"
    FAILED = "failed"
    API_ERROR = "api_error"
    QUOTA_EXCEEDED = "quota_exceeded"
    INVALID_INPUT = "invalid_input"


@dataclass
class GenerationResult:
    """Container for AI generation results"""
    status: GenerationStatus
    content: Optional[str] = None
    error_message: Optional[str] = None
    tokens_used: int = 0
    generation_time_seconds: float = 0.0
    model_used: Optional[str] = None


class AIEmailGenerator:
    """
    Draft generation collaborator backed by the OpenAI chat completions API
    """

    def __init__(self, client: Optional[AsyncOpenAI] = None):
        # OpenAI Configuration
        self.api_key = os.getenv("OPENAI_API_KEY")
        self.model = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        self.max_tokens = int(os.getenv("OPENAI_MAX_TOKENS", "2000"))
        self.temperature = float(os.getenv("OPENAI_TEMPERATURE", "0.7"))
        self.value_prop_max_tokens = int(os.getenv("VALUE_PROP_MAX_TOKENS", "300"))

        # Processing Configuration
        self.max_retries = int(os.getenv("AI_MAX_RETRIES", "2"))
        self.retry_delay_seconds = float(os.getenv("AI_RETRY_DELAY_SECONDS", "1.0"))

        # Initialize OpenAI client
        self._client = client
        if self._client is None and self.api_key:
            self._client = AsyncOpenAI(api_key=self.api_key)

    def validate_configuration(self) -> tuple[bool, Optional[str]]:
        """
        Validate AI generator configuration

        Returns:
            tuple: (is_valid, error_message)
        """
        if not self._client:
            return False, "OpenAI API key not configured (OPENAI_API_KEY environment variable)"

        if self.max_tokens <= 0:
            return False, f"Invalid max_tokens configuration: {self.max_tokens}"

        if not (0.0 <= self.temperature <= 2.0):
            return False, f"Invalid temperature configuration: {self.temperature}"

        return True, None

    async def complete(self, prompt: str, max_tokens: Optional[int] = None) -> GenerationResult:
        """
        Run a prompt with retries and report the outcome without raising

        Args:
            prompt: Full user prompt
            max_tokens: Override for the response token limit

        Returns:
            GenerationResult: Generated text and metadata
        """
        loop = asyncio.get_running_loop()
        start_time = loop.time()

        is_valid, error_msg = self.validate_configuration()
        if not is_valid:
            return GenerationResult(
                status=GenerationStatus.FAILED,
                error_message=f"Configuration error: {error_msg}",
                generation_time_seconds=loop.time() - start_time
            )

        if not prompt or not prompt.strip():
            return GenerationResult(
                status=GenerationStatus.INVALID_INPUT,
                error_message="Prompt is empty",
                generation_time_seconds=loop.time() - start_time
            )

        last_error: Optional[Exception] = None
        for attempt in range(self.max_retries + 1):
            if attempt > 0:
                await asyncio.sleep(self.retry_delay_seconds)
            try:
                content, tokens_used = await self._call_openai_api(prompt, max_tokens or self.max_tokens)
                return GenerationResult(
                    status=GenerationStatus.SUCCESS,
                    content=content,
                    tokens_used=tokens_used,
                    generation_time_seconds=loop.time() - start_time,
                    model_used=self.model
                )
            except Exception as api_error:
                last_error = api_error
                logger.warning(f"OpenAI call failed (attempt {attempt + 1}/{self.max_retries + 1}): {api_error}")

        if "rate limit" in str(last_error).lower() or "quota" in str(last_error).lower():
            status = GenerationStatus.QUOTA_EXCEEDED
        else:
            status = GenerationStatus.API_ERROR

        return GenerationResult(
            status=status,
            error_message=f"API error after {self.max_retries + 1} attempts: {last_error}",
            generation_time_seconds=loop.time() - start_time
        )

    async def generate(self, prompt: str) -> str:
        """
        Generate free text for a prompt

        Raises:
            GenerationError: If every attempt failed or no text came back
        """
        result = await self.complete(prompt)
        if result.status != GenerationStatus.SUCCESS:
            raise GenerationError(result.error_message or "Generation failed", status=result.status.value)
        if not result.content:
            raise GenerationError("No text content in response", status=GenerationStatus.FAILED.value)
        return result.content

    async def transform_value_proposition(self, what_we_do: str) -> str:
        """
        Rewrite a value proposition as a customer outcome, falling back to the input

        Args:
            what_we_do: Sender's own description of what they offer

        Returns:
            str: Rewritten value proposition, or the original text on any failure
        """
        result = await self.complete(build_value_proposition_prompt(what_we_do), max_tokens=self.value_prop_max_tokens)
        if result.status != GenerationStatus.SUCCESS or not result.content:
            logger.warning(f"Value proposition transform failed, using original: {result.error_message}")
            return what_we_do
        return clean_value_proposition(result.content) or what_we_do

    async def _call_openai_api(self, prompt: str, max_tokens: int) -> tuple[str, int]:
        """
        Make API call to OpenAI

        Args:
            prompt: Formatted prompt for the API
            max_tokens: Response token limit

        Returns:
            tuple: (response_text, tokens_used)
        """
        response = await self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt}
            ],
            max_tokens=max_tokens,
            temperature=self.temperature
        )

        if not response.choices or not response.choices[0].message.content:
            raise ValueError("No response generated from OpenAI")

        content = response.choices[0].message.content
        tokens_used = response.usage.total_tokens if response.usage else 0
        return content.strip(), tokens_used

    async def aclose(self):
        if self._client is not None:
            await self._client.close()
