# pdfqa/llm/client.py
import logging
import os
import time
from abc import ABC, abstractmethod
from typing import Optional

import google.generativeai as genai
from openai import OpenAI

from pdfqa.config import (
    LLM_MAX_TOKENS,
    LLM_MODEL,
    LLM_PROVIDER,
    LLM_TEMPERATURE,
    LLM_TIMEOUT_SECONDS,
)
from pdfqa.errors import ConfigurationError, RAGError, UpstreamError
from pdfqa.prompts.system_prompts import DOCUMENT_QA_SYSTEM_PROMPT

logger = logging.getLogger(__name__)


class BaseLLMClient(ABC):
    """
    Single-shot text generation.

    ``generate`` either returns non-empty text or raises UpstreamError.
    There is no fallback between providers and no retry.
    """

    provider = "base"

    def __init__(self, model: str):
        self.model = model

    @abstractmethod
    def _generate(self, prompt: str) -> str:
        """Provider call for one prompt."""

    def generate(self, prompt: str) -> str:

        start = time.time()

        try:

            text = self._generate(prompt)

        except RAGError:
            raise

        except Exception as e:

            logger.error(
                "LLM provider failed",
                extra={
                    "provider": self.provider,
                    "model": self.model,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )

            raise UpstreamError(f"{self.provider} generation failed: {e}") from e

        if not text or not text.strip():
            raise UpstreamError(f"{self.provider} returned empty response")

        logger.info(
            "LLM provider success",
            extra={
                "provider": self.provider,
                "model": self.model,
                "prompt_length": len(prompt),
                "latency_seconds": round(time.time() - start, 3),
            },
        )

        return text.strip()


class GeminiLLMClient(BaseLLMClient):
    """Client for Google Gemini models."""

    provider = "gemini"

    def __init__(
        self,
        model: str = "gemini-2.0-flash",
        api_key: Optional[str] = None,
        temperature: float = LLM_TEMPERATURE,
        max_tokens: int = LLM_MAX_TOKENS,
        timeout: float = LLM_TIMEOUT_SECONDS,
    ):
        super().__init__(model)

        key = api_key or os.getenv("GEMINI_API_KEY")

        if not key:
            raise ConfigurationError(
                "GEMINI_API_KEY environment variable not set. "
                "Please set it before running the application."
            )

        genai.configure(api_key=key)

        self._model = genai.GenerativeModel(
            model_name=model,
            system_instruction=DOCUMENT_QA_SYSTEM_PROMPT,
            generation_config={
                "temperature": temperature,
                "max_output_tokens": max_tokens,
            },
        )
        self._timeout = timeout

    def _generate(self, prompt: str) -> str:

        response = self._model.generate_content(
            prompt,
            request_options={"timeout": self._timeout},
        )

        # .text raises ValueError when the candidate was blocked
        return response.text if response else ""


class OpenAILLMClient(BaseLLMClient):
    """Client for OpenAI chat models."""

    provider = "openai"

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key: Optional[str] = None,
        temperature: float = LLM_TEMPERATURE,
        max_tokens: int = LLM_MAX_TOKENS,
        timeout: float = LLM_TIMEOUT_SECONDS,
    ):
        super().__init__(model)

        key = api_key or os.getenv("OPENAI_API_KEY")

        if not key:
            raise ConfigurationError(
                "OPENAI_API_KEY environment variable not set. "
                "Please set it before running the application."
            )

        self.client = OpenAI(api_key=key, timeout=timeout, max_retries=0)
        self.temperature = temperature
        self.max_tokens = max_tokens

    def _generate(self, prompt: str) -> str:

        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {
                    "role": "system",
                    "content": DOCUMENT_QA_SYSTEM_PROMPT,
                },
                {
                    "role": "user",
                    "content": prompt,
                },
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )

        return response.choices[0].message.content


def build_llm_client(provider: str = LLM_PROVIDER, model: str = LLM_MODEL) -> BaseLLMClient:

    if provider == "gemini":
        return GeminiLLMClient(model=model)

    if provider == "openai":
        return OpenAILLMClient(model=model)

    raise ConfigurationError(f"Unknown LLM provider: {provider}")
