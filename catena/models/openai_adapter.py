"""OpenAI model adapter."""

import os
from typing import Any, Dict, List, Optional

import openai
import tiktoken
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .base import ModelAdapter
from catena.schema import GenerateOptions, Generation, ModelResult

_RETRYABLE = (openai.RateLimitError, openai.APIConnectionError)


class OpenAIAdapter(ModelAdapter):
    """Adapter for OpenAI chat models.

    Each prompt is sent as a single user message; ``GenerateOptions.n``
    controls how many candidates come back per prompt. Rate-limit and
    connection failures are retried inside the adapter, all other API errors
    propagate to the calling chain.
    """

    def __init__(
        self,
        model: str = "gpt-3.5-turbo",
        api_key: Optional[str] = None,
        max_tokens: Optional[int] = None,
        client: Optional[Any] = None,
        async_client: Optional[Any] = None,
    ):
        self.model = model
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.max_tokens = max_tokens
        self.client = client
        self.async_client = async_client

    def configure(self, **kwargs) -> None:
        """Configure OpenAI parameters."""
        if "model" in kwargs:
            self.model = kwargs["model"]
        if "api_key" in kwargs:
            self.api_key = kwargs["api_key"]
            self.client = None
            self.async_client = None
        if "max_tokens" in kwargs:
            self.max_tokens = kwargs["max_tokens"]

    @property
    def model_type(self) -> str:
        return "model.OpenAI"

    @property
    def invocation_params(self) -> Dict[str, Any]:
        return {"model_name": self.model, "max_tokens": self.max_tokens}

    def _request_params(self, prompt: str, options: Optional[GenerateOptions]) -> Dict[str, Any]:
        options = options or GenerateOptions()
        params: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "n": options.n,
        }

        max_tokens = options.max_tokens or self.max_tokens
        if max_tokens is not None:
            params["max_tokens"] = max_tokens
        if options.temperature is not None:
            params["temperature"] = options.temperature
        if options.stop is not None:
            params["stop"] = options.stop

        return params

    @retry(
        retry=retry_if_exception_type(_RETRYABLE),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=4, max=10),
        reraise=True,
    )
    def _create(self, params: Dict[str, Any]) -> Any:
        return self.client.chat.completions.create(**params)

    @retry(
        retry=retry_if_exception_type(_RETRYABLE),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=4, max=10),
        reraise=True,
    )
    async def _acreate(self, params: Dict[str, Any]) -> Any:
        return await self.async_client.chat.completions.create(**params)

    def generate(self, prompts: List[str], options: Optional[GenerateOptions] = None) -> ModelResult:
        """Generate responses using the OpenAI API."""
        if not self.client:
            self.client = openai.OpenAI(api_key=self.api_key)

        completions = [self._create(self._request_params(prompt, options)) for prompt in prompts]
        return self._to_model_result(completions)

    async def agenerate(self, prompts: List[str], options: Optional[GenerateOptions] = None) -> ModelResult:
        """Generate responses using the OpenAI API asynchronously."""
        if not self.async_client:
            self.async_client = openai.AsyncOpenAI(api_key=self.api_key)

        completions = []
        for prompt in prompts:
            completions.append(await self._acreate(self._request_params(prompt, options)))
        return self._to_model_result(completions)

    def _to_model_result(self, completions: List[Any]) -> ModelResult:
        generations: List[List[Generation]] = []
        token_usage = {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}

        for completion in completions:
            group = []
            for choice in completion.choices:
                content = choice.message.content if choice.message.content is not None else ""
                group.append(Generation(
                    text=content.strip(),
                    info={"finish_reason": choice.finish_reason},
                ))
            generations.append(group)

            if completion.usage:
                token_usage["prompt_tokens"] += completion.usage.prompt_tokens
                token_usage["completion_tokens"] += completion.usage.completion_tokens
                token_usage["total_tokens"] += completion.usage.total_tokens

        return ModelResult(
            generations=generations,
            llm_output={"token_usage": token_usage, "model_name": self.model},
        )

    def count_tokens(self, text: str) -> int:
        """Count tokens using the model's tiktoken encoding."""
        try:
            encoding = tiktoken.encoding_for_model(self.model)
        except KeyError:
            # Fall back to cl100k_base encoding for most modern models
            encoding = tiktoken.get_encoding("cl100k_base")

        return len(encoding.encode(text))
