"""Tests for the OpenAI model adapter using the official SDK types."""

from unittest.mock import AsyncMock, Mock, patch

import openai
import pytest
from openai.types.chat import ChatCompletion, ChatCompletionMessage
from openai.types.chat.chat_completion import Choice
from openai.types.completion_usage import CompletionUsage
from tenacity import wait_none

from catena.chains import LLMChain
from catena.exceptions import CollaboratorError
from catena.models import OpenAIAdapter
from catena.prompts import PromptTemplate
from catena.schema import GenerateOptions


def make_completion(*contents, prompt_tokens=9, completion_tokens=12):
    return ChatCompletion(
        id="chatcmpl-123",
        object="chat.completion",
        created=1677652288,
        model="gpt-3.5-turbo",
        choices=[
            Choice(
                index=i,
                message=ChatCompletionMessage(role="assistant", content=content),
                finish_reason="stop",
            )
            for i, content in enumerate(contents)
        ],
        usage=CompletionUsage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        ),
    )


class MockRateLimitError(openai.RateLimitError, Exception):
    def __init__(self, message):
        Exception.__init__(self, message)
        self.message = message


class TestOpenAIAdapter:
    """Test cases for OpenAIAdapter."""

    def setup_method(self):
        """Set up test fixtures."""
        self.client = Mock()
        self.async_client = Mock()
        self.adapter = OpenAIAdapter(
            api_key="test-api-key", client=self.client, async_client=self.async_client
        )

    def test_generate(self):
        self.client.chat.completions.create.return_value = make_completion("  Hello!  ")

        result = self.adapter.generate(["Hi"])

        assert len(result.generations) == 1
        assert result.generations[0][0].text == "Hello!"
        assert result.generations[0][0].info == {"finish_reason": "stop"}
        assert result.llm_output == {
            "token_usage": {"prompt_tokens": 9, "completion_tokens": 12, "total_tokens": 21},
            "model_name": "gpt-3.5-turbo",
        }
        self.client.chat.completions.create.assert_called_once_with(
            model="gpt-3.5-turbo",
            messages=[{"role": "user", "content": "Hi"}],
            n=1,
        )

    def test_generate_one_group_per_prompt(self):
        self.client.chat.completions.create.side_effect = [
            make_completion("first"),
            make_completion("second"),
        ]

        result = self.adapter.generate(["a", "b"])

        assert [[g.text for g in group] for group in result.generations] == [["first"], ["second"]]
        assert result.llm_output["token_usage"]["total_tokens"] == 42

    def test_options_forwarded(self):
        self.client.chat.completions.create.return_value = make_completion("one", "two")
        options = GenerateOptions(n=2, temperature=0.5, max_tokens=64, stop=["\n"])

        result = self.adapter.generate(["Hi"], options)

        assert [g.text for g in result.generations[0]] == ["one", "two"]
        kwargs = self.client.chat.completions.create.call_args.kwargs
        assert kwargs["n"] == 2
        assert kwargs["temperature"] == 0.5
        assert kwargs["max_tokens"] == 64
        assert kwargs["stop"] == ["\n"]

    def test_default_max_tokens(self):
        adapter = OpenAIAdapter(max_tokens=100, client=self.client)
        self.client.chat.completions.create.return_value = make_completion("ok")

        adapter.generate(["Hi"])

        assert self.client.chat.completions.create.call_args.kwargs["max_tokens"] == 100

    def test_empty_content(self):
        self.client.chat.completions.create.return_value = make_completion(None)

        result = self.adapter.generate(["Hi"])

        assert result.generations[0][0].text == ""

    @pytest.mark.asyncio
    async def test_agenerate(self):
        self.async_client.chat.completions.create = AsyncMock(return_value=make_completion("Hello"))

        result = await self.adapter.agenerate(["Hi"])

        assert result.generations[0][0].text == "Hello"
        self.async_client.chat.completions.create.assert_awaited_once()

    def test_rate_limit_is_retried(self):
        self.client.chat.completions.create.side_effect = [
            MockRateLimitError("Rate limit exceeded"),
            make_completion("Hello"),
        ]

        with patch.object(OpenAIAdapter._create.retry, "wait", wait_none()):
            result = self.adapter.generate(["Hi"])

        assert result.generations[0][0].text == "Hello"
        assert self.client.chat.completions.create.call_count == 2

    def test_other_errors_propagate(self):
        self.client.chat.completions.create.side_effect = ValueError("bad request")

        with pytest.raises(ValueError):
            self.adapter.generate(["Hi"])

        assert self.client.chat.completions.create.call_count == 1

    @pytest.mark.asyncio
    async def test_failure_inside_chain(self):
        self.async_client.chat.completions.create = AsyncMock(side_effect=ValueError("bad request"))
        chain = LLMChain(self.adapter, PromptTemplate("{question}"))

        with pytest.raises(CollaboratorError) as exc_info:
            await chain.acall({"question": "Hi"})

        assert exc_info.value.collaborator == "model"
        assert isinstance(exc_info.value.original_error, ValueError)

    def test_configure(self):
        self.adapter.configure(model="gpt-4", max_tokens=10)

        assert self.adapter.model == "gpt-4"
        assert self.adapter.max_tokens == 10
        assert self.adapter.client is self.client

    def test_configure_api_key_resets_clients(self):
        self.adapter.configure(api_key="other-key")

        assert self.adapter.api_key == "other-key"
        assert self.adapter.client is None
        assert self.adapter.async_client is None

    def test_model_type_and_params(self):
        assert self.adapter.model_type == "model.OpenAI"
        assert self.adapter.invocation_params == {"model_name": "gpt-3.5-turbo", "max_tokens": None}

    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "env-key")

        assert OpenAIAdapter().api_key == "env-key"


class TestOpenAITokenCounting:
    """Token counting goes through tiktoken."""

    @patch("catena.models.openai_adapter.tiktoken")
    def test_count_tokens(self, mock_tiktoken):
        mock_tiktoken.encoding_for_model.return_value.encode.return_value = [1, 2, 3]

        assert OpenAIAdapter(model="gpt-4").count_tokens("hello there") == 3
        mock_tiktoken.encoding_for_model.assert_called_once_with("gpt-4")

    @patch("catena.models.openai_adapter.tiktoken")
    def test_unknown_model_falls_back_to_cl100k(self, mock_tiktoken):
        mock_tiktoken.encoding_for_model.side_effect = KeyError("unknown")
        mock_tiktoken.get_encoding.return_value.encode.return_value = [1, 2]

        assert OpenAIAdapter(model="my-model").count_tokens("hello") == 2
        mock_tiktoken.get_encoding.assert_called_once_with("cl100k_base")
