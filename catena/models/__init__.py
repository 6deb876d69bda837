"""Model adapters for different LLM providers."""

from .base import ModelAdapter
from .fake import FakeModel
from .openai_adapter import OpenAIAdapter

__all__ = ["ModelAdapter", "FakeModel", "OpenAIAdapter"]
