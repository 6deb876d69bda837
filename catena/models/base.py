"""Base model adapter interface."""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from catena.schema import GenerateOptions, ModelResult


class ModelAdapter(ABC):
    """Base class for all language-model backends."""

    @abstractmethod
    def generate(self, prompts: List[str], options: Optional[GenerateOptions] = None) -> ModelResult:
        """Generate one group of candidates per prompt."""
        pass

    async def agenerate(self, prompts: List[str], options: Optional[GenerateOptions] = None) -> ModelResult:
        """Async generation - default implementation wraps sync method."""
        return await asyncio.to_thread(self.generate, prompts, options)

    @property
    def model_type(self) -> str:
        return f"model.{type(self).__name__}"

    @property
    def invocation_params(self) -> Dict[str, Any]:
        """Parameters reported to callback handlers on model start."""
        return {}

    def count_tokens(self, text: str) -> int:
        """Count tokens in text - default implementation estimates by word count."""
        return int(len(text.split()) * 1.3)  # Rough estimate: ~1.3 tokens per word
