"""Fake model adapter for tests and offline wiring."""

from typing import Any, Dict, List, Optional

from .base import ModelAdapter
from catena.schema import GenerateOptions, Generation, ModelResult


class FakeModel(ModelAdapter):
    """Model that answers every prompt with the same fixed response."""

    def __init__(self, response: str):
        self.response = response

    def generate(self, prompts: List[str], options: Optional[GenerateOptions] = None) -> ModelResult:
        return ModelResult(
            generations=[[Generation(text=self.response)] for _ in prompts],
            llm_output={},
        )

    @property
    def model_type(self) -> str:
        return "model.Fake"

    @property
    def invocation_params(self) -> Dict[str, Any]:
        return {"response": self.response}
