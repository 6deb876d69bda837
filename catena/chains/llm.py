"""Leaf chain that renders a prompt and calls a model."""

import asyncio
from typing import Any, List, Optional

from .base import Chain
from catena.callbacks import CallbackManager
from catena.exceptions import EmptyGenerationError, ParsingError
from catena.models.base import ModelAdapter
from catena.parsers.base import OutputParser
from catena.prompts import BasePromptTemplate
from catena.schema import ChainValues, GenerateOptions, ModelResult


class LLMChain(Chain):
    """
    Chain that fills a prompt template and calls a model backend once.

    The first candidate's text (or its parsed form when an output parser is
    set) is returned under ``output_key``. With ``return_generations`` the
    full candidate group is also returned under ``generations_key``.
    """

    def __init__(
        self,
        model: ModelAdapter,
        prompt: BasePromptTemplate,
        output_key: str = "text",
        output_parser: Optional[OutputParser] = None,
        return_generations: bool = False,
        generations_key: str = "generations",
        options: Optional[GenerateOptions] = None,
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self.model = model
        self.prompt = prompt
        self.output_key = output_key
        self.output_parser = output_parser
        self.return_generations = return_generations
        self.generations_key = generations_key
        self.options = options

    @property
    def input_keys(self) -> List[str]:
        return self.prompt.input_variables

    @property
    def output_keys(self) -> List[str]:
        if self.return_generations:
            return [self.output_key, self.generations_key]
        return [self.output_key]

    async def _acall(self, values: ChainValues, run_manager: CallbackManager) -> ChainValues:
        prompt = self.prompt.render(values)

        model_manager = run_manager.child()
        await model_manager.on_model_start(self.model.model_type, [prompt], self.model.invocation_params)
        try:
            result = await self._guard("model", self.model.agenerate([prompt], self.options))
        except (Exception, asyncio.CancelledError) as e:
            await model_manager.on_model_error(self._error_for_event(e))
            raise
        await model_manager.on_model_end(result)

        return self._create_outputs(result)

    def _create_outputs(self, result: ModelResult) -> ChainValues:
        if len(result.generations) != 1:
            raise EmptyGenerationError(
                f"expected 1 generation group for 1 prompt, got {len(result.generations)}"
            )
        candidates = result.generations[0]
        if not candidates:
            raise EmptyGenerationError("model returned no candidates")

        outputs: ChainValues = {self.output_key: self._parse(candidates[0].text)}
        if self.return_generations:
            outputs[self.generations_key] = list(candidates)
        return outputs

    def _parse(self, text: str) -> Any:
        if self.output_parser is None:
            return text

        try:
            return self.output_parser.parse(text)
        except ParsingError:
            raise
        except Exception as e:
            raise ParsingError(
                f"Output parsing failed: {e}",
                original_text=text,
                parser_type=type(self.output_parser).__name__,
            ) from e

    async def apredict(self, **kwargs: Any) -> Any:
        """Run the chain on keyword inputs and return the primary output."""
        result = await self.acall(kwargs)
        return result[self.output_key]

    def predict(self, **kwargs: Any) -> Any:
        """Synchronous version of ``apredict``."""
        return self._run_sync(self.apredict(**kwargs))
