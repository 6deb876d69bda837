"""Composite chain that stuffs documents into a single prompt."""

from typing import Any, Callable, Dict, List, Optional

from .base import Chain, ExpectedType
from catena.callbacks import CallbackManager
from catena.exceptions import InputTypeMismatchError
from catena.schema import ChainValues, Document


class StuffDocumentsChain(Chain):
    """
    Chain that joins documents into one context block for an inner chain.

    Documents are joined in the order supplied, without sorting or
    de-duplication. An empty document list still runs the inner chain with an
    empty context.
    """

    def __init__(
        self,
        llm_chain: Chain,
        input_key: str = "input_documents",
        question_key: str = "question",
        document_variable_name: str = "context",
        separator: str = "\n\n",
        document_formatter: Optional[Callable[[Document], str]] = None,
        **kwargs: Any,
    ):
        """
        Initialize the chain.

        Args:
            llm_chain: Inner chain receiving the question and the joined context
            input_key: Key holding the list of documents
            question_key: Key holding the question text
            document_variable_name: Inner chain input that receives the context
            separator: String placed between documents
            document_formatter: Renders one document, defaults to its content

        Raises:
            ValueError: If the inner chain does not take ``document_variable_name``
        """
        if document_variable_name not in llm_chain.input_keys:
            raise ValueError(
                f"document_variable_name '{document_variable_name}' is not an input of "
                f"{llm_chain.chain_type} (inputs: {llm_chain.input_keys})"
            )

        super().__init__(**kwargs)
        self.llm_chain = llm_chain
        self.input_key = input_key
        self.question_key = question_key
        self.document_variable_name = document_variable_name
        self.separator = separator
        self.document_formatter = document_formatter

    @property
    def input_keys(self) -> List[str]:
        keys = [self.question_key, self.input_key]
        for key in self.llm_chain.input_keys:
            if key != self.document_variable_name and key not in keys:
                keys.append(key)
        return keys

    @property
    def output_keys(self) -> List[str]:
        return self.llm_chain.output_keys

    @property
    def input_types(self) -> Dict[str, ExpectedType]:
        return {self.question_key: str, self.input_key: (list, tuple)}

    def _validate_inputs(self, values: ChainValues) -> None:
        super()._validate_inputs(values)
        # memory may supply the documents after validation
        for document in values.get(self.input_key, ()):
            if not isinstance(document, Document):
                raise InputTypeMismatchError(self.input_key, Document, document, self.chain_type)

    def combine_documents(self, documents: List[Document]) -> str:
        """Join the documents into a single context block."""
        if self.document_formatter is not None:
            parts = [self.document_formatter(document) for document in documents]
        else:
            parts = [document.content for document in documents]
        return self.separator.join(parts)

    async def _acall(self, values: ChainValues, run_manager: CallbackManager) -> ChainValues:
        documents = values[self.input_key]

        inner_values = {key: value for key, value in values.items() if key != self.input_key}
        inner_values[self.document_variable_name] = self.combine_documents(documents)

        result = await self.llm_chain.acall(inner_values, run_manager=run_manager)
        return {key: result[key] for key in self.llm_chain.output_keys}
