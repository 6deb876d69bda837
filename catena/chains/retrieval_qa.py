"""Retrieval-augmented question answering chain."""

import asyncio
from typing import Any, Dict, List, Optional

from .base import Chain, ExpectedType
from .llm import LLMChain
from .stuff_documents import StuffDocumentsChain
from catena.callbacks import CallbackManager
from catena.models.base import ModelAdapter
from catena.prompts import DEFAULT_STUFF_QA_TEMPLATE, BasePromptTemplate, PromptTemplate
from catena.retrievers.base import Retriever
from catena.schema import ChainValues, Document


class RetrievalQA(Chain):
    """
    Chain that retrieves documents for a query and answers from them.

    Each call retrieves first and then runs the document-stuffing chain;
    nothing is kept between calls. The retrieved documents are passed on as
    returned by the retriever. When the stuffing chain fails the retrieved
    documents are discarded with the run.
    """

    def __init__(
        self,
        combine_documents_chain: StuffDocumentsChain,
        retriever: Retriever,
        input_key: str = "query",
        return_source_documents: bool = False,
        source_documents_key: str = "source_documents",
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self.combine_documents_chain = combine_documents_chain
        self.retriever = retriever
        self.input_key = input_key
        self.return_source_documents = return_source_documents
        self.source_documents_key = source_documents_key

    @classmethod
    def from_model(
        cls,
        model: ModelAdapter,
        retriever: Retriever,
        prompt: Optional[BasePromptTemplate] = None,
        output_key: str = "answer",
        **kwargs: Any,
    ) -> "RetrievalQA":
        """
        Build the chain with the default stuff-QA prompt.

        Args:
            model: Model backend answering the question
            retriever: Retriever supplying the context documents
            prompt: Prompt with ``context`` and ``question`` variables
            output_key: Key the answer is returned under
            **kwargs: Passed to the RetrievalQA constructor

        Returns:
            A RetrievalQA wired to an LLMChain through a StuffDocumentsChain
        """
        llm_chain = LLMChain(
            model,
            prompt or PromptTemplate(DEFAULT_STUFF_QA_TEMPLATE),
            output_key=output_key,
        )
        return cls(StuffDocumentsChain(llm_chain), retriever, **kwargs)

    @property
    def input_keys(self) -> List[str]:
        return [self.input_key]

    @property
    def output_keys(self) -> List[str]:
        keys = list(self.combine_documents_chain.output_keys)
        if self.return_source_documents:
            keys.append(self.source_documents_key)
        return keys

    @property
    def input_types(self) -> Dict[str, ExpectedType]:
        return {self.input_key: str}

    async def _acall(self, values: ChainValues, run_manager: CallbackManager) -> ChainValues:
        query = values[self.input_key]

        retriever_manager = run_manager.child()
        await retriever_manager.on_retriever_start(self.retriever.retriever_type, query)
        try:
            documents = await self._guard("retriever", self._retrieve(query))
        except (Exception, asyncio.CancelledError) as e:
            await retriever_manager.on_retriever_error(self._error_for_event(e))
            raise
        await retriever_manager.on_retriever_end(documents)

        combine = self.combine_documents_chain
        result = await combine.acall(
            {combine.question_key: query, combine.input_key: documents},
            run_manager=run_manager,
        )

        outputs = {key: result[key] for key in combine.output_keys}
        if self.return_source_documents:
            outputs[self.source_documents_key] = documents
        return outputs

    async def _retrieve(self, query: str) -> List[Document]:
        return list(await self.retriever.aget_relevant_documents(query))
