"""Base retriever interface."""

import asyncio
from abc import ABC, abstractmethod
from typing import List

from catena.schema import Document


class Retriever(ABC):
    """Base class for all document retrievers.

    Ranking and limiting belong to the retriever; chains pass the returned
    documents on unchanged.
    """

    @abstractmethod
    def get_relevant_documents(self, query: str) -> List[Document]:
        """Return the documents relevant to the query, best first."""
        pass

    async def aget_relevant_documents(self, query: str) -> List[Document]:
        """Async retrieval - default implementation wraps sync method."""
        return await asyncio.to_thread(self.get_relevant_documents, query)

    @property
    def retriever_type(self) -> str:
        return f"retriever.{type(self).__name__}"
