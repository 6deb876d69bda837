"""Retriever returning a fixed document list."""

from typing import Iterable, List

from .base import Retriever
from catena.schema import Document


class StaticRetriever(Retriever):
    """Retriever that ignores the query and returns the same documents."""

    def __init__(self, documents: Iterable[Document]):
        self.documents = list(documents)

    def get_relevant_documents(self, query: str) -> List[Document]:
        return list(self.documents)

    async def aget_relevant_documents(self, query: str) -> List[Document]:
        return list(self.documents)
