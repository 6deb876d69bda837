"""Chains: the composable pipeline stages."""

from .base import Chain
from .llm import LLMChain
from .stuff_documents import StuffDocumentsChain
from .retrieval_qa import RetrievalQA

__all__ = ["Chain", "LLMChain", "StuffDocumentsChain", "RetrievalQA"]
