"""Retriever interfaces and simple implementations."""

from .base import Retriever
from .static import StaticRetriever

__all__ = ["Retriever", "StaticRetriever"]
