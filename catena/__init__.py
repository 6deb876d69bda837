"""
Catena - compose language models, retrievers and prompts into chains.
Every stage shares one call contract and one callback lifecycle.
"""

from .schema import ChainConfig, ChainValues, Document, GenerateOptions, Generation, ModelResult
from .callbacks import (
    CallbackEvent, CallbackEventRecord, CallbackHandler,
    CallbackManager, LoggingCallbackHandler
)
from .chains import Chain, LLMChain, StuffDocumentsChain, RetrievalQA
from .prompts import BasePromptTemplate, PromptTemplate
from .models import ModelAdapter, FakeModel, OpenAIAdapter
from .retrievers import Retriever, StaticRetriever
from .memory import MemoryAdapter, BufferMemory
from .parsers import OutputParser, JSONParser, ListParser
from .inspector import Inspector
from .usage import CostCalculator, UsageRecord, UsageTracker
from .exceptions import (
    CatenaError, ChainError, InvalidInputError, InputTypeMismatchError,
    TemplateRenderError, EmptyGenerationError, CollaboratorError,
    ChainCancelledError, ListenerError, ParsingError
)

__version__ = "0.1.0"

__all__ = [
    "ChainConfig", "ChainValues", "Document", "GenerateOptions", "Generation", "ModelResult",
    "CallbackEvent", "CallbackEventRecord", "CallbackHandler", "CallbackManager",
    "LoggingCallbackHandler",
    "Chain", "LLMChain", "StuffDocumentsChain", "RetrievalQA",
    "BasePromptTemplate", "PromptTemplate",
    "ModelAdapter", "FakeModel", "OpenAIAdapter",
    "Retriever", "StaticRetriever",
    "MemoryAdapter", "BufferMemory",
    "OutputParser", "JSONParser", "ListParser",
    "Inspector", "CostCalculator", "UsageRecord", "UsageTracker",
    "CatenaError", "ChainError", "InvalidInputError", "InputTypeMismatchError",
    "TemplateRenderError", "EmptyGenerationError", "CollaboratorError",
    "ChainCancelledError", "ListenerError", "ParsingError",
]
