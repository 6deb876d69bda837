"""Core data models shared by chains, models and retrievers."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

# Key-value payload threaded between chain stages.
ChainValues = Dict[str, Any]


class Document(BaseModel):
    """Represents a retrieved unit of content.

    Documents are produced by retrievers and never mutated afterwards.

    Attributes:
        content: The document text content
        metadata: Document metadata (title, source, etc.)
    """

    content: str
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}


class Generation(BaseModel):
    """A single candidate completion.

    Attributes:
        text: The generated text
        info: Provider-specific details (finish reason, log probs, ...)
    """

    text: str
    info: Dict[str, Any] = Field(default_factory=dict)


class ModelResult(BaseModel):
    """Structured output of a generation call.

    Attributes:
        generations: One group of ranked candidates per input prompt
        llm_output: Provider-level metadata (token usage, model name, ...)
    """

    generations: List[List[Generation]] = Field(default_factory=list)
    llm_output: Dict[str, Any] = Field(default_factory=dict)


# Configuration Models

class GenerateOptions(BaseModel):
    """Per-call options forwarded to a model backend.

    Attributes:
        stop: List of stop sequences
        temperature: Sampling temperature (0.0 to 2.0)
        max_tokens: Maximum tokens to generate
        n: Number of candidates to generate per prompt
    """

    stop: Optional[List[str]] = None
    temperature: Optional[float] = Field(None, ge=0.0, le=2.0)
    max_tokens: Optional[int] = Field(None, gt=0)
    n: int = Field(1, ge=1)


class ChainConfig(BaseModel):
    """Per-instance chain configuration.

    Attributes:
        verbose: Dispatch lifecycle events even without an always-verbose handler
        callbacks: Callback handlers attached to the chain
        raise_listener_errors: Raise ListenerError after a successful run whose
            handlers failed, instead of logging and dropping the failures
    """

    verbose: bool = False
    callbacks: List[Any] = Field(default_factory=list)
    raise_listener_errors: bool = False

    model_config = {"arbitrary_types_allowed": True}
