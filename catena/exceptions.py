"""Custom exceptions for Catena framework."""

import asyncio
from typing import Any, Dict, List, Optional


class CatenaError(Exception):
    """Base exception for Catena framework."""
    pass


class ChainError(CatenaError):
    """
    Base exception for failures raised while a chain runs.

    ``chain_type`` names the deepest chain the error passed through. It is set
    once, by the innermost chain, and left alone by enclosing chains.
    """

    def __init__(self, message: str, chain_type: Optional[str] = None):
        super().__init__(message)
        self.chain_type = chain_type


class InvalidInputError(ChainError):
    """Exception raised when a required input key is missing."""

    def __init__(self, key: str, chain_type: Optional[str] = None):
        super().__init__(f"no value for input key '{key}'", chain_type)
        self.key = key


class InputTypeMismatchError(ChainError):
    """Exception raised when an input value has the wrong type."""

    def __init__(self, key: str, expected: Any, actual: Any, chain_type: Optional[str] = None):
        expected_name = _type_names(expected)
        super().__init__(
            f"input key '{key}' expects {expected_name}, got {type(actual).__name__}",
            chain_type,
        )
        self.key = key
        self.expected = expected
        self.actual = actual


class TemplateRenderError(ChainError):
    """Exception raised when a prompt template cannot be rendered."""

    def __init__(self, variable: str, message: Optional[str] = None):
        super().__init__(message or f"missing template variable '{variable}'")
        self.variable = variable


class EmptyGenerationError(ChainError):
    """Exception raised when a model returns no usable candidate."""
    pass


class CollaboratorError(ChainError):
    """Exception raised when a retriever, model or memory call fails."""

    def __init__(self, collaborator: str, original_error: Exception, chain_type: Optional[str] = None):
        super().__init__(f"{collaborator} failed: {original_error}", chain_type)
        self.collaborator = collaborator
        self.original_error = original_error


class ChainCancelledError(ChainError, asyncio.CancelledError):
    """
    Cancellation of a chain run as reported to handlers and sync callers.

    Async callers see the original ``asyncio.CancelledError``; error records
    and the synchronous entry points carry this type instead, caused by it.
    """

    def __init__(self, message: str = "chain run cancelled", chain_type: Optional[str] = None):
        super().__init__(message, chain_type)


class ListenerError(ChainError):
    """
    Exception raised when one or more callback handlers failed.

    Raised only when listener errors are collected and the chain itself
    succeeded, so ``outputs`` always holds the real chain result.
    """

    def __init__(self, errors: List[Exception], outputs: Optional[Dict[str, Any]] = None):
        super().__init__(f"{len(errors)} callback handler(s) failed: {errors[0] if errors else ''}")
        self.errors = errors
        self.outputs = outputs


class ParsingError(CatenaError):
    """Exception raised when output parsing fails."""

    def __init__(self, message: str, original_text: str = None, parser_type: str = None):
        super().__init__(message)
        self.original_text = original_text
        self.parser_type = parser_type


def _type_names(expected: Any) -> str:
    if isinstance(expected, tuple):
        return " or ".join(t.__name__ for t in expected)
    return getattr(expected, "__name__", str(expected))
