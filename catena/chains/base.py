"""Base chain contract shared by every pipeline stage."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Dict, List, Optional, Sequence, Tuple, Type, TypeVar, Union

from catena.callbacks import CallbackHandler, CallbackManager
from catena.exceptions import (
    ChainCancelledError,
    ChainError,
    CollaboratorError,
    InputTypeMismatchError,
    InvalidInputError,
)
from catena.memory.base import MemoryAdapter
from catena.schema import ChainConfig, ChainValues

logger = logging.getLogger(__name__)

T = TypeVar("T")

ExpectedType = Union[Type[Any], Tuple[Type[Any], ...]]


class Chain(ABC):
    """
    Abstract base class for all chains.

    A chain declares the keys it needs and the keys it produces, and runs
    through ``acall``. The base class validates inputs, drives the callback
    lifecycle, applies the optional memory and merges outputs into the
    caller's values. Chains hold no per-call state, so one instance can
    serve concurrent calls.
    """

    def __init__(
        self,
        memory: Optional[MemoryAdapter] = None,
        config: Optional[ChainConfig] = None,
        verbose: Optional[bool] = None,
        callbacks: Optional[Sequence[CallbackHandler]] = None,
    ):
        """
        Initialize the chain.

        Args:
            memory: Optional memory adapter loaded before and saved after each call
            config: Chain configuration, copied per instance
            verbose: Overrides ``config.verbose``
            callbacks: Overrides ``config.callbacks``
        """
        config = config.model_copy() if config is not None else ChainConfig()
        if verbose is not None:
            config.verbose = verbose
        if callbacks is not None:
            config.callbacks = list(callbacks)
        else:
            config.callbacks = list(config.callbacks)

        self.memory = memory
        self.config = config

    @property
    @abstractmethod
    def input_keys(self) -> List[str]:
        """Keys that must be present in the values passed to ``acall``."""
        pass

    @property
    @abstractmethod
    def output_keys(self) -> List[str]:
        """Keys the chain adds to the values it returns."""
        pass

    @property
    def input_types(self) -> Dict[str, ExpectedType]:
        """Expected types of input values, checked before the chain starts."""
        return {}

    @property
    def chain_type(self) -> str:
        return type(self).__name__

    @property
    def verbose(self) -> bool:
        return self.config.verbose

    @property
    def callbacks(self) -> List[CallbackHandler]:
        return list(self.config.callbacks)

    @abstractmethod
    async def _acall(self, values: ChainValues, run_manager: CallbackManager) -> ChainValues:
        """Run the chain and return only the produced output values."""
        pass

    async def acall(
        self, values: ChainValues, *, run_manager: Optional[CallbackManager] = None
    ) -> ChainValues:
        """
        Execute the chain.

        Args:
            values: Input values; must contain every key in ``input_keys``
            run_manager: Manager of the enclosing run when called from
                another chain, None for a top-level call

        Returns:
            The input values merged with the chain's outputs

        Raises:
            InvalidInputError: If a required key is missing
            InputTypeMismatchError: If an input value has the wrong type
            asyncio.CancelledError: If the run was cancelled; the chain-error
                record carries it as a ChainCancelledError
            ListenerError: If handler errors are collected and the run succeeded
            ChainError: For any other failure of this or a nested stage
        """
        values = dict(values)
        self._validate_inputs(values)

        manager = CallbackManager.configure(
            self.callbacks,
            verbose=self.verbose,
            parent=run_manager,
            raise_listener_errors=self.config.raise_listener_errors,
        )
        await manager.on_chain_start(self.chain_type, values)

        try:
            outputs = await self._run(values, manager)
        except asyncio.CancelledError as e:
            # asyncio.timeout matches its own CancelledError by type, re-raise it unchanged
            self._annotate(e)
            await manager.on_chain_error(self._error_for_event(e))
            if manager.is_root:
                manager.flush_errors()
            raise
        except Exception as e:
            self._annotate(e)
            await manager.on_chain_error(e)
            if manager.is_root:
                manager.flush_errors()
            raise

        await manager.on_chain_end(outputs)

        result = {**values, **outputs}
        if manager.is_root:
            manager.flush_errors(result)
        return result

    async def _run(self, values: ChainValues, manager: CallbackManager) -> ChainValues:
        inputs = values
        if self.memory is not None:
            loaded = await self._guard("memory", self.memory.aload(values))
            inputs = {**values, **loaded}

        outputs = await self._acall(inputs, manager)
        self._validate_outputs(outputs)

        if self.memory is not None:
            await self._guard("memory", self.memory.asave(values, outputs))

        return outputs

    def call(self, values: ChainValues) -> ChainValues:
        """Execute the chain synchronously."""
        return self._run_sync(self.acall(values))

    async def arun(self, *args: Any, **kwargs: Any) -> Any:
        """
        Execute a single-output chain and return the output value.

        Accepts either one positional value for a chain with a single input
        key, or the input values as keyword arguments.
        """
        if len(self.output_keys) != 1:
            raise ValueError(f"run() requires exactly one output key, {self.chain_type} has {self.output_keys}")

        if args and not kwargs:
            input_keys = self._caller_input_keys()
            if len(args) != 1 or len(input_keys) != 1:
                raise ValueError(f"run() takes one positional value for a single input key, got {len(args)} for {input_keys}")
            values = {input_keys[0]: args[0]}
        elif kwargs and not args:
            values = kwargs
        else:
            raise ValueError("run() takes either one positional value or keyword arguments")

        result = await self.acall(values)
        return result[self.output_keys[0]]

    def run(self, *args: Any, **kwargs: Any) -> Any:
        """Synchronous version of ``arun``."""
        return self._run_sync(self.arun(*args, **kwargs))

    def _caller_input_keys(self) -> List[str]:
        memory_keys = set(self.memory.memory_keys) if self.memory is not None else set()
        return [key for key in self.input_keys if key not in memory_keys]

    def _validate_inputs(self, values: ChainValues) -> None:
        for key in self._caller_input_keys():
            if key not in values:
                raise InvalidInputError(key, self.chain_type)

        for key, expected in self.input_types.items():
            if key in values and not isinstance(values[key], expected):
                raise InputTypeMismatchError(key, expected, values[key], self.chain_type)

    def _validate_outputs(self, outputs: ChainValues) -> None:
        missing = [key for key in self.output_keys if key not in outputs]
        if missing:
            raise ChainError(f"{self.chain_type} did not produce output keys {missing}")

    async def _guard(self, collaborator: str, awaitable: Awaitable[T]) -> T:
        """Await a collaborator call, mapping its failures onto the chain errors."""
        try:
            return await awaitable
        except ChainError:
            raise
        except Exception as e:
            raise CollaboratorError(collaborator, e, self.chain_type) from e

    def _annotate(self, error: BaseException) -> None:
        if isinstance(error, (ChainError, asyncio.CancelledError)) and getattr(error, "chain_type", None) is None:
            error.chain_type = self.chain_type

    def _error_for_event(self, error: BaseException) -> BaseException:
        """Map a plain CancelledError to the ChainCancelledError reported to handlers."""
        if isinstance(error, asyncio.CancelledError) and not isinstance(error, ChainCancelledError):
            cancelled = ChainCancelledError(chain_type=getattr(error, "chain_type", None) or self.chain_type)
            cancelled.__cause__ = error
            return cancelled
        return error

    def _run_sync(self, coro: Awaitable[T]) -> T:
        """Drive a coroutine from synchronous code, surfacing cancellation as ChainCancelledError."""
        try:
            return asyncio.run(coro)
        except ChainCancelledError:
            raise
        except asyncio.CancelledError as e:
            raise ChainCancelledError(chain_type=getattr(e, "chain_type", None)) from e

    def __repr__(self) -> str:
        return f"{self.chain_type}(input_keys={self.input_keys!r}, output_keys={self.output_keys!r})"
