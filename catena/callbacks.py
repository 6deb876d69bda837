"""
Callback system for Catena chains.

Provides lifecycle hooks that let handlers observe every chain, model and
retriever run without modifying pipeline logic.
"""

import inspect
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

from .exceptions import ListenerError
from .schema import Document, ModelResult

logger = logging.getLogger(__name__)


class CallbackEvent(Enum):
    """Standard callback events in a chain run."""
    CHAIN_START = "chain_start"
    CHAIN_END = "chain_end"
    CHAIN_ERROR = "chain_error"
    MODEL_START = "model_start"
    MODEL_END = "model_end"
    MODEL_ERROR = "model_error"
    RETRIEVER_START = "retriever_start"
    RETRIEVER_END = "retriever_end"
    RETRIEVER_ERROR = "retriever_error"


@dataclass
class CallbackEventRecord:
    """A single lifecycle event delivered to callback handlers."""
    event: CallbackEvent
    run_id: str
    parent_run_id: Optional[str] = None
    name: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
    duration: Optional[float] = None  # seconds, end/error records only
    inputs: Optional[Dict[str, Any]] = None
    outputs: Optional[Dict[str, Any]] = None
    prompts: Optional[List[str]] = None
    invocation_params: Optional[Dict[str, Any]] = None
    result: Optional[ModelResult] = None
    query: Optional[str] = None
    documents: Optional[List[Document]] = None
    error: Optional[BaseException] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary, leaving out empty payload fields."""
        data: Dict[str, Any] = {
            "event": self.event.value,
            "run_id": self.run_id,
            "parent_run_id": self.parent_run_id,
            "name": self.name,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.duration is not None:
            data["duration"] = self.duration
        if self.inputs is not None:
            data["inputs"] = self.inputs
        if self.outputs is not None:
            data["outputs"] = self.outputs
        if self.prompts is not None:
            data["prompts"] = self.prompts
        if self.invocation_params is not None:
            data["invocation_params"] = self.invocation_params
        if self.result is not None:
            data["result"] = self.result.model_dump()
        if self.query is not None:
            data["query"] = self.query
        if self.documents is not None:
            data["documents"] = [doc.model_dump() for doc in self.documents]
        if self.error is not None:
            data["error"] = f"{type(self.error).__name__}: {self.error}"
        return data


class CallbackHandler:
    """
    Base class for callback handlers.

    Every hook receives the CallbackEventRecord for the event. Hooks may be
    plain or ``async`` methods; the default implementations do nothing.
    """

    #: Receive events even from chains that are not verbose.
    always_verbose: bool = False

    def on_chain_start(self, record: CallbackEventRecord) -> None:
        pass

    def on_chain_end(self, record: CallbackEventRecord) -> None:
        pass

    def on_chain_error(self, record: CallbackEventRecord) -> None:
        pass

    def on_model_start(self, record: CallbackEventRecord) -> None:
        pass

    def on_model_end(self, record: CallbackEventRecord) -> None:
        pass

    def on_model_error(self, record: CallbackEventRecord) -> None:
        pass

    def on_retriever_start(self, record: CallbackEventRecord) -> None:
        pass

    def on_retriever_end(self, record: CallbackEventRecord) -> None:
        pass

    def on_retriever_error(self, record: CallbackEventRecord) -> None:
        pass


class LoggingCallbackHandler(CallbackHandler):
    """
    Handler that writes every event to the ``logging`` module.

    Attached automatically to verbose chains that have no handlers.
    """

    def __init__(self, log_level: int = logging.INFO, include_data: bool = True):
        """
        Initialize logging handler.

        Args:
            log_level: Logging level to use
            include_data: Whether to include event payloads in logs
        """
        self.log_level = log_level
        self.include_data = include_data
        self._logger = logger.getChild("LoggingCallbackHandler")

    def _log(self, record: CallbackEventRecord, payload: Any = None) -> None:
        message = f"[{record.event.value}] {record.name} run={record.run_id}"
        if record.duration is not None:
            message += f" ({record.duration:.3f}s)"
        if self.include_data and payload is not None:
            message += f": {payload}"
        self._logger.log(self.log_level, message)

    def on_chain_start(self, record: CallbackEventRecord) -> None:
        self._log(record, record.inputs)

    def on_chain_end(self, record: CallbackEventRecord) -> None:
        self._log(record, record.outputs)

    def on_chain_error(self, record: CallbackEventRecord) -> None:
        self._log(record, record.error)

    def on_model_start(self, record: CallbackEventRecord) -> None:
        self._log(record, record.prompts)

    def on_model_end(self, record: CallbackEventRecord) -> None:
        texts = None
        if record.result is not None:
            texts = [[g.text for g in group] for group in record.result.generations]
        self._log(record, texts)

    def on_model_error(self, record: CallbackEventRecord) -> None:
        self._log(record, record.error)

    def on_retriever_start(self, record: CallbackEventRecord) -> None:
        self._log(record, record.query)

    def on_retriever_end(self, record: CallbackEventRecord) -> None:
        self._log(record, f"{len(record.documents or [])} documents")

    def on_retriever_error(self, record: CallbackEventRecord) -> None:
        self._log(record, record.error)


class CallbackManager:
    """
    Dispatches lifecycle events of a single run to its handlers.

    One manager exists per chain, model or retriever invocation. Nested runs
    get a child manager that shares the handlers, the activity flag and the
    listener error sink of the run tree, but has its own run id. Nothing here
    is stored on chain instances, so concurrent runs never share a manager.
    """

    def __init__(
        self,
        handlers: Optional[Sequence[CallbackHandler]] = None,
        *,
        active: bool = False,
        run_id: Optional[str] = None,
        parent_run_id: Optional[str] = None,
        raise_listener_errors: bool = False,
        errors: Optional[List[Exception]] = None,
        root: Optional[bool] = None,
    ):
        self.handlers: List[CallbackHandler] = list(handlers or [])
        self.run_id = run_id or str(uuid4())
        self.parent_run_id = parent_run_id
        self.raise_listener_errors = raise_listener_errors
        self.errors: List[Exception] = errors if errors is not None else []
        # Owns the error sink; false for nested runs even when detached from the parent tree
        self._root = parent_run_id is None if root is None else root
        self.active = active or any(
            getattr(handler, "always_verbose", False) for handler in self.handlers
        )
        self._name: Optional[str] = None
        self._start_time: Optional[float] = None
        self._logger = logger.getChild("CallbackManager")

    @classmethod
    def configure(
        cls,
        handlers: Optional[Sequence[CallbackHandler]] = None,
        verbose: bool = False,
        parent: Optional["CallbackManager"] = None,
        raise_listener_errors: bool = False,
    ) -> "CallbackManager":
        """
        Build the manager for a chain run.

        A nested chain that turns dispatch on under a quiet parent reports to
        its own handlers only, without a parent run id.

        Args:
            handlers: Handlers attached to the chain
            verbose: Whether the chain is verbose
            parent: Manager of the enclosing run, None for a top-level call
            raise_listener_errors: Collect handler failures and raise them
                after a successful top-level run (ignored for nested runs)

        Returns:
            A manager with a fresh run id
        """
        own = list(handlers or [])

        if parent is None:
            if verbose and not own:
                own.append(LoggingCallbackHandler())
            return cls(own, active=verbose, raise_listener_errors=raise_listener_errors)

        if not parent.active and (verbose or any(getattr(h, "always_verbose", False) for h in own)):
            # The parent tree is quiet, so its handlers never saw a start event.
            # Report this run to its own handlers as a new top-level run.
            if verbose and not own:
                own.append(LoggingCallbackHandler())
            return cls(
                own,
                active=True,
                raise_listener_errors=parent.raise_listener_errors,
                errors=parent.errors,
                root=False,
            )

        merged = list(parent.handlers)
        for handler in own:
            if not any(handler is existing for existing in merged):
                merged.append(handler)
        if verbose and not merged:
            merged.append(LoggingCallbackHandler())

        return cls(
            merged,
            active=verbose or parent.active,
            parent_run_id=parent.run_id,
            raise_listener_errors=parent.raise_listener_errors,
            errors=parent.errors,
        )

    def child(self) -> "CallbackManager":
        """Create the manager for a nested model or retriever run."""
        return CallbackManager(
            self.handlers,
            active=self.active,
            parent_run_id=self.run_id,
            raise_listener_errors=self.raise_listener_errors,
            errors=self.errors,
        )

    @property
    def is_root(self) -> bool:
        return self._root

    def is_active(self) -> bool:
        return self.active and bool(self.handlers)

    async def notify(self, record: CallbackEventRecord) -> None:
        """
        Deliver an event to every handler in registration order.

        A failing handler never stops delivery to the remaining handlers; its
        error is collected in the run tree's error sink.

        Args:
            record: Event to deliver
        """
        if not self.is_active():
            return

        method_name = f"on_{record.event.value}"
        for handler in self.handlers:
            method = getattr(handler, method_name, None)
            if method is None:
                continue
            try:
                result = method(record)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self._logger.debug(
                    f"Error in callback {type(handler).__name__}.{method_name}: {e}"
                )
                self.errors.append(e)

    def flush_errors(self, outputs: Optional[Dict[str, Any]] = None) -> None:
        """
        Report collected handler errors at the end of a top-level run.

        Args:
            outputs: The run's result, None when the run itself failed

        Raises:
            ListenerError: If collection is enabled and the run succeeded
        """
        if not self.errors:
            return

        errors = list(self.errors)
        self.errors.clear()

        if outputs is not None and self.raise_listener_errors:
            raise ListenerError(errors, outputs)

        for error in errors:
            self._logger.warning(f"Dropped callback handler error: {type(error).__name__}: {error}")

    def _record(self, event: CallbackEvent, **payload: Any) -> CallbackEventRecord:
        return CallbackEventRecord(
            event=event,
            run_id=self.run_id,
            parent_run_id=self.parent_run_id,
            name=self._name,
            **payload,
        )

    def _begin(self, name: str) -> None:
        self._name = name
        self._start_time = time.perf_counter()

    def _elapsed(self) -> Optional[float]:
        if self._start_time is None:
            return None
        return time.perf_counter() - self._start_time

    async def on_chain_start(self, name: str, inputs: Dict[str, Any]) -> None:
        self._begin(name)
        await self.notify(self._record(CallbackEvent.CHAIN_START, inputs=dict(inputs)))

    async def on_chain_end(self, outputs: Dict[str, Any]) -> None:
        await self.notify(
            self._record(CallbackEvent.CHAIN_END, outputs=dict(outputs), duration=self._elapsed())
        )

    async def on_chain_error(self, error: BaseException) -> None:
        await self.notify(
            self._record(CallbackEvent.CHAIN_ERROR, error=error, duration=self._elapsed())
        )

    async def on_model_start(
        self, name: str, prompts: List[str], invocation_params: Optional[Dict[str, Any]] = None
    ) -> None:
        self._begin(name)
        await self.notify(
            self._record(
                CallbackEvent.MODEL_START,
                prompts=list(prompts),
                invocation_params=invocation_params or {},
            )
        )

    async def on_model_end(self, result: ModelResult) -> None:
        await self.notify(
            self._record(CallbackEvent.MODEL_END, result=result, duration=self._elapsed())
        )

    async def on_model_error(self, error: BaseException) -> None:
        await self.notify(
            self._record(CallbackEvent.MODEL_ERROR, error=error, duration=self._elapsed())
        )

    async def on_retriever_start(self, name: str, query: str) -> None:
        self._begin(name)
        await self.notify(self._record(CallbackEvent.RETRIEVER_START, query=query))

    async def on_retriever_end(self, documents: List[Document]) -> None:
        await self.notify(
            self._record(
                CallbackEvent.RETRIEVER_END, documents=list(documents), duration=self._elapsed()
            )
        )

    async def on_retriever_error(self, error: BaseException) -> None:
        await self.notify(
            self._record(CallbackEvent.RETRIEVER_ERROR, error=error, duration=self._elapsed())
        )
