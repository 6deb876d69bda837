"""
Tests for the base chain contract.
"""

import asyncio

import pytest

from catena.callbacks import CallbackEvent, CallbackHandler
from catena.chains import Chain
from catena.exceptions import (
    ChainCancelledError,
    ChainError,
    CollaboratorError,
    InputTypeMismatchError,
    InvalidInputError,
)
from catena.inspector import Inspector
from catena.memory import BufferMemory, MemoryAdapter
from catena.schema import ChainConfig


class EchoChain(Chain):
    """Chain that upper-cases its input."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.calls = 0

    @property
    def input_keys(self):
        return ["text"]

    @property
    def output_keys(self):
        return ["echo"]

    @property
    def input_types(self):
        return {"text": str}

    async def _acall(self, values, run_manager):
        self.calls += 1
        return {"echo": values["text"].upper()}


class PairChain(Chain):
    """Chain with two inputs and two outputs."""

    @property
    def input_keys(self):
        return ["a", "b"]

    @property
    def output_keys(self):
        return ["sum", "product"]

    async def _acall(self, values, run_manager):
        return {"sum": values["a"] + values["b"], "product": values["a"] * values["b"]}


class ForgetfulChain(EchoChain):
    """Chain that does not produce its declared output."""

    async def _acall(self, values, run_manager):
        return {}


class SleepyChain(EchoChain):
    """Chain that waits until cancelled."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.started = asyncio.Event()

    async def _acall(self, values, run_manager):
        self.started.set()
        await asyncio.sleep(60)
        return {"echo": values["text"]}


class SelfCancellingChain(EchoChain):
    """Chain that cancels the task running it."""

    async def _acall(self, values, run_manager):
        asyncio.current_task().cancel()
        await asyncio.sleep(0)
        return {"echo": values["text"]}


class BrokenMemory(MemoryAdapter):
    @property
    def memory_keys(self):
        return ["history"]

    def load(self, values):
        raise IOError("store unreachable")

    def save(self, inputs, outputs):
        pass

    def clear(self):
        pass


class QuietHandler(CallbackHandler):
    def __init__(self):
        self.events = []

    def on_chain_start(self, record):
        self.events.append(record.event)

    def on_chain_end(self, record):
        self.events.append(record.event)


class TestChainCall:
    """Test acall and its validation."""

    def setup_method(self):
        """Set up test fixtures."""
        self.inspector = Inspector()
        self.chain = EchoChain(callbacks=[self.inspector])

    @pytest.mark.asyncio
    async def test_result_is_superset_of_inputs(self):
        result = await self.chain.acall({"text": "hi", "extra": 1})

        assert result == {"text": "hi", "extra": 1, "echo": "HI"}

    @pytest.mark.asyncio
    async def test_input_values_not_mutated(self):
        values = {"text": "hi"}
        await self.chain.acall(values)

        assert values == {"text": "hi"}

    @pytest.mark.asyncio
    async def test_missing_key_fails_before_any_event(self):
        with pytest.raises(InvalidInputError) as exc_info:
            await self.chain.acall({"other": "hi"})

        assert exc_info.value.key == "text"
        assert exc_info.value.chain_type == "EchoChain"
        assert "no value for input key 'text'" in str(exc_info.value)
        assert self.chain.calls == 0
        assert self.inspector.records == []

    @pytest.mark.asyncio
    async def test_type_mismatch_fails_before_any_event(self):
        with pytest.raises(InputTypeMismatchError) as exc_info:
            await self.chain.acall({"text": 5})

        assert exc_info.value.expected is str
        assert exc_info.value.actual == 5
        assert "expects str, got int" in str(exc_info.value)
        assert self.chain.calls == 0
        assert self.inspector.records == []

    @pytest.mark.asyncio
    async def test_start_and_end_events(self):
        await self.chain.acall({"text": "hi"})

        start, end = self.inspector.records
        assert start.event == CallbackEvent.CHAIN_START
        assert start.name == "EchoChain"
        assert start.inputs == {"text": "hi"}
        assert end.event == CallbackEvent.CHAIN_END
        assert end.outputs == {"echo": "HI"}
        assert start.run_id == end.run_id

    @pytest.mark.asyncio
    async def test_missing_output_key(self):
        inspector = Inspector()
        chain = ForgetfulChain(callbacks=[inspector])

        with pytest.raises(ChainError) as exc_info:
            await chain.acall({"text": "hi"})

        assert "echo" in str(exc_info.value)
        assert exc_info.value.chain_type == "ForgetfulChain"
        assert [r.event for r in inspector.records] == [
            CallbackEvent.CHAIN_START,
            CallbackEvent.CHAIN_ERROR,
        ]

    def test_sync_call(self):
        assert self.chain.call({"text": "hi"})["echo"] == "HI"

    def test_repr(self):
        assert repr(self.chain) == "EchoChain(input_keys=['text'], output_keys=['echo'])"


class TestChainRun:
    """Test the single-output convenience entry points."""

    def test_positional(self):
        assert EchoChain().run("hi") == "HI"

    def test_keyword(self):
        assert EchoChain().run(text="hi") == "HI"

    @pytest.mark.asyncio
    async def test_arun(self):
        assert await EchoChain().arun("hi") == "HI"

    def test_mixed_arguments(self):
        with pytest.raises(ValueError):
            EchoChain().run("hi", text="hi")

    def test_too_many_positional(self):
        with pytest.raises(ValueError):
            EchoChain().run("hi", "there")

    def test_multiple_outputs(self):
        with pytest.raises(ValueError, match="exactly one output key"):
            PairChain().run(a=1, b=2)

    def test_multiple_outputs_with_call(self):
        assert PairChain().call({"a": 2, "b": 3}) == {"a": 2, "b": 3, "sum": 5, "product": 6}


class TestChainConfig:
    """Test per-instance configuration."""

    def test_defaults(self):
        chain = EchoChain()

        assert chain.verbose is False
        assert chain.callbacks == []
        assert chain.config.raise_listener_errors is False

    def test_config_is_copied_per_instance(self):
        config = ChainConfig(verbose=True)
        first = EchoChain(config=config)
        second = EchoChain(config=config)

        first.config.callbacks.append(Inspector())

        assert second.callbacks == []
        assert config.callbacks == []

    def test_keyword_overrides(self):
        inspector = Inspector()
        chain = EchoChain(config=ChainConfig(verbose=True), verbose=False, callbacks=[inspector])

        assert chain.verbose is False
        assert chain.callbacks == [inspector]

    @pytest.mark.asyncio
    async def test_quiet_chain_skips_quiet_handler(self):
        handler = QuietHandler()
        await EchoChain(callbacks=[handler]).acall({"text": "hi"})

        assert handler.events == []

    @pytest.mark.asyncio
    async def test_verbose_chain_reaches_quiet_handler(self):
        handler = QuietHandler()
        await EchoChain(callbacks=[handler], verbose=True).acall({"text": "hi"})

        assert handler.events == [CallbackEvent.CHAIN_START, CallbackEvent.CHAIN_END]


class TestChainMemory:
    """Test memory load and save around a call."""

    @pytest.mark.asyncio
    async def test_memory_key_not_required_from_caller(self):
        class HistoryChain(EchoChain):
            @property
            def input_keys(self):
                return ["history", "text"]

            async def _acall(self, values, run_manager):
                return {"echo": f"{values['history']}|{values['text']}"}

        memory = BufferMemory(input_key="text")
        chain = HistoryChain(memory=memory)

        first = await chain.acall({"text": "one"})
        second = await chain.acall({"text": "two"})

        assert first["echo"] == "|one"
        assert second["echo"] == "Human: one\nAI: |one|two"
        assert "history" not in second
        assert len(memory.turns) == 2

    @pytest.mark.asyncio
    async def test_memory_failure_is_collaborator_error(self):
        chain = EchoChain(memory=BrokenMemory())

        with pytest.raises(CollaboratorError) as exc_info:
            await chain.acall({"text": "hi"})

        assert exc_info.value.collaborator == "memory"
        assert isinstance(exc_info.value.original_error, IOError)
        assert chain.calls == 0


class TestChainCancellation:
    """Test cancellation of a running chain."""

    @pytest.mark.asyncio
    async def test_cancel_propagates_original_error(self):
        inspector = Inspector()
        chain = SleepyChain(callbacks=[inspector])
        caught = {}

        async def runner():
            try:
                await chain.acall({"text": "hi"})
            except asyncio.CancelledError as e:
                caught["error"] = e
                raise

        task = asyncio.create_task(runner())
        await chain.started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert not isinstance(caught["error"], ChainCancelledError)
        assert caught["error"].chain_type == "SleepyChain"
        assert [r.event for r in inspector.records] == [
            CallbackEvent.CHAIN_START,
            CallbackEvent.CHAIN_ERROR,
        ]
        record_error = inspector.records[-1].error
        assert isinstance(record_error, ChainCancelledError)
        assert record_error.chain_type == "SleepyChain"
        assert record_error.__cause__ is caught["error"]

    def test_sync_call_raises_chain_cancelled(self):
        with pytest.raises(ChainCancelledError):
            SelfCancellingChain().call({"text": "hi"})

    def test_sync_run_raises_chain_cancelled(self):
        with pytest.raises(ChainCancelledError):
            SelfCancellingChain().run("hi")
