"""Base memory adapter interface."""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List


class MemoryAdapter(ABC):
    """Base class for all memory adapters.

    A chain with a memory adapter loads prior context before it runs and
    saves the new turn afterwards. The chain does not serialize access, so
    adapters shared between concurrent calls must guard their own state.
    """

    @property
    @abstractmethod
    def memory_keys(self) -> List[str]:
        """Keys this memory adds to the chain values on load."""
        pass

    @abstractmethod
    def load(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """Return the stored context for the given inputs."""
        pass

    @abstractmethod
    def save(self, inputs: Dict[str, Any], outputs: Dict[str, Any]) -> None:
        """Store an interaction in memory."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Clear all stored memories."""
        pass

    async def aload(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """Async load - default implementation wraps sync method."""
        return await asyncio.to_thread(self.load, values)

    async def asave(self, inputs: Dict[str, Any], outputs: Dict[str, Any]) -> None:
        """Async save - default implementation wraps sync method."""
        await asyncio.to_thread(self.save, inputs, outputs)

    async def aclear(self) -> None:
        """Async clear - default implementation wraps sync method."""
        await asyncio.to_thread(self.clear)
