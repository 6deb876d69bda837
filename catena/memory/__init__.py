"""Memory adapters that carry context across chain calls."""

from .base import MemoryAdapter
from .buffer import BufferMemory

__all__ = ["MemoryAdapter", "BufferMemory"]
