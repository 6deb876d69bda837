"""In-process conversation buffer memory."""

import threading
from datetime import datetime
from typing import Any, Dict, List, Optional

from .base import MemoryAdapter


class BufferMemory(MemoryAdapter):
    """Keeps the most recent turns and renders them under ``memory_key``."""

    def __init__(
        self,
        memory_key: str = "history",
        input_key: Optional[str] = None,
        output_key: Optional[str] = None,
        max_turns: Optional[int] = None,
        human_prefix: str = "Human",
        ai_prefix: str = "AI",
    ):
        self.memory_key = memory_key
        self.input_key = input_key
        self.output_key = output_key
        self.max_turns = max_turns
        self.human_prefix = human_prefix
        self.ai_prefix = ai_prefix
        self.turns: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    @property
    def memory_keys(self) -> List[str]:
        return [self.memory_key]

    def load(self, values: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            turns = list(self.turns)

        lines = []
        for turn in turns:
            lines.append(f"{self.human_prefix}: {turn['input_text']}")
            lines.append(f"{self.ai_prefix}: {turn['output_text']}")
        return {self.memory_key: "\n".join(lines)}

    def save(self, inputs: Dict[str, Any], outputs: Dict[str, Any]) -> None:
        input_key = self.input_key or self._single_key(inputs, exclude=self.memory_key)
        output_key = self.output_key or self._single_key(outputs)

        turn = {
            "input_text": str(inputs[input_key]),
            "output_text": str(outputs[output_key]),
            "timestamp": datetime.now().isoformat(),
        }

        with self._lock:
            self.turns.append(turn)
            if self.max_turns is not None and len(self.turns) > self.max_turns:
                self.turns = self.turns[-self.max_turns:]

    def clear(self) -> None:
        with self._lock:
            self.turns = []

    @staticmethod
    def _single_key(values: Dict[str, Any], exclude: Optional[str] = None) -> str:
        keys = [key for key in values if key != exclude]
        if len(keys) != 1:
            raise ValueError(f"BufferMemory needs an explicit key, got {len(keys)} candidates: {keys}")
        return keys[0]
