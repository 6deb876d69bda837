"""
Token usage and cost accounting for chain runs.

UsageTracker is a callback handler: on every model-end event it reads the
token usage that model backends report in ``ModelResult.llm_output`` and
books it against the model run and the chain run that made the call.
"""

import json
import logging
import threading
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .callbacks import CallbackEventRecord, CallbackHandler

logger = logging.getLogger(__name__)


@dataclass
class UsageRecord:
    """Tokens and cost of one model run."""
    timestamp: datetime
    model: str
    input_tokens: int
    output_tokens: int
    cost: float
    run_id: str
    chain_run_id: Optional[str] = None

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UsageRecord":
        return cls(**{**data, "timestamp": datetime.fromisoformat(data["timestamp"])})


class CostCalculator:
    """Price token usage from a per-1K-token table; unknown models cost nothing."""

    PRICING = {
        "gpt-3.5-turbo": {"input": 0.0015, "output": 0.002},
        "gpt-4": {"input": 0.03, "output": 0.06},
        "gpt-4-turbo": {"input": 0.01, "output": 0.03},
        "gpt-4o": {"input": 0.005, "output": 0.015},
        "gpt-4o-mini": {"input": 0.00015, "output": 0.0006},
    }

    def __init__(self, custom_pricing: Optional[Dict[str, Dict[str, float]]] = None):
        self.pricing = {**self.PRICING, **(custom_pricing or {})}

    def calculate_cost(self, model: str, input_tokens: int, output_tokens: int) -> float:
        price = self.pricing.get(model)
        if price is None:
            return 0.0
        return round(input_tokens / 1000 * price["input"] + output_tokens / 1000 * price["output"], 6)


class UsageTracker(CallbackHandler):
    """Collect a UsageRecord for every model run that reports token usage."""

    always_verbose = True

    def __init__(self, storage_path: Optional[str] = None, cost_calculator: Optional[CostCalculator] = None):
        """
        Initialize usage tracker.

        Args:
            storage_path: JSON file the records are persisted to, if any
            cost_calculator: Pricing used to cost each record
        """
        self.records: List[UsageRecord] = []
        self.cost_calculator = cost_calculator or CostCalculator()
        self.storage_path = Path(storage_path) if storage_path else None
        self._lock = threading.Lock()
        self._logger = logger.getChild("UsageTracker")

        if self.storage_path and self.storage_path.exists():
            self._load()

    def on_model_end(self, record: CallbackEventRecord) -> None:
        if record.result is None:
            return

        llm_output = record.result.llm_output
        token_usage = llm_output.get("token_usage")
        if not token_usage:
            self._logger.debug(f"No token usage reported for model run {record.run_id}")
            return

        model = llm_output.get("model_name") or record.name or "unknown"
        input_tokens = token_usage.get("prompt_tokens", 0)
        output_tokens = token_usage.get("completion_tokens", 0)

        usage = UsageRecord(
            timestamp=record.timestamp,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost=self.cost_calculator.calculate_cost(model, input_tokens, output_tokens),
            run_id=record.run_id,
            chain_run_id=record.parent_run_id,
        )

        with self._lock:
            self.records.append(usage)
            if self.storage_path:
                self._save()

    def run_usage(self, run_id: str) -> Dict[str, Any]:
        """Totals for one model run or for every model call of one chain run."""
        return self._totals([r for r in self.records if run_id in (r.run_id, r.chain_run_id)])

    def summary(self) -> Dict[str, Any]:
        """Overall totals plus totals per model."""
        by_model: Dict[str, List[UsageRecord]] = {}
        for usage in self.records:
            by_model.setdefault(usage.model, []).append(usage)

        totals = self._totals(self.records)
        totals["by_model"] = {model: self._totals(records) for model, records in by_model.items()}
        return totals

    def clear(self) -> None:
        with self._lock:
            self.records.clear()
            if self.storage_path:
                self._save()

    @staticmethod
    def _totals(records: List[UsageRecord]) -> Dict[str, Any]:
        return {
            "calls": len(records),
            "input_tokens": sum(r.input_tokens for r in records),
            "output_tokens": sum(r.output_tokens for r in records),
            "total_tokens": sum(r.total_tokens for r in records),
            "cost": round(sum(r.cost for r in records), 6),
        }

    def _save(self) -> None:
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.storage_path, "w") as f:
            json.dump([usage.to_dict() for usage in self.records], f, indent=2)

    def _load(self) -> None:
        try:
            with open(self.storage_path, "r") as f:
                self.records = [UsageRecord.from_dict(item) for item in json.load(f)]
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            self._logger.warning(f"Ignoring unreadable usage data in {self.storage_path}: {e}")
            self.records = []
