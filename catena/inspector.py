"""Debugging and tracing layer for transparent chain runs."""

import json
from typing import Any, Dict, List, Optional

from .callbacks import CallbackEvent, CallbackEventRecord, CallbackHandler


class Inspector(CallbackHandler):
    """
    Callback handler that records every lifecycle event.

    Records are kept in memory and, when ``log_file`` is set, appended to it
    as JSON lines. The recorded parent/child run ids let ``run_tree`` rebuild
    the call tree of a run.
    """

    def __init__(self, enabled: bool = True, log_file: Optional[str] = None, echo: bool = False):
        self.enabled = enabled
        self.log_file = log_file
        self.echo = echo
        self.records: List[CallbackEventRecord] = []

    @property
    def always_verbose(self) -> bool:
        return self.enabled

    def log(self, record: CallbackEventRecord) -> None:
        """Record an event."""
        if not self.enabled:
            return

        self.records.append(record)

        if self.log_file:
            self._write_to_file(record.to_dict())
        if self.echo:
            self._print_log(record)

    def _print_log(self, record: CallbackEventRecord) -> None:
        print(f"[{record.timestamp.isoformat()}] {record.event.value}: {record.name} ({record.run_id})")

    def _write_to_file(self, entry: Dict[str, Any]) -> None:
        with open(self.log_file, "a") as f:
            f.write(json.dumps(entry, default=str) + "\n")

    on_chain_start = log
    on_chain_end = log
    on_chain_error = log
    on_model_start = log
    on_model_end = log
    on_model_error = log
    on_retriever_start = log
    on_retriever_end = log
    on_retriever_error = log

    def get_logs(self, event_filter: Optional[CallbackEvent] = None) -> List[CallbackEventRecord]:
        """Get all records, optionally filtered by event type."""
        if event_filter:
            return [record for record in self.records if record.event == event_filter]
        return self.records.copy()

    def clear_logs(self) -> None:
        """Clear all stored records."""
        self.records.clear()

    def run_tree(self, run_id: str) -> Dict[str, Any]:
        """
        Rebuild the call tree below a run.

        Args:
            run_id: Id of the run at the root of the tree

        Returns:
            Nested dict with the run's name, status, duration and children
        """
        start = None
        finish = None
        children: List[str] = []
        for record in self.records:
            if record.run_id == run_id:
                if record.event.value.endswith("_start"):
                    start = record
                else:
                    finish = record
            elif record.parent_run_id == run_id and record.event.value.endswith("_start"):
                children.append(record.run_id)

        if start is None:
            raise KeyError(f"Run not found: {run_id}")

        status = "running"
        if finish is not None:
            status = "error" if finish.event.value.endswith("_error") else "ok"

        return {
            "run_id": run_id,
            "name": start.name,
            "event": start.event.value[: -len("_start")],
            "status": status,
            "duration": finish.duration if finish is not None else None,
            "children": [self.run_tree(child) for child in children],
        }

    def summary(self) -> Dict[str, Any]:
        """Get a summary of recorded events."""
        event_counts: Dict[str, int] = {}
        for record in self.records:
            event = record.event.value
            event_counts[event] = event_counts.get(event, 0) + 1

        return {
            "total_events": len(self.records),
            "event_counts": event_counts,
            "first_event": self.records[0].timestamp.isoformat() if self.records else None,
            "last_event": self.records[-1].timestamp.isoformat() if self.records else None,
        }
