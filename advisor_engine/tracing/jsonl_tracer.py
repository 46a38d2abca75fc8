"""JSONL file-based trace collector."""

from __future__ import annotations

import json
import threading
import time
from pathlib import Path
from typing import Any

from advisor_engine.tracing.interface import TraceCollector


class JSONLTraceCollector(TraceCollector):
    """Appends one line per event to ``{trace_dir}/{trace_id}.jsonl``.

    Events are buffered per trace id and written when the orchestrator
    flushes at the end of a logical call. The directory is created on the
    first flush.
    """

    def __init__(self, trace_dir: str | Path = "./traces") -> None:
        self._dir = Path(trace_dir)
        self._buffers: dict[str, list[dict[str, Any]]] = {}
        self._lock = threading.Lock()

    @property
    def trace_dir(self) -> Path:
        return self._dir

    async def emit(self, trace_id: str, event_type: str, data: dict[str, Any]) -> None:
        entry = {"ts": time.time(), "trace_id": trace_id, "event": event_type, **data}
        with self._lock:
            self._buffers.setdefault(trace_id, []).append(entry)

    def pending(self, trace_id: str) -> list[dict[str, Any]]:
        with self._lock:
            return list(self._buffers.get(trace_id, ()))

    async def flush(self, trace_id: str) -> None:
        with self._lock:
            entries = self._buffers.pop(trace_id, [])
        if not entries:
            return
        self._dir.mkdir(parents=True, exist_ok=True)
        with open(self._dir / f"{trace_id}.jsonl", "a", encoding="utf-8") as f:
            for entry in entries:
                f.write(json.dumps(entry, default=str) + "\n")
