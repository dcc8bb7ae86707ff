"""Structured logging utilities for program runs."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional


@dataclass(slots=True)
class LogPaths:
    base: Path
    events: Path


class StructuredLogger:
    """Writes one JSONL event per evaluated top-level step."""

    def __init__(self, run_id: str, paths: LogPaths) -> None:
        self.run_id = run_id
        self.paths = paths
        self._step = 0
        self._events_file = paths.events.open("a", encoding="utf-8")

    def log_event(
        self,
        *,
        source: str,
        action: Dict[str, Any],
        ok: bool,
        value: Any = None,
        error: Optional[Dict[str, Any]] = None,
        duration_ms: Optional[float] = None,
    ) -> int:
        self._step += 1
        payload = {
            "ts": time.time(),
            "run_id": self.run_id,
            "step": self._step,
            "source": source,
            "action": action,
            "ok": ok,
            "value": value,
            "error": error,
            "duration_ms": duration_ms,
        }
        self._events_file.write(json.dumps(payload, ensure_ascii=False, default=repr) + "\n")
        self._events_file.flush()
        return self._step

    def close(self) -> None:
        if not self._events_file.closed:
            self._events_file.close()


def prepare_log_paths(run_id: str, base_dir: Path) -> LogPaths:
    base = base_dir / run_id
    base.mkdir(parents=True, exist_ok=True)
    return LogPaths(base=base, events=base / "events.jsonl")
