"""Run loop owning a program, its store, a surface and a cancel token."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from .cancellation import CancelToken
from .config import RunConfig, load_config
from .dsl.models import ActionBase, Program
from .dsl.registry import ActionParseError, ActionRegistry, build_registry
from .errors import ActionError, Outcome
from .interpreter import Interpreter
from .store import Store
from .structured_logging import StructuredLogger, prepare_log_paths
from .surface import AutomationSurface, PlaywrightSurface

log = logging.getLogger(__name__)

ProgramInput = Union[Program, Mapping[str, Any], str, bytes]
StepInput = Union[ActionBase, Mapping[str, Any]]


@dataclass(frozen=True, slots=True)
class RunResult:
    """Final value of a run, or the error that stopped it."""

    value: Any = None
    error: Optional[ActionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "value": self.value,
            "error": self.error.to_dict() if self.error else None,
        }


class Runner:
    """Evaluates programs against one automation surface.

    The store lives as long as the runner, so values written by one run are
    visible to the next.  A runner is not safe for concurrent use.
    """

    def __init__(
        self,
        surface: AutomationSurface,
        *,
        config: Optional[RunConfig] = None,
        logger: Optional[logging.Logger] = None,
        registry: Optional[ActionRegistry] = None,
        events: Optional[StructuredLogger] = None,
    ) -> None:
        self.config = config or RunConfig()
        self.surface = surface
        self.registry = registry or build_registry(max_depth=self.config.max_depth)
        self.logger = logger or logging.getLogger("wayang.program")
        self.events = events
        self.store = Store()
        self.token = CancelToken(self.config.timeout_s)
        self.program = Program()
        self._closed = False

    @classmethod
    async def launch(
        cls,
        config: Optional[RunConfig] = None,
        *,
        run_id: Optional[str] = None,
        **kwargs: Any,
    ) -> "Runner":
        """Create a runner over a freshly launched :class:`PlaywrightSurface`.

        With ``run_id`` the step events go to ``<log_root>/<run_id>/events.jsonl``.
        """

        config = config or load_config()
        surface = await PlaywrightSurface.launch(config)
        if run_id is not None and kwargs.get("events") is None:
            kwargs["events"] = StructuredLogger(run_id, prepare_log_paths(run_id, config.log_root))
        return cls(surface, config=config, **kwargs)

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    async def run(self, program: ProgramInput) -> RunResult:
        """Load ``program`` and evaluate its steps in order."""

        try:
            self.program = self.registry.parse_program(program)
        except ActionParseError as exc:
            source = f"root.{exc.location}" if exc.location else "root"
            error = ActionError.capture(
                exc.code,
                exc.message,
                source=source,
                action=_offending_action(program, exc.details),
                payload=exc.details,
            )
            return self._failed(error)
        return await self.run_steps(self.program.steps)

    async def run_steps(self, steps: Sequence[StepInput]) -> RunResult:
        """Evaluate ``steps`` with the selectors and actions of the current program."""

        self.token.arm()
        interpreter = self._interpreter()
        value = None
        for index, step in enumerate(steps):
            source = f"root[{index}]"
            started = time.perf_counter()
            outcome = await interpreter.evaluate(step, source)
            self._record(source, step, outcome, started)
            if not outcome.ok:
                return self._failed(outcome.error)
            value = outcome.value
        return RunResult(value=value)

    async def run_one(self, action: StepInput) -> RunResult:
        return await self.run_steps([action])

    def cancel(self) -> None:
        self.token.cancel()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.token.cancel()
        try:
            await self.surface.close()
        finally:
            if self.events is not None:
                self.events.close()

    async def __aenter__(self) -> "Runner":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _interpreter(self) -> Interpreter:
        return Interpreter(
            self.program,
            surface=self.surface,
            store=self.store,
            token=self.token,
            registry=self.registry,
            logger=self.logger,
            max_depth=self.config.max_depth,
            max_source_length=self.config.max_source_length,
        )

    def _failed(self, error: ActionError) -> RunResult:
        error.log(log)
        return RunResult(error=error)

    def _record(self, source: str, step: StepInput, outcome: Outcome, started: float) -> None:
        if self.events is None:
            return
        if isinstance(step, ActionBase):
            action = step.payload()
        else:
            action = dict(step) if isinstance(step, Mapping) else {"value": step}
        self.events.log_event(
            source=source,
            action=action,
            ok=outcome.ok,
            value=outcome.value_or(),
            error=outcome.error.to_dict() if outcome.error else None,
            duration_ms=(time.perf_counter() - started) * 1000,
        )


def _offending_action(program: ProgramInput, details: Sequence[Any]) -> Dict[str, Any]:
    """Return the innermost mapping on the path of the first validation error."""

    node: Any = program
    if isinstance(node, (str, bytes)):
        try:
            node = json.loads(node)
        except ValueError:
            return {}
    found = dict(node) if isinstance(node, Mapping) else {}
    loc = details[0].get("loc", ()) if details else ()
    for part in loc:
        if isinstance(part, int) and isinstance(node, (list, tuple)) and 0 <= part < len(node):
            node = node[part]
        elif isinstance(part, str) and isinstance(node, Mapping) and part in node:
            node = node[part]
        else:
            break
        if isinstance(node, Mapping):
            found = dict(node)
    return found


def run_program(
    program: ProgramInput,
    *,
    config: Optional[RunConfig] = None,
    run_id: Optional[str] = None,
) -> RunResult:
    """Synchronous helper: launch a browser, run ``program`` and close."""

    async def _run() -> RunResult:
        runner = await Runner.launch(config, run_id=run_id)
        async with runner:
            return await runner.run(program)

    return asyncio.run(_run())
