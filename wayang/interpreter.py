"""Recursive evaluator for wayang action trees."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Iterable, Mapping, Optional, Tuple, Union

from .cancellation import CANCELLED, CancelToken
from .dsl.models import ActionBase, CustomActionCall, Program
from .dsl.registry import DEFAULT_MAX_DEPTH, ActionParseError, ActionRegistry, build_registry
from .dsl.resolution import Resolver
from .errors import ActionError, ErrorCode, Outcome
from .store import Store
from .surface import AutomationSurface, ElementNotFound, SurfaceError

log = logging.getLogger(__name__)

DEFAULT_MAX_SOURCE_LENGTH = 1000


@dataclass(frozen=True, slots=True)
class Frame:
    """Evaluation position: source path, depth and inherited bindings."""

    source: str
    depth: int = 0
    element: Any = None
    calls: Tuple[str, ...] = ()

    def enter(self, kind: str) -> "Frame":
        return replace(self, source=f"{self.source}.{kind}", depth=self.depth + 1)

    def field(self, name: str) -> "Frame":
        return replace(self, source=f"{self.source}.field[{name}]")

    def item(self, index: int) -> "Frame":
        return replace(self, source=f"{self.source}[{index}]")

    def bind(self, element: Any) -> "Frame":
        return replace(self, element=element)

    def calling(self, name: str) -> "Frame":
        return replace(self, calls=self.calls + (name,))


class Interpreter:
    """Evaluates actions of one program against a surface and a store."""

    def __init__(
        self,
        program: Program,
        *,
        surface: AutomationSurface,
        store: Optional[Store] = None,
        token: Optional[CancelToken] = None,
        registry: Optional[ActionRegistry] = None,
        logger: Optional[logging.Logger] = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_source_length: int = DEFAULT_MAX_SOURCE_LENGTH,
    ) -> None:
        self.program = program
        self.resolver = Resolver(program)
        self.surface = surface
        self.store = store if store is not None else Store()
        self.token = token or CancelToken()
        self.registry = registry or build_registry(max_depth=max_depth)
        self.logger = logger or logging.getLogger("wayang.program")
        self.max_depth = max_depth
        self.max_source_length = max_source_length

    # ------------------------------------------------------------------
    # evaluation
    # ------------------------------------------------------------------
    async def evaluate(self, action: Union[ActionBase, Mapping[str, Any]], source: Union[str, Frame]) -> Outcome:
        frame = source if isinstance(source, Frame) else Frame(source)

        if not isinstance(action, ActionBase):
            parsed = self._parse(action, frame)
            if not parsed.ok:
                return parsed
            action = parsed.value

        frame = frame.enter(action.action_name)
        if len(frame.source) > self.max_source_length:
            return self._recursion_error(
                frame,
                action,
                f"action chain longer than {self.max_source_length} chars, expected to be inside a recursive loop",
            )
        if frame.depth > self.max_depth:
            return self._recursion_error(frame, action, f"actions nested deeper than {self.max_depth} levels")

        if isinstance(action, CustomActionCall):
            return await self._call_custom(action, frame)

        try:
            handler = self.registry.get(action.action_name).handler
        except KeyError:
            handler = None
        if handler is None:
            return self.fail(
                frame,
                action,
                ErrorCode.UNKNOWN_ACTION,
                f"could not find a defined action with the name {action.action_name!r}",
            )

        try:
            return await handler(self, action, frame)
        except ElementNotFound as exc:
            return self.fail(frame, action, ErrorCode.ELEMENT_NOT_FOUND, str(exc), exc.selector)
        except SurfaceError as exc:
            log.debug("Surface failure at %s: %s", frame.source, exc)
            return self.fail(frame, action, ErrorCode.SURFACE_ERROR, str(exc), exc.operation, exc.details)

    async def evaluate_all(self, actions: Iterable[ActionBase], frame: Frame) -> Outcome:
        """Evaluate in order; the first failure wins, else the last value."""

        result = Outcome.success(None)
        for action in actions:
            result = await self.evaluate(action, frame)
            if not result.ok:
                return result
        return result

    async def expect(
        self,
        action: ActionBase,
        frame: Frame,
        node: ActionBase,
        expected: type,
        label: str,
    ) -> Outcome:
        """Evaluate ``node`` and require a result of type ``expected``."""

        result = await self.evaluate(node, frame)
        if not result.ok:
            return result
        if not isinstance(result.value, expected):
            return self.fail(
                frame,
                action,
                ErrorCode.TYPE_MISMATCH,
                f"expected {label} to return a {expected.__name__} type, got {type(result.value).__name__}",
                result.value,
            )
        return result

    async def wait(self, action: ActionBase, frame: Frame, awaitable: Awaitable[Any]) -> Outcome:
        finished, result = await self.token.race(awaitable)
        if finished:
            return Outcome.success(None)
        if result == CANCELLED:
            return self.fail(frame, action, ErrorCode.CANCELLED, "run was cancelled before the wait completed")
        return self.fail(
            frame,
            action,
            ErrorCode.TIMEOUT,
            "run deadline exceeded before the wait completed",
            self.token.timeout,
        )

    # ------------------------------------------------------------------
    # resolution
    # ------------------------------------------------------------------
    def resolve_selector(self, expression: str) -> Tuple[Optional[str], bool]:
        return self.resolver.selector(expression)

    def resolve_custom_action(self, name: str) -> Tuple[Optional[ActionBase], bool]:
        return self.resolver.custom_action(name)

    def selector(self, action: ActionBase, frame: Frame, expression: str) -> Outcome:
        selector, found = self.resolve_selector(expression)
        if not found:
            return self.fail(
                frame,
                action,
                ErrorCode.UNKNOWN_SELECTOR,
                f"could not find a custom selector named {expression!r}",
                expression,
            )
        return Outcome.success(selector)

    async def element(self, action: ActionBase, frame: Frame) -> Outcome:
        """Resolve the element an action targets.

        An explicit ``element`` selector wins; otherwise the element bound by an
        enclosing ``forEach`` is used.
        """

        expression = getattr(action, "element", None)
        if expression is None:
            if frame.element is not None:
                return Outcome.success(frame.element)
            return self.fail(frame, action, ErrorCode.MALFORMED_ACTION, "an 'element' key (type string) is required")
        selector = self.selector(action, frame, expression)
        if not selector.ok:
            return selector
        return Outcome.success(await self.surface.query_one(selector.value))

    def has_target(self, action: ActionBase, frame: Frame) -> bool:
        return getattr(action, "element", None) is not None or frame.element is not None

    # ------------------------------------------------------------------
    # failures
    # ------------------------------------------------------------------
    def fail(self, frame: Frame, action: Any, code: ErrorCode, message: str, *payload: Any) -> Outcome:
        source = action.payload() if isinstance(action, ActionBase) else dict(action or {})
        error = ActionError.capture(code, message, source=frame.source, action=source, payload=payload)
        return Outcome.failure(error)

    def _recursion_error(self, frame: Frame, action: ActionBase, message: str) -> Outcome:
        return self.fail(
            frame,
            action,
            ErrorCode.RECURSION_LIMIT,
            message,
            {"depth": frame.depth, "length": len(frame.source), "calls": list(frame.calls)},
        )

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _parse(self, data: Any, frame: Frame) -> Outcome:
        kind = data.get("action") if isinstance(data, Mapping) else None
        try:
            return Outcome.success(self.registry.parse_action(data))
        except ActionParseError as exc:
            at = frame.enter(kind) if isinstance(kind, str) else frame
            raw = dict(data) if isinstance(data, Mapping) else {"value": data}
            return self.fail(at, raw, exc.code, exc.message, *exc.details)

    async def _call_custom(self, action: CustomActionCall, frame: Frame) -> Outcome:
        target, found = self.resolve_custom_action(action.name)
        if not found:
            return self.fail(
                frame,
                action,
                ErrorCode.UNKNOWN_CUSTOM_ACTION,
                f"could not find a custom action named {action.name!r}",
                action.name,
            )
        return await self.evaluate(target, frame.calling(action.name))
