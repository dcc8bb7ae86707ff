"""Error values and the result type threaded through the interpreter.

Failures inside a program are not raised.  Every handler returns an
:class:`Outcome` which either carries a plain JSON-like value or an
:class:`ActionError` describing where and why evaluation stopped.  Callers
check :attr:`Outcome.ok` after every sub-evaluation and forward failures
unchanged, which keeps the run fail-fast without relying on unwinding.
"""

from __future__ import annotations

import json
import logging
import pprint
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple


class ErrorCode(Enum):
    """Standardised codes for failures raised while evaluating a program."""

    # Program shape
    MALFORMED_ACTION = "MALFORMED_ACTION"
    TYPE_MISMATCH = "TYPE_MISMATCH"

    # Name lookups
    UNKNOWN_ACTION = "UNKNOWN_ACTION"
    UNKNOWN_CUSTOM_ACTION = "UNKNOWN_CUSTOM_ACTION"
    UNKNOWN_STORE_KEY = "UNKNOWN_STORE_KEY"
    UNKNOWN_SELECTOR = "UNKNOWN_SELECTOR"

    # Control
    USER_RAISED = "USER_RAISED"
    RECURSION_LIMIT = "RECURSION_LIMIT"
    CANCELLED = "CANCELLED"
    TIMEOUT = "TIMEOUT"

    # Browser
    ELEMENT_NOT_FOUND = "ELEMENT_NOT_FOUND"
    SURFACE_ERROR = "SURFACE_ERROR"

    @property
    def is_unknown_reference(self) -> bool:
        """True for failed lookups of an action-like name."""

        return self in {
            ErrorCode.UNKNOWN_ACTION,
            ErrorCode.UNKNOWN_CUSTOM_ACTION,
            ErrorCode.UNKNOWN_STORE_KEY,
        }


@dataclass(frozen=True, slots=True)
class ActionError:
    """Structured failure produced at the point an action could not proceed."""

    code: ErrorCode
    message: str
    source: str
    action: Dict[str, Any] = field(default_factory=dict)
    payload: Tuple[Any, ...] = ()
    stack: str = field(default="", repr=False, compare=False)

    @classmethod
    def capture(
        cls,
        code: ErrorCode,
        message: str,
        *,
        source: str,
        action: Optional[Dict[str, Any]] = None,
        payload: Tuple[Any, ...] = (),
    ) -> "ActionError":
        # Drop this frame so the trace ends at the failing handler.
        stack = "".join(traceback.format_stack()[:-1])
        return cls(
            code=code,
            message=message,
            source=source,
            action=dict(action or {}),
            payload=tuple(payload),
            stack=stack,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code.value,
            "message": self.message,
            "source": self.source,
            "action": self.action,
            "payload": [_jsonable(item) for item in self.payload],
        }

    def dump(self) -> str:
        data = self.to_dict()
        data["stack"] = self.stack
        return pprint.pformat(data, sort_dicts=False)

    def log(self, logger: logging.Logger, level: int = logging.WARNING, *, with_stack: bool = False) -> None:
        logger.log(level, "%s at %s: %s", self.code.value, self.source, self.message)
        if with_stack and self.stack:
            logger.log(level, "%s", self.stack)

    def __str__(self) -> str:
        return f"{self.code.value} at {self.source}: {self.message}"


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return repr(value)
    return value


class Outcome:
    """Either a value or an :class:`ActionError`, never both."""

    __slots__ = ("_value", "_error")

    def __init__(self, value: Any = None, error: Optional[ActionError] = None) -> None:
        self._value = value
        self._error = error

    @classmethod
    def success(cls, value: Any = None) -> "Outcome":
        return cls(value=value)

    @classmethod
    def failure(cls, error: ActionError) -> "Outcome":
        if not isinstance(error, ActionError):
            raise TypeError("failure() expects an ActionError")
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self._error is None

    @property
    def value(self) -> Any:
        if self._error is not None:
            raise ValueError(f"outcome is a failure: {self._error}")
        return self._value

    @property
    def error(self) -> Optional[ActionError]:
        return self._error

    def map(self, fn: Callable[[Any], Any]) -> "Outcome":
        """Transform a successful value; failures pass through untouched."""

        if self._error is not None:
            return self
        return Outcome.success(fn(self._value))

    def value_or(self, default: Any = None) -> Any:
        return default if self._error is not None else self._value

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        if self._error is not None:
            return f"Outcome.failure({self._error!r})"
        return f"Outcome.success({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Outcome):
            return NotImplemented
        return self._value == other._value and self._error == other._error

    __hash__ = None  # type: ignore[assignment]
