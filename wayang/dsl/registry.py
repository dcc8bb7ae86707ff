"""Typed action registry built on top of pydantic models."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Type,
    TypeVar,
    Union,
)

from pydantic import ValidationError

from wayang.errors import ErrorCode, Outcome

from .models import ActionBase, CustomActionCall, Program

if TYPE_CHECKING:  # pragma: no cover
    from wayang.interpreter import Frame, Interpreter

Handler = Callable[["Interpreter", Any, "Frame"], Awaitable[Outcome]]

A = TypeVar("A", bound=ActionBase)

DEFAULT_MAX_DEPTH = 128


class ActionParseError(ValueError):
    """Raised when a raw mapping cannot be turned into a typed action."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        *,
        location: str = "",
        details: Sequence[Any] = (),
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.location = location
        self.details = tuple(details)


@dataclass(slots=True)
class ActionSpec:
    name: str
    model: Type[ActionBase]
    handler: Optional[Handler] = None
    description: str | None = None

    def to_metadata(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "model": self.model.__name__,
            "description": self.description or "",
        }


def format_location(loc: Sequence[Union[str, int]]) -> str:
    """Render a pydantic error location as ``steps[1].statements[0]``."""

    text = ""
    for part in loc:
        if isinstance(part, int):
            text += f"[{part}]"
        else:
            text += f".{part}" if text else str(part)
    return text


def _summary(model: Type[ActionBase]) -> str:
    doc = (model.__doc__ or "").strip()
    return doc.splitlines()[0] if doc else ""


# Error types raised by nested parses that keep their own code.
_NESTED_CODES = {
    code.value.lower(): code
    for code in (ErrorCode.UNKNOWN_ACTION, ErrorCode.RECURSION_LIMIT)
}


def describe_validation_error(exc: ValidationError) -> Tuple[ErrorCode, str, str, List[Dict[str, Any]]]:
    errors = exc.errors(include_url=False, include_context=False, include_input=False)
    if not errors:  # pragma: no cover - pydantic always reports at least one
        return ErrorCode.MALFORMED_ACTION, str(exc), "", []
    first = errors[0]
    code = _NESTED_CODES.get(first["type"], ErrorCode.MALFORMED_ACTION)
    location = format_location(first["loc"])
    if code is ErrorCode.RECURSION_LIMIT:
        return code, first["msg"], location, errors
    message = f"{location}: {first['msg']}" if location else first["msg"]
    return code, message, location, errors


class ActionRegistry:
    """Central registry holding the typed action kinds and their handlers."""

    def __init__(self, *, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self._actions: Dict[str, ActionSpec] = {}
        self.max_depth = max_depth

    def register(
        self,
        model: Type[A],
        handler: Optional[Handler] = None,
        *,
        name: Optional[str] = None,
        description: str | None = None,
    ) -> Type[A]:
        if not issubclass(model, ActionBase):
            raise TypeError("model must subclass ActionBase")
        action_name = name or getattr(model, "__action_name__", None) or model.__name__
        if action_name.startswith("$"):
            raise ValueError("'$' is reserved for custom action references")
        model.__action_name__ = action_name
        self._actions[action_name] = ActionSpec(
            name=action_name,
            model=model,
            handler=handler,
            description=description or _summary(model),
        )
        return model

    def get(self, name: str) -> ActionSpec:
        try:
            return self._actions[name]
        except KeyError as exc:
            raise KeyError(f"Unknown action '{name}'") from exc

    def __contains__(self, name: str) -> bool:  # pragma: no cover - trivial
        return name in self._actions

    def __iter__(self) -> Iterator[ActionSpec]:  # pragma: no cover - trivial
        return iter(self._actions.values())

    def __len__(self) -> int:  # pragma: no cover - trivial
        return len(self._actions)

    def parse_action(self, data: Any, *, context: Optional[Mapping[str, Any]] = None) -> ActionBase:
        if isinstance(data, ActionBase):
            return data
        if not isinstance(data, Mapping):
            raise ActionParseError(
                ErrorCode.MALFORMED_ACTION,
                f"expected an action mapping, got {type(data).__name__}",
            )
        kind = data.get("action")
        if not isinstance(kind, str):
            raise ActionParseError(ErrorCode.MALFORMED_ACTION, "an 'action' key (type string) is required")

        if kind in self._actions:
            model: Type[ActionBase] = self._actions[kind].model
        elif kind.startswith("$"):
            model = CustomActionCall
        else:
            raise ActionParseError(
                ErrorCode.UNKNOWN_ACTION,
                f"could not find a defined action with the name {kind!r}",
            )

        # Nested actions are parsed through this method, one level per call.
        nested = self._context(context)
        nested["depth"] = nested.get("depth", 0) + 1
        if nested["depth"] > self.max_depth:
            raise ActionParseError(
                ErrorCode.RECURSION_LIMIT,
                f"actions nested deeper than {self.max_depth} levels",
            )

        try:
            action = model.model_validate(dict(data), context=nested)
        except ValidationError as exc:
            code, message, location, errors = describe_validation_error(exc)
            if code is not ErrorCode.RECURSION_LIMIT:
                message = f"invalid {kind!r} action: {message}"
            raise ActionParseError(
                code,
                message,
                location=location,
                details=errors,
            ) from exc
        action.remember_source(data)
        return action

    def parse_program(self, data: Union[Program, Mapping[str, Any], str, bytes]) -> Program:
        if isinstance(data, Program):
            return data
        try:
            if isinstance(data, (str, bytes)):
                return Program.model_validate_json(data, context=self._context(None))
            return Program.model_validate(data, context=self._context(None))
        except ValidationError as exc:
            code, message, location, errors = describe_validation_error(exc)
            raise ActionParseError(code, message, location=location, details=errors) from exc

    def schema(self) -> Dict[str, Any]:
        return {name: spec.to_metadata() for name, spec in self._actions.items()}

    def _context(self, context: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        merged = dict(context or {})
        merged.setdefault("registry", self)
        return merged


def build_registry(*, max_depth: int = DEFAULT_MAX_DEPTH) -> ActionRegistry:
    """Create a registry populated with every built-in action."""

    from wayang.actions import BUILTIN_HANDLERS

    registry = ActionRegistry(max_depth=max_depth)
    for model, handler in BUILTIN_HANDLERS:
        registry.register(model, handler)
    return registry


@lru_cache(maxsize=1)
def default_registry() -> ActionRegistry:
    """Shared registry used when models are validated without a context."""

    return build_registry()


def registry_from_context(context: Optional[Mapping[str, Any]]) -> ActionRegistry:
    if context and isinstance(context.get("registry"), ActionRegistry):
        return context["registry"]
    return default_registry()
