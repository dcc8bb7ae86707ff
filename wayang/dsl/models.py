"""Typed DSL models for wayang programs."""

from __future__ import annotations

from typing import Annotated, Any, ClassVar, Dict, List, Literal, Mapping, Optional, Union

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PrivateAttr,
    StrictBool,
    StrictFloat,
    ValidationInfo,
)
from pydantic_core import PydanticCustomError


class ActionBase(BaseModel):
    """Base class for all DSL actions."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    __action_name__: ClassVar[str]

    _source: Optional[Dict[str, Any]] = PrivateAttr(default=None)

    def remember_source(self, data: Mapping[str, Any]) -> None:
        self._source = dict(data)

    def payload(self) -> Dict[str, Any]:
        """The action as it was written, falling back to a model dump."""

        if self._source is not None:
            return dict(self._source)
        return self.model_dump(by_alias=True, exclude_none=True, serialize_as_any=True)

    @property
    def action_name(self) -> str:
        return self.action  # type: ignore[attr-defined]


def _parse_node(value: Any, info: ValidationInfo) -> Any:
    if isinstance(value, ActionBase):
        return value
    from .registry import ActionParseError, registry_from_context

    registry = registry_from_context(info.context)
    try:
        return registry.parse_action(value, context=info.context)
    except ActionParseError as exc:
        raise PydanticCustomError(exc.code.value.lower(), "{reason}", {"reason": exc.message}) from exc


def _parse_operand(value: Any, info: ValidationInfo) -> Any:
    if isinstance(value, bool):
        return value
    return _parse_node(value, info)


def _parse_store_item(value: Any, info: ValidationInfo) -> Any:
    if isinstance(value, Mapping):
        return _parse_node(value, info)
    return value


ActionNode = Annotated[ActionBase, BeforeValidator(_parse_node)]
Operand = Annotated[Union[StrictBool, ActionBase], BeforeValidator(_parse_operand)]
StoreItem = Annotated[Any, BeforeValidator(_parse_store_item)]


class ElementActionBase(ActionBase):
    """Actions operating on one element.

    ``element`` may be omitted inside a ``forEach`` body, where the element of
    the current iteration is used instead.
    """

    element: Optional[str] = None


# ----------------------------------------------------------------------
# control flow
# ----------------------------------------------------------------------
class DoAction(ActionBase):
    __action_name__ = "do"

    action: Literal["do"] = "do"
    statements: List[ActionNode]


class IfAction(ActionBase):
    __action_name__ = "if"

    action: Literal["if"] = "if"
    condition: ActionNode
    statement: ActionNode
    otherwise: Optional[ActionNode] = None


class NotAction(ActionBase):
    __action_name__ = "not"

    action: Literal["not"] = "not"
    statement: Operand


class ForEachAction(ActionBase):
    __action_name__ = "forEach"

    action: Literal["forEach"] = "forEach"
    elements: str
    execute: ActionNode


class CustomActionCall(ActionBase):
    """Reference to a named action from ``Program.actions``."""

    __action_name__ = "$"

    action: str = Field(pattern=r"^\$.+")

    @property
    def name(self) -> str:
        return self.action[1:]


# ----------------------------------------------------------------------
# queries
# ----------------------------------------------------------------------
class HasAction(ActionBase):
    __action_name__ = "has"

    action: Literal["has"] = "has"
    element: str


class VisibleAction(ElementActionBase):
    __action_name__ = "visible"

    action: Literal["visible"] = "visible"


class TextAction(ElementActionBase):
    __action_name__ = "text"

    action: Literal["text"] = "text"


class HtmlAction(ElementActionBase):
    __action_name__ = "html"

    action: Literal["html"] = "html"


class AttributeAction(ElementActionBase):
    __action_name__ = "attribute"

    action: Literal["attribute"] = "attribute"
    name: str


class TextEqualAction(ActionBase):
    __action_name__ = "textEqual"

    action: Literal["textEqual"] = "textEqual"
    expected: str
    statement: ActionNode
    ignore_case: bool = Field(default=False, alias="ignoreCase")


class TextNotEqualAction(ActionBase):
    __action_name__ = "textNotEqual"

    action: Literal["textNotEqual"] = "textNotEqual"
    expected: str
    statement: ActionNode
    ignore_case: bool = Field(default=False, alias="ignoreCase")


class TextContainsAction(ActionBase):
    __action_name__ = "textContains"

    action: Literal["textContains"] = "textContains"
    text: str
    statement: ActionNode
    ignore_case: bool = Field(default=False, alias="ignoreCase")


# ----------------------------------------------------------------------
# interactions
# ----------------------------------------------------------------------
class ClickAction(ElementActionBase):
    __action_name__ = "click"

    action: Literal["click"] = "click"


class FocusAction(ElementActionBase):
    __action_name__ = "focus"

    action: Literal["focus"] = "focus"


class BlurAction(ElementActionBase):
    __action_name__ = "blur"

    action: Literal["blur"] = "blur"


class ClearAction(ElementActionBase):
    __action_name__ = "clear"

    action: Literal["clear"] = "clear"


class SelectAllAction(ElementActionBase):
    __action_name__ = "selectAll"

    action: Literal["selectAll"] = "selectAll"


class ScrollIntoViewAction(ElementActionBase):
    __action_name__ = "scrollIntoView"

    action: Literal["scrollIntoView"] = "scrollIntoView"


class InputAction(ElementActionBase):
    """Type text into an element, or at the keyboard focus without one."""

    __action_name__ = "input"

    action: Literal["input"] = "input"
    text: str


class PressAction(ElementActionBase):
    __action_name__ = "press"

    action: Literal["press"] = "press"
    key: str = Field(min_length=1)


class NavigateAction(ActionBase):
    __action_name__ = "navigate"

    action: Literal["navigate"] = "navigate"
    link: str


class EvalAction(ElementActionBase):
    __action_name__ = "eval"

    action: Literal["eval"] = "eval"
    expression: str


# ----------------------------------------------------------------------
# waiting
# ----------------------------------------------------------------------
class SleepAction(ActionBase):
    __action_name__ = "sleep"

    action: Literal["sleep"] = "sleep"
    duration: StrictFloat = Field(ge=0)


class WaitLoadAction(ActionBase):
    __action_name__ = "waitLoad"

    action: Literal["waitLoad"] = "waitLoad"


class WaitIdleAction(ActionBase):
    __action_name__ = "waitIdle"

    action: Literal["waitIdle"] = "waitIdle"


class WaitVisibleAction(ElementActionBase):
    __action_name__ = "waitVisible"

    action: Literal["waitVisible"] = "waitVisible"


class WaitInvisibleAction(ElementActionBase):
    __action_name__ = "waitInvisible"

    action: Literal["waitInvisible"] = "waitInvisible"


class WaitStableAction(ElementActionBase):
    __action_name__ = "waitStable"

    action: Literal["waitStable"] = "waitStable"


# ----------------------------------------------------------------------
# store and diagnostics
# ----------------------------------------------------------------------
class StoreAction(ActionBase):
    __action_name__ = "store"

    action: Literal["store"] = "store"
    items: Dict[str, StoreItem] = Field(default_factory=dict)


class LogStoreAction(ActionBase):
    __action_name__ = "logStore"

    action: Literal["logStore"] = "logStore"
    key: str = Field(pattern=r"^\$.+")

    @property
    def name(self) -> str:
        return self.key[1:]


class LogAction(ActionBase):
    __action_name__ = "log"

    action: Literal["log"] = "log"
    message: str


class ErrorAction(ActionBase):
    __action_name__ = "error"

    action: Literal["error"] = "error"
    message: str


class Program(BaseModel):
    """Loaded program: named selectors, named actions and top-level steps."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    selectors: Dict[str, str] = Field(default_factory=dict)
    actions: Dict[str, ActionNode] = Field(default_factory=dict)
    steps: List[ActionNode] = Field(default_factory=list)


BUILTIN_ACTIONS = (
    DoAction,
    IfAction,
    NotAction,
    ForEachAction,
    HasAction,
    VisibleAction,
    TextAction,
    HtmlAction,
    AttributeAction,
    TextEqualAction,
    TextNotEqualAction,
    TextContainsAction,
    ClickAction,
    FocusAction,
    BlurAction,
    ClearAction,
    SelectAllAction,
    ScrollIntoViewAction,
    InputAction,
    PressAction,
    NavigateAction,
    EvalAction,
    SleepAction,
    WaitLoadAction,
    WaitIdleAction,
    WaitVisibleAction,
    WaitInvisibleAction,
    WaitStableAction,
    StoreAction,
    LogStoreAction,
    LogAction,
    ErrorAction,
)
