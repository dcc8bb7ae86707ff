"""Control flow, store and diagnostic actions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

from wayang.dsl.models import (
    ActionBase,
    CustomActionCall,
    DoAction,
    ErrorAction,
    ForEachAction,
    IfAction,
    LogAction,
    LogStoreAction,
    NotAction,
    StoreAction,
)
from wayang.errors import ErrorCode, Outcome

if TYPE_CHECKING:  # pragma: no cover
    from wayang.interpreter import Frame, Interpreter


async def do_action(interp: "Interpreter", action: DoAction, frame: "Frame") -> Outcome:
    return await interp.evaluate_all(action.statements, frame)


async def if_action(interp: "Interpreter", action: IfAction, frame: "Frame") -> Outcome:
    condition = await interp.expect(action, frame, action.condition, bool, "condition")
    if not condition.ok:
        return condition
    if condition.value:
        return await interp.evaluate(action.statement, frame)
    if action.otherwise is None:
        return Outcome.success(None)
    return await interp.evaluate(action.otherwise, frame)


async def not_action(interp: "Interpreter", action: NotAction, frame: "Frame") -> Outcome:
    if isinstance(action.statement, bool):
        return Outcome.success(not action.statement)
    result = await interp.expect(action, frame, action.statement, bool, "statement")
    return result.map(lambda value: not value)


async def for_each_action(interp: "Interpreter", action: ForEachAction, frame: "Frame") -> Outcome:
    """Run ``execute`` once per matching element, in document order."""

    selector = interp.selector(action, frame, action.elements)
    if not selector.ok:
        return selector
    elements = await interp.surface.query_all(selector.value)
    for index, element in enumerate(elements):
        result = await interp.evaluate(action.execute, frame.item(index).bind(element))
        if not result.ok:
            return result
    return Outcome.success(None)


async def _store_item(interp: "Interpreter", name: str, item: Any, frame: "Frame") -> Outcome:
    item_frame = frame.field(name)
    if isinstance(item, ActionBase):
        return await interp.evaluate(item, item_frame)
    if isinstance(item, str):
        reference = interp.resolver.reference(item)
        if reference.kind == "action":
            return await interp.evaluate(CustomActionCall(action=item), item_frame)
        return Outcome.success(reference.value)
    return Outcome.success(item)


async def store_action(interp: "Interpreter", action: StoreAction, frame: "Frame") -> Outcome:
    """Evaluate every item, then write them all at once.

    Items are evaluated in declaration order against the store as it was before
    this call. The first failing item aborts the call and nothing is written.
    """

    staged: Dict[str, Any] = {}
    for name, item in action.items.items():
        result = await _store_item(interp, name, item, frame)
        if not result.ok:
            return result
        staged[name] = result.value
    interp.store.commit(staged)
    return Outcome.success(None)


async def log_store_action(interp: "Interpreter", action: LogStoreAction, frame: "Frame") -> Outcome:
    if action.name not in interp.store:
        return interp.fail(
            frame,
            action,
            ErrorCode.UNKNOWN_STORE_KEY,
            f"the key {action.name!r} is not in the program store",
            action.name,
        )
    value = interp.store[action.name]
    interp.logger.info("%s = %r", action.name, value)
    return Outcome.success(value)


async def log_action(interp: "Interpreter", action: LogAction, frame: "Frame") -> Outcome:
    interp.logger.info("%s", action.message)
    return Outcome.success(None)


async def error_action(interp: "Interpreter", action: ErrorAction, frame: "Frame") -> Outcome:
    interp.logger.error("%s", action.message)
    return interp.fail(frame, action, ErrorCode.USER_RAISED, action.message, action.message)
