"""Read-only page and element queries."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Union

from wayang.dsl.models import (
    AttributeAction,
    HasAction,
    HtmlAction,
    TextAction,
    TextContainsAction,
    TextEqualAction,
    TextNotEqualAction,
    VisibleAction,
)
from wayang.errors import Outcome

if TYPE_CHECKING:  # pragma: no cover
    from wayang.interpreter import Frame, Interpreter

TextComparison = Union[TextEqualAction, TextNotEqualAction, TextContainsAction]


async def has_action(interp: "Interpreter", action: HasAction, frame: "Frame") -> Outcome:
    selector = interp.selector(action, frame, action.element)
    if not selector.ok:
        return selector
    matches = await interp.surface.query_all(selector.value)
    return Outcome.success(len(matches) > 0)


async def visible_action(interp: "Interpreter", action: VisibleAction, frame: "Frame") -> Outcome:
    element = await interp.element(action, frame)
    if not element.ok:
        return element
    return Outcome.success(await element.value.visible())


async def text_action(interp: "Interpreter", action: TextAction, frame: "Frame") -> Outcome:
    element = await interp.element(action, frame)
    if not element.ok:
        return element
    return Outcome.success(await element.value.text())


async def html_action(interp: "Interpreter", action: HtmlAction, frame: "Frame") -> Outcome:
    element = await interp.element(action, frame)
    if not element.ok:
        return element
    return Outcome.success(await element.value.html())


async def attribute_action(interp: "Interpreter", action: AttributeAction, frame: "Frame") -> Outcome:
    element = await interp.element(action, frame)
    if not element.ok:
        return element
    return Outcome.success(await element.value.attribute(action.name))


async def _compare(
    interp: "Interpreter",
    action: TextComparison,
    frame: "Frame",
    expected: str,
    compare: Callable[[str, str], bool],
) -> Outcome:
    actual = await interp.expect(action, frame, action.statement, str, "statement")
    if not actual.ok:
        return actual
    text = actual.value
    if action.ignore_case:
        expected, text = expected.casefold(), text.casefold()
    return Outcome.success(compare(expected, text))


async def text_equal_action(interp: "Interpreter", action: TextEqualAction, frame: "Frame") -> Outcome:
    return await _compare(interp, action, frame, action.expected, lambda want, got: want == got)


async def text_not_equal_action(interp: "Interpreter", action: TextNotEqualAction, frame: "Frame") -> Outcome:
    return await _compare(interp, action, frame, action.expected, lambda want, got: want != got)


async def text_contains_action(interp: "Interpreter", action: TextContainsAction, frame: "Frame") -> Outcome:
    return await _compare(interp, action, frame, action.text, lambda want, got: want in got)
