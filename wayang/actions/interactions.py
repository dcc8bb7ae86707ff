"""Actions that change page state."""

from __future__ import annotations

from typing import TYPE_CHECKING

from wayang.dsl.models import (
    BlurAction,
    ClearAction,
    ClickAction,
    EvalAction,
    FocusAction,
    InputAction,
    NavigateAction,
    PressAction,
    ScrollIntoViewAction,
    SelectAllAction,
)
from wayang.errors import Outcome
from wayang.surface import normalize_key

if TYPE_CHECKING:  # pragma: no cover
    from wayang.interpreter import Frame, Interpreter


async def click_action(interp: "Interpreter", action: ClickAction, frame: "Frame") -> Outcome:
    element = await interp.element(action, frame)
    if not element.ok:
        return element
    await element.value.click()
    return Outcome.success(None)


async def focus_action(interp: "Interpreter", action: FocusAction, frame: "Frame") -> Outcome:
    element = await interp.element(action, frame)
    if not element.ok:
        return element
    await element.value.focus()
    return Outcome.success(None)


async def blur_action(interp: "Interpreter", action: BlurAction, frame: "Frame") -> Outcome:
    element = await interp.element(action, frame)
    if not element.ok:
        return element
    await element.value.blur()
    return Outcome.success(None)


async def clear_action(interp: "Interpreter", action: ClearAction, frame: "Frame") -> Outcome:
    element = await interp.element(action, frame)
    if not element.ok:
        return element
    await element.value.select_all_text()
    await element.value.input("")
    return Outcome.success(None)


async def select_all_action(interp: "Interpreter", action: SelectAllAction, frame: "Frame") -> Outcome:
    element = await interp.element(action, frame)
    if not element.ok:
        return element
    await element.value.select_all_text()
    return Outcome.success(None)


async def scroll_into_view_action(interp: "Interpreter", action: ScrollIntoViewAction, frame: "Frame") -> Outcome:
    element = await interp.element(action, frame)
    if not element.ok:
        return element
    await element.value.scroll_into_view()
    return Outcome.success(None)


async def input_action(interp: "Interpreter", action: InputAction, frame: "Frame") -> Outcome:
    """Fill the target element, or type at the keyboard focus without one."""

    if not interp.has_target(action, frame):
        await interp.surface.keyboard_insert_text(action.text)
        return Outcome.success(None)
    element = await interp.element(action, frame)
    if not element.ok:
        return element
    await element.value.input(action.text)
    return Outcome.success(None)


async def press_action(interp: "Interpreter", action: PressAction, frame: "Frame") -> Outcome:
    key = normalize_key(action.key)
    if not interp.has_target(action, frame):
        await interp.surface.keyboard_press(key)
        return Outcome.success(None)
    element = await interp.element(action, frame)
    if not element.ok:
        return element
    await element.value.press(key)
    return Outcome.success(None)


async def navigate_action(interp: "Interpreter", action: NavigateAction, frame: "Frame") -> Outcome:
    await interp.surface.navigate(action.link)
    return Outcome.success(None)


async def eval_action(interp: "Interpreter", action: EvalAction, frame: "Frame") -> Outcome:
    if not interp.has_target(action, frame):
        return Outcome.success(await interp.surface.evaluate(action.expression))
    element = await interp.element(action, frame)
    if not element.ok:
        return element
    return Outcome.success(await element.value.evaluate(action.expression))
