"""Blocking actions; each one races the run's cancel token."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from wayang.dsl.models import (
    SleepAction,
    WaitIdleAction,
    WaitInvisibleAction,
    WaitLoadAction,
    WaitStableAction,
    WaitVisibleAction,
)
from wayang.errors import Outcome

if TYPE_CHECKING:  # pragma: no cover
    from wayang.interpreter import Frame, Interpreter


async def sleep_action(interp: "Interpreter", action: SleepAction, frame: "Frame") -> Outcome:
    return await interp.wait(action, frame, asyncio.sleep(action.duration))


async def wait_load_action(interp: "Interpreter", action: WaitLoadAction, frame: "Frame") -> Outcome:
    return await interp.wait(action, frame, interp.surface.wait_load())


async def wait_idle_action(interp: "Interpreter", action: WaitIdleAction, frame: "Frame") -> Outcome:
    return await interp.wait(action, frame, interp.surface.wait_network_idle())


async def wait_visible_action(interp: "Interpreter", action: WaitVisibleAction, frame: "Frame") -> Outcome:
    element = await interp.element(action, frame)
    if not element.ok:
        return element
    return await interp.wait(action, frame, element.value.wait_visible())


async def wait_invisible_action(interp: "Interpreter", action: WaitInvisibleAction, frame: "Frame") -> Outcome:
    element = await interp.element(action, frame)
    if not element.ok:
        return element
    return await interp.wait(action, frame, element.value.wait_invisible())


async def wait_stable_action(interp: "Interpreter", action: WaitStableAction, frame: "Frame") -> Outcome:
    element = await interp.element(action, frame)
    if not element.ok:
        return element
    return await interp.wait(action, frame, element.value.wait_stable())
