import asyncio

import pytest

from fakes import FakeSurface
from wayang.cancellation import CANCELLED, TIMEOUT, CancelToken
from wayang.dsl import build_registry
from wayang.errors import ErrorCode
from wayang.interpreter import Interpreter


async def _value(value, delay=0.0):
    await asyncio.sleep(delay)
    return value


async def _boom():
    raise ValueError("boom")


@pytest.mark.asyncio
async def test_race_returns_result():
    token = CancelToken(timeout=1)
    token.arm()
    assert await token.race(_value(42)) == (True, 42)


@pytest.mark.asyncio
async def test_race_times_out():
    token = CancelToken(timeout=0.05)
    token.arm()
    finished, reason = await token.race(_value(1, delay=1))
    assert finished is False
    assert reason == TIMEOUT
    assert token.expired


@pytest.mark.asyncio
async def test_unarmed_token_has_no_deadline():
    token = CancelToken(timeout=0.01)
    assert token.remaining() is None
    assert await token.race(_value("ok", delay=0.02)) == (True, "ok")


@pytest.mark.asyncio
async def test_cancel_interrupts_race():
    token = CancelToken()
    task = asyncio.create_task(token.race(_value(1, delay=1)))
    await asyncio.sleep(0.02)
    token.cancel()
    assert await task == (False, CANCELLED)


@pytest.mark.asyncio
async def test_cancelled_token_skips_work():
    token = CancelToken()
    token.cancel()
    assert await token.race(_value(1)) == (False, CANCELLED)
    assert token.reason() == CANCELLED


@pytest.mark.asyncio
async def test_race_propagates_exceptions():
    token = CancelToken()
    with pytest.raises(ValueError):
        await token.race(_boom())


def test_arm_keeps_first_deadline():
    token = CancelToken(timeout=10)
    token.arm()
    first = token.remaining()
    token.arm()
    assert token.remaining() <= first


def _interpreter(surface, token):
    registry = build_registry()
    return Interpreter(registry.parse_program({}), surface=surface, registry=registry, token=token)


@pytest.mark.asyncio
async def test_sleep_past_deadline_times_out():
    token = CancelToken(timeout=0.05)
    token.arm()
    interpreter = _interpreter(FakeSurface(), token)
    result = await interpreter.evaluate({"action": "sleep", "duration": 5}, "root[0]")
    assert result.error.code is ErrorCode.TIMEOUT
    assert result.error.source == "root[0].sleep"


@pytest.mark.asyncio
async def test_sleep_within_deadline_succeeds():
    token = CancelToken(timeout=1)
    token.arm()
    interpreter = _interpreter(FakeSurface(), token)
    result = await interpreter.evaluate({"action": "sleep", "duration": 0}, "root[0]")
    assert result.ok
    assert result.value is None


@pytest.mark.asyncio
async def test_cancel_during_wait_is_reported():
    surface = FakeSurface()
    surface.add("#spinner")
    surface.wait_delay = 1
    token = CancelToken()
    interpreter = _interpreter(surface, token)

    task = asyncio.create_task(interpreter.evaluate({"action": "waitInvisible", "element": "#spinner"}, "root[0]"))
    await asyncio.sleep(0.02)
    token.cancel()
    result = await task

    assert result.error.code is ErrorCode.CANCELLED
    assert result.error.source == "root[0].waitInvisible"
    assert ("wait_invisible", "#spinner#0") in surface.calls


@pytest.mark.asyncio
async def test_page_waits_go_through_the_surface():
    surface = FakeSurface()
    surface.add("#card")
    interpreter = _interpreter(surface, CancelToken())
    for action in (
        {"action": "waitLoad"},
        {"action": "waitIdle"},
        {"action": "waitVisible", "element": "#card"},
        {"action": "waitStable", "element": "#card"},
    ):
        assert (await interpreter.evaluate(action, "root[0]")).ok
    assert [op for op in surface.ops() if op != "query_one"] == [
        "wait_load",
        "wait_network_idle",
        "wait_visible",
        "wait_stable",
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize("duration", [-1, True, "0.01"])
async def test_sleep_rejects_invalid_durations_before_waiting(duration):
    surface = FakeSurface()
    token = CancelToken(timeout=1)
    token.arm()
    interpreter = _interpreter(surface, token)
    result = await interpreter.evaluate({"action": "sleep", "duration": duration}, "root[0]")
    assert result.error.code is ErrorCode.MALFORMED_ACTION
    assert result.error.source == "root[0].sleep"
    assert surface.calls == []
