import json
import logging

import pytest

from fakes import FakeSurface
from wayang.config import RunConfig
from wayang.errors import ErrorCode
from wayang.runner import Runner
from wayang.structured_logging import StructuredLogger, prepare_log_paths


def make_runner(surface=None, **kwargs):
    return Runner(surface or FakeSurface(), config=RunConfig(timeout_s=None), **kwargs)


@pytest.mark.asyncio
async def test_run_returns_last_value_and_fills_store():
    surface = FakeSurface()
    surface.add("h1", text="Example Domain")
    runner = make_runner(surface)
    result = await runner.run(
        {
            "selectors": {"heading": "h1"},
            "steps": [
                {"action": "navigate", "link": "https://example.com"},
                {"action": "store", "items": {"title": {"action": "text", "element": "$heading"}}},
                {"action": "textContains", "text": "Example", "statement": {"action": "text", "element": "$heading"}},
            ],
        }
    )
    assert result.ok
    assert result.value is True
    assert runner.store.as_dict() == {"title": "Example Domain"}
    assert result.as_dict() == {"ok": True, "value": True, "error": None}


@pytest.mark.asyncio
async def test_run_accepts_json_documents():
    runner = make_runner()
    result = await runner.run('{"steps": [{"action": "not", "statement": true}]}')
    assert result.ok
    assert result.value is False


@pytest.mark.asyncio
async def test_empty_program_returns_none():
    runner = make_runner()
    result = await runner.run({})
    assert result.ok
    assert result.value is None


@pytest.mark.asyncio
async def test_store_survives_between_runs():
    runner = make_runner()
    await runner.run({"steps": [{"action": "store", "items": {"user": "ada"}}]})
    result = await runner.run({"steps": [{"action": "logStore", "key": "$user"}]})
    assert result.value == "ada"


@pytest.mark.asyncio
async def test_failure_stops_the_run_and_is_logged(caplog):
    caplog.set_level(logging.WARNING, logger="wayang.runner")
    surface = FakeSurface()
    runner = make_runner(surface)
    result = await runner.run(
        {
            "steps": [
                {"action": "log", "message": "start"},
                {"action": "error", "message": "stop"},
                {"action": "navigate", "link": "https://example.com"},
            ]
        }
    )
    assert not result.ok
    assert result.value is None
    assert result.error.code is ErrorCode.USER_RAISED
    assert result.error.source == "root[1].error"
    assert "navigate" not in surface.ops()
    assert "USER_RAISED at root[1].error: stop" in caplog.text


@pytest.mark.asyncio
async def test_unparsable_program_is_reported_at_root():
    runner = make_runner()
    result = await runner.run({"steps": [{"action": "log", "message": "ok"}, {"action": "click", "element": 1}]})
    assert result.error.code is ErrorCode.MALFORMED_ACTION
    assert result.error.source == "root.steps[1]"
    assert result.error.action == {"action": "click", "element": 1}

    unknown = await runner.run({"steps": [{"action": "teleport"}]})
    assert unknown.error.code is ErrorCode.UNKNOWN_ACTION

    garbage = await runner.run("{not json")
    assert garbage.error.code is ErrorCode.MALFORMED_ACTION
    assert garbage.error.source == "root"


@pytest.mark.asyncio
async def test_run_steps_uses_loaded_program():
    surface = FakeSurface()
    surface.add("#buy")
    runner = make_runner(surface)
    await runner.run({"selectors": {"buy": "#buy"}, "actions": {"purchase": {"action": "click", "element": "$buy"}}})

    result = await runner.run_steps([{"action": "$purchase"}, {"action": "has", "element": "$buy"}])
    assert result.value is True
    assert ("click", "#buy#0") in surface.calls

    single = await runner.run_one({"action": "attribute", "element": "$buy", "name": "id"})
    assert single.ok
    assert single.value is None


@pytest.mark.asyncio
async def test_deadline_comes_from_config():
    runner = Runner(FakeSurface(), config=RunConfig(timeout_s=0.05))
    result = await runner.run({"steps": [{"action": "sleep", "duration": 5}]})
    assert result.error.code is ErrorCode.TIMEOUT


@pytest.mark.asyncio
async def test_close_is_idempotent_and_cancels_waits():
    surface = FakeSurface()
    runner = make_runner(surface)
    await runner.close()
    await runner.close()
    assert surface.closed == 1
    assert runner.token.cancelled

    result = await runner.run_one({"action": "sleep", "duration": 1})
    assert result.error.code is ErrorCode.CANCELLED


@pytest.mark.asyncio
async def test_async_context_manager_closes_surface():
    surface = FakeSurface()
    async with make_runner(surface) as runner:
        await runner.run_one({"action": "log", "message": "inside"})
    assert surface.closed == 1


@pytest.mark.asyncio
async def test_structured_events_are_written(tmp_path):
    paths = prepare_log_paths("run-1", tmp_path)
    events = StructuredLogger("run-1", paths)
    runner = make_runner(events=events)
    await runner.run(
        {
            "steps": [
                {"action": "not", "statement": False},
                {"action": "logStore", "key": "$absent"},
            ]
        }
    )
    await runner.close()

    lines = [json.loads(line) for line in paths.events.read_text(encoding="utf-8").splitlines()]
    assert [entry["step"] for entry in lines] == [1, 2]
    assert lines[0]["ok"] is True
    assert lines[0]["value"] is True
    assert lines[0]["source"] == "root[0]"
    assert lines[1]["ok"] is False
    assert lines[1]["error"]["code"] == "UNKNOWN_STORE_KEY"
    assert lines[1]["action"] == {"action": "logStore", "key": "$absent"}


def nest(kind, depth, leaf):
    node = leaf
    for _ in range(depth):
        node = {"action": kind, "statement" if kind == "not" else "statements": node if kind == "not" else [node]}
    return node


@pytest.mark.asyncio
async def test_deeply_nested_program_is_rejected_without_touching_surface():
    surface = FakeSurface()
    runner = make_runner(surface)
    deep = nest("do", 400, {"action": "click", "element": "#x"})

    result = await runner.run({"steps": [deep]})
    assert result.error.code is ErrorCode.RECURSION_LIMIT
    assert result.error.source == "root.steps[0]"
    assert "nested deeper than 128 levels" in result.error.message

    single = await runner.run_one(deep)
    assert single.error.code is ErrorCode.RECURSION_LIMIT
    assert single.error.source == "root[0].do"
    assert surface.calls == []


@pytest.mark.asyncio
async def test_deeply_nested_negation_is_rejected():
    runner = make_runner()
    result = await runner.run({"steps": [nest("not", 200, True)]})
    assert result.error.code is ErrorCode.RECURSION_LIMIT


@pytest.mark.asyncio
async def test_nesting_limit_follows_config():
    runner = Runner(FakeSurface(), config=RunConfig(max_depth=4, timeout_s=None))
    leaf = {"action": "log", "message": "leaf"}

    accepted = await runner.run({"steps": [nest("do", 3, leaf)]})
    assert accepted.ok

    rejected = await runner.run({"steps": [nest("do", 4, leaf)]})
    assert rejected.error.code is ErrorCode.RECURSION_LIMIT
    assert rejected.error.action["action"] == "do"


@pytest.mark.asyncio
async def test_launch_with_run_id_writes_events_under_log_root(tmp_path, monkeypatch):
    surface = FakeSurface()

    async def fake_launch(cls, config):
        return surface

    monkeypatch.setattr("wayang.runner.PlaywrightSurface.launch", classmethod(fake_launch))
    runner = await Runner.launch(RunConfig(log_root=tmp_path, timeout_s=None), run_id="nightly")
    async with runner:
        await runner.run({"steps": [{"action": "log", "message": "hello"}]})

    events = tmp_path / "nightly" / "events.jsonl"
    lines = [json.loads(line) for line in events.read_text(encoding="utf-8").splitlines()]
    assert [entry["run_id"] for entry in lines] == ["nightly"]
    assert lines[0]["action"] == {"action": "log", "message": "hello"}
    assert surface.closed == 1
