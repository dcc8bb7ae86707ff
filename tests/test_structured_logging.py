import json

from wayang.structured_logging import StructuredLogger, prepare_log_paths


def test_events_are_appended_as_json_lines(tmp_path):
    paths = prepare_log_paths("abc", tmp_path)
    assert paths.base == tmp_path / "abc"
    logger = StructuredLogger("abc", paths)
    assert logger.log_event(source="root[0]", action={"action": "log", "message": "hi"}, ok=True) == 1
    assert logger.log_event(source="root[1]", action={}, ok=False, error={"code": "TIMEOUT"}, duration_ms=1.5) == 2
    logger.close()
    logger.close()

    entries = [json.loads(line) for line in paths.events.read_text(encoding="utf-8").splitlines()]
    assert entries[0]["run_id"] == "abc"
    assert entries[0]["action"]["message"] == "hi"
    assert entries[1]["error"] == {"code": "TIMEOUT"}
    assert entries[1]["duration_ms"] == 1.5
