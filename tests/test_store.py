from wayang.store import Store


def test_commit_keeps_insertion_order_and_last_write_wins():
    store = Store({"a": 1})
    store.commit({"b": 2, "a": 3})
    assert store.as_dict() == {"a": 3, "b": 2}
    assert list(store) == ["a", "b"]
    assert store["a"] == 3
    assert "b" in store and "c" not in store
    assert store.get("c", "fallback") == "fallback"


def test_to_json_handles_non_json_values():
    store = Store()
    store.set("title", "Über")
    store.set("obj", object())
    text = store.to_json()
    assert '"title": "Über"' in text
    assert "object object" in text
