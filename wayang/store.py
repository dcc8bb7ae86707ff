"""Run-scoped result store (the program's ENV)."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterator, Mapping, Optional


class Store:
    """Insertion-ordered key/value table written by the ``store`` action."""

    def __init__(self, initial: Optional[Mapping[str, Any]] = None) -> None:
        self._items: Dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._items.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._items[key] = value

    def commit(self, values: Mapping[str, Any]) -> None:
        """Write a batch of entries; later keys win."""

        self._items.update(values)

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._items)

    def to_json(self, **kwargs: Any) -> str:
        kwargs.setdefault("ensure_ascii", False)
        kwargs.setdefault("default", repr)
        return json.dumps(self._items, **kwargs)

    def __getitem__(self, key: str) -> Any:
        return self._items[key]

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"Store({self._items!r})"
