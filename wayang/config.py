"""Configuration loader for the wayang runtime."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

ENV_PREFIX = "WAYANG_"

DEFAULTS: Dict[str, Any] = {
    "timeout_s": 30.0,
    "action_timeout_ms": 10000,
    "navigation_timeout_ms": 30000,
    "wait_timeout_ms": 30000,
    "max_depth": 128,
    "max_source_length": 1000,
    "headless": True,
    "cdp_url": None,
    "log_root": "runs",
}


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"true", "1", "yes", "on"}


def _as_timeout(value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, str) and value.strip().lower() in {"", "none", "off"}:
        return None
    seconds = float(value)
    return seconds if seconds > 0 else None


@dataclass(slots=True)
class RunConfig:
    timeout_s: Optional[float] = DEFAULTS["timeout_s"]
    action_timeout_ms: int = DEFAULTS["action_timeout_ms"]
    navigation_timeout_ms: int = DEFAULTS["navigation_timeout_ms"]
    wait_timeout_ms: int = DEFAULTS["wait_timeout_ms"]
    max_depth: int = DEFAULTS["max_depth"]
    max_source_length: int = DEFAULTS["max_source_length"]
    headless: bool = DEFAULTS["headless"]
    cdp_url: Optional[str] = DEFAULTS["cdp_url"]
    log_root: Path = field(default_factory=lambda: Path(DEFAULTS["log_root"]))

    @classmethod
    def from_mapping(cls, mapping: Dict[str, Any]) -> "RunConfig":
        data = dict(DEFAULTS)
        data.update(mapping)
        return cls(
            timeout_s=_as_timeout(data["timeout_s"]),
            action_timeout_ms=int(data["action_timeout_ms"]),
            navigation_timeout_ms=int(data["navigation_timeout_ms"]),
            wait_timeout_ms=int(data["wait_timeout_ms"]),
            max_depth=int(data["max_depth"]),
            max_source_length=int(data["max_source_length"]),
            headless=_as_bool(data["headless"]),
            cdp_url=str(data["cdp_url"]) if data["cdp_url"] else None,
            log_root=Path(data["log_root"]),
        )


def _load_toml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("rb") as fh:
        return tomllib.load(fh)


def load_config(config_path: Path | None = None) -> RunConfig:
    """Load configuration from environment, optional TOML file, and defaults."""

    env_map: Dict[str, Any] = {}
    for key, value in os.environ.items():
        if key.startswith(ENV_PREFIX):
            name = key[len(ENV_PREFIX):].lower()
            if name in DEFAULTS:
                env_map[name] = value

    path = config_path or Path("config.toml")
    file_map: Dict[str, Any] = _load_toml(path).get("wayang", {})

    merged = {**file_map, **env_map}
    return RunConfig.from_mapping(merged)
