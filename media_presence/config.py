from __future__ import annotations

import json
from dataclasses import dataclass, replace
import logging
import os
from pathlib import Path
from typing import Any, Callable

logger = logging.getLogger(__name__)

_ENV_PREFIX = "MEDIA_PRESENCE_"


def _config_dir() -> Path:
    xdg = os.getenv("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "media-presence"
    return Path.home() / ".config" / "media-presence"


def _config_file() -> Path:
    return _config_dir() / "config.json"


@dataclass(frozen=True)
class AppConfig:
    config_dir: Path

    # Presentation (terminal columns)
    min_width: int = 24
    max_width: int = 64
    animation_ms: int = 300

    # Rendering
    frame_hz: float = 60.0
    use_alt_screen: bool = True

    # One-shot control: how long to wait for the first property replies
    settle_timeout_s: float = 2.0

    def with_overrides(self, **overrides: Any) -> "AppConfig":
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip() not in ("0", "false", "False", "no", "off", "")


# key -> (env suffix, parser)
_FIELDS: dict[str, tuple[str, Callable[[Any], Any]]] = {
    "min_width": ("MIN_WIDTH", int),
    "max_width": ("MAX_WIDTH", int),
    "animation_ms": ("ANIMATION_MS", int),
    "frame_hz": ("FRAME_HZ", float),
    "use_alt_screen": ("ALT_SCREEN", _parse_bool),
    "settle_timeout_s": ("SETTLE_TIMEOUT", float),
}


def _load_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable config %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: top level is not an object", path)
        return {}
    return data


def load_config() -> AppConfig:
    # Priority: config.json → MEDIA_PRESENCE_* env → defaults
    config_dir = _config_dir()
    file_values = _load_file(config_dir / "config.json")

    values: dict[str, Any] = {}
    for key, (env_suffix, parse) in _FIELDS.items():
        raw = file_values.get(key)
        if raw is None:
            raw = os.getenv(_ENV_PREFIX + env_suffix)
        if raw is None:
            continue
        try:
            values[key] = parse(raw)
        except (TypeError, ValueError):
            logger.warning("Invalid value for %s: %r, using default", key, raw)

    cfg = AppConfig(config_dir=config_dir, **values)
    if cfg.min_width > cfg.max_width:
        logger.warning("min_width %d > max_width %d, swapping", cfg.min_width, cfg.max_width)
        cfg = replace(cfg, min_width=cfg.max_width, max_width=cfg.min_width)
    return cfg


def save_config(**values: Any) -> Path:
    cfg_path = _config_file()
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    data = _load_file(cfg_path)
    for key, value in values.items():
        if key not in _FIELDS:
            raise KeyError(f"Unknown config key: {key}")
        data[key] = value
    cfg_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    return cfg_path
