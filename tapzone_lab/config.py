from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "TAPZONE_CONFIG_PATH"


@dataclass(frozen=True, slots=True)
class EngineConfig:
    # Adaptive tap zone.
    base_radius: float = 30.0
    min_radius: float = 20.0
    max_radius: float = 150.0
    region_count: int = 5

    # Two-step protocol.
    coarse_radius: float = 100.0
    precise_radius: float = 20.0
    zoom_scale: float = 2.0
    zoom_radius: float = 150.0
    retry_on_precise_miss: bool = False

    # Escalation / magnifier assist.
    max_failed_attempts: int = 3
    zoom_step: float = 0.5
    min_zoom_level: float = 1.0
    max_zoom_level: float = 5.0
    magnifier_radius: float = 100.0

    # Layout.
    chart_padding: float = 50.0
    target_padding: float = 50.0

    def validate(self) -> None:
        if self.min_radius <= 0.0:
            raise ValueError("min_radius must be > 0")
        if not (self.min_radius <= self.base_radius <= self.max_radius):
            raise ValueError("base_radius must be in [min_radius, max_radius]")
        if self.region_count < 1:
            raise ValueError("region_count must be >= 1")
        if self.coarse_radius <= 0.0 or self.precise_radius <= 0.0:
            raise ValueError("coarse_radius and precise_radius must be > 0")
        if self.zoom_scale <= 0.0:
            raise ValueError("zoom_scale must be > 0")
        if self.zoom_radius <= 0.0 or self.magnifier_radius <= 0.0:
            raise ValueError("zoom_radius and magnifier_radius must be > 0")
        if self.max_failed_attempts < 1:
            raise ValueError("max_failed_attempts must be >= 1")
        if self.zoom_step < 0.0:
            raise ValueError("zoom_step must be >= 0")
        if not (1.0 <= self.min_zoom_level <= self.max_zoom_level):
            raise ValueError("zoom levels must satisfy 1.0 <= min_zoom_level <= max_zoom_level")
        if self.chart_padding < 0.0 or self.target_padding < 0.0:
            raise ValueError("padding must be >= 0")


def default_config_path() -> Path:
    explicit = os.environ.get(CONFIG_PATH_ENV)
    if explicit:
        return Path(explicit).expanduser()
    return Path.home() / ".tapzone_lab.json"


def config_from_mapping(data: object, *, base: EngineConfig | None = None) -> EngineConfig:
    """Apply recognised keys from ``data`` on top of ``base``.

    Unknown keys and values of the wrong type are skipped; the merged result
    is validated.
    """

    cfg = base or EngineConfig()
    if not isinstance(data, dict):
        return cfg

    overrides: dict[str, object] = {}
    for f in fields(EngineConfig):
        if f.name not in data:
            continue
        raw = data[f.name]
        current = getattr(cfg, f.name)
        try:
            if isinstance(current, bool):
                if not isinstance(raw, bool):
                    raise TypeError(f.name)
                overrides[f.name] = raw
            elif isinstance(current, int):
                overrides[f.name] = int(raw)
            else:
                overrides[f.name] = float(raw)
        except (TypeError, ValueError):
            logger.warning("ignoring config key %r with value %r", f.name, raw)

    unknown = sorted(str(k) for k in data if k not in {f.name for f in fields(EngineConfig)})
    if unknown:
        logger.warning("ignoring unknown config keys: %s", ", ".join(unknown))

    merged = replace(cfg, **overrides)
    merged.validate()
    return merged


def load_config(path: Path) -> EngineConfig:
    if not path.exists():
        return EngineConfig()
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("could not read config %s: %s", path, exc)
        return EngineConfig()
    return config_from_mapping(payload)


def config_from_env() -> EngineConfig:
    return load_config(default_config_path())
