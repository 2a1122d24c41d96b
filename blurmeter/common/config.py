from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from blurmeter.quality.blur_meter import BlurMeterConfig


def load_yaml(path: str | Path) -> dict[str, Any]:
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Malformed YAML in {p}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping at the top of {p}, got {type(data).__name__}")
    return data


@dataclass(frozen=True)
class AppConfig:
    raw: dict[str, Any]

    @classmethod
    def from_file(cls, path: str | Path) -> "AppConfig":
        return cls(raw=load_yaml(path))

    def section(self, name: str) -> dict[str, Any]:
        value = self.raw.get(name)
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ValueError(f"Config section '{name}' must be a mapping, got {type(value).__name__}")
        return value

    def blur_meter_config(self) -> BlurMeterConfig:
        return BlurMeterConfig.from_mapping(self.section("blur_meter"))

    def log_level(self, default: str = "INFO") -> str:
        return str(self.section("logging").get("level", default))
