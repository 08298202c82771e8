"""Match settings and their JSON loader."""

from __future__ import annotations

import json
import math
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping


class ConfigError(ValueError):
    """Raised when a settings file or mapping cannot be used."""


@dataclass(frozen=True)
class CooldownTable:
    """Base cooldown durations (s) before any difficulty scaling."""

    concentration: float = 3.0
    heat: float = 5.0
    cool: float = 5.0
    pressurize: float = 5.0
    depressurize: float = 5.0
    ability: float = 1.0
    minimum: float = 0.25

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if not math.isfinite(value) or value < 0:
                raise ConfigError(f"cooldown {f.name} must be a non-negative number, got {value}")
        if self.minimum <= 0:
            raise ConfigError(f"cooldown minimum must be positive, got {self.minimum}")


@dataclass(frozen=True)
class MatchSettings:
    """Settings a host hands to :class:`ccbalance.match.Match`."""

    round_seconds: int = 30
    max_rounds: int = 10
    tier: int = 2
    settle_seconds: float = 2.0
    concentration_fraction: float = 0.05
    temperature_step: float = 20.0
    pressure_step: float = 50.0
    dampening_factor: float = 0.5
    cooldowns: CooldownTable = field(default_factory=CooldownTable)

    def __post_init__(self) -> None:
        if self.round_seconds < 1:
            raise ConfigError(f"round_seconds must be >= 1, got {self.round_seconds}")
        if self.max_rounds < 1:
            raise ConfigError(f"max_rounds must be >= 1, got {self.max_rounds}")
        if not 0 <= self.tier <= 4:
            raise ConfigError(f"tier must be between 0 and 4, got {self.tier}")
        for name in ("settle_seconds", "concentration_fraction", "temperature_step", "pressure_step"):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise ConfigError(f"{name} must be a non-negative number, got {value}")
        if not 0 <= self.dampening_factor <= 1:
            raise ConfigError(f"dampening_factor must be within [0, 1], got {self.dampening_factor}")

    def with_overrides(self, **overrides: Any) -> MatchSettings:
        """Copy with the non-None overrides applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> MatchSettings:
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown settings: {', '.join(sorted(unknown))}")
        values = dict(data)
        cooldown_data = values.pop("cooldowns", None) or {}
        cooldown_known = {f.name for f in fields(CooldownTable)}
        bad = set(cooldown_data) - cooldown_known
        if bad:
            raise ConfigError(f"Unknown cooldown entries: {', '.join(sorted(bad))}")
        try:
            cooldowns = CooldownTable(**{k: float(v) for k, v in cooldown_data.items()})
            return cls(cooldowns=cooldowns, **values)
        except ConfigError:
            raise
        except (TypeError, ValueError) as exc:
            raise ConfigError(str(exc)) from exc

    def to_mapping(self) -> dict[str, Any]:
        return asdict(self)


def load_settings(path: str | Path) -> MatchSettings:
    """Read :class:`MatchSettings` from a JSON file."""
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Cannot read settings from {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Settings file {path} must contain a JSON object")
    return MatchSettings.from_mapping(data)
