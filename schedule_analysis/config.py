from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Dict, Mapping, Optional

from dotenv import dotenv_values

from .errors import ConfigError


@dataclass(frozen=True)
class EngineConfig:
    """
    Tunable constants for the analysis engine.

    The defaults reproduce the published rules of thumb: crashing costs 20 %
    of the task cost, reallocation saves 15 % on tasks above 1000, a leveling
    delay costs 10 % of the duration and 5 % of the cost.
    """

    project_start: int = 0
    normalize_to_zero: bool = False
    float_tolerance: float = 1e-9
    max_critical_paths: int = 100

    crash_step: int = 1
    crash_cost_ratio: float = 0.2
    crash_risk: float = 0.3

    reallocation_cost_threshold: float = 1000.0
    reallocation_savings_ratio: float = 0.15
    reallocation_risk: float = 0.2

    delay_duration_ratio: float = 0.1
    delay_cost_ratio: float = 0.05
    delay_risk: float = 0.1

    # Overlap ratio thresholds, strictly greater than
    severity_critical: float = 0.8
    severity_high: float = 0.5
    severity_medium: float = 0.2

    def __post_init__(self) -> None:
        if self.float_tolerance < 0:
            raise ConfigError("float_tolerance must be non-negative.")
        if self.max_critical_paths < 1:
            raise ConfigError("max_critical_paths must be at least 1.")
        if self.crash_step < 1:
            raise ConfigError("crash_step must be at least 1.")
        if not self.severity_critical >= self.severity_high >= self.severity_medium >= 0:
            raise ConfigError(
                "Severity thresholds must satisfy critical >= high >= medium >= 0."
            )

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        dotenv_path: Optional[str] = None,
        prefix: str = "SCHEDULE_",
    ) -> "EngineConfig":
        """
        Build a config from ``SCHEDULE_<FIELD>`` variables.

        Values from ``dotenv_path`` are used only where the environment does
        not define the same key.
        """
        values: Dict[str, Optional[str]] = {}
        if dotenv_path is not None:
            values.update(dotenv_values(dotenv_path))
        values.update(os.environ if environ is None else environ)

        overrides = {}
        for f in fields(cls):
            raw = values.get(prefix + f.name.upper())
            if raw is None or not raw.strip():
                continue
            overrides[f.name] = _coerce(f.name, f.type, raw.strip())
        return cls(**overrides)

    def with_overrides(self, **changes) -> "EngineConfig":
        return replace(self, **changes)


def _coerce(name: str, type_name: object, raw: str):
    type_name = getattr(type_name, "__name__", type_name)
    try:
        if type_name == "bool":
            lowered = raw.lower()
            if lowered in ("1", "true", "yes", "on"):
                return True
            if lowered in ("0", "false", "no", "off"):
                return False
            raise ValueError(raw)
        if type_name == "int":
            return int(raw)
        return float(raw)
    except ValueError:
        raise ConfigError(f"Invalid value for {name}: '{raw}'.") from None
