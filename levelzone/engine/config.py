"""Engine configuration — immutable, defaulted value sets for one run.

Each engine variant has its own frozen dataclass.  Callers override any
subset of fields; everything else keeps the default.  Validation happens
once, before any bar is processed.
"""

import math
from dataclasses import asdict, dataclass, fields
from typing import Mapping, Optional

from levelzone.engine.errors import InvalidConfig


@dataclass(frozen=True)
class LadderConfig:
    """Level-ladder / entry-zone engine settings."""

    pip_size: float = 0.01
    level_pips: float = 500
    n_levels: int = 4
    entry_zone_pips: float = 50
    zone_no_bars: int = 40  # zone lifetime in bars
    close_below_entry_zone: bool = True  # confirm entry by close, not touch
    sl_pips: float = 150
    tp1_pips: float = 150
    tp2_pips: float = 300

    def validate(self) -> None:
        """Raise ``InvalidConfig`` for the first unusable value."""
        for name in ("pip_size", "level_pips", "entry_zone_pips",
                     "sl_pips", "tp1_pips", "tp2_pips"):
            _require_positive(name, getattr(self, name))
        for name in ("n_levels", "zone_no_bars"):
            _require_count(name, getattr(self, name))
        if not isinstance(self.close_below_entry_zone, bool):
            raise InvalidConfig("close_below_entry_zone", "must be a boolean")

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class BoxConfig:
    """Psychological-level / box engine settings, in price units."""

    psyc_step: float = 5
    box_step: float = 0.5  # box half-width
    sl_step: float = 1.5
    tp1_step: float = 1.5
    tp2_step: float = 3

    def validate(self) -> None:
        """Raise ``InvalidConfig`` for the first unusable value."""
        for name in ("psyc_step", "box_step", "sl_step", "tp1_step", "tp2_step"):
            _require_positive(name, getattr(self, name))

    def to_dict(self) -> dict:
        return asdict(self)


def resolve_config(config_cls: type, overrides: Optional[Mapping] = None):
    """Merge *overrides* onto *config_cls* defaults and validate.

    Integral floats (``4.0``) are accepted for count fields.

    Raises ``InvalidConfig`` for unknown keys or bad values.
    """
    overrides = dict(overrides or {})
    known = {f.name: f.type for f in fields(config_cls)}

    values = {}
    for key, value in overrides.items():
        if key not in known:
            raise InvalidConfig(
                key, f"unknown option (available: {', '.join(known)})"
            )
        if known[key] is int and isinstance(value, float) and value.is_integer():
            value = int(value)
        values[key] = value

    try:
        config = config_cls(**values)
    except TypeError as exc:
        raise InvalidConfig(config_cls.__name__, str(exc)) from exc
    config.validate()
    return config


# ── Helpers ──────────────────────────────────────────────────────────────


def _require_positive(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidConfig(name, f"must be a number, got {value!r}")
    if not math.isfinite(value):
        raise InvalidConfig(name, f"must be finite, got {value!r}")
    if value <= 0:
        raise InvalidConfig(name, f"must be positive, got {value!r}")


def _require_count(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidConfig(name, f"must be an integer, got {value!r}")
    if value <= 0:
        raise InvalidConfig(name, f"must be positive, got {value!r}")
