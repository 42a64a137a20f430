"""LevelZone — application configuration.

Loads .env variables into a typed settings object.  Engine option
overrides are read from ``LEVELZONE_<FIELD>`` for the selected engine's
config fields (e.g. ``LEVELZONE_PIP_SIZE``).
"""

import os
from dataclasses import dataclass, field, fields

from dotenv import load_dotenv

from levelzone.engine.registry import ENGINE_REGISTRY

_PREFIX = "LEVELZONE_"
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    """Typed configuration loaded from environment variables."""

    engine: str
    log_level: str
    api_port: int
    engine_overrides: dict = field(default_factory=dict)


def load_settings(env_path: str | None = None) -> Settings:
    """Load settings from environment variables.

    Raises ``ValueError`` with a message naming the variable when a value
    cannot be parsed or the engine name is unknown.
    """
    load_dotenv(dotenv_path=env_path)

    engine = os.environ.get(f"{_PREFIX}ENGINE", "ladder")
    if engine not in ENGINE_REGISTRY:
        raise ValueError(
            f"{_PREFIX}ENGINE must be one of {', '.join(ENGINE_REGISTRY)}, got '{engine}'"
        )

    return Settings(
        engine=engine,
        log_level=os.environ.get(f"{_PREFIX}LOG_LEVEL", "INFO").upper(),
        api_port=parse_value(f"{_PREFIX}API_PORT", os.environ.get(f"{_PREFIX}API_PORT", "8080"), int),
        engine_overrides=_engine_overrides(ENGINE_REGISTRY[engine].config_cls),
    )


def _engine_overrides(config_cls: type) -> dict:
    """Collect ``LEVELZONE_<FIELD>`` values for *config_cls* fields."""
    overrides = {}
    for f in fields(config_cls):
        var = f"{_PREFIX}{f.name.upper()}"
        raw = os.environ.get(var)
        if raw is None or raw == "":
            continue
        overrides[f.name] = parse_value(var, raw, f.type)
    return overrides


def parse_value(var: str, raw: str, kind: type):
    """Parse the string *raw* as *kind*; *var* names it in error messages."""
    if kind is bool:
        value = raw.strip().lower()
        if value in _TRUE:
            return True
        if value in _FALSE:
            return False
        raise ValueError(f"{var} must be a boolean, got '{raw}'")
    try:
        return kind(raw)
    except ValueError as exc:
        raise ValueError(f"{var} must be {kind.__name__}, got '{raw}'") from exc
