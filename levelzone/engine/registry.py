"""Engine registry — maps engine names to classes.

Used by the API and CLI to pick a variant by name.
"""

from typing import Mapping, Optional

from levelzone.engine.base import BaseEngine, EngineResult
from levelzone.engine.box import BoxEngine
from levelzone.engine.ladder import LadderEngine


ENGINE_REGISTRY: dict[str, type] = {
    "ladder": LadderEngine,
    "box": BoxEngine,
}


def get_engine(name: str) -> BaseEngine:
    """Look up and instantiate an engine by registry key.

    Raises ``KeyError`` if the engine name is not registered.
    """
    if name not in ENGINE_REGISTRY:
        raise KeyError(
            f"Unknown engine '{name}'. "
            f"Available: {', '.join(ENGINE_REGISTRY.keys())}"
        )
    return ENGINE_REGISTRY[name]()


def run_engine(name: str, bars, overrides: Optional[Mapping] = None) -> EngineResult:
    """Run the engine *name* over *bars* with config *overrides*."""
    engine = get_engine(name)
    return engine.run(bars, engine.resolve(overrides=overrides))
