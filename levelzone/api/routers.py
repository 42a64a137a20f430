"""Internal API routers — /engines listing, defaults and run endpoints.

No engine logic here.  Delegates to the engine registry and formats
results for the charting surface.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from levelzone.backtest.stats import calculate_stats
from levelzone.engine.errors import EngineInputError
from levelzone.engine.registry import ENGINE_REGISTRY, get_engine

logger = logging.getLogger("levelzone.api")
router = APIRouter()


def _error(status_code: int, error_type: str, *errors: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "error_type": error_type, "errors": list(errors)},
    )


@router.get("/engines")
async def list_engines():
    """Return the registered engines with their default configs."""
    engines = []
    for name, engine_cls in ENGINE_REGISTRY.items():
        engines.append({
            "name": name,
            "classifier": engine_cls.classifier,
            "defaults": engine_cls.config_cls().to_dict(),
        })
    return {"engines": engines}


@router.get("/engines/{name}/defaults")
async def get_defaults(name: str):
    """Return the default config of engine *name*."""
    if name not in ENGINE_REGISTRY:
        return _error(404, "UnknownEngine", f"Unknown engine '{name}'")
    return ENGINE_REGISTRY[name].config_cls().to_dict()


@router.post("/engines/{name}/run")
async def run_engine(name: str, body: dict):
    """Run engine *name* over ``body["bars"]`` with ``body["config"]`` overrides.

    Returns the output bundle plus ledger statistics.  Input errors are
    reported with HTTP 422 before any bar is processed.
    """
    if name not in ENGINE_REGISTRY:
        return _error(404, "UnknownEngine", f"Unknown engine '{name}'")

    bars = body.get("bars")
    overrides = body.get("config") or {}
    if not isinstance(bars, list):
        return _error(422, "InvalidBody", "'bars' must be a list of bar objects")
    if not isinstance(overrides, dict):
        return _error(422, "InvalidBody", "'config' must be an object")

    engine = get_engine(name)
    try:
        result = engine.run(bars, engine.resolve(overrides=overrides))
    except EngineInputError as exc:
        logger.warning("Engine '%s' rejected input: %s", name, exc)
        return _error(422, type(exc).__name__, str(exc))

    stats = calculate_stats(result.positions_closed, engine.pip_unit(result.config))
    return {"status": "ok", "result": result.to_dict(), "stats": stats}
