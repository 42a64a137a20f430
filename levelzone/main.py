"""LevelZone — application entry point.

Boots the FastAPI internal server and provides the CLI entry point for
``run`` (one engine run over a bar file) and ``serve`` modes.
"""

import json
import logging
import sys
from dataclasses import fields

from fastapi import FastAPI

from levelzone.api.routers import router

app = FastAPI(title="LevelZone Internal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("levelzone")


@app.get("/health")
async def health():
    """Liveness check."""
    return {"status": "ok"}


# ── CLI ──────────────────────────────────────────────────────────────────


def parse_overrides(pairs: list[str], config_cls: type) -> dict:
    """Turn ``key=value`` strings into typed overrides for *config_cls*.

    Raises ``ValueError`` for malformed pairs or unknown keys.
    """
    from levelzone.config import parse_value

    kinds = {f.name: f.type for f in fields(config_cls)}
    overrides = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"--set expects key=value, got '{pair}'")
        if key not in kinds:
            raise ValueError(
                f"Unknown option '{key}'. Available: {', '.join(kinds)}"
            )
        overrides[key] = parse_value(f"--set {key}", raw.strip(), kinds[key])
    return overrides


def _run_cli(argv: list[str] | None = None) -> int:
    """Parse CLI arguments and dispatch to the appropriate mode."""
    import argparse

    from levelzone.config import load_settings
    from levelzone.engine.registry import ENGINE_REGISTRY

    parser = argparse.ArgumentParser(description="LevelZone price-level engines")
    parser.add_argument(
        "--mode",
        choices=["run", "serve"],
        default="run",
        help="Run an engine over a bar file, or serve the API (default: run)",
    )
    parser.add_argument("--engine", choices=sorted(ENGINE_REGISTRY), help="Engine variant")
    parser.add_argument("--bars", help="Bar file (.csv or .parquet)")
    parser.add_argument("--sort", action="store_true", help="Sort bars by time before running")
    parser.add_argument(
        "--instrument",
        help="Instrument whose pip size seeds pip_size (ladder engine)",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override one engine config option (repeatable)",
    )
    parser.add_argument("--json", dest="json_path", help="Write the output bundle to this path")
    parser.add_argument("--env", dest="env_path", help="Path to a .env file")
    args = parser.parse_args(argv)

    settings = load_settings(args.env_path)
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if args.mode == "serve":
        import uvicorn

        logger.info("Serving LevelZone API on port %d", settings.api_port)
        uvicorn.run(app, host="0.0.0.0", port=settings.api_port, log_level="info")
        return 0

    if not args.bars:
        parser.error("--bars is required in run mode")

    engine_name = args.engine or settings.engine
    try:
        return _run_engine(engine_name, settings, args)
    except ValueError as exc:
        logger.error("Run failed: %s", exc)
        return 2


def _run_engine(engine_name: str, settings, args) -> int:
    """Load bars, run *engine_name* and report."""
    from levelzone.backtest.stats import calculate_stats
    from levelzone.cli.report import print_summary
    from levelzone.data.loader import load_bars
    from levelzone.engine.registry import get_engine
    from levelzone.strategy.models import INSTRUMENT_PIP_VALUES

    engine = get_engine(engine_name)

    overrides = dict(settings.engine_overrides) if engine_name == settings.engine else {}
    if args.instrument:
        if args.instrument not in INSTRUMENT_PIP_VALUES:
            raise ValueError(f"No pip size known for instrument '{args.instrument}'")
        if engine_name == "ladder":
            overrides["pip_size"] = INSTRUMENT_PIP_VALUES[args.instrument]
    overrides.update(parse_overrides(args.overrides, engine.config_cls))

    bars = load_bars(args.bars, sort=args.sort)
    result = engine.run(bars, engine.resolve(overrides=overrides))
    stats = calculate_stats(result.positions_closed, engine.pip_unit(result.config))
    print_summary(result, stats)

    if args.json_path:
        with open(args.json_path, "w", encoding="utf-8") as f:
            json.dump({**result.to_dict(), "stats": stats}, f, indent=2)
        logger.info("Wrote output bundle to %s", args.json_path)
    return 0


if __name__ == "__main__":
    sys.exit(_run_cli())
