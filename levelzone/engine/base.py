"""Engine base class and shared result types.

An engine is a pure reducer ``step(state, index, bar, config)`` folded
over the bar sequence by ``BaseEngine.run``.  Callers wanting incremental
evaluation hold the state themselves and call ``step`` bar by bar.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from levelzone.engine.config import resolve_config
from levelzone.engine.events import Event, EventLog, HistoryEntry, HistoryTrack
from levelzone.engine.position import ClosedPosition, PositionState
from levelzone.engine.validation import validate_bars
from levelzone.strategy.models import Bar
from levelzone.strategy.zones import get_classifier

logger = logging.getLogger("levelzone.engine")


@dataclass(frozen=True)
class StepOutput:
    """Everything one bar appends to the run's records."""

    events: tuple[Event, ...]
    closed: tuple[ClosedPosition, ...]
    history: HistoryEntry


@dataclass(frozen=True)
class EngineResult:
    """Output bundle of one engine run."""

    engine: str
    positions_closed: tuple[ClosedPosition, ...]
    open_position: Optional[PositionState]
    levels_history: tuple[HistoryEntry, ...]
    events: tuple[Event, ...]
    config: Any

    def to_dict(self) -> dict:
        """JSON-ready rendition of the bundle."""
        return {
            "engine": self.engine,
            "positions_closed": [p.to_dict() for p in self.positions_closed],
            "open_position": (
                self.open_position.to_public() if self.open_position else None
            ),
            "levels_history": [h.to_dict() for h in self.levels_history],
            "events": [e.to_dict() for e in self.events],
            "config": self.config.to_dict(),
        }


class BaseEngine(ABC):
    """Folds a variant's ``step`` reducer over a validated bar sequence.

    Subclasses set ``name``, ``classifier`` and ``config_cls`` and
    implement ``initial_state`` and ``step``.  The zone classifier is
    looked up by name in the classifier registry when the engine is built
    and handed to ``step`` as ``self.classify``.
    """

    name: str = ""
    classifier: str = ""
    config_cls: type = type(None)

    def __init__(self) -> None:
        self.classify: Callable = get_classifier(self.classifier)

    @abstractmethod
    def initial_state(self):
        """Return the state before the first bar."""
        ...

    @abstractmethod
    def step(self, state, index: int, bar: Bar, config):
        """Advance *state* by one bar; return ``(state, StepOutput)``."""
        ...

    def pip_unit(self, config) -> float:
        """Price value of one pip for ledger statistics."""
        return 1.0

    def resolve(self, config=None, overrides: Optional[Mapping] = None):
        """Return a validated config from *config* and/or *overrides*."""
        if config is None:
            return resolve_config(self.config_cls, overrides)
        if not isinstance(config, self.config_cls):
            raise TypeError(
                f"{self.name} engine expects {self.config_cls.__name__}, "
                f"got {type(config).__name__}"
            )
        return resolve_config(self.config_cls, {**config.to_dict(), **(overrides or {})})

    def run(
        self,
        bars: Iterable[Union[Bar, Mapping]],
        config=None,
        **overrides,
    ) -> EngineResult:
        """Execute one full run.

        Args:
            bars: Ordered bars (``Bar`` objects or mappings).
            config: Optional config instance; defaults are used when omitted.
            **overrides: Individual config fields to override.

        Raises:
            InvalidConfig, EmptyInput, MalformedBar: before any bar is
                processed; no partial output is produced.
        """
        config = self.resolve(config, overrides)
        checked = validate_bars(bars)
        logger.info("Engine '%s' starting: %d bars", self.name, len(checked))

        events = EventLog()
        history = HistoryTrack()
        closed: list[ClosedPosition] = []
        state = self.initial_state()

        for index, bar in enumerate(checked):
            state, out = self.step(state, index, bar, config)
            for event in out.events:
                logger.debug("bar %d: %s", index, event.type)
            events.extend(out.events)
            closed.extend(out.closed)
            history.record(out.history)

        logger.info(
            "Engine '%s' finished: %d events, %d closed, open=%s",
            self.name, len(events), len(closed),
            state.position.side if state.position else None,
        )
        return EngineResult(
            engine=self.name,
            positions_closed=tuple(closed),
            open_position=state.position,
            levels_history=history.entries,
            events=events.entries,
            config=config,
        )
