"""Level-ladder engine — entry zones armed by level crossings.

Per bar, in order:

1. Manage an open position (tp1/tp2 milestones, then SL / TP2 exit).
2. Create an entry zone around this bar's active level (flat only).
3. Activate or invalidate the zone one bar after the crossing.
4. Open a position when an activated zone is retouched.
5. Expire a zone that outlived its lifetime.

The previous bar's active level and close are carried in ``LadderState``;
activation is decided one bar after the triggering crossing.
"""

from dataclasses import dataclass, replace
from typing import Callable, Optional

from levelzone.engine.base import BaseEngine, StepOutput
from levelzone.engine.config import LadderConfig
from levelzone.engine.events import Event, HistoryEntry
from levelzone.engine.position import (
    PositionState,
    check_exit,
    check_milestones,
    close_position,
    open_position,
)
from levelzone.strategy.levels import pips_to_price, process_levels
from levelzone.strategy.models import Bar, Zone
from levelzone.strategy.zones import classify_crossing


@dataclass(frozen=True)
class PrevBar:
    """The only previous-bar fields the ladder reads one bar later."""

    close: float
    is_up: bool


@dataclass(frozen=True)
class LadderState:
    position: Optional[PositionState] = None
    zone: Optional[Zone] = None
    active_level: Optional[float] = None  # becomes the previous level next bar
    prev_bar: Optional[PrevBar] = None


def _new_entry_zone(active_level: float, index: int, config: LadderConfig) -> Zone:
    half = pips_to_price(config.entry_zone_pips, config.pip_size)
    return Zone(
        top=active_level + half,
        bottom=active_level - half,
        mid=active_level,
        created_bar=index,
        expiry_bar=index + config.zone_no_bars,
    )


def _distances(config: LadderConfig) -> tuple[float, float, float]:
    return (
        pips_to_price(config.sl_pips, config.pip_size),
        pips_to_price(config.tp1_pips, config.pip_size),
        pips_to_price(config.tp2_pips, config.pip_size),
    )


def step_ladder(
    state: LadderState,
    index: int,
    bar: Bar,
    config: LadderConfig,
    classify: Callable = classify_crossing,
) -> tuple[LadderState, StepOutput]:
    """Advance the ladder state machine by one bar.

    *classify* picks the active level from the bar body and the nearest
    ladder levels; engines pass the one registered under their name.
    """
    events: list[Event] = []
    closed = []

    def emit(event_type: str, **payload) -> None:
        events.append(Event(event_type, index, bar.time, payload))

    levels = process_levels(bar.close, config.level_pips, config.n_levels, config.pip_size)
    prev_active = state.active_level
    active = classify(bar.open, bar.close, levels.top, levels.bot)
    prev = state.prev_bar
    position = state.position
    zone = state.zone

    # 1. Manage the open position before any new-entry logic
    if position is not None:
        position, hits = check_milestones(position, bar, prev.close if prev else None)
        for event_type, target in hits:
            emit(event_type, tp=target)

        result = check_exit(position, bar)
        if result is not None:
            reason, exit_price = result
            emit(
                "position_closed",
                reason=reason,
                side=position.side,
                entry=position.entry,
                sl=position.sl,
                tp1=position.tp1,
                tp2=position.tp2,
                exit_price=exit_price,
            )
            closed.append(close_position(position, reason, exit_price, index, bar))
            position = None
            zone = None

    # 2. New entry zone around this bar's active level
    if position is None and active is not None:
        if zone is not None:
            emit("entry_zone_removed", zone=zone.to_dict())
        zone = _new_entry_zone(active, index, config)
        emit("entry_zone_created", zone=zone.to_dict(), active_level=active)

    # 3. Activation, one bar after the crossing
    if (
        position is None
        and zone is not None
        and zone.activation is None
        and prev_active is not None
        and active is None
        and prev is not None
    ):
        if prev.is_up and prev.close > prev_active and bar.close > zone.top:
            zone = replace(zone, activation="long")
            emit(
                "entry_zone_activated_long",
                zone=zone.to_dict(),
                prev_close=prev.close,
                prev_active_level=prev_active,
            )
        elif not prev.is_up and prev.close < prev_active and bar.close < zone.bottom:
            zone = replace(zone, activation="short")
            emit(
                "entry_zone_activated_short",
                zone=zone.to_dict(),
                prev_close=prev.close,
                prev_active_level=prev_active,
            )
        else:
            emit("entry_zone_activation_failed", zone=zone.to_dict())
            zone = None

    # 4. Position open on retouch of an activated zone
    if (
        position is None
        and prev_active is None
        and active is None
        and zone is not None
        and zone.activation is not None
    ):
        confirm = config.close_below_entry_zone
        if (
            zone.activation == "long"
            and bar.low <= zone.top
            and (bar.close > zone.top if confirm else True)
        ):
            position = open_position("long", zone.top, zone.top, _distances(config), index, bar)
            condition = (
                f"close({bar.close}) > entry_zone_top({zone.top})"
                if confirm else f"low({bar.low}) <= entry_zone_top({zone.top})"
            )
        elif (
            zone.activation == "short"
            and bar.high >= zone.bottom
            and (bar.close < zone.bottom if confirm else True)
        ):
            position = open_position("short", zone.bottom, zone.bottom, _distances(config), index, bar)
            condition = (
                f"close({bar.close}) < entry_zone_bot({zone.bottom})"
                if confirm else f"high({bar.high}) >= entry_zone_bot({zone.bottom})"
            )

        if position is not None:
            emit(
                f"position_opened_{position.side}",
                entry=position.entry,
                sl=position.sl,
                tp1=position.tp1,
                tp2=position.tp2,
                trigger_price=position.anchor,
                condition_met=condition,
                zone=zone.to_dict(),
            )
            zone = None

    # 5. Expiry of an unconsumed zone
    if (
        zone is not None
        and position is None
        and zone.expiry_bar is not None
        and index >= zone.expiry_bar
    ):
        emit("entry_zone_expired", zone=zone.to_dict())
        zone = None

    history = HistoryEntry(
        bar=index,
        time=bar.time,
        levels_up=levels.up,
        levels_dn=levels.dn,
        active_level=active,
        zone=zone.to_dict() if zone else None,
        side=position.side if position else None,
    )
    new_state = LadderState(
        position=position,
        zone=zone,
        active_level=active,
        prev_bar=PrevBar(close=bar.close, is_up=bar.is_up),
    )
    return new_state, StepOutput(tuple(events), tuple(closed), history)


class LadderEngine(BaseEngine):
    """Level-ladder / entry-zone engine."""

    name = "ladder"
    classifier = "crossing"
    config_cls = LadderConfig

    def initial_state(self) -> LadderState:
        return LadderState()

    def step(self, state: LadderState, index: int, bar: Bar, config: LadderConfig):
        return step_ladder(state, index, bar, config, self.classify)

    def pip_unit(self, config: LadderConfig) -> float:
        return config.pip_size
