"""Psychological-level box engine.

While flat a box forms around the psychological level a bar closes in or
pierces.  A close beyond the box breaks it; the following bars either
retest the box, reverse through the opposite edge, or close past the mid
in the break direction, which opens a position at that close.

While in a trade the stop-loss, tp2 and (after touching the action edge)
tp1 close it.  A bar closing beyond the stop-loss re-boxes: a new box,
already broken toward the opposite side, forms at the previous mid.
"""

from dataclasses import dataclass, replace
from typing import Callable, Optional

from levelzone.engine.base import BaseEngine, StepOutput
from levelzone.engine.config import BoxConfig
from levelzone.engine.events import Event, EventLog, HistoryEntry
from levelzone.engine.position import (
    PositionState,
    check_box_exit,
    close_position,
    exit_price_for,
    open_position,
    reason_from_event,
)
from levelzone.strategy.models import Bar, BoxFacts, Zone
from levelzone.strategy.zones import check_box


@dataclass(frozen=True)
class BoxSnapshot:
    """End-of-bar box fields read by the next bar's re-box."""

    is_bull: Optional[bool]
    mid: Optional[float]


@dataclass(frozen=True)
class BoxState:
    zone: Optional[Zone] = None
    position: Optional[PositionState] = None
    prev: Optional[BoxSnapshot] = None


def _new_box(mid: float, bull: Optional[bool], broken: bool, index: int, config: BoxConfig) -> Zone:
    return Zone(
        top=mid + config.box_step,
        bottom=mid - config.box_step,
        mid=mid,
        created_bar=index,
        is_broken=broken,
        is_bull=bull,
    )


def _box_from_facts(facts: BoxFacts, index: int, config: BoxConfig) -> Optional[Zone]:
    """Box implied by this bar's classification, or ``None``."""
    if facts.closed_in_box:
        return _new_box(facts.mid, None, False, index, config)
    if facts.pierced_up:
        return _new_box(facts.mid, True, True, index, config)
    if facts.pierced_down:
        return _new_box(facts.mid, False, True, index, config)
    return None


def step_box(
    state: BoxState,
    index: int,
    bar: Bar,
    config: BoxConfig,
    classify: Callable = check_box,
) -> tuple[BoxState, StepOutput]:
    """Advance the box state machine by one bar."""
    facts = classify(bar.open, bar.close, config.psyc_step, config.box_step)
    bar_log = EventLog()
    closed = []
    zone = state.zone
    position = state.position

    def emit(event_type: str, **extra) -> None:
        bar_log.append(Event(event_type, index, bar.time, {
            "is_bull": zone.is_bull if zone else None,
            "is_broken": zone.is_broken if zone else False,
            "mid": zone.mid if zone else None,
            "top": zone.top if zone else None,
            "bottom": zone.bottom if zone else None,
            **extra,
        }))

    if position is None:
        # ── Arming ──
        if zone is None:
            zone = _box_from_facts(facts, index, config)
            if zone is not None:
                emit("box_formed", moved=False)
        elif facts.mid is not None and facts.mid != zone.mid:
            zone = _box_from_facts(facts, index, config)
            emit("box_formed", moved=True)
        elif not zone.is_broken:
            if bar.close > zone.top:
                zone = replace(zone, is_bull=True, is_broken=True)
                emit("box_broken_bull")
            elif bar.close < zone.bottom:
                zone = replace(zone, is_bull=False, is_broken=True)
                emit("box_broken_bear")
        else:
            came_back = False
            if facts.closed_in_box and facts.mid == zone.mid:
                zone = replace(zone, is_broken=False)
                emit("box_retest")
                came_back = True
            elif (zone.is_bull and bar.close < zone.bottom) or (
                not zone.is_bull and bar.close > zone.top
            ):
                zone = replace(zone, is_broken=False)
                emit("box_reverse_invalidated")
                came_back = True

            if not came_back and (
                (zone.is_bull and bar.close > zone.mid)
                or (not zone.is_bull and bar.close < zone.mid)
            ):
                side = "long" if zone.is_bull else "short"
                anchor = zone.top if zone.is_bull else zone.bottom
                position = open_position(
                    side, bar.close, anchor,
                    (config.sl_step, config.tp1_step, config.tp2_step),
                    index, bar,
                )
                emit(
                    f"entry_{side}",
                    entry=position.entry,
                    sl=position.sl,
                    tp1=position.tp1,
                    tp2=position.tp2,
                )
    else:
        # ── Managing ──
        check = check_box_exit(position, bar)
        position = check.position
        for event_type, payload in check.hits:
            emit(event_type, **payload)

        if check.exit:
            last = bar_log.last()
            reason = reason_from_event(last.type if last else None)
            exit_price = exit_price_for(position, reason, bar)
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

        if check.rebox and state.prev is not None and state.prev.mid is not None:
            rebox_bull = not state.prev.is_bull
            zone = _new_box(state.prev.mid, rebox_bull, True, index, config)
            emit("box_formed", moved=False)
            emit("sl_rebox_created", rebox_bull=rebox_bull, rebox_mid=state.prev.mid)

    history = HistoryEntry(
        bar=index,
        time=bar.time,
        levels_up=(facts.level_up,),
        levels_dn=(facts.level_dn,),
        active_level=facts.mid,
        zone=zone.to_dict() if zone else None,
        side=position.side if position else None,
    )
    new_state = BoxState(
        zone=zone,
        position=position,
        prev=BoxSnapshot(
            is_bull=zone.is_bull if zone else None,
            mid=zone.mid if zone else None,
        ),
    )
    return new_state, StepOutput(bar_log.entries, tuple(closed), history)


class BoxEngine(BaseEngine):
    """Psychological-level / box engine."""

    name = "box"
    classifier = "box"
    config_cls = BoxConfig

    def initial_state(self) -> BoxState:
        return BoxState()

    def step(self, state: BoxState, index: int, bar: Bar, config: BoxConfig):
        return step_box(state, index, bar, config, self.classify)
