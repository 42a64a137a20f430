"""Single-position lifecycle — open, milestones, exits, close.

Flat → long/short → flat.  A position's sl/tp1/tp2 are set once at open
and are never changed while it is open; milestone flags are updated with
``dataclasses.replace`` on the frozen state.
"""

from dataclasses import asdict, dataclass, replace
from typing import Optional

from levelzone.strategy.models import Bar, BarTime, Side

REASON_SL = "SL"
REASON_TP2 = "TP2"
REASON_TP1 = "TP1"
REASON_EXIT = "EXIT"

CLOSE_REASONS = (REASON_SL, REASON_TP2, REASON_TP1, REASON_EXIT)


@dataclass(frozen=True)
class PositionState:
    """An open position."""

    side: Side
    entry: float
    sl: float
    tp1: float
    tp2: float
    anchor: float  # zone edge the targets are measured from
    opened_bar: int
    opened_time: BarTime
    opened_at: dict
    tp1_reached: bool = False
    tp2_reached: bool = False
    touched: bool = False

    @property
    def is_long(self) -> bool:
        return self.side == "long"

    def to_public(self) -> dict:
        """Projection returned as ``open_position`` at the end of a run."""
        data = asdict(self)
        data.pop("anchor")
        return data


@dataclass(frozen=True)
class ClosedPosition:
    """A finalized trade record."""

    side: Side
    entry: float
    sl: float
    tp1: float
    tp2: float
    opened_bar: int
    closed_bar: int
    opened_time: BarTime
    closed_time: BarTime
    opened_at: dict
    closed_at: dict
    reason: str
    exit_price: float
    tp1_reached: bool
    tp2_reached: bool
    touched: bool

    def to_dict(self) -> dict:
        return asdict(self)


def derive_targets(
    side: Side,
    anchor: float,
    sl_dist: float,
    tp1_dist: float,
    tp2_dist: float,
) -> tuple[float, float, float]:
    """Return ``(sl, tp1, tp2)`` at fixed distances from *anchor*."""
    if side == "long":
        return anchor - sl_dist, anchor + tp1_dist, anchor + tp2_dist
    return anchor + sl_dist, anchor - tp1_dist, anchor - tp2_dist


def open_position(
    side: Side,
    entry: float,
    anchor: float,
    distances: tuple[float, float, float],
    index: int,
    bar: Bar,
) -> PositionState:
    """Open a position at *entry* with targets derived from *anchor*.

    Args:
        side: ``"long"`` or ``"short"``.
        entry: Fill price recorded on the position.
        anchor: Zone edge the sl/tp distances are measured from.
        distances: ``(sl, tp1, tp2)`` distances in price units.
        index: Bar index of the open.
        bar: The opening bar (snapshotted onto the position).
    """
    if side not in ("long", "short"):
        raise ValueError(f"side must be 'long' or 'short', got '{side}'")
    sl, tp1, tp2 = derive_targets(side, anchor, *distances)
    return PositionState(
        side=side,
        entry=entry,
        sl=sl,
        tp1=tp1,
        tp2=tp2,
        anchor=anchor,
        opened_bar=index,
        opened_time=bar.time,
        opened_at=bar.to_dict(),
    )


def close_position(
    position: PositionState,
    reason: str,
    exit_price: float,
    index: int,
    bar: Bar,
) -> ClosedPosition:
    """Finalize *position* into a ledger record."""
    return ClosedPosition(
        side=position.side,
        entry=position.entry,
        sl=position.sl,
        tp1=position.tp1,
        tp2=position.tp2,
        opened_bar=position.opened_bar,
        closed_bar=index,
        opened_time=position.opened_time,
        closed_time=bar.time,
        opened_at=position.opened_at,
        closed_at=bar.to_dict(),
        reason=reason,
        exit_price=exit_price,
        tp1_reached=position.tp1_reached,
        tp2_reached=position.tp2_reached,
        touched=position.touched,
    )


# ── Ladder variant ───────────────────────────────────────────────────────


def check_milestones(
    position: PositionState,
    bar: Bar,
    prev_close: Optional[float],
) -> tuple[PositionState, list[tuple[str, float]]]:
    """Flag tp1/tp2 as reached without closing.

    A target only counts when the previous close was still on the entry
    side of it and this bar's high (long) or low (short) reaches it, so a
    gap that never approached the target from the right side is ignored.

    Returns the updated position and ``[(event_type, target), ...]``.
    """
    hits: list[tuple[str, float]] = []
    if prev_close is None:
        return position, hits

    if not position.tp1_reached and _reached(position, bar, prev_close, position.tp1):
        position = replace(position, tp1_reached=True)
        hits.append(("tp1_reached", position.tp1))
    if not position.tp2_reached and _reached(position, bar, prev_close, position.tp2):
        position = replace(position, tp2_reached=True)
        hits.append(("tp2_reached", position.tp2))
    return position, hits


def _reached(position: PositionState, bar: Bar, prev_close: float, target: float) -> bool:
    if position.is_long:
        return prev_close < target and bar.high >= target
    return prev_close > target and bar.low <= target


def check_exit(position: PositionState, bar: Bar) -> Optional[tuple[str, float]]:
    """Check if *bar* hits the stop-loss or tp2.

    Returns ``(reason, exit_price)`` or ``None``.  When both are hit in the
    same bar, the stop-loss is assumed first.
    """
    if position.is_long:
        sl_hit = bar.low <= position.sl
        tp_hit = bar.high >= position.tp2
    else:
        sl_hit = bar.high >= position.sl
        tp_hit = bar.low <= position.tp2

    if sl_hit:
        return REASON_SL, position.sl
    if tp_hit:
        return REASON_TP2, position.tp2
    return None


# ── Box variant ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class BoxExitCheck:
    """Outcome of managing a box-variant position for one bar."""

    position: PositionState
    hits: tuple[tuple[str, dict], ...]  # (event_type, payload) in order
    exit: bool
    rebox: bool  # bar closed beyond the stop-loss


def check_box_exit(position: PositionState, bar: Bar) -> BoxExitCheck:
    """Manage a box-variant position for one bar.

    Priority: stop-loss, then tp2, then the action-edge touch followed by
    tp1 as an exit.  The touch flag is a non-closing milestone.
    """
    hits: list[tuple[str, dict]] = []
    long = position.is_long

    if (bar.low <= position.sl) if long else (bar.high >= position.sl):
        hits.append(("sl_hit", {"sl": position.sl}))
        rebox = bar.close < position.sl if long else bar.close > position.sl
        return BoxExitCheck(position, tuple(hits), exit=True, rebox=rebox)

    if (bar.high >= position.tp2) if long else (bar.low <= position.tp2):
        position = replace(position, tp2_reached=True)
        hits.append(("tp2_hit", {"tp2": position.tp2}))
        return BoxExitCheck(position, tuple(hits), exit=True, rebox=False)

    if not position.touched and (
        (bar.low <= position.anchor) if long else (bar.high >= position.anchor)
    ):
        position = replace(position, touched=True)
        hits.append(("touched", {"action": position.anchor}))

    exit_now = False
    if position.touched and (
        (bar.high >= position.tp1) if long else (bar.low <= position.tp1)
    ):
        position = replace(position, tp1_reached=True)
        hits.append(("tp1_hit", {"tp1": position.tp1}))
        exit_now = True

    return BoxExitCheck(position, tuple(hits), exit=exit_now, rebox=False)


_HIT_REASONS = {"sl_hit": REASON_SL, "tp2_hit": REASON_TP2, "tp1_hit": REASON_TP1}


def reason_from_event(event_type: Optional[str]) -> str:
    """Close reason named by the most recent event, or ``EXIT``."""
    return _HIT_REASONS.get(event_type or "", REASON_EXIT)


def exit_price_for(position: PositionState, reason: str, bar: Bar) -> float:
    """Exit price for *reason*; ``EXIT`` falls back to the first level hit."""
    if reason == REASON_SL:
        return position.sl
    if reason == REASON_TP2:
        return position.tp2
    if reason == REASON_TP1:
        return position.tp1
    if position.is_long:
        if bar.low <= position.sl:
            return position.sl
        return position.tp2 if bar.high >= position.tp2 else position.tp1
    if bar.high >= position.sl:
        return position.sl
    return position.tp2 if bar.low <= position.tp2 else position.tp1
