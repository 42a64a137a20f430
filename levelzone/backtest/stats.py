"""Ledger statistics — pure functions over closed positions, in pips."""

from typing import Iterable, Optional

from levelzone.engine.position import CLOSE_REASONS, ClosedPosition
from levelzone.strategy.levels import price_to_pips


def position_pips(position: ClosedPosition, pip_size: float) -> float:
    """Signed result of *position* in pips."""
    move = position.exit_price - position.entry
    if position.side == "short":
        move = -move
    return price_to_pips(move, pip_size)


def calculate_stats(positions: Iterable[ClosedPosition], pip_size: float) -> dict:
    """Compute summary statistics from closed positions.

    Returns:
        Dict with ``total_trades``, ``winning_trades``, ``losing_trades``,
        ``win_rate``, ``profit_factor``, ``net_pips``, ``avg_pips``,
        ``max_drawdown_pips`` and ``by_reason`` (count per close reason).
    """
    positions = list(positions)
    by_reason = {reason: 0 for reason in CLOSE_REASONS}
    for p in positions:
        by_reason[p.reason] = by_reason.get(p.reason, 0) + 1

    if not positions:
        return {
            "total_trades": 0,
            "winning_trades": 0,
            "losing_trades": 0,
            "win_rate": 0.0,
            "profit_factor": None,
            "net_pips": 0.0,
            "avg_pips": 0.0,
            "max_drawdown_pips": 0.0,
            "by_reason": by_reason,
        }

    pips = [position_pips(p, pip_size) for p in positions]
    total = len(pips)
    winners = [p for p in pips if p > 0]
    losers = [p for p in pips if p <= 0]

    gross_profit = sum(winners)
    gross_loss = abs(sum(losers))
    profit_factor: Optional[float] = (
        gross_profit / gross_loss if gross_loss > 0 else None
    )
    net = sum(pips)

    return {
        "total_trades": total,
        "winning_trades": len(winners),
        "losing_trades": len(losers),
        "win_rate": round(len(winners) / total, 4),
        "profit_factor": round(profit_factor, 4) if profit_factor is not None else None,
        "net_pips": round(net, 2),
        "avg_pips": round(net / total, 2),
        "max_drawdown_pips": round(_max_drawdown(pips), 2),
        "by_reason": by_reason,
    }


# ── Helpers ──────────────────────────────────────────────────────────────


def _max_drawdown(pips: list[float]) -> float:
    """Maximum drawdown from the cumulative pip curve.

    Returns the largest peak-to-trough decline as a positive number.
    """
    cumulative = 0.0
    peak = 0.0
    max_dd = 0.0
    for p in pips:
        cumulative += p
        if cumulative > peak:
            peak = cumulative
        dd = peak - cumulative
        if dd > max_dd:
            max_dd = dd
    return max_dd
