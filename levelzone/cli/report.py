"""CLI report — prints a run summary to the console."""

from levelzone.engine.base import EngineResult


def print_summary(result: EngineResult, stats: dict) -> str:
    """Format and print a summary of an engine run.

    Args:
        result: The run's output bundle.
        stats: Output of ``calculate_stats`` for the run's ledger.

    Returns:
        The formatted string (also printed to stdout).
    """
    pf = stats.get("profit_factor")
    pf_str = f"{pf:.2f}" if pf is not None else "N/A"
    open_pos = result.open_position
    open_str = (
        f"{open_pos.side} @ {open_pos.entry:.5g} (bar {open_pos.opened_bar})"
        if open_pos is not None else "flat"
    )
    reasons = ", ".join(
        f"{reason}={count}" for reason, count in stats.get("by_reason", {}).items() if count
    ) or "none"

    lines = [
        "──────────────── LevelZone Run ────────────────",
        f"  Engine:          {result.engine}",
        f"  Bars:            {len(result.levels_history)}",
        f"  Events:          {len(result.events)}",
        f"  Closed trades:   {stats.get('total_trades', 0)}",
        f"  Win rate:        {stats.get('win_rate', 0.0) * 100:.1f}%",
        f"  Profit factor:   {pf_str}",
        f"  Net pips:        {stats.get('net_pips', 0.0):,.1f}",
        f"  Max drawdown:    {stats.get('max_drawdown_pips', 0.0):,.1f} pips",
        f"  Close reasons:   {reasons}",
        f"  Open position:   {open_str}",
        "───────────────────────────────────────────────",
    ]
    output = "\n".join(lines)
    print(output)
    return output
