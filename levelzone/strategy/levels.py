"""Level ladder and psychological-level arithmetic — pure functions.

Every level is produced as ``grid_point(index, size)`` from an integer
grid index, so one level always has one float value no matter which
helper derived it.
"""

import math

from levelzone.strategy.models import LevelSet

_GRID_DECIMALS = 12  # grid points are rounded to this many decimals
_ON_GRID_REL_TOL = 1e-12


def pips_to_price(pips: float, pip_size: float) -> float:
    """Convert a distance in pips to a distance in price units."""
    return pips * pip_size


def price_to_pips(value: float, pip_size: float) -> float:
    """Convert a distance in price units to pips."""
    return value / pip_size


def grid_index(price: float, size: float) -> tuple[int, bool]:
    """Return ``(index, on_grid)`` for *price* on a grid of spacing *size*.

    ``index`` is the grid point at or below *price* (floor toward negative
    infinity).  A quotient within float noise of an integer counts as
    exactly on the grid, so ``1.1 / 0.0001`` is index ``11000``.
    """
    quotient = price / size
    nearest = round(quotient)
    if math.isclose(quotient, nearest, rel_tol=_ON_GRID_REL_TOL, abs_tol=1e-9):
        return nearest, True
    return math.floor(quotient), False


def grid_point(index: int, size: float) -> float:
    """Price of grid point *index*."""
    return float(round(index * size, _GRID_DECIMALS))


def level_base(price: float, size: float) -> float:
    """Floor-anchored grid point at or below *price*.

    ``-3.2`` on a grid of ``1.0`` anchors at ``-4.0`` rather than ``-3.0``.
    """
    index, _ = grid_index(price, size)
    return grid_point(index, size)


def process_levels(
    price: float,
    pips: float,
    n_levels: int,
    pip_size: float,
) -> LevelSet:
    """Build the level ladder around *price*.

    Args:
        price: Reference price (the bar close).
        pips: Level spacing in pips.
        n_levels: Number of levels on each side.
        pip_size: Price value of one pip.

    Returns:
        ``LevelSet`` whose ``up`` levels (``base + size`` upward) are sorted
        ascending and whose ``dn`` levels (``base`` downward) are sorted
        descending.
    """
    size = pips_to_price(pips, pip_size)
    base, _ = grid_index(price, size)

    up = tuple(grid_point(base + i + 1, size) for i in range(n_levels))
    dn = tuple(grid_point(base - i, size) for i in range(n_levels))
    return LevelSet(up=up, dn=dn, size=size)


# ── Psychological levels ─────────────────────────────────────────────────


def first_multiple_up(num: float, step: float) -> float:
    """First multiple of *step* strictly above *num*."""
    index, _ = grid_index(num, step)
    return grid_point(index + 1, step)


def first_multiple_down(num: float, step: float) -> float:
    """First multiple of *step* strictly below *num*."""
    index, on_grid = grid_index(num, step)
    return grid_point(index - 1 if on_grid else index, step)


def nearest_multiple(num: float, step: float) -> float:
    """Multiple of *step* nearest to *num*; ties resolve to the lower one."""
    index, on_grid = grid_index(num, step)
    if on_grid:
        return grid_point(index, step)
    if num / step - index > 0.5:
        index += 1
    return grid_point(index, step)
