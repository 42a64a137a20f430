"""Zone classification — how a bar's open→close body relates to levels.

Two interchangeable strategies:

* ``crossing`` — which ladder level (if any) the body crossed this bar.
* ``box`` — whether the body closed inside, or pierced, the box around a
  psychological level.
"""

from typing import Callable, Optional

from levelzone.strategy.levels import (
    first_multiple_down,
    first_multiple_up,
    nearest_multiple,
)
from levelzone.strategy.models import BoxFacts


def classify_crossing(
    open_: float,
    close: float,
    level_top: Optional[float],
    level_bot: Optional[float],
) -> Optional[float]:
    """Return the active level crossed by the body, or ``None``.

    Outcomes are disjoint and checked widest first:

    1. open below *level_bot*, close above *level_top* → *level_top*
    2. open above *level_top*, close below *level_bot* → *level_bot*
    3. open above *level_top*, close below it → *level_top*
    4. open below *level_bot*, close above it → *level_bot*
    """
    if level_top is None or level_bot is None:
        return None

    if open_ < level_bot and close > level_top:
        return level_top
    if open_ > level_top and close < level_bot:
        return level_bot
    if open_ > level_top and close < level_top:
        return level_top
    if open_ < level_bot and close > level_bot:
        return level_bot
    return None


def check_box(
    open_: float,
    close: float,
    psyc_step: float,
    box_step: float,
) -> BoxFacts:
    """Classify a bar against the psychological-level boxes.

    The box around a level spans ``level ± box_step``.  A close inside the
    box of the nearest level wins; otherwise an up body tests the top of the
    box below the close and a down body tests the bottom of the box above.
    """
    nearest = nearest_multiple(close, psyc_step)
    level_up = first_multiple_up(close, psyc_step)
    level_dn = first_multiple_down(close, psyc_step)

    closed_in_box = False
    pierced_up = False
    pierced_down = False
    mid: Optional[float] = None

    if nearest - box_step <= close <= nearest + box_step:
        closed_in_box = True
        mid = nearest
    elif close >= open_:
        dn_top = level_dn + box_step
        if open_ <= dn_top <= close:
            pierced_up = True
            mid = level_dn
    else:
        up_bot = level_up - box_step
        if open_ >= up_bot >= close:
            pierced_down = True
            mid = level_up

    return BoxFacts(
        closed_in_box=closed_in_box,
        pierced_up=pierced_up,
        pierced_down=pierced_down,
        mid=mid,
        level_up=level_up,
        level_dn=level_dn,
    )


CLASSIFIERS: dict[str, Callable] = {
    "crossing": classify_crossing,
    "box": check_box,
}


def get_classifier(name: str) -> Callable:
    """Look up a zone classifier by name.

    Raises ``KeyError`` if the name is not registered.
    """
    if name not in CLASSIFIERS:
        raise KeyError(
            f"Unknown classifier '{name}'. "
            f"Available: {', '.join(CLASSIFIERS.keys())}"
        )
    return CLASSIFIERS[name]
