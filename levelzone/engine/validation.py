"""Upfront input validation — runs before any bar is processed."""

import math
from typing import Iterable, Mapping, Union

from levelzone.engine.errors import EmptyInput, MalformedBar
from levelzone.strategy.models import Bar


def validate_bars(bars: Iterable[Union[Bar, Mapping]]) -> tuple[Bar, ...]:
    """Normalise *bars* to ``Bar`` objects and check each one.

    Mappings are converted with ``Bar.from_mapping``.

    Raises:
        EmptyInput: No bars were given.
        MalformedBar: A bar is missing a price, has a non-finite price,
            has ``high < low``, or has open/close outside ``[low, high]``.
    """
    checked: list[Bar] = []
    for index, raw in enumerate(bars):
        bar = _to_bar(index, raw)
        _check_bar(index, bar)
        checked.append(bar)

    if not checked:
        raise EmptyInput()
    return tuple(checked)


def _to_bar(index: int, raw) -> Bar:
    if isinstance(raw, Bar):
        return raw
    if not isinstance(raw, Mapping):
        raise MalformedBar(index, f"expected a bar or mapping, got {type(raw).__name__}")
    try:
        return Bar.from_mapping(raw)
    except KeyError as exc:
        raise MalformedBar(index, f"missing price field {exc}") from exc
    except (TypeError, ValueError) as exc:
        raise MalformedBar(index, f"price is not a number ({exc})") from exc


def _check_bar(index: int, bar: Bar) -> None:
    for name in ("open", "high", "low", "close"):
        value = getattr(bar, name)
        if not math.isfinite(value):
            raise MalformedBar(index, f"{name} is not finite ({value!r})")

    if bar.high < bar.low:
        raise MalformedBar(index, f"high {bar.high} < low {bar.low}")
    if not bar.low <= bar.open <= bar.high:
        raise MalformedBar(index, f"open {bar.open} outside [{bar.low}, {bar.high}]")
    if not bar.low <= bar.close <= bar.high:
        raise MalformedBar(index, f"close {bar.close} outside [{bar.low}, {bar.high}]")
