"""Strategy data models — typed representations of bars, levels and zones."""

from dataclasses import asdict, dataclass
from typing import Literal, Mapping, Optional, Union

Side = Literal["long", "short"]
BarTime = Union[str, int, float, None]


@dataclass(frozen=True)
class Bar:
    """A single OHLC bar.  ``time`` is optional and passed through untouched."""

    open: float
    high: float
    low: float
    close: float
    time: BarTime = None

    @property
    def is_up(self) -> bool:
        """True for a bullish (or flat) body."""
        return self.close >= self.open

    @classmethod
    def from_mapping(cls, data: Mapping) -> "Bar":
        """Build a bar from a dict with ``open``/``high``/``low``/``close`` keys.

        Raises ``KeyError`` when a price key is missing and ``ValueError``
        when a price cannot be converted to float.
        """
        return cls(
            open=float(data["open"]),
            high=float(data["high"]),
            low=float(data["low"]),
            close=float(data["close"]),
            time=data.get("time"),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class LevelSet:
    """Level ladder around a price.

    ``up`` is ascending and ``dn`` is descending, so index 0 on each side
    is the nearest level.
    """

    up: tuple[float, ...]
    dn: tuple[float, ...]
    size: float  # level spacing in price units

    @property
    def top(self) -> Optional[float]:
        return self.up[0] if self.up else None

    @property
    def bot(self) -> Optional[float]:
        return self.dn[0] if self.dn else None


@dataclass(frozen=True)
class BoxFacts:
    """Classification of one bar against the psychological-level boxes."""

    closed_in_box: bool
    pierced_up: bool
    pierced_down: bool
    mid: Optional[float]  # psychological level the bar interacted with
    level_up: float  # first multiple strictly above the close
    level_dn: float  # first multiple strictly below the close


@dataclass(frozen=True)
class Zone:
    """A price band anchored to an active or psychological level.

    Ladder entry zones use ``activation`` and ``expiry_bar``; boxes use
    ``is_broken`` and ``is_bull`` and never expire.
    """

    top: float
    bottom: float
    mid: float
    created_bar: int
    expiry_bar: Optional[int] = None
    activation: Optional[Side] = None
    is_broken: bool = False
    is_bull: Optional[bool] = None

    def to_dict(self) -> dict:
        return asdict(self)


# ── Instrument metadata ──────────────────────────────────────────────────

INSTRUMENT_PIP_VALUES: dict[str, float] = {
    "EUR_USD": 0.0001,
    "GBP_USD": 0.0001,
    "USD_JPY": 0.01,
    "USD_CHF": 0.0001,
    "AUD_USD": 0.0001,
    "NZD_USD": 0.0001,
    "USD_CAD": 0.0001,
    "XAU_USD": 0.01,
    "XAG_USD": 0.001,
}
