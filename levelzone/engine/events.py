"""Event log and per-bar history — append-only records of a run.

A zone being removed, expired or invalidated is itself a new event; no
entry is ever mutated or deleted once appended.
"""

from dataclasses import asdict, dataclass, field
from typing import Iterator, Optional

from levelzone.strategy.models import BarTime


@dataclass(frozen=True)
class Event:
    """A tagged state transition.  Several events may share a bar."""

    type: str
    bar: int
    time: BarTime = None
    payload: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"type": self.type, "bar": self.bar, "time": self.time, **self.payload}


@dataclass(frozen=True)
class HistoryEntry:
    """End-of-bar snapshot of the ladder, zone and position side."""

    bar: int
    time: BarTime
    levels_up: tuple[float, ...]
    levels_dn: tuple[float, ...]
    active_level: Optional[float]
    zone: Optional[dict]
    side: Optional[str]  # None when flat

    @property
    def level_top(self) -> Optional[float]:
        return self.levels_up[0] if self.levels_up else None

    @property
    def level_bot(self) -> Optional[float]:
        return self.levels_dn[0] if self.levels_dn else None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["levels_up"] = list(self.levels_up)
        data["levels_dn"] = list(self.levels_dn)
        data["level_top"] = self.level_top
        data["level_bot"] = self.level_bot
        return data


class EventLog:
    """Ordered, append-only sequence of ``Event`` objects."""

    def __init__(self) -> None:
        self._events: list[Event] = []

    def append(self, event: Event) -> None:
        """Append *event*.

        Raises ``ValueError`` if its bar index precedes the last event's.
        """
        if self._events and event.bar < self._events[-1].bar:
            raise ValueError(
                f"event '{event.type}' at bar {event.bar} precedes "
                f"bar {self._events[-1].bar}"
            )
        self._events.append(event)

    def extend(self, events) -> None:
        for event in events:
            self.append(event)

    def last(self, types: Optional[tuple[str, ...]] = None) -> Optional[Event]:
        """Most recent event, optionally restricted to *types*."""
        for event in reversed(self._events):
            if types is None or event.type in types:
                return event
        return None

    @property
    def entries(self) -> tuple[Event, ...]:
        return tuple(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[Event]:
        return iter(tuple(self._events))


class HistoryTrack:
    """One ``HistoryEntry`` per processed bar, in bar order."""

    def __init__(self) -> None:
        self._entries: list[HistoryEntry] = []

    def record(self, entry: HistoryEntry) -> None:
        """Append the snapshot for the next bar.

        Raises ``ValueError`` if *entry* does not follow the last recorded bar.
        """
        if self._entries and entry.bar <= self._entries[-1].bar:
            raise ValueError(
                f"history entry for bar {entry.bar} does not follow "
                f"bar {self._entries[-1].bar}"
            )
        self._entries.append(entry)

    @property
    def entries(self) -> tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(tuple(self._entries))
