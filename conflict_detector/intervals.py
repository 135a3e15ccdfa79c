# conflict_detector/intervals.py
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .errors import InvalidInterval
from .models import Event

# below this size the pairwise scan is used as-is
SWEEP_THRESHOLD = 64


def validate_events(events: Iterable[Event]) -> List[Event]:
    """Reject any event whose end is not after its start, or a mix of aware/naive instants."""
    events = list(events)
    aware = set()
    for e in events:
        if pd.isna(e.start_time) or pd.isna(e.end_time):
            raise InvalidInterval(f"event {e.id!r} is missing a start or end time")
        start, end = pd.Timestamp(e.start_time), pd.Timestamp(e.end_time)
        if (start.tzinfo is None) != (end.tzinfo is None):
            raise InvalidInterval(f"event {e.id!r} mixes naive and timezone-aware times")
        aware.add(start.tzinfo is not None)
        if end <= start:
            raise InvalidInterval(
                f"event {e.id!r} ends at {end} which is not after its start {start}"
            )
    if len(aware) > 1:
        raise InvalidInterval("event set mixes naive and timezone-aware times")
    return events


def _ns(ts: datetime) -> int:
    # naive instants are read as UTC; validate_events keeps a set homogeneous
    return pd.Timestamp(ts).value


def order_key(event: Event) -> Tuple[int, str]:
    return _ns(event.start_time), event.id


def overlaps(a: Event, b: Event) -> bool:
    return _ns(a.start_time) < _ns(b.end_time) and _ns(b.start_time) < _ns(a.end_time)


def pairwise_overlaps(events: Sequence[Event]) -> List[Tuple[Event, Event]]:
    """Every overlapping pair with distinct ids, as (earlier, later) by (start, id)."""
    ordered = sorted(events, key=order_key)
    pairs = []
    for i in range(len(ordered)):
        for j in range(i + 1, len(ordered)):
            a, b = ordered[i], ordered[j]
            if a.id != b.id and overlaps(a, b):
                pairs.append((a, b))
    return pairs


def sweep_overlaps(events: Sequence[Event]) -> List[Tuple[Event, Event]]:
    """
    Same result as pairwise_overlaps, in the same order.

    With events sorted by start, event j > i overlaps event i exactly when
    start_j < end_i, so a binary search on the sorted starts bounds the
    candidates for each i.
    """
    if len(events) < 2:
        return []
    ordered = sorted(events, key=order_key)
    starts = np.array([_ns(e.start_time) for e in ordered], dtype=np.int64)
    ends = np.array([_ns(e.end_time) for e in ordered], dtype=np.int64)
    stops = np.searchsorted(starts, ends, side="left")

    pairs = []
    for i, stop in enumerate(stops):
        a = ordered[i]
        for j in range(i + 1, int(stop)):
            b = ordered[j]
            if a.id != b.id:
                pairs.append((a, b))
    return pairs


def find_overlaps(events: Sequence[Event]) -> List[Tuple[Event, Event]]:
    if len(events) < SWEEP_THRESHOLD:
        return pairwise_overlaps(events)
    return sweep_overlaps(events)


def events_frame(events: Sequence[Event]) -> pd.DataFrame:
    """
    Tabular view of the event set for partitioning.

    Missing or empty resource/organizer keys become None so groupby drops them.
    `pos` indexes back into `events`.
    """
    return pd.DataFrame({
        "pos": np.arange(len(events), dtype=int),
        "id": [e.id for e in events],
        "start": pd.to_datetime([pd.Timestamp(e.start_time) for e in events], utc=True),
        "end": pd.to_datetime([pd.Timestamp(e.end_time) for e in events], utc=True),
        "property_id": pd.Series([e.property_id or None for e in events], dtype=object),
        "unit_id": pd.Series([e.unit_id or None for e in events], dtype=object),
        "organizer_id": pd.Series([e.organizer_id or None for e in events], dtype=object),
    })


def next_free_slot(busy: Iterable[Tuple[datetime, datetime]],
                   not_before: datetime,
                   duration: pd.Timedelta) -> pd.Timestamp:
    """Earliest start >= not_before whose [start, start + duration) avoids every busy interval."""
    candidate = pd.Timestamp(not_before)
    intervals = sorted((pd.Timestamp(s), pd.Timestamp(e)) for s, e in busy)
    for s, e in intervals:
        if e <= candidate:
            continue
        if s >= candidate + duration:
            break
        candidate = e
    return candidate


def local_hour(ts: datetime, tz: Optional[str] = None) -> int:
    t = pd.Timestamp(ts)
    if tz is not None and t.tzinfo is not None:
        t = t.tz_convert(tz)
    return t.hour
