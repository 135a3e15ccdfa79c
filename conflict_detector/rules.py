# conflict_detector/rules.py
"""
Conflict rules.

Each rule is a pure function (events, config) -> list of conflicts. Events
lacking the fields a rule needs are skipped; zero or one event gives [].
"""
import logging
from typing import Callable, List, Sequence

import pandas as pd

from .intervals import events_frame, find_overlaps, local_hour
from .models import (
    Conflict,
    ConflictType,
    DetectionConfig,
    Event,
    EventType,
    Severity,
)
from .suggestions import (
    environmental_suggestions,
    overlap_suggestions,
    resource_suggestions,
    travel_suggestions,
)

logger = logging.getLogger(__name__)

Rule = Callable[[Sequence[Event], DetectionConfig], List[Conflict]]


def severity_by_priority(a: Event, b: Event) -> Severity:
    return Severity.from_weight(max(a.priority.weight, b.priority.weight))


def detect_time_overlaps(events: Sequence[Event],
                         config: DetectionConfig) -> List[Conflict]:
    conflicts = []
    for earlier, later in find_overlaps(events):
        conflicts.append(Conflict(
            type=ConflictType.TIME_OVERLAP,
            severity=severity_by_priority(earlier, later),
            events=[earlier, later],
            message=f'Time overlap detected between "{earlier.title}" and "{later.title}"',
            suggestions=overlap_suggestions(earlier, later, config),
        ))
    return conflicts


def detect_resource_conflicts(events: Sequence[Event],
                              config: DetectionConfig) -> List[Conflict]:
    if len(events) < 2:
        return []
    frame = events_frame(events)
    conflicts = []
    # groupby drops events without a property
    for _, group in frame.groupby("property_id", sort=True):
        members = [events[p] for p in group["pos"]]
        for earlier, later in find_overlaps(members):
            if not earlier.unit_id or earlier.unit_id != later.unit_id:
                continue
            unit_events = [e for e in members if e.unit_id == earlier.unit_id]
            unit = earlier.unit_number or earlier.unit_id
            conflicts.append(Conflict(
                type=ConflictType.RESOURCE_CONFLICT,
                severity=Severity.HIGH,
                events=[earlier, later],
                message=f"Same unit scheduled for multiple events: {unit}",
                suggestions=resource_suggestions(earlier, later, unit_events),
            ))
    return conflicts


def detect_environmental_conflicts(events: Sequence[Event],
                                   config: DetectionConfig) -> List[Conflict]:
    windows = config.environmental_windows
    if not windows:
        return []
    conflicts = []
    for event in events:
        hour = local_hour(event.start_time, config.tz)
        hit = next((w for w in windows if w.contains_hour(hour)), None)
        if hit is None:
            continue
        severity = Severity.HIGH if event.type == EventType.MAINTENANCE else Severity.MEDIUM
        conflicts.append(Conflict(
            type=ConflictType.ENVIRONMENTAL_CONSTRAINT,
            severity=severity,
            events=[event],
            message=(
                f'"{event.title}" scheduled during {hit.label} period '
                f"({hit.start_hour:02d}:00-{hit.end_hour:02d}:00)"
            ),
            suggestions=environmental_suggestions(event, config),
        ))
    return conflicts


def detect_travel_conflicts(events: Sequence[Event],
                            config: DetectionConfig) -> List[Conflict]:
    if len(events) < 2:
        return []
    frame = events_frame(events).sort_values(["start", "id"], kind="mergesort")
    buffer = config.travel_buffer
    conflicts = []
    for _, group in frame.groupby("organizer_id", sort=True):
        if len(group) < 2:
            continue
        prev, nxt = group.iloc[:-1], group.iloc[1:]
        gaps = nxt["start"].values - prev["end"].values
        too_close = gaps < buffer.to_timedelta64()
        for i in range(len(gaps)):
            if not too_close[i]:
                continue
            a = events[int(prev["pos"].iloc[i])]
            b = events[int(nxt["pos"].iloc[i])]
            if a.id == b.id or not a.property_id or not b.property_id:
                continue
            if a.property_id == b.property_id:
                continue
            gap_min = int(pd.Timedelta(gaps[i]).total_seconds() // 60)
            conflicts.append(Conflict(
                type=ConflictType.TRAVEL_BUFFER,
                severity=Severity.MEDIUM,
                events=[a, b],
                message=(
                    f"Insufficient travel time between properties: {gap_min} min "
                    f"between \"{a.title}\" and \"{b.title}\", "
                    f"{config.minimum_travel_buffer_minutes} min needed"
                ),
                suggestions=travel_suggestions(a, b, events, config),
            ))
    return conflicts


RULES: List[Rule] = [
    detect_time_overlaps,
    detect_resource_conflicts,
    detect_environmental_conflicts,
    detect_travel_conflicts,
]
