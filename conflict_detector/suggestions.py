# conflict_detector/suggestions.py
import logging
from dataclasses import replace
from typing import Iterable, List, Optional, Sequence

import pandas as pd

from .intervals import local_hour, next_free_slot, overlaps
from .models import (
    Conflict,
    DetectionConfig,
    Event,
    EventPatch,
    Suggestion,
    SuggestionKind,
)

logger = logging.getLogger(__name__)


# Builders used by the rules

def overlap_suggestions(earlier: Event, later: Event,
                        config: DetectionConfig) -> List[Suggestion]:
    out = [
        Suggestion(
            kind=SuggestionKind.RESCHEDULE,
            message=f'Reschedule "{later.title}" to start after "{earlier.title}" ends',
            proposed_time=pd.Timestamp(earlier.end_time) + config.overlap_buffer,
            event_id=later.id,
        )
    ]
    # shortening to a zero-length interval is not a remedy
    if pd.Timestamp(later.start_time) > pd.Timestamp(earlier.start_time):
        out.append(Suggestion(
            kind=SuggestionKind.ADJUST_DURATION,
            message=f'Reduce duration of "{earlier.title}" to avoid overlap',
            proposed_time=pd.Timestamp(later.start_time),
            event_id=earlier.id,
        ))
    return out


def resource_suggestions(earlier: Event, later: Event,
                         unit_events: Sequence[Event]) -> List[Suggestion]:
    busy = [(e.start_time, e.end_time) for e in unit_events if e.id != later.id]
    slot = next_free_slot(busy, earlier.end_time, later.duration)
    out = [
        Suggestion(
            kind=SuggestionKind.RESCHEDULE,
            message=f'Reschedule "{later.title}" to a time slot when the unit is free',
            proposed_time=slot,
            event_id=later.id,
        )
    ]
    if earlier.type == later.type:
        out.append(Suggestion(
            kind=SuggestionKind.MERGE,
            message=f'Combine "{later.title}" with "{earlier.title}" into one appointment',
            event_id=later.id,
            merge_into=earlier.id,
        ))
    return out


def _first_open_hour(event: Event, config: DetectionConfig) -> Optional[pd.Timestamp]:
    start = pd.Timestamp(event.start_time)
    if config.tz is not None and start.tzinfo is not None:
        start = start.tz_convert(config.tz)
    candidate = start - pd.Timedelta(
        minutes=start.minute, seconds=start.second,
        microseconds=start.microsecond, nanoseconds=start.nanosecond,
    )
    for _ in range(24):
        candidate = candidate + pd.Timedelta(hours=1)
        hour = local_hour(candidate, config.tz)
        if not any(w.contains_hour(hour) for w in config.environmental_windows):
            return candidate
    return None


def environmental_suggestions(event: Event, config: DetectionConfig) -> List[Suggestion]:
    proposed = _first_open_hour(event, config)
    if proposed is None:
        message = "Reschedule to a day without environmental restrictions"
    else:
        message = f"Reschedule to {proposed:%H:%M}, outside restricted hours"
    return [
        Suggestion(
            kind=SuggestionKind.RESCHEDULE,
            message=message,
            proposed_time=proposed,
            event_id=event.id,
        )
    ]


def free_organizers(event: Event, events: Iterable[Event]) -> List[str]:
    """Organizers in the working set, other than the event's own, with nothing overlapping it."""
    busy, seen = set(), set()
    for e in events:
        if not e.organizer_id:
            continue
        seen.add(e.organizer_id)
        if e.id != event.id and overlaps(e, event):
            busy.add(e.organizer_id)
    return sorted(seen - busy - {event.organizer_id})


def travel_suggestions(prev: Event, nxt: Event, events: Sequence[Event],
                       config: DetectionConfig) -> List[Suggestion]:
    minutes = config.minimum_travel_buffer_minutes
    out = [
        Suggestion(
            kind=SuggestionKind.RESCHEDULE,
            message=f"Add {minutes} minutes buffer for travel between properties",
            proposed_time=pd.Timestamp(prev.end_time) + config.travel_buffer,
            event_id=nxt.id,
        )
    ]
    candidates = free_organizers(nxt, events)
    if candidates:
        out.append(Suggestion(
            kind=SuggestionKind.DELEGATE,
            message=f'Assign "{nxt.title}" to {candidates[0]}, who is free at that time',
            event_id=nxt.id,
            proposed_organizer_id=candidates[0],
        ))
    else:
        out.append(Suggestion(
            kind=SuggestionKind.DELEGATE,
            message="Assign one event to another available agent",
            event_id=nxt.id,
        ))
    return out


# Apply

def _find_event(conflict: Conflict, event_id: str) -> Event:
    for e in conflict.events:
        if e.id == event_id:
            return e
    raise KeyError(event_id)


def propose_patch(conflict: Conflict, suggestion_index: int) -> EventPatch:
    """
    Turn one of a conflict's suggestions into a change for the event store.

    Nothing is resolved until detection runs again on the patched events.
    """
    if not 0 <= suggestion_index < len(conflict.suggestions):
        raise IndexError(
            f"conflict {conflict.id} has no suggestion {suggestion_index}"
        )
    s = conflict.suggestions[suggestion_index]
    if s.event_id is None:
        raise ValueError(f"suggestion {suggestion_index} of {conflict.id} names no event")
    target = _find_event(conflict, s.event_id)

    if s.kind == SuggestionKind.RESCHEDULE and s.proposed_time is not None:
        new_start = pd.Timestamp(s.proposed_time)
        return EventPatch(target.id, "time_range", (new_start, new_start + target.duration))
    if s.kind == SuggestionKind.ADJUST_DURATION and s.proposed_time is not None:
        return EventPatch(target.id, "end_time", pd.Timestamp(s.proposed_time))
    if s.kind == SuggestionKind.DELEGATE and s.proposed_organizer_id:
        return EventPatch(target.id, "organizer_id", s.proposed_organizer_id)
    if s.kind == SuggestionKind.MERGE and s.merge_into:
        return EventPatch(target.id, "merge_into", s.merge_into)
    raise ValueError(
        f"suggestion {suggestion_index} of {conflict.id} carries no concrete change"
    )


def apply_suggestion(conflicts: Iterable[Conflict], conflict_id: str,
                     suggestion_index: int) -> EventPatch:
    for c in conflicts:
        if c.id == conflict_id:
            patch = propose_patch(c, suggestion_index)
            logger.info("Proposed %s=%r for event %s (conflict %s)",
                        patch.field, patch.new_value, patch.event_id, conflict_id)
            return patch
    raise KeyError(conflict_id)


def _merge(target: Event, absorbed: Event) -> Event:
    attendees = list(target.attendees)
    known = {a.id for a in attendees}
    attendees += [a for a in absorbed.attendees if a.id not in known]
    return replace(
        target,
        start_time=min(pd.Timestamp(target.start_time), pd.Timestamp(absorbed.start_time)),
        end_time=max(pd.Timestamp(target.end_time), pd.Timestamp(absorbed.end_time)),
        attendees=attendees,
    )


def apply_patch(events: Sequence[Event], patch: EventPatch) -> List[Event]:
    """Return a new event list with the patch applied; the input is left untouched."""
    by_id = {e.id: e for e in events}
    if patch.event_id not in by_id:
        raise KeyError(patch.event_id)
    target = by_id[patch.event_id]

    if patch.field == "merge_into":
        if patch.new_value not in by_id:
            raise KeyError(patch.new_value)
        merged = _merge(by_id[patch.new_value], target)
        return [merged if e.id == merged.id else e for e in events if e.id != target.id]

    if patch.field == "time_range":
        start, end = patch.new_value
        updated = replace(target, start_time=pd.Timestamp(start), end_time=pd.Timestamp(end))
    elif patch.field == "end_time":
        updated = replace(target, end_time=pd.Timestamp(patch.new_value))
    elif patch.field == "organizer_id":
        updated = replace(target, organizer_id=patch.new_value)
    else:
        raise ValueError(f"unknown patch field: {patch.field!r}")
    return [updated if e.id == target.id else e for e in events]
