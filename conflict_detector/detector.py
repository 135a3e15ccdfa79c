# conflict_detector/detector.py
import logging
from datetime import datetime
from typing import AbstractSet, Iterable, List, Optional

import pandas as pd

from .intervals import validate_events
from .metrics import CONFLICTS_DETECTED, CONFLICTS_DISMISSED, DETECTION_TIME
from .models import Conflict, ConflictType, DetectionConfig, Event
from .rules import RULES

logger = logging.getLogger(__name__)

_TYPE_ORDER = {t: i for i, t in enumerate(ConflictType)}


def _sort_key(c: Conflict):
    return (-c.severity.rank, c.earliest_start.value, _TYPE_ORDER[c.type], c.id)


def detect_conflicts(events: Iterable[Event],
                     config: Optional[DetectionConfig] = None,
                     dismissed: Optional[AbstractSet[str]] = None) -> List[Conflict]:
    """
    Run every rule over the event set and return the caller-facing conflicts.

    Raises InvalidConfiguration / InvalidInterval before any rule runs.
    The result depends only on (events, config, dismissed): ordered by
    severity (highest first), then earliest participant start, then conflict
    type, then id.
    """
    config = config or DetectionConfig()
    dismissed = dismissed or frozenset()
    config.validate()
    events = validate_events(events)

    with DETECTION_TIME.time():
        if config.ignore_statuses:
            events = [e for e in events if e.status not in config.ignore_statuses]

        found: List[Conflict] = []
        for rule in RULES:
            raw = rule(events, config)
            logger.debug("%s: %d conflicts", rule.__name__, len(raw))
            found.extend(raw)

        seen = set()
        result = []
        n_dismissed = 0
        for c in found:
            if c.id in seen:
                continue
            seen.add(c.id)
            if c.id in dismissed:
                n_dismissed += 1
                continue
            result.append(c)
        result.sort(key=_sort_key)

    for c in result:
        CONFLICTS_DETECTED.labels(type=c.type.value).inc()
    if n_dismissed:
        CONFLICTS_DISMISSED.inc(n_dismissed)
    logger.info("Detected %d conflicts over %d events (%d dismissed)",
                len(result), len(events), n_dismissed)
    return result


def proposed_time_label(ts: Optional[datetime]) -> str:
    return "" if ts is None else pd.Timestamp(ts).isoformat()


def conflicts_to_frame(conflicts: Iterable[Conflict]) -> pd.DataFrame:
    """One row per conflict, for reports and dashboards."""
    rows = [{
        "id": c.id,
        "type": c.type.value,
        "severity": c.severity.value,
        "events": ", ".join(c.event_ids),
        "start": c.earliest_start,
        "message": c.message,
        "suggestions": len(c.suggestions),
        "first_proposal": proposed_time_label(
            c.suggestions[0].proposed_time if c.suggestions else None
        ),
    } for c in conflicts]
    return pd.DataFrame(rows, columns=[
        "id", "type", "severity", "events", "start",
        "message", "suggestions", "first_proposal",
    ])
