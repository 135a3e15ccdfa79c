# conflict_detector/models.py
import hashlib
import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from .errors import InvalidConfiguration


class EventType(str, Enum):
    MAINTENANCE = "maintenance"
    INSPECTION = "inspection"
    TENANT_VISIT = "tenant_visit"
    PROPERTY_SHOWING = "property_showing"
    LEASE_SIGNING = "lease_signing"
    RENT_COLLECTION = "rent_collection"
    PROPERTY_EVALUATION = "property_evaluation"
    MEETING = "meeting"
    REMINDER = "reminder"
    OTHER = "other"


class EventStatus(str, Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


class EventPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def weight(self) -> int:
        return PRIORITY_WEIGHTS[self]


PRIORITY_WEIGHTS = {
    EventPriority.LOW: 1,
    EventPriority.MEDIUM: 2,
    EventPriority.HIGH: 3,
    EventPriority.CRITICAL: 4,
}


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return SEVERITY_RANKS[self]

    @classmethod
    def from_weight(cls, weight: int) -> "Severity":
        """Classify a priority weight: >=4 critical, >=3 high, >=2 medium, else low."""
        if weight >= 4:
            return cls.CRITICAL
        if weight >= 3:
            return cls.HIGH
        if weight >= 2:
            return cls.MEDIUM
        return cls.LOW


SEVERITY_RANKS = {
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}


class ConflictType(str, Enum):
    TIME_OVERLAP = "time_overlap"
    RESOURCE_CONFLICT = "resource_conflict"
    ENVIRONMENTAL_CONSTRAINT = "environmental_constraint"
    TRAVEL_BUFFER = "travel_buffer"


class SuggestionKind(str, Enum):
    RESCHEDULE = "reschedule"
    ADJUST_DURATION = "adjust_duration"
    DELEGATE = "delegate"
    MERGE = "merge"


@dataclass
class Attendee:
    id: str
    name: str
    role: str
    email: Optional[str] = None
    status: Optional[str] = None  # pending / accepted / declined / tentative


@dataclass
class Event:
    id: str
    title: str
    type: EventType
    status: EventStatus
    priority: EventPriority
    start_time: datetime
    end_time: datetime
    organizer_id: str
    description: Optional[str] = None
    property_id: Optional[str] = None
    unit_id: Optional[str] = None
    attendees: List[Attendee] = field(default_factory=list)
    estimated_cost: Optional[float] = None
    notes: Optional[str] = None
    # display only
    property_name: Optional[str] = None
    unit_number: Optional[str] = None
    organizer_name: Optional[str] = None
    location: Optional[str] = None

    def __post_init__(self):
        # plain strings from callers become enums here, unknown values raise ValueError
        self.type = EventType(self.type)
        self.status = EventStatus(self.status)
        self.priority = EventPriority(self.priority)

    @property
    def duration(self) -> pd.Timedelta:
        return pd.Timedelta(self.end_time - self.start_time)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Event":
        """
        Build an event from an event-store record.

        Accepts the store's camelCase keys; `startDate`/`endDate` are read
        when `startTime`/`endTime` are absent or null. Instants are parsed with pandas
        and may carry an offset.
        """
        start = data.get("startTime") or data.get("startDate")
        end = data.get("endTime") or data.get("endDate")
        attendees = [
            Attendee(
                id=str(a["id"]),
                name=a.get("name", ""),
                role=a.get("role", ""),
                email=a.get("email"),
                status=a.get("status"),
            )
            for a in data.get("attendees") or []
        ]
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            type=data.get("type") or EventType.OTHER,
            status=data.get("status") or EventStatus.SCHEDULED,
            priority=data.get("priority") or EventPriority.MEDIUM,
            start_time=pd.Timestamp(start),
            end_time=pd.Timestamp(end),
            organizer_id=str(data.get("organizerId") or ""),
            description=data.get("description"),
            property_id=data.get("propertyId") or None,
            unit_id=data.get("unitId") or None,
            attendees=attendees,
            estimated_cost=data.get("estimatedCost"),
            notes=data.get("notes"),
            property_name=data.get("propertyName"),
            unit_number=data.get("unitNumber"),
            organizer_name=data.get("organizerName"),
            location=data.get("location"),
        )


def _instant_key(ts: datetime) -> str:
    return pd.Timestamp(ts).isoformat()


def event_fingerprint(event: Event) -> Tuple[str, ...]:
    """Fields whose change invalidates a dismissal of any conflict the event is in."""
    return (
        event.id,
        _instant_key(event.start_time),
        _instant_key(event.end_time),
        event.property_id or "",
        event.unit_id or "",
        event.organizer_id or "",
    )


def conflict_id(conflict_type: "ConflictType", events: Sequence[Event]) -> str:
    """
    Deterministic id for a conflict.

    Participants are sorted by event id, so the id does not depend on the
    order the rule reported them in.
    """
    parts = sorted(event_fingerprint(e) for e in events)
    payload = json.dumps([conflict_type.value, parts], separators=(",", ":"))
    digest = hashlib.sha1(payload.encode("utf-8")).hexdigest()[:16]  # nosec B324
    return f"{conflict_type.value}_{digest}"


@dataclass
class Suggestion:
    kind: SuggestionKind
    message: str
    proposed_time: Optional[datetime] = None
    event_id: Optional[str] = None               # event the change applies to
    proposed_organizer_id: Optional[str] = None  # delegate only
    merge_into: Optional[str] = None             # merge only


@dataclass
class Conflict:
    type: ConflictType
    severity: Severity
    events: List[Event]
    message: str
    suggestions: List[Suggestion] = field(default_factory=list)
    id: str = field(init=False)

    def __post_init__(self):
        self.id = conflict_id(self.type, self.events)

    @property
    def event_ids(self) -> List[str]:
        return [e.id for e in self.events]

    @property
    def earliest_start(self) -> pd.Timestamp:
        return min(pd.Timestamp(e.start_time) for e in self.events)


@dataclass
class EventPatch:
    event_id: str
    field: str  # time_range / end_time / organizer_id / merge_into
    new_value: Any


@dataclass
class EnvironmentalWindow:
    start_hour: int
    end_hour: int  # exclusive; start > end wraps past midnight
    label: str = "load shedding"

    def contains_hour(self, hour: int) -> bool:
        if self.start_hour < self.end_hour:
            return self.start_hour <= hour < self.end_hour
        return hour >= self.start_hour or hour < self.end_hour


@dataclass
class DetectionConfig:
    environmental_windows: List[EnvironmentalWindow] = field(default_factory=list)
    minimum_travel_buffer_minutes: int = 30
    overlap_reschedule_buffer_minutes: int = 30  # gap left after the earlier event
    tz: Optional[str] = None                     # local time for windows; None = event's own offset
    ignore_statuses: Tuple[EventStatus, ...] = ()

    @property
    def travel_buffer(self) -> pd.Timedelta:
        return pd.Timedelta(minutes=self.minimum_travel_buffer_minutes)

    @property
    def overlap_buffer(self) -> pd.Timedelta:
        return pd.Timedelta(minutes=self.overlap_reschedule_buffer_minutes)

    def validate(self) -> None:
        for w in self.environmental_windows:
            if not (0 <= w.start_hour <= 23) or not (0 <= w.end_hour <= 24):
                raise InvalidConfiguration(
                    f"window hours out of range: {w.start_hour}-{w.end_hour}"
                )
            if w.start_hour == w.end_hour:
                raise InvalidConfiguration(
                    f"empty window: start_hour == end_hour == {w.start_hour}"
                )
            if w.start_hour > w.end_hour and w.end_hour == 24:
                raise InvalidConfiguration(
                    f"window {w.start_hour}-24 cannot wrap past midnight"
                )
        if self.minimum_travel_buffer_minutes < 0:
            raise InvalidConfiguration("minimum_travel_buffer_minutes must be >= 0")
        if self.overlap_reschedule_buffer_minutes < 0:
            raise InvalidConfiguration("overlap_reschedule_buffer_minutes must be >= 0")
        if self.tz is not None:
            try:
                pd.Timestamp(0, tz=self.tz)
            except Exception as exc:
                raise InvalidConfiguration(f"unknown timezone: {self.tz!r}") from exc

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DetectionConfig":
        """Read the configuration source's camelCase payload."""
        windows = [
            EnvironmentalWindow(
                start_hour=int(w["startHour"]),
                end_hour=int(w["endHour"]),
                label=w.get("label", "load shedding"),
            )
            for w in data.get("environmentalWindows", [])
        ]
        kwargs: Dict[str, Any] = {"environmental_windows": windows}
        if "minimumTravelBufferMinutes" in data:
            kwargs["minimum_travel_buffer_minutes"] = int(data["minimumTravelBufferMinutes"])
        if "overlapRescheduleBufferMinutes" in data:
            kwargs["overlap_reschedule_buffer_minutes"] = int(
                data["overlapRescheduleBufferMinutes"]
            )
        if data.get("tz"):
            kwargs["tz"] = data["tz"]
        if data.get("ignoreStatuses"):
            kwargs["ignore_statuses"] = tuple(EventStatus(s) for s in data["ignoreStatuses"])
        return cls(**kwargs)
