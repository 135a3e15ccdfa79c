# main.py
import logging

import pandas as pd

from conflict_detector.detector import conflicts_to_frame, detect_conflicts
from conflict_detector.models import (
    DetectionConfig,
    EnvironmentalWindow,
    Event,
    EventPriority,
    EventStatus,
    EventType,
)
from conflict_detector.suggestions import apply_patch, apply_suggestion


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    TZ = "Africa/Harare"

    config = DetectionConfig(
        environmental_windows=[
            EnvironmentalWindow(start_hour=10, end_hour=14),
            EnvironmentalWindow(start_hour=18, end_hour=22),
        ],
        minimum_travel_buffer_minutes=30,
        tz=TZ,
    )

    def at(s):
        return pd.Timestamp(s).tz_localize(TZ)

    events = [
        Event(
            id="insp-1",
            title="Routine inspection",
            type=EventType.INSPECTION,
            status=EventStatus.SCHEDULED,
            priority=EventPriority.MEDIUM,
            start_time=at("2025-11-03 08:00"),
            end_time=at("2025-11-03 09:00"),
            organizer_id="agent-tendai",
            property_id="prop-avondale",
            unit_id="unit-4b",
            unit_number="4B",
        ),
        Event(
            id="show-1",
            title="Showing: 2 bed flat",
            type=EventType.PROPERTY_SHOWING,
            status=EventStatus.CONFIRMED,
            priority=EventPriority.HIGH,
            start_time=at("2025-11-03 09:10"),
            end_time=at("2025-11-03 10:00"),
            organizer_id="agent-tendai",
            property_id="prop-borrowdale",
            unit_id="unit-1",
        ),
        Event(
            id="maint-1",
            title="Geyser replacement",
            type=EventType.MAINTENANCE,
            status=EventStatus.SCHEDULED,
            priority=EventPriority.CRITICAL,
            start_time=at("2025-11-03 08:30"),
            end_time=at("2025-11-03 11:30"),
            organizer_id="agent-rudo",
            property_id="prop-avondale",
            unit_id="unit-4b",
            unit_number="4B",
            estimated_cost=450.0,
        ),
    ]

    conflicts = detect_conflicts(events, config)
    print("=== Conflicts ===")
    print(conflicts_to_frame(conflicts).to_string(index=False))

    # Apply the first suggestion of the first travel conflict and re-run
    travel = next((c for c in conflicts if c.type.value == "travel_buffer"), None)
    if travel is not None:
        patch = apply_suggestion(conflicts, travel.id, 0)
        print(f"\nApplying {patch.field} to {patch.event_id}: {patch.new_value}")
        events = apply_patch(events, patch)
        conflicts = detect_conflicts(events, config)
        print("\n=== Conflicts after update ===")
        print(conflicts_to_frame(conflicts).to_string(index=False))


if __name__ == "__main__":
    main()
