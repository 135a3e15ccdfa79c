# conflict_detector/metrics.py
from prometheus_client import Counter, Summary

DETECTION_TIME = Summary(
    "conflict_detection_seconds",
    "Time spent detecting schedule conflicts",
)

CONFLICTS_DETECTED = Counter(
    "conflicts_detected_total",
    "Conflicts returned to callers, by conflict type",
    ["type"],
)

CONFLICTS_DISMISSED = Counter(
    "conflicts_dismissed_total",
    "Conflicts dropped because the caller dismissed them",
)
