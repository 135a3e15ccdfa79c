"""Schedule conflict detection for property-management calendars."""
