# conflict_detector/errors.py


class InvalidInterval(ValueError):
    """An event whose end is not after its start, or an unorderable event set."""


class InvalidConfiguration(ValueError):
    """Bad environmental windows, travel buffer or timezone."""
