"""Schedule fixed-length work blocks into free Google Calendar time."""

__version__ = "0.1.0"
