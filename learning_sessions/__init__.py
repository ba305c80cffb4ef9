"""Learning session engine for child learners."""

__version__ = "1.0.0"
