"""BetterPhone survey service and respondent client."""

__version__ = "0.1.0"
