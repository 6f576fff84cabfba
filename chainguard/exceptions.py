"""
Exception hierarchy for ChainGuard.

Only programming-contract violations raise. Analyzer faults and collaborator
failures are recovered locally and never surface as these exceptions.
"""


class ChainGuardError(Exception):
    """Base class for all ChainGuard errors."""


class InvalidFindingError(ChainGuardError, ValueError):
    """A finding was constructed with a bad severity or missing fields."""


class AggregationError(ChainGuardError, TypeError):
    """The aggregator received something that is not an outcome or finding."""


class UnsupportedFormatError(ChainGuardError, ValueError):
    """A report was requested in a format the renderer does not know."""


class ConfigError(ChainGuardError):
    """The configuration file could not be interpreted."""
