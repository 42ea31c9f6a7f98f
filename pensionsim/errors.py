"""
Exception taxonomy for the pension simulation.

Configuration problems abort a batch before any trial runs. Sampling and
computation problems raised inside a trial are caught by the orchestrator,
recorded as failed trials, and excluded from aggregation.
"""


class PensionSimError(Exception):
    """Base class for all simulation errors."""


class ConfigurationError(PensionSimError, ValueError):
    """Invalid career profile, plan parameters, trial count or history."""


class SamplingError(PensionSimError):
    """History too small for a draw without replacement."""


class ComputationError(PensionSimError, ArithmeticError):
    """Numerical failure inside a trial (non-finite balance, bad inputs)."""
