"""Exceptions raised by the nexus engine."""

from __future__ import annotations


class NexusEngineError(Exception):
    """Base class for nexus engine errors."""


class UnknownJurisdiction(NexusEngineError, LookupError):
    """A jurisdiction code is not in the reference table."""

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(f"Unknown jurisdiction code: {code}")


class InvalidRuleConfiguration(NexusEngineError, ValueError):
    """
    A jurisdiction rule contradicts its declared threshold type.

    Raised only when loading a table strictly. During evaluation the same
    problems are reported on the result instead.
    """

    def __init__(self, code: str, reason: str) -> None:
        self.code = code
        self.reason = reason
        super().__init__(f"Invalid rule for {code}: {reason}")
