"""
Exception types for firesentinel.

Caller errors (unknown region, malformed feature vectors) propagate to the
caller. Model absence is recovered by the fusion layer and surfaces only as
a flag on the fused record.
"""

from __future__ import annotations


class SentinelError(Exception):
    """Base class for all firesentinel errors."""


class UnknownRegionError(SentinelError, KeyError):
    """Region code not present in the geography catalog."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(code)

    def __str__(self) -> str:
        return f"Unknown region: {self.code!r}"


class InvalidInputError(SentinelError, ValueError):
    """Malformed input such as a feature vector of the wrong length."""


class ModelUnavailableError(SentinelError):
    """An expected sub-model is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Model not available: {name}")


class FusionCancelledError(SentinelError):
    """A prediction run was cancelled before it completed."""
