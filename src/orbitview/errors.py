"""Exception types raised while loading and propagating a catalog."""

from __future__ import annotations

from typing import Optional


class OrbitViewError(Exception):
    """Base class for every error raised by orbitview."""


class MalformedCatalogError(OrbitViewError, ValueError):
    """A catalog violates the name/line-1/line-2 triplet structure.

    Args:
        message: Description of the violation.
        line_index: 0-based index of the offending line, if known.
    """

    def __init__(self, message: str, line_index: Optional[int] = None) -> None:
        if line_index is not None:
            message = f"line {line_index}: {message}"
        super().__init__(message)
        self.line_index = line_index


class EpochParseError(OrbitViewError, ValueError):
    """A TLE epoch token is unreadable or outside the supported range."""


class InvalidElementsError(OrbitViewError, ValueError):
    """Orbital elements cannot define an orbit (e.g. mean motion <= 0)."""


class PropagationError(OrbitViewError, RuntimeError):
    """The integrator or the ellipsoid transform failed for an object."""
