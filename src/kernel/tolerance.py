"""Tolerance value used for every coincidence and parallelism test.

A single scalar epsilon is threaded explicitly through intersection, sweep
and validation. Nothing below the public entry points invents its own.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

# Only used when building a ValidationConfig without an explicit tolerance.
DEFAULT_TOLERANCE = 1e-9


class InvalidTolerance(ValueError):
    """Raised when a tolerance is not a positive, finite number."""

    pass


@dataclass(frozen=True)
class Tolerance:
    """Positive scalar epsilon for geometric comparisons."""

    value: float

    def __post_init__(self) -> None:
        value = float(self.value)
        if not value > 0.0 or value == float("inf"):
            raise InvalidTolerance(f"Tolerance must be a positive number, got {self.value!r}")
        object.__setattr__(self, "value", value)

    @classmethod
    def from_scalar(cls, value: Union[float, "Tolerance"]) -> "Tolerance":
        """Create a tolerance, passing existing instances through unchanged."""
        if isinstance(value, Tolerance):
            return value
        return cls(value)

    def __float__(self) -> float:
        return self.value


ToleranceLike = Union[float, Tolerance]
