"""Pairs of a local form and its global counterpart.

An edge knows its curve twice: once in the coordinates of the surface it is
drawn on, and once in global space. ``Local`` keeps both halves together and
only offers operations that update them as a unit.
"""

from __future__ import annotations

from typing import Generic, TypeVar

from .geometry import Curve, Surface, curve_transform, mirror_local_curve, surface_curve_from_local
from .linalg import Transform
from .tolerance import ToleranceLike

L = TypeVar("L")
G = TypeVar("G")


class Local(Generic[L, G]):
    """A local form plus the global form derived from it."""

    __slots__ = ("_local", "_global")

    def __init__(self, local: L, global_form: G, *, _token: object = None) -> None:
        if _token is not _CONSTRUCT:
            raise TypeError("Use Local.lift() to create a local/global pair")
        self._local = local
        self._global = global_form

    @classmethod
    def lift(
        cls, local: Curve, surface: Surface, tolerance: ToleranceLike
    ) -> "Local[Curve, Curve]":
        """Pair a surface-local curve with its lifted global curve."""
        return cls(local, surface_curve_from_local(surface, local, tolerance), _token=_CONSTRUCT)

    def local(self) -> L:
        return self._local

    def global_form(self) -> G:
        return self._global

    def transform(self, transform: Transform) -> "Local[L, G]":
        """Transform the global form.

        The local form is expressed relative to a surface that undergoes the
        same transform, so it stays valid unchanged.
        """
        return Local(self._local, curve_transform(self._global, transform), _token=_CONSTRUCT)

    def mirrored(self) -> "Local[L, G]":
        """Local form mirrored across the u axis, for the reversed surface.

        Reversing a surface negates its path, so the mirrored local curve lifts
        to the same global curve with the same parametrization.
        """
        return Local(mirror_local_curve(self._local), self._global, _token=_CONSTRUCT)

    def __eq__(self, other) -> bool:
        return (
            isinstance(other, Local)
            and self._local == other._local
            and self._global == other._global
        )

    def __hash__(self) -> int:
        return hash((self._local, self._global))

    def __repr__(self) -> str:
        return f"Local(local={self._local!r}, global={self._global!r})"


_CONSTRUCT = object()
