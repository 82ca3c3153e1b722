"""Immutable 2D vector used for bounds and coordinate math."""

from __future__ import annotations

import math
from numbers import Real
from typing import Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict

# Smallest positive double: equality is effectively exact, only values that
# differ by one subnormal step compare equal.
EQUALITY_TOLERANCE = math.ulp(0.0)

# Vectors equal under the tolerance only differ in subnormals far below 1e-300,
# so hashing components rounded at this precision agrees with __eq__.
_HASH_DIGITS = 300


class Vector2(BaseModel):
    """2D coordinate or displacement in machine units (mm)."""

    x: float
    y: float

    model_config = ConfigDict(frozen=True)

    def __init__(self, x: float, y: float) -> None:
        super().__init__(x=x, y=y)

    @classmethod
    def coerce(cls, value: Union["Vector2", Sequence[float]]) -> "Vector2":
        """Accept a :class:`Vector2` or an ``(x, y)`` pair."""

        if isinstance(value, Vector2):
            return value
        if len(value) != 2:
            raise ValueError("A 2D point needs exactly two coordinates")
        return cls(float(value[0]), float(value[1]))

    def as_tuple(self) -> Tuple[float, float]:
        """Return the vector as an ``(x, y)`` tuple."""

        return self.x, self.y

    @property
    def magnitude(self) -> float:
        return math.hypot(self.x, self.y)

    def __add__(self, other: "Vector2") -> "Vector2":
        if not isinstance(other, Vector2):
            return NotImplemented
        return Vector2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Vector2") -> "Vector2":
        if not isinstance(other, Vector2):
            return NotImplemented
        return Vector2(self.x - other.x, self.y - other.y)

    def __neg__(self) -> "Vector2":
        return Vector2(-self.x, -self.y)

    def __mul__(self, scalar: float) -> "Vector2":
        if not isinstance(scalar, Real):
            return NotImplemented
        return Vector2(self.x * scalar, self.y * scalar)

    def __rmul__(self, scalar: float) -> "Vector2":
        return self.__mul__(scalar)

    def __truediv__(self, scalar: float) -> "Vector2":
        if not isinstance(scalar, Real):
            return NotImplemented
        return Vector2(self.x / scalar, self.y / scalar)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Vector2):
            return NotImplemented
        return (
            abs(self.x - other.x) <= EQUALITY_TOLERANCE
            and abs(self.y - other.y) <= EQUALITY_TOLERANCE
        )

    def __hash__(self) -> int:
        return hash((round(self.x, _HASH_DIGITS), round(self.y, _HASH_DIGITS)))


__all__ = ["EQUALITY_TOLERANCE", "Vector2"]
