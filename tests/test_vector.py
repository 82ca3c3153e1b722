"""Unit tests for cnc_heightmap.probe.vector."""

from __future__ import annotations

import math
import unittest

from pydantic import ValidationError

from cnc_heightmap.probe.vector import EQUALITY_TOLERANCE, Vector2


class Vector2Tests(unittest.TestCase):
    """Validate arithmetic and equality of the 2D vector."""

    def test_arithmetic(self) -> None:
        a = Vector2(1.0, 2.0)
        b = Vector2(3.0, -4.0)
        self.assertEqual(a + b, Vector2(4.0, -2.0))
        self.assertEqual(b - a, Vector2(2.0, -6.0))
        self.assertEqual(-a, Vector2(-1.0, -2.0))
        self.assertEqual(a * 2, Vector2(2.0, 4.0))
        self.assertEqual(2 * a, Vector2(2.0, 4.0))
        self.assertEqual(b / 2, Vector2(1.5, -2.0))
        self.assertTrue(math.isclose(b.magnitude, 5.0))

    def test_equality_is_effectively_exact(self) -> None:
        """Only values within the smallest positive double compare equal."""

        self.assertEqual(EQUALITY_TOLERANCE, math.ulp(0.0))
        self.assertEqual(Vector2(0.1, 0.2), Vector2(0.1, 0.2))
        self.assertNotEqual(Vector2(0.1 + 0.2, 0.0), Vector2(0.3, 0.0))
        self.assertNotEqual(Vector2(1.0, 1.0), (1.0, 1.0))

    def test_is_immutable_and_hashable(self) -> None:
        vec = Vector2(1.0, 2.0)
        with self.assertRaises(ValidationError):
            vec.x = 5.0  # type: ignore[misc]
        self.assertEqual(len({Vector2(1.0, 2.0), Vector2(1.0, 2.0)}), 1)

    def test_hash_agrees_with_equality(self) -> None:
        """Vectors equal within the tolerance collapse to one set entry."""

        a = Vector2(0.0, 0.0)
        b = Vector2(5e-324, 0.0)
        c = Vector2(-0.0, -5e-324)
        self.assertEqual(a, b)
        self.assertEqual(a, c)
        self.assertEqual(hash(a), hash(b))
        self.assertEqual(hash(a), hash(c))
        self.assertEqual(len({a, b}), 1)
        self.assertEqual({a: "origin"}[b], "origin")
        self.assertNotEqual(hash(Vector2(0.1, 0.0)), hash(Vector2(0.2, 0.0)))

    def test_coerce_accepts_pairs(self) -> None:
        self.assertEqual(Vector2.coerce((1, 2)), Vector2(1.0, 2.0))
        vec = Vector2(3.0, 4.0)
        self.assertIs(Vector2.coerce(vec), vec)
        with self.assertRaises(ValueError):
            Vector2.coerce((1.0, 2.0, 3.0))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
