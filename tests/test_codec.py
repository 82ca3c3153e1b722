"""Tests for the XML height map codec."""

from __future__ import annotations

import tempfile
import unittest
import xml.etree.ElementTree as ET
from pathlib import Path

from pydantic import ValidationError

from cnc_heightmap.probe.codec import CodecOptions, dumps, load, loads, save
from cnc_heightmap.probe.errors import MalformedDocumentError
from cnc_heightmap.probe.heightmap import HeightMap


def _partial_map() -> HeightMap:
    hm = HeightMap.create(0.7, 0.4, (0.1, -0.3), (2.0, 1.05))
    hm.set_height(0, 0, 1.23456)
    hm.set_height(1, 2, -0.5)
    hm.set_height(hm.size_x - 1, hm.size_y - 1, 0.0004)
    hm.z_offset = 0.125
    return hm


class CodecWriteTests(unittest.TestCase):
    """Document layout produced by ``dumps``."""

    def test_header_and_sparse_points(self) -> None:
        hm = _partial_map()
        root = ET.fromstring(dumps(hm))

        self.assertEqual(root.tag, "heightmap")
        self.assertEqual(root.get("SizeX"), str(hm.size_x))
        self.assertEqual(root.get("SizeY"), str(hm.size_y))
        self.assertEqual(float(root.get("MinX")), 0.1)
        self.assertEqual(float(root.get("MaxY")), 1.05)
        self.assertEqual(root.get("ZOffset"), "0.125")

        points = root.findall("point")
        self.assertEqual(len(points), 3)
        self.assertEqual(points[0].attrib, {"X": "0", "Y": "0"})
        self.assertEqual(points[0].text, "1.235")
        self.assertEqual(points[1].text, "-0.500")

    def test_decimals_option(self) -> None:
        hm = _partial_map()
        root = ET.fromstring(dumps(hm, CodecOptions(decimals=1)))

        self.assertEqual(root.find("point").text, "1.2")
        with self.assertRaises(ValidationError):
            CodecOptions(decimals=-1)

    def test_empty_map_has_no_points(self) -> None:
        hm = HeightMap.create(1.0, 1.0, (0.0, 0.0), (1.0, 1.0))
        root = ET.fromstring(dumps(hm))
        self.assertEqual(root.findall("point"), [])


class CodecReadTests(unittest.TestCase):
    """Decoding documents and round trips."""

    def test_round_trip(self) -> None:
        hm = _partial_map()
        restored = loads(dumps(hm))

        self.assertEqual(restored.min, hm.min)
        self.assertEqual(restored.max, hm.max)
        self.assertEqual((restored.size_x, restored.size_y), (hm.size_x, hm.size_y))
        self.assertEqual(restored.not_probed, hm.not_probed)
        self.assertEqual(restored.progress, 3)
        self.assertEqual(restored.z_offset, 0.125)
        for x in range(hm.size_x):
            for y in range(hm.size_y):
                original = hm.get_height(x, y)
                value = restored.get_height(x, y)
                if original is None:
                    self.assertIsNone(value)
                else:
                    self.assertAlmostEqual(value, original, places=3)

    def test_legacy_mode_ignores_z_offset(self) -> None:
        hm = _partial_map()
        restored = loads(dumps(hm), CodecOptions(restore_z_offset=False))
        self.assertEqual(restored.z_offset, 0.0)

    def test_missing_z_offset_defaults_to_zero(self) -> None:
        document = (
            '<heightmap MinX="0" MinY="0" MaxX="2" MaxY="2" SizeX="3" SizeY="3">'
            '<point X="1" Y="1">0.5</point>'
            "</heightmap>"
        )
        hm = loads(document)
        self.assertEqual(hm.z_offset, 0.0)
        self.assertEqual(hm.get_height(1, 1), 0.5)
        self.assertEqual((hm.min_height, hm.max_height), (0.5, 0.5))

    def test_not_probed_rebuilt_independent_of_entry_order(self) -> None:
        document = (
            '<heightmap MinX="0" MinY="0" MaxX="1" MaxY="1" SizeX="2" SizeY="2" ZOffset="0">'
            '<point X="1" Y="1">0.123456789</point>'
            '<point X="0" Y="0">-1</point>'
            "</heightmap>"
        )
        hm = loads(document)
        self.assertEqual(hm.not_probed, [(0, 1), (1, 0)])
        self.assertEqual(hm.get_height(1, 1), 0.123456789)

    def test_malformed_documents(self) -> None:
        header = 'MinX="0" MinY="0" MaxX="2" MaxY="2" SizeX="3" SizeY="3"'
        documents = [
            "not xml at all",
            f"<grid {header}/>",
            '<heightmap MinY="0" MaxX="2" MaxY="2" SizeX="3" SizeY="3"/>',
            '<heightmap MinX="0,5" MinY="0" MaxX="2" MaxY="2" SizeX="3" SizeY="3"/>',
            '<heightmap MinX="0" MinY="0" MaxX="2" MaxY="2" SizeX="1" SizeY="3"/>',
            '<heightmap MinX="2" MinY="0" MaxX="0" MaxY="2" SizeX="3" SizeY="3"/>',
            f'<heightmap {header}><point X="3" Y="0">1.0</point></heightmap>',
            f'<heightmap {header}><point X="0">1.0</point></heightmap>',
            f'<heightmap {header}><point X="0" Y="0">abc</point></heightmap>',
            f'<heightmap {header}><point X="0" Y="0"></point></heightmap>',
            '<heightmap MinX="0" MinY="0" MaxX="2" MaxY="2" SizeX="1000000" SizeY="1000000"/>',
        ]
        for document in documents:
            with self.subTest(document=document):
                with self.assertRaises(MalformedDocumentError):
                    loads(document)


class CodecFileTests(unittest.TestCase):
    """Saving and loading through the filesystem."""

    def test_save_and_load(self) -> None:
        hm = _partial_map()
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "maps" / "bed.xml"
            written = save(hm, path)

            self.assertEqual(written, path)
            self.assertTrue(path.exists())
            self.assertEqual(list(path.parent.glob("*.tmp")), [])
            self.assertTrue(path.read_text(encoding="utf-8").startswith("<?xml"))

            restored = load(path)
            self.assertEqual(restored.not_probed, hm.not_probed)
            self.assertAlmostEqual(restored.get_height(1, 2), -0.5)

    def test_load_missing_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(FileNotFoundError):
                load(Path(tmp) / "missing.xml")


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
