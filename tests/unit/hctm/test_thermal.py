#!/usr/bin/env python3
"""
Unit tests for the HCTM feature word and temperature helpers.
"""

import os
import sys
import unittest

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../../../')))

from hctm.thermal import (
    HCTM_FEATURE_ID, celsius_to_kelvin, format_temperature, kelvin_to_celsius,
    pack_tmt, parse_bool, unpack_tmt, validate_thresholds
)


class TestTemperatureConversion(unittest.TestCase):
    """Kelvin/Celsius helpers."""

    def test_kelvin_to_celsius(self):
        self.assertEqual(kelvin_to_celsius(273), 0)
        self.assertEqual(kelvin_to_celsius(353), 80)
        self.assertEqual(kelvin_to_celsius(0), -273)

    def test_celsius_to_kelvin(self):
        self.assertEqual(celsius_to_kelvin(60), 333)
        self.assertEqual(kelvin_to_celsius(celsius_to_kelvin(72)), 72)

    def test_format_temperature(self):
        self.assertEqual(format_temperature(275), "275K / 2°C")


class TestFeatureWord(unittest.TestCase):
    """Packing and unpacking of the HCTM dword."""

    def test_feature_id(self):
        self.assertEqual(HCTM_FEATURE_ID, 0x10)

    def test_pack_puts_tmt1_in_high_word(self):
        self.assertEqual(pack_tmt(273, 275), 0x01110113)
        self.assertEqual(pack_tmt(0x0152, 0x0160), 0x01520160)

    def test_unpack_splits_high_and_low_word(self):
        self.assertEqual(unpack_tmt(0x01670115), (0x0167, 0x0115))
        self.assertEqual(unpack_tmt(0), (0, 0))
        self.assertEqual(unpack_tmt(0xFFFFFFFF), (0xFFFF, 0xFFFF))

    def test_unpack_inverts_pack(self):
        for tmt1, tmt2 in ((0, 0), (273, 275), (353, 358), (0xFFFF, 1)):
            self.assertEqual(unpack_tmt(pack_tmt(tmt1, tmt2)), (tmt1, tmt2))

    def test_pack_rejects_out_of_range(self):
        with self.assertRaises(ValueError):
            pack_tmt(0x10000, 275)
        with self.assertRaises(ValueError):
            pack_tmt(273, -1)
        with self.assertRaises(ValueError):
            pack_tmt(True, 275)

    def test_unpack_rejects_out_of_range(self):
        with self.assertRaises(ValueError):
            unpack_tmt(1 << 32)
        with self.assertRaises(ValueError):
            unpack_tmt(-1)


class TestParseBool(unittest.TestCase):

    def test_accepts_any_case(self):
        self.assertTrue(parse_bool("true"))
        self.assertTrue(parse_bool("TRUE"))
        self.assertFalse(parse_bool("False"))
        self.assertFalse(parse_bool(" false "))

    def test_rejects_other_values(self):
        with self.assertRaises(ValueError) as cm:
            parse_bool("yes")
        self.assertIn("'yes'", str(cm.exception))


class TestValidateThresholds(unittest.TestCase):

    def test_values_inside_range(self):
        validate_thresholds(273, 275, 273, 358)
        validate_thresholds(353, 358, 273, 358)

    def test_zero_disables_threshold(self):
        validate_thresholds(0, 0, 273, 358)
        validate_thresholds(273, 0, 273, 358)

    def test_tmt2_above_maximum(self):
        with self.assertRaises(ValueError) as cm:
            validate_thresholds(273, 360, 273, 358)
        self.assertIn("exceeds drive's maximum (358K)", str(cm.exception))

    def test_tmt1_below_minimum(self):
        with self.assertRaises(ValueError) as cm:
            validate_thresholds(270, 300, 273, 358)
        self.assertIn("below drive's minimum", str(cm.exception))

    def test_tmt1_must_be_below_tmt2(self):
        with self.assertRaises(ValueError):
            validate_thresholds(300, 300, 273, 358)
        with self.assertRaises(ValueError):
            validate_thresholds(310, 300)

    def test_unreported_bounds_are_skipped(self):
        validate_thresholds(200, 400, 0, 0)


if __name__ == '__main__':
    unittest.main()
