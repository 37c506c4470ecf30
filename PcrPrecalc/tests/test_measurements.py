#!/usr/bin/env python3
"""
Tests for the measurements document.
"""

import hashlib
import json
import os
import shutil
import sys
import tempfile
import unittest

root_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))
if root_dir not in sys.path:
    sys.path.append(root_dir)

from PcrPrecalc.database.measurements import (
    compare_measurements, load_measurements, parse_measurements, write_event_log, write_measurements
)
from PcrPrecalc.measure.simulator import Simulator


class TestMeasurementsDocument(unittest.TestCase):
    """Test cases for writing, loading and comparing measurements"""

    def setUp(self):
        self.workdir = tempfile.mkdtemp()
        self.simulator = Simulator()
        self.simulator.extend_pcr(4, hashlib.sha256(b"uki").digest(), None, "UKI")
        self.simulator.extend_pcr(9, hashlib.sha256(b"cmdline").digest(), b"c\0", "cmdline")
        self.simulator.extend_pcr(11, hashlib.sha256(b"linux").digest(), None, ".linux")

    def tearDown(self):
        shutil.rmtree(self.workdir)

    def test_write_and_load(self):
        path = os.path.join(self.workdir, "out", "measurements.json")
        written = write_measurements(self.simulator, path)

        with open(path) as f:
            self.assertEqual(json.load(f), written)
        self.assertEqual(set(written), {"4", "9", "11"})

        loaded = load_measurements(path)
        self.assertEqual(loaded, {i: self.simulator.read_pcr(i).hex() for i in (4, 9, 11)})

    def test_write_event_log(self):
        path = os.path.join(self.workdir, "eventlog.json")
        write_event_log(self.simulator, path)
        with open(path) as f:
            entries = json.load(f)
        self.assertEqual([e['pcr'] for e in entries], [4, 9, 11])
        self.assertEqual(entries[1]['raw_payload'], "6300")

    def test_parse_normalizes_case(self):
        self.assertEqual(parse_measurements({"4": "AB" * 32}), {4: "ab" * 32})

    def test_parse_rejects_invalid_documents(self):
        for document in ([], {"x": "00" * 32}, {"24": "00" * 32}, {"4": "00"}, {"4": 5}, {"4": "zz" * 32}):
            with self.assertRaises(ValueError, msg=repr(document)):
                parse_measurements(document)

    def test_load_invalid_json(self):
        path = os.path.join(self.workdir, "bad.json")
        with open(path, 'w') as f:
            f.write("{not json")
        with self.assertRaises(ValueError):
            load_measurements(path)

    def test_compare(self):
        predicted = {4: "aa" * 32, 9: "bb" * 32, 11: "cc" * 32}
        actual = {4: "AA" * 32, 9: "00" * 32}

        mismatches = compare_measurements(predicted, actual)
        self.assertEqual([m['pcr_index'] for m in mismatches], [9, 11])
        self.assertEqual(mismatches[0]['status'], 'mismatch')
        self.assertEqual(mismatches[1]['status'], 'missing')
        self.assertEqual(compare_measurements(predicted, dict(predicted)), [])


if __name__ == '__main__':
    unittest.main()
