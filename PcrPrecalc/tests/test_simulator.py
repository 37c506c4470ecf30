#!/usr/bin/env python3
"""
Tests for the PCR bank simulator.
"""

import hashlib
import os
import sys
import unittest

# Add the repository root to the path so the package can be imported when run directly
root_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))
if root_dir not in sys.path:
    sys.path.append(root_dir)

from PcrPrecalc.core.errors import PcrIndexError, PrecalculationError
from PcrPrecalc.measure.simulator import PCR_COUNT, ZERO_DIGEST, PcrBank, Simulator
from PcrPrecalc.tests.pcr_replay import calculate_pcr_extend, replay_pcr_extends


def digest_of(label: str) -> bytes:
    return hashlib.sha256(label.encode()).digest()


class TestSimulator(unittest.TestCase):
    """Test cases for the simulated PCR bank"""

    def test_fresh_bank_is_zero(self):
        simulator = Simulator()
        self.assertEqual(len(simulator.bank), PCR_COUNT)
        for index in range(PCR_COUNT):
            self.assertEqual(simulator.read_pcr(index), bytes(32))
        self.assertEqual(simulator.event_log, [])
        self.assertEqual(simulator.written_indices(), [])

    def test_extend_matches_hash_chain(self):
        simulator = Simulator()
        event = digest_of("a")
        simulator.extend_pcr(4, event, b"payload", "first event")

        expected = hashlib.sha256(ZERO_DIGEST + event).digest()
        self.assertEqual(simulator.read_pcr(4), expected)
        self.assertEqual(simulator.read_pcr(4).hex(), calculate_pcr_extend("00" * 32, event.hex()))

        logged = simulator.event_log[0]
        self.assertEqual(logged.pcr_index, 4)
        self.assertEqual(logged.digest, event)
        self.assertEqual(logged.raw_payload, b"payload")
        self.assertEqual(logged.description, "first event")

    def test_extend_only_touches_target_register(self):
        simulator = Simulator()
        simulator.extend_pcr(9, digest_of("x"))
        for index in range(PCR_COUNT):
            if index != 9:
                self.assertEqual(simulator.read_pcr(index), ZERO_DIGEST)
        self.assertEqual(simulator.written_indices(), [9])

    def test_extend_is_order_sensitive(self):
        a, b, c = digest_of("a"), digest_of("b"), digest_of("c")

        forward = Simulator()
        for event in (a, b, c):
            forward.extend_pcr(11, event)
        backward = Simulator()
        for event in (c, b, a):
            backward.extend_pcr(11, event)

        self.assertNotEqual(forward.read_pcr(11), backward.read_pcr(11))

    def test_different_sequences_differ(self):
        a, b, c = digest_of("a"), digest_of("b"), digest_of("c")

        first = Simulator()
        for event in (a, b):
            first.extend_pcr(11, event)
        second = Simulator()
        for event in (a, c):
            second.extend_pcr(11, event)
        third = Simulator()
        third.extend_pcr(11, a)

        self.assertNotEqual(first.read_pcr(11), second.read_pcr(11))
        self.assertNotEqual(first.read_pcr(11), third.read_pcr(11))

    def test_split_sequence_gives_same_value(self):
        a, b, c = digest_of("a"), digest_of("b"), digest_of("c")

        first = Simulator()
        for batch in [(a, b), (c,)]:
            for event in batch:
                first.extend_pcr(11, event)
        second = Simulator()
        for batch in [(a,), (b, c)]:
            for event in batch:
                second.extend_pcr(11, event)

        self.assertEqual(first.read_pcr(11), second.read_pcr(11))

    def test_replay_matches_simulator(self):
        events = [digest_of(label) for label in ("a", "b", "c")]
        simulator = Simulator()
        for event in events:
            simulator.extend_pcr(4, event)
        self.assertEqual(replay_pcr_extends(e.hex() for e in events), simulator.read_pcr(4).hex())

    def test_invalid_index_rejected(self):
        simulator = Simulator()
        for index in (-1, PCR_COUNT, 100, True, "4"):
            with self.assertRaises(PcrIndexError):
                simulator.extend_pcr(index, digest_of("a"))
        with self.assertRaises(IndexError):
            simulator.read_pcr(PCR_COUNT)
        with self.assertRaises(PrecalculationError):
            simulator.read_pcr(-1)
        self.assertEqual(simulator.event_log, [])

    def test_invalid_digest_rejected(self):
        simulator = Simulator()
        with self.assertRaises(ValueError):
            simulator.extend_pcr(4, b"short")
        self.assertEqual(simulator.read_pcr(4), ZERO_DIGEST)
        self.assertEqual(simulator.event_log, [])

    def test_measurements_document(self):
        simulator = Simulator()
        simulator.extend_pcr(11, digest_of("b"))
        simulator.extend_pcr(4, digest_of("a"))

        measurements = simulator.to_measurements()
        self.assertEqual(list(measurements), ["4", "11"])
        self.assertEqual(measurements["4"], simulator.read_pcr(4).hex())
        self.assertEqual(simulator.to_measurements([12]), {"12": "00" * 32})

    def test_event_log_entries(self):
        simulator = Simulator()
        simulator.extend_pcr(9, digest_of("a"), b"\x01\x02", "with payload")
        simulator.extend_pcr(9, digest_of("b"), None, "without payload")

        entries = simulator.event_log_entries()
        self.assertEqual(entries[0]['raw_payload'], "0102")
        self.assertNotIn('raw_payload', entries[1])
        self.assertEqual([e['pcr'] for e in entries], [9, 9])
        self.assertEqual(len(simulator.get_events_by_pcr(9)), 2)

    def test_simulator_is_a_pcr_bank(self):
        self.assertIsInstance(Simulator(), PcrBank)
        with self.assertRaises(TypeError):
            PcrBank()


if __name__ == '__main__':
    unittest.main()
