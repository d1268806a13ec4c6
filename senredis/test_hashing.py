"""
Tests for key to server selection.

"""
import hashlib
import zlib
from unittest import TestCase

from senredis.exceptions import SelectionError
from senredis.hashing import HashRing, md5_crc32, select
from senredis.pool import ServerDescriptor

KEYS = ["user:%d" % i for i in range(1000)]
NAMES = ["shard-%s" % c for c in "abcdefghij"]


class TestHasher(TestCase):

    def test_crc32_of_md5_hexdigest(self):
        expected = zlib.crc32(
            hashlib.md5(b"user:42").hexdigest().encode("ascii")) & 0xffffffff
        self.assertEqual(md5_crc32("user:42"), expected)
        self.assertEqual(md5_crc32(b"user:42"), expected)


class TestSelect(TestCase):

    def test_deterministic(self):
        for hash_type in ("consistent", "modulo"):
            for key in KEYS[:50]:
                self.assertEqual(select(key, NAMES, hash_type),
                                 select(key, list(NAMES), hash_type))

    def test_empty_candidates(self):
        self.assertRaises(SelectionError, select, "user:42", [])
        self.assertRaises(SelectionError, select, "user:42", [], "modulo")

    def test_single_candidate(self):
        for key in KEYS[:20]:
            self.assertEqual(select(key, ["only"]), "only")

    def test_modulo(self):
        for key in KEYS[:50]:
            self.assertEqual(select(key, NAMES, "modulo"),
                             NAMES[md5_crc32(key) % len(NAMES)])

    def test_unknown_hash_type(self):
        self.assertRaises(ValueError, select, "user:42", NAMES, "random")

    def test_removal_disruption(self):
        """
        Removing one candidate from the ring leaves every key that was not
        on it where it was. With modulo hashing most keys move.
        """
        removed = NAMES[3]
        remaining = [name for name in NAMES if name != removed]

        ring_moved = 0
        modulo_moved = 0
        for key in KEYS:
            before = select(key, NAMES)
            if before != removed and select(key, remaining) != before:
                ring_moved += 1
            before = select(key, NAMES, "modulo")
            if before != removed and select(key, remaining, "modulo") != before:
                modulo_moved += 1

        self.assertEqual(ring_moved, 0)
        self.assertGreater(modulo_moved, len(KEYS) // 2)
        self.assertGreater(modulo_moved, ring_moved)

    def test_repeated_candidates_add_weight(self):
        counts = {"light": 0, "heavy": 0}
        for key in KEYS:
            counts[select(key, ["light", "heavy", "heavy", "heavy"])] += 1
        self.assertGreater(counts["heavy"], counts["light"] * 2)

    def test_returns_candidate_objects(self):
        """
        Candidates are addressed as host:port but the descriptor itself is
        returned.
        """
        servers = [ServerDescriptor("10.0.0.1", 26379, "secret", 3, 1),
                   ServerDescriptor("10.0.0.2", 26379, "secret", 3, 1)]
        chosen = select("user:42", servers)
        self.assertIn(chosen, servers)
        self.assertIsInstance(chosen, ServerDescriptor)


class TestHashRing(TestCase):

    def test_lookup_matches_select(self):
        ring = HashRing().add_targets(NAMES)
        for key in KEYS[:100]:
            self.assertEqual(ring.lookup(key), select(key, NAMES))

    def test_duplicate_target(self):
        ring = HashRing().add_target("a")
        self.assertRaises(ValueError, ring.add_target, "a")

    def test_remove_target(self):
        ring = HashRing().add_targets(["a", "b", "c"])
        ring.remove_target("b")
        self.assertEqual(sorted(ring.targets()), ["a", "c"])
        for key in KEYS[:100]:
            self.assertIn(ring.lookup(key), ("a", "c"))
        self.assertRaises(ValueError, ring.remove_target, "b")

    def test_empty_ring(self):
        self.assertRaises(SelectionError, HashRing().lookup, "user:42")

    def test_weight_must_be_positive(self):
        ring = HashRing()
        self.assertRaises(ValueError, ring.add_target, "a", 0)
        self.assertRaises(ValueError, ring.add_target, "b", -1)
        self.assertEqual(ring.targets(), [])

    def test_ring_without_positions(self):
        """
        Targets that round down to no ring positions leave nothing to find.
        """
        ring = HashRing(replicas=0).add_targets(["a", "b"])
        self.assertRaises(SelectionError, ring.lookup, "user:42")

    def test_position_count(self):
        ring = HashRing(replicas=16).add_target("a").add_target("b", 2)
        self.assertEqual(len(ring._positions), 48)
