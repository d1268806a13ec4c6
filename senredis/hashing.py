"""
Key to server selection.

Two strategies are available. ``consistent`` places every candidate at
``replicas`` points on a 32-bit ring and picks the first point after the key's
hash. Removing a candidate only moves the keys that were on that candidate.
``modulo`` takes the key's hash modulo the number of candidates. It is cheaper,
but shrinking the list remaps almost every key.

Both use the same hash: crc32 of the md5 hex digest.
"""

import hashlib
import zlib
from bisect import bisect_right, insort

from senredis.exceptions import SelectionError

CONSISTENT = 'consistent'
MODULO = 'modulo'
DEFAULT_REPLICAS = 128


def _to_bytes(value):
    if isinstance(value, bytes):
        return value
    return str(value).encode('utf-8')


def md5_crc32(value):
    "Unsigned crc32 of the md5 hex digest of ``value``."
    digest = hashlib.md5(_to_bytes(value)).hexdigest()
    return zlib.crc32(digest.encode('ascii')) & 0xffffffff


class HashRing(object):
    """
    Consistent hash ring over string targets.

    A target with weight ``w`` is placed at ``replicas * w`` positions, the
    i-th being ``hasher(target + str(i))``.
    """

    def __init__(self, replicas=DEFAULT_REPLICAS, hasher=md5_crc32):
        self.replicas = replicas
        self.hasher = hasher
        self._positions = []
        self._weights = {}

    def add_target(self, target, weight=1):
        if target in self._weights:
            raise ValueError('Target %r already exists' % target)
        if weight <= 0:
            raise ValueError('Target %r needs a positive weight' % target)
        self._weights[target] = weight
        for i in range(int(round(self.replicas * weight))):
            insort(self._positions, (self.hasher('%s%d' % (target, i)), target))
        return self

    def add_targets(self, targets):
        for target in targets:
            self.add_target(target)
        return self

    def remove_target(self, target):
        if target not in self._weights:
            raise ValueError('Target %r does not exist' % target)
        del self._weights[target]
        self._positions = [position for position in self._positions
                           if position[1] != target]
        return self

    def targets(self):
        return list(self._weights)

    def lookup(self, resource):
        if not self._weights or not self._positions:
            raise SelectionError('No targets exist')
        if len(self._weights) == 1:
            return next(iter(self._weights))
        point = self.hasher(resource)
        # first position strictly greater than the key's hash
        index = bisect_right(self._positions, (point, chr(0x10ffff)))
        if index == len(self._positions):
            index = 0
        return self._positions[index][1]


def select(key, candidates, hash_type=CONSISTENT, replicas=DEFAULT_REPLICAS):
    """
    Pick the element of ``candidates`` that ``key`` maps to. Candidates are
    addressed by ``str(candidate)``, and repeated labels add ring weight.
    The first candidate carrying the chosen label is returned.

    Raises SelectionError when ``candidates`` is empty.
    """
    candidates = list(candidates)
    if not candidates:
        raise SelectionError('No candidates to select %r from' % (key,))

    if hash_type == MODULO:
        return candidates[md5_crc32(key) % len(candidates)]
    if hash_type != CONSISTENT:
        raise ValueError('Unknown hash type %r' % hash_type)

    by_label = {}
    weights = {}
    for candidate in candidates:
        label = str(candidate)
        by_label.setdefault(label, candidate)
        weights[label] = weights.get(label, 0) + 1

    ring = HashRing(replicas)
    for label, weight in weights.items():
        ring.add_target(label, weight)
    return by_label[ring.lookup(key)]
