"""
The pool of Sentinel servers a SentinelMonitor can ask for masters.

A server registered with weight ``w`` is stored ``w`` times, so the
replication count *is* the weight. The consistent selector turns repeated
entries back into a ring weight, which makes heavier sentinels proportionally
more likely to be chosen for a key.
"""

import threading
from collections import namedtuple

_FIELDS = ('host', 'port', 'weight', 'auth', 'retry', 'db')


class ServerDescriptor(namedtuple('ServerDescriptor',
                                  'host port auth retry db weight')):
    """
    One sentinel endpoint. Immutable, and equal to any other descriptor with
    the same field values.
    """
    __slots__ = ()

    def __new__(cls, host, port, auth=None, retry=0, db=0, weight=1):
        return super(ServerDescriptor, cls).__new__(
            cls, host, int(port), auth, int(retry), int(db), int(weight))

    def __str__(self):
        return '%s:%s' % (self.host, self.port)

    @classmethod
    def from_entry(cls, entry):
        """
        Build a descriptor from a raw configuration entry, either a sequence
        ``(host, port, weight, auth, retry, db)`` or a mapping with those keys.
        Trailing fields may be left out.
        """
        if isinstance(entry, dict):
            values = dict(entry)
        else:
            values = dict(zip(_FIELDS, entry))
        weight = values.get('weight')
        return cls(values['host'], values['port'],
                   auth=values.get('auth'),
                   retry=values.get('retry') or 0,
                   db=values.get('db') or 0,
                   weight=1 if weight is None else weight)


class ServerPool(object):
    """
    Ordered, weight-expanded list of ServerDescriptor. Mutations are
    serialized so monitors sharing a pool don't lose removals.
    """

    def __init__(self, descriptors=None):
        self._servers = list(descriptors or [])
        self._lock = threading.Lock()

    def add(self, descriptor):
        with self._lock:
            self._servers.append(descriptor)

    def add_weighted(self, entries):
        """
        Append ``weight`` copies of each entry. A weight of zero or less
        leaves the entry out entirely.
        """
        descriptors = [ServerDescriptor.from_entry(entry) for entry in entries]
        with self._lock:
            for descriptor in descriptors:
                self._servers.extend([descriptor] * max(descriptor.weight, 0))

    def remove(self, descriptor):
        "Remove every entry equal to ``descriptor``, i.e. its whole block."
        with self._lock:
            self._servers = [server for server in self._servers
                             if server != descriptor]

    def snapshot(self):
        with self._lock:
            return list(self._servers)

    def __len__(self):
        return len(self._servers)

    def __iter__(self):
        return iter(self.snapshot())

    def __contains__(self, descriptor):
        return descriptor in self.snapshot()

    def __repr__(self):
        return '<ServerPool %s>' % ', '.join(str(s) for s in self.snapshot())
