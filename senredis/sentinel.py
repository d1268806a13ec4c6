"""
Sentinel Monitor

SentinelMonitor resolves the master (or a slave) that owns a key. Sentinels
are registered with weights into a ServerPool. For each lookup the key picks a
sentinel through the consistent hash. The sentinel is asked for its masters,
and the key picks one master name the same way. Sentinels that refuse
connections are dropped from the pool and the next one is tried.

The returned Endpoint carries the auth and db index configured for the
sentinel, since the data nodes behind a sentinel group share them.
"""

import logging
import time
from collections import namedtuple
from contextlib import contextmanager

from senredis.exceptions import (ConnectError, DecodeError, DiscoveryError,
                                 NoAvailableSentinelError, SelectionError,
                                 SentinelError)
from senredis.hashing import CONSISTENT, DEFAULT_REPLICAS, select
from senredis.pool import ServerDescriptor, ServerPool
from senredis.stream import DEFAULT_TIMEOUT, RedisStream

IDLE = 'idle'
SELECTING = 'selecting'
CONNECTING = 'connecting'
QUERYING = 'querying'
RESOLVED = 'resolved'
FAILED = 'failed'

# position of the name field in SENTINEL masters / slaves records
NAME_FIELD = 1


class Endpoint(namedtuple('Endpoint', 'host port auth db')):
    __slots__ = ()

    def __str__(self):
        return '%s:%s' % (self.host, self.port)


def get_masters():
    return ['SENTINEL', 'masters']


def get_slaves_by_master(master_name):
    return ['SENTINEL', 'slaves', master_name]


def get_master_addr_by_name(master_name):
    return ['SENTINEL', 'get-master-addr-by-name', master_name]


class SentinelMonitor(object):
    """
    Locates masters and slaves for keys through a pool of Sentinels.

    ``stream_class`` builds the connection used for each lookup and can be
    swapped out in tests.
    """
    stream_class = RedisStream

    def __init__(self, servers=None, hash_type=CONSISTENT,
                 replicas=DEFAULT_REPLICAS, protocol='tcp',
                 timeout=DEFAULT_TIMEOUT, numeric_simple_strings=False):
        self.pool = ServerPool()
        self.hash_type = hash_type
        self.replicas = replicas
        self.protocol = protocol
        self.timeout = timeout
        self.numeric_simple_strings = numeric_simple_strings
        self.state = IDLE
        self.key = None
        self.current = None
        self.stream = None
        if servers:
            self.add_servers(servers)

    def add_server(self, host, port, auth=None, retry=0, db=0):
        self.pool.add(ServerDescriptor(host, port, auth, retry, db))

    def add_servers(self, servers):
        """
        Register raw entries ``(host, port, weight, auth, retry, db)``. Each
        is stored ``weight`` times.
        """
        self.pool.add_weighted(servers)

    def remove_server(self, server):
        self.pool.remove(server)

    def _select(self, key, candidates):
        return select(key, candidates, self.hash_type, self.replicas)

    def connect(self, key):
        """
        Open a stream to the sentinel ``key`` maps to. Sentinels that fail
        are removed and another is selected, for at most as many attempts as
        the pool had entries. Raises NoAvailableSentinelError when none is
        left.
        """
        logger = logging.getLogger('senredis.sentinel')
        self.close()
        self.key = key
        total = len(self.pool)
        last_error = None
        for attempt in range(1, total + 1):
            self.state = SELECTING
            try:
                self.current = self._select(key, self.pool.snapshot())
            except SelectionError:
                break
            self.state = CONNECTING
            stream = self.stream_class(
                self.current.retry,
                numeric_simple_strings=self.numeric_simple_strings)
            try:
                stream.open(self.current.host, self.current.port,
                            self.protocol, self.timeout)
            except ConnectError as e:
                last_error = e
                logger.warning("sentinel %s unreachable, removing it from "
                               "the pool (attempt %d/%d)",
                               self.current, attempt, total)
                self.remove_server(self.current)
                continue
            self.stream = stream
            self.state = RESOLVED
            return stream

        self.state = FAILED
        self.current = None
        error = NoAvailableSentinelError(
            'no sentinel available for key %r after %d attempts'
            % (key, total))
        if last_error is not None:
            raise error from last_error
        raise error

    def close(self):
        if self.stream is not None:
            self.stream.close()
        self.stream = None

    @contextmanager
    def session(self, key):
        "connect() for ``key`` and close the stream when the block exits."
        try:
            yield self.connect(key)
        finally:
            self.close()

    def _query(self, *args):
        self.state = QUERYING
        if not self.stream.send_request(args):
            raise DecodeError('could not send %s to %s'
                              % (' '.join(args), self.current))
        reply = self.stream.read_response()
        if self.stream.last_error is not None:
            raise self.stream.last_error
        if reply is False:
            raise DecodeError('no reply to %s from %s'
                              % (' '.join(args), self.current))
        return reply

    def _names(self, records):
        try:
            return [record[NAME_FIELD] for record in records or []]
        except (IndexError, KeyError, TypeError):
            raise DecodeError('malformed sentinel reply from %s: %r'
                              % (self.current, records))

    def _master_name(self, key):
        return self._select(key, self._names(self._query(*get_masters())))

    def _master_addr(self, master_name):
        address = self._query(*get_master_addr_by_name(master_name))
        if not address or len(address) < 2:
            raise DecodeError('sentinel %s does not know master %r'
                              % (self.current, master_name))
        return address

    def _slave_addr(self, key, master_name):
        slaves = self._query(*get_slaves_by_master(master_name))
        if not slaves:
            # no slaves, the master serves reads too
            return ':'.join(str(part) for part in
                            self._master_addr(master_name))
        return self._select(key, self._names(slaves))

    def _resolve(self, operation, key, lookup):
        logger = logging.getLogger('senredis.sentinel')
        start = time.time()
        sentinel = None
        try:
            with self.session(key):
                sentinel = self.current
                result = lookup()
        except SentinelError as e:
            self.state = FAILED
            elapsed = (time.time() - start) * 1000
            logger.error("%s key:{%s} sentinel:{%s} failed %.3fms: %s",
                         operation, key, sentinel, elapsed, e,
                         extra={'operation': operation, 'key': key,
                                'elapsed': elapsed, 'sentinel': str(sentinel),
                                'outcome': 'failure'})
            if isinstance(e, DiscoveryError):
                raise
            raise DiscoveryError.wrap(e) from e
        self.state = RESOLVED
        elapsed = (time.time() - start) * 1000
        logger.info("%s key:{%s} sentinel:{%s} server:{%s} %.3fms",
                    operation, key, sentinel, result, elapsed,
                    extra={'operation': operation, 'key': key,
                           'elapsed': elapsed, 'sentinel': str(sentinel),
                           'server': str(result), 'outcome': 'success'})
        return result

    def get_master_name(self, key):
        "The master name (shard) ``key`` belongs to."
        return self._resolve('get_master_name', key,
                             lambda: self._master_name(key))

    def get_master_server(self, key, master_name=None):
        """
        Returns Endpoint(host, port, auth, db) of the master owning ``key``.
        Raises DiscoveryError when it can't be resolved.
        """
        def lookup():
            name = master_name or self._master_name(key)
            host, port = self._master_addr(name)[:2]
            return Endpoint(host, port, self.current.auth, self.current.db)
        return self._resolve('get_master_server', key, lookup)

    def get_slave_server(self, key, master_name=None):
        """
        Returns Endpoint(host, port, auth, db) of a slave of the master owning
        ``key``, or of the master itself when it has no slaves.
        """
        def lookup():
            name = master_name or self._master_name(key)
            host, _, port = self._slave_addr(key, name).rpartition(':')
            return Endpoint(host, port, self.current.auth, self.current.db)
        return self._resolve('get_slave_server', key, lookup)
