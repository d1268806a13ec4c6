"""
Sentinel Redis Locator

Finds the master or slave that owns a key in a Redis deployment sharded over
several Sentinel-monitored masters. Sentinels are registered with weights; a
consistent hash of the key picks the sentinel to ask, the master group the key
belongs to, and the slave to read from. Sentinels that refuse connections are
dropped and the next one is tried.

"""

from senredis.exceptions import (ConnectError, DecodeError,
                                 DiscoveryConnectionError, DiscoveryError,
                                 DiscoveryResponseError,
                                 NoAvailableSentinelError, RemoteError,
                                 SelectionError, SentinelError)
from senredis.hashing import HashRing, select
from senredis.pool import ServerDescriptor, ServerPool
from senredis.sentinel import Endpoint, SentinelMonitor
from senredis.stream import RedisStream

__all__ = [
    'ConnectError', 'DecodeError', 'DiscoveryConnectionError', 'DiscoveryError',
    'DiscoveryResponseError', 'Endpoint', 'HashRing',
    'NoAvailableSentinelError', 'RedisStream', 'RemoteError',
    'SelectionError', 'SentinelError', 'SentinelMonitor', 'ServerDescriptor',
    'ServerPool', 'select',
]
