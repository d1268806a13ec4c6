"""
Sentinel Redis Client

SentinelRedis can be used in place of a StrictRedis client for single-key
commands. Instead of a host and port, pass the name of a sentinel group from
SENREDIS_GROUPS. For every command the key is hashed onto a sentinel, the
sentinel is asked for its masters, and the key is hashed onto one of them.
Writes go to that master, reads go to one of its slaves (or to the master
when it has none).

If a command fails with a ConnectionError the endpoint is resolved again,
which picks up a fail-over Sentinel has already carried out, and the command
is retried once.
"""

import logging
import time
from functools import wraps

from redis.client import StrictRedis
from redis.exceptions import ConnectionError

from senredis import conf

MASTER = 'master'
SLAVE = 'slave'


def _executeOn(role):
    def decorator(func):
        """
        Decorator that will cause the function to be executed on the master
        or slave owning the key. In the case of a Connection failure, it will
        resolve the endpoint again and perform the action there.
        """
        @wraps(func)
        def wrapper(self, key, *args, **kwargs):
            start = time.time()
            endpoint, connection = self.get_connection(role, key)
            try:
                result = getattr(connection, func.__name__)(key, *args,
                                                            **kwargs)
            except ConnectionError:
                # if it fails a second time, then sentinel hasn't caught up,
                # so we have no choice but to fail for real.
                self.disconnect(endpoint)
                endpoint, connection = self.get_connection(role, key)
                result = getattr(connection, func.__name__)(key, *args,
                                                            **kwargs)
            elapsed = (time.time() - start) * 1000
            logging.getLogger('senredis.client').info(
                "%s key:{%s} server:{host:%s port:%s} %.3fms",
                func.__name__, key, endpoint.host, endpoint.port, elapsed,
                extra={'operation': func.__name__, 'key': key,
                       'server': str(endpoint), 'elapsed': elapsed,
                       'outcome': 'success'})
            return result
        return wrapper
    return decorator


executeOnMaster = _executeOn(MASTER)
executeOnSlave = _executeOn(SLAVE)


class SentinelRedis(object):
    """
    StrictRedis-compatible client for one sentinel group. Connections to the
    resolved masters and slaves are kept per endpoint.
    """
    redis_client_class = StrictRedis

    def __init__(self, group, monitor=None):
        self.group = group
        self.monitor = monitor or conf.build_monitor(group)
        self.socket_timeout = conf.get_setting('SENREDIS_SOCKET_TIMEOUT')
        self.connections = {}

    def get_endpoint(self, role, key):
        if role == MASTER:
            return self.monitor.get_master_server(key)
        return self.monitor.get_slave_server(key)

    def get_connection(self, role, key):
        """
        Returns (endpoint, connection) for the master or slave owning
        ``key``, creating the connection the first time an endpoint is seen.
        """
        endpoint = self.get_endpoint(role, key)
        if endpoint not in self.connections:
            logging.getLogger('senredis.client').info(
                "Connecting to Redis %s %s:%s db %s", role, endpoint.host,
                endpoint.port, endpoint.db)
            self.connections[endpoint] = self.redis_client_class(
                endpoint.host, int(endpoint.port),
                password=endpoint.auth or None, db=int(endpoint.db or 0),
                socket_timeout=self.socket_timeout)
        return endpoint, self.connections[endpoint]

    def get_master(self, key):
        return self.get_connection(MASTER, key)[1]

    def get_slave(self, key):
        return self.get_connection(SLAVE, key)[1]

    def disconnect(self, endpoint):
        connection = self.connections.pop(endpoint, None)
        if connection is not None:
            connection.close()

    def close(self):
        "Close every connection opened so far."
        for endpoint in list(self.connections):
            self.disconnect(endpoint)
        self.monitor.close()

    def ping_master(self, key):
        return self.get_master(key).ping()

    def ping_slave(self, key):
        return self.get_slave(key).ping()

    def pipeline(self, transaction=True, shard_hint=None):
        """
        Return a new pipeline object that can queue multiple commands for
        later execution.
        """
        raise NotImplementedError("Not supported for senredis.")

    def transaction(self, func, *watches, **kwargs):
        raise NotImplementedError("Not supported for senredis.")

    #### BASIC KEY COMMANDS ####
    @executeOnMaster
    def delete(self, key):
        "Delete ``key``"

    @executeOnSlave
    def exists(self, key):
        "Returns the number of the given keys that exist"

    @executeOnMaster
    def expire(self, key, time):
        "Set an expire flag on ``key`` for ``time`` seconds"

    @executeOnMaster
    def persist(self, key):
        "Removes an expiration on ``key``"

    @executeOnSlave
    def ttl(self, key):
        "Returns the number of seconds until ``key`` will expire"

    @executeOnSlave
    def pttl(self, key):
        "Returns the number of milliseconds until ``key`` will expire"

    @executeOnSlave
    def type(self, key):
        "Returns the type of ``key``"

    #### STRING COMMANDS ####
    @executeOnSlave
    def get(self, key):
        """
        Return the value at ``key``, or None if the key doesn't exist
        """

    @executeOnMaster
    def set(self, key, value, ex=None, px=None, nx=False, xx=False):
        """
        Set the value at ``key`` to ``value``

        ``ex`` sets an expire flag on ``key`` for ``ex`` seconds.

        ``px`` sets an expire flag on ``key`` for ``px`` milliseconds.

        ``nx`` if set to True, set the value at ``key`` to ``value`` if it
            does not already exist.

        ``xx`` if set to True, set the value at ``key`` to ``value`` if it
            already exists.
        """

    @executeOnMaster
    def setex(self, key, time, value):
        """
        Set the value of ``key`` to ``value`` that expires in ``time``
        seconds.
        """

    @executeOnMaster
    def setnx(self, key, value):
        "Set the value of ``key`` to ``value`` if it does not exist."

    @executeOnMaster
    def getset(self, key, value):
        """
        Set the value at ``key`` to ``value`` if key doesn't exist
        Return the value at ``key`` atomically
        """

    @executeOnMaster
    def append(self, key, value):
        """
        Appends the string ``value`` to the value at ``key``. If ``key``
        doesn't already exist, create it with a value of ``value``.
        Returns the new length of the value at ``key``.
        """

    @executeOnMaster
    def incr(self, key, amount=1):
        """
        Increments the value of ``key`` by ``amount``.  If no key exists,
        the value will be initialized as ``amount``
        """

    @executeOnMaster
    def decr(self, key, amount=1):
        """
        Decrements the value of ``key`` by ``amount``.  If no key exists,
        the value will be initialized as 0 - ``amount``
        """

    @executeOnSlave
    def strlen(self, key):
        "Return the number of bytes stored in the value of ``key``"

    #### HASH COMMANDS ####
    @executeOnMaster
    def hdel(self, key, *fields):
        "Delete ``fields`` from hash ``key``"

    @executeOnSlave
    def hexists(self, key, field):
        "Returns a boolean indicating if ``field`` exists within hash ``key``"

    @executeOnSlave
    def hget(self, key, field):
        "Return the value of ``field`` within the hash ``key``"

    @executeOnSlave
    def hgetall(self, key):
        "Return a Python dict of the hash's name/value pairs"

    @executeOnMaster
    def hincrby(self, key, field, amount=1):
        "Increment the value of ``field`` in hash ``key`` by ``amount``"

    @executeOnSlave
    def hkeys(self, key):
        "Return the list of keys within hash ``key``"

    @executeOnSlave
    def hlen(self, key):
        "Return the number of elements in hash ``key``"

    @executeOnMaster
    def hset(self, key, field=None, value=None, mapping=None):
        """
        Set ``field`` to ``value`` within hash ``key``, or every pair of
        ``mapping``. Returns the number of fields added.
        """

    @executeOnSlave
    def hmget(self, key, fields, *args):
        "Returns a list of values ordered identically to ``fields``"

    @executeOnSlave
    def hvals(self, key):
        "Return the list of values within hash ``key``"

    #### LIST COMMANDS ####
    @executeOnSlave
    def lindex(self, key, index):
        """
        Return the item from list ``key`` at position ``index``

        Negative indexes are supported and will return an item at the
        end of the list
        """

    @executeOnSlave
    def llen(self, key):
        "Return the length of the list ``key``"

    @executeOnMaster
    def lpop(self, key):
        "Remove and return the first item of the list ``key``"

    @executeOnMaster
    def lpush(self, key, *values):
        "Push ``values`` onto the head of the list ``key``"

    @executeOnSlave
    def lrange(self, key, start, end):
        """
        Return a slice of the list ``key`` between
        position ``start`` and ``end``

        ``start`` and ``end`` can be negative numbers just like
        Python slicing notation
        """

    @executeOnMaster
    def lrem(self, key, count, value):
        """
        Remove the first ``count`` occurrences of elements equal to ``value``
        from the list stored at ``key``.
        """

    @executeOnMaster
    def lset(self, key, index, value):
        "Set ``position`` of list ``key`` to ``value``"

    @executeOnMaster
    def ltrim(self, key, start, end):
        """
        Trim the list ``key``, removing all values not within the slice
        between ``start`` and ``end``
        """

    @executeOnMaster
    def rpop(self, key):
        "Remove and return the last item of the list ``key``"

    @executeOnMaster
    def rpush(self, key, *values):
        "Push ``values`` onto the tail of the list ``key``"

    #### SET COMMANDS ####
    @executeOnMaster
    def sadd(self, key, *values):
        "Add ``value(s)`` to set ``key``"

    @executeOnSlave
    def scard(self, key):
        "Return the number of elements in set ``key``"

    @executeOnSlave
    def sismember(self, key, value):
        "Return a boolean indicating if ``value`` is a member of set ``key``"

    @executeOnSlave
    def smembers(self, key):
        "Return all members of the set ``key``"

    @executeOnMaster
    def spop(self, key):
        "Remove and return a random member of set ``key``"

    @executeOnSlave
    def srandmember(self, key, number=None):
        """
        If ``number`` is None, returns a random member of set ``key``.

        If ``number`` is supplied, returns a list of ``number`` random
        members of set ``key``.
        """

    @executeOnMaster
    def srem(self, key, *values):
        "Remove ``values`` from set ``key``"

    #### SORTED SET COMMANDS ####
    @executeOnMaster
    def zadd(self, key, mapping, nx=False, xx=False, ch=False, incr=False):
        """
        Set any number of element-name, score pairs to the key ``key``.
        Pairs are specified as a dict of element-names keys to score values.
        """

    @executeOnSlave
    def zcard(self, key):
        "Return the number of elements in the sorted set ``key``"

    @executeOnSlave
    def zcount(self, key, min, max):
        """
        Returns the number of elements in the sorted set at key ``key`` with
        a score between ``min`` and ``max``.
        """

    @executeOnMaster
    def zincrby(self, key, amount, value):
        "Increment the score of ``value`` in sorted set ``key`` by ``amount``"

    @executeOnSlave
    def zrange(self, key, start, end, desc=False, withscores=False):
        """
        Return a range of values from sorted set ``key`` between
        ``start`` and ``end`` sorted in ascending order.

        ``withscores`` indicates to return the scores along with the values.
        """

    @executeOnSlave
    def zrangebyscore(self, key, min, max, start=None, num=None,
                      withscores=False):
        """
        Return a range of values from the sorted set ``key`` with scores
        between ``min`` and ``max``.
        """

    @executeOnSlave
    def zrank(self, key, value):
        """
        Returns a 0-based value indicating the rank of ``value`` in sorted set
        ``key``
        """

    @executeOnMaster
    def zrem(self, key, *values):
        "Remove member ``values`` from sorted set ``key``"

    @executeOnSlave
    def zrevrank(self, key, value):
        """
        Returns a 0-based value indicating the descending rank of
        ``value`` in sorted set ``key``
        """

    @executeOnSlave
    def zscore(self, key, value):
        "Return the score of element ``value`` in sorted set ``key``"
