"""
Exceptions raised while locating servers through Sentinel.

Every class also derives from the matching ``redis.exceptions`` class, so code
that already catches ``redis.exceptions.ConnectionError`` around a StrictRedis
call keeps working when the failure happened during discovery instead.
"""

from redis.exceptions import (ConnectionError, InvalidResponse, RedisError,
                              ResponseError)

CONNECT_FAILED = '-9000001'
NO_AVAILABLE_SENTINEL = '-9100001'
DECODE_FAILED = '-9200001'
REMOTE_ERROR = '-9300001'
SELECTION_FAILED = '-9400001'


class SentinelError(RedisError):
    """
    Base class for discovery errors. ``code`` is a machine-readable string.
    """
    code = None

    def __init__(self, message='', code=None):
        super(SentinelError, self).__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def __str__(self):
        return '(%s) %s' % (self.code, self.message)


class ConnectError(SentinelError, ConnectionError):
    """
    A socket to one sentinel could not be created after exhausting its
    retry budget.
    """
    code = CONNECT_FAILED

    def __init__(self, host, port, errno=0, strerror=''):
        self.host = host
        self.port = port
        self.errno = errno
        self.strerror = strerror
        super(ConnectError, self).__init__(
            'create stream socket fail! server:%s:%s [errorinfo: (%s) %s]'
            % (host, port, errno, strerror))


class NoAvailableSentinelError(SentinelError, ConnectionError):
    "Every sentinel in the pool failed and was removed."
    code = NO_AVAILABLE_SENTINEL


class DecodeError(SentinelError, InvalidResponse):
    code = DECODE_FAILED


class RemoteError(SentinelError, ResponseError):
    "The sentinel answered with a RESP error reply."
    code = REMOTE_ERROR


class SelectionError(SentinelError):
    code = SELECTION_FAILED


class DiscoveryError(SentinelError):
    """
    The single error type surfaced by SentinelMonitor lookups. ``code`` is
    taken from the wrapped error, which is also kept as ``__cause__``.

    Connection and reply failures are wrapped in the subclasses below, so
    they are still caught by handlers for the matching redis exception.
    """

    @classmethod
    def wrap(cls, error):
        if isinstance(error, ConnectionError):
            cls = DiscoveryConnectionError
        elif isinstance(error, ResponseError):
            cls = DiscoveryResponseError
        return cls(error.message, error.code)


class DiscoveryConnectionError(DiscoveryError, ConnectionError):
    "No sentinel could be reached."


class DiscoveryResponseError(DiscoveryError, ResponseError):
    "A sentinel answered with an error reply."
