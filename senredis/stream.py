"""
A minimal RESP stream for talking to a Sentinel.

RedisStream owns exactly one socket. It can frame multi-bulk requests and
decode any RESP reply, and nothing more: no pipelining, no pub/sub, no pooling.
Each SentinelMonitor lookup opens its own stream and closes it when done.
"""

import logging
import re
import socket
import time

from senredis.exceptions import ConnectError, DecodeError, RemoteError

DEFAULT_RETRY = 3
DEFAULT_TIMEOUT = 3
CRLF = b'\r\n'
# longest reply line accepted
MAX_LINE = 64 * 1024

_LEADING_INT = re.compile(br'^\s*([+-]?\d+)')


def _to_bytes(value):
    if isinstance(value, bytes):
        return value
    return str(value).encode('utf-8')


def encode_request(args):
    """
    Encode ``args`` as a RESP multi-bulk request::

        *<argc>\\r\\n$<len>\\r\\n<arg>\\r\\n...
    """
    parts = [b'*%d\r\n' % len(args)]
    for arg in args:
        arg = _to_bytes(arg)
        parts.append(b'$%d\r\n%s\r\n' % (len(arg), arg))
    return b''.join(parts)


def _leading_int(payload):
    match = _LEADING_INT.match(payload)
    return int(match.group(1)) if match else 0


class RedisStream(object):
    """
    One blocking connection to a RESP speaking server.

    ``retry`` bounds connect attempts, zero-byte writes and failed reads, and
    defaults to 3 when not positive. Replies are decoded with ``encoding``, or
    left as bytes when it is None. With ``numeric_simple_strings`` a ``+``
    reply is read as its leading integer (``+OK`` becomes 0), the way older
    clients of this protocol did.
    """
    max_line = MAX_LINE

    def __init__(self, retry=0, read_timeout=DEFAULT_TIMEOUT, encoding='utf-8',
                 numeric_simple_strings=False):
        self.retry = int(retry) if retry and int(retry) > 0 else DEFAULT_RETRY
        self.read_timeout = read_timeout
        self.encoding = encoding
        self.numeric_simple_strings = numeric_simple_strings
        self.errno = 0
        self.strerror = ''
        self.last_error = None
        self._sock = None
        self._buffer = bytearray()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    @property
    def connected(self):
        return self._sock is not None

    def open(self, host, port, protocol='tcp', timeout=DEFAULT_TIMEOUT):
        """
        Connect to ``host:port``, trying up to ``retry`` times. Returns the
        socket, or raises ConnectError with the last OS error.
        """
        logger = logging.getLogger('senredis.stream')
        protocol = 'tcp' if str(protocol).upper() == 'TCP' else 'udp'
        self.close()
        for attempt in range(1, self.retry + 1):
            start = time.time()
            try:
                sock = self._create_socket(host, int(port), protocol, timeout)
            except OSError as e:
                self.errno = e.errno or 0
                self.strerror = e.strerror or str(e)
                elapsed = (time.time() - start) * 1000
                logger.warning(
                    "socket create error server:{protocol:%s host:%s port:%s} "
                    "(%s) %s attempt:%d/%d %.3fms",
                    protocol, host, port, self.errno, self.strerror, attempt,
                    self.retry, elapsed,
                    extra={'operation': 'socket_create', 'host': host,
                           'port': port, 'elapsed': elapsed,
                           'outcome': 'failure'})
                continue
            elapsed = (time.time() - start) * 1000
            logger.info(
                "socket create success server:{protocol:%s host:%s port:%s} "
                "%.3fms", protocol, host, port, elapsed,
                extra={'operation': 'socket_create', 'host': host,
                       'port': port, 'elapsed': elapsed, 'outcome': 'success'})
            return self.attach(sock)
        raise ConnectError(host, port, self.errno, self.strerror)

    def _create_socket(self, host, port, protocol, timeout):
        if protocol == 'tcp':
            return socket.create_connection((host, port), timeout)
        family, socktype, proto, _, address = socket.getaddrinfo(
            host, port, 0, socket.SOCK_DGRAM)[0]
        sock = socket.socket(family, socktype, proto)
        try:
            sock.settimeout(timeout)
            sock.connect(address)
        except OSError:
            sock.close()
            raise
        return sock

    def attach(self, sock):
        "Use an already connected socket."
        self.close()
        self._sock = sock
        return sock

    def close(self):
        if self._sock is not None:
            self._sock.close()
        self._sock = None
        del self._buffer[:]

    def send_request(self, args):
        """
        Write one request. Zero-byte or failed writes are retried up to
        ``retry`` times. Returns False instead of raising when they all fail.
        """
        if self._sock is None:
            return False
        data = memoryview(encode_request(args))
        failures = 0
        while data:
            if failures >= self.retry:
                logging.getLogger('senredis.stream').warning(
                    "request %s failed after %d attempts", args[:2], failures)
                return False
            try:
                sent = self._sock.send(data)
            except OSError as e:
                logging.getLogger('senredis.stream').debug(
                    "write failed: %s", e)
                sent = 0
            if not sent:
                failures += 1
                continue
            data = data[sent:]
        return True

    def read_response(self):
        """
        Read and decode one RESP value.

        Error replies and undecodable input are logged, kept on
        ``last_error`` and returned as False. A null bulk string or array is
        returned as None.
        """
        self.last_error = None
        if self._sock is None:
            return self._fail(DecodeError('stream is not open'))
        return self._read_value()

    def _read_value(self):
        line = self._read_line()
        if line is False:
            return False
        if line is None:
            return self._fail(DecodeError(
                'no reply after %d attempts' % self.retry))
        line = line.rstrip(CRLF)
        if not line:
            return self._fail(DecodeError('empty reply line'))

        kind, payload = line[:1], line[1:]
        if kind == b'-':
            message = payload.decode(self.encoding or 'utf-8', 'replace')
            logging.getLogger('senredis.stream').warning(
                "server replied with error: %s", message)
            self.last_error = RemoteError(message)
            return False
        if kind == b'+':
            if self.numeric_simple_strings:
                return _leading_int(payload)
            return self._decode(payload)
        if kind == b':':
            return self._parse_int(payload)
        if kind == b'*':
            count = self._parse_int(payload)
            if count is False:
                return False
            if count == -1:
                return None
            if count < 0:
                return self._fail(DecodeError('bad array length %d' % count))
            return [self._read_value() for _ in range(count)]
        if kind == b'$':
            length = self._parse_int(payload)
            if length is False:
                return False
            if length == -1:
                return None
            if length < 0:
                return self._fail(DecodeError('bad bulk length %d' % length))
            data = self._read_exact(length + 2)
            if data is None or data[-2:] != CRLF:
                return self._fail(DecodeError(
                    'bulk string shorter than %d bytes' % length))
            return self._decode(data[:-2])
        return self._fail(DecodeError('unknown reply type %r' % line[:32]))

    def _decode(self, payload):
        if self.encoding is None:
            return bytes(payload)
        try:
            return payload.decode(self.encoding)
        except UnicodeDecodeError:
            return self._fail(DecodeError(
                'undecodable payload %r' % bytes(payload[:32])))

    def _parse_int(self, payload):
        try:
            return int(payload)
        except ValueError:
            return self._fail(DecodeError('not an integer: %r' % payload))

    def _fail(self, error):
        logging.getLogger('senredis.stream').warning("%s", error.message)
        self.last_error = error
        return False

    def _recv(self):
        "Buffer one more chunk. Returns False on timeout, error or EOF."
        try:
            self._sock.settimeout(self.read_timeout)
            chunk = self._sock.recv(4096)
        except OSError as e:
            logging.getLogger('senredis.stream').debug("read failed: %s", e)
            return False
        if not chunk:
            return False
        self._buffer.extend(chunk)
        return True

    def _read_line(self):
        failures = 0
        while True:
            index = self._buffer.find(b'\n')
            if index != -1:
                line = bytes(self._buffer[:index + 1])
                del self._buffer[:index + 1]
                return line
            if len(self._buffer) > self.max_line:
                del self._buffer[:]
                return self._fail(DecodeError(
                    'reply line longer than %d bytes' % self.max_line))
            if failures >= self.retry:
                return None
            if not self._recv():
                failures += 1

    def _read_exact(self, size):
        while len(self._buffer) < size:
            if not self._recv():
                return None
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data
