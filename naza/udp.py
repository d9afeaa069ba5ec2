"""UDP helpers: a pool that finds bindable ports in a range, and a datagram connection."""

import errno
import select
import socket
import threading

_POLL_INTERVAL = 0.05
_CLOSED_MESSAGE = "use of closed network connection"


class NazaNetError(Exception):
    """Raised when no port is available or no peer address is known."""


def _split_host_port(addr):
    """Split ``host:port``, ``[v6]:port`` or ``:port``; an empty string means any port."""
    if not addr:
        return "", 0
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address. addr={addr!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        return host, int(port) if port else 0
    except ValueError as exc:
        raise ValueError(f"invalid port in address. addr={addr!r}") from exc


def _resolve_udp_addr(addr):
    host, port = _split_host_port(addr)
    infos = socket.getaddrinfo(host or None, port, socket.AF_UNSPEC, socket.SOCK_DGRAM)
    return infos[0][4][:2]


def _listen_udp(host, port):
    if not host:
        if socket.has_ipv6:
            try:
                sock = socket.socket(socket.AF_INET6, socket.SOCK_DGRAM)
            except OSError:
                sock = None
            if sock is not None:
                try:
                    sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 0)
                    sock.bind(("::", port))
                    return sock
                except OSError as exc:
                    sock.close()
                    if exc.errno == errno.EADDRINUSE:
                        raise
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.bind(("", port))
        except OSError:
            sock.close()
            raise
        return sock

    infos = socket.getaddrinfo(host, port, socket.AF_UNSPEC, socket.SOCK_DGRAM, 0, socket.AI_PASSIVE)
    family, type_, proto, _, sockaddr = infos[0]
    sock = socket.socket(family, type_, proto)
    try:
        sock.bind(sockaddr)
    except OSError:
        sock.close()
        raise
    return sock


def _listen_udp_with_port(port):
    return _listen_udp("", port)


def _listen_udp_with_addr(addr):
    host, port = _split_host_port(addr)
    return _listen_udp(host, port)


def _to_sock_addr(conn, addr):
    """Adapt an address to the family of `conn` (IPv4-mapped IPv6 where needed)."""
    host, port = addr[0], addr[1]
    if conn.family == socket.AF_INET6 and ":" not in host:
        return ("::ffff:" + host, port, 0, 0)
    if conn.family == socket.AF_INET and host.lower().startswith("::ffff:") and "." in host:
        return (host[7:], port)
    return tuple(addr)


class AvailUdpConnPool:
    """Finds ports in [min_port, max_port] that can be bound, binds them and hands them out.

    Sockets are plain ``socket.socket`` objects; close them to release the port.
    """

    def __init__(self, min_port, max_port):
        self._min_port = min_port
        self._max_port = max_port
        self._last_port = min_port
        self._lock = threading.Lock()

    def acquire(self):
        """Bind the next free port; return ``(sock, port)``."""
        with self._lock:
            first = True
            p = self._last_port
            while True:
                if not first and p == self._last_port:
                    raise NazaNetError("nazanet: no available udp port")
                first = False
                try:
                    conn = _listen_udp_with_port(p)
                except OSError:
                    p = self._next_port(p)
                    continue
                self._last_port = self._next_port(p)
                return conn, p

    def acquire2(self):
        """Bind two consecutive free ports; return ``(sock1, port, sock2, port + 1)``."""
        with self._lock:
            first = True
            p = self._last_port
            while True:
                if not first and p == self._last_port:
                    raise NazaNetError("nazanet: no available consecutive udp ports")
                first = False

                # The highest port has no successor inside the range.
                if p == self._max_port:
                    p = self._min_port
                    continue

                try:
                    conn = _listen_udp_with_port(p)
                except OSError:
                    p = self._next_port(p)
                    continue

                try:
                    conn2 = _listen_udp_with_port(p + 1)
                except OSError:
                    conn.close()
                    p = self._next_port(p + 1)
                    continue

                self._last_port = self._next_port(p + 1)
                return conn, p, conn2, p + 1

    def peek(self):
        """Find a free port, release it at once, and return its number."""
        conn, port = self.acquire()
        conn.close()
        return port

    def _next_port(self, p):
        return self._min_port if p == self._max_port else p + 1


class UdpConnection:
    """A UDP socket with a read loop and a default peer address.

    Either pass an existing socket as `conn`, or let one be bound to `laddr`
    (empty for any port). `raddr` is the peer used by write(); without it,
    write() answers the sender of the most recent packet read by run_loop().
    """

    def __init__(self, conn=None, laddr="", raddr="", max_read_packet_size=1500, alloc_each_read=True):
        self._max_read_packet_size = max_read_packet_size
        self._alloc_each_read = alloc_each_read
        self._raddr_from_option = _resolve_udp_addr(raddr) if raddr else None
        self._raddr_from_read = None
        self._closed = False
        self._conn = conn if conn is not None else _listen_udp_with_addr(laddr)

    @property
    def conn(self):
        """The underlying socket."""
        return self._conn

    def set_read_buffer(self, size):
        """Set the kernel receive buffer size; the connection is disposed on failure."""
        try:
            self._conn.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, size)
        except OSError:
            self.dispose()
            raise

    def set_write_buffer(self, size):
        """Set the kernel send buffer size; the connection is disposed on failure."""
        try:
            self._conn.setsockopt(socket.SOL_SOCKET, socket.SO_SNDBUF, size)
        except OSError:
            self.dispose()
            raise

    def _closed_error(self):
        return OSError(errno.EBADF, _CLOSED_MESSAGE)

    def _wait_readable(self, timeout):
        if self._closed:
            raise self._closed_error()
        try:
            readable, _, _ = select.select([self._conn], [], [], timeout)
        except (OSError, ValueError) as exc:
            raise self._closed_error() from exc
        return bool(readable)

    def run_loop(self, on_read):
        """Read packets until a read fails or `on_read` returns False.

        `on_read(data, addr, err)` is called for every packet, and once more
        with the error when reading fails. When it returns False after a good
        read, the connection is disposed and this returns; a read error
        (including disposal from elsewhere) is raised.
        """
        buf = None if self._alloc_each_read else bytearray(self._max_read_packet_size)
        while True:
            if self._alloc_each_read:
                buf = bytearray(self._max_read_packet_size)
            data, addr, err = b"", None, None
            try:
                while not self._wait_readable(_POLL_INTERVAL):
                    pass
                n, addr = self._conn.recvfrom_into(buf)
                data = bytes(buf[:n]) if self._alloc_each_read else memoryview(buf)[:n]
            except OSError as exc:
                err = exc
            self._raddr_from_read = addr
            keep_running = on_read(data, addr, err)
            if not keep_running and err is None:
                self.dispose()
                return
            if err is not None:
                raise err

    def read_with_timeout(self, timeout_ms):
        """Read one packet; return ``(data, addr)``. A positive timeout raises TimeoutError."""
        if timeout_ms > 0:
            if not self._wait_readable(timeout_ms / 1000):
                raise TimeoutError(f"udp read timeout. timeout_ms={timeout_ms}")
        else:
            while not self._wait_readable(_POLL_INTERVAL):
                pass
        buf = bytearray(self._max_read_packet_size)
        n, addr = self._conn.recvfrom_into(buf)
        return bytes(buf[:n]), addr

    def write(self, data):
        """Send to the configured peer, or else to the sender of the last packet read."""
        target = self._raddr_from_option or self._raddr_from_read
        if target is None:
            raise NazaNetError("nazanet: no remote address to write to")
        self._conn.sendto(data, _to_sock_addr(self._conn, target))

    def write_to(self, data, addr):
        """Send to the explicit address `addr`."""
        self._conn.sendto(data, _to_sock_addr(self._conn, addr))

    def dispose(self):
        """Close the socket; a running loop ends with an error."""
        self._closed = True
        self._conn.close()