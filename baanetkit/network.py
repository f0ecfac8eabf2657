"""TCP server, TCP client and UDP endpoint that report traffic through callbacks.

Callbacks run on background threads.
"""

from __future__ import annotations

import os
import socket
import threading
from typing import Callable, Dict, Optional, Tuple, Union

ENCODING = "utf-8"
DEFAULT_CONNECT_TIMEOUT = 3.0
_RECV_SIZE = 65536
_POLL_INTERVAL = 0.2

DataCallback = Callable[[str, str, int], None]
ClientsCallback = Callable[[Dict[str, int]], None]
Payload = Union[str, bytes, bytearray]


def _decode(raw: bytes) -> str:
    return raw.decode(ENCODING, errors="replace")


def _encode(data: Payload) -> bytes:
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    return data.encode(ENCODING)


def _shutdown(sock: socket.socket) -> None:
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass
    sock.close()


def local_ipv4_addresses() -> list[str]:
    """Return the IPv4 addresses of this host, loopback first, without duplicates."""
    candidates = ["127.0.0.1"]
    try:
        infos = socket.getaddrinfo(socket.gethostname(), None, socket.AF_INET)
    except OSError:
        infos = []
    candidates.extend(info[4][0] for info in infos)
    return [addr for addr in dict.fromkeys(candidates) if addr and addr != "0.0.0.0"]


class TcpServer:
    """A listening TCP server that tracks its clients by ``"ip:port"``."""

    def __init__(
        self,
        on_clients: Optional[ClientsCallback] = None,
        on_data: Optional[DataCallback] = None,
    ) -> None:
        self._on_clients = on_clients
        self._on_data = on_data
        self._lock = threading.Lock()
        self._listener: Optional[socket.socket] = None
        self._stopping = threading.Event()
        self._clients: Dict[str, socket.socket] = {}
        self._timely_stop: Optional[threading.Event] = None

    def __enter__(self) -> "TcpServer":
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    @property
    def listening(self) -> bool:
        return self._listener is not None

    @property
    def address(self) -> Tuple[str, int]:
        """The address the server listens on."""
        listener = self._listener
        if listener is None:
            raise RuntimeError("server is not listening")
        host, port = listener.getsockname()[:2]
        return host, port

    @property
    def clients(self) -> Dict[str, int]:
        with self._lock:
            return self._snapshot()

    def _snapshot(self) -> Dict[str, int]:
        return {key: int(key.rsplit(":", 1)[1]) for key in sorted(self._clients)}

    def _notify_clients(self, snapshot: Dict[str, int]) -> None:
        if self._on_clients is not None:
            self._on_clients(snapshot)

    def start(self, host: str, port: int) -> None:
        """Listen on ``host``:``port``; raises OSError when that fails."""
        if self._listener is not None:
            raise RuntimeError("server is already listening")
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            if os.name != "nt":
                listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            listener.bind((host, port))
            listener.listen()
            listener.settimeout(_POLL_INTERVAL)
        except OSError:
            listener.close()
            raise
        stopping = threading.Event()
        self._stopping = stopping
        self._listener = listener
        threading.Thread(
            target=self._accept_loop, args=(listener, stopping), daemon=True
        ).start()

    def stop(self) -> None:
        """Stop listening and drop every client."""
        self.stop_timely()
        with self._lock:
            listener, self._listener = self._listener, None
            self._stopping.set()
            clients = list(self._clients.values())
            self._clients.clear()
        if listener is not None:
            listener.close()
        for conn in clients:
            _shutdown(conn)

    def _accept_loop(self, listener: socket.socket, stopping: threading.Event) -> None:
        while not stopping.is_set():
            try:
                conn, peer = listener.accept()
            except TimeoutError:
                continue
            except OSError:
                break
            conn.settimeout(None)
            ip, port = peer[0], peer[1]
            key = f"{ip}:{port}"
            with self._lock:
                if stopping.is_set():
                    _shutdown(conn)
                    break
                self._clients[key] = conn
                snapshot = self._snapshot()
            threading.Thread(
                target=self._read_loop, args=(key, conn, ip, port), daemon=True
            ).start()
            self._notify_clients(snapshot)

    def _read_loop(self, key: str, conn: socket.socket, ip: str, port: int) -> None:
        while True:
            try:
                chunk = conn.recv(_RECV_SIZE)
            except OSError:
                break
            if not chunk:
                break
            if self._on_data is not None:
                self._on_data(_decode(chunk), ip, port)
        with self._lock:
            removed = self._clients.get(key) is conn
            if removed:
                del self._clients[key]
            snapshot = self._snapshot()
        conn.close()
        if removed:
            self._notify_clients(snapshot)

    def send(self, data: Payload, ip: str, port: int) -> bool:
        """Send to the client at ``ip``:``port``; return whether it was found."""
        with self._lock:
            conn = self._clients.get(f"{ip}:{port}")
        if conn is None:
            return False
        conn.sendall(_encode(data))
        return True

    def start_timely(self, data: Payload, interval_ms: int, ip: str, port: int) -> None:
        """Send ``data`` to one client every ``interval_ms`` milliseconds."""
        if interval_ms <= 0:
            raise ValueError("interval must be positive")
        self.stop_timely()
        stop = threading.Event()
        self._timely_stop = stop
        interval = interval_ms / 1000

        def repeat() -> None:
            while not stop.wait(interval):
                try:
                    self.send(data, ip, port)
                except OSError:
                    pass

        threading.Thread(target=repeat, daemon=True).start()

    def stop_timely(self) -> None:
        if self._timely_stop is not None:
            self._timely_stop.set()
            self._timely_stop = None


class TcpClient:
    """A single outgoing TCP connection."""

    def __init__(self, on_data: Optional[DataCallback] = None) -> None:
        self._on_data = on_data
        self._lock = threading.Lock()
        self._sock: Optional[socket.socket] = None

    def __enter__(self) -> "TcpClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def connected(self) -> bool:
        return self._sock is not None

    @property
    def local_address(self) -> Tuple[str, int]:
        sock = self._sock
        if sock is None:
            raise ConnectionError("not connected")
        host, port = sock.getsockname()[:2]
        return host, port

    def connect(
        self, host: str, port: int, timeout: float = DEFAULT_CONNECT_TIMEOUT
    ) -> None:
        """Connect unless already connected; raises OSError on failure."""
        if self._sock is not None:
            return
        sock = socket.create_connection((host, port), timeout=timeout)
        sock.settimeout(None)
        ip, peer_port = sock.getpeername()[:2]
        with self._lock:
            self._sock = sock
        threading.Thread(
            target=self._read_loop, args=(sock, ip, peer_port), daemon=True
        ).start()

    def _read_loop(self, sock: socket.socket, ip: str, port: int) -> None:
        while True:
            try:
                chunk = sock.recv(_RECV_SIZE)
            except OSError:
                break
            if not chunk:
                break
            if self._on_data is not None:
                self._on_data(_decode(chunk), ip, port)
        with self._lock:
            if self._sock is sock:
                self._sock = None
        sock.close()

    def close(self) -> None:
        with self._lock:
            sock, self._sock = self._sock, None
        if sock is not None:
            _shutdown(sock)

    def send(self, data: Payload) -> None:
        sock = self._sock
        if sock is None:
            raise ConnectionError("not connected")
        sock.sendall(_encode(data))


class UdpEndpoint:
    """A UDP socket that can be bound for receiving and used for sending."""

    def __init__(self, on_data: Optional[DataCallback] = None) -> None:
        self._on_data = on_data
        self._sock: Optional[socket.socket] = None
        self._send_sock: Optional[socket.socket] = None
        self._stopping = threading.Event()

    def __enter__(self) -> "UdpEndpoint":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def bound(self) -> bool:
        return self._sock is not None

    @property
    def address(self) -> Tuple[str, int]:
        sock = self._sock
        if sock is None:
            raise RuntimeError("endpoint is not bound")
        host, port = sock.getsockname()[:2]
        return host, port

    def bind(self, host: str, port: int) -> None:
        """Bind and start receiving; raises OSError when binding fails."""
        if self._sock is not None:
            raise RuntimeError("endpoint is already bound")
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.bind((host, port))
        except OSError:
            sock.close()
            raise
        sock.settimeout(_POLL_INTERVAL)
        stopping = threading.Event()
        self._stopping = stopping
        self._sock = sock
        threading.Thread(
            target=self._read_loop, args=(sock, stopping), daemon=True
        ).start()

    def _read_loop(self, sock: socket.socket, stopping: threading.Event) -> None:
        while not stopping.is_set():
            try:
                datagram, peer = sock.recvfrom(_RECV_SIZE)
            except TimeoutError:
                continue
            except OSError:
                break
            if not datagram:
                continue
            text = _decode(datagram.split(b"\x00", 1)[0])
            if self._on_data is not None:
                self._on_data(text, peer[0], peer[1])

    def close(self) -> None:
        self._stopping.set()
        sock, self._sock = self._sock, None
        send_sock, self._send_sock = self._send_sock, None
        for s in (sock, send_sock):
            if s is not None:
                s.close()

    def send_to(self, data: Payload, host: str, port: int) -> int:
        """Send one datagram; return the number of bytes sent."""
        sock = self._sock
        if sock is None:
            if self._send_sock is None:
                self._send_sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            sock = self._send_sock
        return sock.sendto(_encode(data), (host, port))