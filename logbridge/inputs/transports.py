# logbridge/inputs/transports.py

"""
Syslog over TCP transport.

Frames follow RFC 6587: octet counted frames (``<len> <msg>``) and
non-transparent frames terminated by LF or NUL are both accepted, and
the framing is detected per frame.
"""

import logging
import socket
import threading
import uuid
from typing import Optional, Dict, Any, Callable, List, Tuple

from logbridge.inputs.base import ConfigurationField, RawMessage, Transport

logger = logging.getLogger(__name__)

# Core Constants
SOCKET_TIMEOUT = 1.0        # accept()/recv() timeout so loops can observe shutdown
SHUTDOWN_TIMEOUT = 5.0      # Maximum wait per thread on stop
MAX_BUFFER_SIZE = 65536     # Socket buffer size for receives
DEFAULT_MAX_MESSAGE_SIZE = 2 * 1024 * 1024
DEFAULT_MAX_CONNECTIONS = 50
DELIMITERS = (b'\n', b'\x00')


class SyslogFramingError(Exception):
    """Peer sent data that can not be framed"""
    pass


def _octet_count_prefix(buffer: bytearray) -> Optional[Tuple[int, int]]:
    """Return (length, header size) if the buffer starts with an octet count"""
    if not buffer or not buffer[:1].isdigit() or buffer[:1] == b'0':
        return None
    space = buffer.find(b' ')
    if space == -1:
        return None
    digits = bytes(buffer[:space])
    if not digits.isdigit():
        return None
    return int(digits), space + 1


def split_frames(buffer: bytearray, max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE) -> List[bytes]:
    """
    Remove every complete frame from ``buffer`` and return them.

    Incomplete trailing data stays in the buffer for the next receive.

    Raises:
        SyslogFramingError: A frame is larger than ``max_message_size``
    """
    frames: List[bytes] = []

    while buffer:
        prefix = _octet_count_prefix(buffer)
        if prefix is not None:
            length, header = prefix
            if length > max_message_size:
                raise SyslogFramingError(f"Frame of {length} bytes exceeds {max_message_size}")
            if len(buffer) < header + length:
                break
            frame = bytes(buffer[header:header + length])
            del buffer[:header + length]
        else:
            positions = [buffer.find(d) for d in DELIMITERS]
            positions = [p for p in positions if p != -1]
            if not positions:
                if len(buffer) > max_message_size:
                    raise SyslogFramingError(f"Unterminated frame exceeds {max_message_size} bytes")
                break
            end = min(positions)
            if end > max_message_size:
                raise SyslogFramingError(f"Frame of {end} bytes exceeds {max_message_size}")
            frame = bytes(buffer[:end])
            del buffer[:end + 1]

        frame = frame.rstrip(b'\r\n')
        if frame:
            frames.append(frame)

    return frames


class SyslogTcpTransport(Transport):
    """Threaded TCP listener emitting one RawMessage per syslog frame"""

    def __init__(self, configuration: Dict[str, Any]):
        self.bind_address = configuration.get('bind_address', '0.0.0.0')
        self.port = int(configuration.get('port', 5514))
        self.max_message_size = int(configuration.get('max_message_size', DEFAULT_MAX_MESSAGE_SIZE))
        self.max_connections = int(configuration.get('max_connections', DEFAULT_MAX_CONNECTIONS))

        if not 0 <= self.port <= 65535:
            raise ValueError(f"Invalid port number: {self.port}")

        self.server_socket: Optional[socket.socket] = None
        self.bound_port: Optional[int] = None
        self.handler: Optional[Callable[[RawMessage], None]] = None
        self.connections: Dict[str, socket.socket] = {}
        self.connection_lock = threading.Lock()
        self.shutdown_event = threading.Event()
        self.listener_thread: Optional[threading.Thread] = None
        self.client_threads: List[threading.Thread] = []
        self.stats_lock = threading.Lock()
        self.stats = {
            'total_connections': 0,
            'frames_received': 0,
            'bytes_received': 0,
            'framing_errors': 0
        }

    @classmethod
    def requested_configuration(cls) -> List[ConfigurationField]:
        return [
            ConfigurationField('bind_address', 'Bind address', '0.0.0.0', required=True),
            ConfigurationField('port', 'Port', 5514, required=True),
            ConfigurationField('max_message_size', 'Maximum message size', DEFAULT_MAX_MESSAGE_SIZE,
                               'Largest syslog frame accepted, in bytes'),
            ConfigurationField('max_connections', 'Maximum connections', DEFAULT_MAX_CONNECTIONS)
        ]

    def launch(self, handler: Callable[[RawMessage], None]) -> None:
        """Bind, listen and start the accept loop"""
        self.handler = handler
        self.shutdown_event.clear()

        self.server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.server_socket.settimeout(SOCKET_TIMEOUT)
        try:
            self.server_socket.bind((self.bind_address, self.port))
            self.server_socket.listen(self.max_connections)
        except OSError:
            self.server_socket.close()
            self.server_socket = None
            raise
        self.bound_port = self.server_socket.getsockname()[1]

        self.listener_thread = threading.Thread(
            target=self._listen_loop,
            name=f"SyslogTcpListener-{self.bound_port}",
            daemon=True
        )
        self.listener_thread.start()
        logger.info(f"Syslog TCP transport listening on {self.bind_address}:{self.bound_port}")

    def stop(self) -> None:
        """Close the listener and every client connection"""
        self.shutdown_event.set()

        if self.server_socket is not None:
            self.server_socket.close()
            self.server_socket = None

        with self.connection_lock:
            connections = list(self.connections.values())
            self.connections.clear()
        for client_socket in connections:
            self._close_socket(client_socket)

        for thread in [self.listener_thread] + self.client_threads:
            if thread is not None and thread is not threading.current_thread():
                thread.join(timeout=SHUTDOWN_TIMEOUT)
        self.client_threads = []
        logger.info(f"Syslog TCP transport on port {self.bound_port} stopped")

    def _count(self, key: str, amount: int = 1) -> None:
        with self.stats_lock:
            self.stats[key] += amount

    def get_stats(self) -> Dict[str, Any]:
        """Connection and framing counters"""
        with self.stats_lock:
            stats = dict(self.stats)
        with self.connection_lock:
            stats['active_connections'] = len(self.connections)
        stats['bound_port'] = self.bound_port
        return stats

    @staticmethod
    def _close_socket(client_socket: socket.socket) -> None:
        try:
            client_socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        client_socket.close()

    def _listen_loop(self) -> None:
        while not self.shutdown_event.is_set():
            try:
                client_socket, address = self.server_socket.accept()
            except socket.timeout:
                continue
            except (OSError, AttributeError):
                # Listener closed by stop()
                break

            conn_id = str(uuid.uuid4())
            with self.connection_lock:
                if len(self.connections) >= self.max_connections:
                    logger.warning(f"Connection limit reached, rejecting {address}")
                    client_socket.close()
                    continue
                self.connections[conn_id] = client_socket
                self._count('total_connections')

            client_socket.settimeout(SOCKET_TIMEOUT)
            thread = threading.Thread(
                target=self._handle_client,
                args=(conn_id, client_socket, address),
                name=f"SyslogTcpClient-{conn_id}",
                daemon=True
            )
            self.client_threads = [t for t in self.client_threads if t.is_alive()]
            self.client_threads.append(thread)
            thread.start()
            logger.debug(f"Accepted syslog connection from {address}")

    def _handle_client(self, conn_id: str, client_socket: socket.socket, address) -> None:
        buffer = bytearray()
        try:
            while not self.shutdown_event.is_set():
                try:
                    chunk = client_socket.recv(MAX_BUFFER_SIZE)
                except socket.timeout:
                    continue
                except OSError:
                    break
                if not chunk:
                    break

                buffer.extend(chunk)
                self._count('bytes_received', len(chunk))
                try:
                    frames = split_frames(buffer, self.max_message_size)
                except SyslogFramingError as e:
                    self._count('framing_errors')
                    logger.warning(f"Dropping connection from {address}: {str(e)}")
                    buffer.clear()
                    break

                for frame in frames:
                    self._count('frames_received')
                    self.handler(RawMessage(payload=frame, remote_address=address))

            # Peer closed without a trailing delimiter
            trailing = bytes(buffer).strip(b'\r\n\x00')
            if trailing and not self.shutdown_event.is_set():
                self._count('frames_received')
                self.handler(RawMessage(payload=trailing, remote_address=address))
        finally:
            with self.connection_lock:
                tracked = self.connections.pop(conn_id, None)
            if tracked is not None:
                self._close_socket(client_socket)
            logger.debug(f"Closed syslog connection from {address}")
