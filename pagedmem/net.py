"""Socket helpers: connections, framed receives and handshakes."""

from __future__ import annotations

import logging
import socket
import struct

from .buffer import Buffer, Packet
from .codes import describe_handshake

_log = logging.getLogger(__name__)

_INT = struct.Struct("<i")

HANDSHAKE_ACCEPTED = 0
HANDSHAKE_REJECTED = -1


class ConnectionClosed(ConnectionError):
    """Raised when the peer closes the connection before a message is complete."""


def _recv_exact(sock: socket.socket, size: int) -> bytes:
    data = bytearray()
    while len(data) < size:
        chunk = sock.recv(size - len(data))
        if not chunk:
            raise ConnectionClosed(
                f"connection closed after {len(data)} of {size} bytes"
            )
        data += chunk
    return bytes(data)


def _recv_int(sock: socket.socket) -> int:
    return _INT.unpack(_recv_exact(sock, _INT.size))[0]


def _send_int(sock: socket.socket, value: int) -> None:
    sock.sendall(_INT.pack(int(value)))


def connect(host: str, port: int | str) -> socket.socket:
    """Open a TCP connection to a server."""
    try:
        return socket.create_connection((host, int(port)))
    except OSError:
        _log.error("Error conectando al Servidor, apagado o invalido")
        raise


def start_server(port: int | str, message: str) -> socket.socket:
    """Bind a listening socket on every interface and log the given message."""
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        server.bind(("", int(port)))
    except OSError:
        server.close()
        _log.error("Error iniciando Servidor, fallo al bindear el socket")
        raise
    server.listen(socket.SOMAXCONN)
    _log.info("%s", message)
    return server


def wait_client(server: socket.socket, name: str) -> socket.socket:
    """Accept the next client on a listening socket."""
    client, _ = server.accept()
    _log.info("Se conecto el cliente: %s", name)
    return client


def receive_operation(sock: socket.socket) -> int:
    """Read the operation code that starts a message.

    If the peer has gone away the socket is closed and ConnectionClosed raised.
    """
    try:
        return _recv_int(sock)
    except ConnectionClosed:
        sock.close()
        raise


def receive_buffer(sock: socket.socket) -> Buffer:
    """Read the [size][payload] part that follows an operation code."""
    size = _recv_int(sock)
    if size < 0:
        raise ValueError(f"negative buffer size: {size}")
    return Buffer(_recv_exact(sock, size))


def receive_string(sock: socket.socket) -> str:
    """Read a length-prefixed string sent straight on the socket."""
    length = _recv_int(sock)
    if length < 0:
        raise ValueError(f"negative string length: {length}")
    data = _recv_exact(sock, length)
    return data.split(b"\0", 1)[0].decode("utf-8", errors="replace")


def send_packet(sock: socket.socket, packet: Packet) -> None:
    """Send a packet as [code][size][payload]."""
    sock.sendall(packet.serialize())


def perform_handshake(sock: socket.socket, code: int) -> int:
    """Send a handshake code and wait for the server's answer.

    A rejected handshake closes the socket and raises ConnectionRefusedError.
    """
    _send_int(sock, code)
    result = _recv_int(sock)
    if result == HANDSHAKE_REJECTED:
        _log.error("Handshake rechazado")
        sock.close()
        _log.error("No se pudo realizar el handshake con el servidor")
        raise ConnectionRefusedError("handshake rejected by the server")
    _log.info("Handshake OK")
    return result


def accept_handshake(sock: socket.socket, code: int) -> None:
    """Answer a client's handshake as accepted."""
    _log.info("Recibido handshake %s.", describe_handshake(code))
    _send_int(sock, HANDSHAKE_ACCEPTED)


def reject_handshake(sock: socket.socket) -> None:
    """Answer a client's handshake as rejected."""
    _log.error("Recibido handshake de un modulo no autorizado, rechazando...")
    _send_int(sock, HANDSHAKE_REJECTED)