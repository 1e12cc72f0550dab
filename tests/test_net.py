import socket
import struct
from contextlib import closing

import pytest

from pagedmem.buffer import Buffer, Packet
from pagedmem.codes import OpCode
from pagedmem.net import (
    ConnectionClosed,
    accept_handshake,
    connect,
    perform_handshake,
    receive_buffer,
    receive_operation,
    receive_string,
    reject_handshake,
    send_packet,
    start_server,
    wait_client,
)


@pytest.fixture
def pair():
    a, b = socket.socketpair()
    yield a, b
    a.close()
    b.close()


def test_packet_round_trip_over_socket(pair):
    a, b = pair
    buf = Buffer()
    buf.add_int(42)
    buf.add_string("hola")
    send_packet(a, Packet(OpCode.MEMORIA_RESIZE, buf))
    assert receive_operation(b) == OpCode.MEMORIA_RESIZE
    received = receive_buffer(b)
    assert received.take_int() == 42
    assert received.take_string() == "hola"
    assert len(received) == 0


def test_empty_packet_gives_empty_buffer(pair):
    a, b = pair
    send_packet(a, Packet(OpCode.RESIZE_OK))
    assert receive_operation(b) == OpCode.RESIZE_OK
    assert len(receive_buffer(b)) == 0


def test_receive_operation_on_closed_peer_closes_socket(pair):
    a, b = pair
    a.close()
    with pytest.raises(ConnectionClosed):
        receive_operation(b)
    assert b.fileno() == -1


def test_receive_buffer_truncated_raises(pair):
    a, b = pair
    a.sendall(struct.pack("<i", 10) + b"abc")
    a.close()
    with pytest.raises(ConnectionClosed):
        receive_buffer(b)


def test_receive_string(pair):
    a, b = pair
    a.sendall(struct.pack("<i", 6) + b"texto\0")
    assert receive_string(b) == "texto"


def test_handshake_accepted(pair):
    a, b = pair
    accept_handshake(b, OpCode.HANDSHAKE_CPU)
    assert perform_handshake(a, OpCode.HANDSHAKE_CPU) == 0
    assert receive_operation(b) == OpCode.HANDSHAKE_CPU


def test_handshake_rejected_closes_socket(pair):
    a, b = pair
    reject_handshake(b)
    with pytest.raises(ConnectionRefusedError):
        perform_handshake(a, OpCode.HANDSHAKE_KERNEL)
    assert a.fileno() == -1
    assert receive_operation(b) == OpCode.HANDSHAKE_KERNEL


def test_accept_handshake_rejects_non_handshake_code(pair):
    a, _ = pair
    with pytest.raises(ValueError):
        accept_handshake(a, OpCode.MEMORIA_MOV_IN)


def test_server_connect_and_accept():
    with closing(start_server(0, ">>> listening <<<")) as server:
        port = server.getsockname()[1]
        with closing(connect("127.0.0.1", port)) as client:
            with closing(wait_client(server, "CPU")) as conn:
                send_packet(client, Packet(OpCode.CPU_CONSULTA_TAM_PAGINA))
                assert receive_operation(conn) == OpCode.CPU_CONSULTA_TAM_PAGINA
                assert len(receive_buffer(conn)) == 0


def test_connect_refused():
    with closing(start_server(0, "temp")) as server:
        port = server.getsockname()[1]
    with pytest.raises(OSError):
        connect("127.0.0.1", port)