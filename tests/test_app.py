import os
import socket
import struct
import threading
import time

import pytest

from pagedmem.app import main, run, serve_io_clients
from pagedmem.buffer import Buffer, Packet
from pagedmem.codes import OpCode
from pagedmem.config import ConfigError
from pagedmem.handlers import MemoryService
from pagedmem.instructions import InstructionStore
from pagedmem.memory import Memory
from pagedmem.messages import request_instruction
from pagedmem.net import receive_buffer, receive_operation, send_packet, start_server


def _free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as probe:
        probe.bind(("127.0.0.1", 0))
        return probe.getsockname()[1]


def _connect(port, attempts=100):
    for _ in range(attempts):
        try:
            sock = socket.create_connection(("127.0.0.1", port), timeout=5)
        except OSError:
            time.sleep(0.05)
            continue
        sock.settimeout(5)
        return sock
    raise RuntimeError("server did not start")


def _send_code(sock, code):
    sock.sendall(struct.pack("<i", int(code)))


def _recv_int(sock):
    data = b""
    while len(data) < 4:
        chunk = sock.recv(4 - len(data))
        assert chunk
        data += chunk
    return struct.unpack("<i", data)[0]


def _packet(code, *ints, string=None):
    buffer = Buffer()
    for value in ints:
        buffer.add_int(value)
    if string is not None:
        buffer.add_string(string)
    return Packet(code, buffer)


def _write_config(tmp_path, port):
    path = tmp_path / "memoria.config"
    path.write_text(
        f"PUERTO_ESCUCHA={port}\n"
        "TAM_MEMORIA=64\n"
        "TAM_PAGINA=16\n"
        f"PATH_INSTRUCCIONES={tmp_path}{os.sep}\n"
        "RETARDO_RESPUESTA=0\n",
        encoding="utf-8",
    )
    return path


def test_run_serves_cpu_and_kernel(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "prog.txt").write_text("SET AX 1\nEXIT\n", encoding="utf-8")
    port = _free_port()
    config = _write_config(tmp_path, port)

    result = {}
    server_thread = threading.Thread(
        target=lambda: result.setdefault("code", run(config)), daemon=True
    )
    server_thread.start()

    cpu = _connect(port)
    kernel = _connect(port)
    try:
        _send_code(kernel, OpCode.HANDSHAKE_KERNEL)
        assert _recv_int(kernel) == 0
        send_packet(
            kernel,
            _packet(OpCode.MEMORIA_SOLICITAR_INICIALIZAR_ESTRUCTURAS, 1, string="prog.txt"),
        )
        assert receive_operation(kernel) == OpCode.KERNEL_RESPUESTA_INICIALIZAR_ESTRUCTURAS
        assert receive_buffer(kernel).take_int() == -1

        _send_code(cpu, OpCode.HANDSHAKE_CPU)
        assert _recv_int(cpu) == 0

        request_instruction(cpu, 1, 0)
        assert receive_operation(cpu) == OpCode.MEMORIA_ENVIA_INSTRUCCION
        assert receive_buffer(cpu).take_string() == "SET AX 1"

        request_instruction(cpu, 1, 1)
        assert receive_operation(cpu) == OpCode.MEMORIA_ENVIA_INSTRUCCION
        assert receive_buffer(cpu).take_string() == "EXIT"

        _send_code(cpu, OpCode.CPU_CONSULTA_TAM_PAGINA)
        assert receive_operation(cpu) == OpCode.CPU_CONSULTA_TAM_PAGINA
        assert receive_buffer(cpu).take_int() == 16

        send_packet(cpu, _packet(OpCode.MEMORIA_RESIZE, 1, 20))
        assert receive_operation(cpu) == OpCode.RESIZE_OK
        assert len(receive_buffer(cpu)) == 0

        send_packet(cpu, _packet(OpCode.MEMORIA_RESIZE, 1, 1000))
        assert receive_operation(cpu) == OpCode.OUT_OF_MEMORY
        assert len(receive_buffer(cpu)) == 0

        send_packet(cpu, _packet(OpCode.CPU_CONSULTA_FRAME, 1, 0))
        assert receive_operation(cpu) == OpCode.CPU_CONSULTA_FRAME
        frame = receive_buffer(cpu).take_int()
        assert 0 <= frame < 4

        address = frame * 16
        send_packet(cpu, _packet(OpCode.MEMORIA_MOV_OUT, 1, 4, address, 123456))
        send_packet(cpu, _packet(OpCode.MEMORIA_MOV_IN, 1, 4, address))
        assert receive_operation(cpu) == OpCode.MEMORIA_MOV_IN
        assert receive_buffer(cpu).take_bytes() == struct.pack("<i", 123456)
    finally:
        cpu.close()

    server_thread.join(timeout=10)
    kernel.close()
    assert not server_thread.is_alive()
    assert result["code"] == 0
    assert (tmp_path / "contenido_memoria_RAM_MOV_OUT.txt").exists()


def test_run_missing_config_raises(tmp_path):
    with pytest.raises(ConfigError):
        run(tmp_path / "absent.config")


def test_main_missing_config_returns_failure(tmp_path):
    log_file = tmp_path / "memoria.log"
    code = main([str(tmp_path / "absent.config"), "--log-file", str(log_file)])
    assert code == 1
    assert "Error al cargar el config" in log_file.read_text(encoding="utf-8")


def test_serve_io_clients_returns_when_server_closed():
    service = MemoryService(Memory(64, 16), InstructionStore())
    server = start_server(0, "test")
    server.close()
    assert serve_io_clients(server, service) == 0


def test_serve_io_clients_handles_interface():
    memory = Memory(64, 16)
    memory.create_process(1)
    memory.resize_process(1, 16)
    address = memory.frame_for(1, 0) * 16
    service = MemoryService(memory, InstructionStore())

    server = start_server(0, "test")
    port = server.getsockname()[1]
    thread = threading.Thread(target=serve_io_clients, args=(server, service), daemon=True)
    thread.start()

    client = _connect(port)
    try:
        _send_code(client, OpCode.HANDSHAKE_ENTRADASALIDA)
        assert _recv_int(client) == 0

        send_packet(client, _packet(OpCode.IO_STDIN_READ_FS, 1, address, string="hola"))
        send_packet(client, _packet(OpCode.IO_STDOUT_WRITE_FS, 1, address, 4))
        assert receive_operation(client) == OpCode.IO_STDOUT_WRITE_FS
        reply = receive_buffer(client)
        assert reply.take_int() == 1
        assert reply.take_string() == "hola"
        assert memory.read(1, address, 4) == b"hola"
    finally:
        client.close()
        server.close()