"""Message loops that serve the CPU, the kernel and the I/O interfaces."""

from __future__ import annotations

import logging
import os
import socket
import struct
import time
from pathlib import Path
from typing import Callable, Iterator

from .buffer import Buffer, Packet
from .codes import OpCode
from .instructions import InstructionStore
from .memory import Memory, OutOfMemoryError, UnknownProcessError
from .messages import send_ok
from .net import accept_handshake, receive_buffer, receive_operation, send_packet

_log = logging.getLogger(__name__)

_INT = struct.Struct("<i")
NO_FRAME = -1
ERROR_VALUE = -1

_Handler = Callable[[socket.socket, int], None]


class MemoryService:
    """Serves memory requests arriving on client sockets."""

    def __init__(
        self,
        memory: Memory,
        instructions: InstructionStore,
        response_delay: int = 0,
        dump_dir: str | os.PathLike[str] | None = None,
    ) -> None:
        self.memory = memory
        self.instructions = instructions
        self.response_delay = response_delay
        self.dump_dir = dump_dir

    # Loops

    def handle_cpu(self, sock: socket.socket) -> None:
        """Serve the CPU until it disconnects."""
        handlers: dict[int, _Handler] = {
            OpCode.HANDSHAKE_CPU: accept_handshake,
            OpCode.CPU_SOLICITA_INSTRUCCION: self._instruction,
            OpCode.CPU_CONSULTA_TAM_PAGINA: self._page_size,
            OpCode.CPU_CONSULTA_FRAME: self._frame,
            OpCode.MEMORIA_RESIZE: self._resize,
            OpCode.MEMORIA_MOV_OUT: self._mov_out,
            OpCode.MEMORIA_MOV_IN: self._mov_in,
            OpCode.MEMORIA_COPY_STRING: self._copy_string,
        }
        for code in self._operations(
            sock, "La CPU se desconecto de Memoria. Terminando servidor."
        ):
            if self.response_delay:
                time.sleep(self.response_delay / 1000)
            self._dispatch(handlers, sock, code, "CPU-Memoria")

    def handle_io(self, sock: socket.socket) -> None:
        """Serve one I/O interface until it disconnects."""
        handlers: dict[int, _Handler] = {
            OpCode.HANDSHAKE_ENTRADASALIDA: accept_handshake,
            OpCode.IO_STDIN_READ_FS: self._io_stdin_read,
            OpCode.IO_STDOUT_WRITE_FS: self._io_write,
            OpCode.IO_FS_WRITE_FS: self._io_write,
        }
        for code in self._operations(
            sock, "El modulo de Entradasalida se desconecto de Memoria. Terminando servidor."
        ):
            self._dispatch(handlers, sock, code, "Entradasalida-Memoria")

    def handle_kernel(self, sock: socket.socket) -> None:
        """Serve the kernel until it disconnects."""
        handlers: dict[int, _Handler] = {
            OpCode.HANDSHAKE_KERNEL: accept_handshake,
            OpCode.MEMORIA_SOLICITAR_INICIALIZAR_ESTRUCTURAS: self._create_process,
            OpCode.LIBERAR_PROCESO_EN_MEMORIA: self._finish_process,
        }
        for code in self._operations(
            sock, "El Kernel se desconecto de Memoria. Terminando servidor."
        ):
            self._dispatch(handlers, sock, code, "Kernel-Memoria")

    @staticmethod
    def _operations(sock: socket.socket, farewell: str) -> Iterator[int]:
        while True:
            try:
                code = receive_operation(sock)
            except OSError:
                sock.close()
                _log.error("%s", farewell)
                return
            yield code

    @staticmethod
    def _dispatch(
        handlers: dict[int, _Handler], sock: socket.socket, code: int, channel: str
    ) -> None:
        handler = handlers.get(code)
        if handler is None:
            _log.warning("Operacion desconocida de %s. cod_op:%d", channel, code)
            return
        try:
            handler(sock, code)
        except LookupError as exc:
            _log.error("%s", exc)

    # I/O operations

    def stdin_read(self, pid: int, address: int, data: str | bytes) -> None:
        """Write text read from an input interface into pid's memory."""
        raw = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        self.memory.write(pid, address, raw)
        self._dump("STDIN_READ", ram_only=True)

    def stdout_write(
        self, sock: socket.socket, pid: int, size: int, address: int, code: int
    ) -> None:
        """Read size bytes of pid's memory and send them back as a string.

        When the read fails a MEMORIA_ERROR packet with pid and address is sent.
        """
        buffer = Buffer()
        try:
            data = self.memory.read(pid, address, size)
        except (LookupError, ValueError):
            _log.error(
                "El proceso no tiene suficientes paginas asignadas para leer %d bytes", size
            )
            buffer.add_int(pid)
            buffer.add_int(address)
            send_packet(sock, Packet(OpCode.MEMORIA_ERROR, buffer))
            return
        text = data.split(b"\0", 1)[0].decode("utf-8", errors="replace")
        buffer.add_int(pid)
        buffer.add_string(text)
        send_packet(sock, Packet(code, buffer))

    def _io_stdin_read(self, sock: socket.socket, code: int) -> None:
        _log.info("IO_STDIN_READ_FS")
        buffer = receive_buffer(sock)
        pid = buffer.take_int()
        address = buffer.take_int()
        text = buffer.take_string()
        _log.info("Mensaje recibido de entrada y salida: %s", text)
        self.stdin_read(pid, address, text)

    def _io_write(self, sock: socket.socket, code: int) -> None:
        _log.info("%s", OpCode(code).name)
        buffer = receive_buffer(sock)
        pid = buffer.take_int()
        address = buffer.take_int()
        size = buffer.take_int()
        self.stdout_write(sock, pid, size, address, code)

    # CPU operations

    def _instruction(self, sock: socket.socket, code: int) -> None:
        buffer = receive_buffer(sock)
        pid = buffer.take_int()
        program_counter = buffer.take_int()
        self.instructions.send_to_cpu(pid, program_counter, sock)

    def _page_size(self, sock: socket.socket, code: int) -> None:
        self._reply_int(sock, OpCode.CPU_CONSULTA_TAM_PAGINA, self.memory.page_size)

    def _frame(self, sock: socket.socket, code: int) -> None:
        buffer = receive_buffer(sock)
        pid = buffer.take_int()
        page = buffer.take_int()
        try:
            frame = self.memory.frame_for(pid, page)
        except LookupError as exc:
            _log.error("%s", exc)
            frame = NO_FRAME
        self._reply_int(sock, OpCode.CPU_CONSULTA_FRAME, frame)
        _log.info(
            'Acceso a Tabla de Páginas "PID: %d - Página: %d - Marco: %d"', pid, page, frame
        )

    def _resize(self, sock: socket.socket, code: int) -> None:
        buffer = receive_buffer(sock)
        pid = buffer.take_int()
        new_size = buffer.take_int()
        try:
            self.memory.resize_process(pid, new_size)
        except OutOfMemoryError:
            _log.info("RESIZE NOT OK OUT_OF_MEMORY")
            send_packet(sock, Packet(OpCode.OUT_OF_MEMORY))
        except UnknownProcessError as exc:
            _log.error("%s", exc)
            self._reply_int(sock, OpCode.MEMORIA_ERROR, ERROR_VALUE)
        else:
            _log.info("RESIZE OK")
            send_packet(sock, Packet(OpCode.RESIZE_OK))

    def _mov_out(self, sock: socket.socket, code: int) -> None:
        _log.info("MOV_OUT")
        buffer = receive_buffer(sock)
        pid = buffer.take_int()
        size = max(buffer.take_int(), 0)
        address = buffer.take_int()
        value = buffer.take_int()
        data = _INT.pack(value)[:size].ljust(size, b"\0")
        try:
            self.memory.write(pid, address, data)
        finally:
            self._dump("MOV_OUT")

    def _mov_in(self, sock: socket.socket, code: int) -> None:
        _log.info("MOV_IN")
        buffer = receive_buffer(sock)
        pid = buffer.take_int()
        size = buffer.take_int()
        address = buffer.take_int()
        try:
            data = self.memory.read(pid, address, size)
        except (LookupError, ValueError):
            _log.error(
                "El proceso no tiene suficientes paginas asignadas para leer %d bytes", size
            )
            self._reply_int(sock, OpCode.MEMORIA_ERROR, ERROR_VALUE)
        else:
            reply = Buffer()
            reply.add_bytes(data)
            send_packet(sock, Packet(OpCode.MEMORIA_MOV_IN, reply))
        self._dump("MOV_IN")

    def _copy_string(self, sock: socket.socket, code: int) -> None:
        _log.info("COPY_STRING")
        buffer = receive_buffer(sock)
        pid = buffer.take_int()
        size = buffer.take_int()
        source = buffer.take_int()
        destination = buffer.take_int()
        data = self.memory.read(pid, source, size)
        self.memory.write(pid, destination, data)
        self._dump("COPY_STRING", ram_only=True)

    # Kernel operations

    def _create_process(self, sock: socket.socket, code: int) -> None:
        _log.info("MEMORIA_SOLICITAR_INICIALIZAR_ESTRUCTURAS")
        buffer = receive_buffer(sock)
        pid = buffer.take_int()
        path = buffer.take_string()
        try:
            self.instructions.load(pid, path)
        except OSError:
            pass  # already logged by the store
        try:
            self.memory.create_process(pid)
        except ValueError as exc:
            _log.error("%s", exc)
        send_ok(sock, OpCode.KERNEL_RESPUESTA_INICIALIZAR_ESTRUCTURAS)
        self._dump("inicializado")

    def _finish_process(self, sock: socket.socket, code: int) -> None:
        buffer = receive_buffer(sock)
        self.memory.finish_process(buffer.take_int())

    # Helpers

    @staticmethod
    def _reply_int(sock: socket.socket, code: int, value: int) -> None:
        buffer = Buffer()
        buffer.add_int(value)
        send_packet(sock, Packet(code, buffer))

    def _dump(self, tag: str, *, ram_only: bool = False) -> None:
        if self.dump_dir is None:
            return
        base = Path(self.dump_dir)
        if not ram_only:
            self.memory.dump_frames(base / f"lista_de_frames_{tag}.txt")
            self.memory.dump_processes(base / f"lista_de_procesos_{tag}.txt")
        self.memory.dump_ram(base / f"contenido_memoria_RAM_{tag}.txt")