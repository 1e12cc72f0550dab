"""Per-process instruction lists loaded from pseudocode files."""

from __future__ import annotations

import logging
import socket
import threading

from .memory import UnknownProcessError
from .messages import send_instruction

_log = logging.getLogger(__name__)


class InstructionStore:
    """Instruction lines of every loaded process, addressed by program counter."""

    def __init__(self, base_path: str = "") -> None:
        self.base_path = base_path
        self._programs: dict[int, list[str]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._programs)

    def __contains__(self, pid: object) -> bool:
        with self._lock:
            return pid in self._programs

    def resolve(self, path: str) -> str:
        """Join a script path to the base path and trim surrounding whitespace."""
        return (self.base_path + path).strip()

    def load(self, pid: int, path: str) -> list[str]:
        """Read a script, one instruction per line, and keep it under pid.

        Raises OSError when the file cannot be opened.
        """
        full_path = self.resolve(path)
        try:
            with open(full_path, encoding="utf-8", newline="") as handle:
                text = handle.read()
        except OSError:
            _log.error("No se pudo abrir el archivo %s", full_path)
            raise
        lines = text.split("\n")
        if lines and lines[-1] == "":
            lines.pop()
        for line in lines:
            _log.debug('Procesada linea " %s "', line)
        with self._lock:
            self._programs[pid] = lines
        return list(lines)

    def get(self, pid: int, program_counter: int) -> str:
        """Return the instruction of pid at a program counter."""
        with self._lock:
            lines = self._programs.get(pid)
        if lines is None:
            raise UnknownProcessError(f"Error, no hay pid cargado en memoria: {pid}")
        if not 0 <= program_counter < len(lines):
            raise IndexError(f"PID {pid} has no instruction {program_counter}")
        return lines[program_counter]

    def send_to_cpu(self, pid: int, program_counter: int, sock: socket.socket) -> bool:
        """Send the instruction at a program counter; an empty line is not sent.

        Returns whether an instruction was sent.
        """
        instruction = self.get(pid, program_counter)
        if not instruction:
            _log.error("No hay instruccion para el pcb: %d", pid)
            return False
        send_instruction(sock, instruction)
        _log.info(
            "INSTRUCCION ENVIADA A CPU: %s, PROGRAM_COUNTER: %d", instruction, program_counter
        )
        return True