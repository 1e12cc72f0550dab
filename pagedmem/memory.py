"""Paged main memory: frames, per-process page tables and byte access."""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Iterator

_log = logging.getLogger(__name__)

FREE_PID = -1


class OutOfMemoryError(MemoryError):
    """Raised when there are not enough free frames for a request."""


class UnknownProcessError(LookupError):
    """Raised when no process with the given pid exists."""


@dataclass
class Frame:
    """One physical frame and the process that holds it."""

    occupied: bool = False
    pid: int = FREE_PID

    def release(self) -> None:
        self.occupied = False
        self.pid = FREE_PID


@dataclass
class Process:
    """A process and its page table: page number -> frame number."""

    pid: int
    pages: list[int] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.pages)


class Memory:
    """Contiguous RAM split into frames, handed out to processes page by page."""

    def __init__(self, memory_size: int, page_size: int) -> None:
        if page_size <= 0:
            raise ValueError("page size must be positive")
        if memory_size < 0:
            raise ValueError("memory size must not be negative")
        self.memory_size = memory_size
        self.page_size = page_size
        self.ram = bytearray(memory_size)
        self.frames = [Frame() for _ in range(memory_size // page_size)]
        self.processes: dict[int, Process] = {}
        self._lock = threading.RLock()

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    # Processes and page tables

    def create_process(self, pid: int) -> Process:
        """Register a process with an empty page table."""
        with self._lock:
            if pid in self.processes:
                raise ValueError(f"a process with PID {pid} already exists")
            process = Process(pid)
            self.processes[pid] = process
        _log.info('Creación de Tabla de Páginas: "PID: %d - Tamaño: %d"', pid, 0)
        return process

    def find_process(self, pid: int) -> Process:
        """Return the process with the given pid."""
        with self._lock:
            try:
                return self.processes[pid]
            except KeyError:
                raise UnknownProcessError(f"No existe proceso con PID: {pid}") from None

    def resize_process(self, pid: int, new_size: int) -> None:
        """Grow or shrink a process's page table to hold new_size bytes.

        Raises OutOfMemoryError, leaving the table as it was, when growing
        needs more frames than are free.
        """
        with self._lock:
            process = self.find_process(pid)
            current = len(process.pages)
            wanted = max(0, -(-new_size // self.page_size))
            if wanted > current:
                _log.info(
                    'Ampliación de Proceso: "PID: %d - Tamaño Actual: %d - Tamaño a Ampliar: %d"',
                    pid, current * self.page_size, new_size,
                )
                if self.free_frame_count() < wanted - current:
                    _log.error(
                        "Error: No hay suficiente memoria para redimensionar el proceso (OUT_MEMORY)"
                    )
                    raise OutOfMemoryError(
                        f"PID {pid}: {wanted - current} frames needed, "
                        f"{self.free_frame_count()} free"
                    )
                process.pages.extend(self.allocate_frame(pid) for _ in range(wanted - current))
            elif wanted < current:
                _log.info(
                    'Reduccion del Proceso: "PID: %d - Tamaño Actual: %d - Tamaño a reducir: %d"',
                    pid, current * self.page_size, new_size,
                )
                while len(process.pages) > wanted:
                    self.release_frame(process.pages.pop())

    def free_frame_count(self) -> int:
        """Number of frames not held by any process."""
        with self._lock:
            return sum(not frame.occupied for frame in self.frames)

    def allocate_frame(self, pid: int) -> int:
        """Mark the first free frame as held by pid and return its number."""
        with self._lock:
            for number, frame in enumerate(self.frames):
                if not frame.occupied:
                    frame.occupied = True
                    frame.pid = pid
                    return number
        raise OutOfMemoryError("no free frames")

    def frame_for(self, pid: int, page: int) -> int:
        """Return the frame that holds a page of a process."""
        with self._lock:
            pages = self.find_process(pid).pages
            if not 0 <= page < len(pages):
                raise IndexError(f"PID {pid} has no page {page}")
            return pages[page]

    def release_frame(self, frame: int) -> None:
        """Mark a frame as free; numbers outside memory are ignored."""
        with self._lock:
            if 0 <= frame < len(self.frames):
                self.frames[frame].release()

    def finish_process(self, pid: int) -> int:
        """Free every frame held by pid, drop the process and return the count."""
        with self._lock:
            released = 0
            for frame in self.frames:
                if frame.pid == pid:
                    frame.release()
                    released += 1
            self.processes.pop(pid, None)
        _log.info('Destruccion de Tabla de Páginas: "PID: <%d> - Tamaño: <%d>"', pid, released)
        return released

    # Byte access

    def locate(self, pid: int, address: int) -> int:
        """Return the index in pid's page table of the frame holding address."""
        with self._lock:
            process = self.find_process(pid)
            for index, frame in enumerate(process.pages):
                start = frame * self.page_size
                if start <= address <= start + self.page_size:
                    return index
        raise IndexError(f"address {address} is not in a page of PID {pid}")

    def _segments(self, pid: int, address: int, size: int) -> Iterator[tuple[int, int]]:
        pages = self.find_process(pid).pages
        index = self.locate(pid, address)
        remaining = size
        segments = []
        while True:
            page_end = pages[index] * self.page_size + self.page_size
            length = min(remaining, page_end - address)
            if length > 0:
                segments.append((address, length))
                remaining -= length
            if remaining <= 0:
                return iter(segments)
            index += 1
            if index >= len(pages):
                raise IndexError(
                    f"El proceso no tiene suficientes paginas asignadas para {size} bytes"
                )
            address = pages[index] * self.page_size

    def read(self, pid: int, address: int, size: int) -> bytes:
        """Read size bytes starting at a physical address, following pid's pages."""
        if size < 0:
            raise ValueError("size must not be negative")
        with self._lock:
            return b"".join(
                bytes(self.ram[start:start + length])
                for start, length in self._segments(pid, address, size)
            )

    def write(self, pid: int, address: int, data: bytes) -> None:
        """Write data starting at a physical address, following pid's pages.

        Nothing is written when the process's pages cannot hold all of it.
        """
        data = bytes(data)
        with self._lock:
            offset = 0
            for start, length in list(self._segments(pid, address, len(data))):
                self.ram[start:start + length] = data[offset:offset + length]
                offset += length

    # Dumps

    def dump_ram(self, path: str | os.PathLike[str]) -> None:
        """Write the RAM contents in hexadecimal, split by frame."""
        with self._lock:
            ram = bytes(self.ram)
        with open(path, "w", encoding="utf-8") as out:
            out.write("Contenido de la memoria RAM:\n\n")
            frame = 0
            out.write(f"------------------ Frame {frame} -------------------\n")
            for position, byte in enumerate(ram, start=1):
                out.write(f"{byte:02X} ")
                if position % 16 == 0:
                    out.write("\n")
                if position % self.page_size == 0 and position != len(ram):
                    frame += 1
                    out.write(f"------------------ Frame {frame} -------------------\n")

    def dump_frames(self, path: str | os.PathLike[str]) -> None:
        """Write which frames are taken and by which process."""
        with self._lock:
            frames = [(f.pid, int(f.occupied)) for f in self.frames]
        with open(path, "w", encoding="utf-8") as out:
            out.write(f"Print lista de frames ({len(frames)} frames)\n")
            for number, (pid, occupied) in enumerate(frames):
                out.write(f"Frame {number} ,Pid {pid}, Ocupado {occupied}\n")

    def dump_processes(self, path: str | os.PathLike[str]) -> None:
        """Write every process and its page table."""
        with self._lock:
            processes = [(p.pid, list(p.pages)) for p in self.processes.values()]
        with open(path, "w", encoding="utf-8") as out:
            out.write(f"Print lista_procesos ({len(processes)} procesos)\n\n")
            for pid, pages in processes:
                out.write(f"{{Proceso: {pid}, cantidad de paginas: {len(pages)}}}\n")
                for page, frame in enumerate(pages):
                    out.write(f"\tPagina {page} -> Frame {frame}\n")