"""Length-prefixed message buffers and the structures carried in them."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from .codes import PcbState

_INT = struct.Struct("<i")
_HEADER = struct.Struct("<ii")
_U8 = struct.Struct("<B")
_U32 = struct.Struct("<I")


class BufferEmptyError(ValueError):
    """Raised when data is taken from an empty or truncated buffer."""


class Buffer:
    """A sequence of length-prefixed fields, consumed from the front."""

    def __init__(self, payload: bytes = b"") -> None:
        self._data = bytearray(payload)

    @property
    def payload(self) -> bytes:
        """The raw bytes still held by the buffer."""
        return bytes(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Buffer({bytes(self._data)!r})"

    def add_bytes(self, data: bytes) -> None:
        """Append a field: its length as a 4-byte int, then the bytes."""
        data = bytes(data)
        self._data += _INT.pack(len(data))
        self._data += data

    def add_int(self, value: int) -> None:
        """Append a 4-byte signed integer field."""
        self.add_bytes(_INT.pack(value))

    def add_string(self, value: str) -> None:
        """Append a string field, NUL terminated."""
        self.add_bytes(value.encode("utf-8") + b"\0")

    def take_bytes(self) -> bytes:
        """Remove and return the first field."""
        if not self._data:
            raise BufferEmptyError("the buffer is empty")
        if len(self._data) < _INT.size:
            raise BufferEmptyError("the buffer is truncated")
        (size,) = _INT.unpack_from(self._data)
        end = _INT.size + size
        if size < 0 or len(self._data) < end:
            raise BufferEmptyError("the buffer is truncated")
        data = bytes(self._data[_INT.size:end])
        del self._data[:end]
        return data

    def take_int(self) -> int:
        """Remove the first field and read it as a 4-byte signed integer."""
        data = self.take_bytes()
        if len(data) < _INT.size:
            raise BufferEmptyError("field is too short for an integer")
        return _INT.unpack_from(data)[0]

    def take_string(self) -> str:
        """Remove the first field and read it as a NUL-terminated string."""
        data = self.take_bytes()
        return data.split(b"\0", 1)[0].decode("utf-8", errors="replace")


@dataclass
class Packet:
    """An operation code together with its buffer."""

    code: int
    buffer: Buffer = field(default_factory=Buffer)

    def serialize(self) -> bytes:
        """Encode as [code][size][payload]."""
        return _HEADER.pack(int(self.code), len(self.buffer)) + self.buffer.payload


@dataclass
class CpuRegisters:
    """General-purpose registers of the CPU."""

    AX: int = 0
    BX: int = 0
    CX: int = 0
    DX: int = 0
    EAX: int = 0
    EBX: int = 0
    ECX: int = 0
    EDX: int = 0
    SI: int = 0
    DI: int = 0

    def add_to_buffer(self, buffer: Buffer) -> None:
        """Append every register as its own field."""
        # The DX slot carries the value of AX, as the wire protocol always has.
        for value in (self.AX, self.BX, self.CX, self.AX):
            buffer.add_bytes(_U8.pack(value))
        for value in (self.EAX, self.EBX, self.ECX, self.EDX, self.SI, self.DI):
            buffer.add_bytes(_U32.pack(value))

    @classmethod
    def from_buffer(cls, buffer: Buffer) -> CpuRegisters:
        """Read the registers in the order they are written."""
        small = [_read(buffer, _U8) for _ in range(4)]
        large = [_read(buffer, _U32) for _ in range(6)]
        return cls(*small, *large)

    def describe(self) -> str:
        """Return a printable listing of the registers."""
        lines = ["========== Registros del procesador =========="]
        for name in ("AX", "BX", "CX", "DX", "EAX", "EBX", "ECX", "EDX", "SI", "DI"):
            lines.append(f">> Registros - {name}: {getattr(self, name)}")
        lines.append("==============================================")
        return "\n".join(lines) + "\n\n"


def _read(buffer: Buffer, fmt: struct.Struct) -> int:
    data = buffer.take_bytes()
    if len(data) < fmt.size:
        raise BufferEmptyError("register field is too short")
    return fmt.unpack_from(data)[0]


@dataclass
class Pcb:
    """Process control block."""

    pid: int
    program_counter: int = 0
    registers: CpuRegisters = field(default_factory=CpuRegisters)
    quantum: int = 0
    state: PcbState = PcbState.E_NEW

    @classmethod
    def from_buffer(cls, buffer: Buffer) -> Pcb:
        """Read pid, program counter, registers, quantum and state."""
        pid = buffer.take_int()
        program_counter = buffer.take_int()
        registers = CpuRegisters.from_buffer(buffer)
        quantum = buffer.take_int()
        state = PcbState(buffer.take_int())
        return cls(pid, program_counter, registers, quantum, state)

    def describe(self) -> str:
        """Return a printable listing of the block and its registers."""
        head = (
            "\n============= PCB del Proceso =============\n"
            f">> PCB - PID: {self.pid}\n"
            f">> PCB - Program Counter: {self.program_counter}\n"
            f">> PCB - Quantum: {self.quantum}\n"
            f">> PCB - Estado: {int(self.state)}\n"
        )
        return head + self.registers.describe()