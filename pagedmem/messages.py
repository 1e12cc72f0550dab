"""Messages exchanged between the kernel, the CPU and the memory."""

from __future__ import annotations

import socket

from .buffer import Buffer, Packet, Pcb
from .codes import OpCode
from .net import _recv_int, send_packet

OK_VALUE = -1


def _send(sock: socket.socket, code: int, buffer: Buffer) -> None:
    send_packet(sock, Packet(code, buffer))


def send_ok(sock: socket.socket, code: int) -> None:
    """Send an acknowledgement packet with the given code."""
    buffer = Buffer()
    buffer.add_int(OK_VALUE)
    _send(sock, code, buffer)


def receive_ok(sock: socket.socket) -> int:
    """Read a 4-byte acknowledgement and return it."""
    return _recv_int(sock)


def receive_op_code(sock: socket.socket) -> int:
    """Read an operation code, as an OpCode when it is a known one."""
    value = _recv_int(sock)
    try:
        return OpCode(value)
    except ValueError:
        return value


def add_pcb(packet: Packet, pcb: Pcb) -> None:
    """Append a process control block to a packet's buffer."""
    buffer = packet.buffer
    buffer.add_int(pcb.pid)
    buffer.add_int(pcb.program_counter)
    pcb.registers.add_to_buffer(buffer)
    buffer.add_int(pcb.quantum)
    buffer.add_int(int(pcb.state))


def send_process(sock: socket.socket, pcb: Pcb, script_path: str, code: int) -> None:
    """Send a process control block followed by its script path."""
    packet = Packet(code)
    add_pcb(packet, pcb)
    packet.buffer.add_string(script_path)
    send_packet(sock, packet)


def send_process_to_cpu(sock: socket.socket, pcb: Pcb) -> None:
    """Send a new process to the CPU: pid, program counter and registers."""
    buffer = Buffer()
    buffer.add_int(pcb.pid)
    buffer.add_int(pcb.program_counter)
    pcb.registers.add_to_buffer(buffer)
    _send(sock, OpCode.KERNEL_ENVIA_PROCESO, buffer)


def send_cpu_interrupt(sock: socket.socket, pcb: Pcb, reason: int) -> None:
    """Send an interrupt whose code is the reason, carrying the block and reason."""
    packet = Packet(reason)
    add_pcb(packet, pcb)
    packet.buffer.add_int(int(reason))
    send_packet(sock, packet)


def request_instruction(sock: socket.socket, pid: int, program_counter: int) -> None:
    """Ask the memory for the instruction at a program counter."""
    buffer = Buffer()
    buffer.add_int(pid)
    buffer.add_int(program_counter)
    _send(sock, OpCode.CPU_SOLICITA_INSTRUCCION, buffer)


def send_instruction(sock: socket.socket, instruction: str) -> None:
    """Send one instruction line to the CPU."""
    buffer = Buffer()
    buffer.add_string(instruction)
    _send(sock, OpCode.MEMORIA_ENVIA_INSTRUCCION, buffer)