"""Operation codes and enumerations shared by every module of the system."""

from __future__ import annotations

from enum import IntEnum


class OpCode(IntEnum):
    """Operation codes carried at the head of every packet."""

    # Handshakes
    HANDSHAKE_OK = 0
    MENSAJE_A_MEMORIA = 1
    HANDSHAKE_KERNEL = 2
    HANDSHAKE_ENTRADASALIDA = 3
    HANDSHAKE_MEMORIA = 4
    HANDSHAKE_CPU = 5
    # Kernel <-> memory
    KERNEL_RESPUESTA_INICIALIZAR_ESTRUCTURAS = 6
    MEMORIA_SOLICITAR_INICIALIZAR_ESTRUCTURAS = 7
    LIBERAR_PROCESO_EN_MEMORIA = 8
    # Kernel <-> CPU and I/O
    IO_GEN_SLEEP_FS = 9
    IO_STDIN_READ_FS = 10
    IO_STDOUT_WRITE_FS = 11
    IO_FS_CREATE_FS = 12
    IO_FS_DELETE_FS = 13
    IO_FS_TRUNCATE_FS = 14
    IO_FS_WRITE_FS = 15
    IO_FS_READ_FS = 16
    KERNEL_EXIT = 17
    KERNEL_ENVIA_PROCESO = 18
    CPU_INTERRUPT = 19
    KERNEL_WAIT = 20
    KERNEL_SIGNAL = 21
    # CPU <-> memory
    CPU_SOLICITA_INSTRUCCION = 22
    MEMORIA_ENVIA_INSTRUCCION = 23
    MEMORIA_RESIZE = 24
    RESIZE_OK = 25
    FIN_DE_QUANTUM = 26
    ELIMINAR_PROCESO = 27
    OUT_OF_MEMORY = 28
    MEMORIA_LEER = 29
    MEMORIA_ESCRIBIR = 30
    CPU_CONSULTA_FRAME = 31
    CPU_CONSULTA_TAM_PAGINA = 32
    INTERRUPCION = 33
    MEMORIA_COPY_STRING = 34
    MEMORIA_MOV_OUT = 35
    MEMORIA_MOV_IN = 36
    MEMORIA_ERROR = 37
    # I/O <-> kernel
    FIN_IO = 38
    ERROR_IO = 39
    NUEVA_CONEXION_IO = 40


class ConsoleCommand(IntEnum):
    """Commands understood by the kernel console."""

    EJECUTAR_SCRIPT = 0
    INICIAR_PROCESO = 1
    FINALIZAR_PROCESO = 2
    INICIAR_PLANIFICACION = 3
    DETENER_PLANIFICACION = 4
    PROCESO_ESTADO = 5
    MULTIPROGRAMACION = 6
    MENSAJE_A_MEMORIA1 = 7
    COMANDO_INVALIDO = 8


class PcbState(IntEnum):
    """Scheduling state of a process control block."""

    E_NEW = 0
    E_READY = 1
    E_BLOCKED = 2
    E_EXIT = 3
    E_PRIORIDAD = 4
    E_EXEC = 5


class InterfaceType(IntEnum):
    """Kinds of I/O interface."""

    GENERICA = 0
    STDIN = 1
    STDOUT = 2
    DIAL_FS = 3


_HANDSHAKE_CODES = (
    OpCode.HANDSHAKE_OK,
    OpCode.MENSAJE_A_MEMORIA,
    OpCode.HANDSHAKE_KERNEL,
    OpCode.HANDSHAKE_ENTRADASALIDA,
    OpCode.HANDSHAKE_MEMORIA,
    OpCode.HANDSHAKE_CPU,
)


def describe_handshake(code: int) -> str:
    """Return the printable name of a handshake code.

    Only the first six codes have a description; any other raises ValueError.
    """
    try:
        op = OpCode(code)
    except ValueError:
        raise ValueError(f"unknown operation code: {code}") from None
    if op not in _HANDSHAKE_CODES:
        raise ValueError(f"{op.name} is not a handshake code")
    return op.name