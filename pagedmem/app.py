"""The memory server: accepts its clients and serves them until the CPU leaves."""

from __future__ import annotations

import argparse
import logging
import os
import socket
import threading
from pathlib import Path

from .config import ConfigError, MemoryConfig
from .handlers import MemoryService
from .instructions import InstructionStore
from .memory import Memory
from .net import start_server, wait_client

_log = logging.getLogger(__name__)

DEFAULT_CONFIG = "memoria.config"
DEFAULT_LOG_FILE = "memoria.log"
SERVER_MESSAGE = ">>> Server Memoria escuchando... <<<"


def serve_io_clients(server: socket.socket, service: MemoryService) -> int:
    """Accept I/O interfaces, serving each on its own thread.

    Returns the number of clients accepted once the server socket is closed.
    """
    accepted = 0
    while True:
        try:
            client = wait_client(server, "entradasalida")
        except OSError:
            return accepted
        accepted += 1
        threading.Thread(
            target=service.handle_io, args=(client,), daemon=True
        ).start()


def run(config_path: str | os.PathLike[str]) -> int:
    """Start the memory server and serve until the CPU disconnects.

    The CPU connects first, then the kernel; I/O interfaces may connect at
    any time after that. Returns 0 once the CPU has gone.
    """
    config = MemoryConfig.from_file(config_path)
    print(config.describe(), end="")

    memory = Memory(config.memory_size, config.page_size)
    instructions = InstructionStore(config.instructions_path)
    service = MemoryService(
        memory, instructions, config.response_delay, dump_dir=Path.cwd()
    )
    print(f"Memoria iniciada, lista de instrucciones por proceso: {len(instructions)}")

    with start_server(config.port, SERVER_MESSAGE) as server:
        _log.info("Esperando conexión de CPU")
        cpu = wait_client(server, "CPU")
        _log.info("Esperando conexión de Kernel")
        kernel = wait_client(server, "KERNEL")

        _log.info("Esperando conexión de Interfaz E/S")
        threading.Thread(
            target=serve_io_clients, args=(server, service), daemon=True
        ).start()
        threading.Thread(
            target=service.handle_kernel, args=(kernel,), daemon=True
        ).start()

        service.handle_cpu(cpu)
    return 0


def _configure_logging(log_file: str) -> None:
    formatter = logging.Formatter("[%(levelname)s] %(asctime)s Memoria - %(message)s")
    handlers: list[logging.Handler] = [
        logging.FileHandler(log_file, encoding="utf-8"),
        logging.StreamHandler(),
    ]
    for handler in handlers:
        handler.setFormatter(formatter)
    logging.basicConfig(level=logging.INFO, handlers=handlers, force=True)


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(prog="pagedmem", description="Paged memory server.")
    parser.add_argument("config", nargs="?", default=DEFAULT_CONFIG,
                        help="configuration file (default: %(default)s)")
    parser.add_argument("--log-file", default=DEFAULT_LOG_FILE,
                        help="log file (default: %(default)s)")
    args = parser.parse_args(argv)

    _configure_logging(args.log_file)
    try:
        return run(args.config)
    except ConfigError as exc:
        _log.error("%s", exc)
        return 1
    except OSError as exc:
        _log.error("No se pudo iniciar el servidor: %s", exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())