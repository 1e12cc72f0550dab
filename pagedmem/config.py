"""Configuration of the memory server."""

from __future__ import annotations

import os
from dataclasses import dataclass


class ConfigError(ValueError):
    """Raised when the configuration file is missing or invalid."""


def _parse(path: str | os.PathLike[str]) -> dict[str, str]:
    try:
        with open(path, encoding="utf-8") as handle:
            lines = handle.read().splitlines()
    except OSError as exc:
        raise ConfigError(f"Error al cargar el config {os.fspath(path)}.") from exc
    values: dict[str, str] = {}
    for line in lines:
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        values[key.strip()] = value.strip()
    return values


def _require(values: dict[str, str], key: str) -> str:
    try:
        return values[key]
    except KeyError:
        raise ConfigError(f"missing configuration key: {key}") from None


def _require_int(values: dict[str, str], key: str) -> int:
    raw = _require(values, key)
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class MemoryConfig:
    """Settings read from the memory configuration file."""

    port: str
    memory_size: int
    page_size: int
    instructions_path: str
    response_delay: int

    def __post_init__(self) -> None:
        if self.page_size <= 0:
            raise ConfigError("TAM_PAGINA must be positive")
        if self.memory_size < 0:
            raise ConfigError("TAM_MEMORIA must not be negative")

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> MemoryConfig:
        """Read a KEY=VALUE configuration file."""
        values = _parse(path)
        return cls(
            port=_require(values, "PUERTO_ESCUCHA"),
            memory_size=_require_int(values, "TAM_MEMORIA"),
            page_size=_require_int(values, "TAM_PAGINA"),
            instructions_path=_require(values, "PATH_INSTRUCCIONES"),
            response_delay=_require_int(values, "RETARDO_RESPUESTA"),
        )

    @property
    def frame_count(self) -> int:
        """Number of frames that fit in memory."""
        return self.memory_size // self.page_size

    def describe(self) -> str:
        """Return the printable summary of the settings."""
        rule = "=" * 60
        return (
            f"\n{rule}\n"
            f"Puerto de escucha: {self.port}\n"
            f"Tamaño de la memoria RAM: {self.memory_size}\n"
            f"Tamaño de página: {self.page_size}\n"
            f"Path de instrucciones: {self.instructions_path}\n"
            f"Retardo de respuesta: {self.response_delay}\n"
            f"Cantidad de marcos (Frames): {self.frame_count}\n"
            f"{rule}\n\n"
        )