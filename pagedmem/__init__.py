"""Paged main-memory server: frames, page tables, instruction storage and its TCP protocol."""

__version__ = "0.1.0"