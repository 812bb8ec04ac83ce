"""
Shared Utilities

File I/O helpers used across modules.
"""

from src.utils.io import load_yaml, read_bytes, save_json, write_bytes

__all__ = [
    "load_yaml",
    "save_json",
    "read_bytes",
    "write_bytes",
]
