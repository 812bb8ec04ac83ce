"""
I/O Utilities

File input/output operations.
"""

import json
from pathlib import Path
from typing import Any, Dict

import yaml


def load_yaml(file_path: Path) -> Dict[str, Any]:
    """Load YAML file."""
    with open(file_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def save_json(data: Dict[str, Any], file_path: Path, indent: int = 2):
    """Save data to JSON file, creating parent directories."""
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with open(file_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent)


def read_bytes(file_path: Path) -> bytes:
    """Read a whole file as bytes."""
    return Path(file_path).read_bytes()


def write_bytes(data: bytes, file_path: Path):
    """Write bytes to a file, creating parent directories."""
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_bytes(data)
