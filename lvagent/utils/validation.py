#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Utilities module for the Local Volume Agent.
This module contains common validation and conversion helpers.
"""
import json
import re
from pathlib import Path
from typing import Any, Dict, NoReturn

import typer

GIB = 1024 * 1024 * 1024
DEFAULT_VOLUME_SIZE_BYTES = 1 * GIB

# LVM accepts a-z A-Z 0-9 + _ . - in VG/LV names
VG_NAME_RE = r"^[A-Za-z0-9+_.-]+$"


def fail(msg: str) -> NoReturn:
    """Print an error JSON object and exit with code 1."""
    typer.echo(json.dumps({"error": msg}))
    raise typer.Exit(code=1)


def succeed(data: Dict[str, Any]) -> NoReturn:
    """Print a JSON object and exit with code 0."""
    typer.echo(json.dumps(data))
    raise typer.Exit(code=0)


def validate_name(entity: str, name: str, pattern: str = VG_NAME_RE) -> None:
    """Validate a resource name against pattern. Raise ValueError on error."""
    if not re.match(pattern, name or "") or name in {".", ".."}:
        raise ValueError(f"Invalid {entity} name '{name}'")


def round_up_size(size_bytes: int, allocation_unit: int) -> int:
    """Number of allocation units needed to hold size_bytes (ceil)."""
    return (size_bytes + allocation_unit - 1) // allocation_unit


def volume_size_gib(requested_bytes: int) -> int:
    """GiB to allocate for a request; zero or missing means the 1 GiB default."""
    if not requested_bytes:
        requested_bytes = DEFAULT_VOLUME_SIZE_BYTES
    return round_up_size(requested_bytes, GIB)


def read_json(path: Path) -> Dict[str, Any]:
    """Load and parse a JSON request file, failing the CLI on error."""
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        fail(f"Invalid JSON '{path}': {e}")
    if not isinstance(data, dict):
        fail(f"Invalid JSON '{path}': expected an object")
    return data
