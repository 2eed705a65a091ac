"""Encode/decode the volume handle passed across the protocol boundary."""
from typing import Tuple

from .errors import MalformedHandleError

SEPARATOR = "/"


def encode(backend_name: str, local_id: str) -> str:
    """Record the backend as part of the handle so deletion can find it."""
    if SEPARATOR in backend_name:
        raise MalformedHandleError(f"{backend_name}{SEPARATOR}{local_id}")
    return f"{backend_name}{SEPARATOR}{local_id}"


def decode(handle: str) -> Tuple[str, str]:
    """Split a handle into (backend name, backend-local id)."""
    parts = (handle or "").split(SEPARATOR)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise MalformedHandleError(handle)
    return parts[0], parts[1]
