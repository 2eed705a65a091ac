# backend/__init__.py
"""
Volume backends and the registry that routes requests to them.
The registry is built once at startup and never mutated afterwards; the
first configured pool is additionally bound under the "default" name.
"""
from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from ..errors import BackendNotFound, FatalConfigurationError
from ..models import DEFAULT_BACKEND
from ..utils.validation import validate_name
from .base import BackendError, VolumeBackend
from .fake import FakeBackend
from .lvm import DEFAULT_ROOT_PATH, LvmBackend

logger = logging.getLogger("lv-agent")


class BackendRegistry:
    """Read-only mapping of backend name to backend instance."""

    def __init__(self, entries: Mapping[str, VolumeBackend]):
        if DEFAULT_BACKEND not in entries:
            raise FatalConfigurationError("backend registry has no default entry")
        self._entries = MappingProxyType(dict(entries))

    def resolve(self, name: Optional[str] = None) -> VolumeBackend:
        """Return the named backend, or the default one when name is empty."""
        key = name or DEFAULT_BACKEND
        backend = self._entries.get(key)
        if backend is None:
            raise BackendNotFound(key)
        return backend

    def names(self) -> List[str]:
        return list(self._entries.keys())

    def pools(self) -> Iterator[Tuple[str, VolumeBackend]]:
        """Entries without the default alias, so each backend appears once."""
        default = self._entries[DEFAULT_BACKEND]
        aliased = any(b is default for n, b in self._entries.items() if n != DEFAULT_BACKEND)
        for name, backend in self._entries.items():
            if name == DEFAULT_BACKEND and aliased:
                continue
            yield name, backend

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def _build_lvm(pools: Sequence[str], root_path: str, fake_capacity_bytes: int) -> Dict[str, VolumeBackend]:
    if not pools:
        raise FatalConfigurationError("lvm backend requires at least one volume group")
    entries: Dict[str, VolumeBackend] = {}
    for i, vg in enumerate(pools):
        try:
            validate_name("volume group", vg)
        except ValueError as e:
            raise FatalConfigurationError(str(e)) from e
        if vg == DEFAULT_BACKEND:
            raise FatalConfigurationError(f"volume group name '{DEFAULT_BACKEND}' is reserved")
        backend = LvmBackend(vg, root_path)
        entries[vg] = backend
        if i == 0:
            # The first pool is also the default one
            entries[DEFAULT_BACKEND] = backend
    return entries


def _build_fake(pools: Sequence[str], root_path: str, fake_capacity_bytes: int) -> Dict[str, VolumeBackend]:
    return {DEFAULT_BACKEND: FakeBackend(fake_capacity_bytes)}


# Map of supported backend kinds
_BUILDERS: Dict[str, Callable[[Sequence[str], str, int], Dict[str, VolumeBackend]]] = {
    "lvm": _build_lvm,
    "fake": _build_fake,
}


def build_registry(
    kind: str,
    pools: Sequence[str],
    root_path: str = DEFAULT_ROOT_PATH,
    fake_capacity_bytes: int = 0,
) -> BackendRegistry:
    """
    Build the backend registry for the declared backend kind.
    Args:
        kind: Backend kind ("lvm" or "fake")
        pools: Ordered volume group names; the first becomes the default
        root_path: Device root under which LV nodes appear
        fake_capacity_bytes: Capacity reported by the fake backend
    Raises:
        FatalConfigurationError: unknown kind or unusable pool list
    """
    key = (kind or "").strip().lower()
    builder = _BUILDERS.get(key)
    if builder is None:
        raise FatalConfigurationError(f"Unrecognized backend type {kind}")
    registry = BackendRegistry(builder(list(pools), root_path, fake_capacity_bytes))
    logger.info("Backend registry (%s): %s", key, ", ".join(registry.names()))
    return registry


__all__ = [
    "BackendError",
    "BackendRegistry",
    "FakeBackend",
    "LvmBackend",
    "VolumeBackend",
    "build_registry",
]
