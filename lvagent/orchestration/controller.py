#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Controller lifecycle manager for the Local Volume Agent.
Creates, deletes and measures volumes by routing each call to a backend in
the registry. The backend name travels inside the volume handle.
"""
import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from .. import handle as handle_codec
from ..backend import BackendRegistry, VolumeBackend
from ..errors import AgentError, BackendNotFound, InternalError, InvalidArgumentError, VolumeNotFoundError
from ..models import BACKEND_KEY, DEFAULT_BACKEND, DEVICE_PATH_KEY, NODE_TOPOLOGY_KEY, CreatedVolume, VolumeRequest
from ..utils.locks import KeyedLock
from ..utils.validation import GIB, volume_size_gib

logger = logging.getLogger("lv-agent")

CONTROLLER_CAPABILITIES = ["CREATE_DELETE_VOLUME", "GET_CAPACITY", "LIST_VOLUMES"]


class ControllerServer:
    """Cluster-level volume operations."""

    def __init__(self, registry: BackendRegistry, node_id: Optional[str] = None):
        self.registry = registry
        self.node_id = node_id
        self.locks = KeyedLock()

    def _select_backend(self, parameters: Dict[str, str]) -> Tuple[str, VolumeBackend]:
        """Default pool when the parameter is absent; a present but empty name is rejected."""
        if BACKEND_KEY not in parameters:
            return DEFAULT_BACKEND, self.registry.resolve(DEFAULT_BACKEND)
        name = parameters[BACKEND_KEY]
        if not name:
            raise BackendNotFound(name)
        # BackendNotFound is an InvalidArgumentError
        return name, self.registry.resolve(name)

    def create_volume(self, required_bytes: int = 0, parameters: Optional[Dict[str, str]] = None) -> CreatedVolume:
        """Allocate a new volume; every call mints a fresh volume id."""
        parameters = parameters or {}
        if required_bytes < 0:
            raise InvalidArgumentError(f"Requested size must not be negative: {required_bytes}")
        size_gib = volume_size_gib(required_bytes)

        backend_name, backend = self._select_backend(parameters)

        # Node name is needed to set the volume topology
        if not self.node_id:
            raise InvalidArgumentError("Node name unset in env")

        local_id = str(uuid.uuid4())
        volume_id = handle_codec.encode(backend_name, local_id)
        # A fresh id cannot collide with another call, so no lock is taken
        try:
            info = backend.create(VolumeRequest(volume_id=local_id, size_gib=size_gib))
        except AgentError:
            logger.info("Failed to CreateVolume %s on backend %s", local_id, backend_name)
            raise
        except Exception as e:
            logger.exception("Failed to CreateVolume %s on backend %s", local_id, backend_name)
            raise InternalError(f"Failed to create volume: {e}") from e
        logger.info("Created volume %s of %d GiB on backend %s", local_id, size_gib, backend_name)
        return CreatedVolume(
            volume_id=volume_id,
            capacity_bytes=size_gib * GIB,
            device_path=info.device_path,
            topology={NODE_TOPOLOGY_KEY: self.node_id},
        )

    def delete_volume(self, volume_id: str) -> None:
        """Delete the volume behind a handle; an already-absent volume is success."""
        if not volume_id:
            raise InvalidArgumentError("Volume ID missing in request")
        # MalformedHandleError (NotFound) vs BackendNotFound (InvalidArgument)
        backend_name, local_id = handle_codec.decode(volume_id)
        backend = self.registry.resolve(backend_name)
        with self.locks.hold(local_id):
            try:
                backend.delete(local_id)
            except VolumeNotFoundError:
                logger.info("Volume %s already absent from backend %s", local_id, backend_name)
                return
            except AgentError:
                logger.info("Failed to DeleteVolume %s", volume_id)
                raise
            except Exception as e:
                logger.exception("Failed to DeleteVolume %s", volume_id)
                raise InternalError(f"Failed to delete volume: {e}") from e
        logger.info("Deleted volume %s of backend %s", local_id, backend_name)

    def get_capacity(self, parameters: Optional[Dict[str, str]] = None) -> int:
        """Capacity in bytes reported by the selected backend."""
        backend_name, backend = self._select_backend(parameters or {})
        try:
            return backend.capacity()
        except AgentError:
            raise
        except Exception as e:
            logger.exception("Failed to GetCapacity of backend %s", backend_name)
            raise InternalError(f"Failed to get capacity: {e}") from e

    def list_volumes(self) -> List[Dict[str, Any]]:
        """Volumes of every pool, each reported under its handle."""
        entries: List[Dict[str, Any]] = []
        for backend_name, backend in self.registry.pools():
            try:
                volumes = backend.list_all()
            except AgentError:
                raise
            except Exception as e:
                logger.exception("Failed to list volumes of backend %s", backend_name)
                raise InternalError(f"Failed to list volumes: {e}") from e
            for info in volumes:
                entries.append(
                    {
                        "volume_id": handle_codec.encode(backend_name, info.volume_id),
                        "capacity_bytes": info.size_bytes,
                        "attributes": {DEVICE_PATH_KEY: info.device_path},
                    }
                )
        return entries

    def get_capabilities(self) -> List[str]:
        return list(CONTROLLER_CAPABILITIES)
