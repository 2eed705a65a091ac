# backend/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from ..errors import InternalError
from ..models import VolumeInfo, VolumeRequest


class BackendError(InternalError):
    """Storage backend error."""


class VolumeBackend(ABC):
    """Common interface for dynamic provisioning backends.
    Semantics:
      - create(): allocate a volume of the requested GiB size.
      - delete(): remove a volume; raise VolumeNotFoundError if already absent.
      - list_all(): every volume the backend currently holds.
      - get(): one volume; raise VolumeNotFoundError if unknown.
      - capacity(): available bytes in the pool.
    """

    @abstractmethod
    def create(self, req: VolumeRequest) -> VolumeInfo:
        raise NotImplementedError

    @abstractmethod
    def delete(self, volume_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def list_all(self) -> List[VolumeInfo]:
        raise NotImplementedError

    @abstractmethod
    def get(self, volume_id: str) -> VolumeInfo:
        raise NotImplementedError

    @abstractmethod
    def capacity(self) -> int:
        raise NotImplementedError
