import logging
from typing import List

from ..errors import VolumeNotFoundError
from ..models import VolumeInfo, VolumeRequest
from .base import VolumeBackend

logger = logging.getLogger("lv-agent")

FAKE_DEVICE_PATH = "/dev/xxx"


class FakeBackend(VolumeBackend):
    """Stateless backend used to exercise the controller without a real pool."""

    def __init__(self, capacity_bytes: int = 0):
        self.capacity_bytes = capacity_bytes

    def create(self, req: VolumeRequest) -> VolumeInfo:
        logger.debug("Fake create of %s (%d GiB)", req.volume_id, req.size_gib)
        return VolumeInfo(volume_id=req.volume_id, size_gib=req.size_gib, device_path=FAKE_DEVICE_PATH)

    def delete(self, volume_id: str) -> None:
        pass

    def list_all(self) -> List[VolumeInfo]:
        return []

    def get(self, volume_id: str) -> VolumeInfo:
        raise VolumeNotFoundError(f"volume {volume_id} not found")

    def capacity(self) -> int:
        return self.capacity_bytes
