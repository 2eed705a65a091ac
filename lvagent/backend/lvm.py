import logging
import subprocess
from typing import List

from ..errors import VolumeNotFoundError
from ..models import VolumeInfo, VolumeRequest
from .base import BackendError, VolumeBackend
from .lvm_helpers import create_lv, lv_dev_path, lv_exists, lv_names, lv_size_gib, remove_lv, vg_size_bytes

logger = logging.getLogger("lv-agent")

DEFAULT_ROOT_PATH = "/dev"


def _stderr(e: Exception) -> str:
    if isinstance(e, subprocess.CalledProcessError) and e.stderr:
        return str(e.stderr).strip()
    return str(e)


class LvmBackend(VolumeBackend):
    """Logical volumes carved out of a single volume group."""

    def __init__(self, vg: str, root_path: str = DEFAULT_ROOT_PATH):
        self.vg = vg
        self.root_path = root_path

    def create(self, req: VolumeRequest) -> VolumeInfo:
        try:
            create_lv(self.vg, req.volume_id, req.size_gib)
        except (OSError, subprocess.CalledProcessError) as e:
            raise BackendError(f"Failed to create LV {self.vg}/{req.volume_id}: {_stderr(e)}") from e
        return VolumeInfo(
            volume_id=req.volume_id,
            size_gib=req.size_gib,
            device_path=lv_dev_path(self.root_path, self.vg, req.volume_id),
        )

    def _exists(self, volume_id: str) -> bool:
        try:
            return lv_exists(self.vg, volume_id)
        except (OSError, subprocess.CalledProcessError) as e:
            raise BackendError(f"Failed to look up LV {self.vg}/{volume_id}: {_stderr(e)}") from e

    def delete(self, volume_id: str) -> None:
        if not self._exists(volume_id):
            raise VolumeNotFoundError(f"LV {self.vg}/{volume_id} not found")
        try:
            remove_lv(self.vg, volume_id)
        except (OSError, subprocess.CalledProcessError) as e:
            raise BackendError(f"Failed to delete LV {self.vg}/{volume_id}: {_stderr(e)}") from e

    def list_all(self) -> List[VolumeInfo]:
        try:
            names = lv_names(self.vg)
        except (OSError, subprocess.CalledProcessError) as e:
            raise BackendError(f"Failed to list LVs in {self.vg}: {_stderr(e)}") from e
        return [self.get(name) for name in names]

    def get(self, volume_id: str) -> VolumeInfo:
        if not self._exists(volume_id):
            raise VolumeNotFoundError(f"LV {self.vg}/{volume_id} not found")
        try:
            size = lv_size_gib(self.vg, volume_id)
        except (OSError, subprocess.CalledProcessError, ValueError) as e:
            raise BackendError(f"Failed to query LV {self.vg}/{volume_id}: {_stderr(e)}") from e
        return VolumeInfo(
            volume_id=volume_id,
            size_gib=size,
            device_path=lv_dev_path(self.root_path, self.vg, volume_id),
        )

    def capacity(self) -> int:
        try:
            return vg_size_bytes(self.vg)
        except (OSError, subprocess.CalledProcessError, ValueError) as e:
            raise BackendError(f"Failed to query VG {self.vg} size: {_stderr(e)}") from e
