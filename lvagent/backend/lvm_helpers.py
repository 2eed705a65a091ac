"""
Helper functions for LVM operations.
"""

import logging
import subprocess
from pathlib import Path
from typing import List

logger = logging.getLogger("lv-agent")

GIB = 1024 * 1024 * 1024


def _run(cmd: List[str]) -> str:
    """Run an LVM command and return its stdout; raise CalledProcessError on failure."""
    logger.debug("Running %s", " ".join(cmd))
    result = subprocess.run(cmd, capture_output=True, text=True, check=True)
    return result.stdout


def _to_int_bytes(raw: str) -> int:
    # lvs/vgs print "  1073741824" (or "1073741824B" on older releases)
    return int(float(raw.strip().rstrip("B") or 0))


def lv_exists(vg: str, lv: str) -> bool:
    """Whether the volume group lists the logical volume.
    Raises CalledProcessError/OSError when lvs itself fails, so a tool
    failure is never mistaken for an absent LV.
    """
    return lv in lv_names(vg)


def lv_dev_path(root_path: str, vg: str, lv: str) -> str:
    """Device node of a logical volume under the device root."""
    return str(Path(root_path) / vg / lv)


def create_lv(vg: str, lv: str, size_gib: int) -> None:
    """Create a logical volume of size_gib GiB in the volume group."""
    logger.info("Creating LV %s/%s (%d GiB)", vg, lv, size_gib)
    _run(["lvcreate", "-y", "-L", f"{size_gib}G", "-n", lv, vg])


def remove_lv(vg: str, lv: str) -> None:
    """Remove a logical volume without prompting."""
    logger.info("Removing LV %s/%s", vg, lv)
    _run(["lvremove", "-f", f"{vg}/{lv}"])


def lv_names(vg: str) -> List[str]:
    """Names of all logical volumes in the volume group."""
    out = _run(["lvs", "--noheadings", "--options", "lv_name", vg])
    return [line.strip() for line in out.splitlines() if line.strip()]


def lv_size_gib(vg: str, lv: str) -> int:
    """Size of a logical volume, rounded up to whole GiB."""
    out = _run(["lvs", "--noheadings", "--units", "b", "--nosuffix", "--options", "lv_size", f"{vg}/{lv}"])
    size = _to_int_bytes(out)
    return (size + GIB - 1) // GIB


def vg_size_bytes(vg: str) -> int:
    """Total size of the volume group in bytes."""
    out = _run(["vgs", "--noheadings", "--units", "b", "--nosuffix", "--options", "vg_size", vg])
    return _to_int_bytes(out)
