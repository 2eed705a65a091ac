#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Mount executor for the Local Volume Agent.
Wraps mount/umount/mkfs/blkid and answers "is this path a mount point?".
"""
import logging
import os
import subprocess
from typing import List, Optional, Sequence, Set

import psutil

logger = logging.getLogger("lv-agent")

DEFAULT_FSTYPE = "ext4"

# Map filesystem types to mkfs commands
MKFS_COMMANDS = {
    "ext4": ["mkfs.ext4", "-F", "-m0"],
    "ext3": ["mkfs.ext3", "-F", "-m0"],
    "ext2": ["mkfs.ext2", "-F", "-m0"],
    "xfs": ["mkfs.xfs", "-f"],
    "btrfs": ["mkfs.btrfs", "-f"],
}


class MountError(RuntimeError):
    """A mount, unmount or format command failed."""


def _output(e: subprocess.CalledProcessError) -> str:
    return str(e.stderr or e.stdout or "").strip()


class Mounter:
    """Mounts, unmounts and formats through the host's command-line tools."""

    def _run(self, cmd: List[str]) -> None:
        logger.debug("Running %s", " ".join(cmd))
        try:
            subprocess.run(cmd, capture_output=True, text=True, check=True)
        except FileNotFoundError as e:
            raise MountError(f"{cmd[0]} not available: {e}") from e
        except subprocess.CalledProcessError as e:
            raise MountError(f"{' '.join(cmd)} failed (exit {e.returncode}): {_output(e)}") from e

    def is_likely_not_mount_point(self, path: str) -> bool:
        """True when path sits on the same device as its parent.
        Raises FileNotFoundError if path does not exist; bind mounts of a
        directory on the same filesystem are not detected.
        """
        st = os.stat(path)
        parent = os.stat(os.path.dirname(os.path.abspath(path)))
        return st.st_dev == parent.st_dev

    def mount_points(self) -> Set[str]:
        """Every mount point currently listed by the kernel."""
        return {p.mountpoint for p in psutil.disk_partitions(all=True)}

    def is_not_mount_point(self, path: str) -> bool:
        """Thorough check that also consults the kernel mount table."""
        if not self.is_likely_not_mount_point(path):
            return False
        return os.path.realpath(path) not in self.mount_points()

    def mount(self, source: str, target: str, fstype: str = "", options: Optional[Sequence[str]] = None) -> None:
        opts = list(options or [])
        if "bind" in opts:
            # Options other than bind only take effect on a remount
            extra = [o for o in opts if o != "bind"]
            self._run(["mount", "--bind", source, target])
            if extra:
                try:
                    self._run(["mount", "-o", ",".join(["bind", "remount"] + extra), source, target])
                except MountError:
                    # The bind is live without the requested options (ro included)
                    logger.warning("Remount of %s failed, undoing bind mount", target)
                    try:
                        self.unmount(target)
                    except MountError as undo:
                        logger.error("Could not undo bind mount on %s: %s", target, undo)
                    raise
            logger.info("Bind-mounted %s on %s (%s)", source, target, ",".join(opts))
            return
        cmd = ["mount"]
        if fstype:
            cmd += ["-t", fstype]
        if opts:
            cmd += ["-o", ",".join(opts)]
        self._run(cmd + [source, target])
        logger.info("Mounted %s on %s (%s)", source, target, fstype or "auto")

    def unmount(self, target: str) -> None:
        self._run(["umount", target])
        logger.info("Unmounted %s", target)

    def disk_format(self, device: str) -> str:
        """Filesystem (or partition table) type on device; empty when unformatted."""
        try:
            result = subprocess.run(
                ["blkid", "-p", "-s", "TYPE", "-s", "PTTYPE", "-o", "export", device],
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as e:
            raise MountError(f"blkid not available: {e}") from e
        # blkid exits 2 when no signature was found
        if result.returncode == 2:
            return ""
        if result.returncode != 0:
            raise MountError(f"blkid {device} failed (exit {result.returncode}): {result.stderr.strip()}")
        fields = dict(line.split("=", 1) for line in result.stdout.splitlines() if "=" in line)
        if "PTTYPE" in fields and "TYPE" not in fields:
            return "unknown data, probably partitions"
        return fields.get("TYPE", "")

    def format_and_mount(self, source: str, target: str, fstype: str = "", options: Optional[Sequence[str]] = None) -> None:
        """Create a filesystem on source if it has none, then mount it on target."""
        fstype = fstype or DEFAULT_FSTYPE
        opts = list(options or [])
        existing = self.disk_format(source)
        if not existing:
            if "ro" in opts:
                raise MountError(f"cannot format read-only device {source}")
            if fstype not in MKFS_COMMANDS:
                raise MountError(f"Unsupported filesystem type: {fstype}")
            logger.info("Creating %s filesystem on %s", fstype, source)
            self._run(MKFS_COMMANDS[fstype] + [source])
        elif existing != fstype:
            logger.warning("Device %s already formatted as %s, requested %s", source, existing, fstype)
            fstype = existing
        self.mount(source, target, fstype, opts)

    def unmount_path(self, path: str) -> None:
        """Unmount path if mounted and remove the directory; tolerates absent/unmounted paths."""
        if not os.path.exists(path):
            logger.warning("Unmount skipped because path does not exist: %s", path)
            return
        if self.is_not_mount_point(path):
            logger.info("%s is not a mount point, removing directory", path)
            os.rmdir(path)
            return
        self.unmount(path)
        if not self.is_not_mount_point(path):
            raise MountError(f"failed to unmount path {path}")
        os.rmdir(path)
