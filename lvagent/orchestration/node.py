#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Node mount manager for the Local Volume Agent.
Drives a volume through stage -> publish -> unpublish -> unstage on this
node. Mount state is never stored; every call inspects the filesystem under a
per-path lock right before acting.
"""
import logging
import os
from typing import Any, Dict, List, Optional

from ..errors import InternalError, InvalidArgumentError
from ..models import NODE_TOPOLOGY_KEY, MountCapability
from ..utils.locks import KeyedLock
from ..utils.mount import Mounter, MountError

logger = logging.getLogger("lv-agent")

TARGET_DIR_MODE = 0o750
NODE_CAPABILITIES = ["STAGE_UNSTAGE_VOLUME"]


class NodeServer:
    """Per-node staging and publishing of volumes."""

    def __init__(self, node_id: Optional[str] = None, mounter: Optional[Mounter] = None):
        self.node_id = node_id
        self.mounter = mounter or Mounter()
        self.locks = KeyedLock()

    def stage_volume(
        self,
        volume_id: str,
        device_path: str,
        staging_path: str,
        capability: Optional[MountCapability],
    ) -> None:
        """Format (if needed) and mount the device at the staging path."""
        if capability is None:
            raise InvalidArgumentError("Volume capability missing in request")
        if not device_path:
            raise InvalidArgumentError("Device path missing in request")
        if not staging_path:
            raise InvalidArgumentError("Staging target path missing in request")

        with self.locks.hold(staging_path):
            try:
                not_mnt = self.mounter.is_likely_not_mount_point(staging_path)
            except OSError as e:
                raise InternalError(str(e)) from e
            if not not_mnt:
                logger.info("Volume %s already staged at %s", volume_id, staging_path)
                return

            options = ["ro" if capability.read_only_mode else "rw"]
            options.extend(capability.mount_flags)
            try:
                self.mounter.format_and_mount(device_path, staging_path, capability.fs_type, options)
            except (MountError, OSError) as e:
                raise InternalError(str(e)) from e
        logger.info("Volume %s has been staged to %s", volume_id, staging_path)

    def unstage_volume(self, volume_id: str, staging_path: str) -> None:
        """Unmount and remove the staging path."""
        if not staging_path:
            raise InvalidArgumentError("Staging target path missing in request")
        with self.locks.hold(staging_path):
            try:
                self.mounter.unmount_path(staging_path)
            except (MountError, OSError) as e:
                raise InternalError(str(e)) from e
        logger.info("Volume %s has been unstaged from %s", volume_id, staging_path)

    def publish_volume(
        self,
        volume_id: str,
        staging_path: str,
        target_path: str,
        read_only: bool,
        capability: Optional[MountCapability],
    ) -> None:
        """Bind-mount the staging path onto the target path, creating it if absent."""
        if capability is None:
            raise InvalidArgumentError("Volume capability missing in request")
        if not target_path:
            raise InvalidArgumentError("Target path missing in request")
        if not staging_path:
            raise InvalidArgumentError("Staging target path missing in request")

        with self.locks.hold(target_path):
            try:
                not_mnt = self.mounter.is_likely_not_mount_point(target_path)
            except FileNotFoundError:
                try:
                    os.makedirs(target_path, TARGET_DIR_MODE, exist_ok=True)
                except OSError as e:
                    raise InternalError(str(e)) from e
                not_mnt = True
            except OSError as e:
                raise InternalError(str(e)) from e
            if not not_mnt:
                logger.info("Volume %s already published at %s", volume_id, target_path)
                return

            options = ["bind"]
            options.extend(capability.mount_flags)
            if read_only:
                options.append("ro")
            try:
                self.mounter.mount(staging_path, target_path, "", options)
            except (MountError, OSError) as e:
                raise InternalError(str(e)) from e
        logger.info("Volume %s has been mounted to %s", volume_id, target_path)

    def unpublish_volume(self, volume_id: str, target_path: str) -> None:
        """Unmount the target path; an absent or unmounted target is success."""
        if not target_path:
            raise InvalidArgumentError("Target path missing in request")
        with self.locks.hold(target_path):
            try:
                not_mnt = self.mounter.is_likely_not_mount_point(target_path)
            except FileNotFoundError:
                logger.info("Target %s does not exist, nothing to unpublish", target_path)
                return
            except OSError as e:
                raise InternalError(str(e)) from e
            if not_mnt:
                logger.info("Target %s is not mounted, nothing to unpublish", target_path)
                return
            try:
                self.mounter.unmount(target_path)
            except MountError as e:
                raise InternalError(str(e)) from e
        logger.info("Volume %s has been unmounted from %s", volume_id, target_path)

    def get_info(self) -> Dict[str, Any]:
        return {
            "node_id": self.node_id,
            "accessible_topology": {"segments": {NODE_TOPOLOGY_KEY: self.node_id}} if self.node_id else None,
        }

    def get_capabilities(self) -> List[str]:
        return list(NODE_CAPABILITIES)
