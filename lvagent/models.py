#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Data models for the Local Volume Agent.
Dataclasses are the values passed between the managers and backends; the
pydantic models describe the JSON bodies accepted by the HTTP API.
"""
import dataclasses
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

# Volume attribute carrying the device path from CreateVolume to NodeStage
DEVICE_PATH_KEY = "device-path"
# Parameter selecting a storage backend
BACKEND_KEY = "storage-backend"
DEFAULT_BACKEND = "default"
NODE_TOPOLOGY_KEY = "kubernetes.io/hostname"

SINGLE_NODE_WRITER = "SINGLE_NODE_WRITER"
SINGLE_NODE_READER_ONLY = "SINGLE_NODE_READER_ONLY"
MULTI_NODE_READER_ONLY = "MULTI_NODE_READER_ONLY"
READER_ONLY_MODES = frozenset({SINGLE_NODE_READER_ONLY, MULTI_NODE_READER_ONLY})


@dataclasses.dataclass
class VolumeRequest:
    """Per-call request handed to a backend."""

    volume_id: str
    size_gib: int


@dataclasses.dataclass(frozen=True)
class VolumeInfo:
    """A volume as reported by a backend."""

    volume_id: str
    size_gib: int
    device_path: str

    @property
    def size_bytes(self) -> int:
        return self.size_gib * 1024 * 1024 * 1024


@dataclasses.dataclass
class MountCapability:
    """Mount capability descriptor of a Stage/Publish call."""

    fs_type: str = ""
    mount_flags: List[str] = dataclasses.field(default_factory=list)
    access_mode: str = SINGLE_NODE_WRITER

    @property
    def read_only_mode(self) -> bool:
        return self.access_mode in READER_ONLY_MODES


@dataclasses.dataclass
class CreatedVolume:
    """Result of CreateVolume."""

    volume_id: str
    capacity_bytes: int
    device_path: str
    topology: Dict[str, str]

    def to_dict(self) -> Dict[str, object]:
        return {
            "volume_id": self.volume_id,
            "capacity_bytes": self.capacity_bytes,
            "attributes": {DEVICE_PATH_KEY: self.device_path},
            "accessible_topology": [{"segments": dict(self.topology)}],
        }


# --------------------------- API request bodies ---------------------------


class CapacityRange(BaseModel):
    required_bytes: int = Field(default=0, ge=0)
    limit_bytes: int = Field(default=0, ge=0)


class MountVolume(BaseModel):
    fs_type: str = ""
    mount_flags: List[str] = Field(default_factory=list)


class VolumeCapabilityModel(BaseModel):
    """FastAPI model of a volume capability; only mount access is supported."""

    mount: Optional[MountVolume] = None
    access_mode: str = SINGLE_NODE_WRITER

    def to_capability(self) -> Optional[MountCapability]:
        if self.mount is None:
            return None
        return MountCapability(
            fs_type=self.mount.fs_type,
            mount_flags=list(self.mount.mount_flags),
            access_mode=self.access_mode,
        )


class CreateVolumeRequest(BaseModel):
    name: str = ""
    capacity_range: Optional[CapacityRange] = None
    parameters: Dict[str, str] = Field(default_factory=dict)


class GetCapacityRequest(BaseModel):
    parameters: Dict[str, str] = Field(default_factory=dict)


class NodeStageRequest(BaseModel):
    volume_id: str = ""
    staging_target_path: str = ""
    volume_capability: Optional[VolumeCapabilityModel] = None
    volume_attributes: Dict[str, str] = Field(default_factory=dict)


class NodeUnstageRequest(BaseModel):
    volume_id: str = ""
    staging_target_path: str = ""


class NodePublishRequest(BaseModel):
    volume_id: str = ""
    staging_target_path: str = ""
    target_path: str = ""
    readonly: bool = False
    volume_capability: Optional[VolumeCapabilityModel] = None


class NodeUnpublishRequest(BaseModel):
    volume_id: str = ""
    target_path: str = ""
