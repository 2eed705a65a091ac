#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
CLI commands module for the Local Volume Agent.
Runs controller and node operations in-process from JSON request files and
prints the result as JSON.
"""
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..config import AgentContext, ConfigManager
from ..errors import AgentError, FatalConfigurationError
from ..models import (
    DEVICE_PATH_KEY,
    CreateVolumeRequest,
    GetCapacityRequest,
    NodePublishRequest,
    NodeStageRequest,
    NodeUnpublishRequest,
    NodeUnstageRequest,
)
from ..utils.validation import fail, read_json, succeed

logger = logging.getLogger("lv-agent")

M = TypeVar("M", bound=BaseModel)


def _load(model: Type[M], request_file: Optional[Path]) -> M:
    data: Dict[str, Any] = read_json(request_file) if request_file else {}
    try:
        return model(**data)
    except ValidationError as e:
        fail(f"Invalid request in '{request_file}': {e}")


class CLICommands:
    """CLI commands handler."""

    def __init__(self, ctx: Optional[AgentContext] = None):
        if ctx is None:
            config_manager = ConfigManager()
            try:
                ctx = config_manager.build_context(config_manager.load_agent_config())
            except (FatalConfigurationError, RuntimeError) as e:
                fail(f"Configuration error: {e}")
        self.ctx = ctx

    def create_volume(self, request_file: Optional[Path]):
        req = _load(CreateVolumeRequest, request_file)
        required = req.capacity_range.required_bytes if req.capacity_range else 0
        try:
            created = self.ctx.controller.create_volume(required, req.parameters)
        except AgentError as e:
            fail(f"CreateVolume failed ({e.code}): {e}")
        succeed({"volume": created.to_dict()})

    def delete_volume(self, volume_id: str):
        try:
            self.ctx.controller.delete_volume(volume_id)
        except AgentError as e:
            fail(f"DeleteVolume failed ({e.code}): {e}")
        succeed({"status": "success", "volume_id": volume_id})

    def get_capacity(self, request_file: Optional[Path]):
        req = _load(GetCapacityRequest, request_file)
        try:
            available = self.ctx.controller.get_capacity(req.parameters)
        except AgentError as e:
            fail(f"GetCapacity failed ({e.code}): {e}")
        succeed({"available_capacity": available})

    def list_volumes(self):
        try:
            entries = self.ctx.controller.list_volumes()
        except AgentError as e:
            fail(f"ListVolumes failed ({e.code}): {e}")
        succeed({"entries": [{"volume": entry} for entry in entries]})

    def stage_volume(self, request_file: Path):
        req = _load(NodeStageRequest, request_file)
        capability = req.volume_capability.to_capability() if req.volume_capability else None
        try:
            self.ctx.node.stage_volume(
                req.volume_id,
                req.volume_attributes.get(DEVICE_PATH_KEY, ""),
                req.staging_target_path,
                capability,
            )
        except AgentError as e:
            fail(f"NodeStageVolume failed ({e.code}): {e}")
        succeed({"status": "success", "message": "volume staged"})

    def unstage_volume(self, request_file: Path):
        req = _load(NodeUnstageRequest, request_file)
        try:
            self.ctx.node.unstage_volume(req.volume_id, req.staging_target_path)
        except AgentError as e:
            fail(f"NodeUnstageVolume failed ({e.code}): {e}")
        succeed({"status": "success", "message": "volume unstaged"})

    def publish_volume(self, request_file: Path):
        req = _load(NodePublishRequest, request_file)
        capability = req.volume_capability.to_capability() if req.volume_capability else None
        try:
            self.ctx.node.publish_volume(
                req.volume_id,
                req.staging_target_path,
                req.target_path,
                req.readonly,
                capability,
            )
        except AgentError as e:
            fail(f"NodePublishVolume failed ({e.code}): {e}")
        succeed({"status": "success", "message": "volume published"})

    def unpublish_volume(self, request_file: Path):
        req = _load(NodeUnpublishRequest, request_file)
        try:
            self.ctx.node.unpublish_volume(req.volume_id, req.target_path)
        except AgentError as e:
            fail(f"NodeUnpublishVolume failed ({e.code}): {e}")
        succeed({"status": "success", "message": "volume unpublished"})
