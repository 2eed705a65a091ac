#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
API handlers module for the Local Volume Agent.
Translates request bodies into controller/node calls and agent errors into
HTTP errors.
"""
import logging
from typing import Any, Callable, Dict, NoReturn, TypeVar

import psutil
from fastapi import HTTPException

from .. import __version__
from ..config import AgentContext
from ..errors import AgentError
from ..models import (
    DEVICE_PATH_KEY,
    CreateVolumeRequest,
    GetCapacityRequest,
    NodePublishRequest,
    NodeStageRequest,
    NodeUnpublishRequest,
    NodeUnstageRequest,
)

logger = logging.getLogger("lv-agent")

T = TypeVar("T")


def _raise_http(op: str, e: AgentError) -> NoReturn:
    if e.http_status >= 500:
        logger.error("%s failed: %s", op, e)
    else:
        logger.info("%s rejected (%s): %s", op, e.code, e)
    raise HTTPException(status_code=e.http_status, detail=str(e))


def _call(op: str, fn: Callable[[], T]) -> T:
    try:
        return fn()
    except AgentError as e:
        _raise_http(op, e)


class APIHandlers:

    def __init__(self, ctx: AgentContext):
        self.ctx = ctx

    # Identity
    def plugin_info(self) -> Dict[str, Any]:
        return self.ctx.identity.get_plugin_info()

    def plugin_capabilities(self) -> Dict[str, Any]:
        return {"capabilities": self.ctx.identity.get_plugin_capabilities()}

    def probe(self) -> Dict[str, Any]:
        return self.ctx.identity.probe()

    # Controller
    def create_volume(self, req: CreateVolumeRequest) -> Dict[str, Any]:
        required = req.capacity_range.required_bytes if req.capacity_range else 0
        created = _call("CreateVolume", lambda: self.ctx.controller.create_volume(required, req.parameters))
        return {"volume": created.to_dict()}

    def delete_volume(self, volume_id: str) -> Dict[str, Any]:
        _call("DeleteVolume", lambda: self.ctx.controller.delete_volume(volume_id))
        return {}

    def get_capacity(self, req: GetCapacityRequest) -> Dict[str, Any]:
        available = _call("GetCapacity", lambda: self.ctx.controller.get_capacity(req.parameters))
        return {"available_capacity": available}

    def list_volumes(self) -> Dict[str, Any]:
        entries = _call("ListVolumes", self.ctx.controller.list_volumes)
        return {"entries": [{"volume": entry} for entry in entries]}

    def controller_capabilities(self) -> Dict[str, Any]:
        return {"capabilities": self.ctx.controller.get_capabilities()}

    # Node
    def stage_volume(self, req: NodeStageRequest) -> Dict[str, Any]:
        capability = req.volume_capability.to_capability() if req.volume_capability else None
        _call(
            "NodeStageVolume",
            lambda: self.ctx.node.stage_volume(
                req.volume_id,
                req.volume_attributes.get(DEVICE_PATH_KEY, ""),
                req.staging_target_path,
                capability,
            ),
        )
        return {}

    def unstage_volume(self, req: NodeUnstageRequest) -> Dict[str, Any]:
        _call("NodeUnstageVolume", lambda: self.ctx.node.unstage_volume(req.volume_id, req.staging_target_path))
        return {}

    def publish_volume(self, req: NodePublishRequest) -> Dict[str, Any]:
        capability = req.volume_capability.to_capability() if req.volume_capability else None
        _call(
            "NodePublishVolume",
            lambda: self.ctx.node.publish_volume(
                req.volume_id,
                req.staging_target_path,
                req.target_path,
                req.readonly,
                capability,
            ),
        )
        return {}

    def unpublish_volume(self, req: NodeUnpublishRequest) -> Dict[str, Any]:
        _call("NodeUnpublishVolume", lambda: self.ctx.node.unpublish_volume(req.volume_id, req.target_path))
        return {}

    def node_info(self) -> Dict[str, Any]:
        return self.ctx.node.get_info()

    def node_capabilities(self) -> Dict[str, Any]:
        return {"capabilities": self.ctx.node.get_capabilities()}

    # Health and info
    def healthz(self) -> Dict[str, Any]:
        """Health check endpoint."""
        return {"status": "healthy", "message": "Local Volume Agent is running"}

    def v1_index(self) -> Dict[str, Any]:
        """API index endpoint."""
        return {
            "status": "success",
            "message": "Local Volume Agent API",
            "version": __version__,
            "backends": self.ctx.registry.names(),
            "endpoints": [
                "/v1/identity/plugin-info",
                "/v1/identity/probe",
                "/v1/controller/volumes",
                "/v1/controller/volumes/{volume_id}",
                "/v1/controller/capacity",
                "/v1/node/stage",
                "/v1/node/unstage",
                "/v1/node/publish",
                "/v1/node/unpublish",
                "/v1/node/info",
            ],
        }

    def v1_version(self) -> Dict[str, Any]:
        """Version endpoint."""
        return {"version": __version__, "name": self.ctx.identity.driver_name, "host": _collect_host_info()}


def _collect_host_info() -> Dict[str, Any]:
    try:
        boot_time = psutil.boot_time()
    except OSError:
        boot_time = None
    return {"boot_time": boot_time, "logical_cores": psutil.cpu_count(logical=True)}
