#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""API routes module for the Local Volume Agent."""
from fastapi import FastAPI

from ..config import AgentContext
from ..models import (
    CreateVolumeRequest,
    GetCapacityRequest,
    NodePublishRequest,
    NodeStageRequest,
    NodeUnpublishRequest,
    NodeUnstageRequest,
)
from .handlers import APIHandlers


def register_routes(app: FastAPI, ctx: AgentContext) -> None:
    """Register all API routes with the FastAPI application."""
    handlers = APIHandlers(ctx)

    # Health and info endpoints
    @app.get("/healthz")
    def healthz():
        return handlers.healthz()

    @app.get("/v1")
    def v1_index():
        return handlers.v1_index()

    @app.get("/v1/version")
    def v1_version():
        return handlers.v1_version()

    # Identity endpoints
    @app.get("/v1/identity/plugin-info")
    def plugin_info():
        return handlers.plugin_info()

    @app.get("/v1/identity/capabilities")
    def plugin_capabilities():
        return handlers.plugin_capabilities()

    @app.get("/v1/identity/probe")
    def probe():
        return handlers.probe()

    # Controller endpoints
    @app.post("/v1/controller/volumes", status_code=201)
    def create_volume(req: CreateVolumeRequest):
        return handlers.create_volume(req)

    @app.get("/v1/controller/volumes")
    def list_volumes():
        return handlers.list_volumes()

    # Handles contain a '/', hence the path converter
    @app.delete("/v1/controller/volumes/{volume_id:path}")
    def delete_volume(volume_id: str):
        return handlers.delete_volume(volume_id)

    @app.post("/v1/controller/capacity")
    def get_capacity(req: GetCapacityRequest):
        return handlers.get_capacity(req)

    @app.get("/v1/controller/capabilities")
    def controller_capabilities():
        return handlers.controller_capabilities()

    # Node endpoints
    @app.post("/v1/node/stage")
    def stage_volume(req: NodeStageRequest):
        return handlers.stage_volume(req)

    @app.post("/v1/node/unstage")
    def unstage_volume(req: NodeUnstageRequest):
        return handlers.unstage_volume(req)

    @app.post("/v1/node/publish")
    def publish_volume(req: NodePublishRequest):
        return handlers.publish_volume(req)

    @app.post("/v1/node/unpublish")
    def unpublish_volume(req: NodeUnpublishRequest):
        return handlers.unpublish_volume(req)

    @app.get("/v1/node/info")
    def node_info():
        return handlers.node_info()

    @app.get("/v1/node/capabilities")
    def node_capabilities():
        return handlers.node_capabilities()
