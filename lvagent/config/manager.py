#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Configuration management module for the Local Volume Agent.
This module handles agent configuration loading and the startup wiring of the
backend registry and the controller/node/identity managers.
"""
import dataclasses
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..backend import BackendRegistry, build_registry
from ..backend.lvm import DEFAULT_ROOT_PATH
from ..orchestration import ControllerServer, IdentityServer, NodeServer
from ..orchestration.identity import DEFAULT_DRIVER_NAME
from ..utils.mount import Mounter

logger = logging.getLogger("lv-agent")

DEFAULT_CONFIG_PATH = "/etc/lv-agent/agent.json"


@dataclasses.dataclass
class AgentContext:
    """Everything the API and CLI need, built once at startup."""

    registry: BackendRegistry
    controller: ControllerServer
    node: NodeServer
    identity: IdentityServer


def _split_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    return []


class ConfigManager:
    """Manager for configuration operations."""

    def __init__(self, environ: Optional[Dict[str, str]] = None):
        self.environ = os.environ if environ is None else environ

    def load_agent_config(self) -> Dict[str, Any]:
        """Load agent config.
        Precedence: env > JSON file (LV_AGENT_CONFIG) > built-in defaults.
        - LV_AGENT_BACKEND overrides backend.kind
        - LV_AGENT_VOLUME_GROUPS (comma separated) overrides backend.volume_groups
        - NODE_NAME overrides node_id
        - LV_AGENT_BIND_HOST / LV_AGENT_BIND_PORT override bind_host / bind_port
        On any parse/syntax error the agent will NOT start.
        """
        cfg: Dict[str, Any] = {
            "bind_host": "0.0.0.0",
            "bind_port": 8080,
            "driver_name": DEFAULT_DRIVER_NAME,
            "node_id": None,
            "backend": {
                "kind": "lvm",
                "volume_groups": [],
                "root_path": DEFAULT_ROOT_PATH,
                "fake_capacity_bytes": 0,
            },
            "logging": {"level": "INFO"},
        }
        cfg_path = self.environ.get("LV_AGENT_CONFIG", DEFAULT_CONFIG_PATH)
        p = Path(cfg_path)
        if p.exists():
            with p.open("r", encoding="utf-8") as f:
                try:
                    file_cfg = json.load(f)
                except ValueError as e:
                    # Fail fast: do not start the server with an invalid config
                    raise RuntimeError(f"Invalid JSON in LV_AGENT_CONFIG='{cfg_path}': {e}") from e
            if not isinstance(file_cfg, dict):
                raise RuntimeError(f"LV_AGENT_CONFIG='{cfg_path}' must contain a JSON object")
            for key, value in file_cfg.items():
                if key == "backend" and isinstance(value, dict):
                    cfg["backend"].update(value)
                elif key == "logging" and isinstance(value, dict):
                    cfg["logging"].update(value)
                else:
                    cfg[key] = value

        env = self.environ
        if env.get("LV_AGENT_BACKEND"):
            cfg["backend"]["kind"] = env["LV_AGENT_BACKEND"]
        if env.get("LV_AGENT_VOLUME_GROUPS"):
            cfg["backend"]["volume_groups"] = env["LV_AGENT_VOLUME_GROUPS"]
        if env.get("NODE_NAME"):
            cfg["node_id"] = env["NODE_NAME"]
        if env.get("LV_AGENT_BIND_HOST"):
            cfg["bind_host"] = env["LV_AGENT_BIND_HOST"]
        if env.get("LV_AGENT_BIND_PORT"):
            cfg["bind_port"] = env["LV_AGENT_BIND_PORT"]

        cfg["backend"]["volume_groups"] = _split_list(cfg["backend"].get("volume_groups"))
        try:
            cfg["bind_port"] = int(cfg["bind_port"])
        except (TypeError, ValueError) as e:
            raise RuntimeError(f"Invalid bind_port '{cfg['bind_port']}'") from e
        try:
            cfg["backend"]["fake_capacity_bytes"] = int(cfg["backend"].get("fake_capacity_bytes") or 0)
        except (TypeError, ValueError) as e:
            raise RuntimeError(f"Invalid backend.fake_capacity_bytes: {e}") from e
        return cfg

    def build_context(self, cfg: Dict[str, Any], mounter: Optional[Mounter] = None) -> AgentContext:
        """Build the registry and managers; raises FatalConfigurationError on a bad backend section."""
        backend_cfg = cfg.get("backend", {})
        registry = build_registry(
            backend_cfg.get("kind", ""),
            backend_cfg.get("volume_groups", []),
            root_path=backend_cfg.get("root_path") or DEFAULT_ROOT_PATH,
            fake_capacity_bytes=backend_cfg.get("fake_capacity_bytes", 0),
        )
        node_id = cfg.get("node_id") or None
        if not node_id:
            logger.warning("NODE_NAME is not set; CreateVolume will be rejected")
        return AgentContext(
            registry=registry,
            controller=ControllerServer(registry, node_id=node_id),
            node=NodeServer(node_id=node_id, mounter=mounter),
            identity=IdentityServer(cfg.get("driver_name") or DEFAULT_DRIVER_NAME, registry),
        )
