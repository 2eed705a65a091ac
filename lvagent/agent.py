#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Licensed to the Apache Software Foundation (ASF) under one
# or more contributor license agreements.  See the NOTICE file
# distributed with this work for additional information
# regarding copyright ownership.  The ASF licenses this file
# to you under the Apache License, Version 2.0 (the
# "License"); you may not use this file except in compliance
# with the License.  You may obtain a copy of the License at
#
#   http://www.apache.org/licenses/LICENSE/2.0
#
# Unless required by applicable law or agreed to in writing,
# software distributed under the License is distributed on an
# "AS IS" BASIS, WITHOUT WARRANTIES OR CONDITIONS OF ANY
# KIND, either express or implied.  See the License for the
# specific language governing permissions and limitations
# under the License.
from __future__ import annotations

import logging
import os
import ssl
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import typer
import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from . import __version__
from .api import register_routes
from .cli import CLICommands
from .config import AgentContext, ConfigManager
from .errors import FatalConfigurationError

logger = logging.getLogger("lv-agent")
logger.setLevel(logging.INFO)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# security.tls.client_auth -> ssl verify mode
CLIENT_AUTH_MODES = {
    "none": ssl.CERT_NONE,
    "optional": ssl.CERT_OPTIONAL,
    "required": ssl.CERT_REQUIRED,
}


def setup_logging(cfg: Dict[str, Any]) -> None:
    """Set the agent log level from the `logging` section and attach a console handler once."""
    level_name = str((cfg.get("logging") or {}).get("level", "INFO")).upper()
    level = logging.getLevelName(level_name)
    logger.setLevel(level if isinstance(level, int) else logging.INFO)
    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)


def tls_options(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """
    uvicorn keyword arguments for the `security.tls` section.
    Returns an empty dict when TLS is not configured or disabled.
    Raises:
        RuntimeError: missing certificate/key, unreadable files or a bad client_auth value
    """
    tls = (cfg.get("security") or {}).get("tls")
    if not isinstance(tls, dict) or not tls.get("enabled", True):
        logger.info("Serving plain HTTP")
        return {}
    files = {name: tls.get(name) for name in ("cert_file", "key_file", "ca_file")}
    if not files["cert_file"] or not files["key_file"]:
        raise RuntimeError("security.tls requires cert_file and key_file")
    missing = [f"{name}={path}" for name, path in files.items() if path and not Path(path).exists()]
    if missing:
        raise RuntimeError(f"TLS files not found: {', '.join(missing)}")
    client_auth = str(tls.get("client_auth", "none")).strip().lower()
    if client_auth not in CLIENT_AUTH_MODES:
        raise RuntimeError(f"security.tls.client_auth must be one of {sorted(CLIENT_AUTH_MODES)}, got '{client_auth}'")
    options: Dict[str, Any] = {
        "ssl_certfile": files["cert_file"],
        "ssl_keyfile": files["key_file"],
        "ssl_cert_reqs": CLIENT_AUTH_MODES[client_auth],
    }
    if files["ca_file"]:
        options["ssl_ca_certs"] = files["ca_file"]
    logger.info("Serving HTTPS (client certificates: %s)", client_auth)
    return options


def create_app(ctx: AgentContext) -> FastAPI:
    """Build the FastAPI application serving the identity, controller and node routes."""
    app = FastAPI(title="Local Volume Agent", version=__version__)

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        """Log incoming requests immediately upon receipt."""
        logger.info("%s %s", request.method, request.url.path)
        return await call_next(request)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors."""
        logger.error("Validation error: %s", exc)
        return JSONResponse(status_code=422, content={"error": "Validation error", "detail": exc.errors()})

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions."""
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions."""
        logger.exception("Unhandled exception: %s", exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.get("/", include_in_schema=False)
    def root():
        return {"status": "ok", "message": "Local Volume Agent is running", "version": __version__}

    register_routes(app, ctx)
    return app


def load_context(config_manager: Optional[ConfigManager] = None) -> tuple[Dict[str, Any], AgentContext]:
    """Load configuration, apply logging and build the agent context."""
    config_manager = config_manager or ConfigManager()
    cfg = config_manager.load_agent_config()
    setup_logging(cfg)
    try:
        ctx = config_manager.build_context(cfg)
    except FatalConfigurationError as e:
        logger.critical("Fatal configuration error: %s", e)
        raise
    return cfg, ctx


# CLI interface
cli = typer.Typer(help="Local Volume Agent")


@cli.command()
def serve():
    """Serve the HTTP API."""
    try:
        cfg, ctx = load_context()
        tls = tls_options(cfg)
    except (FatalConfigurationError, RuntimeError) as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=1)
    logger.info("Starting Local Volume Agent on %s:%s", cfg["bind_host"], cfg["bind_port"])
    uvicorn.run(create_app(ctx), host=cfg["bind_host"], port=cfg["bind_port"], reload=False, **tls)


@cli.command("create-volume")
def create_volume(request_file: Optional[Path] = typer.Argument(None)):
    """Create a volume (CreateVolume)."""
    CLICommands().create_volume(request_file)


@cli.command("delete-volume")
def delete_volume(volume_id: str):
    """Delete a volume by handle (DeleteVolume)."""
    CLICommands().delete_volume(volume_id)


@cli.command("capacity")
def capacity(request_file: Optional[Path] = typer.Argument(None)):
    """Report backend capacity (GetCapacity)."""
    CLICommands().get_capacity(request_file)


@cli.command("list-volumes")
def list_volumes():
    """List volumes of every pool (ListVolumes)."""
    CLICommands().list_volumes()


@cli.command("stage")
def stage(request_file: Path):
    """Stage a volume on this node (NodeStageVolume)."""
    CLICommands().stage_volume(request_file)


@cli.command("unstage")
def unstage(request_file: Path):
    """Unstage a volume on this node (NodeUnstageVolume)."""
    CLICommands().unstage_volume(request_file)


@cli.command("publish")
def publish(request_file: Path):
    """Publish a staged volume (NodePublishVolume)."""
    CLICommands().publish_volume(request_file)


@cli.command("unpublish")
def unpublish(request_file: Path):
    """Unpublish a volume (NodeUnpublishVolume)."""
    CLICommands().unpublish_volume(request_file)


def main():
    """Main entry point."""
    # Serve the API by default; set LV_AGENT_MODE=cli to use the local CLI instead
    mode = os.environ.get("LV_AGENT_MODE", "api").lower()
    if mode == "cli" or len(sys.argv) > 1:
        cli()
    else:
        serve()


if __name__ == "__main__":
    main()
