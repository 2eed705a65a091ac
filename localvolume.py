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
#   http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing,
# software distributed under the License is distributed on an
# "AS IS" BASIS, WITHOUT WARRANTIES OR CONDITIONS OF ANY
# KIND, either express or implied.  See the License for the
# specific language governing permissions and limitations
# under the License.

"""
Local Volume client (HTTP/REST)

Drives a remote Local Volume Agent:

    localvolume.py <operation> <file.json> [timeout]

Operations: create, delete, capacity, list, stage, unstage, publish, unpublish

Input file layout:

    {
      "agent": {"url": "https://10.0.0.5", "port": 8080, "token": "...",
                "username": "...", "password": "...",
                "ca_bundle": "/etc/ssl/lv-ca.pem", "skip_ssl_verification": false},
      "request": {...}
    }

`request` is sent as the operation body. For `delete` it must carry the
`volume_id` handle returned by `create`; the `device-path` attribute of a
created volume goes into the `volume_attributes` of the `stage` request.
"""

import json
import os
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple
from urllib.parse import quote, urlparse

import requests
from requests.auth import HTTPBasicAuth

DEFAULT_PORT = 8080
DEFAULT_TIMEOUT = 30
TRUE_STRINGS = {"1", "true", "yes", "on"}


def _ok(payload: Dict[str, Any]) -> None:
    """Print a JSON object and exit 0."""
    print(json.dumps(payload, ensure_ascii=False))
    sys.exit(0)


def _fail(message: str, code: int = 1) -> None:
    """Print an error JSON object and exit non-zero."""
    print(json.dumps({"error": message}, ensure_ascii=False))
    sys.exit(code)


class ClientError(Exception):
    """Request could not be built or the agent answered with an error."""


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    return bool(value)


def agent_base_url(url: str, port: Any = None) -> str:
    """`<scheme>://<host>:<port>/v1`; a port already present in url wins."""
    url = url.rstrip("/")
    if "://" not in url:
        url = f"http://{url}"
    if urlparse(url).port is None:
        try:
            url = f"{url}:{int(port or DEFAULT_PORT)}"
        except (TypeError, ValueError) as e:
            raise ClientError(f"Invalid agent.port value: {port}") from e
    return f"{url}/v1"


class LocalVolumeClient:
    """Thin wrapper over the agent's /v1 routes."""

    def __init__(
        self,
        base_url: str,
        timeout: int = DEFAULT_TIMEOUT,
        token: Optional[str] = None,
        auth: Optional[HTTPBasicAuth] = None,
        verify: Any = True,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers["Accept"] = "application/json"
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"
        self.session.auth = auth
        self.session.verify = verify

    @classmethod
    def from_agent_section(cls, agent: Dict[str, Any], timeout: int = DEFAULT_TIMEOUT) -> "LocalVolumeClient":
        url = _text(agent.get("url"))
        if not url:
            raise ClientError("Agent host not provided (agent.url)")

        username, password = _text(agent.get("username")), _text(agent.get("password"))
        if bool(username) != bool(password):
            raise ClientError("agent.username and agent.password must be given together")

        verify: Any = True
        ca_bundle = _text(agent.get("ca_bundle"))
        if _flag(agent.get("skip_ssl_verification")):
            verify = False
        elif ca_bundle:
            ca_path = Path(ca_bundle).expanduser()
            if not ca_path.exists():
                raise ClientError(f"CA bundle not found: {ca_path}")
            verify = str(ca_path)

        return cls(
            agent_base_url(url, agent.get("port")),
            timeout=timeout,
            token=_text(agent.get("token")),
            auth=HTTPBasicAuth(username, password) if username else None,
            verify=verify,
        )

    def _call(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            resp = self.session.request(method, f"{self.base_url}{path}", json=body, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise ClientError(f"HTTP error contacting agent: {e}") from e
        try:
            data = resp.json()
        except ValueError:
            data = {"raw": resp.text[:500]}
        if resp.status_code >= 400:
            detail = data.get("error") if isinstance(data, dict) else data
            raise ClientError(f"Agent error ({resp.status_code}): {detail}")
        if not isinstance(data, dict):
            raise ClientError("Agent returned an unexpected payload")
        return data

    def create(self, request: Dict[str, Any]) -> Dict[str, Any]:
        return self._call("POST", "/controller/volumes", request)

    def delete(self, request: Dict[str, Any]) -> Dict[str, Any]:
        volume_id = _text(request.get("volume_id"))
        if not volume_id:
            raise ClientError("request.volume_id is required for delete")
        # quote() keeps the '/' of the handle; the agent routes on the full path
        return self._call("DELETE", f"/controller/volumes/{quote(volume_id)}")

    def capacity(self, request: Dict[str, Any]) -> Dict[str, Any]:
        return self._call("POST", "/controller/capacity", request)

    def list(self, request: Dict[str, Any]) -> Dict[str, Any]:
        return self._call("GET", "/controller/volumes")

    def stage(self, request: Dict[str, Any]) -> Dict[str, Any]:
        return self._call("POST", "/node/stage", request)

    def unstage(self, request: Dict[str, Any]) -> Dict[str, Any]:
        return self._call("POST", "/node/unstage", request)

    def publish(self, request: Dict[str, Any]) -> Dict[str, Any]:
        return self._call("POST", "/node/publish", request)

    def unpublish(self, request: Dict[str, Any]) -> Dict[str, Any]:
        return self._call("POST", "/node/unpublish", request)


OPERATIONS = ("create", "delete", "capacity", "list", "stage", "unstage", "publish", "unpublish")


def load_input(path: str, timeout: int = DEFAULT_TIMEOUT) -> Tuple[LocalVolumeClient, Dict[str, Any]]:
    """Read the input file and return (client, request body)."""
    try:
        data = json.loads(Path(path).read_text())
    except FileNotFoundError as e:
        raise ClientError(f"JSON file not found: {path}") from e
    except ValueError as e:
        raise ClientError(f"Invalid JSON in file: {e}") from e
    if not isinstance(data, dict):
        raise ClientError("Input JSON must be an object")
    request = data.get("request") or {}
    if not isinstance(request, dict):
        raise ClientError("request must be a JSON object")
    return LocalVolumeClient.from_agent_section(data.get("agent") or {}, timeout), request


def main() -> None:
    """Parse argv, call the agent and print its JSON answer."""
    if len(sys.argv) < 3:
        _fail("Usage: localvolume.py <operation> <file.json> [timeout]")
    operation = sys.argv[1].lower()
    if operation not in OPERATIONS:
        _fail("Invalid action")
    raw_timeout = sys.argv[3] if len(sys.argv) > 3 else os.getenv("LV_AGENT_TIMEOUT", str(DEFAULT_TIMEOUT))
    try:
        timeout = int(raw_timeout)
    except ValueError:
        _fail(f"Invalid timeout: {raw_timeout}")

    try:
        client, request = load_input(sys.argv[2], timeout)
        handler: Callable[[Dict[str, Any]], Dict[str, Any]] = getattr(client, operation)
        result = handler(request)
    except ClientError as e:
        _fail(str(e))
    _ok(result)


if __name__ == "__main__":
    main()
