"""Shared test fixtures for lv-agent tests."""

import os
from typing import List, Optional, Sequence, Set, Tuple

import pytest

from lvagent.backend import BackendRegistry, FakeBackend
from lvagent.config import AgentContext
from lvagent.orchestration import ControllerServer, IdentityServer, NodeServer
from lvagent.utils.mount import Mounter

GIB = 1024 * 1024 * 1024
FAKE_CAPACITY = 100 * GIB
NODE_ID = "node-1"


class RecordingMounter(Mounter):
    """Mounter that records calls instead of touching the host.

    Paths listed in `mounted` are treated as mount points; every other
    existing path is treated as a plain directory.
    """

    def __init__(self) -> None:
        self.mounted: Set[str] = set()
        self.calls: List[Tuple[str, ...]] = []
        self.fail_with: Optional[Exception] = None

    def is_likely_not_mount_point(self, path: str) -> bool:
        if not os.path.exists(path):
            raise FileNotFoundError(path)
        return path not in self.mounted

    def mount_points(self) -> Set[str]:
        return set(self.mounted)

    def is_not_mount_point(self, path: str) -> bool:
        return self.is_likely_not_mount_point(path)

    def mount(self, source: str, target: str, fstype: str = "", options: Optional[Sequence[str]] = None) -> None:
        if self.fail_with:
            raise self.fail_with
        self.calls.append(("mount", source, target, fstype, ",".join(options or [])))
        self.mounted.add(target)

    def format_and_mount(self, source: str, target: str, fstype: str = "", options: Optional[Sequence[str]] = None) -> None:
        if self.fail_with:
            raise self.fail_with
        self.calls.append(("format_and_mount", source, target, fstype, ",".join(options or [])))
        self.mounted.add(target)

    def unmount(self, target: str) -> None:
        self.calls.append(("unmount", target))
        self.mounted.discard(target)


@pytest.fixture
def fake_registry() -> BackendRegistry:
    return BackendRegistry({"default": FakeBackend(FAKE_CAPACITY)})


@pytest.fixture
def controller(fake_registry: BackendRegistry) -> ControllerServer:
    return ControllerServer(fake_registry, node_id=NODE_ID)


@pytest.fixture
def mounter() -> RecordingMounter:
    return RecordingMounter()


@pytest.fixture
def node(mounter: RecordingMounter) -> NodeServer:
    return NodeServer(node_id=NODE_ID, mounter=mounter)


@pytest.fixture
def agent_ctx(fake_registry: BackendRegistry, controller: ControllerServer, node: NodeServer) -> AgentContext:
    return AgentContext(
        registry=fake_registry,
        controller=controller,
        node=node,
        identity=IdentityServer(registry=fake_registry),
    )
