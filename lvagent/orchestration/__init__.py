# Orchestration module for controller, node and identity operations
from .controller import ControllerServer
from .identity import IdentityServer
from .node import NodeServer

__all__ = ["ControllerServer", "IdentityServer", "NodeServer"]
