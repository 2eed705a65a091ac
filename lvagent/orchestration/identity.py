"""Identity operations: plugin name, version and readiness."""
from typing import Any, Dict, List, Optional

from .. import __version__
from ..backend import BackendRegistry

DEFAULT_DRIVER_NAME = "local-volume.csi.k8s.io"
PLUGIN_CAPABILITIES = ["CONTROLLER_SERVICE"]


class IdentityServer:
    def __init__(self, driver_name: str = DEFAULT_DRIVER_NAME, registry: Optional[BackendRegistry] = None):
        self.driver_name = driver_name or DEFAULT_DRIVER_NAME
        self.registry = registry

    def get_plugin_info(self) -> Dict[str, Any]:
        return {"name": self.driver_name, "vendor_version": __version__}

    def get_plugin_capabilities(self) -> List[str]:
        return list(PLUGIN_CAPABILITIES)

    def probe(self) -> Dict[str, Any]:
        # Ready once a registry with a default backend exists
        return {"ready": self.registry is not None and len(self.registry) > 0}
