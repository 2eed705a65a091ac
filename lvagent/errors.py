#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Error taxonomy for the Local Volume Agent.
Every error raised by the controller/node managers carries a code that the
API layer maps onto an HTTP status.
"""


class AgentError(Exception):
    """Base class for errors surfaced to callers."""

    code = "UNKNOWN"
    http_status = 500


class InvalidArgumentError(AgentError):
    """A required request field is missing or refers to something unknown."""

    code = "INVALID_ARGUMENT"
    http_status = 400


class NotFoundError(AgentError):
    """The referenced volume cannot be located."""

    code = "NOT_FOUND"
    http_status = 404


class InternalError(AgentError):
    """Backend, mount or filesystem failure."""

    code = "INTERNAL"
    http_status = 500


class BackendNotFound(InvalidArgumentError):
    """No backend is registered under the requested name."""

    def __init__(self, name: str):
        super().__init__(f"requested backend {name} not exist")
        self.name = name


class MalformedHandleError(NotFoundError):
    """A volume handle is not in the form '<backend>/<id>'."""

    def __init__(self, handle: str):
        super().__init__(f"input volume ID is not in format of 'backend/UUID' but {handle}")
        self.handle = handle


class VolumeNotFoundError(NotFoundError):
    """The backend does not know the local volume id."""


class FatalConfigurationError(RuntimeError):
    """Raised at startup; the agent must not serve with this configuration."""
