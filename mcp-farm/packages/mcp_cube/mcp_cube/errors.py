# mcp-farm/packages/mcp_cube/mcp_cube/errors.py
from __future__ import annotations
from typing import Optional


class CubeValidatorError(Exception):
    pass


class ConfigurationError(CubeValidatorError):
    """Shape graph or profile document could not be fetched or parsed.

    Means the validation target is misconfigured, not that the cube is
    non-conformant. `status` is the upstream HTTP status when there was one.
    """

    def __init__(self, message: str, url: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status = status


class TransportError(CubeValidatorError):
    def __init__(self, message: str, url: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status = status


class RdfParseError(TransportError):
    pass


class ValidationCancelled(CubeValidatorError):
    pass
