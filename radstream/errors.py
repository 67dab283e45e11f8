"""Error taxonomy shared by the YouTube helpers and the HTTP layer."""
from __future__ import annotations

from http import HTTPStatus
from typing import Optional


class RadstreamError(RuntimeError):
    """Base class for every error surfaced to API callers."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR


class Unauthorized(RadstreamError):
    """No usable OAuth credential is available."""

    status_code = HTTPStatus.UNAUTHORIZED


class AuthRequired(Unauthorized):
    """No credential is stored and authorization has not been completed."""


class UpstreamError(RadstreamError):
    """The YouTube API answered with a non-success status."""

    status_code = HTTPStatus.BAD_GATEWAY

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.upstream_status = status


class NotFound(RadstreamError):
    """A broadcast or stream required by the operation does not exist."""

    status_code = HTTPStatus.NOT_FOUND


class PreconditionFailed(RadstreamError):
    """The broadcast is not in a state that allows the operation."""

    status_code = HTTPStatus.CONFLICT


class ConfigError(RadstreamError):
    """Required configuration is missing; the process must not start."""
