#!/usr/bin/env python3
"""
Error taxonomy for the exr-build pipeline.

Every failure raised by library code derives from BuildError and carries the
dependency and step it belongs to, so the top-level driver can report a single
diagnostic line and exit non-zero.
"""

from typing import Optional


class BuildError(Exception):
    """Base class for all fatal pipeline failures."""

    def __init__(self, message: str, dependency: Optional[str] = None, step: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.dependency = dependency
        self.step = step

    def __str__(self) -> str:
        where = [part for part in (self.dependency, self.step) if part]
        if where:
            return f"[{' / '.join(where)}] {self.message}"
        return self.message


class NetworkError(BuildError):
    """Transport-level failure while fetching an archive."""


class HttpError(BuildError):
    """The final response of a fetch was not a success status."""

    def __init__(self, message: str, status_code: int, **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code


class ArchiveError(BuildError):
    """Corrupt, truncated or unsafe archive."""


class ConfigProbeError(BuildError):
    """Registry lookup failed or reported a version below the minimum."""


class BuildInvocationError(BuildError):
    """An external build tool (cmake, compiler, archiver) returned failure."""

    def __init__(self, message: str, exit_code: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.exit_code = exit_code
