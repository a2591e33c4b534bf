# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tapwatch exception hierarchy.

Each subsystem raises a specific error type. Ingestion errors carry the
HTTP status the transport layer should answer with.
"""

from http import HTTPStatus


class TapwatchError(Exception):
    """Base exception for all Tapwatch failures."""


class ConfigError(TapwatchError):
    """Raised for invalid runtime configuration."""


class StorageError(TapwatchError):
    """Raised when reading or writing persisted state fails."""


class TailWriteError(StorageError):
    """Raised when a file could not be trimmed to its last lines."""


class TelemetryDecodeError(TapwatchError):
    """Raised for malformed telemetry JSON or corrupt compressed files."""

    status = HTTPStatus.BAD_REQUEST


class ReportInvariantError(TapwatchError):
    """Raised when an aggregate report is used in a way that breaks its locking rules."""


class ReportRetiredError(ReportInvariantError):
    """Raised when appending to a report that was removed from the registry."""


class IngestRequestError(TapwatchError):
    """Raised when an update request is rejected before reaching the registry."""

    status = HTTPStatus.BAD_REQUEST


class AuthenticationError(IngestRequestError):
    """Raised when no valid API key accompanies an update."""

    status = HTTPStatus.UNAUTHORIZED


class AccountDisabledError(IngestRequestError):
    """Raised when the API key belongs to a disabled account."""

    status = HTTPStatus.FORBIDDEN


class IngestError(TapwatchError):
    """Raised when an accepted update could not be applied to the registry."""

    status = HTTPStatus.INTERNAL_SERVER_ERROR
