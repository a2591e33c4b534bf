# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Ingestion pipeline for tap updates.

An accepted update is applied three ways: merged into the live registry,
appended to the tap's chart file, and persisted as a raw update file. The
three side effects are independent; only the registry merge decides whether
the update succeeded.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from http import HTTPStatus
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from ...shared.errors import (
    AccountDisabledError,
    AuthenticationError,
    IngestError,
    IngestRequestError,
    StorageError,
    TapwatchError,
    TelemetryDecodeError,
)
from ..aggregate.registry import TapRegistry
from ..aggregate.sample import Sample, TelemetryBatch
from ..metrics.ingest_metrics import IngestMetrics
from ..storage.layout import DataLayout, is_usable_tap_name, sanitize_tap_name
from ..storage.reports import write_batch
from ..storage.tail_writer import trim_to_last_lines
from .auth import ApiUser, Authenticator

logger = logging.getLogger(__name__)

ANONYMOUS_USER = ApiUser(username="anonymous")


def clamp_ratio(value: float) -> float:
    """Clamp a fill ratio to [0, 1]."""
    return min(1.0, max(0.0, value))


def format_ratio(value: float) -> str:
    """Shortest round-trip text for a ratio, without a trailing ``.0``."""
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text


def chart_lines(samples: Iterable[Sample]) -> List[str]:
    """Chart rows ``<unix seconds>\\t<clamped ratio>`` for stable samples."""
    return [
        f"{int(sample.timestamp.timestamp())}\t{format_ratio(clamp_ratio(sample.published_fill_ratio))}\n"
        for sample in samples
    ]


@dataclass
class IngestResult:
    """Outcome of an accepted update."""

    tap_name: str
    username: str
    fine_samples: int
    stable_samples: int
    chart_path: Optional[Path] = None
    raw_path: Optional[Path] = None

    status = HTTPStatus.OK

    @property
    def message(self) -> str:
        return f"Tap status updated for {self.tap_name}, thank you {self.username}"


class IngestionPipeline:
    """
    Validates, authenticates and applies tap updates.

    Safe to call from many threads at once; per-tap serialization happens in
    the registry's reports.
    """

    def __init__(
        self,
        registry: TapRegistry,
        layout: DataLayout,
        retention: timedelta,
        chart_max_lines: int = 10000,
        authenticator: Optional[Authenticator] = None,
        metrics: Optional[IngestMetrics] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize ingestion pipeline.

        Args:
            registry: Live per-tap reports
            layout: Data directory layout
            retention: Maximum age kept in the registry
            chart_max_lines: Cap on chart file length
            authenticator: Maps an API key to its account; None disables auth
            metrics: Shared ingestion counters
            clock: Returns the current UTC time
        """
        self.registry = registry
        self.layout = layout
        self.retention = retention
        self.chart_max_lines = chart_max_lines
        self.authenticator = authenticator
        self.metrics = metrics or IngestMetrics()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def authenticate(self, api_key: Optional[str]) -> ApiUser:
        """
        Resolve the account behind an API key.

        Raises:
            AuthenticationError: Unknown or missing key
            AccountDisabledError: Key belongs to a disabled account
        """
        if self.authenticator is None:
            return ANONYMOUS_USER

        user = self.authenticator(api_key or "")
        if user is None:
            self.metrics.increment("bad_logins")
            raise AuthenticationError("Couldn't find a valid API key for your request")
        if not user.valid:
            self.metrics.increment("bad_logins")
            raise AccountDisabledError(f"Account {user.username} is disabled")

        self.metrics.increment("api_logins")
        return user

    def decode(self, body: Union[bytes, str]) -> TelemetryBatch:
        """
        Decode a request body into a batch with a sanitized tap name.

        Raises:
            TelemetryDecodeError: Malformed JSON or fields
            IngestRequestError: Tap name unusable after sanitizing
        """
        try:
            batch = TelemetryBatch.from_json(body)
        except TelemetryDecodeError:
            self.metrics.increment("bad_json")
            raise

        tap_name = sanitize_tap_name(batch.tap_name)
        if not is_usable_tap_name(tap_name):
            self.metrics.increment("bad_json")
            raise IngestRequestError(f"Invalid tap name {batch.tap_name!r}")
        batch.tap_name = tap_name
        return batch

    def handle(self, body: Union[bytes, str, None], api_key: Optional[str]) -> IngestResult:
        """
        Apply one update request.

        Args:
            body: JSON batch as sent by the tap
            api_key: Credential presented with the request

        Returns:
            IngestResult describing what was stored

        Raises:
            IngestRequestError: Empty body or unusable tap name (400)
            AuthenticationError: Unknown key (401)
            AccountDisabledError: Disabled account (403)
            TelemetryDecodeError: Malformed batch (400)
            IngestError: The registry merge failed (500)
        """
        if not body:
            raise IngestRequestError("Empty request body")

        user = self.authenticate(api_key)
        batch = self.decode(body)
        now = self._clock()

        registry_error = self._apply_to_registry(batch, now)
        chart_path = self._append_chart(batch)
        raw_path = self._persist_raw(batch, now)

        if registry_error is not None:
            raise IngestError(f"Failed to update {batch.tap_name}: {registry_error}") from registry_error

        self.metrics.increment("updates")
        self.metrics.record_samples(clamp_ratio(s.published_fill_ratio) for s in batch.stable_samples)
        logger.debug(
            f"Ingested {len(batch.fine_samples)} fine / {len(batch.stable_samples)} stable samples "
            f"for {batch.tap_name} from {user.username}"
        )
        return IngestResult(
            tap_name=batch.tap_name,
            username=user.username,
            fine_samples=len(batch.fine_samples),
            stable_samples=len(batch.stable_samples),
            chart_path=chart_path,
            raw_path=raw_path,
        )

    def _apply_to_registry(self, batch: TelemetryBatch, now: datetime) -> Optional[TapwatchError]:
        try:
            self.registry.append(batch)
            self.registry.keep_since(batch.tap_name, self.retention, now=now)
        except TapwatchError as e:
            self.metrics.increment("errors")
            logger.error(f"Registry update failed for {batch.tap_name}: {e}")
            return e
        return None

    def _append_chart(self, batch: TelemetryBatch) -> Optional[Path]:
        if not batch.stable_samples:
            return None

        path = self.layout.chart_path(batch.tap_name)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "a") as f:
                f.writelines(chart_lines(batch.stable_samples))
            trim_to_last_lines(path, self.chart_max_lines)
        except (OSError, StorageError) as e:
            self.metrics.increment("errors")
            logger.error(f"Chart update failed for {batch.tap_name}: {e}")
            return None
        return path

    def _persist_raw(self, batch: TelemetryBatch, now: datetime) -> Optional[Path]:
        path = self.layout.raw_update_path(batch.tap_name, now)
        if path.exists():
            logger.warning(f"Overwriting raw update {path}: more than one update this second")
        try:
            write_batch(path, batch, comment=f"raw update for {batch.tap_name}")
        except StorageError as e:
            self.metrics.increment("errors")
            logger.error(f"Couldn't persist raw update for {batch.tap_name}: {e}")
            return None
        return path
