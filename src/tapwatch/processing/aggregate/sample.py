# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Telemetry value types and their JSON wire format.

Field names on the wire are the ones the tap firmware sends, e.g.
``FridgeName`` and ``PubFillRatio``.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Union

from ...shared.errors import TelemetryDecodeError
from ..storage.gzip_json import decode_json

# RFC 3339 allows any precision; datetime keeps exactly microseconds.
_FRACTION = re.compile(r"\.(\d+)")


def _microseconds(match: "re.Match[str]") -> str:
    return "." + match.group(1)[:6].ljust(6, "0")


def parse_timestamp(value: Any) -> datetime:
    """
    Parse an RFC 3339 timestamp into an aware UTC datetime.

    Args:
        value: Timestamp string such as ``2018-09-13T05:11:32Z``

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        TelemetryDecodeError: If the value is not a valid timestamp
    """
    if not isinstance(value, str) or not value.strip():
        raise TelemetryDecodeError(f"invalid timestamp: {value!r}")

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(_microseconds, text, count=1)

    try:
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        # Offsets can push the edges of the datetime range out of it.
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError) as e:
        raise TelemetryDecodeError(f"invalid timestamp: {value!r}") from e


def format_timestamp(value: datetime) -> str:
    """Format a datetime as RFC 3339 UTC with a ``Z`` suffix."""
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _number(data: Dict[str, Any], key: str) -> float:
    value = data.get(key, 0)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TelemetryDecodeError(f"{key} must be a number, got {value!r}")
    try:
        number = float(value)
    except OverflowError as e:
        raise TelemetryDecodeError(f"{key} is out of range") from e
    if not math.isfinite(number):
        raise TelemetryDecodeError(f"{key} must be finite, got {number!r}")
    return number


def _integer(data: Dict[str, Any], key: str) -> int:
    value = data.get(key, 0)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, bool) or not isinstance(value, int):
        raise TelemetryDecodeError(f"{key} must be an integer, got {value!r}")
    return value


@dataclass(frozen=True)
class Sample:
    """A single fill-level reading from a tap."""

    published_fill_ratio: float
    raw_fill_ratio: float
    raw_mass: int
    timestamp: datetime

    @classmethod
    def from_dict(cls, data: Any) -> "Sample":
        """Build a sample from its wire representation."""
        if not isinstance(data, dict):
            raise TelemetryDecodeError(f"sample must be an object, got {type(data).__name__}")
        if "Timestamp" not in data:
            raise TelemetryDecodeError("sample is missing Timestamp")
        return cls(
            published_fill_ratio=_number(data, "PubFillRatio"),
            raw_fill_ratio=_number(data, "RawFillRatio"),
            raw_mass=_integer(data, "RawMass"),
            timestamp=parse_timestamp(data["Timestamp"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire representation."""
        return {
            "PubFillRatio": self.published_fill_ratio,
            "RawFillRatio": self.raw_fill_ratio,
            "RawMass": self.raw_mass,
            "Timestamp": format_timestamp(self.timestamp),
        }


def _samples(data: Dict[str, Any], key: str) -> List[Sample]:
    values = data.get(key)
    if values is None:
        return []
    if not isinstance(values, list):
        raise TelemetryDecodeError(f"{key} must be a list")
    return [Sample.from_dict(item) for item in values]


@dataclass
class TelemetryBatch:
    """
    One decoded update from a tap, or a snapshot of an aggregate report.

    Both share the same wire schema, so raw update files and era bundles
    decode through the same path.
    """

    tap_name: str
    raw_mass_full: int = 0
    raw_mass_tare: int = 0
    fine_samples: List[Sample] = field(default_factory=list)
    stable_samples: List[Sample] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "TelemetryBatch":
        """
        Build a batch from decoded JSON.

        Raises:
            TelemetryDecodeError: If required structure or field types are wrong
        """
        if not isinstance(data, dict):
            raise TelemetryDecodeError(f"telemetry payload must be an object, got {type(data).__name__}")

        tap_name = data.get("FridgeName", "")
        if not isinstance(tap_name, str):
            raise TelemetryDecodeError("FridgeName must be a string")

        return cls(
            tap_name=tap_name,
            raw_mass_full=_integer(data, "RawMassFull"),
            raw_mass_tare=_integer(data, "RawMassTare"),
            fine_samples=_samples(data, "RawSamples"),
            stable_samples=_samples(data, "StableSamples"),
        )

    @classmethod
    def from_json(cls, raw: Union[bytes, str]) -> "TelemetryBatch":
        """Decode a JSON document into a batch."""
        return cls.from_dict(decode_json(raw, "telemetry"))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire representation."""
        return {
            "FridgeName": self.tap_name,
            "RawMassFull": self.raw_mass_full,
            "RawMassTare": self.raw_mass_tare,
            "RawSamples": [s.to_dict() for s in self.fine_samples],
            "StableSamples": [s.to_dict() for s in self.stable_samples],
        }
