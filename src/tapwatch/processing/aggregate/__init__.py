# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""In-memory telemetry aggregation per tap."""

from .sample import Sample, TelemetryBatch
from .report import AggregateReport, append_report
from .registry import TapRegistry

__all__ = ["Sample", "TelemetryBatch", "AggregateReport", "append_report", "TapRegistry"]
