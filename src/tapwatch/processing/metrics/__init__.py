# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""Ingestion counters and periodic stats logging."""

from .ingest_metrics import FillStats, IngestMetrics, MetricsSnapshot, summarize_fill
from .stats_reporter import StatsReporter

__all__ = ["FillStats", "IngestMetrics", "MetricsSnapshot", "StatsReporter", "summarize_fill"]
