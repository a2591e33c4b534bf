"""
Tapwatch Telemetry Core

Fill-level telemetry aggregation, retention and archival for networked taps.
"""

# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only

__version__ = "0.1.0"
__author__ = "Sierra Labs"

__all__ = ["__version__", "__author__"]
