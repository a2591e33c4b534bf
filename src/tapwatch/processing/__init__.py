# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Processing layer for Tapwatch Telemetry Core.
Aggregates tap updates in memory and archives them to the data directory.
"""
