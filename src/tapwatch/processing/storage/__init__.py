# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Filesystem persistence: data layout, compressed JSON files and chart trimming.
"""
