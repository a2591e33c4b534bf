# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""Command modules for the CLI."""

from . import serve
from . import ingest
from . import repack
from . import status
from . import trim
from . import config

__all__ = ["serve", "ingest", "repack", "status", "trim", "config"]
