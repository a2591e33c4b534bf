#!/usr/bin/env python3
# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Start the Tapwatch telemetry server.
"""

import asyncio

from tapwatch.processing.server import main

if __name__ == "__main__":
    asyncio.run(main())
