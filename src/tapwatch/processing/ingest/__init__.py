# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""Update ingestion: authentication, the pipeline and the stream consumer."""

from .auth import ApiUser, UserDirectory
from .pipeline import IngestionPipeline, IngestResult

__all__ = ["ApiUser", "UserDirectory", "IngestionPipeline", "IngestResult"]
