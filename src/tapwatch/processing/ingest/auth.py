# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
API key directory used to authenticate tap updates.

The users file maps API keys to accounts, in YAML or JSON:

    abc123:
      username: alice
      valid: true
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional

import yaml

from ...shared.errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiUser:
    """Account an API key belongs to."""

    username: str
    valid: bool = True


Authenticator = Callable[[str], Optional[ApiUser]]


class UserDirectory:
    """In-memory mapping of API keys to accounts."""

    def __init__(self, users: Optional[Mapping[str, ApiUser]] = None):
        self._users: Dict[str, ApiUser] = dict(users or {})

    @classmethod
    def from_mapping(cls, data: Mapping[str, Mapping]) -> "UserDirectory":
        """
        Build a directory from ``{api_key: {"username": ..., "valid": ...}}``.

        Raises:
            ConfigError: If an entry is not a mapping or lacks a username
        """
        users: Dict[str, ApiUser] = {}
        for api_key, entry in data.items():
            if not isinstance(entry, Mapping) or not entry.get("username"):
                raise ConfigError(f"user entry for key ending ...{str(api_key)[-4:]} needs a username")
            users[str(api_key)] = ApiUser(username=str(entry["username"]), valid=bool(entry.get("valid", True)))
        return cls(users)

    @classmethod
    def load(cls, path: Path) -> "UserDirectory":
        """
        Load a users file. ``.json`` files are parsed as JSON, anything else as YAML.

        Raises:
            ConfigError: If the file is missing or malformed
        """
        path = Path(path)
        try:
            with open(path) as f:
                if path.suffix == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f) or {}
        except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigError(f"Could not load users file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Users file {path} must contain a mapping")

        directory = cls.from_mapping(data)
        logger.info(f"Loaded {len(directory)} API users from {path}")
        return directory

    def lookup(self, api_key: str) -> Optional[ApiUser]:
        """Return the account for an API key, or None if unknown."""
        if not api_key:
            return None
        return self._users.get(api_key)

    def __call__(self, api_key: str) -> Optional[ApiUser]:
        return self.lookup(api_key)

    def __len__(self) -> int:
        return len(self._users)
