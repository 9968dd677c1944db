"""
File-backed store for the single bearer credential.

The token is kept as one JSON document under a single key. Losing the
credential is recoverable (the user logs in again), so every read or write
problem is logged and treated as "no credential" instead of raised.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional, Union

from jinlibrary.config import settings

logger = logging.getLogger(__name__)


class CredentialStore:
    """Save, read and delete one opaque bearer token."""

    def __init__(self, path: Union[str, Path, None] = None, key: Optional[str] = None) -> None:
        self.path = Path(path or settings.credential_file)
        self.key = key or settings.credential_key

    def save(self, token: str) -> None:
        """Overwrite any stored token atomically."""
        tmp_path = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump({self.key: token}, f)
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self.path)
            logger.debug(f"Credential saved to {self.path}")
        except OSError as e:
            logger.warning(f"Could not save credential to {self.path}: {e}")

    def get(self) -> Optional[str]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read credential from {self.path}: {e}")
            return None

        token = data.get(self.key) if isinstance(data, dict) else None
        if not isinstance(token, str) or not token:
            return None
        return token

    def delete(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
            logger.debug(f"Credential removed from {self.path}")
        except OSError as e:
            logger.warning(f"Could not delete credential at {self.path}: {e}")
