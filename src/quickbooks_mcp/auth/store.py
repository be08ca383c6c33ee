"""File-based persistence for the credential bundle."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from quickbooks_mcp.auth.models import CredentialBundle, StoredCredentials
from quickbooks_mcp.errors import PersistenceError

logger = logging.getLogger(__name__)


class TokenStore:
    """Stores one credential bundle as JSON at a fixed path.

    A missing file means "no credentials yet" and is not an error. A file
    that exists but cannot be read or parsed is.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def save(self, bundle: CredentialBundle) -> None:
        """Persist the bundle, creating the containing directory if needed.

        The bundle is written to a private temporary file next to the target
        and then renamed over it, so readers see either the old file or the
        new one.

        Raises:
            PersistenceError: If the directory or file cannot be written
        """
        content = json.dumps(bundle.to_dict(), indent=2)
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # mkstemp creates the file with mode 0600
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path is not None:
                Path(tmp_path).unlink(missing_ok=True)
            raise PersistenceError(
                f"Failed to save credentials to {self.path}: {e}"
            ) from e

        logger.debug(f"Saved credentials to {self.path}")

    def load(self) -> CredentialBundle | None:
        """Load the stored bundle.

        Returns:
            The bundle, or None when no credentials file exists

        Raises:
            PersistenceError: If the file exists but is unreadable or corrupt
        """
        if not self.path.exists():
            return None

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise PersistenceError(
                f"Failed to load credentials from {self.path}: {e}"
            ) from e

        if not isinstance(data, dict):
            raise PersistenceError(
                f"Credentials file {self.path} does not contain a JSON object"
            )

        try:
            stored = StoredCredentials.model_validate(data)
        except ValidationError as e:
            raise PersistenceError(
                f"Credentials file {self.path} has invalid fields: {e}"
            ) from e

        logger.debug(f"Loaded credentials from {self.path}")
        return CredentialBundle.from_dict(stored.to_dict())
