"""
Local Storage Module for Kemono Client

This module persists client state on disk. Each named slot is a JSON file
in the state directory, overwritten as a whole on every write.
"""

import os
import re
import tempfile
from pathlib import Path
from typing import Optional, Union

from config import settings
from utils.exceptions import StorageError
from utils.helpers import ensure_dir_exists
from utils.logger import get_logger

logger = get_logger(__name__)


def _slot_filename(key: str) -> str:
    safe = re.sub(r"[^A-Za-z0-9_-]", "-", key).strip("-")
    if not safe:
        raise StorageError(f"Invalid storage key: {key!r}")
    return f"{safe}.json"


class LocalStorage:
    """File-backed implementation of the KeyValueStorage protocol."""

    def __init__(self, root: Optional[Union[str, Path]] = None):
        """
        Initialize the storage.

        Args:
            root: Directory holding the slot files. Defaults to settings.STATE_DIR.
        """
        self.root = Path(root) if root is not None else Path(settings.STATE_DIR)

    def path_for(self, key: str) -> Path:
        return self.root / _slot_filename(key)

    def get_item(self, key: str) -> Optional[str]:
        """
        Read a slot.

        Raises:
            StorageError: If the slot file exists but cannot be read.
        """
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    def set_item(self, key: str, value: str) -> None:
        """
        Overwrite a slot atomically.

        Raises:
            StorageError: If the slot cannot be written.
        """
        path = self.path_for(key)
        tmp_path = None
        try:
            ensure_dir_exists(self.root)
            with tempfile.NamedTemporaryFile("w", encoding="utf-8", delete=False, dir=str(self.root)) as tmp:
                tmp_path = Path(tmp.name)
                tmp.write(value)
            tmp_path.replace(path)
            tmp_path = None
            if os.name != "nt":  # the session slot holds a credential
                os.chmod(path, 0o600)
        except OSError as e:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
            raise StorageError(f"Failed to write {path}: {e}") from e
        logger.debug(f"Saved storage slot {key} to {path}")

    def remove_item(self, key: str) -> None:
        """
        Clear a slot.

        Raises:
            StorageError: If the slot file exists but cannot be removed.
        """
        path = self.path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageError(f"Failed to remove {path}: {e}") from e
        logger.debug(f"Removed storage slot {key}")
