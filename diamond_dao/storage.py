"""
Diamond DAO State File

Persists a DiamondDAO snapshot as JSON between CLI invocations. Writes go
to a temporary file in the same directory and are swapped in with
os.replace, so a crash never leaves a half-written state file behind.
"""

import contextlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .clock import Clock
from .constants import STATE_FORMAT_VERSION
from .exceptions import StateFileError
from .governance.dao import DiamondDAO
from .logger import get_logger

logger = get_logger(__name__)


class StateFile:
    """JSON snapshot of a DiamondDAO on disk."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> Dict[str, Any]:
        """Load the raw snapshot dict."""
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
        except FileNotFoundError:
            raise StateFileError(f"No DAO state at {self.path}; run 'init' first") from None
        except (OSError, json.JSONDecodeError) as e:
            raise StateFileError(f"Could not read DAO state from {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise StateFileError(f"Malformed DAO state in {self.path}")
        version = data.get("version")
        if version != STATE_FORMAT_VERSION:
            raise StateFileError(
                f"Unsupported state version {version!r} in {self.path} "
                f"(expected {STATE_FORMAT_VERSION})"
            )
        return data

    def load(self, clock: Optional[Clock] = None) -> DiamondDAO:
        data = self.read()
        try:
            dao = DiamondDAO.from_dict(data, clock=clock)
        except (KeyError, TypeError, ValueError) as e:
            raise StateFileError(f"Malformed DAO state in {self.path}: {e}") from e
        logger.debug(f"Loaded DAO state from {self.path}")
        return dao

    def save(self, dao: DiamondDAO) -> None:
        payload = dao.to_dict()
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=directory
            )
            try:
                with os.fdopen(fd, 'w') as f:
                    json.dump(payload, f, indent=4)
                os.replace(tmp_path, self.path)
            except BaseException:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise StateFileError(f"Could not write DAO state to {self.path}: {e}") from e
        logger.debug(f"Saved DAO state to {self.path}")

    def __repr__(self) -> str:
        return f"<StateFile {self.path}>"
