"""Persisted project ID store.

Remembers the last connected project in ~/.orgolin/state.toml so the next
run can reattach instead of paying for a new desktop.

Invariant: only usable project IDs are ever persisted, and stale values
(legacy "computer-*" IDs, the "new" placeholder) are purged when read.

Security:
- Directory permissions: 0700
- File permissions: 0600
- Atomic writes (temp file + rename)
"""

import logging
import os
import tomllib
from datetime import UTC, datetime
from pathlib import Path

import tomlkit

from orgolin.exceptions import ProjectIdValidationError
from orgolin.project_id import describe_project_id, is_usable

logger = logging.getLogger(__name__)


class ProjectStoreError(Exception):
    """Raised when the state file cannot be written."""

    pass


class ProjectStore:
    """Last-write-wins store for the active project ID.

    Example:
        >>> store = ProjectStore()
        >>> store.set("0f8fad5b-d9cb-469f-a165-70867728950e")
        >>> store.get()
        '0f8fad5b-d9cb-469f-a165-70867728950e'
    """

    DEFAULT_STATE_DIR = Path.home() / ".orgolin"
    DEFAULT_STATE_FILE = DEFAULT_STATE_DIR / "state.toml"

    def __init__(self, path: Path | None = None, strict_project_ids: bool = False):
        self.path = Path(path) if path else self.DEFAULT_STATE_FILE
        self.strict_project_ids = strict_project_ids

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            mode = self.path.stat().st_mode & 0o777
            if mode & 0o077:
                logger.warning(f"Fixing insecure permissions on {self.path}")
                os.chmod(self.path, 0o600)
            with open(self.path, "rb") as f:
                return tomllib.load(f)
        except Exception as e:
            logger.warning(f"Failed to read state file {self.path}: {e}")
            return {}

    def _write(self, project_id: str | None) -> None:
        temp_path = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            os.chmod(self.path.parent, 0o700)

            doc = tomlkit.document()
            if project_id:
                project = tomlkit.table()
                project.add("id", project_id)
                project.add("saved_at", datetime.now(UTC).isoformat())
                doc.add("project", project)

            with open(temp_path, "w") as f:
                tomlkit.dump(doc, f)
            os.chmod(temp_path, 0o600)
            temp_path.replace(self.path)
        except Exception as e:
            if temp_path.exists():
                temp_path.unlink()
            raise ProjectStoreError(f"Failed to save project state: {e}") from e

    def get(self) -> str | None:
        """Return the stored project ID, purging it if stale."""
        project = self._read().get("project")
        if not isinstance(project, dict) or project.get("id") is None:
            return None

        stored = project["id"]

        if is_usable(stored, strict=self.strict_project_ids):
            return stored

        info = describe_project_id(stored, strict=self.strict_project_ids)
        logger.info(f"Discarding stored project ID {stored!r}: {info.reason}")
        try:
            self.clear()
        except ProjectStoreError as e:
            logger.warning(str(e))
        return None

    def set(self, project_id: str) -> None:
        """Persist a project ID.

        Raises:
            ProjectIdValidationError: If the ID is not usable
            ProjectStoreError: If the state file cannot be written
        """
        if not is_usable(project_id, strict=self.strict_project_ids):
            info = describe_project_id(project_id, strict=self.strict_project_ids)
            raise ProjectIdValidationError(
                f"Refusing to persist project ID {project_id!r}: {info.reason}",
                project_id=project_id,
            )
        self._write(project_id)
        logger.debug(f"Saved project ID {project_id} to {self.path}")

    def clear(self) -> None:
        """Forget the stored project ID (no-op if nothing is stored)."""
        if not self.path.exists():
            return
        self._write(None)


__all__ = ["ProjectStore", "ProjectStoreError"]
