"""
Zoo API — Report Export Storage
=================================

What:  Writes, reads and removes exported report files on local disk.
How:   Each export is a JSON document stored under a date-organized directory
       with a UUID filename; the path relative to the storage root is what
       the database keeps. All I/O goes through aiofiles.
Who:   ReportService (export on generate, download, delete); the lifespan
       creates the root directory at startup.

Directory Structure:
    reports/
    └── 2026/
        └── 10/
            └── 18/
                ├── 3f2a9c1e-....json
                └── 9b71d0aa-....json

Relative paths coming back from the database are resolved against the root
and rejected if they point outside it.
"""

import json
import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import aiofiles

from zoo_api.config import settings
from zoo_api.exceptions import FileStorageError, NotFoundError

logger = logging.getLogger(__name__)

EXPORT_EXTENSION = ".json"


class ReportStorage:
    """
    Args:
        storage_root: Override the configured REPORT_STORAGE_ROOT (tests use
                      a tmp_path)
    """

    def __init__(self, storage_root: Optional[str] = None):
        self.storage_root = Path(storage_root or settings.report_storage_root).resolve()

    def ensure_root(self) -> None:
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("Report storage ready at %s", self.storage_root)

    def _generate_storage_path(self) -> Tuple[Path, str]:
        """YYYY/MM/DD/<uuid>.json as (absolute path, path relative to the root)."""
        now = datetime.now(timezone.utc)
        relative_path = f"{now.strftime('%Y/%m/%d')}/{uuid.uuid4()}{EXPORT_EXTENSION}"
        return self.storage_root / relative_path, relative_path

    def resolve(self, relative_path: str) -> Path:
        path = (self.storage_root / relative_path).resolve()
        if self.storage_root not in path.parents:
            raise FileStorageError(
                message="Invalid report file path",
                context={"path": relative_path},
            )
        return path

    async def write_json(self, payload: Dict[str, Any]) -> str:
        """
        Serializes `payload` and writes it to a new file.

        Returns:
            The path relative to the storage root (stored on the report row)

        Raises:
            FileStorageError: Directory creation or the write failed
        """
        absolute_path, relative_path = self._generate_storage_path()
        content = json.dumps(payload, indent=2, default=str)
        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "w", encoding="utf-8") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to write report export %s: %s", absolute_path, e)
            raise FileStorageError(
                message="Failed to save the report export. Please try again.",
                context={"path": relative_path, "os_error": str(e)},
            )
        logger.info("Report exported: %s (%d bytes)", relative_path, len(content))
        return relative_path

    async def read(self, relative_path: str) -> bytes:
        path = self.resolve(relative_path)
        if not path.exists():
            raise NotFoundError(resource="report file", resource_id=relative_path)
        try:
            async with aiofiles.open(path, "rb") as f:
                return await f.read()
        except OSError as e:
            logger.error("Failed to read report export %s: %s", path, e)
            raise FileStorageError(
                message="Could not read the report export.",
                context={"path": relative_path, "os_error": str(e)},
            )

    async def delete(self, relative_path: str) -> None:
        """Removes an export if it is still there; failures are only logged."""
        try:
            path = self.resolve(relative_path)
            if path.exists():
                os.remove(path)
                logger.info("Report export removed: %s", relative_path)
            else:
                logger.debug("Report export already gone: %s", relative_path)
        except (OSError, FileStorageError) as e:
            logger.warning("Failed to remove report export %s: %s", relative_path, e)


# ── Singleton Instance ────────────────────────────────────────────────────
report_storage = ReportStorage()
