"""
Lookup over the date-partitioned capture tree.

There is no persistent index: every lookup and listing walks the storage
root. Volumes are expected to stay in the low thousands, where a linear scan
is cheap.
"""

import logging
from datetime import datetime
from os import stat_result
from pathlib import Path

from webshot.errors import CaptureNotFoundError, InvalidInputError
from webshot.naming import is_partition_name, matches_id, parse_id
from webshot.schema import CaptureSummary

logger = logging.getLogger(__name__)

UNKNOWN_ID = "unknown"


def created_at(stat: stat_result) -> datetime:
    """Birth time where the platform reports it, otherwise last modification."""
    birth = getattr(stat, "st_birthtime", None)
    return datetime.fromtimestamp(birth if birth is not None else stat.st_mtime).astimezone()


def modified_at(stat: stat_result) -> datetime:
    return datetime.fromtimestamp(stat.st_mtime).astimezone()


class CaptureIndex:
    """
    Resolves capture ids and enumerates captures by scanning the tree.

    Attributes:
        storage_root: Root holding one directory per YYYY-MM-DD partition
        raster_suffixes: File suffixes treated as captures when listing
        duplicate_matches: Count of extra files found sharing an id (integrity anomalies)
    """

    def __init__(self, storage_root: Path, raster_suffixes: list[str] | None = None) -> None:
        self.storage_root = Path(storage_root)
        self.raster_suffixes = {s.lower() for s in (raster_suffixes or [".png"])}
        self.duplicate_matches = 0

    def partitions(self) -> list[Path]:
        """Partition directories under the storage root, oldest date first."""
        if not self.storage_root.is_dir():
            return []
        found = []
        for entry in sorted(self.storage_root.iterdir()):
            if not entry.is_dir():
                continue
            if not is_partition_name(entry.name):
                logger.debug("Skipping non-partition directory %s", entry)
                continue
            found.append(entry)
        return found

    def find_by_id(self, screenshot_id: str) -> Path:
        """
        Return the stored file for screenshot_id.

        The whole tree is scanned so that a second file with the same id is
        noticed. The first match still wins.

        Raises:
            InvalidInputError: If screenshot_id is empty
            CaptureNotFoundError: If no file carries the id
        """
        if not screenshot_id or not screenshot_id.strip():
            raise InvalidInputError(errors=["'screenshot_id' is required"])

        matches = [
            entry
            for partition in self.partitions()
            for entry in sorted(partition.iterdir())
            if entry.is_file() and matches_id(entry.name, screenshot_id)
        ]
        if not matches:
            raise CaptureNotFoundError(screenshot_id=screenshot_id)
        if len(matches) > 1:
            self.duplicate_matches += len(matches) - 1
            logger.warning(
                "Integrity anomaly: %d files carry id %s: %s",
                len(matches),
                screenshot_id,
                ", ".join(str(m) for m in matches),
            )
        return matches[0]

    def list_all(self, limit: int | None = None) -> list[CaptureSummary]:
        """
        Every stored raster file, newest first, truncated to limit.

        Files whose names lack an id prefix (orphans) are included with
        screenshot_id "unknown".
        """
        summaries = self.scan()
        summaries.sort(key=lambda s: s.created, reverse=True)
        if limit is not None:
            summaries = summaries[:limit]
        return summaries

    def scan(self) -> list[CaptureSummary]:
        """Unordered summaries of every raster file in every partition."""
        summaries = []
        for partition in self.partitions():
            for path in partition.rglob("*"):
                if not path.is_file() or path.suffix.lower() not in self.raster_suffixes:
                    continue
                stat = path.stat()
                summaries.append(
                    CaptureSummary(
                        screenshot_id=parse_id(path.name) or UNKNOWN_ID,
                        file_name=path.name,
                        file_path=path,
                        date=partition.name,
                        size=stat.st_size,
                        created=created_at(stat),
                        modified=modified_at(stat),
                    )
                )
        return summaries
