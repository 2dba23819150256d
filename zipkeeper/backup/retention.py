"""
Retention policy enforcement for backups.

Keeps the newest archives in the backups directory and deletes the rest.
Only files whose names start with the archive timestamp pattern are
considered; anything else in the directory is left alone.
"""

import os
import re
import logging
from typing import List


logger = logging.getLogger(__name__)

# Number of archives kept after each successful run
DEFAULT_KEEP = 3

BACKUP_NAME_PATTERN = re.compile(r'^\d{10}_UTC-\d{1,4}-\d{1,2}-\d{1,2}')


class RetentionManager:
    """
    Prunes old archives from a backups directory.

    Deletion is best-effort: a file that cannot be removed is logged and the
    remaining deletions still run. Nothing here raises into the backup run.
    """

    def __init__(self, backups_dir: str, keep: int = DEFAULT_KEEP):
        """
        Initialize retention manager.

        Args:
            backups_dir: Directory holding the archives
            keep: Number of newest archives to keep
        """
        self.backups_dir = backups_dir
        self.keep = keep

    def list_backups(self) -> List[str]:
        """
        List archive names in the backups directory, oldest first.

        Raises:
            OSError: If the directory cannot be listed
        """
        names = [
            name for name in os.listdir(self.backups_dir)
            if BACKUP_NAME_PATTERN.match(name)
        ]
        return sorted(names)

    def select_expired(self, names: List[str]) -> List[str]:
        """Return the names that fall outside the retention window."""
        names = sorted(names)
        delete_count = max(0, len(names) - self.keep)
        return names[:delete_count]

    def prune(self) -> List[str]:
        """
        Delete all but the newest ``keep`` archives.

        Returns:
            Names of the archives that were deleted
        """
        try:
            backups = self.list_backups()
        except OSError as e:
            logger.error(f"Unable to delete old backups: {e}")
            return []

        deleted = []
        for name in self.select_expired(backups):
            logger.info(f"Deleting old backup '{name}'")
            try:
                os.remove(os.path.join(self.backups_dir, name))
                deleted.append(name)
            except OSError as e:
                logger.error(f"Failed to delete old backup '{name}': {e}")

        return deleted
