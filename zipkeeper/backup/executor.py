"""
Backup executor - orchestrates the complete backup workflow.

Workflow:
1. Configure logging (log.txt + stdout)
2. Load config.json
3. Create backups/<timestamp>.zip
4. Add every configured source to the archive
5. Prune old archives (only if nothing went wrong)
6. Email an error report (always attempted, even after a fatal error)
"""

import os
import logging
from typing import List, Optional

from zipkeeper import configure_logging
from zipkeeper.config import BACKUPS_DIRNAME, BackupConfig, ConfigError, load_config
from zipkeeper.notify import Notifier
from .collector import ErrorCollector
from .compression import (
    CompressionError,
    close_archive,
    generate_archive_filename,
    get_archive_size,
    open_archive
)
from .retention import RetentionManager
from .sources import add_source, source_arcname


logger = logging.getLogger(__name__)


class BackupError(Exception):
    """Raised for run-level conditions that are not tied to a single path."""
    pass


class BackupExecutor:
    """
    Runs one backup of a backup directory.
    """

    def __init__(self, dst_dir: str, debug: bool = False, setup_logging: bool = True):
        """
        Initialize backup executor.

        Args:
            dst_dir: Directory holding config.json, log.txt and backups/
            debug: Enable DEBUG logging
            setup_logging: Attach the log.txt/stdout handlers for this run
        """
        self.dst_dir = os.path.abspath(dst_dir)
        self.debug = debug
        self.setup_logging = setup_logging
        self.errors = ErrorCollector()
        self.config = BackupConfig()
        self.archive_path = None
        self.deleted: List[str] = []
        self.completed = False

    @property
    def backups_dir(self) -> str:
        return os.path.join(self.dst_dir, BACKUPS_DIRNAME)

    def execute(self) -> ErrorCollector:
        """
        Execute the backup.

        Returns:
            ErrorCollector holding every error recorded during the run
        """
        try:
            self._execute_workflow()
        except (ConfigError, CompressionError, OSError) as e:
            # Setup failure: nothing else can run, but the report still goes out
            self.errors.record(e)
        except Exception as e:
            self.errors.record(e)
            raise
        finally:
            self._report()

        return self.errors

    def _execute_workflow(self):
        """Execute the main backup workflow steps."""
        # Step 1: Logging
        if self.setup_logging:
            configure_logging(self.dst_dir, self.debug)
        logger.info(f"Starting backup in {self.dst_dir}")

        # Step 2: Configuration
        self.config = load_config(self.dst_dir)
        logger.info(f"Loaded configuration '{self.config.name}' ({len(self.config.sources)} sources)")

        # Step 3: Archive
        os.makedirs(self.backups_dir, exist_ok=True)
        self.archive_path = os.path.join(self.backups_dir, generate_archive_filename())
        zipf = open_archive(self.archive_path)

        # Step 4: Sources
        try:
            self._add_sources(zipf)
        finally:
            self.errors.record_if_present(self._finalize(zipf))

        if os.path.exists(self.archive_path):
            file_size = get_archive_size(self.archive_path)
            logger.info(
                f"Archive created: {os.path.basename(self.archive_path)} "
                f"({file_size / 1024 / 1024:.2f} MB)"
            )

        # Step 5: Retention
        if self.errors.has_errors:
            self.errors.record(BackupError("Errors occurred. Old backups will not be deleted automatically."))
            return

        self.deleted = RetentionManager(self.backups_dir).prune()

        self.completed = True
        logger.info("Done.")

    def _add_sources(self, zipf):
        for index, source in enumerate(self.config.sources, start=1):
            arcname = source_arcname(index, source.path)
            logger.info(f"Adding source {index}: {source.path}")

            for error in add_source(zipf, source.path, arcname, source.blacklist):
                self.errors.record(error)

    @staticmethod
    def _finalize(zipf) -> Optional[CompressionError]:
        try:
            close_archive(zipf)
        except CompressionError as e:
            return e
        return None

    def _report(self):
        """Email the accumulated errors, if any."""
        notifier = Notifier(self.config)
        notifier.report(self.errors.messages())


def run_backup(dst_dir: str, debug: bool = False) -> ErrorCollector:
    """
    Run one backup of ``dst_dir``.

    Returns:
        ErrorCollector with the errors recorded during the run
    """
    executor = BackupExecutor(dst_dir, debug=debug)
    return executor.execute()
