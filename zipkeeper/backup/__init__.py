"""
Backup module for zipkeeper.

This module handles the core backup functionality including:
- Source traversal with exclusion globs
- Zip archive creation
- Retention policy enforcement
- Error collection and execution orchestration
"""

from .collector import ErrorCollector
from .compression import generate_archive_filename, open_archive
from .executor import BackupExecutor, run_backup
from .retention import RetentionManager
from .sources import add_source, source_arcname

__all__ = [
    'ErrorCollector',
    'generate_archive_filename',
    'open_archive',
    'BackupExecutor',
    'run_backup',
    'RetentionManager',
    'add_source',
    'source_arcname'
]
