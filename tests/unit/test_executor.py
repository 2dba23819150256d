"""
Unit tests for backup executor (zipkeeper/backup/executor.py).

Tests BackupExecutor for orchestrating complete backup runs.
"""

import json
import os
import zipfile
from unittest.mock import patch

import pytest
from freezegun import freeze_time

from zipkeeper.backup.executor import BackupExecutor, BackupError, run_backup
from zipkeeper.backup.sources import SourceError
from zipkeeper.config import ConfigError


RETENTION_SKIPPED = "Errors occurred. Old backups will not be deleted automatically."


def _entries(archive_path):
    with zipfile.ZipFile(archive_path) as zipf:
        return {name: zipf.read(name) for name in zipf.namelist()}


@pytest.fixture
def two_sources(backup_dir, write_config):
    """Sources ./a (x.txt, skip.bad) and ./b (y.txt); *.bad excluded from a."""
    (backup_dir / 'a').mkdir()
    (backup_dir / 'a' / 'x.txt').write_text('x content')
    (backup_dir / 'a' / 'skip.bad').write_text('excluded')
    (backup_dir / 'b').mkdir()
    (backup_dir / 'b' / 'y.txt').write_text('y content')

    return write_config(sources=[
        {'path': './a', 'blacklist': ['*.bad']},
        {'path': './b', 'blacklist': []},
    ])


class TestBackupExecutor:
    """Test BackupExecutor class."""

    def test_executor_initialization(self, backup_dir):
        """Test BackupExecutor initializes correctly."""
        executor = BackupExecutor(str(backup_dir))

        assert executor.dst_dir == str(backup_dir)
        assert executor.backups_dir == str(backup_dir / 'backups')
        assert executor.archive_path is None
        assert executor.deleted == []
        assert not executor.errors.has_errors

    @freeze_time("2024-01-05 12:00:00")
    def test_executor_successful_backup(self, backup_dir, two_sources):
        """Test the two-source scenario end to end."""
        executor = BackupExecutor(str(backup_dir))
        errors = executor.execute()

        assert not errors.has_errors
        assert executor.completed is True
        assert executor.archive_path == str(backup_dir / 'backups' / '1704456000_UTC-2024-1-5.zip')
        assert _entries(executor.archive_path) == {
            'source-1:-a/x.txt': b'x content',
            'source-2:-b/y.txt': b'y content',
        }

    def test_executor_writes_log_file(self, backup_dir, two_sources):
        """Test log.txt is truncated and ends with the Done marker."""
        (backup_dir / 'log.txt').write_text('previous run\n')

        BackupExecutor(str(backup_dir)).execute()

        log = (backup_dir / 'log.txt').read_text()
        assert 'previous run' not in log
        assert 'Done.' in log
        assert 'No errors occurred.' in log

    def test_executor_creates_backups_directory(self, backup_dir, write_config):
        write_config(sources=[])

        executor = BackupExecutor(str(backup_dir))
        executor.execute()

        assert (backup_dir / 'backups').is_dir()
        assert os.path.exists(executor.archive_path)
        assert _entries(executor.archive_path) == {}

    @freeze_time("2024-01-05 12:00:00")
    def test_executor_prunes_after_success(self, backup_dir, two_sources, existing_backups):
        """Test the new archive counts toward the three kept."""
        backups, names = existing_backups

        executor = BackupExecutor(str(backup_dir))
        executor.execute()

        assert executor.deleted == names[:3]
        assert sorted(os.listdir(backups)) == sorted([
            names[3],
            names[4],
            '1704456000_UTC-2024-1-5.zip',
            'manual-copy.zip',
            'notes.txt',
        ])

    def test_executor_errors_block_pruning(self, backup_dir, write_config, existing_backups):
        """Test a missing source means no deletions at all."""
        backups, names = existing_backups
        write_config(sources=[{'path': './missing'}])

        executor = BackupExecutor(str(backup_dir))
        errors = executor.execute()

        assert executor.deleted == []
        assert executor.completed is False
        for name in names:
            assert (backups / name).exists()

        assert len(errors) == 2
        assert isinstance(errors.errors[0], SourceError)
        assert isinstance(errors.errors[1], BackupError)
        assert errors.messages()[1] == RETENTION_SKIPPED

    def test_executor_source_error_keeps_other_sources(self, backup_dir, two_sources, write_config):
        """Test one bad source does not stop the next."""
        write_config(sources=[
            {'path': './missing'},
            {'path': './b'},
        ])

        executor = BackupExecutor(str(backup_dir))
        executor.execute()

        assert _entries(executor.archive_path) == {'source-2:-b/y.txt': b'y content'}

    def test_executor_missing_config_is_fatal(self, backup_dir):
        """Test an unreadable config stops the run before any archive exists."""
        executor = BackupExecutor(str(backup_dir))
        errors = executor.execute()

        assert len(errors) == 1
        assert isinstance(errors.errors[0], ConfigError)
        assert executor.archive_path is None
        assert not (backup_dir / 'backups').exists()

    def test_executor_missing_directory_is_fatal(self, tmp_path):
        """Test a backup directory that does not exist is recorded, not raised."""
        errors = BackupExecutor(str(tmp_path / 'nowhere')).execute()

        assert len(errors) == 1
        assert isinstance(errors.errors[0], OSError)

    def test_executor_archive_creation_failure_is_fatal(self, backup_dir, two_sources):
        """Test a backups path that is a file stops the run."""
        (backup_dir / 'backups').write_text('not a directory')

        errors = BackupExecutor(str(backup_dir)).execute()

        assert len(errors) == 1
        assert isinstance(errors.errors[0], OSError)


class TestBackupReporting:
    """Test the report step at the end of every run."""

    def _enable_sendgrid(self, write_config, **overrides):
        return write_config(sendGridEnable=True, sendGridAPIKey='sg-key', **overrides)

    def test_report_sent_on_errors(self, backup_dir, write_config, mock_post):
        self._enable_sendgrid(write_config, sources=[{'path': './missing'}])

        BackupExecutor(str(backup_dir)).execute()

        mock_post.assert_called_once()
        payload = json.loads(mock_post.call_args[1]['data'])
        body = payload['content'][0]['value']
        assert body.startswith('Errors occurred while backing up test backup:\n')
        assert 'missing' in body
        assert RETENTION_SKIPPED in body

    def test_report_not_sent_on_success(self, backup_dir, two_sources, write_config, mock_post):
        self._enable_sendgrid(write_config, sources=two_sources['sources'])

        BackupExecutor(str(backup_dir)).execute()

        mock_post.assert_not_called()

    def test_report_failure_is_only_logged(self, backup_dir, write_config, mock_post):
        """Test a provider failure neither raises nor adds to the errors."""
        mock_post.return_value.status_code = 500
        self._enable_sendgrid(write_config, sources=[{'path': './missing'}])

        errors = BackupExecutor(str(backup_dir)).execute()

        assert len(errors) == 2
        assert 'SendGrid returned non-200 status code "500"' in (backup_dir / 'log.txt').read_text()

    def test_report_invalid_timeout_does_not_escape(self, backup_dir, write_config, mock_post, monkeypatch):
        """Test a malformed timeout setting neither raises nor skips a provider."""
        monkeypatch.setenv('ZIPKEEPER_HTTP_TIMEOUT', '30s')
        self._enable_sendgrid(
            write_config,
            salesScribeEnable=True,
            salesScribeAPIKey='ss-key',
            sources=[{'path': './missing'}]
        )

        errors = BackupExecutor(str(backup_dir)).execute()

        assert len(errors) == 2
        assert mock_post.call_count == 2

    @patch('zipkeeper.backup.executor.Notifier')
    def test_report_runs_after_fatal_error(self, mock_notifier, backup_dir):
        BackupExecutor(str(backup_dir)).execute()

        mock_notifier.return_value.report.assert_called_once()
        messages = mock_notifier.return_value.report.call_args[0][0]
        assert len(messages) == 1
        assert 'config.json' in messages[0]

    @patch('zipkeeper.backup.executor.Notifier')
    @patch('zipkeeper.backup.executor.RetentionManager')
    def test_report_runs_after_unexpected_error(self, mock_retention, mock_notifier, backup_dir, two_sources):
        """Test unexpected exceptions are reported and then propagate."""
        mock_retention.return_value.prune.side_effect = RuntimeError('bug')

        with pytest.raises(RuntimeError):
            BackupExecutor(str(backup_dir)).execute()

        mock_notifier.return_value.report.assert_called_once_with(['bug'])


class TestRunBackup:
    """Test run_backup helper."""

    def test_run_backup(self, backup_dir, two_sources):
        errors = run_backup(str(backup_dir))

        assert not errors.has_errors
        assert len(os.listdir(backup_dir / 'backups')) == 1
