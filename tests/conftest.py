"""
Shared pytest fixtures for zipkeeper tests.

This module provides fixtures for:
- Backup directories with a config.json
- Source trees to archive
- Pre-existing backup archives for retention tests
- Mocked HTTP calls to the email providers
"""

import json
import logging
from unittest.mock import MagicMock, patch

import pytest


@pytest.fixture(autouse=True)
def reset_logging():
    """Detach the log.txt/stdout handlers a run attaches to the package logger."""
    yield
    logger = logging.getLogger('zipkeeper')
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep provider keys from the developer's environment out of tests."""
    monkeypatch.delenv('SENDGRID_API_KEY', raising=False)
    monkeypatch.delenv('SALESSCRIBE_API_KEY', raising=False)
    monkeypatch.delenv('ZIPKEEPER_HTTP_TIMEOUT', raising=False)


@pytest.fixture
def temp_files(tmp_path):
    """
    Create a source tree.

    Creates:
    - data/test_file1.txt
    - data/test_file2.log
    - data/nested/test_file3.txt
    - data/test_file.pyc (should be excluded in tests)
    """
    root = tmp_path / 'data'
    root.mkdir()
    (root / 'test_file1.txt').write_text('Test content 1')
    (root / 'test_file2.log').write_text('Test log content')

    nested_dir = root / 'nested'
    nested_dir.mkdir()
    (nested_dir / 'test_file3.txt').write_text('Nested test content')

    (root / 'test_file.pyc').write_bytes(b'compiled python')

    return root


@pytest.fixture
def backup_dir(tmp_path):
    """Empty backup directory (holds config.json, log.txt and backups/)."""
    path = tmp_path / 'backup_root'
    path.mkdir()
    return path


@pytest.fixture
def write_config(backup_dir):
    """Write a config.json into the backup directory."""

    def _write(**overrides):
        config = {
            'name': 'test backup',
            'errorContacts': [{'name': 'Ops', 'email': 'ops@example.com'}],
            'sendGridEnable': False,
            'sendGridAPIKey': '',
            'sendGridFromAddress': 'backup@example.com',
            'salesScribeEnable': False,
            'salesScribeAPIKey': '',
            'sources': []
        }
        config.update(overrides)
        (backup_dir / 'config.json').write_text(json.dumps(config))
        return config

    return _write


@pytest.fixture
def existing_backups(backup_dir):
    """
    Create five retention-eligible archives plus two unrelated files.

    Names: 1000000000_UTC-2001-1-1.zip ... 1000000004_UTC-2001-1-5.zip
    """
    backups = backup_dir / 'backups'
    backups.mkdir()

    names = [f"100000000{i}_UTC-2001-1-{i + 1}.zip" for i in range(5)]
    for name in names:
        (backups / name).write_bytes(b'old archive')

    (backups / 'notes.txt').write_text('keep me')
    (backups / 'manual-copy.zip').write_bytes(b'keep me too')

    return backups, names


@pytest.fixture
def mock_post():
    """Mock requests.post used by the email providers; answers 202 by default."""
    with patch('zipkeeper.notify.providers.requests.post') as post:
        response = MagicMock()
        response.status_code = 202
        response.text = ''
        post.return_value = response
        yield post
