"""
Configuration loading for zipkeeper.

The backup directory holds a ``config.json`` document describing the backup
name, who to email when something goes wrong, the email providers and the
sources to archive. Keys are matched case-insensitively.
"""

import os
import json
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator


CONFIG_FILENAME = 'config.json'
BACKUPS_DIRNAME = 'backups'

# Environment variables that take precedence over keys in config.json
ENV_OVERRIDES = {
    'SENDGRID_API_KEY': 'send_grid_api_key',
    'SALESSCRIBE_API_KEY': 'sales_scribe_api_key',
}


class ConfigError(Exception):
    """Raised when the configuration cannot be read or is invalid."""
    pass


class _ConfigModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra='ignore', populate_by_name=True)

    @model_validator(mode='before')
    @classmethod
    def _match_keys_case_insensitively(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        known = {}
        for name, field in cls.model_fields.items():
            key = field.alias or name
            known[key.lower()] = key
            known[name.lower()] = key

        return {known.get(str(k).lower(), k): v for k, v in data.items()}


class Contact(_ConfigModel):
    """Recipient of error reports."""

    name: str = ''
    email: str = ''


class SourceConfig(_ConfigModel):
    """A file or directory to back up, with base-name exclusion globs."""

    path: str
    blacklist: List[str] = Field(default_factory=list)

    @field_validator('blacklist', mode='before')
    @classmethod
    def _null_blacklist(cls, value):
        return [] if value is None else value

    def resolve(self, base_dir: str) -> 'SourceConfig':
        """Return a copy whose path is absolute, relative paths anchored at base_dir."""
        path = os.path.expanduser(self.path)
        if not os.path.isabs(path):
            path = os.path.join(base_dir, path)
        return self.model_copy(update={'path': os.path.abspath(path)})


class BackupConfig(_ConfigModel):
    """Complete configuration of one backup directory."""

    name: str = ''
    error_contacts: List[Contact] = Field(default_factory=list, alias='errorContacts')
    send_grid_enable: bool = Field(default=False, alias='sendGridEnable')
    send_grid_api_key: str = Field(default='', alias='sendGridAPIKey')
    send_grid_from_address: str = Field(default='', alias='sendGridFromAddress')
    sales_scribe_enable: bool = Field(default=False, alias='salesScribeEnable')
    sales_scribe_api_key: str = Field(default='', alias='salesScribeAPIKey')
    sources: List[SourceConfig] = Field(default_factory=list)

    @field_validator('error_contacts', 'sources', mode='before')
    @classmethod
    def _null_list(cls, value):
        return [] if value is None else value


def load_config(dst_dir: str, environ: Optional[dict] = None) -> BackupConfig:
    """
    Load and validate ``config.json`` from a backup directory.

    Source paths are resolved against ``dst_dir``. API keys set in the
    environment replace the ones in the file.

    Args:
        dst_dir: Backup directory containing config.json
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Validated BackupConfig

    Raises:
        ConfigError: If the file cannot be read, parsed or validated
    """
    if environ is None:
        environ = os.environ

    config_path = os.path.join(dst_dir, CONFIG_FILENAME)

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigError(f"Unable to read configuration {config_path}: {e}")
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {config_path}: {e}")

    try:
        config = BackupConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}: {e}")

    overrides = {
        'sources': [source.resolve(dst_dir) for source in config.sources]
    }
    for env_name, field_name in ENV_OVERRIDES.items():
        if environ.get(env_name):
            overrides[field_name] = environ[env_name]

    return config.model_copy(update=overrides)
