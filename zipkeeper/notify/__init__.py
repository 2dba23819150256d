"""
Error report delivery for zipkeeper.

Reports are plain-text emails sent through transactional email providers
(SendGrid, SalesScribe) when a backup run recorded errors.
"""

from .notifier import Notifier, build_message, build_subject
from .providers import (
    NotificationError,
    NotificationProvider,
    SalesScribeProvider,
    SendGridProvider,
    enabled_providers
)

__all__ = [
    'Notifier',
    'build_message',
    'build_subject',
    'NotificationError',
    'NotificationProvider',
    'SalesScribeProvider',
    'SendGridProvider',
    'enabled_providers'
]
