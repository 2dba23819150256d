import logging
from typing import List, Optional

from zipkeeper.config import BackupConfig
from .providers import NotificationError, NotificationProvider, enabled_providers


logger = logging.getLogger(__name__)


def build_subject(backup_name: str) -> str:
    return f"Errors while backing up {backup_name}"


def build_message(backup_name: str, messages: List[str]) -> str:
    errors = ''.join(f"{message}\n" for message in messages)
    return f"Errors occurred while backing up {backup_name}:\n{errors}"


class Notifier:
    """
    Emails a summary of a run's errors to the configured contacts.

    Each enabled provider is tried on its own; a failing provider is logged
    and does not stop the next one.
    """

    def __init__(self, config: BackupConfig, providers: Optional[List[NotificationProvider]] = None):
        self.config = config
        self.providers = enabled_providers(config) if providers is None else providers

    def report(self, messages: List[str]) -> int:
        """
        Send the error report if there is anything to report.

        Args:
            messages: Error messages recorded during the run

        Returns:
            Number of providers that accepted the report
        """
        if not self.config.error_contacts:
            logger.warning("Warning: No error contacts were specified.")
            return 0

        if not messages:
            logger.info("No errors occurred.")
            return 0

        subject = build_subject(self.config.name)
        body = build_message(self.config.name, messages)

        delivered = 0
        for provider in self.providers:
            logger.info(f"Sending error email via {provider.name}.")
            try:
                provider.send(self.config.error_contacts, subject, body)
                delivered += 1
            except NotificationError as e:
                logger.error(str(e))
            except Exception as e:
                # Delivery problems never escalate past the report step
                logger.exception(f"Unexpected error sending report via {provider.name}: {e}")

        return delivered
