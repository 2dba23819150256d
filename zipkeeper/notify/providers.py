"""
Transactional email providers used for error reports.

Every provider exposes the same ``send(contacts, subject, body)`` call and
raises NotificationError when the message could not be handed off.
"""

import os
import json
import logging
from typing import Dict, List

import requests

from zipkeeper.config import BackupConfig, Contact


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


class NotificationError(Exception):
    """Raised when an email provider fails to accept a message."""
    pass


def _http_timeout() -> float:
    value = os.environ.get('ZIPKEEPER_HTTP_TIMEOUT')
    if not value:
        return float(DEFAULT_TIMEOUT)

    try:
        timeout = float(value)
    except ValueError:
        timeout = 0

    if timeout <= 0:
        logger.warning(
            f"Invalid ZIPKEEPER_HTTP_TIMEOUT '{value}', using {DEFAULT_TIMEOUT} seconds"
        )
        return float(DEFAULT_TIMEOUT)
    return timeout


class NotificationProvider:
    """Base class for email providers posting a JSON body to an HTTP API."""

    name = 'provider'
    url = ''

    def __init__(self, api_key: str):
        self.api_key = api_key

    def build_payload(self, contacts: List[Contact], subject: str, body: str) -> dict:
        raise NotImplementedError

    def build_headers(self) -> Dict[str, str]:
        raise NotImplementedError

    def send(self, contacts: List[Contact], subject: str, body: str):
        """
        Send one plain-text message to all contacts.

        Raises:
            NotificationError: If the key is missing, the request fails or
                the provider answers with a non-2xx status
        """
        if not self.api_key:
            raise NotificationError(f"No {self.name} API key for report email.")
        if not contacts:
            raise NotificationError(f"No contacts to send {self.name} report email to.")

        request_body = json.dumps(self.build_payload(contacts, subject, body))
        headers = self.build_headers()
        headers['Content-Type'] = 'application/json'

        try:
            response = requests.post(
                self.url,
                data=request_body,
                headers=headers,
                timeout=_http_timeout(),
            )
        except requests.RequestException as e:
            raise NotificationError(f"{self.name} request failed: {e}")

        if response.status_code // 100 != 2:
            try:
                response_body = response.text
            except Exception:
                # Not critical; use failover body
                response_body = 'Error retrieving response body'

            raise NotificationError(
                f'{self.name} returned non-200 status code "{response.status_code}".\n\n'
                f'Response body: "{response_body}".\n\n'
                f'Request body: "{request_body}"'
            )


class SendGridProvider(NotificationProvider):
    """SendGrid v3 mail send API."""

    name = 'SendGrid'
    url = 'https://api.sendgrid.com/v3/mail/send'

    def __init__(self, api_key: str, from_address: str):
        super().__init__(api_key)
        self.from_address = from_address

    def build_headers(self) -> Dict[str, str]:
        return {'Authorization': f'Bearer {self.api_key}'}

    def build_payload(self, contacts: List[Contact], subject: str, body: str) -> dict:
        return {
            'personalizations': [{
                'to': [{'name': c.name, 'email': c.email} for c in contacts]
            }],
            'from': {'email': self.from_address},
            'subject': subject,
            'content': [{
                'type': 'text/plain',
                'value': body
            }]
        }


class SalesScribeProvider(NotificationProvider):
    """SalesScribe integration API."""

    name = 'SalesScribe'
    url = 'https://integrate.salesscribe.com/v1'

    def build_headers(self) -> Dict[str, str]:
        return {'ApiKey2': self.api_key}

    def build_payload(self, contacts: List[Contact], subject: str, body: str) -> dict:
        # Template data is addressed to the first contact and sent as a JSON string
        dynamic_data = {
            'email': contacts[0].email,
            'fullName': contacts[0].name,
            'subject': subject,
            'message': body
        }
        return {
            'DynamicDataJson': json.dumps(dynamic_data),
            'ToAddresses': [{'name': c.name, 'address': c.email} for c in contacts]
        }


def enabled_providers(config: BackupConfig) -> List[NotificationProvider]:
    """
    Build the providers switched on in the configuration.

    Order: SalesScribe, then SendGrid.
    """
    providers = []
    if config.sales_scribe_enable:
        providers.append(SalesScribeProvider(config.sales_scribe_api_key))
    if config.send_grid_enable:
        providers.append(SendGridProvider(config.send_grid_api_key, config.send_grid_from_address))
    return providers
