#!/usr/bin/env python3
"""
Email notification sender for scheduled monitoring reports.

Posts plain-text messages to an HTTP email API.
"""

import os
import logging
from typing import List, Optional

import requests

from core.exceptions import NotificationError, ConfigurationError

logger = logging.getLogger(__name__)


class NotificationSender:
    """Sends report emails through an HTTP email API."""

    def __init__(self, api_url: Optional[str] = None, api_key: Optional[str] = None,
                 sender: Optional[str] = None, timeout: int = 10):
        """
        Initialize notification sender.

        Args:
            api_url: Email API endpoint. If None, read from NOTIFICATION_API_URL.
            api_key: API key. If None, read from NOTIFICATION_API_KEY.
            sender: From address. If None, read from NOTIFICATION_FROM.
            timeout: HTTP timeout in seconds
        """
        self.api_url = api_url or os.getenv('NOTIFICATION_API_URL')
        self.api_key = api_key or os.getenv('NOTIFICATION_API_KEY')
        if not self.api_url or not self.api_key:
            raise ConfigurationError('NOTIFICATION_API_URL', 'email API url and key are required')

        self.sender = sender or os.getenv('NOTIFICATION_FROM', 'monitoring@localhost')
        self.timeout = timeout

    def send(self, recipients: List[str], subject: str, text: str) -> Optional[str]:
        """
        Send a message to all recipients.

        Args:
            recipients: Email addresses
            subject: Message subject
            text: Plain-text body

        Returns:
            Provider message id, or None when the provider returned none

        Raises:
            NotificationError: Delivery failed
        """
        if not recipients:
            return None

        payload = {
            "from": self.sender,
            "to": list(recipients),
            "subject": subject,
            "text": text
        }

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        try:
            response = requests.post(
                self.api_url,
                json=payload,
                headers=headers,
                timeout=self.timeout,
                verify=True
            )
        except requests.RequestException as e:
            raise NotificationError('email', e)

        if response.status_code not in (200, 201, 202):
            raise NotificationError(
                'email', RuntimeError(f"HTTP {response.status_code}: {response.text[:200]}")
            )

        try:
            message_id = response.json().get('id')
        except ValueError:
            message_id = None

        logger.info(f"Report email sent to {len(recipients)} recipient(s)")
        return message_id
