#!/usr/bin/env python3
"""
HTTP client for the external accessibility scan engine.

The engine receives a URL and returns a score plus the list of violations
it found. The rule engine itself lives elsewhere.
"""

import os
import logging
from typing import Optional

import requests

from core.exceptions import ScanEngineError, ScanTimeoutError, ConfigurationError
from core.models.scan import EngineScan

logger = logging.getLogger(__name__)


class ScanEngineClient:
    """Calls the scan engine over HTTP."""

    def __init__(self, endpoint: Optional[str] = None, api_key: Optional[str] = None,
                 session: Optional[requests.Session] = None):
        """
        Initialize scan engine client.

        Args:
            endpoint: Scan endpoint URL. If None, read from SCAN_ENGINE_URL.
            api_key: Optional bearer token. If None, read from SCAN_ENGINE_API_KEY.
            session: Optional requests session (connection reuse, tests)
        """
        self.endpoint = endpoint or os.getenv('SCAN_ENGINE_URL')
        if not self.endpoint:
            raise ConfigurationError('SCAN_ENGINE_URL', 'scan engine endpoint not configured')

        self.api_key = api_key or os.getenv('SCAN_ENGINE_API_KEY')
        self.session = session or requests.Session()

    def scan(self, url: str, timeout: float) -> EngineScan:
        """
        Scan a URL.

        Args:
            url: Target page
            timeout: Seconds the engine may spend; also used as the HTTP timeout

        Returns:
            Parsed engine result

        Raises:
            ScanTimeoutError: The engine did not answer in time
            ScanEngineError: Transport failure, error status or malformed body
        """
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        payload = {"url": url, "timeout": timeout}

        try:
            response = self.session.post(
                self.endpoint,
                json=payload,
                headers=headers,
                timeout=timeout,
                verify=True
            )
        except requests.Timeout:
            raise ScanTimeoutError(url, timeout)
        except requests.RequestException as e:
            raise ScanEngineError(url, "request failed", e)

        if response.status_code != 200:
            logger.error(f"Scan engine returned {response.status_code} for {url}: {response.text[:200]}")
            raise ScanEngineError(url, f"engine returned HTTP {response.status_code}")

        try:
            body = response.json()
            result = EngineScan.from_dict(body)
        except (ValueError, TypeError, AttributeError) as e:
            raise ScanEngineError(url, "malformed engine response", e)

        logger.info(f"Scan of {url} finished: score {result.score:g}, {len(result.violations)} violations")
        return result
