"""
HTTP transport used by the collector.
"""

from typing import Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from crawlkit.config import DEFAULT_USER_AGENT, HTTPConfig
from crawlkit.utils.errors import FetchError
from crawlkit.utils.logging import get_logger


logger = get_logger(__name__)


DEFAULT_HEADERS = {
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.5',
    'Connection': 'keep-alive',
}


class HTTPClient:
    """Sends prepared requests over a shared ``requests.Session``."""

    def __init__(self,
                 timeout: float = 30.0,
                 retry_attempts: int = 0,
                 backoff_factor: float = 0.5,
                 user_agent: str = DEFAULT_USER_AGENT,
                 session: Optional[requests.Session] = None):
        """
        Initialize HTTP client.

        Args:
            timeout: Request timeout in seconds
            retry_attempts: Transport-level retries for idempotent requests
            backoff_factor: urllib3 backoff factor between retries
            user_agent: Default User-Agent header
            session: Optional pre-built session (tests, shared pools)
        """
        self.timeout = timeout
        self.retry_attempts = retry_attempts
        self.backoff_factor = backoff_factor
        self.user_agent = user_agent
        self.session = session or self._create_session()

    @classmethod
    def from_config(cls, config: HTTPConfig) -> "HTTPClient":
        return cls(
            timeout=config.request_timeout,
            retry_attempts=config.retry_attempts,
            backoff_factor=config.backoff_factor,
            user_agent=config.user_agent
        )

    def _create_session(self) -> requests.Session:
        """Create requests session with retry configuration."""
        session = requests.Session()

        retry_strategy = Retry(
            total=self.retry_attempts,
            backoff_factor=self.backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["HEAD", "GET", "OPTIONS"],
            raise_on_status=False
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        return session

    def default_headers(self) -> Dict[str, str]:
        return {'User-Agent': self.user_agent, **DEFAULT_HEADERS}

    def send(self, request: requests.Request) -> requests.Response:
        """
        Send a request and return the successful response.

        Headers already set on ``request`` take precedence over the defaults.

        Raises:
            FetchError: On connection failure, timeout, or a non-2xx status
        """
        request.headers = {**self.default_headers(), **(request.headers or {})}
        prepared = self.session.prepare_request(request)

        try:
            logger.debug(f"Sending HTTP request: {prepared.method} {prepared.url}")
            response = self.session.send(prepared, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            status = getattr(getattr(e, "response", None), "status_code", None)
            logger.warning(f"HTTP request failed: {prepared.method} {prepared.url} ({e})")
            raise FetchError(
                f"Failed to fetch {prepared.url}: {e}",
                {"method": prepared.method, "url": prepared.url, "status_code": status}
            ) from e

        logger.debug(f"HTTP request successful: {prepared.method} {prepared.url} (status={response.status_code}, size={len(response.content)})")
        return response

    def close(self) -> None:
        """Close the HTTP session."""
        if self.session:
            self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
