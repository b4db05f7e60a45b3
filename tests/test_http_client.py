"""
Unit tests for the HTTP transport.
"""

from unittest.mock import Mock, patch

import pytest
import requests

from crawlkit.config import HTTPConfig
from crawlkit.crawlers import HTTPClient
from crawlkit.utils.errors import FetchError


URL = "https://example.com/page"


class TestHTTPClient:
    """Test request sending and error mapping."""

    def test_send_merges_default_headers(self, make_response):
        client = HTTPClient(user_agent="crawlkit-test/1.0")
        with patch.object(client.session, "send", return_value=make_response(URL, "<p>x</p>")) as send:
            request = requests.Request("GET", URL, headers={"Accept-Language": "pt-BR"})
            response = client.send(request)

        prepared = send.call_args[0][0]
        assert response.status_code == 200
        assert prepared.headers["User-Agent"] == "crawlkit-test/1.0"
        assert prepared.headers["Accept-Language"] == "pt-BR"
        assert prepared.url == URL
        assert send.call_args[1]["timeout"] == client.timeout
        client.close()

    def test_connection_error_becomes_fetch_error(self):
        client = HTTPClient()
        with patch.object(client.session, "send", side_effect=requests.exceptions.ConnectionError("refused")):
            with pytest.raises(FetchError) as exc_info:
                client.send(requests.Request("GET", URL))

        assert exc_info.value.details["url"] == URL
        assert isinstance(exc_info.value.__cause__, requests.exceptions.ConnectionError)
        client.close()

    def test_timeout_becomes_fetch_error(self):
        client = HTTPClient(timeout=0.5)
        with patch.object(client.session, "send", side_effect=requests.exceptions.Timeout("slow")):
            with pytest.raises(FetchError):
                client.send(requests.Request("GET", URL))
        client.close()

    def test_error_status_becomes_fetch_error(self, make_response):
        client = HTTPClient()
        with patch.object(client.session, "send", return_value=make_response(URL, "gone", status_code=404)):
            with pytest.raises(FetchError) as exc_info:
                client.send(requests.Request("GET", URL))

        assert exc_info.value.details["status_code"] == 404
        client.close()

    def test_from_config(self):
        config = HTTPConfig(request_timeout=5.0, retry_attempts=2, user_agent="ua-test")
        client = HTTPClient.from_config(config)

        assert client.timeout == 5.0
        assert client.retry_attempts == 2
        assert client.default_headers()["User-Agent"] == "ua-test"
        adapter = client.session.get_adapter("https://example.com")
        assert adapter.max_retries.total == 2
        client.close()

    def test_context_manager_closes_session(self):
        session = Mock()
        with HTTPClient(session=session) as client:
            assert client.session is session
        session.close.assert_called_once()
