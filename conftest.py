"""
Pytest configuration and fixtures for crawlkit tests.
"""

import logging
import os
from typing import Callable, Dict, List, Optional

import pytest
import requests
from hypothesis import settings, Verbosity

from crawlkit.utils.errors import FetchError

# Configure Hypothesis for faster test runs
settings.register_profile("fast", max_examples=25, deadline=5000, verbosity=Verbosity.quiet)
settings.register_profile("thorough", max_examples=200, deadline=30000, verbosity=Verbosity.normal)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "fast"))


DEPUTIES_HTML = """
<html>
  <body>
    <form>
      <select id="deputado" class="form-control">
        <option value="">Todos</option>
        <option value="1">Jane Doe (PP-SP)</option>
        <option value="2">John Roe (PT-RJ)</option>
      </select>
    </form>
  </body>
</html>
"""


COSTS_HTML = """
<html>
  <body>
    <section id="cota">
      <table id="js-tipo-despesa" class="js-chart--pie table">
        <tbody>
          <tr><td>Passagens</td><td>1.234,56</td></tr>
          <tr><td>Telefonia</td><td>78,90</td></tr>
        </tbody>
      </table>
    </section>
    <div class="remuneracao-viagens">
      <div id="remuneracao"><p class="remuneracao-viagens__desc">R$ 41.650,92</p></div>
    </div>
  </body>
</html>
"""


def make_response(url: str, body: str, status_code: int = 200) -> requests.Response:
    """Build a real ``requests.Response`` without touching the network."""
    response = requests.Response()
    response.status_code = status_code
    response.url = url
    response._content = body.encode("utf-8")
    response.encoding = "utf-8"
    return response


class FakeHTTPClient:
    """In-memory transport keyed by URL; unknown URLs raise ``FetchError``."""

    def __init__(self, pages: Optional[Dict[str, str]] = None):
        self.pages = dict(pages or {})
        self.sent: List[requests.Request] = []

    def send(self, request: requests.Request) -> requests.Response:
        self.sent.append(request)
        if request.url not in self.pages:
            raise FetchError(f"No page for {request.url}", {"url": request.url})
        return make_response(request.url, self.pages[request.url])

    def close(self) -> None:
        pass


@pytest.fixture
def deputies_html() -> str:
    return DEPUTIES_HTML


@pytest.fixture
def costs_html() -> str:
    return COSTS_HTML


@pytest.fixture
def fake_http_client() -> Callable[..., FakeHTTPClient]:
    """Factory for in-memory transports."""
    return FakeHTTPClient


@pytest.fixture(name="make_response")
def make_response_fixture() -> Callable[..., requests.Response]:
    return make_response


def pytest_configure(config):
    """Configure pytest with custom settings."""
    config.addinivalue_line("markers", "property: property-based test")
    config.addinivalue_line("markers", "slow: timing-dependent concurrency test")

    logging.getLogger("crawlkit").setLevel(logging.WARNING)
    logging.getLogger("hypothesis").setLevel(logging.WARNING)


def pytest_collection_modifyitems(config, items):
    """Mark property-based tests."""
    for item in items:
        if "propert" in item.name.lower() or "propert" in item.fspath.basename:
            item.add_marker(pytest.mark.property)
