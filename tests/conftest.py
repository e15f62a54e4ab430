"""
Pytest fixtures and configuration for browser-tools tests.

=============================================================================
Test Classification
=============================================================================

Primary Markers:
- @pytest.mark.unit: Single class/function, no external dependencies
  - Fast (<1s per test)
  - Playwright objects are AsyncMock fakes, processes are fakes
  - DEFAULT: Tests without marker are auto-classified as unit

- @pytest.mark.integration: Several components together, still no real browser
  - Real loopback sockets and temp directories are allowed

- @pytest.mark.e2e: Real Chrome/Chromium and network access
  - DEFAULT EXCLUDED (pyproject addopts): run with `pytest -m e2e`
  - Skipped automatically when no browser executable is found

=============================================================================
Isolation
=============================================================================

Every test gets its own BROWSER_TOOLS_HOME under tmp_path, and the cached
settings are cleared before and after, so no test touches ~/.browser-tools.
"""

from collections.abc import Generator
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from browser_tools.browser.session import SessionContext
from browser_tools.browser.session_store import SessionStore
from browser_tools.utils.config import Settings, get_settings


def pytest_configure(config):
    """Register custom markers for test classification."""
    config.addinivalue_line(
        "markers", "unit: Unit tests with no external dependencies (fast, <1s/test)"
    )
    config.addinivalue_line(
        "markers", "integration: Multiple components with loopback sockets / temp files"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests requiring a real Chrome (excluded by default)"
    )


def pytest_collection_modifyitems(config, items):
    """Tests without an explicit classification are unit tests."""
    for item in items:
        has_classification = any(
            marker.name in ("unit", "integration", "e2e") for marker in item.iter_markers()
        )
        if not has_classification:
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path]:
    """Point BROWSER_TOOLS_HOME at a fresh directory for each test."""
    home = tmp_path / "browser-tools-home"
    monkeypatch.setenv("BROWSER_TOOLS_HOME", str(home))
    get_settings.cache_clear()
    yield home
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Fast settings: tiny backoff and short readiness windows."""
    return Settings(
        browser={
            "startup_timeout": 1.0,
            "probe_interval": 0.02,
            "probe_timeout": 0.2,
            "terminate_grace": 0.2,
        },
        retry={"max_attempts": 3, "initial_delay": 0.001, "max_delay": 0.002},
        scraping={"wait_timeout": 0.1},
    )


@pytest.fixture
def session_store(isolated_home: Path) -> SessionStore:
    return SessionStore(isolated_home / "ws.json")


@pytest.fixture
def mock_page() -> AsyncMock:
    """Create mock Playwright page."""
    page = AsyncMock()
    page.url = "https://example.com/"
    page.goto = AsyncMock(return_value=MagicMock(status=200))
    page.wait_for_selector = AsyncMock()
    page.query_selector_all = AsyncMock(return_value=[])
    page.content = AsyncMock(return_value="<html><body>Test</body></html>")
    page.title = AsyncMock(return_value="Example")
    page.screenshot = AsyncMock(return_value=b"\x89PNG\r\n\x1a\nfake")
    page.close = AsyncMock()
    return page


@pytest.fixture
def mock_context(mock_page: AsyncMock) -> AsyncMock:
    """Create mock Playwright context."""
    context = AsyncMock()
    context.new_page = AsyncMock(return_value=mock_page)
    context.cookies = AsyncMock(return_value=[])
    context.pages = [mock_page]
    return context


@pytest.fixture
def mock_session(mock_page: AsyncMock, mock_context: AsyncMock) -> SessionContext:
    """Persistent-style session over mock Playwright objects."""
    playwright = AsyncMock()
    playwright.stop = AsyncMock()
    browser = AsyncMock()
    browser.contexts = [mock_context]
    return SessionContext(
        playwright=playwright,
        browser=browser,
        context=mock_context,
        page=mock_page,
        endpoint="ws://127.0.0.1:9222",
    )


def make_element(
    text: str = "",
    attrs: dict[str, str] | None = None,
    children: dict[str, "AsyncMock | None"] | None = None,
) -> AsyncMock:
    """Fake ElementHandle.

    Args:
        text: inner_text / text_content value
        attrs: get_attribute values
        children: selector -> element returned by query_selector
    """
    attrs = attrs or {}
    children = children or {}
    element = AsyncMock()
    element.inner_text = AsyncMock(return_value=text)
    element.text_content = AsyncMock(return_value=text)
    element.get_attribute = AsyncMock(side_effect=lambda name: attrs.get(name))
    element.query_selector = AsyncMock(side_effect=lambda selector: children.get(selector))
    element.query_selector_all = AsyncMock(
        side_effect=lambda selector: [children[selector]] if children.get(selector) else []
    )
    element.is_visible = AsyncMock(return_value=True)
    return element


@pytest.fixture
def element_factory():
    """Factory fixture for fake ElementHandles (see make_element)."""
    return make_element
