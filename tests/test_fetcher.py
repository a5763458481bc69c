# tests/test_fetcher.py
"""Tests for the single-page fetcher."""

from datetime import timedelta
from unittest.mock import Mock

import pytest
import requests

from pagescore.config import FetchOptions
from pagescore.exceptions import FetchError
from pagescore.fetcher import fetch_document


@pytest.fixture
def session():
    """Mock requests session returning a small page."""
    response = Mock()
    response.url = "https://example.com/final"
    response.text = "<html><head><title>Fetched</title></head><body>Hi</body></html>"
    response.content = response.text.encode("utf-8")
    response.elapsed = timedelta(milliseconds=250)
    response.raise_for_status = Mock()

    mock_session = Mock(spec=requests.Session)
    mock_session.headers = {}
    mock_session.get.return_value = response
    return mock_session


class TestFetchDocument:

    def test_builds_document(self, session):
        document = fetch_document("https://example.com/start", FetchOptions(), session=session)
        assert document.url == "https://example.com/final"
        assert document.soup.title.get_text() == "Fetched"
        assert document.timing.load_time == pytest.approx(250.0)
        assert document.timing.response_time == pytest.approx(250.0)
        assert document.timing.largest_contentful_paint is None

    def test_sends_user_agent_and_timeout(self, session):
        options = FetchOptions(user_agent="Agent/1.0", timeout=5, verify_ssl=False)
        fetch_document("https://example.com/", options, session=session)
        assert session.headers["User-Agent"] == "Agent/1.0"
        session.get.assert_called_once_with("https://example.com/", timeout=5, verify=False)

    def test_http_error(self, session):
        error_response = Mock(status_code=404)
        session.get.return_value.raise_for_status.side_effect = requests.exceptions.HTTPError(
            response=error_response
        )
        with pytest.raises(FetchError) as exc_info:
            fetch_document("https://example.com/missing", FetchOptions(), session=session)
        assert exc_info.value.reason == "HTTP 404"

    def test_timeout(self, session):
        session.get.side_effect = requests.exceptions.Timeout()
        with pytest.raises(FetchError) as exc_info:
            fetch_document("https://example.com/", FetchOptions(timeout=3), session=session)
        assert "timed out after 3s" in str(exc_info.value)

    def test_connection_error(self, session):
        session.get.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(FetchError) as exc_info:
            fetch_document("https://example.com/", FetchOptions(), session=session)
        assert exc_info.value.url == "https://example.com/"
