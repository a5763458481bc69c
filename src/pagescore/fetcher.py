"""Single-page fetch. Downloads one URL and wraps it as a Document."""

import logging
from typing import Optional

import requests

from pagescore.config import FetchOptions
from pagescore.document import Document, NavigationTiming
from pagescore.exceptions import FetchError

logger = logging.getLogger(__name__)


def fetch_document(
    url: str,
    options: Optional[FetchOptions] = None,
    session: Optional[requests.Session] = None,
) -> Document:
    """Download url and build a Document.

    The response time of the HTML request is recorded as the load time;
    no other timing is measured.

    Args:
        url: Page to download
        options: User agent, timeout and TLS verification
        session: Session to reuse; a new one is created when omitted

    Returns:
        Document for the final (post-redirect) URL

    Raises:
        FetchError: On network errors and non-2xx responses
    """
    options = options or FetchOptions.from_env()
    session = session or requests.Session()
    session.headers.update({"User-Agent": options.user_agent})

    try:
        response = session.get(url, timeout=options.timeout, verify=options.verify_ssl)
        response.raise_for_status()
    except requests.exceptions.HTTPError as e:
        raise FetchError(url, f"HTTP {e.response.status_code}") from e
    except requests.exceptions.Timeout as e:
        raise FetchError(url, f"timed out after {options.timeout}s") from e
    except requests.exceptions.RequestException as e:
        raise FetchError(url, str(e)) from e

    elapsed_ms = response.elapsed.total_seconds() * 1000
    logger.info(f"Fetched {response.url} ({len(response.content)} bytes in {elapsed_ms:.0f} ms)")

    return Document(
        response.text,
        url=response.url,
        timing=NavigationTiming(load_time=elapsed_ms, response_time=elapsed_ms),
    )
