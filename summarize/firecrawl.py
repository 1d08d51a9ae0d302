"""
Firecrawl scraping client.

Firecrawl renders a page server-side and returns cleaned markdown. It is the
fallback for pages that block plain HTTP clients.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

import requests

from .errors import FetchError

logger = logging.getLogger(__name__)

FIRECRAWL_SCRAPE_URL = 'https://api.firecrawl.dev/v1/scrape'


@dataclass(frozen=True)
class FirecrawlScrapeResult:
    markdown: str
    html: Optional[str] = None
    metadata: dict = field(default_factory=dict)


# (url, timeout_ms) -> FirecrawlScrapeResult | None
ScrapeWithFirecrawl = Callable[[str, int], Optional[FirecrawlScrapeResult]]


def make_firecrawl_scraper(api_key: str, session: requests.Session = None) -> Optional[ScrapeWithFirecrawl]:
    """Build a scraper bound to an API key. Returns None when no key is configured."""
    if not api_key:
        return None
    session = session or requests.Session()

    def scrape(url: str, timeout_ms: int) -> Optional[FirecrawlScrapeResult]:
        try:
            response = session.post(
                FIRECRAWL_SCRAPE_URL,
                headers={
                    'Authorization': f'Bearer {api_key}',
                    'Content-Type': 'application/json',
                },
                json={
                    'url': url,
                    'formats': ['markdown', 'html'],
                    'onlyMainContent': True,
                    'timeout': timeout_ms,
                },
                timeout=timeout_ms / 1000.0,
            )
            response.raise_for_status()
        except requests.exceptions.Timeout as e:
            raise FetchError('Firecrawl request timed out') from e
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise FetchError(f'Firecrawl HTTP error: {status}', status=status) from e
        except requests.exceptions.RequestException as e:
            raise FetchError(f'Firecrawl request failed: {str(e)}') from e

        try:
            payload = response.json()
        except ValueError as e:
            raise FetchError('Firecrawl returned invalid JSON') from e

        if not isinstance(payload, dict):
            raise FetchError('Firecrawl returned an unexpected response')
        if not payload.get('success', True):
            raise FetchError(f"Firecrawl scrape failed: {payload.get('error') or 'unknown error'}")

        data = payload.get('data') or {}
        markdown = data.get('markdown')
        if not isinstance(markdown, str) or not markdown.strip():
            logger.info('Firecrawl returned no markdown for %s', url)
            return None

        return FirecrawlScrapeResult(
            markdown=markdown,
            html=data.get('html'),
            metadata=data.get('metadata') or {},
        )

    return scrape
