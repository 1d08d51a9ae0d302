"""
Direct HTML fetching and page heuristics.

Fetches a page once, pulls readable text and metadata out of it with
BeautifulSoup, and decides whether the result is usable or a bot-challenge /
placeholder page that should be handed to the scraping fallback.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Tuple

import requests
from bs4 import BeautifulSoup

from .cleaner import normalize_candidate, normalize_for_prompt
from .errors import FetchError

logger = logging.getLogger(__name__)

USER_AGENT = 'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'

REQUEST_HEADERS = {
    'User-Agent': USER_AGENT,
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.5',
}

BLOCKED_SIGNATURES = (
    'attention required! | cloudflare',
    'just a moment...',
    'checking your browser before accessing',
    'verify you are human',
    'verifying you are human',
    'enable javascript and cookies to continue',
    "sign in to confirm you're not a bot",
)

_NON_CONTENT_TAGS = ['script', 'style', 'nav', 'footer', 'header', 'aside', 'noscript', 'template', 'svg']
_BLOCK_TAGS = ['p', 'div', 'li', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'br', 'tr', 'pre', 'blockquote', 'section']


@dataclass(frozen=True)
class BlockedContentRules:
    """Tunable thresholds for the "looks blocked" heuristic."""

    min_text_length: int = 200
    signatures: Tuple[str, ...] = BLOCKED_SIGNATURES
    # Challenge pages are short; only the head of long pages is scanned
    signature_window: int = 2000


@dataclass(frozen=True)
class BlockCheck:
    blocked: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class PageMetadata:
    title: Optional[str] = None
    description: Optional[str] = None
    site_name: Optional[str] = None


@dataclass(frozen=True)
class HtmlFetchResult:
    url: str
    html: Optional[str] = None
    status: Optional[int] = None
    error: Optional[str] = None
    text: str = ''
    metadata: PageMetadata = field(default_factory=PageMetadata)
    block: BlockCheck = field(default_factory=lambda: BlockCheck(False))

    @property
    def ok(self) -> bool:
        return self.html is not None and self.error is None

    @property
    def usable(self) -> bool:
        return self.ok and not self.block.blocked


def classify_page_text(text: str, rules: BlockedContentRules = BlockedContentRules(), title: str = None) -> BlockCheck:
    """
    Decide whether extracted page text looks like a real page.

    Returns BlockCheck(blocked, reason) where reason names the matched
    signature or the length rule.
    """
    haystack = f'{title or ""}\n{(text or "")[:rules.signature_window]}'.lower()
    for signature in rules.signatures:
        if signature.lower() in haystack:
            return BlockCheck(True, f'signature: {signature}')

    length = len((text or '').strip())
    if length < rules.min_text_length:
        return BlockCheck(True, f'too short: {length} < {rules.min_text_length} characters')

    return BlockCheck(False)


def extract_metadata(soup: BeautifulSoup) -> PageMetadata:
    """Extract title, description and site name from meta tags."""
    if not soup:
        return PageMetadata()

    og_title = soup.find('meta', property='og:title')
    twitter_title = soup.find('meta', attrs={'name': 'twitter:title'})
    title_tag = soup.find('title')
    h1_tag = soup.find('h1')

    title = (
        og_title.get('content') if og_title else
        twitter_title.get('content') if twitter_title else
        title_tag.get_text(strip=True) if title_tag else
        h1_tag.get_text(strip=True) if h1_tag else
        None
    )

    og_desc = soup.find('meta', property='og:description')
    meta_desc = soup.find('meta', attrs={'name': 'description'})
    description = (
        og_desc.get('content') if og_desc else
        meta_desc.get('content') if meta_desc else
        None
    )

    og_site = soup.find('meta', property='og:site_name')
    site_name = og_site.get('content') if og_site else None

    return PageMetadata(
        title=normalize_candidate(title),
        description=normalize_candidate(description),
        site_name=normalize_candidate(site_name),
    )


def extract_visible_text(soup: BeautifulSoup) -> str:
    """Extract readable text from the main content area, one block per line.

    The soup is modified in place.
    """
    if not soup:
        return ''

    for element in soup.find_all(_NON_CONTENT_TAGS):
        element.decompose()

    main_content = (
        soup.find('article') or
        soup.find('main') or
        soup.find(attrs={'class': re.compile(r'content|post|article|entry', re.I)}) or
        soup.find('body') or
        soup
    )

    for block in main_content.find_all(_BLOCK_TAGS):
        block.insert_before('\n')
        block.insert_after('\n')

    return normalize_for_prompt(main_content.get_text())


def parse_html(html: str) -> Tuple[str, PageMetadata]:
    """Return (visible_text, metadata) for an HTML document."""
    soup = BeautifulSoup(html or '', 'html.parser')
    metadata = extract_metadata(soup)
    return extract_visible_text(soup), metadata


def request_html(url: str, session: requests.Session, timeout_ms: int) -> Tuple[str, int]:
    """One GET for a page. Raises FetchError on network failure or non-2xx."""
    try:
        response = session.get(
            url,
            headers=REQUEST_HEADERS,
            timeout=timeout_ms / 1000.0,
            allow_redirects=True,
        )
        response.raise_for_status()
        return response.text, response.status_code
    except requests.exceptions.Timeout as e:
        raise FetchError('Request timed out') from e
    except requests.exceptions.HTTPError as e:
        status = e.response.status_code if e.response is not None else None
        raise FetchError(f'HTTP error: {status}', status=status) from e
    except requests.exceptions.RequestException as e:
        raise FetchError(f'Request failed: {str(e)}') from e


def fetch_html(
    url: str,
    session: requests.Session,
    timeout_ms: int,
    rules: BlockedContentRules = BlockedContentRules(),
) -> HtmlFetchResult:
    """
    Fetch a page and classify it.

    Never raises for network problems: failures come back with ``error`` set
    so the caller can move on to the next strategy. There is no retry here.
    """
    try:
        html, status = request_html(url, session, timeout_ms)
    except FetchError as e:
        logger.info('HTML fetch failed for %s: %s', url, e.message)
        return HtmlFetchResult(url=url, status=e.status, error=e.message)

    text, metadata = parse_html(html)
    block = classify_page_text(text, rules, title=metadata.title)
    if block.blocked:
        logger.info('HTML for %s looks blocked (%s)', url, block.reason)

    return HtmlFetchResult(
        url=url,
        html=html,
        status=status,
        text=text,
        metadata=metadata,
        block=block,
    )
