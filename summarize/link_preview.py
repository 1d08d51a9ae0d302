"""
Link content acquisition.

LinkPreviewClient turns one URL into prompt-ready text. Media URLs go through
the transcript provider chain first; everything else (and media pages without
a transcript) goes through direct HTML with an optional Firecrawl fallback:

    off     HTML only, even when the page looks blocked
    auto    HTML, then Firecrawl when HTML failed or looks blocked
    always  Firecrawl only; requires FIRECRAWL_API_KEY
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

import requests

from .cleaner import count_words, normalize_candidate, normalize_for_prompt, strip_markdown
from .errors import ConfigurationError, FetchError
from .firecrawl import FirecrawlScrapeResult, ScrapeWithFirecrawl
from .providers import DEFAULT_PROVIDERS, is_transcript_url, resource_key_for
from .transcripts import (
    ProviderContext,
    ProviderOptions,
    TranscriptDiagnostics,
    TranscriptProvider,
    TranscriptResolution,
    resolve_transcript,
)
from .twitter import is_twitter_status_url, to_nitter_urls
from .webpage import BlockedContentRules, HtmlFetchResult, fetch_html

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchOptions:
    timeout_ms: int = 120_000
    firecrawl_mode: str = 'auto'
    transcript_mode: str = 'auto'
    markdown_mode: str = 'off'


@dataclass(frozen=True)
class FirecrawlDiagnostics:
    attempted: bool = False
    used: bool = False
    notes: Optional[str] = None

    def to_dict(self) -> dict:
        return {'attempted': self.attempted, 'used': self.used, 'notes': self.notes}


@dataclass(frozen=True)
class ContentFetchDiagnostics:
    strategy: str
    firecrawl: FirecrawlDiagnostics = field(default_factory=FirecrawlDiagnostics)
    transcript: TranscriptDiagnostics = field(default_factory=TranscriptDiagnostics)

    def to_dict(self) -> dict:
        return {
            'strategy': self.strategy,
            'firecrawl': self.firecrawl.to_dict(),
            'transcript': self.transcript.to_dict(),
        }


@dataclass(frozen=True)
class ContentFetchResult:
    url: str
    content: str
    diagnostics: ContentFetchDiagnostics
    title: Optional[str] = None
    description: Optional[str] = None
    site_name: Optional[str] = None
    total_characters: int = 0
    word_count: int = 0
    transcript_characters: Optional[int] = None
    transcript_source: Optional[str] = None


class LinkPreviewClient:
    """
    Fetches content for a single URL.

    All collaborators are injected: the HTTP session, the optional Firecrawl
    scraper, provider credentials and the ordered provider tuple. A client
    holds no per-call state, and each call builds its own diagnostics.
    """

    def __init__(
        self,
        session: requests.Session = None,
        scrape_with_firecrawl: Optional[ScrapeWithFirecrawl] = None,
        apify_api_token: Optional[str] = None,
        assemblyai_api_key: Optional[str] = None,
        providers: Sequence[TranscriptProvider] = DEFAULT_PROVIDERS,
        block_rules: BlockedContentRules = BlockedContentRules(),
    ):
        self.session = session or requests.Session()
        self.scrape_with_firecrawl = scrape_with_firecrawl
        self.apify_api_token = apify_api_token
        self.assemblyai_api_key = assemblyai_api_key
        self.providers = tuple(providers)
        self.block_rules = block_rules

    def fetch_link_content(self, url: str, options: FetchOptions = FetchOptions()) -> ContentFetchResult:
        if options.firecrawl_mode == 'always' and self.scrape_with_firecrawl is None:
            raise ConfigurationError('--firecrawl always requires FIRECRAWL_API_KEY')

        prefetched = None
        transcript_diagnostics = TranscriptDiagnostics()

        if is_transcript_url(url):
            # Seed providers with the page; reused below if no transcript turns up
            if options.firecrawl_mode != 'always':
                prefetched = fetch_html(url, self.session, options.timeout_ms, self.block_rules)

            resolution = resolve_transcript(
                ProviderContext(
                    url=url,
                    html=prefetched.html if prefetched else None,
                    resource_key=resource_key_for(url),
                ),
                self.providers,
                ProviderOptions(
                    session=self.session,
                    transcript_mode=options.transcript_mode,
                    timeout_ms=options.timeout_ms,
                    apify_api_token=self.apify_api_token,
                    assemblyai_api_key=self.assemblyai_api_key,
                ),
            )
            transcript_diagnostics = resolution.diagnostics
            if resolution.text:
                return self._transcript_result(url, resolution, prefetched)

        if options.firecrawl_mode == 'always':
            return self._firecrawl_only(url, options, transcript_diagnostics)

        page = self._fetch_page(url, options, prefetched)
        if page.usable or options.firecrawl_mode == 'off':
            return self._html_result(url, page, FirecrawlDiagnostics(), transcript_diagnostics)

        if self.scrape_with_firecrawl is None:
            notes = 'Firecrawl not configured (set FIRECRAWL_API_KEY)'
            return self._html_result(url, page, FirecrawlDiagnostics(notes=notes), transcript_diagnostics)

        logger.info('Falling back to Firecrawl for %s', url)
        scraped, notes = self._scrape(url, options)
        if scraped is None:
            return self._html_result(
                url, page, FirecrawlDiagnostics(attempted=True, notes=notes), transcript_diagnostics,
            )

        return self._firecrawl_result(
            url,
            scraped,
            options,
            FirecrawlDiagnostics(attempted=True, used=True),
            transcript_diagnostics,
            page,
        )

    def _fetch_page(self, url: str, options: FetchOptions, prefetched: HtmlFetchResult = None) -> HtmlFetchResult:
        page = prefetched or fetch_html(url, self.session, options.timeout_ms, self.block_rules)
        if page.usable or not is_twitter_status_url(url):
            return page

        for mirror in to_nitter_urls(url):
            logger.info('Trying Nitter mirror %s', mirror)
            candidate = fetch_html(mirror, self.session, options.timeout_ms, self.block_rules)
            if candidate.usable:
                return candidate
        return page

    def _scrape(self, url: str, options: FetchOptions):
        try:
            scraped = self.scrape_with_firecrawl(url, options.timeout_ms)
        except FetchError as e:
            logger.warning('Firecrawl failed for %s: %s', url, e.message)
            return None, e.message

        if scraped is None or not (scraped.markdown or '').strip():
            return None, 'Firecrawl returned no content'
        return scraped, None

    def _firecrawl_only(self, url, options, transcript_diagnostics):
        scraped, notes = self._scrape(url, options)
        if scraped is None:
            return ContentFetchResult(
                url=url,
                content='',
                diagnostics=ContentFetchDiagnostics(
                    strategy='firecrawl',
                    firecrawl=FirecrawlDiagnostics(attempted=True, used=False, notes=notes),
                    transcript=transcript_diagnostics,
                ),
            )
        return self._firecrawl_result(
            url, scraped, options, FirecrawlDiagnostics(attempted=True, used=True), transcript_diagnostics,
        )

    def _firecrawl_result(
        self,
        url: str,
        scraped: FirecrawlScrapeResult,
        options: FetchOptions,
        firecrawl: FirecrawlDiagnostics,
        transcript_diagnostics: TranscriptDiagnostics,
        page: HtmlFetchResult = None,
    ) -> ContentFetchResult:
        if options.markdown_mode == 'off':
            content = strip_markdown(scraped.markdown)
        else:
            content = scraped.markdown.strip()

        metadata = scraped.metadata or {}
        page_meta = page.metadata if page else None
        return ContentFetchResult(
            url=url,
            content=content,
            diagnostics=ContentFetchDiagnostics(
                strategy='firecrawl', firecrawl=firecrawl, transcript=transcript_diagnostics,
            ),
            title=normalize_candidate(metadata.get('title')) or (page_meta.title if page_meta else None),
            description=(
                normalize_candidate(metadata.get('description'))
                or (page_meta.description if page_meta else None)
            ),
            site_name=normalize_candidate(metadata.get('ogSiteName')) or (page_meta.site_name if page_meta else None),
            total_characters=len(content),
            word_count=count_words(content),
        )

    def _html_result(self, url, page, firecrawl, transcript_diagnostics) -> ContentFetchResult:
        content = page.text if page.ok else ''
        return ContentFetchResult(
            url=url,
            content=content,
            diagnostics=ContentFetchDiagnostics(
                strategy='html', firecrawl=firecrawl, transcript=transcript_diagnostics,
            ),
            title=page.metadata.title,
            description=page.metadata.description,
            site_name=page.metadata.site_name,
            total_characters=len(content),
            word_count=count_words(content),
        )

    def _transcript_result(self, url, resolution: TranscriptResolution, page) -> ContentFetchResult:
        content = normalize_for_prompt(resolution.text)
        return ContentFetchResult(
            url=url,
            content=content,
            diagnostics=ContentFetchDiagnostics(strategy='html', transcript=resolution.diagnostics),
            title=page.metadata.title if page else None,
            description=page.metadata.description if page else None,
            site_name=page.metadata.site_name if page else None,
            total_characters=len(content),
            word_count=count_words(content),
            transcript_characters=len(content),
            transcript_source=resolution.source.value if resolution.source else None,
        )
