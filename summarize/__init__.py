"""Link summarizer: fetch a URL's content and summarize it."""

from .cleaner import (
    ContentBudgetResult,
    apply_content_budget,
    clip_at_sentence_boundary,
    decode_html_entities,
    normalize_candidate,
    normalize_for_prompt,
    normalize_whitespace,
    strip_markdown,
)

from .config import (
    EnvConfig,
    ResolvedRunSettings,
    RunOverrides,
    apply_overrides,
    load_config_file,
    load_env_config,
    resolve_run_overrides,
    resolve_run_settings,
)

from .errors import (
    ConfigurationError,
    EmptyContentError,
    FetchError,
    RefusalError,
    RequestTimeoutError,
    SummarizeError,
    UpstreamError,
)

from .transcripts import (
    ProviderContext,
    ProviderId,
    ProviderOptions,
    ProviderResult,
    TranscriptDiagnostics,
    TranscriptProvider,
    TranscriptResolution,
    resolve_transcript,
)

from .providers import DEFAULT_PROVIDERS
from .twitter import is_twitter_status_url, to_nitter_urls
from .webpage import BlockCheck, BlockedContentRules, classify_page_text, fetch_html
from .firecrawl import FirecrawlScrapeResult, make_firecrawl_scraper

from .link_preview import (
    ContentFetchDiagnostics,
    ContentFetchResult,
    FetchOptions,
    FirecrawlDiagnostics,
    LinkPreviewClient,
)

from .cancellation import CancelToken
from .executor import ResilientRequestExecutor
from .pipeline import SummaryResult, summarize_url

__all__ = [
    # Content cleanup
    'ContentBudgetResult',
    'apply_content_budget',
    'clip_at_sentence_boundary',
    'decode_html_entities',
    'normalize_candidate',
    'normalize_for_prompt',
    'normalize_whitespace',
    'strip_markdown',
    # Configuration
    'EnvConfig',
    'ResolvedRunSettings',
    'RunOverrides',
    'apply_overrides',
    'load_config_file',
    'load_env_config',
    'resolve_run_overrides',
    'resolve_run_settings',
    # Errors
    'ConfigurationError',
    'EmptyContentError',
    'FetchError',
    'RefusalError',
    'RequestTimeoutError',
    'SummarizeError',
    'UpstreamError',
    # Transcripts
    'DEFAULT_PROVIDERS',
    'ProviderContext',
    'ProviderId',
    'ProviderOptions',
    'ProviderResult',
    'TranscriptDiagnostics',
    'TranscriptProvider',
    'TranscriptResolution',
    'resolve_transcript',
    # Content fetching
    'BlockCheck',
    'BlockedContentRules',
    'ContentFetchDiagnostics',
    'ContentFetchResult',
    'FetchOptions',
    'FirecrawlDiagnostics',
    'FirecrawlScrapeResult',
    'LinkPreviewClient',
    'classify_page_text',
    'fetch_html',
    'is_twitter_status_url',
    'make_firecrawl_scraper',
    'to_nitter_urls',
    # Summarization
    'CancelToken',
    'ResilientRequestExecutor',
    'SummaryResult',
    'summarize_url',
]
