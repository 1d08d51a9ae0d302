"""
Shared pytest fixtures for the link summarizer tests.
"""

import pytest
import sys
import importlib.util
from pathlib import Path
from unittest.mock import MagicMock

# Project root for finding the Cloud Function module
PROJECT_ROOT = Path(__file__).parent.parent


def _load_module_from_path(module_name: str, file_path: Path):
    """Load a module from a specific file path."""
    spec = importlib.util.spec_from_file_location(module_name, file_path)
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)
    return module


# Load the Cloud Function module with a unique name at module load time
_link_summarizer_module = _load_module_from_path(
    'link_summarizer_main',
    PROJECT_ROOT / 'link-summarizer' / 'main.py'
)

from summarize.firecrawl import FirecrawlScrapeResult  # noqa: E402
from summarize.transcripts import ProviderId, ProviderResult, TranscriptProvider  # noqa: E402

ENV_VARS = (
    'OPENAI_API_KEY',
    'OPENAI_BASE_URL',
    'SUMMARIZE_MODEL',
    'FIRECRAWL_API_KEY',
    'APIFY_API_TOKEN',
    'ASSEMBLYAI_API_KEY',
    'SUMMARIZE_MIN_TEXT_LENGTH',
    'SUMMARIZE_CONFIG',
)

OPENAI_URL = 'https://api.openai.com/v1/chat/completions'


# ============================================================================
# Cloud Function Fixtures
# ============================================================================

@pytest.fixture
def link_summarizer_module():
    """Returns the loaded link-summarizer module."""
    return _link_summarizer_module


@pytest.fixture
def summarize_link():
    """Returns main entry point from link-summarizer."""
    return _link_summarizer_module.summarize_link


@pytest.fixture
def mock_flask_request():
    """Factory for creating mock Flask request objects."""
    class MockRequest:
        def __init__(self, json_data=None, method='POST'):
            self._json = json_data or {}
            self.method = method
            self.data = b''

        def get_json(self, force=False, silent=False):
            return self._json

    return MockRequest


@pytest.fixture
def clean_env(monkeypatch):
    """Removes summarizer env vars; returns monkeypatch for setting them."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


# ============================================================================
# HTML Fixtures
# ============================================================================

@pytest.fixture
def openai_url():
    return OPENAI_URL


@pytest.fixture
def article_html():
    """A normal article page with enough text to be usable."""
    paragraph = 'A' * 260
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <title>Ten Python Tips | Example Blog</title>
        <meta property="og:title" content="Ten Python Tips You Should Know">
        <meta property="og:site_name" content="Example Blog">
        <meta name="description" content="Learn essential Python tips">
    </head>
    <body>
        <nav>Home | About</nav>
        <article>
            <h1>Ten Python Tips You Should Know</h1>
            <p>{paragraph}</p>
        </article>
        <footer>Copyright</footer>
    </body>
    </html>
    """


@pytest.fixture
def cloudflare_html():
    """A Cloudflare interstitial page."""
    return """
    <!DOCTYPE html>
    <html>
    <head><title>Attention Required! | Cloudflare</title></head>
    <body>
        <h1>Sorry, you have been blocked</h1>
        <p>Please enable cookies.</p>
    </body>
    </html>
    """


@pytest.fixture
def short_html():
    """A page that loads fine but has almost no text."""
    return '<html><head><title>Loading</title></head><body><p>Loading...</p></body></html>'


# ============================================================================
# Collaborator Fakes
# ============================================================================

@pytest.fixture
def fake_scraper():
    """Factory for a Firecrawl scraper mock returning the given markdown."""
    def _make(markdown='Rendered by Firecrawl', metadata=None):
        if markdown is None:
            return MagicMock(return_value=None)
        return MagicMock(return_value=FirecrawlScrapeResult(
            markdown=markdown,
            html=None,
            metadata=metadata or {},
        ))
    return _make


class StaticProvider(TranscriptProvider):
    """Provider that returns a canned result and records its calls."""

    def __init__(self, provider_id, text=None, handles=True, error=None,
                 modes=('auto', 'web', 'no-auto', 'yt-dlp', 'apify'), name=None):
        self.id = provider_id
        self.name = name or provider_id.value
        self.modes = modes
        self.text = text
        self.handles = handles
        self.error = error
        self.calls = []

    def can_handle(self, context):
        return self.handles

    def fetch_transcript(self, context, options):
        self.calls.append(context)
        if self.error is not None:
            raise self.error
        if self.text is None:
            return self.unavailable('no_transcript')
        return ProviderResult(text=self.text, source=self.id, metadata={'provider': self.name})


@pytest.fixture
def static_provider():
    """Factory for StaticProvider instances."""
    return StaticProvider


@pytest.fixture
def provider_ids():
    return ProviderId
