"""
Transcript provider chain.

A transcript is resolved by walking an ordered tuple of providers. Each
provider says whether it can handle the URL and, if so, tries to produce
text. The first provider that returns text wins; everything that was tried is
recorded in TranscriptDiagnostics.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

import requests

from .errors import FetchError

logger = logging.getLogger(__name__)


class ProviderId(str, enum.Enum):
    YOUTUBEI = 'youtubei'
    CAPTION_TRACKS = 'captionTracks'
    YT_DLP = 'yt-dlp'
    APIFY = 'apify'
    HTML = 'html'
    UNAVAILABLE = 'unavailable'
    UNKNOWN = 'unknown'


@dataclass(frozen=True)
class ProviderContext:
    url: str
    html: Optional[str] = None
    resource_key: Optional[str] = None


@dataclass(frozen=True)
class ProviderOptions:
    session: requests.Session
    transcript_mode: str = 'auto'
    timeout_ms: int = 120_000
    apify_api_token: Optional[str] = None
    assemblyai_api_key: Optional[str] = None


@dataclass(frozen=True)
class ProviderResult:
    text: Optional[str] = None
    source: Optional[ProviderId] = None
    metadata: dict = field(default_factory=dict)


@dataclass(frozen=True)
class TranscriptDiagnostics:
    text_provided: bool = False
    provider: Optional[ProviderId] = None
    attempted_providers: Tuple[ProviderId, ...] = ()
    notes: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'text_provided': self.text_provided,
            'provider': self.provider.value if self.provider else None,
            'attempted_providers': [p.value for p in self.attempted_providers],
            'notes': self.notes,
        }


@dataclass(frozen=True)
class TranscriptResolution:
    text: Optional[str] = None
    source: Optional[ProviderId] = None
    metadata: dict = field(default_factory=dict)
    diagnostics: TranscriptDiagnostics = field(default_factory=TranscriptDiagnostics)


class TranscriptProvider:
    """Base class for transcript providers.

    Subclasses set ``id``, ``name`` and the transcript ``modes`` they take
    part in, and implement can_handle / fetch_transcript. fetch_transcript
    returns a ProviderResult with ``text=None`` when it has nothing to offer
    and raises FetchError when an upstream call fails.
    """

    id = ProviderId.UNKNOWN
    name = 'unknown'
    modes = ('auto',)

    def can_handle(self, context: ProviderContext) -> bool:
        raise NotImplementedError

    def fetch_transcript(self, context: ProviderContext, options: ProviderOptions) -> ProviderResult:
        raise NotImplementedError

    def unavailable(self, reason: str, **extra) -> ProviderResult:
        return ProviderResult(text=None, source=None, metadata={'provider': self.name, 'reason': reason, **extra})

    def __repr__(self):
        return f'<{type(self).__name__} id={self.id.value}>'


def resolve_transcript(
    context: ProviderContext,
    providers: Sequence[TranscriptProvider],
    options: ProviderOptions,
) -> TranscriptResolution:
    """Try providers in order and return the first transcript found."""
    attempted = []
    notes = []

    for provider in providers:
        if options.transcript_mode not in provider.modes:
            continue
        if not provider.can_handle(context):
            continue

        attempted.append(provider.id)
        try:
            result = provider.fetch_transcript(context, options)
        except FetchError as e:
            logger.warning('Transcript provider %s failed for %s: %s', provider.name, context.url, e.message)
            notes.append(f'{provider.name}: {e.message}')
            continue
        except Exception as e:
            logger.warning('Transcript provider %s raised for %s', provider.name, context.url, exc_info=True)
            notes.append(f'{provider.name}: {type(e).__name__}: {e}')
            continue

        if result.text:
            logger.info('Transcript for %s provided by %s (%d chars)', context.url, provider.name, len(result.text))
            diagnostics = TranscriptDiagnostics(
                text_provided=True,
                provider=provider.id,
                attempted_providers=tuple(attempted),
                notes='; '.join(notes) or None,
            )
            return TranscriptResolution(
                text=result.text,
                source=result.source or provider.id,
                metadata=result.metadata,
                diagnostics=diagnostics,
            )

        reason = result.metadata.get('reason')
        if reason:
            notes.append(f'{provider.name}: {reason}')

    diagnostics = TranscriptDiagnostics(
        text_provided=False,
        provider=None,
        attempted_providers=tuple(attempted),
        notes='; '.join(notes) or None,
    )
    return TranscriptResolution(
        text=None,
        source=ProviderId.UNAVAILABLE if attempted else None,
        diagnostics=diagnostics,
    )
