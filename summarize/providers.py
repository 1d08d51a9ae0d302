"""
Transcript providers and the default provider registry.

Order matters: cheap caption sources come first, paid transcription last.
"""

import json
import logging
import os
import re
import tempfile
from typing import Optional
from urllib.parse import parse_qs, urlparse

import assemblyai as aai
import requests
import yt_dlp
from bs4 import BeautifulSoup
from youtube_transcript_api import YouTubeTranscriptApi, YouTubeTranscriptApiException

from .cleaner import decode_html_entities, normalize_for_prompt
from .errors import FetchError
from .transcripts import ProviderContext, ProviderId, ProviderOptions, ProviderResult, TranscriptProvider
from .twitter import is_twitter_status_url

logger = logging.getLogger(__name__)

YOUTUBE_HOSTS = ('youtube.com', 'm.youtube.com', 'music.youtube.com', 'youtu.be', 'youtube-nocookie.com')
VIDEO_HOSTS = YOUTUBE_HOSTS + ('vimeo.com', 'tiktok.com', 'twitch.tv')
PODCAST_HOSTS = ('podcasts.apple.com', 'overcast.fm', 'pocketcasts.com', 'pca.st')
SPOTIFY_PODCAST_PATHS = ('/episode/', '/show/')

APIFY_ACTOR = 'pintostudio~youtube-transcript-scraper'
APIFY_RUN_URL = 'https://api.apify.com/v2/acts/{actor}/run-sync-get-dataset-items'

PREFERRED_LANGUAGES = ('en', 'en-US', 'en-GB')

_VIDEO_ID_RE = re.compile(r'^[A-Za-z0-9_-]{11}$')
_PATH_VIDEO_ID_RE = re.compile(r'^/(?:shorts|embed|live|v)/([A-Za-z0-9_-]{11})')
_CAPTION_TRACKS_KEY = '"captionTracks":'


# ============================================================================
# URL helpers
# ============================================================================

def _host(url: str) -> str:
    host = (urlparse(url).hostname or '').lower()
    return host[4:] if host.startswith('www.') else host


def _host_in(url: str, hosts) -> bool:
    """True when the URL's host is one of hosts or a subdomain of one."""
    host = _host(url)
    return any(host == h or host.endswith('.' + h) for h in hosts)


def is_youtube_url(url: str) -> bool:
    return bool(url) and _host(url) in YOUTUBE_HOSTS


def extract_youtube_video_id(url: str) -> Optional[str]:
    """
    Extract the 11-character video id from any common YouTube URL shape.

    Examples:
        >>> extract_youtube_video_id('https://youtu.be/dQw4w9WgXcQ')
        'dQw4w9WgXcQ'
        >>> extract_youtube_video_id('https://example.com/watch?v=dQw4w9WgXcQ') is None
        True
    """
    if not is_youtube_url(url):
        return None

    parsed = urlparse(url)
    if _host(url) == 'youtu.be':
        candidate = parsed.path.lstrip('/').split('/')[0]
        return candidate if _VIDEO_ID_RE.match(candidate) else None

    video_ids = parse_qs(parsed.query).get('v')
    if video_ids and _VIDEO_ID_RE.match(video_ids[0]):
        return video_ids[0]

    match = _PATH_VIDEO_ID_RE.match(parsed.path)
    return match.group(1) if match else None


def is_podcast_url(url: str) -> bool:
    if not url:
        return False
    if _host_in(url, PODCAST_HOSTS):
        return True
    path = urlparse(url).path.lower()
    if _host_in(url, ('spotify.com',)) and path.startswith(SPOTIFY_PODCAST_PATHS):
        return True
    segments = [s for s in path.split('/') if s]
    return any(s in ('podcast', 'podcasts') for s in segments)


def is_video_url(url: str) -> bool:
    return bool(url) and _host_in(url, VIDEO_HOSTS)


def is_transcript_url(url: str) -> bool:
    """True for URLs whose useful content is spoken audio rather than an article."""
    return is_video_url(url) or is_podcast_url(url) or is_twitter_status_url(url)


def resource_key_for(url: str) -> Optional[str]:
    return extract_youtube_video_id(url)


# ============================================================================
# YouTube captions
# ============================================================================

def _language_rank(language_code: str) -> int:
    code = (language_code or '').lower()
    return 0 if code.startswith('en') else 1


class YoutubeiProvider(TranscriptProvider):
    """YouTube's caption API via youtube-transcript-api."""

    id = ProviderId.YOUTUBEI
    name = 'youtubei'
    modes = ('auto', 'web', 'no-auto')

    def can_handle(self, context):
        return bool(context.resource_key) and is_youtube_url(context.url)

    def fetch_transcript(self, context, options):
        allow_generated = options.transcript_mode != 'no-auto'
        ytt_api = YouTubeTranscriptApi()

        try:
            transcript_list = ytt_api.list(context.resource_key)
            available = list(transcript_list)

            # Manually created captions beat auto-generated ones
            manual = sorted((t for t in available if not t.is_generated), key=lambda t: _language_rank(t.language_code))
            generated = sorted((t for t in available if t.is_generated), key=lambda t: _language_rank(t.language_code))
            candidates = manual + (generated if allow_generated else [])
            if not candidates:
                return self.unavailable('no_transcript')

            transcript = candidates[0]
            fetched = transcript.fetch()
        except YouTubeTranscriptApiException as e:
            raise FetchError(f'YouTube transcript unavailable: {type(e).__name__}') from e
        except requests.exceptions.RequestException as e:
            raise FetchError(f'YouTube transcript request failed: {str(e)}') from e

        text = normalize_for_prompt(' '.join(snippet.text for snippet in fetched))
        if not text:
            return self.unavailable('empty_transcript')

        return ProviderResult(
            text=text,
            source=self.id,
            metadata={
                'provider': self.name,
                'language': transcript.language_code,
                'generated': transcript.is_generated,
            },
        )


def parse_caption_tracks(html: str) -> list:
    """Pull the captionTracks array out of a YouTube watch page."""
    if not html:
        return []
    start = html.find(_CAPTION_TRACKS_KEY)
    if start == -1:
        return []
    try:
        tracks, _ = json.JSONDecoder().raw_decode(html, start + len(_CAPTION_TRACKS_KEY))
    except json.JSONDecodeError:
        return []
    return [t for t in tracks if isinstance(t, dict) and t.get('baseUrl')]


def parse_timedtext(xml: str) -> str:
    soup = BeautifulSoup(xml or '', 'html.parser')
    nodes = soup.find_all('text') or soup.find_all('p')
    # Caption text is entity-encoded inside the XML, so decode a second time
    lines = (decode_html_entities(node.get_text()) for node in nodes)
    return normalize_for_prompt(' '.join(line for line in lines if line.strip()))


class CaptionTracksProvider(TranscriptProvider):
    """Caption tracks embedded in the watch page's player response."""

    id = ProviderId.CAPTION_TRACKS
    name = 'captionTracks'
    modes = ('auto', 'web', 'no-auto')

    def can_handle(self, context):
        return is_youtube_url(context.url) and bool(context.html)

    def fetch_transcript(self, context, options):
        tracks = parse_caption_tracks(context.html)
        if options.transcript_mode == 'no-auto':
            tracks = [t for t in tracks if t.get('kind') != 'asr']
        if not tracks:
            return self.unavailable('no_caption_tracks')

        tracks.sort(key=lambda t: (t.get('kind') == 'asr', _language_rank(t.get('languageCode'))))
        track = tracks[0]

        try:
            response = options.session.get(track['baseUrl'], timeout=options.timeout_ms / 1000.0)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise FetchError(f'Caption track download failed: {str(e)}') from e

        text = parse_timedtext(response.text)
        if not text:
            return self.unavailable('empty_transcript')

        return ProviderResult(
            text=text,
            source=self.id,
            metadata={'provider': self.name, 'language': track.get('languageCode'), 'kind': track.get('kind')},
        )


# ============================================================================
# yt-dlp + AssemblyAI
# ============================================================================

def download_audio(url: str, tmpdir: str, timeout_ms: int) -> str:
    """Download the best audio stream with yt-dlp. Returns the file path."""
    ydl_opts = {
        'format': 'bestaudio/best',
        'outtmpl': os.path.join(tmpdir, '%(id)s.%(ext)s'),
        'quiet': True,
        'no_warnings': True,
        'noplaylist': True,
        'extractor_args': {
            'youtube': {
                'player_client': ['ios', 'android_vr', 'tv_embedded'],
            }
        },
        'socket_timeout': max(1, timeout_ms // 1000),
        'retries': 3,
        'fragment_retries': 3,
    }

    try:
        with yt_dlp.YoutubeDL(ydl_opts) as ydl:
            info = ydl.extract_info(url, download=True)
            return ydl.prepare_filename(info)
    except (yt_dlp.utils.YoutubeDLError, OSError) as e:
        raise FetchError(f'yt-dlp download failed: {str(e)}') from e


def transcribe_audio(audio_path: str, api_key: str) -> str:
    """Transcribe an audio file with AssemblyAI and return the text."""
    aai.settings.api_key = api_key
    config = aai.TranscriptionConfig(
        language_detection=True,
        punctuate=True,
        format_text=True,
    )
    transcriber = aai.Transcriber(config=config)

    logger.info('Uploading and transcribing %s', audio_path)
    try:
        transcript = transcriber.transcribe(audio_path)
    except Exception as e:
        raise FetchError(f'AssemblyAI transcription failed: {str(e)}') from e

    if transcript.status == aai.TranscriptStatus.error:
        raise FetchError(f'AssemblyAI transcription failed: {transcript.error}')

    return transcript.text or ''


class YtDlpProvider(TranscriptProvider):
    """Download audio with yt-dlp and transcribe it with AssemblyAI."""

    id = ProviderId.YT_DLP
    name = 'yt-dlp'
    modes = ('auto', 'yt-dlp')

    def can_handle(self, context):
        return is_video_url(context.url)

    def fetch_transcript(self, context, options):
        if not options.assemblyai_api_key:
            return self.unavailable('missing_api_key')

        with tempfile.TemporaryDirectory() as tmpdir:
            audio_path = download_audio(context.url, tmpdir, options.timeout_ms)
            text = normalize_for_prompt(transcribe_audio(audio_path, options.assemblyai_api_key))

        if not text:
            return self.unavailable('empty_transcript')
        return ProviderResult(text=text, source=self.id, metadata={'provider': self.name})


# ============================================================================
# Apify
# ============================================================================

def _apify_item_text(item) -> str:
    if isinstance(item, str):
        return item
    if not isinstance(item, dict):
        return ''
    for key in ('transcript', 'text'):
        if isinstance(item.get(key), str):
            return item[key]
    segments = item.get('data') or item.get('transcript') or item.get('segments') or []
    if isinstance(segments, list):
        return ' '.join(_apify_item_text(segment) for segment in segments)
    return ''


class ApifyProvider(TranscriptProvider):
    """Managed YouTube transcript scraper on Apify."""

    id = ProviderId.APIFY
    name = 'apify'
    modes = ('auto', 'apify')

    def __init__(self, actor: str = APIFY_ACTOR):
        self.actor = actor

    def can_handle(self, context):
        return is_youtube_url(context.url)

    def fetch_transcript(self, context, options):
        if not options.apify_api_token:
            return self.unavailable('missing_api_token')

        try:
            response = options.session.post(
                APIFY_RUN_URL.format(actor=self.actor),
                params={'token': options.apify_api_token},
                json={'videoUrl': context.url},
                timeout=options.timeout_ms / 1000.0,
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise FetchError(f'Apify request failed: {str(e)}') from e

        try:
            items = response.json()
        except ValueError as e:
            raise FetchError('Apify returned invalid JSON') from e

        if not isinstance(items, list):
            items = [items]
        text = normalize_for_prompt(' '.join(_apify_item_text(item) for item in items))
        if not text:
            return self.unavailable('empty_transcript')
        return ProviderResult(text=text, source=self.id, metadata={'provider': self.name, 'actor': self.actor})


# ============================================================================
# Placeholders and generic HTML
# ============================================================================

class TwitterProvider(TranscriptProvider):
    """Recognizes tweets; thread and video transcripts are not supported yet."""

    id = ProviderId.UNAVAILABLE
    name = 'twitter'
    modes = ('auto', 'web', 'no-auto', 'yt-dlp', 'apify')

    def can_handle(self, context):
        return is_twitter_status_url(context.url)

    def fetch_transcript(self, context, options):
        return self.unavailable('not_implemented')


class PodcastProvider(TranscriptProvider):
    """Recognizes podcast pages; episode transcription is not supported yet."""

    id = ProviderId.UNAVAILABLE
    name = 'podcast'
    modes = ('auto', 'web', 'no-auto', 'yt-dlp', 'apify')

    def can_handle(self, context):
        return is_podcast_url(context.url)

    def fetch_transcript(self, context, options):
        return self.unavailable('not_implemented')


class HtmlTranscriptProvider(TranscriptProvider):
    """A transcript block published on the page itself."""

    id = ProviderId.HTML
    name = 'html'
    modes = ('auto', 'web', 'no-auto')

    min_length = 20

    def can_handle(self, context):
        return bool(context.html)

    def fetch_transcript(self, context, options):
        soup = BeautifulSoup(context.html, 'html.parser')
        for element in soup.find_all(['script', 'style', 'noscript']):
            element.decompose()

        pattern = re.compile(r'transcript', re.I)
        blocks = soup.find_all(id=pattern) + soup.find_all(attrs={'class': pattern})
        texts = [normalize_for_prompt(block.get_text('\n')) for block in blocks]
        texts = [t for t in texts if len(t) >= self.min_length]
        if not texts:
            return self.unavailable('no_transcript_block')

        return ProviderResult(text=max(texts, key=len), source=self.id, metadata={'provider': self.name})


DEFAULT_PROVIDERS = (
    YoutubeiProvider(),
    CaptionTracksProvider(),
    YtDlpProvider(),
    ApifyProvider(),
    TwitterProvider(),
    PodcastProvider(),
    HtmlTranscriptProvider(),
)
