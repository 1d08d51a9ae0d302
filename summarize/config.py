"""
Configuration for the link summarizer.

Environment variables are read in one place (load_env_config) and every run
option is parsed into an immutable ResolvedRunSettings snapshot before any
network call happens. The content pipeline only ever sees resolved settings.
"""

import json
import os
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

from .errors import ConfigurationError

DEFAULT_OPENAI_BASE_URL = 'https://api.openai.com/v1'
DEFAULT_MODEL = 'gpt-4o-mini'
DEFAULT_TIMEOUT_MS = 120_000
DEFAULT_RETRIES = 1
MAX_RETRIES = 5
DEFAULT_MIN_TEXT_LENGTH = 200
DEFAULT_MAX_CONTENT_CHARACTERS = 120_000

FIRECRAWL_MODES = ('off', 'auto', 'always')
MARKDOWN_MODES = ('off', 'auto', 'readability', 'llm')
PREPROCESS_MODES = ('off', 'auto', 'always')
TRANSCRIPT_MODES = ('auto', 'web', 'no-auto', 'yt-dlp', 'apify')
LENGTH_PRESETS = ('short', 'medium', 'long', 'xl', 'xxl')

_DURATION_RE = re.compile(r'^(\d+(?:\.\d+)?)\s*(ms|s|m|h)?$', re.I)
_TOKENS_RE = re.compile(r'^(\d+(?:\.\d+)?)\s*(k|m)?$', re.I)


@dataclass(frozen=True)
class EnvConfig:
    openai_api_key: Optional[str] = None
    openai_base_url: str = DEFAULT_OPENAI_BASE_URL
    model: str = DEFAULT_MODEL
    firecrawl_api_key: Optional[str] = None
    apify_api_token: Optional[str] = None
    assemblyai_api_key: Optional[str] = None
    min_text_length: int = DEFAULT_MIN_TEXT_LENGTH
    log_level: str = 'INFO'
    config_path: Optional[str] = None


@dataclass(frozen=True)
class ResolvedRunSettings:
    length: object = 'xl'
    firecrawl_mode: str = 'auto'
    markdown_mode: str = 'off'
    preprocess_mode: str = 'auto'
    transcript_mode: str = 'auto'
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    retries: int = DEFAULT_RETRIES
    max_output_tokens: Optional[int] = None
    max_content_characters: int = DEFAULT_MAX_CONTENT_CHARACTERS


@dataclass(frozen=True)
class RunOverrides:
    """Per-request overrides; None means "keep the resolved value"."""

    length: object = None
    firecrawl_mode: Optional[str] = None
    markdown_mode: Optional[str] = None
    preprocess_mode: Optional[str] = None
    transcript_mode: Optional[str] = None
    timeout_ms: Optional[int] = None
    retries: Optional[int] = None
    max_output_tokens: Optional[int] = None


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def load_env_config(env: Mapping[str, str] = None) -> EnvConfig:
    """Snapshot the environment variables the summarizer understands."""
    env = os.environ if env is None else env

    min_text_length = DEFAULT_MIN_TEXT_LENGTH
    raw_min = _blank_to_none(env.get('SUMMARIZE_MIN_TEXT_LENGTH'))
    if raw_min is not None:
        if not raw_min.isdigit():
            raise ConfigurationError(
                f'Invalid SUMMARIZE_MIN_TEXT_LENGTH: {raw_min!r} (expected a non-negative integer)'
            )
        min_text_length = int(raw_min)

    return EnvConfig(
        openai_api_key=_blank_to_none(env.get('OPENAI_API_KEY')),
        openai_base_url=(_blank_to_none(env.get('OPENAI_BASE_URL')) or DEFAULT_OPENAI_BASE_URL).rstrip('/'),
        model=_blank_to_none(env.get('SUMMARIZE_MODEL')) or DEFAULT_MODEL,
        firecrawl_api_key=_blank_to_none(env.get('FIRECRAWL_API_KEY')),
        apify_api_token=_blank_to_none(env.get('APIFY_API_TOKEN')),
        assemblyai_api_key=_blank_to_none(env.get('ASSEMBLYAI_API_KEY')),
        min_text_length=min_text_length,
        log_level=(_blank_to_none(env.get('LOG_LEVEL')) or 'INFO').upper(),
        config_path=_blank_to_none(env.get('SUMMARIZE_CONFIG')),
    )


def load_config_file(path) -> dict:
    """Read a JSON config file of default run options.

    A missing file is not an error and yields an empty dict.
    """
    path = Path(path)
    if not path.exists():
        return {}

    raw = path.read_text(encoding='utf-8')
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f'Invalid JSON in config file {path}: {e.msg}') from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f'Invalid config file {path}: expected an object at the top level'
        )
    return data


# ============================================================================
# Value parsers
# ============================================================================

def _parse_choice(raw, choices, flag: str) -> str:
    value = str(raw).strip().lower()
    if value not in choices:
        raise ConfigurationError(
            f'Unsupported {flag}: {raw!r} (expected one of: {", ".join(choices)})'
        )
    return value


def parse_firecrawl_mode(raw) -> str:
    return _parse_choice(raw, FIRECRAWL_MODES, '--firecrawl')


def parse_markdown_mode(raw) -> str:
    return _parse_choice(raw, MARKDOWN_MODES, '--markdown-mode')


def parse_preprocess_mode(raw) -> str:
    return _parse_choice(raw, PREPROCESS_MODES, '--preprocess')


def parse_transcript_mode(raw) -> str:
    return _parse_choice(raw, TRANSCRIPT_MODES, '--youtube')


def parse_duration_ms(raw) -> int:
    """
    Parse a duration into milliseconds.

    Examples:
        >>> parse_duration_ms('10s')
        10000
        >>> parse_duration_ms('250ms')
        250
        >>> parse_duration_ms('2m')
        120000
        >>> parse_duration_ms('30')
        30000
    """
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        raw = str(raw)
    match = _DURATION_RE.match(str(raw).strip())
    if not match:
        raise ConfigurationError(f'Unsupported --timeout: {raw!r}')

    amount = float(match.group(1))
    unit = (match.group(2) or 's').lower()
    multiplier = {'ms': 1, 's': 1000, 'm': 60_000, 'h': 3_600_000}[unit]
    value = int(round(amount * multiplier))
    if value <= 0:
        raise ConfigurationError(f'Unsupported --timeout: {raw!r} (must be positive)')
    return value


def parse_retries(raw) -> int:
    value = str(raw).strip()
    if not value.isdigit() or int(value) > MAX_RETRIES:
        raise ConfigurationError(f'Unsupported --retries: {raw!r} (expected 0-{MAX_RETRIES})')
    return int(value)


def parse_max_output_tokens(raw) -> Optional[int]:
    """Parse a token ceiling such as ``2000`` or ``2k``. Empty means no ceiling."""
    if raw is None:
        return None
    value = str(raw).strip()
    if not value:
        return None
    match = _TOKENS_RE.match(value)
    if not match:
        raise ConfigurationError(f'Unsupported --max-output-tokens: {raw!r}')

    amount = float(match.group(1))
    suffix = (match.group(2) or '').lower()
    tokens = int(round(amount * {'': 1, 'k': 1000, 'm': 1_000_000}[suffix]))
    if tokens < 16:
        raise ConfigurationError(f'Unsupported --max-output-tokens: {raw!r} (minimum is 16)')
    return tokens


def parse_length(raw):
    """Return a preset name or a positive character count."""
    value = str(raw).strip().lower()
    if value in LENGTH_PRESETS:
        return value
    if value.isdigit() and int(value) > 0:
        return int(value)
    match = re.match(r'^(\d+(?:\.\d+)?)k$', value)
    if match:
        return int(round(float(match.group(1)) * 1000))
    raise ConfigurationError(
        f'Unsupported --length: {raw!r} (expected {"|".join(LENGTH_PRESETS)} or a character count)'
    )


# ============================================================================
# Resolution
# ============================================================================

def resolve_run_settings(raw: Mapping = None) -> ResolvedRunSettings:
    """Build settings from raw option values. Invalid values are errors."""
    raw = raw or {}
    defaults = ResolvedRunSettings()

    def pick(key):
        value = raw.get(key)
        return None if value is None or value == '' else value

    length = pick('length')
    firecrawl = pick('firecrawl')
    markdown = pick('markdown')
    preprocess = pick('preprocess')
    transcript = pick('transcript') or pick('youtube')
    timeout = pick('timeout')
    retries = pick('retries')
    max_content = pick('max_content_characters')

    return ResolvedRunSettings(
        length=parse_length(length) if length is not None else defaults.length,
        firecrawl_mode=parse_firecrawl_mode(firecrawl) if firecrawl is not None else defaults.firecrawl_mode,
        markdown_mode=parse_markdown_mode(markdown) if markdown is not None else defaults.markdown_mode,
        preprocess_mode=parse_preprocess_mode(preprocess) if preprocess is not None else defaults.preprocess_mode,
        transcript_mode=parse_transcript_mode(transcript) if transcript is not None else defaults.transcript_mode,
        timeout_ms=parse_duration_ms(timeout) if timeout is not None else defaults.timeout_ms,
        retries=parse_retries(retries) if retries is not None else defaults.retries,
        max_output_tokens=parse_max_output_tokens(pick('max_output_tokens')),
        max_content_characters=(
            _parse_positive_int(max_content, 'max_content_characters')
            if max_content is not None else defaults.max_content_characters
        ),
    )


def _parse_positive_int(raw, name: str) -> int:
    value = str(raw).strip()
    if not value.isdigit() or int(value) <= 0:
        raise ConfigurationError(f'Unsupported {name}: {raw!r} (expected a positive integer)')
    return int(value)


def _parse_optional(raw, parser):
    if not isinstance(raw, (str, int)) or isinstance(raw, bool):
        return None
    try:
        return parser(raw)
    except ConfigurationError:
        return None


def resolve_run_overrides(raw: Mapping = None) -> RunOverrides:
    """
    Parse per-request overrides leniently.

    Unlike resolve_run_settings, a value that fails to parse is dropped
    (becomes None) instead of raising, so a bad override from a client never
    takes precedence over valid settings.
    """
    raw = raw or {}
    return RunOverrides(
        length=_parse_optional(raw.get('length'), parse_length),
        firecrawl_mode=_parse_optional(raw.get('firecrawl'), parse_firecrawl_mode),
        markdown_mode=_parse_optional(raw.get('markdown'), parse_markdown_mode),
        preprocess_mode=_parse_optional(raw.get('preprocess'), parse_preprocess_mode),
        transcript_mode=_parse_optional(raw.get('transcript') or raw.get('youtube'), parse_transcript_mode),
        timeout_ms=_parse_optional(raw.get('timeout'), parse_duration_ms),
        retries=_parse_optional(raw.get('retries'), parse_retries),
        max_output_tokens=_parse_optional(raw.get('max_output_tokens'), parse_max_output_tokens),
    )


def apply_overrides(settings: ResolvedRunSettings, overrides: RunOverrides) -> ResolvedRunSettings:
    changes = {
        field: value
        for field, value in vars(overrides).items()
        if value is not None
    }
    return replace(settings, **changes) if changes else settings
