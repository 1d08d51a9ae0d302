"""
Unit tests for configuration parsing and run-setting resolution.
"""

import json

import pytest

from summarize.config import (
    DEFAULT_MIN_TEXT_LENGTH,
    ResolvedRunSettings,
    RunOverrides,
    apply_overrides,
    load_config_file,
    load_env_config,
    parse_duration_ms,
    parse_firecrawl_mode,
    parse_length,
    parse_max_output_tokens,
    parse_retries,
    parse_transcript_mode,
    resolve_run_overrides,
    resolve_run_settings,
)
from summarize.errors import ConfigurationError


class TestParsers:
    """Tests for the individual value parsers."""

    @pytest.mark.parametrize('raw,expected', [
        ('10s', 10_000),
        ('10ms', 10),
        ('2m', 120_000),
        ('1.5s', 1500),
        ('30', 30_000),
        (45, 45_000),
        (' 1h ', 3_600_000),
    ])
    def test_parse_duration_ms(self, raw, expected):
        assert parse_duration_ms(raw) == expected

    @pytest.mark.parametrize('raw', ['', 'soon', '10 years', '0s', '-5s'])
    def test_parse_duration_ms_invalid(self, raw):
        with pytest.raises(ConfigurationError, match='--timeout'):
            parse_duration_ms(raw)

    def test_parse_firecrawl_mode(self):
        assert parse_firecrawl_mode(' ALWAYS ') == 'always'
        with pytest.raises(ConfigurationError, match='--firecrawl'):
            parse_firecrawl_mode('sometimes')

    def test_parse_transcript_mode(self):
        assert parse_transcript_mode('no-auto') == 'no-auto'
        assert parse_transcript_mode('yt-dlp') == 'yt-dlp'
        with pytest.raises(ConfigurationError):
            parse_transcript_mode('youtube')

    def test_parse_retries(self):
        assert parse_retries('0') == 0
        assert parse_retries(3) == 3
        with pytest.raises(ConfigurationError, match='--retries'):
            parse_retries('9')
        with pytest.raises(ConfigurationError):
            parse_retries('-1')

    @pytest.mark.parametrize('raw,expected', [
        ('2000', 2000),
        ('2k', 2000),
        ('1.5K', 1500),
        (None, None),
        ('', None),
    ])
    def test_parse_max_output_tokens(self, raw, expected):
        assert parse_max_output_tokens(raw) == expected

    def test_parse_max_output_tokens_invalid(self):
        with pytest.raises(ConfigurationError):
            parse_max_output_tokens('lots')
        with pytest.raises(ConfigurationError, match='minimum'):
            parse_max_output_tokens('8')

    def test_parse_length(self):
        assert parse_length('short') == 'short'
        assert parse_length('1500') == 1500
        assert parse_length('20k') == 20_000
        with pytest.raises(ConfigurationError, match='--length'):
            parse_length('tiny')


class TestResolveRunSettings:
    """Tests for strict and lenient resolution."""

    def test_defaults(self):
        settings = resolve_run_settings({})
        assert settings == ResolvedRunSettings()
        assert settings.firecrawl_mode == 'auto'
        assert settings.transcript_mode == 'auto'

    def test_strict_parsing(self):
        settings = resolve_run_settings({
            'firecrawl': 'off',
            'youtube': 'web',
            'timeout': '10s',
            'retries': '2',
            'max_output_tokens': '2k',
            'length': 'short',
            'max_content_characters': 5000,
        })

        assert settings.firecrawl_mode == 'off'
        assert settings.transcript_mode == 'web'
        assert settings.timeout_ms == 10_000
        assert settings.retries == 2
        assert settings.max_output_tokens == 2000
        assert settings.length == 'short'
        assert settings.max_content_characters == 5000

    def test_strict_parsing_raises(self):
        with pytest.raises(ConfigurationError):
            resolve_run_settings({'firecrawl': 'sometimes'})

    def test_settings_are_immutable(self):
        settings = resolve_run_settings({})
        with pytest.raises(AttributeError):
            settings.timeout_ms = 1

    def test_overrides_are_lenient(self):
        overrides = resolve_run_overrides({
            'firecrawl': 'sometimes',
            'timeout': '10s',
            'retries': 'many',
            'transcript': 'apify',
        })

        assert overrides.firecrawl_mode is None
        assert overrides.timeout_ms == 10_000
        assert overrides.retries is None
        assert overrides.transcript_mode == 'apify'

    def test_overrides_ignore_non_string_values(self):
        overrides = resolve_run_overrides({'firecrawl': ['off'], 'retries': True})
        assert overrides == RunOverrides()

    def test_apply_overrides(self):
        settings = ResolvedRunSettings(firecrawl_mode='auto', timeout_ms=1000)
        merged = apply_overrides(settings, RunOverrides(firecrawl_mode='off'))

        assert merged.firecrawl_mode == 'off'
        assert merged.timeout_ms == 1000
        assert settings.firecrawl_mode == 'auto'

    def test_apply_empty_overrides_returns_same(self):
        settings = ResolvedRunSettings()
        assert apply_overrides(settings, RunOverrides()) is settings


class TestEnvConfig:
    """Tests for load_env_config()."""

    def test_defaults(self):
        env = load_env_config({})
        assert env.openai_api_key is None
        assert env.openai_base_url == 'https://api.openai.com/v1'
        assert env.min_text_length == DEFAULT_MIN_TEXT_LENGTH

    def test_blank_values_are_none(self):
        env = load_env_config({'OPENAI_API_KEY': '   ', 'FIRECRAWL_API_KEY': ''})
        assert env.openai_api_key is None
        assert env.firecrawl_api_key is None

    def test_reads_values(self):
        env = load_env_config({
            'OPENAI_API_KEY': 'sk-test',
            'OPENAI_BASE_URL': 'https://proxy.example.com/v1/',
            'SUMMARIZE_MODEL': 'gpt-test',
            'SUMMARIZE_MIN_TEXT_LENGTH': '50',
            'LOG_LEVEL': 'debug',
        })
        assert env.openai_api_key == 'sk-test'
        assert env.openai_base_url == 'https://proxy.example.com/v1'
        assert env.model == 'gpt-test'
        assert env.min_text_length == 50
        assert env.log_level == 'DEBUG'

    def test_invalid_min_text_length(self):
        with pytest.raises(ConfigurationError, match='SUMMARIZE_MIN_TEXT_LENGTH'):
            load_env_config({'SUMMARIZE_MIN_TEXT_LENGTH': 'lots'})


class TestLoadConfigFile:
    """Tests for load_config_file()."""

    def test_invalid_json(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text('{not json', encoding='utf-8')

        with pytest.raises(ConfigurationError, match='Invalid JSON in config file'):
            load_config_file(path)

    def test_top_level_must_be_object(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text(json.dumps(['nope']), encoding='utf-8')

        with pytest.raises(ConfigurationError, match='expected an object'):
            load_config_file(path)

    def test_missing_file_is_empty(self, tmp_path):
        assert load_config_file(tmp_path / 'missing.json') == {}

    def test_valid_file_feeds_settings(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text(json.dumps({'firecrawl': 'off', 'timeout': '30s'}), encoding='utf-8')

        settings = resolve_run_settings(load_config_file(path))
        assert settings.firecrawl_mode == 'off'
        assert settings.timeout_ms == 30_000
