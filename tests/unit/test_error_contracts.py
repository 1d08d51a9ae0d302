"""
Error Contract Tests - Defines what is considered an ERROR.

These tests serve as guardrails to ensure consistent error handling.

Error Classification:
====================

FATAL ERRORS (HTTP 400/500):
- Missing required fields (url)
- Configuration errors (missing OPENAI_API_KEY, --firecrawl always without
  FIRECRAWL_API_KEY, mutually exclusive options), raised before any network call
- Unhandled exceptions (stage "processing")

SUMMARIZATION ERRORS (HTTP 200 with error field, no summary):
- Request timed out
- Non-2xx from the completion endpoint (status and body in the message)
- Model refusal (refusal text in the message)

ABSORBED (never an error, only diagnostics):
- HTML fetch failures and blocked pages (fallback strategies take over)
- Transcript providers that fail or are not implemented

SUCCESS (HTTP 200, no error field):
- Content extracted, and summary present unless extract_only/prompt_only
"""

import json

import pytest
import responses
from unittest.mock import patch

from summarize.errors import (
    ConfigurationError,
    EmptyContentError,
    FetchError,
    RefusalError,
    RequestTimeoutError,
    SummarizeError,
    UpstreamError,
)


class TestErrorTypes:
    """Tests for the error hierarchy and its dict shape."""

    # =========================================================================
    # ERROR FIELD REQUIREMENTS
    # =========================================================================

    @pytest.mark.parametrize('error', [
        ConfigurationError('bad setting'),
        FetchError('HTTP error: 404', status=404),
        RequestTimeoutError('OpenAI request', 10),
        UpstreamError('OpenAI request failed (500): oops', status=500, body='oops'),
        RefusalError('no thanks'),
        EmptyContentError('https://example.com/empty'),
    ])
    def test_error_dict_has_required_fields(self, error):
        """All errors must include stage, message and recoverable."""
        data = error.to_dict()

        assert set(data) == {'stage', 'message', 'recoverable'}
        assert isinstance(data['message'], str) and data['message']
        assert isinstance(data['recoverable'], bool)
        assert isinstance(error, SummarizeError)

    def test_configuration_error_stage(self):
        assert ConfigurationError('x').stage == 'configuration'
        assert ConfigurationError('x').recoverable is False

    def test_timeout_names_the_action(self):
        error = RequestTimeoutError('OpenAI request', 10)
        assert str(error) == 'OpenAI request timed out after 10ms'
        assert error.recoverable is True
        assert error.stage == 'summarization'

    def test_refusal_keeps_text_verbatim(self):
        error = RefusalError('I cannot help with that.')
        assert str(error) == 'OpenAI refusal: I cannot help with that.'
        assert error.refusal == 'I cannot help with that.'

    def test_fetch_error_is_recoverable(self):
        assert FetchError('Request timed out').to_dict() == {
            'stage': 'fetch',
            'message': 'Request timed out',
            'recoverable': True,
        }


class TestHandlerErrorClassification:
    """Tests that verify how the HTTP function classifies failures."""

    # =========================================================================
    # FATAL ERRORS
    # =========================================================================

    def test_missing_url_is_fatal_error(self, mock_flask_request, summarize_link, clean_env):
        """Missing URL field is a fatal error (HTTP 400)."""
        request = mock_flask_request(json_data={})
        response, status_code, headers = summarize_link(request)

        assert status_code == 400
        data = json.loads(response)
        assert 'url' in data['error'].lower()

    def test_empty_url_is_fatal_error(self, mock_flask_request, summarize_link, clean_env):
        """Blank URL string is a fatal error."""
        request = mock_flask_request(json_data={'url': '   '})
        response, status_code, headers = summarize_link(request)

        assert status_code == 400

    def test_non_string_url_is_fatal_error(self, mock_flask_request, summarize_link, clean_env):
        request = mock_flask_request(json_data={'url': 42})
        response, status_code, headers = summarize_link(request)

        assert status_code == 400

    @responses.activate
    def test_missing_api_key_is_configuration_error(self, mock_flask_request, summarize_link, clean_env):
        """Summarizing without OPENAI_API_KEY fails before any request."""
        request = mock_flask_request(json_data={'url': 'https://example.com/article'})
        response, status_code, headers = summarize_link(request)

        assert status_code == 400
        data = json.loads(response)
        assert data['error']['stage'] == 'configuration'
        assert 'OPENAI_API_KEY' in data['error']['message']
        assert len(responses.calls) == 0

    @responses.activate
    def test_firecrawl_always_without_key(self, mock_flask_request, summarize_link, clean_env):
        request = mock_flask_request(json_data={
            'url': 'https://example.com/article',
            'options': {'firecrawl': 'always', 'extract_only': True},
        })
        response, status_code, headers = summarize_link(request)

        assert status_code == 400
        data = json.loads(response)
        assert data['error']['message'] == '--firecrawl always requires FIRECRAWL_API_KEY'
        assert len(responses.calls) == 0

    def test_extract_only_and_prompt_only_conflict(self, mock_flask_request, summarize_link, clean_env):
        request = mock_flask_request(json_data={
            'url': 'https://example.com/article',
            'options': {'extract_only': True, 'prompt_only': True},
        })
        response, status_code, headers = summarize_link(request)

        assert status_code == 400
        assert json.loads(response)['error']['message'] == '--prompt and --extract-only are mutually exclusive'

    def test_unexpected_exception_is_processing_error(
        self, mock_flask_request, summarize_link, link_summarizer_module, clean_env,
    ):
        """Unhandled exceptions become HTTP 500 with stage "processing"."""
        request = mock_flask_request(json_data={'url': 'https://example.com/article'})

        with patch.object(link_summarizer_module, 'summarize_url', side_effect=RuntimeError('boom')):
            response, status_code, headers = summarize_link(request)

        assert status_code == 500
        data = json.loads(response)
        assert data['error'] == {'stage': 'processing', 'message': 'boom', 'recoverable': False}

    # =========================================================================
    # SUMMARIZATION ERRORS - HTTP 200 with error field
    # =========================================================================

    @pytest.mark.parametrize('error', [
        RequestTimeoutError('OpenAI request', 10),
        UpstreamError('OpenAI request failed (401): nope', status=401, body='nope'),
        RefusalError('no thanks'),
    ])
    def test_summarization_errors_are_reported_in_body(
        self, error, mock_flask_request, summarize_link, link_summarizer_module, clean_env,
    ):
        request = mock_flask_request(json_data={'url': 'https://example.com/article'})

        with patch.object(link_summarizer_module, 'summarize_url', side_effect=error):
            response, status_code, headers = summarize_link(request)

        assert status_code == 200
        data = json.loads(response)
        assert data['error']['stage'] == 'summarization'
        assert data['error']['message'] == str(error)
        assert 'summary' not in data

    # =========================================================================
    # CORS
    # =========================================================================

    def test_options_preflight(self, mock_flask_request, summarize_link):
        response, status_code, headers = summarize_link(mock_flask_request(method='OPTIONS'))

        assert status_code == 204
        assert headers['Access-Control-Allow-Origin'] == '*'
        assert headers['Access-Control-Allow-Methods'] == 'POST'
