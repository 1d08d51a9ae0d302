"""
Link Summarizer Cloud Function

Fetches a URL's content (article text or, for media pages, a transcript) and
summarizes it with an OpenAI-compatible model.

Responsibilities:
- Resolve run settings from env, optional config file and request options
- Fetch content (HTML, Firecrawl fallback, transcript providers)
- Budget the content into a prompt
- Request the summary with timeout/retry handling

Does NOT:
- Persist anything between requests
- Crawl beyond the single requested URL
"""

import functions_framework
import json
import logging
import os
import sys
from datetime import datetime, timezone
from urllib.parse import urlparse

# Add summarize package to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from summarize import (  # noqa: E402
    ConfigurationError,
    SummarizeError,
    apply_overrides,
    load_config_file,
    load_env_config,
    resolve_run_overrides,
    resolve_run_settings,
    summarize_url,
)

logging.basicConfig(
    level=os.environ.get('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger(__name__)


def resolve_settings(options: dict, env):
    """File defaults first, then per-request overrides."""
    file_defaults = load_config_file(env.config_path) if env.config_path else {}
    settings = resolve_run_settings(file_defaults)
    return apply_overrides(settings, resolve_run_overrides(options))


def build_response(url: str, domain: str, result) -> dict:
    fetched = result.fetched
    budget = result.budget

    response = {
        'url': url,
        'domain': domain,
        'title': fetched.title,
        'description': fetched.description,
        'site_name': fetched.site_name,
        'truncated': budget.truncated if budget else False,
        'total_characters': budget.total_characters if budget else fetched.total_characters,
        'word_count': budget.word_count if budget else fetched.word_count,
        'transcript_source': fetched.transcript_source,
        'diagnostics': fetched.diagnostics.to_dict(),
        'processed_at': datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%fZ'),
    }

    if result.summary is not None:
        response['summary'] = result.summary
        response['model'] = result.model
    elif result.prompt is not None:
        response['prompt'] = result.prompt
    else:
        response['content'] = fetched.content

    return response


@functions_framework.http
def summarize_link(request):
    """
    Main Cloud Function entry point.

    Expected JSON input:
    {
        "url": "https://example.com/article",
        "options": {
            "extract_only": false,
            "prompt_only": false,
            "firecrawl": "auto",
            "transcript": "auto",
            "markdown": "off",
            "timeout": "2m",
            "retries": 1,
            "max_output_tokens": "2k",
            "length": "xl"
        }
    }
    """
    # Handle CORS
    if request.method == 'OPTIONS':
        headers = {
            'Access-Control-Allow-Origin': '*',
            'Access-Control-Allow-Methods': 'POST',
            'Access-Control-Allow-Headers': 'Content-Type',
            'Access-Control-Max-Age': '3600'
        }
        return ('', 204, headers)

    headers = {'Access-Control-Allow-Origin': '*'}

    request_json = request.get_json(silent=True)
    url = request_json.get('url') if isinstance(request_json, dict) else None
    if not isinstance(url, str) or not url.strip():
        return (json.dumps({
            'error': 'Missing required field: url'
        }), 400, headers)

    url = url.strip()
    options = request_json.get('options')
    if not isinstance(options, dict):
        options = {}
    domain = urlparse(url).netloc.replace('www.', '')

    try:
        env = load_env_config()
        settings = resolve_settings(options, env)
        result = summarize_url(
            url,
            settings=settings,
            env=env,
            extract_only=bool(options.get('extract_only', False)),
            prompt_only=bool(options.get('prompt_only', False)),
        )
        return (json.dumps(build_response(url, domain, result)), 200, headers)

    except ConfigurationError as e:
        logger.warning('Configuration error for %s: %s', url, e.message)
        return (json.dumps({
            'url': url,
            'domain': domain,
            'error': e.to_dict(),
        }), 400, headers)

    except SummarizeError as e:
        # Fetch and summarization failures are reported in the body
        logger.warning('%s failed for %s: %s', e.stage, url, e.message)
        return (json.dumps({
            'url': url,
            'domain': domain,
            'error': e.to_dict(),
        }), 200, headers)

    except Exception as e:
        logger.exception('Unexpected error processing %s', url)
        return (json.dumps({
            'url': url,
            'domain': domain,
            'error': {
                'stage': 'processing',
                'message': str(e),
                'recoverable': False
            }
        }), 500, headers)
