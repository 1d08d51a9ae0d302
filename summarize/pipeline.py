"""
End-to-end link summarization: fetch, budget, prompt, complete.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import requests

from .cleaner import ContentBudgetResult, apply_content_budget
from .config import EnvConfig, ResolvedRunSettings
from .errors import ConfigurationError, EmptyContentError, RequestTimeoutError
from .executor import ResilientRequestExecutor
from .firecrawl import make_firecrawl_scraper
from .link_preview import ContentFetchResult, FetchOptions, LinkPreviewClient
from .prompts import build_link_summary_prompt, estimate_max_output_tokens
from .webpage import BlockedContentRules

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SummaryResult:
    url: str
    fetched: ContentFetchResult
    budget: Optional[ContentBudgetResult] = None
    prompt: Optional[str] = None
    summary: Optional[str] = None
    model: Optional[str] = None


def build_link_preview_client(env: EnvConfig, session: requests.Session) -> LinkPreviewClient:
    return LinkPreviewClient(
        session=session,
        scrape_with_firecrawl=make_firecrawl_scraper(env.firecrawl_api_key, session),
        apify_api_token=env.apify_api_token,
        assemblyai_api_key=env.assemblyai_api_key,
        block_rules=BlockedContentRules(min_text_length=env.min_text_length),
    )


def complete_with_retries(executor: ResilientRequestExecutor, prompt: str, settings: ResolvedRunSettings,
                          max_output_tokens: int) -> str:
    """Run the completion, re-issuing it only after a timeout."""
    attempts = settings.retries + 1
    for attempt in range(1, attempts + 1):
        try:
            return executor.complete(prompt, timeout_ms=settings.timeout_ms, max_output_tokens=max_output_tokens)
        except RequestTimeoutError as e:
            if attempt == attempts:
                raise
            logger.warning('%s (attempt %d/%d), retrying', e.message, attempt, attempts)


def summarize_url(
    url: str,
    settings: ResolvedRunSettings = ResolvedRunSettings(),
    env: EnvConfig = EnvConfig(),
    extract_only: bool = False,
    prompt_only: bool = False,
    session: requests.Session = None,
    client: LinkPreviewClient = None,
    executor: ResilientRequestExecutor = None,
) -> SummaryResult:
    """
    Summarize one URL.

    extract_only returns the full extracted content without building a prompt
    or calling the model. prompt_only stops after building the prompt.
    Configuration problems are raised before any network call.
    """
    if extract_only and prompt_only:
        raise ConfigurationError('--prompt and --extract-only are mutually exclusive')

    needs_model = not (extract_only or prompt_only)
    if needs_model and executor is None and not env.openai_api_key:
        raise ConfigurationError('Missing OPENAI_API_KEY (required to summarize; use extract_only to skip)')
    if settings.firecrawl_mode == 'always' and client is None and not env.firecrawl_api_key:
        raise ConfigurationError('--firecrawl always requires FIRECRAWL_API_KEY')

    session = session or requests.Session()
    client = client or build_link_preview_client(env, session)

    fetched = client.fetch_link_content(url, FetchOptions(
        timeout_ms=settings.timeout_ms,
        firecrawl_mode=settings.firecrawl_mode,
        transcript_mode=settings.transcript_mode,
        markdown_mode=settings.markdown_mode,
    ))
    logger.info(
        'Fetched %s via %s (%d chars)', url, fetched.diagnostics.strategy, fetched.total_characters,
    )

    if extract_only:
        return SummaryResult(url=url, fetched=fetched)

    if not fetched.content.strip():
        raise EmptyContentError(url)

    budget = apply_content_budget(fetched.content, settings.max_content_characters)
    if budget.truncated:
        logger.info('Content for %s truncated to %d of %d characters', url, len(budget.content), budget.total_characters)

    prompt = build_link_summary_prompt(
        url,
        budget,
        length=settings.length,
        title=fetched.title,
        description=fetched.description,
        site_name=fetched.site_name,
        transcript=fetched.transcript_source is not None,
    )
    if prompt_only:
        return SummaryResult(url=url, fetched=fetched, budget=budget, prompt=prompt)

    executor = executor or ResilientRequestExecutor(
        api_key=env.openai_api_key,
        model=env.model,
        base_url=env.openai_base_url,
        session=session,
    )
    max_output_tokens = settings.max_output_tokens or estimate_max_output_tokens(settings.length)
    summary = complete_with_retries(executor, prompt, settings, max_output_tokens)

    return SummaryResult(
        url=url,
        fetched=fetched,
        budget=budget,
        prompt=prompt,
        summary=summary,
        model=executor.model,
    )
