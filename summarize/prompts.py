"""Prompt construction for link summaries."""

import math
from typing import Optional, Union

from .cleaner import ContentBudgetResult

# Target summary size in characters
SUMMARY_LENGTH_CHARACTERS = {
    'short': 900,
    'medium': 1800,
    'long': 4200,
    'xl': 9000,
    'xxl': 17000,
}

LENGTH_GUIDANCE = {
    'short': 'a tight summary of 2-3 sentences',
    'medium': 'a short summary of 1-2 paragraphs',
    'long': 'a detailed summary of several paragraphs',
    'xl': 'a thorough, well-structured summary with the key points',
    'xxl': 'an extensive, well-structured summary covering every section',
}


def target_characters(length: Union[str, int]) -> int:
    if isinstance(length, int):
        return length
    return SUMMARY_LENGTH_CHARACTERS[length]


def estimate_max_output_tokens(length: Union[str, int]) -> int:
    """Token ceiling for a summary of the requested length (~4 chars per token, plus headroom)."""
    return max(256, math.ceil(target_characters(length) / 4 * 1.5))


def build_link_summary_prompt(
    url: str,
    budget: ContentBudgetResult,
    length: Union[str, int] = 'xl',
    title: Optional[str] = None,
    description: Optional[str] = None,
    site_name: Optional[str] = None,
    transcript: bool = False,
) -> str:
    if isinstance(length, int):
        guidance = f'a summary of about {length} characters'
    else:
        guidance = LENGTH_GUIDANCE[length]

    source = 'transcript' if transcript else 'page content'
    lines = [
        f'Summarize the following {source} as {guidance}.',
        'Write in plain language, keep facts accurate and do not invent details.',
        '',
        f'URL: {url}',
    ]
    if title:
        lines.append(f'Title: {title}')
    if site_name:
        lines.append(f'Site: {site_name}')
    if description:
        lines.append(f'Description: {description}')
    if budget.truncated:
        lines.append(
            f'Note: the {source} was truncated to {len(budget.content)} of '
            f'{budget.total_characters} characters.'
        )

    lines.extend(['', f'{source.capitalize()}:', budget.content])
    return '\n'.join(lines)
