"""
Text cleanup and prompt budgeting.

Raw page text and transcripts go through the same pipeline before they reach a
prompt: decode HTML entities, collapse whitespace, then clip to a character
budget, preferring to end on a full sentence.
"""

import html
import re
from dataclasses import dataclass
from typing import Optional

_HORIZONTAL_WS_RE = re.compile(r'[ \t\f\v\u00a0\u1680\u2000-\u200a\u202f\u205f\u3000]+')
_ANY_WS_RE = re.compile(r'\s+')
_SENTENCE_END_RE = re.compile(r'[.!?]')


@dataclass(frozen=True)
class ContentBudgetResult:
    content: str
    truncated: bool
    total_characters: int
    word_count: int


def decode_html_entities(text: str) -> str:
    """
    Decode named and numeric HTML entities.

    Examples:
        >>> decode_html_entities('&lt;tag&gt; &amp; &#39;x&#39;')
        "<tag> & 'x'"
    """
    if not text:
        return ''
    return html.unescape(text)


def normalize_whitespace(text: str) -> str:
    """Collapse horizontal whitespace and blank lines, keeping line structure."""
    return normalize_for_prompt(text)


def normalize_for_prompt(text: str) -> str:
    """
    Collapse horizontal whitespace, trim each line and drop blank lines.

    Examples:
        >>> normalize_for_prompt('Hello\\u00a0\\u00a0world\\t\\t\\n\\n  next \\n\\n\\n line')
        'Hello world\\nnext\\nline'
    """
    if not text:
        return ''
    text = text.replace('\r\n', '\n').replace('\r', '\n')
    lines = (_HORIZONTAL_WS_RE.sub(' ', line).strip() for line in text.split('\n'))
    return '\n'.join(line for line in lines if line)


def normalize_candidate(value) -> Optional[str]:
    """Normalize an optional metadata value; blank input becomes None."""
    if value is None or not isinstance(value, str):
        return None
    value = _ANY_WS_RE.sub(' ', value).strip()
    return value or None


def clip_at_sentence_boundary(text: str, max_characters: int) -> str:
    """
    Clip text to max_characters, ending on a sentence when possible.

    A sentence ends at ``.``, ``!`` or ``?`` followed by whitespace or the end
    of the text. If no such boundary falls inside the window the text is
    hard-clipped at exactly max_characters.

    Examples:
        >>> clip_at_sentence_boundary('First sentence. Second sentence. Third sentence.', 22)
        'First sentence.'
        >>> clip_at_sentence_boundary('First sentence.', 3)
        'Fir'
    """
    if max_characters <= 0:
        return ''
    if len(text) <= max_characters:
        return text

    window = text[:max_characters]
    cut = -1
    for match in _SENTENCE_END_RE.finditer(window):
        end = match.end()
        if end == len(text) or text[end].isspace():
            cut = end

    if cut > 0:
        return window[:cut].rstrip()
    return window


def apply_content_budget(text: str, max_characters: int) -> ContentBudgetResult:
    """
    Clean text and fit it into a character budget.

    total_characters is the cleaned length before clipping, so callers can
    tell the reader how much was cut.
    """
    cleaned = normalize_for_prompt(decode_html_entities(text or ''))
    total = len(cleaned)
    truncated = total > max_characters
    content = clip_at_sentence_boundary(cleaned, max_characters) if truncated else cleaned

    return ContentBudgetResult(
        content=content,
        truncated=truncated,
        total_characters=total,
        word_count=len(content.split()),
    )


_MD_RULES = (
    (re.compile(r'^```[^\n]*$', re.M), ''),
    (re.compile(r'!\[([^\]]*)\]\([^)]*\)'), r'\1'),
    (re.compile(r'\[([^\]]+)\]\([^)]*\)'), r'\1'),
    (re.compile(r'^\s{0,3}#{1,6}\s+', re.M), ''),
    (re.compile(r'^\s{0,3}>\s?', re.M), ''),
    (re.compile(r'^\s*(?:[-*+]|\d+\.)\s+', re.M), ''),
    (re.compile(r'^\s*(?:-{3,}|\*{3,}|_{3,})\s*$', re.M), ''),
    (re.compile(r'(\*\*|__)(.+?)\1'), r'\2'),
    (re.compile(r'(?<![\w*])\*(?!\s)(.+?)(?<!\s)\*(?!\w)'), r'\1'),
    (re.compile(r'`([^`]+)`'), r'\1'),
)


def strip_markdown(markdown: str) -> str:
    """Reduce markdown to plain prompt text."""
    text = markdown or ''
    for pattern, replacement in _MD_RULES:
        text = pattern.sub(replacement, text)
    return normalize_for_prompt(text)


def count_words(text: str) -> int:
    return len(text.split()) if text else 0
