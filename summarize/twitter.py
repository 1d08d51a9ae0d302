"""Twitter/X status URL helpers and Nitter mirror rotation."""

import hashlib
import re
from typing import List
from urllib.parse import urlparse, urlunparse

TWITTER_HOSTS = ('twitter.com', 'x.com', 'mobile.twitter.com', 'mobile.x.com')

NITTER_HOSTS = (
    'nitter.net',
    'nitter.poast.org',
    'nitter.privacydev.net',
    'xcancel.com',
    'nitter.space',
)

_STATUS_PATH_RE = re.compile(r'^/[^/]+/status(?:es)?/\d+')


def _host(parsed) -> str:
    host = (parsed.hostname or '').lower()
    return host[4:] if host.startswith('www.') else host


def is_twitter_status_url(url: str) -> bool:
    if not url:
        return False
    parsed = urlparse(url)
    return _host(parsed) in TWITTER_HOSTS and bool(_STATUS_PATH_RE.match(parsed.path or ''))


def to_nitter_urls(url: str, hosts=NITTER_HOSTS) -> List[str]:
    """
    Map a tweet URL onto Nitter mirrors, one URL per distinct host.

    The starting host is picked from a SHA-256 of the URL so the same tweet
    always yields the same order, while different tweets spread their first
    attempt across mirrors. Path and query are preserved.

    Examples:
        >>> to_nitter_urls('https://example.com')
        []
    """
    if not is_twitter_status_url(url):
        return []

    parsed = urlparse(url)
    unique_hosts = list(dict.fromkeys(h.lower() for h in hosts))
    if not unique_hosts:
        return []

    offset = int(hashlib.sha256(url.encode('utf-8')).hexdigest(), 16) % len(unique_hosts)
    rotated = unique_hosts[offset:] + unique_hosts[:offset]

    return [
        urlunparse(('https', host, parsed.path, '', parsed.query, ''))
        for host in rotated
    ]
