"""
Source URL validation.

yt-dlp accepts far more than YouTube watch pages (playlists, channels,
other sites), so only the shape of the URL is checked here.
"""

import re
from urllib.parse import urlparse

from ytarchive.core.error_codes import JobError
from ytarchive.core.constants import ErrorCode

_YOUTUBE_ID_RE = re.compile(r'^[a-zA-Z0-9_-]{11}$')


def validate_source_url(url: str) -> str:
    """
    Return the stripped URL, or raise JobError(ERR_INVALID_ARGUMENT).
    A bare 11-character YouTube id is expanded to a watch URL.
    """
    url = (url or "").strip()
    if not url:
        raise JobError(ErrorCode.INVALID_ARGUMENT, "A source URL is required")

    if _YOUTUBE_ID_RE.match(url):
        return f"https://www.youtube.com/watch?v={url}"

    parsed = urlparse(url)
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        raise JobError(ErrorCode.INVALID_ARGUMENT, f"Not a valid http(s) URL: {url}")
    return url
