"""Comment text normalization and video id parsing.

normalize_comment turns raw comment markup into the canonical string that
is sent to the language back-end:

    1. Comments carrying an absolute http(s) link are excluded (None).
       Link-bearing comments are mostly promotion and are not analyzed.
    2. HTML entities are decoded (&amp; -> &, &#39; -> ').
    3. Text is lowercased.
    4. Everything except ASCII letters, digits and whitespace is removed
       (underscores included).
    5. Whitespace runs collapse to one space and the ends are trimmed.
       The byte order mark U+FEFF counts as whitespace throughout.

The result is idempotent: normalizing an already normalized comment
returns it unchanged.
"""

import html
import re
from urllib.parse import parse_qs, urlparse

_LINK_PATTERN = re.compile(r"https?://[^\s\ufeff]+")
_NON_WORD_PATTERN = re.compile(r"[^A-Za-z0-9\s\ufeff]")
_WHITESPACE_PATTERN = re.compile(r"[\s\ufeff]+")
_VIDEO_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{11}$")


def normalize_comment(raw: str) -> str | None:
    """Normalize raw comment text for analysis.

    Args:
        raw: Display text as returned by the source (may contain markup)

    Returns:
        Normalized text (possibly empty), or None when the comment
        contains a link and must not be analyzed
    """
    if _LINK_PATTERN.search(raw):
        return None

    text = html.unescape(raw)
    text = text.lower()
    text = _NON_WORD_PATTERN.sub("", text)
    text = _WHITESPACE_PATTERN.sub(" ", text)
    return text.strip()


def extract_video_id(value: str) -> str:
    """Extract a YouTube video id from a URL or a bare id.

    Supported forms:
        - https://www.youtube.com/watch?v=<id>&t=42 (other params ignored)
        - https://youtu.be/<id>
        - https://www.youtube.com/shorts/<id>
        - <id> (11 characters)

    Args:
        value: URL or video id

    Returns:
        The video id

    Raises:
        ValueError: If no video id can be found
    """
    value = value.strip()
    if _VIDEO_ID_PATTERN.match(value):
        return value

    parsed = urlparse(value)
    host = parsed.netloc.lower()

    if host.endswith("youtu.be"):
        candidate = parsed.path.lstrip("/").split("/")[0]
    elif parsed.path.startswith("/shorts/"):
        candidate = parsed.path.split("/")[2]
    else:
        candidate = parse_qs(parsed.query).get("v", [""])[0]

    if not candidate:
        raise ValueError(f"Cannot extract video id from '{value}'")
    return candidate
