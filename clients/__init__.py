"""Remote API clients for the comment analysis pipeline.

YouTubeClient:
    Video metadata and paginated comment threads (YouTube Data API v3).

LanguageClient:
    Sentiment, syntax and entity analysis (Cloud Natural Language API).

new_session:
    One aiohttp session per run, shared by both clients.

Example:
    >>> from clients import LanguageClient, YouTubeClient, new_session
    >>> async with new_session() as session:
    ...     youtube = YouTubeClient(session)
    ...     language = LanguageClient(session, api_key)
"""

from clients.http import new_session
from clients.language import LanguageClient
from clients.youtube import YouTubeClient

__all__ = [
    "LanguageClient",
    "YouTubeClient",
    "new_session",
]
