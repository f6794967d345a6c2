"""YouTube Data API v3 client.

Two read-only calls are used by the pipeline:

    fetch_video_metadata: videos?part=snippet,statistics
        Title, description, channel and the comment count reported by
        YouTube. Looked up once per run, before any comment page.

    fetch_comment_page: commentThreads?part=snippet
        One page of top-level comments. The API caps maxResults at 100;
        nextPageToken is absent on the last page.

Error Handling Strategy:
    Every failure (HTTP status, timeout, transport, malformed body) is raised
    as MetadataFetchError or PageFetchError. Both abort the run; a silently
    incomplete report is worse than none.
"""

import asyncio
import logging
from typing import Any

import aiohttp

from clients.http import request_json
from errors import MetadataFetchError, PageFetchError
from models.comment import CommentPage, RawComment, VideoMetadata

logger = logging.getLogger(__name__)

YOUTUBE_API_URL = "https://www.googleapis.com/youtube/v3"

# Per-call ceiling enforced by the API
MAX_PAGE_SIZE = 100


def _parse_comment_count(statistics: dict[str, Any]) -> int | None:
    """Read commentCount (a decimal string) from video statistics."""
    value = statistics.get("commentCount")
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.debug("Unparseable commentCount: %r", value)
        return None


def _parse_thread(item: dict[str, Any]) -> RawComment:
    """Convert a commentThread resource into a RawComment."""
    top_level = item["snippet"]["topLevelComment"]
    return RawComment(
        raw_text=top_level["snippet"].get("textDisplay", ""),
        comment_id=top_level.get("id", item.get("id", "")),
    )


class YouTubeClient:
    """Fetches video metadata and comment pages.

    Example:
        >>> async with new_session() as session:
        ...     youtube = YouTubeClient(session)
        ...     meta = await youtube.fetch_video_metadata("dQw4w9WgXcQ", api_key)
        ...     page = await youtube.fetch_comment_page("dQw4w9WgXcQ", api_key, None, 100)
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        base_url: str = YOUTUBE_API_URL,
        timeout: float = 30.0,
    ):
        """Initialize the client.

        Args:
            session: Shared aiohttp session (owned by the caller)
            base_url: API root, overridable for testing
            timeout: Per-request timeout in seconds
        """
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def fetch_video_metadata(self, video_id: str, api_key: str) -> VideoMetadata:
        """Look up title, description, channel and reported comment count.

        Raises:
            MetadataFetchError: On any failure, including an unknown video id
        """
        params = {"part": "snippet,statistics", "id": video_id, "key": api_key}
        try:
            data = await request_json(
                self.session, "GET", f"{self.base_url}/videos",
                params=params, timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise MetadataFetchError(f"Video metadata request timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            raise MetadataFetchError(f"Video metadata request failed: {e}") from e
        except Exception as e:
            raise MetadataFetchError(str(e)) from e

        items = data.get("items") or []
        if not items:
            raise MetadataFetchError(f"Video not found: {video_id}")

        video = items[0]
        snippet = video.get("snippet", {})
        metadata = VideoMetadata(
            title=snippet.get("title", ""),
            description=snippet.get("description", ""),
            channel_title=snippet.get("channelTitle", ""),
            reported_comment_count=_parse_comment_count(video.get("statistics", {})),
        )
        logger.debug(
            "Video metadata fetched | id=%s title=%s comments=%s",
            video_id, metadata.title[:50], metadata.reported_comment_count,
        )
        return metadata

    async def fetch_comment_page(
        self,
        video_id: str,
        api_key: str,
        cursor: str | None,
        page_size: int,
    ) -> CommentPage:
        """Fetch one page of top-level comments.

        Args:
            video_id: YouTube video id
            api_key: YouTube Data API key
            cursor: Continuation token from the previous page, None for the first
            page_size: Requested items (clamped to 1..100)

        Raises:
            PageFetchError: On any failure
        """
        params: dict[str, Any] = {
            "part": "snippet",
            "videoId": video_id,
            "key": api_key,
            "maxResults": max(1, min(page_size, MAX_PAGE_SIZE)),
        }
        if cursor:
            params["pageToken"] = cursor

        try:
            data = await request_json(
                self.session, "GET", f"{self.base_url}/commentThreads",
                params=params, timeout=self.timeout,
            )
            items = [_parse_thread(item) for item in data.get("items", [])]
        except asyncio.TimeoutError as e:
            raise PageFetchError(f"Comment page request timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            raise PageFetchError(f"Comment page request failed: {e}") from e
        except (KeyError, TypeError) as e:
            raise PageFetchError(f"Malformed comment page: {e}") from e
        except Exception as e:
            raise PageFetchError(str(e)) from e

        return CommentPage(items=items, next_cursor=data.get("nextPageToken") or None)
