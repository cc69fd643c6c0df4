# src/thinko_space/tasks/video.py

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..core.ports import VideoSearch
from ..errors import VideoSearchError
from .task_store import TaskTreeStore

logger = logging.getLogger(__name__)

YOUTUBE_SEARCH_URL = "https://www.googleapis.com/youtube/v3/search"
YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v={video_id}"


class YouTubeSearchClient:
    """Finds the single most relevant video for a query (YouTube Data API v3)."""

    def __init__(self, settings, *, http: httpx.Client | None = None) -> None:
        self._api_key = (getattr(settings, "youtube_api_key", None) or "").strip()
        self._region = getattr(settings, "youtube_region", "IN") or "IN"
        self._safesearch = getattr(settings, "youtube_safesearch", "moderate") or "moderate"
        self._http = http

    def _params(self, query: str) -> dict[str, Any]:
        return {
            "part": "snippet",
            "type": "video",
            "maxResults": 1,
            "q": query,
            "key": self._api_key,
            "regionCode": self._region,
            "safeSearch": self._safesearch,
            "relevanceLanguage": "en",
        }

    def _get(self, params: dict[str, Any]) -> httpx.Response:
        if self._http is not None:
            return self._http.get(YOUTUBE_SEARCH_URL, params=params)
        with httpx.Client(timeout=httpx.Timeout(10.0)) as client:
            return client.get(YOUTUBE_SEARCH_URL, params=params)

    def search(self, query: str) -> str:
        if not self._api_key:
            raise VideoSearchError("Missing THINKO_YOUTUBE_API_KEY in your .env")

        try:
            r = self._get(self._params(query))
        except httpx.HTTPError as e:
            raise VideoSearchError(f"YouTube search failed: {e}") from e

        try:
            data = r.json()
        except ValueError:
            data = {}

        if r.is_error or (isinstance(data, dict) and data.get("error")):
            err = data.get("error") if isinstance(data, dict) else None
            message = err.get("message") if isinstance(err, dict) else None
            raise VideoSearchError(message or "YouTube search failed")

        try:
            video_id = data["items"][0]["id"]["videoId"]
        except (KeyError, IndexError, TypeError):
            video_id = None
        if not video_id:
            raise VideoSearchError("No relevant YouTube video found.")

        return YOUTUBE_WATCH_URL.format(video_id=video_id)


def resolve_video_url(store: TaskTreeStore, search: VideoSearch, node_id: str) -> str | None:
    """
    Return the tutorial link for a task, searching once and memoizing it on the node.

    Unknown node -> None.
    """
    node = store.find(node_id)
    if node is None:
        return None
    if node.video_url:
        return node.video_url

    url = search.search(f"{node.text} tutorial")
    store.update(node_id, video_url=url)
    logger.info("Video resolved id=%s url=%s", node_id, url)
    return url
