import logging
from typing import Any

import requests
from pydantic import ValidationError as PydanticValidationError

from backend.app.config import YOUTUBE_API_BASE_URL
from backend.app.errors import ConfigurationError, QuotaExceededError, UpstreamError
from backend.app.models import VideoItem

logger = logging.getLogger(__name__)

YOUTUBE_PAGE_SIZE = 50
MISSING_KEY_MESSAGE = "YouTube API key is not configured. Please set YOUTUBE_API_KEY in your .env file."


def chunked(lst, n):
    for i in range(0, len(lst), n):
        yield lst[i:i + n]


def best_thumbnail_url(thumbnails: dict) -> str | None:
    for key in ("medium", "high", "standard", "maxres", "default"):
        t = thumbnails.get(key)
        if t and t.get("url"):
            return t["url"]
    return None


def is_quota_exceeded_response(status_code: int, body: str) -> bool:
    lowered = body.lower()
    return status_code in {403, 429} and (
        "quotaexceeded" in lowered or "quota exceeded" in lowered or "youtube.quota" in lowered
    )


def _error_details(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text[:500]


def bad_response(resource: str, details: Any = None) -> UpstreamError:
    return UpstreamError(
        f"YouTube returned an unexpected {resource} response.",
        reason="bad_response",
        details=details,
    )


def response_items(data: dict[str, Any], resource: str) -> list[dict[str, Any]]:
    items = data.get("items") or []
    if not isinstance(items, list) or not all(isinstance(it, dict) for it in items):
        raise bad_response(resource, details="items is not a list of objects")
    return items


def video_item_from_api(item: dict, keyword: str | None = None) -> VideoItem:
    snip = item.get("snippet") or {}
    details = item.get("contentDetails") or {}
    return VideoItem(
        id=item["id"],
        title=snip.get("title"),
        description=snip.get("description"),
        thumbnail=best_thumbnail_url(snip.get("thumbnails") or {}),
        channel_title=snip.get("channelTitle"),
        published_at=snip.get("publishedAt"),
        duration=details.get("duration") or "",
        keyword=keyword,
    )


class YouTubeGateway:
    """
    search.list + videos.list over the YouTube Data API v3.
    Every failure comes out as an UpstreamError tagged with a reason.
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str = YOUTUBE_API_BASE_URL,
        timeout: float = 15.0,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def ensure_configured(self) -> None:
        if not self.configured:
            raise ConfigurationError(MISSING_KEY_MESSAGE)

    def api_get(self, resource: str, params: dict[str, Any]) -> dict[str, Any]:
        self.ensure_configured()
        url = f"{self.base_url}/{resource}"
        try:
            response = requests.get(url, params={**params, "key": self.api_key}, timeout=self.timeout)
        except requests.RequestException as exc:
            raise UpstreamError(
                "YouTube is temporarily unavailable. Please try again.",
                reason="network",
                details=str(exc),
            ) from exc

        if response.status_code == 200:
            try:
                data = response.json()
            except ValueError as exc:
                raise UpstreamError(
                    "YouTube returned an unreadable response.",
                    reason="bad_response",
                ) from exc
            if not isinstance(data, dict):
                raise bad_response(resource, details=f"expected an object, got {type(data).__name__}")
            return data

        if is_quota_exceeded_response(response.status_code, response.text):
            raise QuotaExceededError(details=_error_details(response))

        raise UpstreamError(
            f"YouTube {resource} request failed with status {response.status_code}",
            reason="http_error",
            details=_error_details(response),
        )

    def search_by_keyword(self, keyword: str, quota: int) -> list[str]:
        ids: list[str] = []
        page_token = None
        while len(ids) < quota:
            params = {
                "part": "snippet",
                "q": keyword,
                "maxResults": min(YOUTUBE_PAGE_SIZE, quota - len(ids)),
                "type": "video",
                "videoDuration": "medium",
                "order": "relevance",
            }
            if page_token:
                params["pageToken"] = page_token

            data = self.api_get("search", params)
            page_token = data.get("nextPageToken")

            for it in response_items(data, "search"):
                item_id = it.get("id") or {}
                if not isinstance(item_id, dict):
                    raise bad_response("search", details={"id": item_id})
                vid = item_id.get("videoId")
                if vid and vid not in ids:
                    ids.append(vid)
                    if len(ids) >= quota:
                        break

            if not page_token:
                break

        logger.debug(f"search '{keyword}' returned {len(ids)} ids (quota {quota})")
        return ids[:quota]

    def fetch_details(self, ids: list[str], keyword: str | None = None) -> list[VideoItem]:
        videos: list[VideoItem] = []
        for batch in chunked(list(dict.fromkeys(ids)), YOUTUBE_PAGE_SIZE):
            payload = self.api_get(
                "videos",
                {
                    "part": "contentDetails,snippet",
                    "id": ",".join(batch),
                },
            )
            for item in response_items(payload, "videos"):
                if not item.get("id"):
                    continue
                try:
                    videos.append(video_item_from_api(item, keyword))
                except (PydanticValidationError, AttributeError, TypeError) as exc:
                    raise bad_response("videos", details={"id": item.get("id"), "error": str(exc)}) from exc
        return videos
