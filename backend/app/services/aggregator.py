import logging
import math
import random
import re
from concurrent.futures import ThreadPoolExecutor

from backend.app.errors import UpstreamError, ValidationError
from backend.app.models import AggregatedResult, Category, KeywordOutcome, VideoItem
from backend.app.services.youtube_gateway import YouTubeGateway

logger = logging.getLogger(__name__)

MIN_DURATION_SECONDS = 60
ISO8601_DURATION_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")


def iso8601_duration_to_seconds(duration: str | None) -> int | None:
    """
    'PT1H2M3S' -> 3723. Missing parts count as 0, so a bare 'PT' is 0.
    Returns None when there is no PT duration at all (e.g. 'P0D' for live streams).
    """
    match = ISO8601_DURATION_RE.search(duration or "")
    if not match:
        return None
    hours = int(match.group(1) or 0)
    minutes = int(match.group(2) or 0)
    seconds = int(match.group(3) or 0)
    return hours * 3600 + minutes * 60 + seconds


def passes_duration_filter(video: VideoItem, min_seconds: int = MIN_DURATION_SECONDS) -> bool:
    seconds = iso8601_duration_to_seconds(video.duration)
    return seconds is None or seconds >= min_seconds


def dedupe_by_id(videos: list[VideoItem]) -> list[VideoItem]:
    seen_ids: set[str] = set()
    unique = []
    for video in videos:
        if video.id in seen_ids:
            continue
        seen_ids.add(video.id)
        unique.append(video)
    return unique


def per_keyword_quota(result_bound: int, keyword_count: int) -> int:
    return math.ceil(result_bound / keyword_count)


class Aggregator:
    """
    Fans a keyword set out to the gateway and folds the answers into one
    filtered, deduplicated, shuffled and bounded result.
    """

    def __init__(
        self,
        gateway: YouTubeGateway,
        rng: random.Random | None = None,
        min_duration_seconds: int = MIN_DURATION_SECONDS,
    ):
        self.gateway = gateway
        self.rng = rng or random.Random()
        self.min_duration_seconds = min_duration_seconds

    def _search_keyword(self, keyword: str, quota: int) -> list[VideoItem]:
        ids = self.gateway.search_by_keyword(keyword, quota)
        if not ids:
            return []
        return self.gateway.fetch_details(ids, keyword=keyword)

    def _collect(self, keywords: list[str], quota: int) -> tuple[list[VideoItem], list[KeywordOutcome]]:
        with ThreadPoolExecutor(max_workers=len(keywords), thread_name_prefix="keyword") as pool:
            futures = [pool.submit(self._search_keyword, keyword, quota) for keyword in keywords]

            collected: list[VideoItem] = []
            outcomes: list[KeywordOutcome] = []
            # Merge in keyword order, whatever order the calls finish in.
            for keyword, future in zip(keywords, futures):
                try:
                    videos = future.result()
                except UpstreamError as exc:
                    logger.warning(f"Error searching for keyword '{keyword}' ({exc.reason}): {exc.message}")
                    outcomes.append(KeywordOutcome(keyword=keyword, ok=False, error=exc.message))
                    continue
                collected.extend(videos)
                outcomes.append(KeywordOutcome(keyword=keyword, ok=True, count=len(videos)))
        return collected, outcomes

    def aggregate(
        self,
        keywords: list[str],
        result_bound: int,
        category: Category | None = None,
    ) -> AggregatedResult:
        keywords = list(keywords)
        if not keywords:
            raise ValidationError("At least one keyword is required")
        if result_bound < 1:
            raise ValidationError("maxResults must be at least 1")
        self.gateway.ensure_configured()

        quota = per_keyword_quota(result_bound, len(keywords))
        collected, outcomes = self._collect(keywords, quota)

        kept = [video for video in collected if passes_duration_filter(video, self.min_duration_seconds)]
        unique = dedupe_by_id(kept)
        self.rng.shuffle(unique)

        failed = sum(1 for outcome in outcomes if not outcome.ok)
        logger.info(
            f"Aggregated {len(unique)} videos from {len(keywords) - failed}/{len(keywords)} keywords "
            f"(quota {quota}, {len(collected) - len(kept)} too short)"
        )
        return AggregatedResult(
            videos=unique[:result_bound],
            total_found=len(unique),
            keywords=keywords,
            category=category,
            outcomes=outcomes,
        )
