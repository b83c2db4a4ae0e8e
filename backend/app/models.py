"""Data shapes shared by the store, the gateway, the aggregator and the handlers."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_CATEGORY_COLOR = "#667eea"


class Category(BaseModel):
    id: str
    title: str
    keywords: list[str]
    color: str = DEFAULT_CATEGORY_COLOR


class VideoItem(BaseModel):
    """One video as returned by videos.list, tagged with the keyword that found it."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str | None = None
    description: str | None = None
    thumbnail: str | None = None
    channel_title: str | None = Field(default=None, alias="channelTitle")
    published_at: str | None = Field(default=None, alias="publishedAt")
    duration: str = ""
    keyword: str | None = None


class KeywordOutcome(BaseModel):
    keyword: str
    ok: bool
    count: int = 0
    error: str | None = None


class AggregatedResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    videos: list[VideoItem] = Field(default_factory=list)
    total_found: int = Field(default=0, alias="totalFound")
    keywords: list[str] = Field(default_factory=list)
    category: Category | None = None
    outcomes: list[KeywordOutcome] = Field(default_factory=list)

    @property
    def failed_keywords(self) -> list[KeywordOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "videos": [video.model_dump(by_alias=True) for video in self.videos],
            "totalFound": self.total_found,
            "keywords": list(self.keywords),
        }
        if self.category is not None:
            payload["category"] = self.category.model_dump()
        return payload


class CategoryCreateRequest(BaseModel):
    title: str | None = None
    keywords: list[str] | None = None
    color: str | None = None


class CategoryUpdateRequest(BaseModel):
    title: str | None = None
    keywords: list[str] | None = None
    color: str | None = None
