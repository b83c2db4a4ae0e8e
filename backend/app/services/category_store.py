import logging
import re
import threading

from backend.app.errors import DuplicateIdError, NotFoundError, ValidationError
from backend.app.models import DEFAULT_CATEGORY_COLOR, Category
from backend.app.services.result_cache import ResultCache

logger = logging.getLogger(__name__)

WHITESPACE_RE = re.compile(r"\s+")
NON_SLUG_RE = re.compile(r"[^a-z0-9-]")

DEFAULT_CATEGORIES = [
    {
        "id": "sports",
        "title": "Sports",
        "keywords": ["baseball", "golf", "formula 1", "tennis"],
        "color": "#ff6b6b",
    },
    {
        "id": "music",
        "title": "Music",
        "keywords": ["rock", "jazz", "classical", "pop"],
        "color": "#4ecdc4",
    },
    {
        "id": "tech",
        "title": "Technology",
        "keywords": ["programming", "ai", "gadgets", "software"],
        "color": "#45b7d1",
    },
]


def slugify(title: str) -> str:
    """'Formula 1!!' -> 'formula-1'"""
    return NON_SLUG_RE.sub("", WHITESPACE_RE.sub("-", title.lower()))


def clean_keywords(keywords) -> list[str]:
    if not isinstance(keywords, (list, tuple)):
        raise ValidationError("keywords must be an array of strings")
    cleaned = []
    for keyword in keywords:
        if not isinstance(keyword, str):
            raise ValidationError("keywords must be an array of strings")
        keyword = keyword.strip()
        if keyword:
            cleaned.append(keyword)
    if not cleaned:
        raise ValidationError("keywords must contain at least one non-empty keyword")
    return cleaned


class CategoryStore:
    """
    In-memory categories, kept in insertion order.
    Every successful create/update/delete clears the whole result cache.
    """

    def __init__(self, cache: ResultCache, seed: list[dict] | None = None):
        self._cache = cache
        self._lock = threading.Lock()
        self._categories: dict[str, Category] = {}
        for raw in DEFAULT_CATEGORIES if seed is None else seed:
            category = Category(**raw)
            self._categories[category.id] = category

    def list_all(self) -> list[Category]:
        with self._lock:
            return [category.model_copy(deep=True) for category in self._categories.values()]

    def get(self, category_id: str) -> Category:
        with self._lock:
            category = self._categories.get(category_id)
            if category is None:
                raise NotFoundError("Category not found", details={"id": category_id})
            return category.model_copy(deep=True)

    def create(self, title: str, keywords: list[str], color: str | None = None) -> Category:
        title = (title or "").strip()
        if not title:
            raise ValidationError("Title and keywords array are required")
        keywords = clean_keywords(keywords)
        category_id = slugify(title)
        if not category_id:
            raise ValidationError("Title must contain at least one letter or digit")

        category = Category(
            id=category_id,
            title=title,
            keywords=keywords,
            color=color or DEFAULT_CATEGORY_COLOR,
        )
        with self._lock:
            if category_id in self._categories:
                raise DuplicateIdError("Category with this title already exists", details={"id": category_id})
            self._categories[category_id] = category
        self._cache.invalidate_all()
        logger.info(f"Created category {category_id} with {len(keywords)} keywords")
        return category.model_copy(deep=True)

    def update(
        self,
        category_id: str,
        title: str | None = None,
        keywords: list[str] | None = None,
        color: str | None = None,
    ) -> Category:
        """Blank title or color are ignored; keywords, when given, must keep one non-empty entry."""
        with self._lock:
            current = self._categories.get(category_id)
            if current is None:
                raise NotFoundError("Category not found", details={"id": category_id})

            changes = {}
            if title and title.strip():
                changes["title"] = title.strip()
            if keywords is not None:
                changes["keywords"] = clean_keywords(keywords)
            if color:
                changes["color"] = color
            updated = current.model_copy(update=changes)
            self._categories[category_id] = updated
        self._cache.invalidate_all()
        logger.info(f"Updated category {category_id}: {sorted(changes) or 'no changes'}")
        return updated.model_copy(deep=True)

    def delete(self, category_id: str) -> None:
        with self._lock:
            if category_id not in self._categories:
                raise NotFoundError("Category not found", details={"id": category_id})
            del self._categories[category_id]
        self._cache.invalidate_all()
        logger.info(f"Deleted category {category_id}")
