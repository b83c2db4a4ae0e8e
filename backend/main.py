import logging
import random
from datetime import datetime, timezone
from typing import Annotated, Any

import uvicorn
from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.app.config import Settings, load_settings
from backend.app.errors import AppError, UpstreamError, ValidationError
from backend.app.logging_config import setup_logging
from backend.app.models import AggregatedResult, Category, CategoryCreateRequest, CategoryUpdateRequest
from backend.app.services.aggregator import Aggregator
from backend.app.services.category_store import CategoryStore
from backend.app.services.result_cache import (
    ResultCache,
    category_cache_key,
    normalize_keywords,
    search_cache_key,
)
from backend.app.services.youtube_gateway import YouTubeGateway

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 50
MAX_RESULTS_LIMIT = 200


# ---------------------------
# Helpers
# ---------------------------

def clamp_max_results(value: int) -> int:
    return max(1, min(value, MAX_RESULTS_LIMIT))


def format_timestamp(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def category_payload(category: Category) -> dict[str, Any]:
    return category.model_dump()


def raise_if_every_keyword_failed(result: AggregatedResult) -> AggregatedResult:
    """
    Partial failure is fine; if every keyword failed there is nothing to show
    and the caller gets a 500 with the per-keyword errors instead of an empty list.
    """
    if result.outcomes and not any(outcome.ok for outcome in result.outcomes):
        raise UpstreamError(
            "Failed to fetch videos from YouTube API",
            reason="all_keywords_failed",
            details=[outcome.model_dump() for outcome in result.failed_keywords],
        )
    return result


def cached_aggregate(
    request: Request,
    cache_key: str,
    keywords: list[str],
    max_results: int,
    category: Category | None = None,
) -> dict[str, Any]:
    state = request.app.state

    def compute() -> AggregatedResult:
        result = state.aggregator.aggregate(keywords, max_results, category=category)
        return raise_if_every_keyword_failed(result)

    lookup = state.cache.get_or_compute(cache_key, compute)
    payload = lookup.data.to_payload()
    if lookup.served_from_cache:
        payload["cached"] = True
        payload["cacheExpires"] = format_timestamp(state.cache.expires_at(lookup.cached_at))
    return payload


# ---------------------------
# App setup
# ---------------------------

def create_app(
    settings: Settings | None = None,
    gateway: YouTubeGateway | None = None,
    rng: random.Random | None = None,
) -> FastAPI:
    settings = settings or load_settings()
    gateway = gateway or YouTubeGateway(
        settings.youtube_api_key,
        base_url=settings.youtube_api_base_url,
        timeout=settings.request_timeout_seconds,
    )
    cache = ResultCache(ttl_seconds=settings.cache_ttl_seconds)

    application = FastAPI(title="Category Video Browser")
    application.state.settings = settings
    application.state.cache = cache
    application.state.categories = CategoryStore(cache)
    application.state.aggregator = Aggregator(gateway, rng=rng)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_exception_handler(AppError, app_error_handler)
    application.add_exception_handler(RequestValidationError, request_validation_handler)
    application.add_exception_handler(Exception, unexpected_error_handler)
    application.include_router(router)

    logger.info(f"YouTube API Key configured: {'Yes' if gateway.configured else 'No'}")
    return application


async def app_error_handler(_request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def unexpected_error_handler(_request: Request, exc: Exception):
    logger.error(f"Unhandled {type(exc).__name__} while serving request", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "details": type(exc).__name__},
    )


async def request_validation_handler(_request: Request, exc: RequestValidationError):
    details = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": details})


# ---------------------------
# Routes
# ---------------------------

router = APIRouter(prefix="/api")


@router.get("/health")
def health():
    return {"status": "OK", "message": "YouTube API Server is running"}


@router.get("/categories")
def list_categories(request: Request):
    store: CategoryStore = request.app.state.categories
    return {"categories": [category_payload(c) for c in store.list_all()]}


@router.post("/categories")
def create_category(payload: CategoryCreateRequest, request: Request):
    if not payload.title or not payload.keywords:
        raise ValidationError(
            "Title and keywords array are required",
            details={"received": payload.model_dump()},
        )
    store: CategoryStore = request.app.state.categories
    category = store.create(payload.title, payload.keywords, payload.color)
    return {"category": category_payload(category), "message": "Category created successfully"}


@router.put("/categories/{category_id}")
def update_category(category_id: str, payload: CategoryUpdateRequest, request: Request):
    store: CategoryStore = request.app.state.categories
    category = store.update(
        category_id,
        title=payload.title,
        keywords=payload.keywords,
        color=payload.color,
    )
    return {"category": category_payload(category), "message": "Category updated successfully"}


@router.delete("/categories/{category_id}")
def delete_category(category_id: str, request: Request):
    store: CategoryStore = request.app.state.categories
    store.delete(category_id)
    return {"message": "Category deleted successfully"}


@router.get("/search/category/{category_id}")
def search_category(
    category_id: str,
    request: Request,
    max_results: Annotated[int, Query(alias="maxResults")] = DEFAULT_MAX_RESULTS,
):
    """
    Aggregated videos for every keyword of one category.
    Served from the result cache for 10 minutes.
    """
    store: CategoryStore = request.app.state.categories
    category = store.get(category_id)
    max_results = clamp_max_results(max_results)
    return cached_aggregate(
        request,
        category_cache_key(category.id, max_results),
        category.keywords,
        max_results,
        category=category,
    )


@router.get("/search")
def search(
    request: Request,
    q: str | None = None,
    max_results: Annotated[int, Query(alias="maxResults")] = DEFAULT_MAX_RESULTS,
):
    """Ad-hoc search: q is a comma separated keyword list."""
    keywords = normalize_keywords(q or "")
    if not keywords:
        raise ValidationError("Search query is required")
    max_results = clamp_max_results(max_results)
    return cached_aggregate(
        request,
        search_cache_key(keywords, max_results),
        keywords,
        max_results,
    )


settings = load_settings()
setup_logging(settings.log_level)
app = create_app(settings)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
