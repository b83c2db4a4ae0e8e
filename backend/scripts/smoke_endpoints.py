from __future__ import annotations

import random
import sys
from pathlib import Path
from unittest.mock import patch

from starlette.requests import Request

ROOT_DIR = Path(__file__).resolve().parents[2]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import backend.main as main_module
from backend.app.config import Settings
from backend.app.services.youtube_gateway import YouTubeGateway


def make_request(app) -> Request:
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/",
            "headers": [],
            "client": ("127.0.0.1", 8000),
            "query_string": b"",
            "server": ("test", 80),
            "scheme": "http",
            "http_version": "1.1",
            "app": app,
        }
    )


def make_api_video(video_id: str, duration: str) -> dict:
    return {
        "id": video_id,
        "snippet": {
            "title": f"Video {video_id}",
            "description": "smoke",
            "channelTitle": "Smoke Channel",
            "publishedAt": "2025-01-01T00:00:00Z",
            "thumbnails": {"medium": {"url": f"https://img/{video_id}.jpg"}},
        },
        "contentDetails": {"duration": duration},
    }


def assert_true(condition: bool, message: str) -> None:
    if not condition:
        raise AssertionError(message)


def fresh_request() -> Request:
    app = main_module.create_app(Settings(youtube_api_key="SMOKE_KEY"), rng=random.Random(0))
    return make_request(app)


def fake_api_get_factory(call_count: dict, failing: set[str] = frozenset()):
    def fake_api_get(self, resource: str, params: dict) -> dict:
        call_count[resource] = call_count.get(resource, 0) + 1
        if resource == "search":
            keyword = params["q"]
            if keyword in failing:
                raise main_module.UpstreamError(f"search failed for {keyword}", reason="http_error")
            slug = keyword.replace(" ", "_")
            return {"items": [{"id": {"videoId": f"{slug}_{i}"}} for i in range(params["maxResults"])]}
        ids = params["id"].split(",")
        return {"items": [make_api_video(i, "PT40S" if i.endswith("_0") else "PT3M") for i in ids]}

    return fake_api_get


def test_health() -> None:
    payload = main_module.health()
    assert_true(payload.get("status") == "OK", "/api/health should return status=OK")


def test_category_search_cache() -> None:
    request = fresh_request()
    call_count: dict[str, int] = {}

    with patch.object(YouTubeGateway, "api_get", fake_api_get_factory(call_count)):
        payload_1 = main_module.search_category("sports", request, max_results=8)
        payload_2 = main_module.search_category("sports", request, max_results=8)

    assert_true(call_count.get("search") == 4, "category search should hit search once per keyword")
    assert_true(payload_1["totalFound"] == 4, "videos under 60s should be filtered out")
    assert_true(payload_2.get("cached") is True, "second category search should be served from cache")
    assert_true(payload_1["videos"] == payload_2["videos"], "cached response should be identical")


def test_mutation_clears_cache() -> None:
    request = fresh_request()
    call_count: dict[str, int] = {}

    with patch.object(YouTubeGateway, "api_get", fake_api_get_factory(call_count)):
        main_module.search_category("music", request, max_results=4)
        main_module.delete_category("tech", request)
        payload = main_module.search_category("music", request, max_results=4)

    assert_true("cached" not in payload, "category mutation should clear the result cache")
    assert_true(call_count.get("search") == 8, "cleared cache should search again")


def test_partial_keyword_failure() -> None:
    request = fresh_request()
    call_count: dict[str, int] = {}

    with patch.object(YouTubeGateway, "api_get", fake_api_get_factory(call_count, failing={"jazz"})):
        payload = main_module.search(request, q="rock,jazz,pop", max_results=9)

    assert_true(payload["totalFound"] == 4, "failing keyword should be skipped, not fatal")
    assert_true({v["keyword"] for v in payload["videos"]} == {"rock", "pop"}, "only healthy keywords contribute")


def run() -> int:
    checks = [
        ("health", test_health),
        ("category search cache", test_category_search_cache),
        ("mutation clears cache", test_mutation_clears_cache),
        ("partial keyword failure", test_partial_keyword_failure),
    ]
    failures = []

    for check_name, check_fn in checks:
        try:
            check_fn()
            print(f"[PASS] {check_name}")
        except Exception as exc:  # pragma: no cover - smoke script output path
            failures.append((check_name, str(exc)))
            print(f"[FAIL] {check_name}: {exc}")

    if failures:
        print(f"\nSmoke checks failed: {len(failures)}")
        for check_name, message in failures:
            print(f"- {check_name}: {message}")
        return 1

    print("\nAll smoke checks passed.")
    return 0


if __name__ == "__main__":
    sys.exit(run())
