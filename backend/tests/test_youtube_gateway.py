import pytest
import requests

from backend.app.errors import ConfigurationError, QuotaExceededError, UpstreamError
from backend.app.services import youtube_gateway as gateway_module
from backend.app.services.youtube_gateway import YouTubeGateway, best_thumbnail_url, chunked


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None, text: str = ""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


def api_video(video_id: str, duration: str = "PT4M") -> dict:
    return {
        "id": video_id,
        "snippet": {
            "title": f"Video {video_id}",
            "description": "desc",
            "channelTitle": "Chan",
            "publishedAt": "2025-01-01T00:00:00Z",
            "thumbnails": {
                "default": {"url": f"https://img/{video_id}/default.jpg"},
                "medium": {"url": f"https://img/{video_id}/medium.jpg"},
            },
        },
        "contentDetails": {"duration": duration},
    }


def test_chunked():
    assert list(chunked([1, 2, 3, 4, 5], 2)) == [[1, 2], [3, 4], [5]]


def test_best_thumbnail_prefers_medium():
    assert best_thumbnail_url({"high": {"url": "h"}, "medium": {"url": "m"}}) == "m"
    assert best_thumbnail_url({"default": {"url": "d"}}) == "d"
    assert best_thumbnail_url({}) is None


def test_search_by_keyword_pages_until_quota(monkeypatch):
    calls = []
    pages = {
        None: {"items": [{"id": {"videoId": f"p1_{i}"}} for i in range(50)], "nextPageToken": "T2"},
        "T2": {"items": [{"id": {"videoId": f"p2_{i}"}} for i in range(50)], "nextPageToken": "T3"},
    }

    def fake_get(url, params, timeout):
        calls.append((url, dict(params), timeout))
        return FakeResponse(payload=pages[params.get("pageToken")])

    monkeypatch.setattr(gateway_module.requests, "get", fake_get)
    gateway = YouTubeGateway("KEY", base_url="https://yt.test/v3/", timeout=5)

    ids = gateway.search_by_keyword("golf", 60)

    assert len(ids) == 60
    assert ids[0] == "p1_0" and ids[-1] == "p2_9"
    assert len(calls) == 2
    url, params, timeout = calls[0]
    assert url == "https://yt.test/v3/search"
    assert timeout == 5
    assert params["q"] == "golf"
    assert params["maxResults"] == 50
    assert params["type"] == "video"
    assert params["videoDuration"] == "medium"
    assert params["order"] == "relevance"
    assert params["key"] == "KEY"
    assert calls[1][1]["maxResults"] == 10
    assert calls[1][1]["pageToken"] == "T2"


def test_search_by_keyword_stops_without_next_page(monkeypatch):
    monkeypatch.setattr(
        gateway_module.requests,
        "get",
        lambda url, params, timeout: FakeResponse(payload={"items": [{"id": {"videoId": "only"}}, {"id": {}}]}),
    )
    assert YouTubeGateway("KEY").search_by_keyword("golf", 5) == ["only"]


def test_fetch_details_batches_and_maps_fields(monkeypatch):
    calls = []

    def fake_get(url, params, timeout):
        calls.append(params["id"].split(","))
        return FakeResponse(payload={"items": [api_video(i) for i in params["id"].split(",")]})

    monkeypatch.setattr(gateway_module.requests, "get", fake_get)
    ids = [f"v{i}" for i in range(120)]
    videos = YouTubeGateway("KEY").fetch_details(ids + ["v0"], keyword="golf")

    assert [len(batch) for batch in calls] == [50, 50, 20]
    assert len(videos) == 120
    first = videos[0]
    assert first.id == "v0"
    assert first.thumbnail == "https://img/v0/medium.jpg"
    assert first.channel_title == "Chan"
    assert first.duration == "PT4M"
    assert first.keyword == "golf"
    assert first.model_dump(by_alias=True)["publishedAt"] == "2025-01-01T00:00:00Z"


def test_quota_exceeded_is_tagged(monkeypatch):
    monkeypatch.setattr(
        gateway_module.requests,
        "get",
        lambda url, params, timeout: FakeResponse(
            status_code=403,
            payload={"error": {"errors": [{"reason": "quotaExceeded"}]}},
            text='{"error": {"errors": [{"reason": "quotaExceeded"}]}}',
        ),
    )
    with pytest.raises(QuotaExceededError) as excinfo:
        YouTubeGateway("KEY").search_by_keyword("golf", 5)
    assert excinfo.value.reason == "quota_exceeded"


def test_http_and_network_errors_are_upstream_errors(monkeypatch):
    monkeypatch.setattr(
        gateway_module.requests,
        "get",
        lambda url, params, timeout: FakeResponse(status_code=400, text="bad request"),
    )
    with pytest.raises(UpstreamError) as excinfo:
        YouTubeGateway("KEY").search_by_keyword("golf", 5)
    assert excinfo.value.reason == "http_error"
    assert excinfo.value.details == "bad request"

    def raise_timeout(url, params, timeout):
        raise requests.Timeout("slow")

    monkeypatch.setattr(gateway_module.requests, "get", raise_timeout)
    with pytest.raises(UpstreamError) as excinfo:
        YouTubeGateway("KEY").fetch_details(["a"])
    assert excinfo.value.reason == "network"


def test_missing_key_is_configuration_error(monkeypatch):
    def never_called(*_args, **_kwargs):
        raise AssertionError("no HTTP call expected")

    monkeypatch.setattr(gateway_module.requests, "get", never_called)
    gateway = YouTubeGateway(None)
    assert gateway.configured is False
    with pytest.raises(ConfigurationError):
        gateway.search_by_keyword("golf", 5)


@pytest.mark.parametrize(
    "response",
    [
        FakeResponse(payload=None, text="<html>oops</html>"),
        FakeResponse(payload=["not", "an", "object"]),
        FakeResponse(payload={"items": "nope"}),
        FakeResponse(payload={"items": ["not-a-dict"]}),
        FakeResponse(payload={"items": [{"id": "not-a-dict"}]}),
    ],
)
def test_bad_response_is_tagged(monkeypatch, response):
    monkeypatch.setattr(gateway_module.requests, "get", lambda url, params, timeout: response)
    with pytest.raises(UpstreamError) as excinfo:
        YouTubeGateway("KEY").search_by_keyword("golf", 5)
    assert excinfo.value.reason == "bad_response"


def test_malformed_video_details_are_tagged(monkeypatch):
    payload = {"items": [{"id": "v1", "snippet": "not-a-dict", "contentDetails": {}}]}
    monkeypatch.setattr(gateway_module.requests, "get", lambda url, params, timeout: FakeResponse(payload=payload))
    with pytest.raises(UpstreamError) as excinfo:
        YouTubeGateway("KEY").fetch_details(["v1"])
    assert excinfo.value.reason == "bad_response"
