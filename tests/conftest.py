import copy
import datetime as dt
import itertools
import json
from typing import Any, Dict, List, Optional

import httplib2
import pytest
from googleapiclient.errors import HttpError

from radstream.youtube import YouTubeClient

FIXED_NOW = dt.datetime(2026, 10, 18, 12, 0, 0, tzinfo=dt.timezone.utc)


class DummyRequest:
    def __init__(self, payload=None, error: Optional[Exception] = None):
        self._payload = payload
        self._error = error
        self.num_retries = None

    def execute(self, num_retries=0):
        self.num_retries = num_retries
        if self._error is not None:
            raise self._error
        return copy.deepcopy(self._payload)


class _DummyResource:
    """Shared bookkeeping for the fake liveBroadcasts/liveStreams resources."""

    def __init__(self, items=None, errors=None):
        self.items: List[Dict[str, Any]] = [copy.deepcopy(item) for item in items or []]
        self.errors: Dict[str, Exception] = dict(errors or {})
        self.calls: List[tuple] = []
        self.requests: List[DummyRequest] = []
        self._ids = itertools.count(1)

    def _request(self, method: str, payload) -> DummyRequest:
        request = DummyRequest(payload, self.errors.get(method))
        self.requests.append(request)
        return request

    def _find(self, item_id):
        return next((item for item in self.items if item.get("id") == item_id), None)

    def list(self, **kwargs):
        self.calls.append(("list", kwargs))
        if "id" in kwargs:
            found = self._find(kwargs["id"])
            return self._request("list", {"items": [found] if found else []})
        return self._request("list", {"items": self.items})

    @property
    def mutations(self) -> List[str]:
        return [name for name, _ in self.calls if name != "list"]


class DummyLiveBroadcasts(_DummyResource):
    def insert(self, **kwargs):
        self.calls.append(("insert", kwargs))
        body = kwargs["body"]
        resource = {
            "id": f"new-broadcast-{next(self._ids)}",
            "snippet": dict(body.get("snippet", {})),
            "status": {
                "lifeCycleStatus": "created",
                "privacyStatus": body.get("status", {}).get("privacyStatus", "private"),
            },
            "contentDetails": {},
        }
        self.items.append(resource)
        return self._request("insert", resource)

    def update(self, **kwargs):
        self.calls.append(("update", kwargs))
        body = kwargs["body"]
        item = self._find(body["id"]) or {"id": body["id"], "snippet": {}}
        item.setdefault("snippet", {}).update(body.get("snippet", {}))
        return self._request("update", {"id": item["id"], "snippet": item["snippet"]})

    def bind(self, **kwargs):
        self.calls.append(("bind", kwargs))
        item = self._find(kwargs["id"]) or {"id": kwargs["id"]}
        item.setdefault("contentDetails", {})["boundStreamId"] = kwargs["streamId"]
        return self._request("bind", item)

    def transition(self, **kwargs):
        self.calls.append(("transition", kwargs))
        item = self._find(kwargs["id"]) or {"id": kwargs["id"]}
        item.setdefault("status", {})["lifeCycleStatus"] = kwargs["broadcastStatus"]
        return self._request(
            "transition",
            {"id": kwargs["id"], "status": {"lifeCycleStatus": kwargs["broadcastStatus"]}},
        )


class DummyLiveStreams(_DummyResource):
    def insert(self, **kwargs):
        self.calls.append(("insert", kwargs))
        number = next(self._ids)
        resource = {
            "id": f"new-stream-{number}",
            "snippet": dict(kwargs["body"].get("snippet", {})),
            "cdn": {
                "ingestionType": "rtmp",
                "ingestionInfo": {
                    "streamName": f"key-new-{number}",
                    "ingestionAddress": "rtmp://a.rtmp.youtube.com/live2",
                    "rtmpsIngestionAddress": "rtmps://a.rtmps.youtube.com/live2",
                },
            },
            "contentDetails": {"isReusable": True},
            "status": {"streamStatus": "ready", "healthStatus": {"status": "noData"}},
        }
        self.items.append(resource)
        return self._request("insert", resource)


class DummyYouTube:
    def __init__(self, broadcasts=None, streams=None):
        self.broadcasts = broadcasts or DummyLiveBroadcasts()
        self.streams = streams or DummyLiveStreams()

    def liveBroadcasts(self):
        return self.broadcasts

    def liveStreams(self):
        return self.streams

    @property
    def mutations(self) -> List[str]:
        return [f"broadcasts.{name}" for name in self.broadcasts.mutations] + [
            f"streams.{name}" for name in self.streams.mutations
        ]


def make_broadcast(
    broadcast_id: str,
    lifecycle: str = "ready",
    *,
    bound_stream: Optional[str] = None,
    **snippet: str,
) -> Dict[str, Any]:
    snippet.setdefault("title", f"title {broadcast_id}")
    snippet.setdefault("description", f"description {broadcast_id}")
    return {
        "id": broadcast_id,
        "snippet": snippet,
        "status": {"lifeCycleStatus": lifecycle, "privacyStatus": "public"},
        "contentDetails": {"boundStreamId": bound_stream} if bound_stream else {},
    }


def make_stream(
    stream_id: str,
    key: str,
    *,
    reusable: Optional[bool] = True,
    stream_status: str = "ready",
    health: Optional[str] = "good",
) -> Dict[str, Any]:
    stream: Dict[str, Any] = {
        "id": stream_id,
        "cdn": {
            "ingestionInfo": {
                "streamName": key,
                "ingestionAddress": "rtmp://a.rtmp.youtube.com/live2",
            }
        },
        "status": {"streamStatus": stream_status},
    }
    if reusable is not None:
        stream["contentDetails"] = {"isReusable": reusable}
    if health is not None:
        stream["status"]["healthStatus"] = {"status": health}
    return stream


@pytest.fixture()
def youtube():
    """Build a ``(YouTubeClient, DummyYouTube)`` pair from broadcast/stream items."""

    def _build(broadcasts=None, streams=None, errors=None, stream_errors=None):
        dummy = DummyYouTube(
            DummyLiveBroadcasts(broadcasts, errors),
            DummyLiveStreams(streams, stream_errors),
        )
        return YouTubeClient(dummy, list_retries=2), dummy

    return _build


@pytest.fixture()
def clock():
    return lambda: FIXED_NOW


def http_error(status: int, message: str) -> HttpError:
    body = json.dumps({"error": {"code": status, "message": message}}).encode("utf-8")
    return HttpError(httplib2.Response({"status": status, "reason": "error"}), body)
