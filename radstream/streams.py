"""Reusable ingestion stream lookup and creation."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .logs import mask_secret
from .status import health_status, stream_status_label
from .youtube import YouTubeClient

LOGGER = logging.getLogger("radstream.streams")

REUSABLE_STREAM_TITLE = "radstream reusable stream"


@dataclass
class StreamKey:
    stream_key: str
    ingest_url: Optional[str] = None
    stream_id: Optional[str] = None
    stream_status: Optional[str] = None
    health_status: Optional[str] = None
    configuration_issues: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_resource(cls, raw: Dict[str, Any]) -> "StreamKey":
        info = (raw.get("cdn") or {}).get("ingestionInfo") or {}
        status = raw.get("status") or {}
        health = status.get("healthStatus") or {}
        return cls(
            stream_key=info.get("streamName", ""),
            ingest_url=info.get("rtmpsIngestionAddress") or info.get("ingestionAddress"),
            stream_id=raw.get("id"),
            stream_status=stream_status_label(status.get("streamStatus")),
            health_status=health_status(health.get("status")),
            configuration_issues=list(health.get("configurationIssues") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"streamKey": self.stream_key}
        if self.ingest_url:
            payload["ingestUrl"] = self.ingest_url
        if self.stream_status is not None:
            payload["streamStatus"] = self.stream_status
        if self.health_status is not None:
            payload["healthStatus"] = self.health_status
        return payload


def is_reusable(stream: Dict[str, Any]) -> bool:
    # YouTube omits isReusable on some stream resources; treat absence as reusable.
    details = stream.get("contentDetails") or {}
    return bool(details.get("isReusable", True))


def select_reusable_stream(streams: Iterable[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    for stream in streams:
        key = ((stream.get("cdn") or {}).get("ingestionInfo") or {}).get("streamName")
        if key and is_reusable(stream):
            return stream
    return None


class StreamKeyResolver:
    def __init__(self, client: YouTubeClient) -> None:
        self._client = client

    def find_reusable_stream(self) -> Optional[Dict[str, Any]]:
        return select_reusable_stream(self._client.list_streams())

    def peek_stream_key(self) -> Optional[StreamKey]:
        """Return the reusable stream key without ever creating a stream."""

        stream = self.find_reusable_stream()
        if stream is None:
            return None
        return StreamKey.from_resource(stream)

    def get_or_create_stream_key(self) -> StreamKey:
        stream = self.find_reusable_stream()
        if stream is not None:
            return StreamKey.from_resource(stream)

        body = {
            "snippet": {"title": REUSABLE_STREAM_TITLE},
            "cdn": {
                "ingestionType": "rtmp",
                "resolution": "variable",
                "frameRate": "variable",
            },
            "contentDetails": {"isReusable": True},
        }
        created = self._client.insert_stream(body)
        key = StreamKey.from_resource(created)
        LOGGER.info(
            "Stream reutilizável %s criado (chave %s).",
            key.stream_id,
            mask_secret(key.stream_key),
        )
        return key

    def get_stream_status(self) -> Optional[StreamKey]:
        """Status of the stream the app would bind, or ``None`` when none exists."""

        return self.peek_stream_key()
