"""Find, update or create the broadcast the app treats as current."""
from __future__ import annotations

import datetime as dt
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from .status import (
    ACTIVE_LIFECYCLES,
    health_status,
    lifecycle_label,
    stream_status_label,
)
from .youtube import YouTubeClient

LOGGER = logging.getLogger("radstream.broadcasts")

WATCH_URL = "https://www.youtube.com/watch?v={id}"
TIMESTAMP_FIELDS = ("actualStartTime", "scheduledStartTime", "actualEndTime", "publishedAt")
SCHEDULE_BUMP = dt.timedelta(minutes=5)
CREATE_LEAD = dt.timedelta(seconds=60)

_EPOCH = dt.datetime.min.replace(tzinfo=dt.timezone.utc)
# fromisoformat before 3.11 only accepts 3 or 6 fractional digits.
_FRACTION = re.compile(r"\.(\d+)(?=[+-]\d\d:\d\d$|$)")


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def isoformat(ts: dt.datetime) -> str:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=dt.timezone.utc)
    return ts.astimezone(dt.timezone.utc).replace(microsecond=0).isoformat().replace(
        "+00:00", "Z"
    )


def parse_timestamp(value: Optional[str]) -> Optional[dt.datetime]:
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(
        lambda match: "." + match.group(1)[:6].ljust(6, "0"), text, count=1
    )
    try:
        parsed = dt.datetime.fromisoformat(text)
    except ValueError:
        LOGGER.debug("Timestamp inválido ignorado: %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed


def _recency(item: Dict[str, Any]) -> dt.datetime:
    snippet = item.get("snippet") or {}
    for name in TIMESTAMP_FIELDS:
        raw = snippet.get(name)
        if raw:
            return parse_timestamp(raw) or _EPOCH
    return _EPOCH


def pick_most_recent_broadcast(
    items: Optional[Iterable[Dict[str, Any]]],
) -> Optional[Dict[str, Any]]:
    """Return the newest broadcast, or ``None`` for an empty/missing list.

    Recency is the first non-empty of actualStartTime, scheduledStartTime,
    actualEndTime and publishedAt. ``max`` keeps the earliest item on ties.
    """

    candidates = list(items or [])
    if not candidates:
        return None
    return max(candidates, key=_recency)


@dataclass
class BroadcastInfo:
    """Normalized view of a liveBroadcast resource."""

    id: str
    title: str = ""
    description: str = ""
    status: str = ""
    privacy_status: str = ""
    scheduled_start_time: Optional[str] = None
    actual_start_time: Optional[str] = None
    bound_stream_id: Optional[str] = None
    stream_status: Optional[str] = None
    health_status: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def url(self) -> str:
        return WATCH_URL.format(id=self.id)

    @classmethod
    def from_resource(cls, raw: Dict[str, Any]) -> "BroadcastInfo":
        snippet = raw.get("snippet") or {}
        status = raw.get("status") or {}
        details = raw.get("contentDetails") or {}
        return cls(
            id=raw.get("id", ""),
            title=snippet.get("title", ""),
            description=snippet.get("description", ""),
            status=status.get("lifeCycleStatus", ""),
            privacy_status=status.get("privacyStatus", ""),
            scheduled_start_time=snippet.get("scheduledStartTime"),
            actual_start_time=snippet.get("actualStartTime"),
            bound_stream_id=details.get("boundStreamId") or None,
            raw=raw,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "url": self.url,
            "status": self.status,
            "statusLabel": lifecycle_label(self.status).label,
            "privacyStatus": self.privacy_status,
        }
        if self.stream_status is not None:
            payload["streamStatus"] = self.stream_status
        if self.health_status is not None:
            payload["healthStatus"] = self.health_status
        return payload


class BroadcastReconciler:
    """Pick the current broadcast and keep its title/description in sync."""

    def __init__(
        self,
        client: YouTubeClient,
        *,
        default_privacy: str = "private",
        active_only: bool = True,
        clock: Callable[[], dt.datetime] = utc_now,
    ) -> None:
        self._client = client
        self._default_privacy = default_privacy
        self._active_only = active_only
        self._clock = clock

    def list_candidates(self, *, active_only: bool) -> List[Dict[str, Any]]:
        items = self._client.list_broadcasts()
        if not active_only:
            return items
        return [
            item
            for item in items
            if (item.get("status") or {}).get("lifeCycleStatus") in ACTIVE_LIFECYCLES
        ]

    def current_broadcast(self, *, active_only: Optional[bool] = None) -> Optional[BroadcastInfo]:
        if active_only is None:
            active_only = self._active_only
        picked = pick_most_recent_broadcast(self.list_candidates(active_only=active_only))
        if picked is None:
            return None
        return BroadcastInfo.from_resource(picked)

    def get_broadcast(self, broadcast_id: str) -> Optional[BroadcastInfo]:
        raw = self._client.get_broadcast(broadcast_id)
        return BroadcastInfo.from_resource(raw) if raw else None

    def get_latest_broadcast(self, *, include_stream: bool = True) -> Optional[BroadcastInfo]:
        """Read-only lookup of the newest broadcast of any lifecycle status."""

        info = self.current_broadcast(active_only=False)
        if info is None:
            LOGGER.info("Nenhuma transmissão encontrada para o canal.")
            return None
        if include_stream:
            self.attach_stream_status(info)
        return info

    def attach_stream_status(self, info: BroadcastInfo) -> BroadcastInfo:
        stream = None
        if info.bound_stream_id:
            stream = self._client.get_stream(info.bound_stream_id, part="id,status")
        status = (stream or {}).get("status") or {}
        info.stream_status = stream_status_label(status.get("streamStatus"))
        info.health_status = health_status((status.get("healthStatus") or {}).get("status"))
        return info

    def get_broadcast_status(self) -> Optional[str]:
        info = self.current_broadcast(active_only=False)
        return info.status if info else None

    def default_title(self) -> str:
        return f"New Stream {self._clock().astimezone():%Y-%m-%d %H:%M}"

    def create_broadcast(
        self,
        title: Optional[str] = None,
        description: Optional[str] = None,
        *,
        privacy: Optional[str] = None,
    ) -> BroadcastInfo:
        scheduled = self._clock() + CREATE_LEAD
        body = {
            "snippet": {
                "title": title or self.default_title(),
                "description": description or "",
                "scheduledStartTime": isoformat(scheduled),
            },
            "status": {
                "privacyStatus": privacy or self._default_privacy,
                "selfDeclaredMadeForKids": False,
            },
            "contentDetails": {
                "enableAutoStart": False,
                "enableAutoStop": False,
                "monitorStream": {"enableMonitorStream": True, "broadcastStreamDelayMs": 0},
            },
        }
        created = self._client.insert_broadcast(body)
        created.setdefault("snippet", body["snippet"])
        created.setdefault("status", {}).setdefault("lifeCycleStatus", "created")
        info = BroadcastInfo.from_resource(created)
        LOGGER.info("Transmissão %s criada (%s).", info.id, info.title)
        return info

    def update_broadcast(
        self,
        current: BroadcastInfo,
        title: Optional[str] = None,
        description: Optional[str] = None,
    ) -> BroadcastInfo:
        snippet: Dict[str, Any] = {}
        if title is not None:
            snippet["title"] = title
        if description is not None:
            snippet["description"] = description
        if not snippet:
            return current
        if current.scheduled_start_time:
            # YouTube rejects updates that leave the schedule in the past.
            snippet["scheduledStartTime"] = isoformat(self._clock() + SCHEDULE_BUMP)

        updated = self._client.update_broadcast({"id": current.id, "snippet": snippet})
        merged = dict(current.raw)
        merged["id"] = current.id
        merged["snippet"] = {
            **(current.raw.get("snippet") or {}),
            **snippet,
            **(updated.get("snippet") or {}),
        }
        info = BroadcastInfo.from_resource(merged)
        LOGGER.info("Transmissão %s atualizada (%s).", info.id, ", ".join(sorted(snippet)))
        return info

    def resolve_or_create_broadcast(
        self, title: Optional[str] = None, description: Optional[str] = None
    ) -> BroadcastInfo:
        current = self.current_broadcast()
        if current is None:
            LOGGER.info("Nenhuma transmissão candidata; criando nova.")
            return self.create_broadcast(title, description)
        return self.update_broadcast(current, title, description)
