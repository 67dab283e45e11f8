"""Map YouTube lifecycle/stream/health enums to the labels shown in the UI.

Every function here is total: unknown or missing values never raise.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

NEUTRAL = "neutral"

# Upstream ``active`` used to be shown as "streaming"; "receiving data" is canonical.
STREAM_ACTIVE_LABEL = "receiving data"
STREAM_ERROR_LABEL = "lost connection"
STREAM_WAITING_LABEL = "waiting for connection.."

DEFAULT_HEALTH = "noData"

STARTABLE_LIFECYCLES = frozenset({"created", "ready", "testing"})
ACTIVE_LIFECYCLES = STARTABLE_LIFECYCLES | {"live"}


@dataclass(frozen=True)
class StatusLabel:
    label: str
    color: str = NEUTRAL

    def as_dict(self) -> Dict[str, str]:
        return {"status": self.label, "color": self.color}


_LIFECYCLE_LABELS: Dict[str, StatusLabel] = {
    "live": StatusLabel("Live", "red"),
    "created": StatusLabel("Starting Soon", "amber"),
    "ready": StatusLabel("Starting Soon", "amber"),
    "testing": StatusLabel("Starting Soon", "amber"),
    "complete": StatusLabel("Ended", "slate"),
    "canceled": StatusLabel("Canceled", "orange"),
    "revoked": StatusLabel("Revoked", "rose"),
}


def lifecycle_label(lifecycle: Optional[str]) -> StatusLabel:
    if not lifecycle:
        return StatusLabel("Unknown")
    return _LIFECYCLE_LABELS.get(lifecycle, StatusLabel(str(lifecycle)))


def stream_status_label(stream_status: Optional[str]) -> str:
    if stream_status == "active":
        return STREAM_ACTIVE_LABEL
    if stream_status == "error":
        return STREAM_ERROR_LABEL
    return STREAM_WAITING_LABEL


def health_status(health: Optional[str]) -> str:
    return health or DEFAULT_HEALTH
