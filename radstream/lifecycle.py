"""Start and end the current broadcast.

Ordering is create, then bind, then transition. Nothing is locked: two
overlapping requests may both act on the same stale read, and the next
status poll shows whatever YouTube ended up with.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .broadcasts import BroadcastInfo, BroadcastReconciler
from .errors import NotFound, PreconditionFailed
from .status import STARTABLE_LIFECYCLES
from .streams import select_reusable_stream
from .youtube import YouTubeClient

LOGGER = logging.getLogger("radstream.lifecycle")

# Fresh broadcasts reject an immediate transition; give YouTube a moment.
DEFAULT_START_DELAY = 3.5


@dataclass
class StartStreamResult:
    broadcast_id: str
    stream_id: Optional[str]
    status: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "broadcastId": self.broadcast_id,
            "streamId": self.stream_id,
            "status": self.status,
        }


@dataclass
class EndStreamResult:
    status: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status}


def _lifecycle_of(response: Dict[str, Any]) -> Optional[str]:
    if "items" in response:
        items = response.get("items") or []
        response = items[0] if items else {}
    return (response.get("status") or {}).get("lifeCycleStatus")


class LifecycleDriver:
    def __init__(
        self,
        client: YouTubeClient,
        reconciler: BroadcastReconciler,
        *,
        start_delay: float = DEFAULT_START_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._reconciler = reconciler
        self._start_delay = start_delay
        self._sleep = sleep

    def _load_current(self, broadcast_id: Optional[str]) -> Optional[BroadcastInfo]:
        if broadcast_id:
            return self._reconciler.get_broadcast(broadcast_id)
        return self._reconciler.current_broadcast(active_only=False)

    def _resolve_stream_id(
        self, explicit: Optional[str], broadcast: BroadcastInfo
    ) -> str:
        if explicit:
            return explicit
        if broadcast.bound_stream_id:
            return broadcast.bound_stream_id
        stream = select_reusable_stream(self._client.list_streams(part="id,cdn,contentDetails"))
        if stream is None or not stream.get("id"):
            raise NotFound("Nenhum stream disponível para associar à transmissão.")
        return stream["id"]

    def start_stream(
        self,
        broadcast_id: Optional[str] = None,
        stream_id: Optional[str] = None,
        current: Optional[BroadcastInfo] = None,
    ) -> StartStreamResult:
        if current is None:
            current = self._load_current(broadcast_id)

        if current is not None and current.status == "live":
            LOGGER.info("Transmissão %s já está live; nada a fazer.", current.id)
            return StartStreamResult(current.id, current.bound_stream_id, current.status)

        created = False
        if current is None or current.status == "complete":
            reason = "sem transmissão" if current is None else f"status={current.status}"
            LOGGER.info("Criando nova transmissão (%s).", reason)
            current = self._reconciler.create_broadcast(
                current.title if current else None,
                current.description if current else None,
            )
            created = True

        if current.status not in STARTABLE_LIFECYCLES:
            LOGGER.warning(
                "Transmissão %s em estado %s; transição para live ignorada.",
                current.id,
                current.status or "desconhecido",
            )
            return StartStreamResult(current.id, current.bound_stream_id, current.status)

        target_stream = self._resolve_stream_id(stream_id, current)
        if current.bound_stream_id != target_stream:
            LOGGER.info("Associando transmissão %s ao stream %s.", current.id, target_stream)
            self._client.bind_broadcast(current.id, target_stream)

        if created and self._start_delay > 0:
            self._sleep(self._start_delay)

        LOGGER.info("Transição da transmissão %s para live.", current.id)
        response = self._client.transition_broadcast(current.id, "live")
        status = _lifecycle_of(response) or current.status
        LOGGER.info("Transmissão %s agora em %s.", current.id, status)
        return StartStreamResult(current.id, target_stream, status)

    def end_stream(
        self,
        broadcast_id: Optional[str] = None,
        current: Optional[BroadcastInfo] = None,
    ) -> EndStreamResult:
        if current is None:
            current = self._load_current(broadcast_id)
        if current is None:
            raise NotFound("Nenhuma transmissão encontrada.")
        if current.status != "live":
            raise PreconditionFailed(
                f"Transmissão {current.id} não está live (status={current.status or '?'})."
            )

        LOGGER.info("Transição da transmissão %s para complete.", current.id)
        response = self._client.transition_broadcast(current.id, "complete")
        return EndStreamResult(_lifecycle_of(response) or "complete")
