"""Thin wrapper over the YouTube Data API v3 live endpoints.

Only the calls the app needs are exposed. Every call goes through
``_execute`` so API failures reach callers as :class:`UpstreamError` (or
:class:`Unauthorized` for rejected credentials). Read calls are retried by
the client library with exponential backoff; mutating calls never are,
because YouTube offers no idempotency key for them.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .errors import Unauthorized, UpstreamError

LOGGER = logging.getLogger("radstream.youtube")

BROADCAST_PARTS = "id,snippet,contentDetails,status"
STREAM_PARTS = "id,snippet,cdn,contentDetails,status"
MAX_RESULTS = 50


def build_service(credentials: Credentials) -> Any:
    """Return a YouTube Data API discovery resource."""

    return build("youtube", "v3", credentials=credentials, cache_discovery=False)


def _error_message(exc: HttpError) -> str:
    content = exc.content
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    try:
        payload = json.loads(content or "{}")
    except ValueError:
        payload = {}
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    reason = getattr(exc, "reason", None)
    if reason:
        return str(reason)
    return content or "Erro desconhecido na API do YouTube"


class YouTubeClient:
    """Live broadcast and live stream calls for the authorized channel."""

    def __init__(self, service: Any, *, list_retries: int = 3) -> None:
        self._service = service
        self._list_retries = list_retries

    @classmethod
    def from_credentials(
        cls, credentials: Credentials, *, list_retries: int = 3
    ) -> "YouTubeClient":
        return cls(build_service(credentials), list_retries=list_retries)

    def _execute(self, request: Any, action: str, *, idempotent: bool) -> Dict[str, Any]:
        retries = self._list_retries if idempotent else 0
        try:
            response = request.execute(num_retries=retries)
        except HttpError as exc:
            status = getattr(exc.resp, "status", None)
            message = _error_message(exc)
            LOGGER.error("Falha em %s (HTTP %s): %s", action, status, message)
            if status == 401:
                raise Unauthorized(message) from exc
            raise UpstreamError(message, status=status) from exc
        except RefreshError as exc:
            LOGGER.warning("Credenciais rejeitadas durante %s: %s", action, exc)
            raise Unauthorized("Credenciais OAuth expiradas ou revogadas.") from exc
        return response or {}

    # -- liveBroadcasts -------------------------------------------------

    def list_broadcasts(self, part: str = BROADCAST_PARTS) -> List[Dict[str, Any]]:
        request = self._service.liveBroadcasts().list(
            part=part, mine=True, maxResults=MAX_RESULTS
        )
        response = self._execute(request, "liveBroadcasts.list", idempotent=True)
        return list(response.get("items", []))

    def get_broadcast(
        self, broadcast_id: str, part: str = BROADCAST_PARTS
    ) -> Optional[Dict[str, Any]]:
        request = self._service.liveBroadcasts().list(part=part, id=broadcast_id)
        response = self._execute(request, "liveBroadcasts.list", idempotent=True)
        items = response.get("items", [])
        return items[0] if items else None

    def insert_broadcast(
        self, body: Dict[str, Any], part: str = "id,snippet,status,contentDetails"
    ) -> Dict[str, Any]:
        request = self._service.liveBroadcasts().insert(part=part, body=body)
        return self._execute(request, "liveBroadcasts.insert", idempotent=False)

    def update_broadcast(
        self, body: Dict[str, Any], part: str = "id,snippet"
    ) -> Dict[str, Any]:
        request = self._service.liveBroadcasts().update(part=part, body=body)
        return self._execute(request, "liveBroadcasts.update", idempotent=False)

    def bind_broadcast(self, broadcast_id: str, stream_id: str) -> Dict[str, Any]:
        request = self._service.liveBroadcasts().bind(
            part="id,contentDetails,status", id=broadcast_id, streamId=stream_id
        )
        return self._execute(request, "liveBroadcasts.bind", idempotent=False)

    def transition_broadcast(self, broadcast_id: str, target: str) -> Dict[str, Any]:
        request = self._service.liveBroadcasts().transition(
            part="id,status", broadcastStatus=target, id=broadcast_id
        )
        return self._execute(request, "liveBroadcasts.transition", idempotent=False)

    # -- liveStreams ----------------------------------------------------

    def list_streams(self, part: str = STREAM_PARTS) -> List[Dict[str, Any]]:
        request = self._service.liveStreams().list(
            part=part, mine=True, maxResults=MAX_RESULTS
        )
        response = self._execute(request, "liveStreams.list", idempotent=True)
        return list(response.get("items", []))

    def get_stream(
        self, stream_id: str, part: str = STREAM_PARTS
    ) -> Optional[Dict[str, Any]]:
        request = self._service.liveStreams().list(part=part, id=stream_id)
        response = self._execute(request, "liveStreams.list", idempotent=True)
        items = response.get("items", [])
        return items[0] if items else None

    def insert_stream(
        self, body: Dict[str, Any], part: str = "id,snippet,cdn,contentDetails,status"
    ) -> Dict[str, Any]:
        request = self._service.liveStreams().insert(part=part, body=body)
        return self._execute(request, "liveStreams.insert", idempotent=False)
