"""FastAPI app exposing the broadcast, stream-key and OAuth endpoints.

Handlers are plain ``def`` functions: the Google client is blocking, so
FastAPI runs them in its threadpool. Each request builds its own YouTube
client from the stored token; nothing is cached between requests.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Cookie, Depends, FastAPI, HTTPException, Request
from fastapi.responses import FileResponse, JSONResponse, RedirectResponse, Response
from pydantic import BaseModel, Field

from . import __version__
from .context import AppContext
from .errors import RadstreamError, Unauthorized, UpstreamError
from .status import health_status, lifecycle_label, stream_status_label
from .youtube import YouTubeClient

LOGGER = logging.getLogger("radstream.app")

STATIC_DIR = Path(__file__).resolve().parent / "static"
STATE_COOKIE = "oauth_state"
STATE_COOKIE_MAX_AGE = 600


class BroadcastFields(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None


class StartStreamRequest(BaseModel):
    broadcast_id: Optional[str] = Field(default=None, alias="broadcastId")
    stream_id: Optional[str] = Field(default=None, alias="streamId")


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_client(context: AppContext = Depends(get_context)) -> YouTubeClient:
    return context.youtube()


def create_app(context: AppContext) -> FastAPI:
    app = FastAPI(title="radstream", version=__version__)
    app.state.context = context

    @app.exception_handler(RadstreamError)
    async def _handle_radstream_error(_request: Request, exc: RadstreamError) -> JSONResponse:
        if isinstance(exc, UpstreamError):
            LOGGER.error("Erro na API do YouTube: %s", exc)
        else:
            LOGGER.info("%s: %s", type(exc).__name__, exc)
        return JSONResponse({"error": str(exc)}, status_code=int(exc.status_code))

    @app.get("/", include_in_schema=False)
    def index() -> FileResponse:
        return FileResponse(STATIC_DIR / "index.html")

    # -- OAuth ----------------------------------------------------------

    @app.get("/api/youtube/auth-status")
    def auth_status(context: AppContext = Depends(get_context)) -> Dict[str, bool]:
        return {"authorized": context.token_store.is_authorized()}

    @app.get("/api/oauth/google/login")
    def oauth_login(context: AppContext = Depends(get_context)) -> RedirectResponse:
        url, state = context.web_flow.authorization_url()
        response = RedirectResponse(url, status_code=302)
        response.set_cookie(
            STATE_COOKIE,
            state,
            max_age=STATE_COOKIE_MAX_AGE,
            httponly=True,
            samesite="lax",
            secure=context.settings.cookie_secure,
        )
        return response

    @app.get("/api/oauth/google/callback")
    def oauth_callback(
        code: Optional[str] = None,
        state: Optional[str] = None,
        error: Optional[str] = None,
        oauth_state: Optional[str] = Cookie(default=None),
        context: AppContext = Depends(get_context),
    ) -> Response:
        if error:
            raise HTTPException(status_code=400, detail=f"Autorização recusada: {error}")
        if not code or not state:
            raise HTTPException(status_code=400, detail="Parâmetros code/state em falta.")
        if not oauth_state or oauth_state != state:
            LOGGER.warning("Estado OAuth não corresponde ao cookie; pedido rejeitado.")
            raise HTTPException(status_code=400, detail="Estado OAuth inválido.")

        try:
            context.web_flow.exchange(code, state)
        except Unauthorized as exc:
            LOGGER.warning("Callback OAuth rejeitado: %s", exc)
            failed = JSONResponse({"error": str(exc)}, status_code=int(exc.status_code))
            failed.delete_cookie(STATE_COOKIE)
            return failed
        response = RedirectResponse("/", status_code=302)
        response.delete_cookie(STATE_COOKIE)
        return response

    @app.post("/api/oauth/google/logout")
    def oauth_logout(context: AppContext = Depends(get_context)) -> Dict[str, bool]:
        context.token_store.sign_out()
        return {"authorized": False}

    # -- broadcasts -----------------------------------------------------

    def _latest(context: AppContext, client: YouTubeClient) -> Dict[str, Any]:
        info = context.reconciler(client).get_latest_broadcast()
        return {"broadcast": info.to_dict() if info else None}

    def _save(
        fields: BroadcastFields, context: AppContext, client: YouTubeClient
    ) -> Dict[str, Any]:
        reconciler = context.reconciler(client)
        info = reconciler.resolve_or_create_broadcast(fields.title, fields.description)
        reconciler.attach_stream_status(info)
        return {"broadcast": info.to_dict()}

    @app.get("/api/youtube/latest-broadcast")
    def latest_broadcast(
        context: AppContext = Depends(get_context),
        client: YouTubeClient = Depends(get_client),
    ) -> Dict[str, Any]:
        return _latest(context, client)

    @app.post("/api/youtube/broadcast/save")
    def save_broadcast(
        fields: BroadcastFields,
        context: AppContext = Depends(get_context),
        client: YouTubeClient = Depends(get_client),
    ) -> Dict[str, Any]:
        return _save(fields, context, client)

    @app.get("/api/broadcast/fields")
    def broadcast_fields(
        context: AppContext = Depends(get_context),
        client: YouTubeClient = Depends(get_client),
    ) -> Dict[str, Any]:
        return _latest(context, client)

    @app.post("/api/broadcast/fields")
    def update_broadcast_fields(
        fields: BroadcastFields,
        context: AppContext = Depends(get_context),
        client: YouTubeClient = Depends(get_client),
    ) -> Dict[str, Any]:
        return _save(fields, context, client)

    @app.get("/api/broadcast/status")
    def broadcast_status(
        context: AppContext = Depends(get_context),
        client: YouTubeClient = Depends(get_client),
    ) -> Dict[str, Any]:
        lifecycle = context.reconciler(client).get_broadcast_status()
        payload: Dict[str, Any] = lifecycle_label(lifecycle).as_dict()
        payload["lifecycle"] = lifecycle
        return payload

    # -- streams --------------------------------------------------------

    @app.get("/api/youtube/stream-key")
    def stream_key(
        context: AppContext = Depends(get_context),
        client: YouTubeClient = Depends(get_client),
    ) -> Dict[str, Any]:
        return context.stream_keys(client).get_or_create_stream_key().to_dict()

    @app.get("/api/youtube/stream-key/peek")
    def stream_key_peek(
        context: AppContext = Depends(get_context),
        client: YouTubeClient = Depends(get_client),
    ) -> Dict[str, Any]:
        key = context.stream_keys(client).peek_stream_key()
        return key.to_dict() if key else {}

    @app.get("/api/livestream/status")
    def livestream_status(
        context: AppContext = Depends(get_context),
        client: YouTubeClient = Depends(get_client),
    ) -> Dict[str, Any]:
        key = context.stream_keys(client).get_stream_status()
        if key is None:
            return {"status": stream_status_label(None), "healthStatus": health_status(None)}
        return {
            "status": key.stream_status,
            "healthStatus": key.health_status,
            "configurationIssues": key.configuration_issues,
        }

    # -- lifecycle ------------------------------------------------------

    @app.post("/api/youtube/stream/start")
    def start_stream(
        body: Optional[StartStreamRequest] = None,
        context: AppContext = Depends(get_context),
        client: YouTubeClient = Depends(get_client),
    ) -> Dict[str, Any]:
        body = body or StartStreamRequest()
        result = context.lifecycle(client).start_stream(
            broadcast_id=body.broadcast_id, stream_id=body.stream_id
        )
        return result.to_dict()

    @app.post("/api/youtube/stream/end")
    def end_stream(
        context: AppContext = Depends(get_context),
        client: YouTubeClient = Depends(get_client),
    ) -> Dict[str, Any]:
        return context.lifecycle(client).end_stream().to_dict()

    @app.get("/api/polling-policy")
    def polling_policy(context: AppContext = Depends(get_context)) -> Dict[str, Any]:
        return context.settings.polling.as_dict()

    return app
