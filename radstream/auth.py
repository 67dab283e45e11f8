"""OAuth credentials for the YouTube account.

Credentials live in a single JSON token file using Google's "authorized
user" format, the same file ``Credentials.from_authorized_user_file``
reads. Two ways to create it: the web authorization-code flow used by the
app, and the device-code flow used by the CLI on headless machines.
"""
from __future__ import annotations

import datetime as dt
import logging
import os
import tempfile
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

import requests
from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from .errors import AuthRequired, Unauthorized, UpstreamError

LOGGER = logging.getLogger("radstream.auth")

SCOPES: Sequence[str] = ("https://www.googleapis.com/auth/youtube",)
AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URI = "https://oauth2.googleapis.com/token"
DEVICE_CODE_URI = "https://oauth2.googleapis.com/device/code"
REVOKE_URI = "https://oauth2.googleapis.com/revoke"
DEVICE_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:device_code"
REQUEST_TIMEOUT = 10.0


@dataclass
class AccessToken:
    access_token: str
    refresh_token: Optional[str] = None


class TokenStore:
    """Load, refresh, persist and discard the stored credentials."""

    def __init__(self, path: Path, *, http: Any = requests) -> None:
        self.path = Path(path)
        self._http = http
        self._lock = threading.Lock()

    def load(self) -> Optional[Credentials]:
        if not self.path.exists():
            return None
        try:
            return Credentials.from_authorized_user_file(str(self.path), list(SCOPES))
        except ValueError as exc:
            LOGGER.warning("Token OAuth %s inválido: %s", self.path, exc)
            return None

    def save(self, credentials: Credentials) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Each writer gets its own temp file; os.replace keeps the swap atomic.
        handle = tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=self.path.parent,
            prefix=self.path.name + ".",
            suffix=".tmp",
            delete=False,
        )
        tmp_path = Path(handle.name)
        try:
            with handle:
                handle.write(credentials.to_json())
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self.path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise
        LOGGER.debug("Token OAuth gravado em %s", self.path)

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
        LOGGER.info("Token OAuth %s removido.", self.path)

    def is_authorized(self) -> bool:
        credentials = self.load()
        if credentials is None:
            return False
        return bool(credentials.valid or credentials.refresh_token)

    def credentials(self) -> Credentials:
        """Return valid credentials, refreshing them when they are stale."""

        credentials = self.load()
        if credentials is None:
            raise AuthRequired("Conta YouTube não autorizada.")
        if credentials.valid:
            return credentials

        with self._lock:
            # Another request may have refreshed while this one waited.
            credentials = self.load()
            if credentials is None:
                raise AuthRequired("Conta YouTube não autorizada.")
            if credentials.valid:
                return credentials
            if not credentials.refresh_token:
                raise AuthRequired("Token OAuth expirado e sem refresh token.")
            try:
                credentials.refresh(Request())
            except RefreshError as exc:
                LOGGER.warning("Refresh do token OAuth falhou: %s", exc)
                raise Unauthorized("Refresh do token OAuth rejeitado.") from exc
            self.save(credentials)
        LOGGER.info("Token OAuth renovado.")
        return credentials

    def ensure_access_token(self) -> AccessToken:
        credentials = self.credentials()
        return AccessToken(credentials.token, credentials.refresh_token)

    def sign_out(self) -> None:
        credentials = self.load()
        self.clear()
        if credentials is None:
            return
        token = credentials.refresh_token or credentials.token
        if not token:
            return
        try:
            response = self._http.post(
                REVOKE_URI,
                params={"token": token},
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as exc:
            LOGGER.warning("Não foi possível revogar o token OAuth: %s", exc)
            return
        if response.status_code != 200:
            LOGGER.warning(
                "Revogação do token OAuth devolveu HTTP %s: %s",
                response.status_code,
                response.text,
            )


class OAuthWebFlow:
    """Authorization-code flow behind the login/callback endpoints."""

    def __init__(
        self, client_id: str, client_secret: str, redirect_uri: str, store: TokenStore
    ) -> None:
        self._client_config = {
            "web": {
                "client_id": client_id,
                "client_secret": client_secret,
                "auth_uri": AUTH_URI,
                "token_uri": TOKEN_URI,
                "redirect_uris": [redirect_uri],
            }
        }
        self._redirect_uri = redirect_uri
        self._store = store

    def _flow(self, state: Optional[str] = None) -> Flow:
        # Login and callback build separate Flow objects, so no PKCE verifier.
        return Flow.from_client_config(
            self._client_config,
            scopes=list(SCOPES),
            state=state,
            redirect_uri=self._redirect_uri,
            autogenerate_code_verifier=False,
        )

    def authorization_url(self) -> Tuple[str, str]:
        return self._flow().authorization_url(
            access_type="offline",
            include_granted_scopes="true",
            prompt="select_account consent",
        )

    def exchange(self, code: str, state: str) -> Credentials:
        # include_granted_scopes can return scopes granted earlier to this
        # client; oauthlib raises on any scope change unless relaxed.
        os.environ.setdefault("OAUTHLIB_RELAX_TOKEN_SCOPE", "1")
        flow = self._flow(state)
        try:
            flow.fetch_token(code=code)
        except OAuth2Error as exc:
            LOGGER.warning("Troca do código OAuth falhou: %s", exc)
            raise Unauthorized(f"Autorização rejeitada: {exc.error}") from exc
        except Warning as exc:
            LOGGER.warning("Scopes concedidos diferem dos pedidos: %s", exc)
            raise Unauthorized("Scopes concedidos diferem dos pedidos.") from exc
        credentials = flow.credentials
        self._store.save(credentials)
        LOGGER.info("Conta YouTube autorizada.")
        return credentials


class DeviceFlow:
    """Device-code flow: the user enters a code on another device."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        store: TokenStore,
        *,
        http: Any = requests,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._store = store
        self._http = http
        self._sleep = sleep

    def _post(self, url: str, data: Dict[str, str]) -> Tuple[int, Dict[str, Any]]:
        response = self._http.post(url, data=data, timeout=REQUEST_TIMEOUT)
        try:
            payload = response.json()
        except ValueError:
            payload = {"error": response.text}
        return response.status_code, payload

    def request_code(self) -> Dict[str, Any]:
        status, payload = self._post(
            DEVICE_CODE_URI, {"client_id": self._client_id, "scope": " ".join(SCOPES)}
        )
        if status != 200:
            raise UpstreamError(
                f"Pedido de device code falhou: {payload.get('error', status)}",
                status=status,
            )
        return payload

    def run(self, announce: Callable[[str, str], None]) -> Credentials:
        device = self.request_code()
        announce(device["verification_url"], device["user_code"])

        interval = max(5, int(device.get("interval", 5)))
        remaining = float(device.get("expires_in", 1800))
        while remaining > 0:
            self._sleep(interval)
            remaining -= interval
            status, payload = self._post(
                TOKEN_URI,
                {
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "device_code": device["device_code"],
                    "grant_type": DEVICE_GRANT_TYPE,
                },
            )
            if status == 200:
                credentials = self._credentials_from(payload)
                self._store.save(credentials)
                LOGGER.info("Conta YouTube autorizada via device code.")
                return credentials

            error = payload.get("error")
            if error == "authorization_pending":
                continue
            if error == "slow_down":
                interval += 5
                continue
            raise Unauthorized(
                f"Autorização por device code falhou: {error or status}"
            )
        raise Unauthorized("Device code expirou antes da autorização.")

    def _credentials_from(self, payload: Dict[str, Any]) -> Credentials:
        # google-auth compares expiry against naive UTC datetimes.
        expiry = dt.datetime.now(dt.timezone.utc).replace(tzinfo=None) + dt.timedelta(
            seconds=int(payload.get("expires_in", 3600))
        )
        scope = payload.get("scope")
        return Credentials(
            token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            token_uri=TOKEN_URI,
            client_id=self._client_id,
            client_secret=self._client_secret,
            scopes=scope.split() if scope else list(SCOPES),
            expiry=expiry,
        )
