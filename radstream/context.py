"""Explicitly constructed dependencies handed to the request handlers."""
from __future__ import annotations

import datetime as dt
import time
from dataclasses import dataclass, field
from typing import Callable

from google.oauth2.credentials import Credentials

from .auth import OAuthWebFlow, TokenStore
from .broadcasts import BroadcastReconciler, utc_now
from .config import Settings
from .lifecycle import LifecycleDriver
from .streams import StreamKeyResolver
from .youtube import YouTubeClient

ClientFactory = Callable[[Credentials], YouTubeClient]


@dataclass
class AppContext:
    settings: Settings
    token_store: TokenStore
    web_flow: OAuthWebFlow
    client_factory: ClientFactory
    sleep: Callable[[float], None] = field(default=time.sleep)
    clock: Callable[[], dt.datetime] = field(default=utc_now)

    @classmethod
    def from_settings(cls, settings: Settings) -> "AppContext":
        store = TokenStore(settings.token_path)
        web_flow = OAuthWebFlow(
            settings.client_id, settings.client_secret, settings.redirect_uri, store
        )

        def _factory(credentials: Credentials) -> YouTubeClient:
            return YouTubeClient.from_credentials(
                credentials, list_retries=settings.list_retries
            )

        return cls(
            settings=settings,
            token_store=store,
            web_flow=web_flow,
            client_factory=_factory,
        )

    def youtube(self) -> YouTubeClient:
        """Client for the stored account; raises ``Unauthorized`` without one."""

        return self.client_factory(self.token_store.credentials())

    def reconciler(self, client: YouTubeClient) -> BroadcastReconciler:
        return BroadcastReconciler(
            client,
            default_privacy=self.settings.default_privacy,
            active_only=self.settings.active_only,
            clock=self.clock,
        )

    def stream_keys(self, client: YouTubeClient) -> StreamKeyResolver:
        return StreamKeyResolver(client)

    def lifecycle(self, client: YouTubeClient) -> LifecycleDriver:
        return LifecycleDriver(
            client,
            self.reconciler(client),
            start_delay=self.settings.start_delay,
            sleep=self.sleep,
        )
