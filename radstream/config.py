"""Runtime settings loaded from environment variables."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Tuple

from .errors import ConfigError
from .polling import PollingPolicy

LOGGER = logging.getLogger("radstream.config")

DEFAULT_REDIRECT_URI = "http://localhost:3000/api/oauth/google/callback"
DEFAULT_TOKEN_PATH = Path("./.yt-oauth-token.json")
PRIVACY_STATUSES: Tuple[str, ...] = ("private", "public", "unlisted")


@dataclass
class Settings:
    """Configuration for the web app and the CLI helpers."""

    client_id: str
    client_secret: str
    redirect_uri: str = DEFAULT_REDIRECT_URI
    token_path: Path = DEFAULT_TOKEN_PATH
    bind: str = "127.0.0.1"
    port: int = 3000
    log_file: Optional[Path] = None
    default_privacy: str = "private"
    active_only: bool = True
    start_delay: float = 3.5
    list_retries: int = 3
    cookie_secure: bool = False
    polling: PollingPolicy = field(default_factory=PollingPolicy)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env

        def _get(name: str) -> Optional[str]:
            value = env.get(name)
            if value is None:
                return None
            value = value.strip()
            return value or None

        def _number(name: str, default, cast, *, allow_zero: bool = False):
            raw = _get(name)
            if raw is None:
                return default
            try:
                value = cast(raw)
            except (TypeError, ValueError):
                LOGGER.warning("Valor inválido em %s=%r; utilizando %s", name, raw, default)
                return default
            if value < 0 or (value == 0 and not allow_zero):
                LOGGER.warning(
                    "Valor não positivo em %s=%r; utilizando %s", name, raw, default
                )
                return default
            return value

        def _flag(name: str, default: bool) -> bool:
            raw = _get(name)
            if raw is None:
                return default
            return raw.lower() in {"1", "true", "yes", "on"}

        missing = [
            name
            for name in ("GOOGLE_OAUTH_CLIENT_ID", "GOOGLE_OAUTH_CLIENT_SECRET")
            if not _get(name)
        ]
        if missing:
            raise ConfigError(
                "Variáveis de ambiente OAuth em falta: " + ", ".join(missing)
            )

        privacy = (_get("RADSTREAM_DEFAULT_PRIVACY") or "private").lower()
        if privacy not in PRIVACY_STATUSES:
            LOGGER.warning(
                "Privacidade desconhecida RADSTREAM_DEFAULT_PRIVACY=%r; utilizando private",
                privacy,
            )
            privacy = "private"

        token_raw = _get("YT_TOKEN_PATH")
        log_raw = _get("RADSTREAM_LOG_FILE")

        defaults = PollingPolicy()
        polling = PollingPolicy(
            interval=_number("RADSTREAM_POLL_INTERVAL", defaults.interval, float),
            jitter=_number(
                "RADSTREAM_POLL_JITTER", defaults.jitter, float, allow_zero=True
            ),
            backoff_factor=_number(
                "RADSTREAM_POLL_BACKOFF", defaults.backoff_factor, float
            ),
            max_interval=_number(
                "RADSTREAM_POLL_MAX_INTERVAL", defaults.max_interval, float
            ),
        )

        return cls(
            client_id=_get("GOOGLE_OAUTH_CLIENT_ID") or "",
            client_secret=_get("GOOGLE_OAUTH_CLIENT_SECRET") or "",
            redirect_uri=_get("GOOGLE_OAUTH_REDIRECT_URI") or DEFAULT_REDIRECT_URI,
            token_path=Path(token_raw).expanduser() if token_raw else DEFAULT_TOKEN_PATH,
            bind=_get("RADSTREAM_BIND") or "127.0.0.1",
            port=_number("RADSTREAM_PORT", 3000, int),
            log_file=Path(log_raw).expanduser() if log_raw else None,
            default_privacy=privacy,
            active_only=_flag("RADSTREAM_ACTIVE_ONLY", True),
            start_delay=_number("RADSTREAM_START_DELAY", 3.5, float, allow_zero=True),
            list_retries=_number("RADSTREAM_LIST_RETRIES", 3, int, allow_zero=True),
            cookie_secure=_flag("RADSTREAM_COOKIE_SECURE", False),
            polling=polling,
        )
