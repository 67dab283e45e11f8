from pathlib import Path

import pytest

from radstream.config import DEFAULT_TOKEN_PATH, Settings
from radstream.errors import ConfigError
from radstream.polling import PollingPolicy

BASE_ENV = {
    "GOOGLE_OAUTH_CLIENT_ID": "client-id",
    "GOOGLE_OAUTH_CLIENT_SECRET": "client-secret",
}


@pytest.mark.parametrize(
    "missing", ["GOOGLE_OAUTH_CLIENT_ID", "GOOGLE_OAUTH_CLIENT_SECRET"]
)
def test_missing_oauth_client_is_config_error(missing):
    env = dict(BASE_ENV)
    env[missing] = "  "

    with pytest.raises(ConfigError) as excinfo:
        Settings.from_env(env)

    assert missing in str(excinfo.value)


def test_defaults():
    settings = Settings.from_env(BASE_ENV)

    assert settings.redirect_uri == "http://localhost:3000/api/oauth/google/callback"
    assert settings.token_path == DEFAULT_TOKEN_PATH
    assert settings.bind == "127.0.0.1"
    assert settings.port == 3000
    assert settings.log_file is None
    assert settings.default_privacy == "private"
    assert settings.active_only is True
    assert settings.start_delay == 3.5
    assert settings.list_retries == 3
    assert settings.cookie_secure is False
    assert settings.polling == PollingPolicy()


def test_overrides_from_environment():
    env = dict(
        BASE_ENV,
        YT_TOKEN_PATH="/tmp/radstream/token.json",
        RADSTREAM_PORT="8080",
        RADSTREAM_DEFAULT_PRIVACY="Unlisted",
        RADSTREAM_ACTIVE_ONLY="false",
        RADSTREAM_START_DELAY="0",
        RADSTREAM_COOKIE_SECURE="yes",
        RADSTREAM_POLL_INTERVAL="5",
        RADSTREAM_POLL_JITTER="0",
    )

    settings = Settings.from_env(env)

    assert settings.token_path == Path("/tmp/radstream/token.json")
    assert settings.port == 8080
    assert settings.default_privacy == "unlisted"
    assert settings.active_only is False
    assert settings.start_delay == 0
    assert settings.cookie_secure is True
    assert settings.polling.interval == 5.0
    assert settings.polling.jitter == 0


def test_invalid_values_fall_back_to_defaults():
    env = dict(
        BASE_ENV,
        RADSTREAM_PORT="abc",
        RADSTREAM_DEFAULT_PRIVACY="friends-only",
        RADSTREAM_POLL_INTERVAL="-1",
        RADSTREAM_POLL_BACKOFF="0",
    )

    settings = Settings.from_env(env)

    assert settings.port == 3000
    assert settings.default_privacy == "private"
    assert settings.polling.interval == 2.0
    assert settings.polling.backoff_factor == 2.0


def test_polling_backs_off_and_caps():
    policy = PollingPolicy(interval=2.0, jitter=0, backoff_factor=2.0, max_interval=10.0)

    assert [policy.next_delay(n) for n in range(5)] == [2.0, 4.0, 8.0, 10.0, 10.0]


@pytest.mark.parametrize("rand, expected", [(0.0, 1.5), (0.5, 2.0), (1.0, 2.5)])
def test_polling_jitter_stays_within_fraction(rand, expected):
    policy = PollingPolicy(interval=2.0, jitter=0.25)

    assert policy.next_delay(0, rand=lambda: rand) == pytest.approx(expected)


def test_polling_policy_serialises_milliseconds():
    assert PollingPolicy().as_dict() == {
        "intervalMs": 2000,
        "jitter": 0.25,
        "backoffFactor": 2.0,
        "maxIntervalMs": 30000,
    }
