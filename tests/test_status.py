import pytest

from radstream import status


@pytest.mark.parametrize(
    "lifecycle,label",
    [
        ("live", "Live"),
        ("created", "Starting Soon"),
        ("ready", "Starting Soon"),
        ("testing", "Starting Soon"),
        ("complete", "Ended"),
        ("canceled", "Canceled"),
        ("revoked", "Revoked"),
    ],
)
def test_every_lifecycle_value_has_a_label(lifecycle, label):
    result = status.lifecycle_label(lifecycle)

    assert result.label == label
    assert result.color != status.NEUTRAL


def test_unknown_lifecycle_maps_to_itself_with_neutral_color():
    result = status.lifecycle_label("liveStarting")

    assert result.label == "liveStarting"
    assert result.color == status.NEUTRAL


@pytest.mark.parametrize("missing", [None, ""])
def test_missing_lifecycle_does_not_raise(missing):
    result = status.lifecycle_label(missing)

    assert result.label == "Unknown"
    assert result.color == status.NEUTRAL


def test_stream_status_labels():
    assert status.stream_status_label("active") == "receiving data"
    assert status.stream_status_label("error") == "lost connection"
    for other in ("created", "ready", "inactive", "bogus", None, ""):
        assert status.stream_status_label(other) == "waiting for connection.."


def test_active_stream_uses_canonical_label():
    assert status.stream_status_label("active") == status.STREAM_ACTIVE_LABEL
    assert status.stream_status_label("active") != "streaming"


def test_health_defaults_to_no_data():
    assert status.health_status("good") == "good"
    assert status.health_status("revoked") == "revoked"
    assert status.health_status(None) == "noData"
    assert status.health_status("") == "noData"


def test_status_label_as_dict():
    assert status.lifecycle_label("live").as_dict() == {"status": "Live", "color": "red"}
