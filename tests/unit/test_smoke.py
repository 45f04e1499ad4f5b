"""Smoke tests — validate the function app works end-to-end."""

import json
from unittest.mock import MagicMock, patch

import azure.functions as func
import pytest

from cloud_mirror.drive.models import SyncReport
from cloud_mirror.errors import NetworkFailureError


def test_timer_trigger_completes() -> None:
    """Timer trigger executes through the full flow without error."""
    from cloud_mirror.functions.timer_trigger import timer_trigger

    mock_timer = MagicMock(spec=func.TimerRequest)
    mock_timer.past_due = False

    mock_engine = MagicMock()
    mock_engine.sync.return_value = SyncReport(requests=2, upserted=3, purged=1)

    with (
        patch("cloud_mirror.functions.timer_trigger.load_config"),
        patch(
            "cloud_mirror.functions.timer_trigger.cache_engine_from_config",
            return_value=mock_engine,
        ),
    ):
        timer_trigger(mock_timer)

    mock_engine.sync.assert_called_once()


def test_timer_trigger_reraises_sync_failure() -> None:
    """A failed sync surfaces to the Functions host so the run is marked failed."""
    from cloud_mirror.functions.timer_trigger import timer_trigger

    mock_timer = MagicMock(spec=func.TimerRequest)
    mock_timer.past_due = True

    mock_engine = MagicMock()
    mock_engine.sync.side_effect = NetworkFailureError(502, "Bad Gateway")

    with (
        patch("cloud_mirror.functions.timer_trigger.load_config"),
        patch(
            "cloud_mirror.functions.timer_trigger.cache_engine_from_config",
            return_value=mock_engine,
        ),
        pytest.raises(NetworkFailureError),
    ):
        timer_trigger(mock_timer)


def test_health_check_returns_status() -> None:
    """Health endpoint returns ok status with version from the package."""
    from cloud_mirror.functions.http_trigger import health_check

    response = health_check(MagicMock(spec=func.HttpRequest))

    assert response.status_code == 200
    body = json.loads(response.get_body())
    assert body["status"] == "ok"
    assert body["version"] == "0.1.0"
