from __future__ import annotations

import os
from typing import Any

import pytest

from rover_commander.services.preferences import Preferences
from rover_commander.services.session import SessionController
from rover_commander.state import SessionState
from tests.utils.recorder import RecorderClient

pytest_plugins = ["nicegui.testing.user_plugin"]


@pytest.fixture(scope="session", autouse=True)
def webapp_env_session() -> None:
    """
    Global test defaults for the webapp (set at session start via os.environ):
      - Disable the background telemetry poll loop so no test talks to a real rover
    Can still be overridden per-test with monkeypatch.setenv if needed.
    """
    os.environ["ROVER_AUTOPOLL"] = "0"


@pytest.fixture
def store() -> dict[str, Any]:
    return {}


@pytest.fixture
def prefs(store: dict[str, Any]) -> Preferences:
    return Preferences(lambda: store)


@pytest.fixture
def recorder() -> RecorderClient:
    return RecorderClient()


@pytest.fixture
def controller(recorder: RecorderClient, prefs: Preferences) -> SessionController:
    """Fresh controller pointed at a recorder, with an address already set."""
    ctl = SessionController(client=recorder, prefs=prefs, state=SessionState())
    ctl.state.address = "rover.test"
    recorder.host = "rover.test"
    return ctl
