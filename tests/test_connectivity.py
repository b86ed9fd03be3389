"""Link health hysteresis and obstacle distance bands."""

from __future__ import annotations

import pytest

from rover_commander.services.rover_client import MalformedTelemetry, NetworkFailure
from rover_commander.services.session import SessionController, distance_level
from rover_commander.state import ConnectionStatus, DistanceLevel, Mode
from tests.utils.recorder import RecorderClient, make_snapshot


async def _fail_polls(controller: SessionController, recorder: RecorderClient, n: int) -> None:
    recorder.statuses = [NetworkFailure("unreachable") for _ in range(n)]
    for _ in range(n):
        assert await controller.fetch_status() is None


@pytest.mark.unit
async def test_three_failures_stay_degraded(
    controller: SessionController, recorder: RecorderClient
):
    await controller.fetch_status()
    assert controller.state.signal_text == "Signal: -60 dBm"

    await _fail_polls(controller, recorder, 3)

    st = controller.state
    assert st.fail_count == 3
    assert st.connection == ConnectionStatus.DEGRADED
    # No flicker: the operator still sees the last good status and signal
    assert st.status_text == "Connected"
    assert st.signal_text == "Signal: -60 dBm"


@pytest.mark.unit
async def test_fourth_failure_disconnects_and_blanks_signal(
    controller: SessionController, recorder: RecorderClient
):
    await controller.fetch_status()
    await _fail_polls(controller, recorder, 4)

    st = controller.state
    assert st.fail_count == 4
    assert st.connection == ConnectionStatus.DISCONNECTED
    assert st.status_text == "Disconnected"
    assert st.signal_text == "Signal: --"


@pytest.mark.unit
async def test_malformed_telemetry_counts_as_failure(
    controller: SessionController, recorder: RecorderClient
):
    recorder.statuses = [MalformedTelemetry("missing battery")]

    await controller.fetch_status()

    assert controller.state.fail_count == 1
    assert controller.state.telemetry is None


@pytest.mark.unit
@pytest.mark.parametrize("failures", [1, 3, 4, 10])
async def test_single_success_recovers_immediately(
    controller: SessionController, recorder: RecorderClient, failures: int
):
    await _fail_polls(controller, recorder, failures)

    await controller.fetch_status()

    assert controller.state.fail_count == 0
    assert controller.state.connection == ConnectionStatus.CONNECTED
    assert controller.state.status_text == "Connected"
    assert controller.state.signal_text == "Signal: -60 dBm"


@pytest.mark.unit
async def test_command_failures_and_poll_failures_share_the_count(
    controller: SessionController, recorder: RecorderClient
):
    recorder.action_error = NetworkFailure("unreachable")
    await controller.move("forward")
    await controller.move("left")
    await _fail_polls(controller, recorder, 2)

    assert controller.state.connection == ConnectionStatus.DISCONNECTED


@pytest.mark.unit
def test_mark_connection_sequence(controller: SessionController):
    states = []
    for ok in [False, False, False, False, False, True, False]:
        controller.mark_connection(ok)
        states.append((controller.state.connection, controller.state.fail_count))

    assert states == [
        (ConnectionStatus.DEGRADED, 1),
        (ConnectionStatus.DEGRADED, 2),
        (ConnectionStatus.DEGRADED, 3),
        (ConnectionStatus.DISCONNECTED, 4),
        (ConnectionStatus.DISCONNECTED, 5),
        (ConnectionStatus.CONNECTED, 0),
        (ConnectionStatus.DEGRADED, 1),
    ]


# ---- Distance bands ----


@pytest.mark.unit
@pytest.mark.parametrize(
    "distance,expected",
    [
        (10, DistanceLevel.DANGER),
        (14.9, DistanceLevel.DANGER),
        (15, DistanceLevel.WARNING),
        (20, DistanceLevel.WARNING),
        (34, DistanceLevel.WARNING),
        (35, DistanceLevel.SAFE),
        (120, DistanceLevel.SAFE),
        (None, None),
        (0, None),
    ],
)
def test_distance_level_in_autonomous(distance, expected):
    assert distance_level(distance, Mode.AUTONOMOUS) == expected


@pytest.mark.unit
@pytest.mark.parametrize("distance", [10, 20, 35])
def test_distance_level_not_decided_in_manual(distance):
    assert distance_level(distance, Mode.MANUAL) is None


@pytest.mark.unit
async def test_poll_colours_distance_in_autonomous(
    controller: SessionController, recorder: RecorderClient
):
    controller.state.mode = Mode.AUTONOMOUS
    recorder.statuses = [
        make_snapshot(distance=10, mode=Mode.AUTONOMOUS),
        make_snapshot(distance=None, mode=Mode.AUTONOMOUS),
        make_snapshot(distance=35, mode=Mode.AUTONOMOUS),
    ]

    await controller.fetch_status()
    assert controller.state.distance_level == DistanceLevel.DANGER
    assert controller.state.distance_text == "10 cm"

    # No reading: previous decision and text are left alone
    await controller.fetch_status()
    assert controller.state.distance_level == DistanceLevel.DANGER
    assert controller.state.distance_text == "10 cm"

    await controller.fetch_status()
    assert controller.state.distance_level == DistanceLevel.SAFE
