from __future__ import annotations

import httpx

from rover_commander.services.rover_client import RoverRequestError
from rover_commander.state import Direction, Mode, TelemetrySnapshot


def make_snapshot(
    battery: float = 7.4,
    rssi: int = -60,
    command: str = "stop",
    distance: float | None = 50.0,
    mode: Mode | None = None,
) -> TelemetrySnapshot:
    return TelemetrySnapshot(
        battery=battery,
        rssi=rssi,
        command=command,
        distance=distance,
        mode=mode,
        raw_mode=mode.value if mode else None,
    )


class RecorderClient:
    """
    Stands in for AsyncRoverClient: records every request as (endpoint, value)
    and answers from scripted results instead of the network.
    """

    def __init__(self) -> None:
        self.host = ""
        self.calls: list[tuple[str, str]] = []
        # Popped per /status call; an exception instance is raised instead
        self.statuses: list[TelemetrySnapshot | RoverRequestError] = []
        self.default_status: TelemetrySnapshot | RoverRequestError = make_snapshot()
        self.action_error: RoverRequestError | None = None
        self.action_status_code = 200
        self.mode_error: RoverRequestError | None = None
        self.speed_error: RoverRequestError | None = None

    def endpoint(self, name: str) -> list[str]:
        return [value for ep, value in self.calls if ep == name]

    @property
    def actions(self) -> list[str]:
        return self.endpoint("action")

    async def set_mode(self, mode: Mode) -> httpx.Response:
        self.calls.append(("mode", Mode(mode).value))
        if self.mode_error:
            raise self.mode_error
        return httpx.Response(200)

    async def action(self, direction: Direction) -> httpx.Response:
        self.calls.append(("action", Direction(direction).value))
        if self.action_error:
            raise self.action_error
        return httpx.Response(self.action_status_code)

    async def set_speed(self, value: int) -> httpx.Response:
        self.calls.append(("speed", str(value)))
        if self.speed_error:
            raise self.speed_error
        return httpx.Response(200)

    async def status(self) -> TelemetrySnapshot:
        self.calls.append(("status", ""))
        result = self.statuses.pop(0) if self.statuses else self.default_status
        if isinstance(result, RoverRequestError):
            raise result
        return result
