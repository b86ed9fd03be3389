from __future__ import annotations

import logging
import math
from typing import Any

import httpx

from rover_commander.common.logging_config import TRACE
from rover_commander.constants import REQUEST_TIMEOUT_S, ROVER_ADDRESS
from rover_commander.state import Direction, Mode, TelemetrySnapshot


class RoverRequestError(Exception):
    """A call to the rover did not produce a usable answer."""


class RequestTimeout(RoverRequestError):
    pass


class NetworkFailure(RoverRequestError):
    pass


class MalformedTelemetry(RoverRequestError):
    """/status answered, but not with the telemetry we expect."""


def _number(payload: dict[str, Any], key: str) -> float:
    value = payload.get(key)
    # bool is an int subclass, reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedTelemetry(f"{key!r} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise MalformedTelemetry(f"{key!r} must be finite, got {value!r}")
    return float(value)


def parse_telemetry(payload: Any) -> TelemetrySnapshot:
    """
    Validate a decoded /status body and build a TelemetrySnapshot.

    Required: battery (number), rssi (integer), command (string).
    Optional: distance (number or null), mode (string). A mode string that is
    not a known Mode is kept in raw_mode and leaves mode as None.
    """
    if not isinstance(payload, dict):
        raise MalformedTelemetry(
            f"status body must be an object, got {type(payload).__name__}"
        )
    battery = _number(payload, "battery")
    rssi = _number(payload, "rssi")
    if not rssi.is_integer():
        raise MalformedTelemetry(f"'rssi' must be an integer, got {payload['rssi']!r}")
    command = payload.get("command")
    if not isinstance(command, str):
        raise MalformedTelemetry(f"'command' must be a string, got {command!r}")

    distance: float | None = None
    if payload.get("distance") is not None:
        distance = _number(payload, "distance")

    raw_mode = payload.get("mode")
    if raw_mode is not None and not isinstance(raw_mode, str):
        raise MalformedTelemetry(f"'mode' must be a string, got {raw_mode!r}")
    mode: Mode | None = None
    if raw_mode:
        try:
            mode = Mode(raw_mode)
        except ValueError:
            mode = None

    return TelemetrySnapshot(
        battery=battery,
        rssi=int(rssi),
        command=command,
        distance=distance,
        mode=mode,
        raw_mode=raw_mode or None,
    )


class AsyncRoverClient:
    """
    HTTP client for the rover's control API.

    Every call is a GET against http://<host>/... with its own timeout.
    Transport problems are raised as RequestTimeout / NetworkFailure; callers
    decide what a failure means for the session.
    """

    def __init__(
        self,
        host: str,
        timeout: float = REQUEST_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.host = host
        self.timeout = timeout
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return f"http://{self.host}"

    def _client(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._http

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> httpx.Response:
        url = f"{self.base_url}{path}"
        logging.log(TRACE, "GET %s %s", url, params or "")
        try:
            return await self._client().get(url, params=params)
        except httpx.TimeoutException as e:
            raise RequestTimeout(f"GET {url} timed out after {self.timeout:.1f}s") from e
        except httpx.TransportError as e:
            raise NetworkFailure(f"GET {url} failed: {e}") from e

    async def set_mode(self, mode: Mode) -> httpx.Response:
        return await self._get("/mode", {"mode": Mode(mode).value})

    async def action(self, direction: Direction) -> httpx.Response:
        return await self._get("/action", {"go": Direction(direction).value})

    async def set_speed(self, value: int) -> httpx.Response:
        return await self._get("/speed", {"val": int(value)})

    async def status(self) -> TelemetrySnapshot:
        resp = await self._get("/status")
        if not resp.is_success:
            raise MalformedTelemetry(f"/status answered HTTP {resp.status_code}")
        try:
            payload = resp.json()
        except ValueError as e:
            raise MalformedTelemetry(f"/status body is not JSON: {e}") from e
        return parse_telemetry(payload)

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None
            logging.debug("Rover HTTP client closed")


# Module-level singleton instance
client = AsyncRoverClient(host=ROVER_ADDRESS, timeout=REQUEST_TIMEOUT_S)
