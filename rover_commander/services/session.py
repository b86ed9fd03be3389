from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any, Protocol

import httpx

from rover_commander.constants import (
    DISCONNECT_THRESHOLD,
    DISTANCE_DANGER_CM,
    DISTANCE_WARNING_CM,
    MODE_DESCRIPTIONS,
    ROVER_ADDRESS,
    SPEED_MAX,
    SPEED_MIN,
)
from rover_commander.services.preferences import Preferences, preferences
from rover_commander.services.rover_client import RoverRequestError, client
from rover_commander.state import (
    ConnectionStatus,
    Direction,
    DistanceLevel,
    Mode,
    SessionState,
    TelemetrySnapshot,
    session_state,
)


class InvalidAddress(ValueError):
    """Empty rover address submitted on connect."""


class RoverClient(Protocol):
    host: str

    async def set_mode(self, mode: Mode) -> httpx.Response: ...

    async def action(self, direction: Direction) -> httpx.Response: ...

    async def set_speed(self, value: int) -> httpx.Response: ...

    async def status(self) -> TelemetrySnapshot: ...


def distance_level(distance: float | None, mode: Mode) -> DistanceLevel | None:
    """Colour band for an obstacle distance; only decided in autonomous mode."""
    if distance is None or mode != Mode.AUTONOMOUS or distance <= 0:
        return None
    if distance < DISTANCE_DANGER_CM:
        return DistanceLevel.DANGER
    if distance < DISTANCE_WARNING_CM:
        return DistanceLevel.WARNING
    return DistanceLevel.SAFE


def format_distance(distance: float) -> str:
    if distance <= 0:
        return "-- cm"
    return f"{distance:g} cm"


class SessionController:
    """
    Owns the rover session: address, mode, last command, link health and
    the latest telemetry.

    Remote failures never escape; they become connectivity transitions or
    log entries. Requests are independent, so overlapping calls (a poll and a
    key press, two quick moves) are allowed and may complete in any order.
    """

    def __init__(
        self,
        client: RoverClient,
        prefs: Preferences,
        state: SessionState | None = None,
    ) -> None:
        self.client = client
        self.prefs = prefs
        self.state = state if state is not None else SessionState()
        self._handlers: dict[str, list[Callable[..., None]]] = defaultdict(list)

    # ---- Presentation events ----

    def subscribe(self, topic: str, handler: Callable[..., None]) -> None:
        """Register a handler for 'highlight', 'emergency' or 'telemetry'."""
        self._handlers[topic].append(handler)

    def unsubscribe(self, topic: str, handler: Callable[..., None]) -> None:
        if handler in self._handlers.get(topic, []):
            self._handlers[topic].remove(handler)

    def _emit(self, topic: str, *args: Any) -> None:
        for handler in list(self._handlers.get(topic, [])):
            try:
                handler(*args)
            except Exception:
                logging.exception("Presentation handler for %r failed", topic)

    # ---- Startup ----

    async def restore(self, default_address: str = ROVER_ADDRESS) -> None:
        """Load saved preferences; re-enter autonomous mode if it was saved."""
        address = self.prefs.load_address() or default_address.strip()
        self._set_address(address)
        logging.info("Rover address: %s", address or "<unset>")
        if self.prefs.load_mode() == Mode.AUTONOMOUS:
            await self.switch_mode(Mode.AUTONOMOUS)

    def _set_address(self, address: str) -> None:
        self.state.address = address
        self.client.host = address

    def _can_send(self, what: str) -> bool:
        if not self.state.address:
            logging.debug("No rover address set, skipping %s", what)
            return False
        return True

    # ---- Connection ----

    async def connect(self, address: str) -> None:
        address = (address or "").strip()
        if not address:
            raise InvalidAddress("Please enter a valid rover address")
        self._set_address(address)
        self.prefs.save_address(address)
        logging.info("Connecting to: %s", address)
        self.state.connection = ConnectionStatus.CONNECTING
        self.state.status_text = "Connecting..."
        await self.fetch_status()

    def mark_connection(self, ok: bool) -> None:
        st = self.state
        if ok:
            st.fail_count = 0
            st.connection = ConnectionStatus.CONNECTED
            st.status_text = "Connected"
            return
        st.fail_count += 1
        if st.fail_count > DISCONNECT_THRESHOLD:
            if st.connection != ConnectionStatus.DISCONNECTED:
                logging.warning("Rover disconnected after %d failed requests", st.fail_count)
            st.connection = ConnectionStatus.DISCONNECTED
            st.status_text = "Disconnected"
            st.signal_text = "Signal: --"
        else:
            # Displayed status is left as-is until the threshold is crossed
            st.connection = ConnectionStatus.DEGRADED

    # ---- Mode ----

    async def switch_mode(self, mode: Mode | str) -> None:
        mode = Mode(mode)
        st = self.state
        st.mode = mode
        self.prefs.save_mode(mode)
        st.mode_description = MODE_DESCRIPTIONS[mode.value]
        if mode == Mode.MANUAL:
            st.distance_level = None

        if self._can_send("mode change"):
            try:
                await self.client.set_mode(mode)
                logging.info("Mode switched to: %s", mode.value)
            except RoverRequestError as e:
                logging.error("Mode switch failed: %s", e)

        # Entering manual control must not leave an autonomous motion running
        if mode == Mode.MANUAL:
            await self.move(Direction.STOP)

    # ---- Manual control ----

    async def move(self, direction: Direction | str) -> Direction | None:
        direction = Direction(direction)
        st = self.state
        if st.mode != Mode.MANUAL:
            logging.info("Not in manual mode, ignoring command %s", direction.value)
            return None

        # Same button twice stops the rover
        if direction == st.last_command and direction != Direction.STOP:
            direction = Direction.STOP

        st.last_command = direction
        st.action_text = direction.value
        self._emit("highlight", direction)

        if not self._can_send("movement command"):
            return direction
        try:
            resp = await self.client.action(direction)
        except RoverRequestError as e:
            logging.error("Command failed: %s", e)
            self.mark_connection(False)
            return direction
        if resp.is_success:
            self.mark_connection(True)
        else:
            logging.warning("Command %s answered HTTP %s", direction.value, resp.status_code)
        return direction

    async def update_speed(self, value: int | float | str) -> int:
        speed = max(SPEED_MIN, min(SPEED_MAX, int(float(value))))
        self.state.speed = speed
        if self._can_send("speed update"):
            try:
                await self.client.set_speed(speed)
                logging.debug("Speed set to %d", speed)
            except RoverRequestError as e:
                logging.error("Speed update failed: %s", e)
        return speed

    async def emergency_stop(self) -> None:
        logging.warning("EMERGENCY STOP")
        await self.switch_mode(Mode.MANUAL)
        # Second stop on purpose: the mode switch already sent one
        await self.move(Direction.STOP)
        self._emit("emergency")
        logging.warning("Emergency stop executed")

    # ---- Telemetry ----

    async def fetch_status(self) -> TelemetrySnapshot | None:
        if not self._can_send("status poll"):
            return None
        try:
            snapshot = await self.client.status()
        except RoverRequestError as e:
            logging.debug("Status fetch failed: %s", e)
            self.mark_connection(False)
            return None

        self._apply_telemetry(snapshot)
        self.mark_connection(True)

        if snapshot.raw_mode and snapshot.mode is None:
            logging.warning("Rover reported unknown mode %r", snapshot.raw_mode)
        elif snapshot.mode is not None and snapshot.mode != self.state.mode:
            logging.info(
                "Rover reports mode %s, local mode is %s; following the rover",
                snapshot.mode.value,
                self.state.mode.value,
            )
            await self.switch_mode(snapshot.mode)
        return snapshot

    def _apply_telemetry(self, snapshot: TelemetrySnapshot) -> None:
        st = self.state
        st.telemetry = snapshot
        st.battery_text = f"{snapshot.battery:.2f} V"
        st.signal_text = f"Signal: {snapshot.rssi} dBm"
        st.action_text = snapshot.command
        if snapshot.distance is not None:
            st.distance_text = format_distance(snapshot.distance)
            level = distance_level(snapshot.distance, st.mode)
            if level is not None:
                st.distance_level = level
        self._emit("telemetry", snapshot)


# Module-level singleton instance
session = SessionController(client=client, prefs=preferences, state=session_state)
