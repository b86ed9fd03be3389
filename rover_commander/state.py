from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from nicegui import binding

from rover_commander.constants import MODE_DESCRIPTIONS, SPEED_DEFAULT


class Mode(str, Enum):
    MANUAL = "manual"
    AUTONOMOUS = "autonomous"


class Direction(str, Enum):
    STOP = "stop"
    FORWARD = "forward"
    BACKWARD = "backward"
    LEFT = "left"
    RIGHT = "right"


class ConnectionStatus(str, Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DEGRADED = "degraded"  # 1..DISCONNECT_THRESHOLD consecutive failures
    DISCONNECTED = "disconnected"


class DistanceLevel(str, Enum):
    DANGER = "danger"
    WARNING = "warning"
    SAFE = "safe"


@dataclass(frozen=True)
class TelemetrySnapshot:
    battery: float  # V
    rssi: int  # dBm
    command: str
    distance: float | None = None  # cm, None when the rover sent no reading
    mode: Mode | None = None
    raw_mode: str | None = None  # as reported, kept even when not a known Mode


# Shared session state; pages bind to these fields
@binding.bindable_dataclass
class SessionState:
    address: str = ""
    mode: Mode = Mode.MANUAL
    last_command: Direction = Direction.STOP
    fail_count: int = 0
    connection: ConnectionStatus = ConnectionStatus.CONNECTING
    speed: int = SPEED_DEFAULT
    telemetry: TelemetrySnapshot | None = None
    # Derived strings for convenient UI bindings
    status_text: str = "Not connected"
    battery_text: str = "-- V"
    signal_text: str = "Signal: --"
    action_text: str = "stop"
    distance_text: str = "-- cm"
    distance_level: DistanceLevel | None = None
    mode_description: str = MODE_DESCRIPTIONS["manual"]


# Module-level singleton
session_state = SessionState()
