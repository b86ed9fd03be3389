from __future__ import annotations

import logging
import os

# Rover target (what the UI talks to)
ROVER_ADDRESS: str = os.getenv("ROVER_ADDRESS", "192.168.1.100")
REQUEST_TIMEOUT_S: float = float(os.getenv("ROVER_REQUEST_TIMEOUT_S", "3.0"))
POLL_INTERVAL_S: float = float(os.getenv("ROVER_POLL_INTERVAL_S", "1.0"))

# Consecutive failures tolerated before the link is shown as disconnected
DISCONNECT_THRESHOLD: int = 3

# Distance bands (cm) for the autonomous obstacle readout
DISTANCE_DANGER_CM: float = 15.0
DISTANCE_WARNING_CM: float = 35.0

# Motor speed range accepted by /speed
SPEED_MIN: int = 0
SPEED_MAX: int = 255
SPEED_DEFAULT: int = 200

# Webserver bind (NiceGUI host/port)
SERVER_HOST: str = os.getenv("ROVER_SERVER_IP", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("ROVER_SERVER_PORT", "8080"))
STORAGE_SECRET: str = os.getenv("ROVER_STORAGE_SECRET", "rover-commander")

# Preference store keys
PREF_ADDRESS_KEY = "rover_address"
PREF_MODE_KEY = "control_mode"

MODE_DESCRIPTIONS: dict[str, str] = {
    "manual": "Manual Mode: Control the rover with buttons or keyboard",
    "autonomous": "Autonomous Mode: Rover avoids obstacles automatically using ultrasonic sensor",
}


def env_flag(name: str, default: str = "1") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


def _resolve_log_level() -> int:
    s = os.getenv("ROVER_LOG_LEVEL")
    if s:
        name = s.strip().upper()
        mapping = {
            "DEBUG": logging.DEBUG,
            "INFO": logging.INFO,
            "WARNING": logging.WARNING,
            "ERROR": logging.ERROR,
            "CRITICAL": logging.CRITICAL,
        }
        return mapping.get(name, logging.WARNING)
    else:
        return logging.WARNING


LOG_LEVEL: int = _resolve_log_level()
