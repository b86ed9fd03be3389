from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from nicegui.events import KeyEventArguments

from rover_commander.services.session import SessionController
from rover_commander.state import Direction, Mode


class KeyAction(str, Enum):
    EMERGENCY_STOP = "emergency_stop"
    SWITCH_MODE = "switch_mode"
    MOVE = "move"


@dataclass(frozen=True)
class KeyIntent:
    action: KeyAction
    mode: Mode | None = None
    direction: Direction | None = None


MOVE_KEYS: dict[str, Direction] = {
    "w": Direction.FORWARD,
    "arrowup": Direction.FORWARD,
    "s": Direction.BACKWARD,
    "arrowdown": Direction.BACKWARD,
    "a": Direction.LEFT,
    "arrowleft": Direction.LEFT,
    "d": Direction.RIGHT,
    "arrowright": Direction.RIGHT,
    " ": Direction.STOP,
    "space": Direction.STOP,
}


def resolve_key(key: str, ctrl: bool = False) -> KeyIntent | None:
    """Map a key name (browser KeyboardEvent.key) to an operator intent."""
    name = key.lower()
    if name == "escape":
        return KeyIntent(KeyAction.EMERGENCY_STOP)
    if name == "m":
        return KeyIntent(KeyAction.SWITCH_MODE, mode=Mode.MANUAL)
    if name == "a" and ctrl:
        return KeyIntent(KeyAction.SWITCH_MODE, mode=Mode.AUTONOMOUS)
    direction = MOVE_KEYS.get(name)
    if direction is not None:
        return KeyIntent(KeyAction.MOVE, direction=direction)
    return None


async def dispatch_intent(controller: SessionController, intent: KeyIntent) -> None:
    if intent.action == KeyAction.EMERGENCY_STOP:
        await controller.emergency_stop()
    elif intent.action == KeyAction.SWITCH_MODE and intent.mode is not None:
        await controller.switch_mode(intent.mode)
    elif intent.action == KeyAction.MOVE and intent.direction is not None:
        # Movement keys only drive in manual mode
        if controller.state.mode != Mode.MANUAL:
            return
        await controller.move(intent.direction)


async def handle_key(controller: SessionController, e: KeyEventArguments) -> None:
    """ui.keyboard callback: keydown only, auto-repeat ignored."""
    if not e.action.keydown or e.action.repeat:
        return
    intent = resolve_key(e.key.name, ctrl=e.modifiers.ctrl)
    if intent is None:
        return
    logging.debug("Key %r -> %s", e.key.name, intent)
    await dispatch_intent(controller, intent)
