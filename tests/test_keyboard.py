from __future__ import annotations

import pytest
from nicegui.events import KeyboardAction, KeyboardKey, KeyboardModifiers, KeyEventArguments

from rover_commander.keyboard import KeyAction, KeyIntent, dispatch_intent, handle_key, resolve_key
from rover_commander.services.session import SessionController
from rover_commander.state import Direction, Mode
from tests.utils.recorder import RecorderClient


@pytest.mark.unit
@pytest.mark.parametrize(
    "key,direction",
    [
        ("w", Direction.FORWARD),
        ("W", Direction.FORWARD),
        ("ArrowUp", Direction.FORWARD),
        ("s", Direction.BACKWARD),
        ("ArrowDown", Direction.BACKWARD),
        ("a", Direction.LEFT),
        ("ArrowLeft", Direction.LEFT),
        ("d", Direction.RIGHT),
        ("ArrowRight", Direction.RIGHT),
        (" ", Direction.STOP),
    ],
)
def test_movement_keys(key: str, direction: Direction):
    assert resolve_key(key) == KeyIntent(KeyAction.MOVE, direction=direction)


@pytest.mark.unit
def test_mode_and_emergency_keys():
    assert resolve_key("Escape") == KeyIntent(KeyAction.EMERGENCY_STOP)
    assert resolve_key("m") == KeyIntent(KeyAction.SWITCH_MODE, mode=Mode.MANUAL)
    assert resolve_key("M") == KeyIntent(KeyAction.SWITCH_MODE, mode=Mode.MANUAL)
    assert resolve_key("a", ctrl=True) == KeyIntent(KeyAction.SWITCH_MODE, mode=Mode.AUTONOMOUS)
    # Plain A still steers left
    assert resolve_key("a").direction == Direction.LEFT


@pytest.mark.unit
@pytest.mark.parametrize("key", ["x", "Enter", "Shift", "F5", ""])
def test_unbound_keys(key: str):
    assert resolve_key(key) is None


@pytest.mark.unit
async def test_escape_works_in_any_mode(controller: SessionController, recorder: RecorderClient):
    controller.state.mode = Mode.AUTONOMOUS

    await dispatch_intent(controller, resolve_key("Escape"))

    assert controller.state.mode == Mode.MANUAL
    assert recorder.calls == [("mode", "manual"), ("action", "stop"), ("action", "stop")]


@pytest.mark.unit
async def test_movement_keys_ignored_in_autonomous(
    controller: SessionController, recorder: RecorderClient
):
    controller.state.mode = Mode.AUTONOMOUS

    await dispatch_intent(controller, resolve_key("w"))
    await dispatch_intent(controller, resolve_key(" "))

    assert recorder.calls == []


@pytest.mark.unit
async def test_keys_drive_manual_mode(controller: SessionController, recorder: RecorderClient):
    for key in ["w", "w", "ArrowLeft"]:
        await dispatch_intent(controller, resolve_key(key))

    assert recorder.actions == ["forward", "stop", "left"]


@pytest.mark.unit
async def test_ctrl_a_switches_to_autonomous(
    controller: SessionController, recorder: RecorderClient
):
    await dispatch_intent(controller, resolve_key("a", ctrl=True))

    assert controller.state.mode == Mode.AUTONOMOUS
    assert recorder.calls == [("mode", "autonomous")]


def _key_event(
    name: str, keydown: bool = True, repeat: bool = False, ctrl: bool = False
) -> KeyEventArguments:
    return KeyEventArguments(
        sender=None,
        client=None,
        action=KeyboardAction(keydown=keydown, keyup=not keydown, repeat=repeat),
        key=KeyboardKey(name=name, code="", location=0),
        modifiers=KeyboardModifiers(alt=False, ctrl=ctrl, meta=False, shift=False),
    )


@pytest.mark.unit
async def test_handle_key_ignores_keyup(controller: SessionController, recorder: RecorderClient):
    await handle_key(controller, _key_event("w", keydown=False))

    assert recorder.calls == []


@pytest.mark.unit
async def test_held_key_does_not_toggle(controller: SessionController, recorder: RecorderClient):
    await handle_key(controller, _key_event("w"))
    for _ in range(3):
        await handle_key(controller, _key_event("w", repeat=True))

    assert recorder.actions == ["forward"]
    assert controller.state.last_command == Direction.FORWARD


@pytest.mark.unit
async def test_handle_key_passes_ctrl_modifier(
    controller: SessionController, recorder: RecorderClient
):
    await handle_key(controller, _key_event("a", ctrl=True))

    assert controller.state.mode == Mode.AUTONOMOUS
    assert recorder.actions == []

    await handle_key(controller, _key_event("Escape"))

    assert controller.state.mode == Mode.MANUAL
    assert recorder.actions == ["stop", "stop"]
