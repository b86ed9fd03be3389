from __future__ import annotations

import asyncio
import logging
from functools import partial

from nicegui import background_tasks, ui
from nicegui.events import GenericEventArguments, KeyEventArguments, ValueChangeEventArguments

from rover_commander.common.logging_config import attach_ui_log, detach_ui_log
from rover_commander.common.theme import distance_color
from rover_commander.constants import SPEED_MAX, SPEED_MIN
from rover_commander.keyboard import handle_key
from rover_commander.services.session import InvalidAddress, SessionController
from rover_commander.state import Direction, Mode, TelemetrySnapshot

# Control pad layout, row by row; None leaves the cell empty
PAD_LAYOUT: list[list[tuple[Direction, str, str] | None]] = [
    [None, (Direction.FORWARD, "Forward", "arrow_upward"), None],
    [
        (Direction.LEFT, "Left", "arrow_back"),
        (Direction.STOP, "Stop", "stop"),
        (Direction.RIGHT, "Right", "arrow_forward"),
    ],
    [None, (Direction.BACKWARD, "Backward", "arrow_downward"), None],
]

KEYBOARD_HELP = (
    "W / ↑ forward · S / ↓ backward · A / ← left · D / → right · Space stop · "
    "M manual · Ctrl+A autonomous · Esc emergency stop"
)

_STATUS_COLORS = {
    "Connected": "#21BA45",
    "Disconnected": "#DB2828",
}

KEYBOARD_IGNORE = ["input", "select", "textarea"]

HIGHLIGHT_S = 0.2
FLASH_S = 0.3


class DrivePage:
    """Drive tab: connection, mode, manual pad, autonomous readout, event log."""

    def __init__(self, controller: SessionController) -> None:
        self.controller = controller
        self.state = controller.state
        self.client = None

        self.address_input: ui.input | None = None
        self.status_label: ui.label | None = None
        self.distance_label: ui.label | None = None
        self.speed_slider: ui.slider | None = None
        self.event_log: ui.log | None = None
        self.control_buttons: dict[Direction, ui.button] = {}

    # ---- Actions ----

    async def connect(self) -> None:
        value = self.address_input.value if self.address_input else ""
        try:
            await self.controller.connect(value or "")
        except InvalidAddress as e:
            ui.notify(str(e), color="warning")

    async def on_mode_change(self, e: ValueChangeEventArguments) -> None:
        # The toggle also follows the state; only act on operator changes
        if e.value and e.value != self.state.mode.value:
            await self.controller.switch_mode(e.value)

    async def on_speed_commit(self, e: GenericEventArguments) -> None:
        value = e.args if isinstance(e.args, (int, float)) else self.speed_slider.value
        if value is None or int(value) == self.state.speed:
            return
        await self.controller.update_speed(value)

    async def emergency_stop(self) -> None:
        await self.controller.emergency_stop()

    # ---- Presentation events ----

    def _highlight(self, direction: Direction) -> None:
        btn = self.control_buttons.get(direction)
        if btn is None:
            return
        btn.classes(add="is-active")

        async def _release() -> None:
            await asyncio.sleep(HIGHLIGHT_S)
            btn.classes(remove="is-active")

        background_tasks.create(_release(), name="rover-highlight")

    def _flash(self) -> None:
        if self.client is None:
            return
        client = self.client

        async def _run() -> None:
            client.run_javascript("document.body.classList.add('emergency-flash')")
            await asyncio.sleep(FLASH_S)
            client.run_javascript("document.body.classList.remove('emergency-flash')")

        background_tasks.create(_run(), name="rover-emergency-flash")

    def _on_telemetry(self, snapshot: TelemetrySnapshot) -> None:
        self._refresh_distance_color()

    def _refresh_distance_color(self) -> None:
        if self.distance_label is not None:
            self.distance_label.style(f"color: {distance_color(self.state.distance_level)}")

    def _status_text(self, text: str) -> str:
        if self.status_label is not None:
            self.status_label.style(f"color: {_STATUS_COLORS.get(text, 'inherit')}")
        return text

    def attach(self) -> None:
        self.controller.subscribe("highlight", self._highlight)
        self.controller.subscribe("emergency", self._flash)
        self.controller.subscribe("telemetry", self._on_telemetry)
        if self.event_log is not None:
            attach_ui_log(self.event_log)

    def detach(self) -> None:
        self.controller.unsubscribe("highlight", self._highlight)
        self.controller.unsubscribe("emergency", self._flash)
        self.controller.unsubscribe("telemetry", self._on_telemetry)
        if self.event_log is not None:
            detach_ui_log(self.event_log)
        logging.debug("Drive page detached")

    # ---- UI ----

    def build_connection(self) -> None:
        with ui.card().classes("w-full"):
            ui.label("Connection").classes("text-md font-medium")
            with ui.row().classes("items-center gap-2 w-full"):
                self.address_input = ui.input(
                    label="Rover address", value=self.state.address
                ).classes("w-64")
                self.address_input.on("keydown.enter", self.connect)
                ui.button("Connect", on_click=self.connect).props("unelevated")
                self.status_label = ui.label().classes("text-sm font-medium")
                self.status_label.bind_text_from(
                    self.state, "status_text", backward=self._status_text
                )
                ui.label().bind_text_from(self.state, "signal_text").classes("text-sm")

    def build_readouts(self) -> None:
        with ui.card().classes("w-full"):
            ui.label("Status").classes("text-md font-medium")
            with ui.element("div").classes("readouts-row"):
                ui.label().bind_text_from(
                    self.state, "battery_text", backward=lambda v: f"Battery: {v}"
                ).classes("text-sm")
                ui.label().bind_text_from(
                    self.state, "action_text", backward=lambda v: f"Action: {v}"
                ).classes("text-sm")
                ui.label().bind_text_from(
                    self.state, "mode", backward=lambda m: f"Mode: {Mode(m).value}"
                ).classes("text-sm")
                ui.label().bind_text_from(
                    self.state, "distance_text", backward=lambda v: f"Distance: {v}"
                ).classes("text-sm").bind_visibility_from(
                    self.state, "mode", backward=lambda m: m == Mode.AUTONOMOUS
                )

    def build_mode(self) -> None:
        with ui.card().classes("w-full"):
            with ui.row().classes("items-center gap-4"):
                ui.label("Mode").classes("text-md font-medium")
                ui.toggle(
                    {Mode.MANUAL.value: "Manual", Mode.AUTONOMOUS.value: "Autonomous"},
                    value=self.state.mode.value,
                    on_change=self.on_mode_change,
                ).bind_value_from(self.state, "mode", backward=lambda m: Mode(m).value)
                ui.button(
                    "Emergency stop", icon="report", on_click=self.emergency_stop
                ).props("color=negative unelevated")
            ui.label().bind_text_from(self.state, "mode_description").classes(
                "text-sm text-[var(--rc-muted)]"
            )

    def build_manual_controls(self) -> None:
        with ui.card().classes("w-full").bind_visibility_from(
            self.state, "mode", backward=lambda m: m == Mode.MANUAL
        ):
            with ui.element("div").classes("control-pad"):
                for row in PAD_LAYOUT:
                    for cell in row:
                        if cell is None:
                            ui.element("div")
                            continue
                        direction, text, icon = cell
                        btn = ui.button(
                            text, icon=icon, on_click=partial(self.controller.move, direction)
                        ).classes("control-btn")
                        if direction == Direction.STOP:
                            btn.props("color=negative")
                        self.control_buttons[direction] = btn
            with ui.row().classes("items-center gap-2 w-full"):
                ui.label("Speed").classes("text-sm")
                self.speed_slider = (
                    ui.slider(min=SPEED_MIN, max=SPEED_MAX, step=1, value=self.state.speed)
                    .classes("w-64")
                    .bind_value_from(self.state, "speed")
                )
                # Quasar emits "change" once on release, not per drag step
                self.speed_slider.on("change", self.on_speed_commit)
                ui.label().bind_text_from(self.state, "speed").classes("text-sm w-10")
            ui.label(KEYBOARD_HELP).classes("text-xs text-[var(--rc-muted)]")

    def build_autonomous_display(self) -> None:
        with ui.card().classes("w-full items-center").bind_visibility_from(
            self.state, "mode", backward=lambda m: m == Mode.AUTONOMOUS
        ):
            ui.label("Obstacle distance").classes("text-md font-medium")
            self.distance_label = (
                ui.label()
                .bind_text_from(self.state, "distance_text")
                .classes("distance-value")
            )
            self._refresh_distance_color()
            ui.label("The rover is driving itself. Press Esc or Emergency stop to halt.").classes(
                "text-xs text-[var(--rc-muted)]"
            )

    def build_log(self) -> None:
        with ui.card().classes("w-full"):
            ui.label("Event log").classes("text-md font-medium")
            self.event_log = ui.log(max_lines=200).classes("w-full h-40")

    def build(self) -> None:
        """Build the drive page content and hook it to the session."""
        self.client = ui.context.client
        with ui.column().classes("w-full gap-3"):
            self.build_connection()
            self.build_readouts()
            self.build_mode()
            self.build_manual_controls()
            self.build_autonomous_display()
            self.build_log()

        # Keys still count while a clicked button keeps focus
        ui.keyboard(on_key=self._on_key, ignore=KEYBOARD_IGNORE)
        self.attach()
        self.client.on_disconnect(self.detach)

    async def _on_key(self, e: KeyEventArguments) -> None:
        await handle_key(self.controller, e)
