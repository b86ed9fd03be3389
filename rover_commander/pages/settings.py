from __future__ import annotations

import logging

from nicegui import ui

from rover_commander.common.theme import ThemeMode, get_theme, set_theme
from rover_commander.services.preferences import Preferences


class SettingsPage:
    """Settings tab page."""

    def __init__(self, prefs: Preferences) -> None:
        self.prefs = prefs

    def forget_rover(self) -> None:
        self.prefs.clear()
        ui.notify("Saved rover address and mode cleared", color="primary")
        logging.info("Cleared saved rover preferences")

    def build(self) -> None:
        with ui.card().classes("w-full"):
            ui.label("Settings").classes("text-md font-medium")
            with ui.row().classes("items-center gap-2"):
                ui.label("Theme").classes("text-sm")
                saved_mode = get_theme()
                mode_toggle = ui.toggle(
                    options=["System", "Light", "Dark"], value=saved_mode.capitalize()
                ).props("dense")

                def _on_mode() -> None:
                    mode: ThemeMode = (mode_toggle.value or "System").lower()  # type: ignore[assignment]
                    set_theme(mode)
                    logging.debug(f"Set theme to mode: {mode}")

                mode_toggle.on_value_change(lambda e: _on_mode())
            with ui.row().classes("items-center gap-2"):
                ui.button("Forget saved rover", on_click=self.forget_rover).props(
                    "unelevated color=warning"
                )
                ui.label(
                    "The current session keeps running; the default address is used on next start."
                ).classes("text-xs text-[var(--rc-muted)]")
