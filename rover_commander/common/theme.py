from __future__ import annotations

import logging
from typing import Literal, cast, get_args

from nicegui import app, ui

from rover_commander.state import DistanceLevel

ThemeMode = Literal["light", "dark", "system"]

# Obstacle distance readout colors (autonomous mode)
DISTANCE_COLORS: dict[DistanceLevel, str] = {
    DistanceLevel.DANGER: "#f56565",  # too close
    DistanceLevel.WARNING: "#f6ad55",
    DistanceLevel.SAFE: "#48bb78",
}
EMERGENCY_FLASH = "#dc2626"


def distance_color(level: DistanceLevel | None) -> str:
    """CSS color for a distance band; inherit when no band was decided."""
    if level is None:
        return "inherit"
    return DISTANCE_COLORS[DistanceLevel(level)]


def get_palette(mode: ThemeMode) -> dict[str, str]:
    """Return palette tokens for the given mode."""
    if mode == "dark":
        return {
            "primary": "#5A67D8",
            "primary_hover": "#434190",
            "background": "#1A202C",
            "surface": "#2D3748",
            "text": "#E2E8F0",
            "muted": "#A0AEC0",
            "on_primary": "#F7FAFC",
            "accent": "#22D3EE",
            "positive": "#48BB78",
            "negative": "#E53E3E",
            "info": "#31CCEC",
            "warning": "#F6AD55",
        }
    # light
    return {
        "primary": "#667EEA",
        "primary_hover": "#5A67D8",
        "background": "#EDF2F7",
        "surface": "#FFFFFF",
        "text": "#1A202C",
        "muted": "#718096",
        "on_primary": "#F7FAFC",
        "accent": "#22D3EE",
        "positive": "#48BB78",
        "negative": "#E53E3E",
        "info": "#31CCEC",
        "warning": "#F6AD55",
    }


def _css_vars(p: dict[str, str]) -> str:
    return f"""  --rc-primary: {p["primary"]};
  --rc-primary-hover: {p["primary_hover"]};
  --rc-bg: {p["background"]};
  --rc-surface: {p["surface"]};
  --rc-text: {p["text"]};
  --rc-muted: {p["muted"]};
  --rc-on-primary: {p["on_primary"]};"""


def theme_css(mode: ThemeMode) -> str:
    """CSS variables for ``mode``; "system" lets the browser pick via prefers-color-scheme."""
    base = "light" if mode == "system" else mode
    css = f":root {{\n{_css_vars(get_palette(base))}\n}}\n"
    if mode == "system":
        css += (
            "@media (prefers-color-scheme: dark) {\n"
            f":root {{\n{_css_vars(get_palette('dark'))}\n}}\n}}\n"
        )
    css += (
        "body, .q-page { background: var(--rc-bg); color: var(--rc-text); }\n"
        ".q-header, .q-footer, .q-card { background: var(--rc-surface); color: var(--rc-text); }\n"
    )
    return css


def apply_theme(mode: ThemeMode) -> None:
    """Set Quasar colors and dark mode, then inject CSS variables."""
    pal = get_palette("dark" if mode == "dark" else "light")
    ui.colors(
        primary=pal["primary"],
        secondary=pal["primary_hover"],
        accent=pal["accent"],
        positive=pal["positive"],
        negative=pal["negative"],
        info=pal["info"],
        warning=pal["warning"],
    )
    dark = ui.dark_mode()
    if mode == "dark":
        dark.enable()
    elif mode == "light":
        dark.disable()
    else:
        # Quasar follows the browser's color scheme
        dark.auto()
    logging.debug("Theme applied: %s", mode)
    ui.add_css(theme_css(mode))


def set_theme(mode: ThemeMode) -> ThemeMode:
    """Persist, set and apply theme mode."""
    app.storage.general["theme_mode"] = mode
    apply_theme(mode)
    return mode


def get_theme() -> ThemeMode:
    """Return current requested mode ('light'/'dark'/'system')."""
    mode = app.storage.general.get("theme_mode", "system")
    if isinstance(mode, str) and mode in get_args(ThemeMode):
        return cast("ThemeMode", mode)
    return cast("ThemeMode", "system")


def inject_layout_css() -> None:
    """Control pad, readouts and pressed-button feedback."""
    ui.add_css(
        f"""
.control-pad {{
  display: grid;
  grid-template-columns: repeat(3, 96px);
  grid-template-rows: repeat(3, 64px);
  gap: 8px;
  justify-content: center;
}}

.control-btn.is-active {{
  transform: scale(0.96);
  filter: brightness(1.25);
  outline: 2px solid var(--q-accent);
  transition: transform 40ms linear, filter 40ms linear;
}}

.distance-value {{
  font-size: 2.5rem;
  font-weight: 600;
  transition: color 150ms linear;
}}

.readouts-row {{
  display: flex;
  gap: 2rem;
  flex-wrap: wrap;
  width: 100%;
}}

body.emergency-flash, body.emergency-flash .q-page {{
  background: {EMERGENCY_FLASH} !important;
}}

@media (max-width: 600px) {{
  .readouts-row {{ flex-direction: column; gap: 0.5rem; }}
  .control-pad {{ grid-template-columns: repeat(3, 72px); }}
}}
"""
    )
