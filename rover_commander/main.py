import argparse
import asyncio
import contextlib
import logging
import sys

from nicegui import app as ng_app
from nicegui import background_tasks, ui

from rover_commander.common.logging_config import TRACE, configure_logging
from rover_commander.common.theme import apply_theme, get_theme, inject_layout_css
from rover_commander.constants import (
    LOG_LEVEL,
    POLL_INTERVAL_S,
    ROVER_ADDRESS,
    SERVER_HOST,
    SERVER_PORT,
    STORAGE_SECRET,
    env_flag,
)
from rover_commander.pages.drive import DrivePage
from rover_commander.pages.settings import SettingsPage
from rover_commander.services.preferences import preferences
from rover_commander.services.rover_client import client
from rover_commander.services.session import session

# Runtime configuration (resolved later from CLI/env)
RUNTIME_SERVER_HOST = SERVER_HOST
RUNTIME_SERVER_PORT = SERVER_PORT
RUNTIME_ROVER_ADDRESS = ROVER_ADDRESS

# Telemetry poll loop (runs once per app)
poll_task: asyncio.Task | None = None


async def _poll_loop() -> None:
    """Start one independent status poll per interval; never waits on a slow poll."""
    while True:
        background_tasks.create(session.fetch_status(), name="rover-status")
        await asyncio.sleep(POLL_INTERVAL_S)


def start_polling() -> None:
    global poll_task
    if poll_task is None or poll_task.done():
        poll_task = asyncio.create_task(_poll_loop())
        logging.info("Telemetry polling every %.1fs", POLL_INTERVAL_S)


async def stop_polling() -> None:
    global poll_task
    if poll_task:
        poll_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await poll_task
        poll_task = None


async def _app_startup() -> None:
    await session.restore(default_address=RUNTIME_ROVER_ADDRESS)
    # Evaluated at runtime so tests can switch it off
    if env_flag("ROVER_AUTOPOLL"):
        start_polling()


async def _app_shutdown() -> None:
    await stop_polling()
    await client.aclose()


ng_app.on_startup(_app_startup)
ng_app.on_shutdown(_app_shutdown)


@ui.page("/")
def index() -> None:
    apply_theme(get_theme())
    inject_layout_css()

    drive_page = DrivePage(session)
    settings_page = SettingsPage(preferences)

    with ui.header().classes("p-0"), ui.row().classes("w-full items-center justify-between"):
        with ui.tabs() as tabs:
            drive_tab = ui.tab("Drive")
            settings_tab = ui.tab("Settings")
        ui.label("Rover Commander").classes("text-sm pr-4")

    with ui.tab_panels(tabs, value=drive_tab).classes("w-full"):
        with ui.tab_panel(drive_tab):
            drive_page.build()
        with ui.tab_panel(settings_tab):
            settings_page.build()


if __name__ in {"__main__", "__mp_main__"}:
    parser = argparse.ArgumentParser(description="Rover Commander webserver")
    parser.add_argument("--host", default=SERVER_HOST, help="Webserver bind host")
    parser.add_argument("--port", type=int, default=SERVER_PORT, help="Webserver bind port")
    parser.add_argument(
        "--rover",
        default=ROVER_ADDRESS,
        help="Rover address used when none has been saved yet (host or host:port)",
    )
    parser.add_argument(
        "--log-level",
        choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set log level",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity; -v=INFO, -vv=DEBUG",
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Enable WARNING logging")
    args, _ = parser.parse_known_args()

    RUNTIME_SERVER_HOST = args.host
    RUNTIME_SERVER_PORT = int(args.port)
    RUNTIME_ROVER_ADDRESS = args.rover

    # Priority: explicit --log-level > -v/-q > env default from constants
    if args.log_level:
        RUNTIME_LOG_LEVEL = TRACE if args.log_level == "TRACE" else getattr(logging, args.log_level)
    elif args.verbose >= 2:
        RUNTIME_LOG_LEVEL = logging.DEBUG
    elif args.verbose == 1:
        RUNTIME_LOG_LEVEL = logging.INFO
    elif args.quiet:
        RUNTIME_LOG_LEVEL = logging.WARNING
    else:
        RUNTIME_LOG_LEVEL = LOG_LEVEL

    configure_logging(RUNTIME_LOG_LEVEL)
    logging.info(f"Webserver bind: host={RUNTIME_SERVER_HOST} port={RUNTIME_SERVER_PORT}")
    logging.info(f"Default rover address: {RUNTIME_ROVER_ADDRESS}")

    ui.run(
        title="Rover Commander",
        host=RUNTIME_SERVER_HOST,
        port=RUNTIME_SERVER_PORT,
        reload=False,
        show=False,
        storage_secret=STORAGE_SECRET,
        loop="uvloop" if sys.platform != "win32" else "asyncio",
    )
