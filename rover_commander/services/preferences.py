from __future__ import annotations

import logging
from collections.abc import Callable, MutableMapping
from typing import Any

from nicegui import app as ng_app

from rover_commander.constants import PREF_ADDRESS_KEY, PREF_MODE_KEY
from rover_commander.state import Mode

Storage = MutableMapping[str, Any]


class Preferences:
    """
    Typed view over the preference store (rover address, last mode).

    The backing mapping is resolved lazily through ``storage_factory`` so the
    NiceGUI storage can be handed in before the app has started.
    """

    def __init__(self, storage_factory: Callable[[], Storage]) -> None:
        self._storage_factory = storage_factory

    @property
    def storage(self) -> Storage:
        return self._storage_factory()

    def load_address(self) -> str | None:
        value = self.storage.get(PREF_ADDRESS_KEY)
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    def save_address(self, address: str) -> None:
        self.storage[PREF_ADDRESS_KEY] = address

    def load_mode(self) -> Mode | None:
        value = self.storage.get(PREF_MODE_KEY)
        try:
            return Mode(value) if value else None
        except ValueError:
            logging.warning("Ignoring saved control mode %r", value)
            return None

    def save_mode(self, mode: Mode) -> None:
        self.storage[PREF_MODE_KEY] = Mode(mode).value

    def clear(self) -> None:
        for key in (PREF_ADDRESS_KEY, PREF_MODE_KEY):
            self.storage.pop(key, None)


def _general_storage() -> Storage:
    return ng_app.storage.general


# Module-level singleton backed by NiceGUI's app-wide storage
preferences = Preferences(_general_storage)
