"""
Slot storage for the OilFox state tree.

A slot is a named, typed, read-only leaf addressed by a dotted path such as
``info.email`` or ``items.0.metering.liters``. Stores expose a small
upsert-with-declare-once interface:

- declare(path, slot_type, name) creates the slot unless it already exists
- write(path, value) stores the current value (last writer wins)
- read(path) returns the current value, or None

MemorySlotStore keeps everything in a dict. HomeAssistantSlotStore adds
persistence through homeassistant.helpers.storage.Store so the tree survives
restarts.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Protocol

from homeassistant.core import callback
from homeassistant.helpers.storage import Store

from .const import STORAGE_SAVE_DELAY

_LOGGER = logging.getLogger(__name__)

SLOT_STRING = "string"
SLOT_NUMBER = "number"
SLOT_BOOLEAN = "boolean"
SLOT_MIXED = "mixed"


@dataclass
class Slot:
    """A single leaf of the state tree."""

    path: str
    type: str
    name: str
    value: Any = None
    read: bool = True
    write: bool = False


class SlotStore(Protocol):
    """Interface the tree synchronizer writes through."""

    def declare(self, path: str, slot_type: str, name: str | None = None) -> bool:
        ...

    def write(self, path: str, value: Any) -> None:
        ...

    def read(self, path: str) -> Any:
        ...

    def get(self, path: str) -> Optional[Slot]:
        ...

    def paths(self) -> List[str]:
        ...


class MemorySlotStore:
    """Slot store that lives in memory only."""

    def __init__(self) -> None:
        self._slots: Dict[str, Slot] = {}

    def __contains__(self, path: object) -> bool:
        return path in self._slots

    def __len__(self) -> int:
        return len(self._slots)

    def declare(self, path: str, slot_type: str, name: str | None = None) -> bool:
        """Create the slot if it does not exist yet.

        Returns True when a new slot was created. An existing slot keeps its
        original type and name.
        """
        if path in self._slots:
            return False

        self._slots[path] = Slot(path=path, type=slot_type, name=name or path)
        _LOGGER.debug("Declared slot %s (type=%s)", path, slot_type)
        self._changed()
        return True

    def write(self, path: str, value: Any) -> None:
        """Set the current value of a declared slot."""
        try:
            slot = self._slots[path]
        except KeyError:
            raise KeyError(f"Slot {path!r} has not been declared") from None

        if slot.value != value or type(slot.value) is not type(value):
            slot.value = value
            self._changed()

    def read(self, path: str) -> Any:
        slot = self._slots.get(path)
        return slot.value if slot else None

    def get(self, path: str) -> Optional[Slot]:
        return self._slots.get(path)

    def paths(self) -> List[str]:
        return list(self._slots)

    def as_dict(self) -> Dict[str, Dict[str, Any]]:
        """Return a JSON-serialisable snapshot keyed by path."""
        return {path: asdict(slot) for path, slot in self._slots.items()}

    def _changed(self) -> None:
        """Hook for subclasses that need to persist changes."""


class HomeAssistantSlotStore(MemorySlotStore):
    """Slot store persisted to .storage by Home Assistant.

    Changes are batched with Store.async_delay_save, so a burst of writes
    during one poll cycle results in a single disk write.
    """

    def __init__(self, store: Store) -> None:
        super().__init__()
        self._store = store

    async def async_load(self) -> None:
        """Restore previously declared slots and their last values."""
        data = await self._store.async_load()
        if not data:
            return

        for path, raw in data.get("slots", {}).items():
            self._slots[path] = Slot(
                path=path,
                type=raw.get("type", SLOT_MIXED),
                name=raw.get("name", path),
                value=raw.get("value"),
            )

        _LOGGER.debug("Restored %d slot(s) from storage", len(self._slots))

    async def async_save(self) -> None:
        """Write the current tree immediately."""
        await self._store.async_save(self._data_to_save())

    async def async_remove(self) -> None:
        """Delete the storage file."""
        await self._store.async_remove()

    @callback
    def _data_to_save(self) -> Dict[str, Any]:
        return {
            "slots": {
                path: {"type": slot.type, "name": slot.name, "value": slot.value}
                for path, slot in self._slots.items()
            }
        }

    def _changed(self) -> None:
        self._store.async_delay_save(self._data_to_save, STORAGE_SAVE_DELAY)
