"""
Shared base entity for the OilFox integration.

Every slot of the state tree is shown as one entity. Slots are grouped into
devices by their path:

- info.*                  -> the account device
- <collection>.<n>.*      -> one device per tank index
"""

from __future__ import annotations

from typing import Any, Dict

from homeassistant.config_entries import ConfigEntry
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN, INTEGRATION_NAME
from .tree import ID_KEY, INFO_PREFIX


def _account_device(entry: ConfigEntry) -> Dict[str, Any]:
    return {
        "identifiers": {(DOMAIN, entry.entry_id)},
        "name": f"{INTEGRATION_NAME} account",
        "manufacturer": "FoxInsights",
        "model": "OilFox Account",
    }


class OilfoxSlotEntity(CoordinatorEntity):
    """Base class for entities backed by a single slot."""

    _attr_has_entity_name = True

    def __init__(self, coordinator, entry: ConfigEntry, path: str) -> None:
        super().__init__(coordinator)
        self._entry = entry
        self._path = path
        self._attr_unique_id = f"{entry.entry_id}_{path}"

        slot = coordinator.slot_store.get(path)
        self._attr_name = slot.name if slot else path

    @property
    def path(self) -> str:
        return self._path

    @property
    def slot_value(self) -> Any:
        return self.coordinator.slot_store.read(self._path)

    @property
    def device_info(self) -> Dict[str, Any]:
        """Group the entity under the account or its tank device."""
        group, _, rest = self._path.partition(".")
        if group == INFO_PREFIX:
            return _account_device(self._entry)

        index = rest.partition(".")[0]
        device_id = self.coordinator.slot_store.read(f"{group}.{index}.{ID_KEY}")
        return {
            "identifiers": {(DOMAIN, f"{self._entry.entry_id}_{group}_{index}")},
            "via_device": (DOMAIN, self._entry.entry_id),
            "name": f"{INTEGRATION_NAME} {device_id or index}",
            "manufacturer": "FoxInsights",
            "model": "OilFox",
        }

    @property
    def extra_state_attributes(self) -> Dict[str, Any]:
        slot = self.coordinator.slot_store.get(self._path)
        return {"path": self._path, "slot_type": slot.type if slot else None}
