"""Sensor platform for OilFox: one read-only sensor per slot."""

from __future__ import annotations

import logging
from typing import Any, List

from homeassistant.components.sensor import (
    SensorDeviceClass,
    SensorEntity,
    SensorStateClass,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import PERCENTAGE, UnitOfTime, UnitOfVolume
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.entity import EntityCategory
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import DOMAIN
from .entity import OilfoxSlotEntity
from .store import SLOT_NUMBER
from .tree import INFO_PREFIX

_LOGGER = logging.getLogger(__name__)

# Known numeric fields: (unit, device class)
NUMERIC_FIELDS: dict[str, tuple[str, SensorDeviceClass | None]] = {
    "liters": (UnitOfVolume.LITERS, SensorDeviceClass.VOLUME_STORAGE),
    "fillLevelQuantity": (UnitOfVolume.LITERS, SensorDeviceClass.VOLUME_STORAGE),
    "fillLevelPercent": (PERCENTAGE, None),
    "daysReach": (UnitOfTime.DAYS, SensorDeviceClass.DURATION),
}


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up one sensor per slot and add more as new slots get declared."""
    coordinator = hass.data[DOMAIN][entry.entry_id]
    slot_store = coordinator.slot_store

    created_paths: set[str] = set()

    def new_entities() -> List[OilfoxSlotSensor]:
        entities = []
        for path in slot_store.paths():
            if path not in created_paths:
                created_paths.add(path)
                entities.append(OilfoxSlotSensor(coordinator, entry, path))
        return entities

    entities = new_entities()
    if entities:
        async_add_entities(entities)

    @callback
    def _coordinator_updated() -> None:
        entities = new_entities()
        if entities:
            _LOGGER.debug("OilFox (sensor): adding %d new slot sensor(s)", len(entities))
            async_add_entities(entities)

    entry.async_on_unload(coordinator.async_add_listener(_coordinator_updated))


class OilfoxSlotSensor(OilfoxSlotEntity, SensorEntity):
    """Current value of one slot."""

    def __init__(self, coordinator, entry: ConfigEntry, path: str) -> None:
        super().__init__(coordinator, entry, path)

        field = path.rsplit(".", 1)[-1]
        slot = coordinator.slot_store.get(path)
        self._numeric = (
            slot is not None and slot.type == SLOT_NUMBER and field in NUMERIC_FIELDS
        )

        if self._numeric:
            unit, device_class = NUMERIC_FIELDS[field]
            self._attr_native_unit_of_measurement = unit
            self._attr_device_class = device_class
            self._attr_state_class = SensorStateClass.MEASUREMENT

        if path.startswith(f"{INFO_PREFIX}.") or field not in NUMERIC_FIELDS:
            self._attr_entity_category = EntityCategory.DIAGNOSTIC

    @property
    def native_value(self) -> Any:
        value = self.slot_value
        if self._numeric and not isinstance(value, (int, float)):
            return None
        return value
