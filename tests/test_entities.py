"""Tests for the Home Assistant facing pieces that do not need a running hass."""

from __future__ import annotations

from unittest.mock import MagicMock

from homeassistant.const import PERCENTAGE
from homeassistant.helpers.entity import EntityCategory

from custom_components.oilfox import entry_option
from custom_components.oilfox.const import (
    CONF_EMAIL,
    CONF_PASSWORD,
    CONF_POLL_INTERVAL,
    DEVICE_MAPPING_ID,
    DOMAIN,
)
from custom_components.oilfox.diagnostics import async_get_config_entry_diagnostics
from custom_components.oilfox.sensor import OilfoxSlotSensor
from custom_components.oilfox.store import MemorySlotStore
from custom_components.oilfox.tree import TreeSynchronizer


def _entry(data: dict | None = None, options: dict | None = None) -> MagicMock:
    entry = MagicMock()
    entry.entry_id = "entry-1"
    entry.data = data or {}
    entry.options = options or {}
    return entry


def _coordinator(store: MemorySlotStore, document: dict | None = None) -> MagicMock:
    coordinator = MagicMock()
    coordinator.slot_store = store
    coordinator.data = document
    coordinator.last_update_success = True
    return coordinator


def test_entry_option_prefers_options() -> None:
    entry = _entry(data={CONF_POLL_INTERVAL: 7000}, options={CONF_POLL_INTERVAL: 30000})

    assert entry_option(entry, CONF_POLL_INTERVAL, 60000) == 30000
    assert entry_option(_entry(data={CONF_POLL_INTERVAL: 7000}), CONF_POLL_INTERVAL, 60000) == 7000
    assert entry_option(_entry(), CONF_POLL_INTERVAL, 60000) == 60000


class TestSlotSensor:
    def _synced(self, store: MemorySlotStore, summary_v3: dict) -> MagicMock:
        TreeSynchronizer(store, "items", DEVICE_MAPPING_ID).sync(summary_v3)
        return _coordinator(store, summary_v3)

    def test_numeric_slot(self, store: MemorySlotStore, summary_v3: dict) -> None:
        coordinator = self._synced(store, summary_v3)
        sensor = OilfoxSlotSensor(coordinator, _entry(), "items.0.fillLevelPercent")

        assert sensor.unique_id == "entry-1_items.0.fillLevelPercent"
        assert sensor.native_value == 72
        assert sensor.native_unit_of_measurement == PERCENTAGE
        assert sensor.entity_category is None
        assert sensor.device_info["name"] == "OilFox OF-3"
        assert sensor.device_info["via_device"] == (DOMAIN, "entry-1")

    def test_text_slot_is_diagnostic(self, store: MemorySlotStore, summary_v3: dict) -> None:
        coordinator = self._synced(store, summary_v3)
        sensor = OilfoxSlotSensor(coordinator, _entry(), "items.0.hwid")

        assert sensor.native_value == "AA:BB:CC"
        assert sensor.entity_category == EntityCategory.DIAGNOSTIC
        assert sensor.extra_state_attributes == {"path": "items.0.hwid", "slot_type": "string"}

    def test_info_slot_belongs_to_account(self, store: MemorySlotStore, summary_v2: dict) -> None:
        TreeSynchronizer(store, "devices").sync(summary_v2)
        sensor = OilfoxSlotSensor(_coordinator(store), _entry(), "info.country")

        assert sensor.native_value == "DE"
        assert sensor.device_info["identifiers"] == {(DOMAIN, "entry-1")}


async def test_diagnostics_are_redacted(store: MemorySlotStore, summary_v2: dict) -> None:
    TreeSynchronizer(store, "devices").sync(summary_v2)
    entry = _entry(data={CONF_EMAIL: "owner@example.com", CONF_PASSWORD: "secret"})
    hass = MagicMock()
    hass.data = {DOMAIN: {entry.entry_id: _coordinator(store, summary_v2)}}

    result = await async_get_config_entry_diagnostics(hass, entry)

    assert result["entry"]["data"] == {CONF_EMAIL: "**REDACTED**", CONF_PASSWORD: "**REDACTED**"}
    assert result["summary"]["email"] == "**REDACTED**"
    assert result["summary"]["country"] == "DE"
    assert result["slots"]["info.email"]["value"] == "**REDACTED**"
    assert result["slots"]["devices.0.metering.liters"]["value"] == 1250.5
    # The store itself is untouched
    assert store.read("info.email") == "owner@example.com"
