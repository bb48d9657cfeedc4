"""
Diagnostics support for the OilFox integration.

Settings -> Devices & Services -> OilFox -> ⋮ -> Download diagnostics

Diagnostics files help with debugging but MUST NOT contain sensitive data.
"""

from __future__ import annotations

from typing import Any

from homeassistant.components.diagnostics import async_redact_data
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from .const import CONF_EMAIL, CONF_PASSWORD, DOMAIN

# Credentials and session tokens, wherever they appear
TO_REDACT = {
    CONF_EMAIL,
    CONF_PASSWORD,
    "token",
    "access_token",
    "refresh_token",
}


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant, entry: ConfigEntry
) -> dict[str, Any]:
    """Return the entry config, last summary and slot tree, redacted."""
    coordinator = hass.data[DOMAIN].get(entry.entry_id)

    if coordinator is None:
        return {"error": "Coordinator not found"}

    # Slot snapshots are keyed by path, so values like info.email need their own pass
    slots = coordinator.slot_store.as_dict()
    for path, slot in slots.items():
        if path.rsplit(".", 1)[-1] in TO_REDACT:
            slot["value"] = "**REDACTED**"

    return {
        "entry": {
            "data": async_redact_data(dict(entry.data), TO_REDACT),
            "options": async_redact_data(dict(entry.options), TO_REDACT),
        },
        "last_update_success": coordinator.last_update_success,
        "summary": async_redact_data(coordinator.data or {}, TO_REDACT),
        "slots": slots,
    }
