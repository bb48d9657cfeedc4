"""
Custom integration to mirror OilFox tank readings into Home Assistant.

This file handles:
- Initializing the integration
- Creating the API client, the slot store and the poller
- Creating the DataUpdateCoordinator that runs poll cycles
- Choosing between timer polling and a cron schedule
- Forwarding setup/unload to platforms (sensor)
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryNotReady
from homeassistant.helpers.aiohttp_client import async_get_clientsession
from homeassistant.helpers.event import async_track_time_change
from homeassistant.helpers.storage import Store
from homeassistant.helpers.typing import ConfigType
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from .api import API_VERSIONS, AuthError, OilfoxClient, OilfoxError
from .const import (
    CONF_API_VERSION,
    CONF_DEVICE_MAPPING,
    CONF_EMAIL,
    CONF_PASSWORD,
    CONF_POLL_INTERVAL,
    CONF_SCHEDULE,
    DEFAULT_API_VERSION,
    DEFAULT_DEVICE_MAPPING,
    DEFAULT_POLL_INTERVAL,
    DOMAIN,
    PLATFORMS,
    STORAGE_VERSION,
)
from .poller import CycleInFlightError, OilfoxPoller
from .schedule import parse_schedule, spread_schedule
from .store import HomeAssistantSlotStore
from .tree import TreeSynchronizer

# The logger name becomes "custom_components.oilfox"
_LOGGER: logging.Logger = logging.getLogger(__package__)


async def async_setup(hass: HomeAssistant, config: ConfigType) -> bool:
    """YAML is not supported; everything goes through the config flow."""
    return True


def entry_option(entry: ConfigEntry, key: str, default: Any = None) -> Any:
    """Return an option, falling back to the entry data and then ``default``."""
    return entry.options.get(key, entry.data.get(key, default))


def _slot_store(hass: HomeAssistant, entry: ConfigEntry) -> HomeAssistantSlotStore:
    return HomeAssistantSlotStore(
        Store(hass, STORAGE_VERSION, f"{DOMAIN}.{entry.entry_id}")
    )


# --------------------------------------------------------------------------------------
# Data Update Coordinator
# --------------------------------------------------------------------------------------
class OilfoxDataUpdateCoordinator(DataUpdateCoordinator[dict[str, Any]]):
    """
    Runs poll cycles and hands the last summary document to the entities.

    The slot tree itself lives in ``slot_store``; ``data`` is only the raw
    document of the last successful cycle (used for diagnostics).
    """

    def __init__(
        self,
        hass: HomeAssistant,
        entry: ConfigEntry,
        poller: OilfoxPoller,
        slot_store: HomeAssistantSlotStore,
        update_interval: timedelta | None,
    ) -> None:
        self.poller = poller
        self.slot_store = slot_store

        # update_interval=None means refreshes only happen when the cron
        # trigger (or HA) asks for one
        super().__init__(
            hass,
            _LOGGER,
            config_entry=entry,
            name=DOMAIN,
            update_interval=update_interval,
        )

    async def _async_update_data(self) -> dict[str, Any]:
        """
        Run one poll cycle.

        Every failure is reported as UpdateFailed: HA logs it, marks the cycle
        as skipped and keeps the schedule running. Nothing is retried here.
        A trigger that lands while a cycle is still running keeps the last data.
        """
        try:
            return await self.poller.async_poll()

        except CycleInFlightError:
            _LOGGER.debug("Poll cycle still running; keeping the last summary")
            return self.data

        except AuthError as err:
            raise UpdateFailed(f"Authentication failed: {err}") from err

        except OilfoxError as err:
            raise UpdateFailed(str(err)) from err


# --------------------------------------------------------------------------------------
# async_setup_entry
# --------------------------------------------------------------------------------------
async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """
    Called when a config entry is created or reloaded.

    Responsibilities:
    - Restore the persisted slot tree
    - Create the API client, synchronizer, poller and coordinator
    - Arm either the polling timer or the cron trigger
    - Forward setup to the sensor platform
    """
    hass.data.setdefault(DOMAIN, {})

    email: str = entry.data[CONF_EMAIL]
    password: str = entry.data[CONF_PASSWORD]
    api_version: str = entry.data.get(CONF_API_VERSION, DEFAULT_API_VERSION)
    device_mapping: str = entry_option(entry, CONF_DEVICE_MAPPING, DEFAULT_DEVICE_MAPPING)
    schedule: str | None = entry_option(entry, CONF_SCHEDULE) or None

    slot_store = _slot_store(hass, entry)
    await slot_store.async_load()

    client = OilfoxClient(async_get_clientsession(hass), api_version=api_version)
    synchronizer = TreeSynchronizer(
        slot_store,
        collection_key=API_VERSIONS[api_version].collection_key,
        device_mapping=device_mapping,
    )
    poller = OilfoxPoller(client, synchronizer, email, password)

    if schedule:
        spread = spread_schedule(schedule)
        if spread != schedule:
            _LOGGER.info(
                "Replacing default schedule %r with %r to spread load", schedule, spread
            )
            # Runs before the update listener is registered, so no reload
            hass.config_entries.async_update_entry(
                entry, options={**entry.options, CONF_SCHEDULE: spread}
            )
            schedule = spread
        time_pattern = parse_schedule(schedule)
        update_interval = None
    else:
        poll_interval: int = entry_option(entry, CONF_POLL_INTERVAL, DEFAULT_POLL_INTERVAL)
        update_interval = timedelta(milliseconds=poll_interval)

    _LOGGER.debug(
        "Setting up OilFox (api=%s, mapping=%s, schedule=%s, interval=%s)",
        api_version,
        device_mapping,
        schedule,
        update_interval,
    )

    coordinator = OilfoxDataUpdateCoordinator(
        hass,
        entry,
        poller=poller,
        slot_store=slot_store,
        update_interval=update_interval,
    )

    # If the first refresh fails HA retries the whole setup later
    try:
        await coordinator.async_config_entry_first_refresh()
    except ConfigEntryNotReady:
        raise
    except Exception as err:  # noqa: BLE001
        raise ConfigEntryNotReady(str(err)) from err

    hass.data[DOMAIN][entry.entry_id] = coordinator

    if schedule:

        async def _async_scheduled_refresh(now: datetime) -> None:
            _LOGGER.debug("Cron schedule %r fired at %s", schedule, now)
            await coordinator.async_refresh()

        entry.async_on_unload(
            async_track_time_change(hass, _async_scheduled_refresh, **time_pattern)
        )

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    entry.async_on_unload(entry.add_update_listener(async_reload_entry))

    return True


# --------------------------------------------------------------------------------------
# async_unload_entry
# --------------------------------------------------------------------------------------
async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload platforms, flush the slot tree and drop the coordinator."""
    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)

    if unload_ok:
        coordinator: OilfoxDataUpdateCoordinator = hass.data[DOMAIN].pop(entry.entry_id)
        await coordinator.slot_store.async_save()

    return unload_ok


async def async_remove_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Delete the persisted slot tree when the integration is removed."""
    await _slot_store(hass, entry).async_remove()


async def async_reload_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Options changed: unload and set the entry up again."""
    await hass.config_entries.async_reload(entry.entry_id)
