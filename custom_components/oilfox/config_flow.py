"""Config flow for the OilFox integration.

This file handles:
- The initial config flow (email, password, API version, polling settings)
- Live validation of credentials against the OilFox cloud
- The options flow for changing polling settings later
"""

from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol
from homeassistant import config_entries
from homeassistant.core import callback
from homeassistant.helpers.aiohttp_client import async_create_clientsession

from .api import AuthError, OilfoxClient, OilfoxError
from .const import (
    API_V2,
    API_V3,
    CONF_API_VERSION,
    CONF_DEVICE_MAPPING,
    CONF_EMAIL,
    CONF_PASSWORD,
    CONF_POLL_INTERVAL,
    CONF_SCHEDULE,
    DEFAULT_API_VERSION,
    DEFAULT_DEVICE_MAPPING,
    DEFAULT_POLL_INTERVAL,
    DEVICE_MAPPING_ID,
    DEVICE_MAPPING_POSITION,
    DOMAIN,
)
from .schedule import ScheduleError, parse_schedule

_LOGGER = logging.getLogger(__name__)

POLL_INTERVAL_VALIDATOR = vol.All(vol.Coerce(int), vol.Range(min=1000))
DEVICE_MAPPING_VALIDATOR = vol.In([DEVICE_MAPPING_ID, DEVICE_MAPPING_POSITION])


def _schedule_error(user_input: dict[str, Any]) -> str | None:
    """Return an error code if the optional cron schedule is unusable."""
    schedule = (user_input.get(CONF_SCHEDULE) or "").strip()
    if not schedule:
        return None
    try:
        parse_schedule(schedule)
    except ScheduleError as err:
        _LOGGER.debug("OilFox config flow: rejected schedule %r: %s", schedule, err)
        return "invalid_schedule"
    return None


class OilfoxConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Handle the initial config flow for OilFox."""

    VERSION = 1
    CONNECTION_CLASS = config_entries.CONN_CLASS_CLOUD_POLL

    def __init__(self) -> None:
        self._errors: dict[str, str] = {}

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> config_entries.ConfigFlowResult:
        """Show the account form, validate it, and create the entry."""
        self._errors = {}

        if user_input is not None:
            schedule_error = _schedule_error(user_input)
            if schedule_error is not None:
                self._errors[CONF_SCHEDULE] = schedule_error
                return self._show_user_form(user_input)

            error = await self._async_validate_input(user_input)

            if error is None:
                # One entry per OilFox account
                await self.async_set_unique_id(user_input[CONF_EMAIL].lower())
                self._abort_if_unique_id_configured()

                return self.async_create_entry(
                    title=user_input[CONF_EMAIL],
                    data={
                        CONF_EMAIL: user_input[CONF_EMAIL],
                        CONF_PASSWORD: user_input[CONF_PASSWORD],
                        CONF_API_VERSION: user_input.get(
                            CONF_API_VERSION, DEFAULT_API_VERSION
                        ),
                        CONF_POLL_INTERVAL: user_input.get(
                            CONF_POLL_INTERVAL, DEFAULT_POLL_INTERVAL
                        ),
                        CONF_SCHEDULE: (user_input.get(CONF_SCHEDULE) or "").strip(),
                        CONF_DEVICE_MAPPING: user_input.get(
                            CONF_DEVICE_MAPPING, DEFAULT_DEVICE_MAPPING
                        ),
                    },
                )

            self._errors["base"] = error

        return self._show_user_form(user_input)

    def _show_user_form(
        self, user_input: dict[str, Any] | None
    ) -> config_entries.ConfigFlowResult:
        """Render the configuration form for the user step."""
        user_input = user_input or {}

        schema = vol.Schema(
            {
                vol.Required(CONF_EMAIL, default=user_input.get(CONF_EMAIL, "")): str,
                # Never prefill the password
                vol.Required(CONF_PASSWORD): str,
                vol.Optional(
                    CONF_API_VERSION,
                    default=user_input.get(CONF_API_VERSION, DEFAULT_API_VERSION),
                ): vol.In([API_V3, API_V2]),
                vol.Optional(
                    CONF_POLL_INTERVAL,
                    default=user_input.get(CONF_POLL_INTERVAL, DEFAULT_POLL_INTERVAL),
                ): POLL_INTERVAL_VALIDATOR,
                vol.Optional(
                    CONF_SCHEDULE, default=user_input.get(CONF_SCHEDULE, "")
                ): str,
                vol.Optional(
                    CONF_DEVICE_MAPPING,
                    default=user_input.get(CONF_DEVICE_MAPPING, DEFAULT_DEVICE_MAPPING),
                ): DEVICE_MAPPING_VALIDATOR,
            }
        )

        return self.async_show_form(
            step_id="user",
            data_schema=schema,
            errors=self._errors,
        )

    async def _async_validate_input(self, user_input: dict[str, Any]) -> str | None:
        """Validate the credentials by running a full login + summary fetch.

        Returns None on success, otherwise an error key from strings.json:
            - "invalid_auth"   → bad email/password
            - "cannot_connect" → network / HTTP / JSON issues
            - "unknown"        → unexpected exception
        """
        email = user_input[CONF_EMAIL]

        session = async_create_clientsession(self.hass)
        client = OilfoxClient(
            session,
            api_version=user_input.get(CONF_API_VERSION, DEFAULT_API_VERSION),
        )

        try:
            await client.fetch(email, user_input[CONF_PASSWORD])

        except AuthError:
            _LOGGER.warning("OilFox config flow: authentication failed for %s", email)
            return "invalid_auth"

        except OilfoxError as err:
            _LOGGER.warning(
                "OilFox config flow: API error while validating credentials: %s", err
            )
            return "cannot_connect"

        except Exception:  # noqa: BLE001
            _LOGGER.exception("OilFox config flow: unexpected exception during validation")
            return "unknown"

        _LOGGER.debug("OilFox config flow: validated credentials for %s", email)
        return None

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: config_entries.ConfigEntry,
    ) -> config_entries.OptionsFlow:
        """Return the options flow handler for this config entry."""
        return OilfoxOptionsFlow(config_entry)


class OilfoxOptionsFlow(config_entries.OptionsFlow):
    """Change poll interval, cron schedule and device mapping after setup."""

    def __init__(self, entry: config_entries.ConfigEntry) -> None:
        self.entry = entry

    def _current(self, key: str, default: Any) -> Any:
        return self.entry.options.get(key, self.entry.data.get(key, default))

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> config_entries.ConfigFlowResult:
        """Show and save the options form."""
        errors: dict[str, str] = {}

        if user_input is not None:
            schedule_error = _schedule_error(user_input)
            if schedule_error is None:
                user_input[CONF_SCHEDULE] = (user_input.get(CONF_SCHEDULE) or "").strip()
                return self.async_create_entry(title="", data=user_input)
            errors[CONF_SCHEDULE] = schedule_error

        schema = vol.Schema(
            {
                vol.Optional(
                    CONF_POLL_INTERVAL,
                    default=self._current(CONF_POLL_INTERVAL, DEFAULT_POLL_INTERVAL),
                ): POLL_INTERVAL_VALIDATOR,
                vol.Optional(
                    CONF_SCHEDULE, default=self._current(CONF_SCHEDULE, "")
                ): str,
                vol.Optional(
                    CONF_DEVICE_MAPPING,
                    default=self._current(CONF_DEVICE_MAPPING, DEFAULT_DEVICE_MAPPING),
                ): DEVICE_MAPPING_VALIDATOR,
            }
        )

        return self.async_show_form(step_id="init", data_schema=schema, errors=errors)
