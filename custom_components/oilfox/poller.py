"""
One poll cycle: fetch the summary, then mirror it into the slot tree.

The poller does not schedule itself; Home Assistant's coordinator (timer mode)
or a cron trigger calls async_poll(). Two safety nets live here:

- an in-flight guard that refuses to start a cycle while one is running
- a watchdog that cancels a cycle which has not finished in time
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict

from .api import OilfoxClient, OilfoxError
from .const import WATCHDOG_TIMEOUT
from .tree import TreeSynchronizer

_LOGGER = logging.getLogger(__name__)


class CycleInFlightError(OilfoxError):
    """A poll was requested while the previous one is still running."""


class WatchdogError(OilfoxError):
    """A poll cycle did not finish before the watchdog deadline."""


class OilfoxPoller:
    """Run fetch + sync cycles for one account."""

    def __init__(
        self,
        client: OilfoxClient,
        synchronizer: TreeSynchronizer,
        email: str,
        password: str,
        watchdog: float = WATCHDOG_TIMEOUT,
    ) -> None:
        self._client = client
        self._synchronizer = synchronizer
        self._email = email
        self._password = password
        self._watchdog = watchdog
        self._lock = asyncio.Lock()

    @property
    def in_flight(self) -> bool:
        """Return True while a cycle is running."""
        return self._lock.locked()

    async def async_poll(self) -> Dict[str, Any]:
        """Run one cycle and return the summary document that was applied.

        Errors propagate to the caller; slots written before a failure keep
        their new values.
        """
        if self._lock.locked():
            raise CycleInFlightError("Previous poll cycle is still running")

        async with self._lock:
            try:
                return await asyncio.wait_for(self._async_cycle(), self._watchdog)
            except asyncio.TimeoutError as err:
                raise WatchdogError(
                    f"Poll cycle did not finish within {self._watchdog} seconds"
                ) from err

    async def _async_cycle(self) -> Dict[str, Any]:
        document = await self._client.fetch(self._email, self._password)

        paths = self._synchronizer.ensure_schema(document)
        written = self._synchronizer.apply_values(document)

        _LOGGER.debug(
            "Poll cycle complete: %d slot(s) in document, %d written",
            len(paths),
            written,
        )
        return document
