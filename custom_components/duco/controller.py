"""Ventilation level state machine for a single Duco node."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
import logging
from typing import Any, Protocol

from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.event import async_track_time_interval

from .api import (
    DucoApiClient,
    DucoApiError,
    DucoConnectionError,
    decode_ventilation_level,
)
from .models import NodeLocation, VentilationLevel

_LOGGER = logging.getLogger(__name__)


class DucoLevelUnavailableError(HomeAssistantError):
    """Exception to indicate no ventilation level is known yet."""


class DucoControllerListener(Protocol):
    """Receives state changes of a ventilation controller.

    Each change is delivered at most once: `on_level_changed` only fires when
    a poll reports a level different from the cached one, `on_unreachable`
    on every failed poll and `on_reachable` on the first success after one.
    """

    def on_level_changed(self, is_high: bool) -> None:
        """Handle a new ventilation level reported by the device."""

    def on_unreachable(self) -> None:
        """Handle a failed poll."""

    def on_reachable(self) -> None:
        """Handle a successful poll after a failed one."""


class DucoVentilationController:
    """Keeps the ventilation level of one node in sync with the device."""

    def __init__(
        self,
        hass: HomeAssistant,
        api: DucoApiClient,
        node: int,
        refresh_interval: timedelta,
        is_initially_on: bool | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            hass: Home Assistant instance
            api: Client bound to the host the node lives on
            node: Index of the node on that host
            refresh_interval: Time between two polls
            is_initially_on: Last known state, only used until the first poll

        """
        self.hass = hass
        self.api = api
        self.node = node
        self.location = NodeLocation(api.host, node)
        self.refresh_interval = refresh_interval
        self.level: VentilationLevel | None = None
        self.available = True
        self._is_initially_on = is_initially_on
        self._listeners: list[DucoControllerListener] = []
        self._unsub_refresh: CALLBACK_TYPE | None = None
        self._disposed = False

    @callback
    def async_start(self) -> None:
        """Poll right away and then on every refresh interval."""
        self.hass.async_create_task(
            self.async_refresh(), f"Duco refresh {self.location}"
        )
        self._schedule_refresh()

    @callback
    def async_add_listener(
        self, listener: DucoControllerListener
    ) -> Callable[[], None]:
        """Register a listener and return a function removing it."""
        self._listeners.append(listener)

        @callback
        def remove_listener() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove_listener

    async def async_refresh(self) -> None:
        """Poll the device for the current ventilation level.

        Failures are logged and reported to the listeners, never raised.
        """
        try:
            node_info = await self.api.async_get_node_info(self.node)
            level = decode_ventilation_level(node_info)
        except (DucoApiError, DucoConnectionError) as err:
            self._handle_refresh_failure(err)
            return
        except Exception as err:  # pylint: disable=broad-except
            _LOGGER.exception("Unexpected error refreshing %s", self.location)
            self._handle_refresh_failure(err)
            return

        if self._disposed:
            _LOGGER.debug("Discarding level of disposed %s", self.location)
            return

        if not self.available:
            self.available = True
            _LOGGER.info("Duco %s is reachable again", self.location)
            self._notify_listeners("on_reachable")

        if level is self.level:
            _LOGGER.debug(
                "Ventilation level of %s is still %s", self.location, level.name
            )
            return

        if self.level is None:
            _LOGGER.info(
                "Ventilation level of %s after startup = %s", self.location, level.name
            )
        else:
            _LOGGER.info(
                "New ventilation level of %s = %s", self.location, level.name
            )

        self.level = level
        self._notify_listeners("on_level_changed", level is VentilationLevel.HIGH)

    def _handle_refresh_failure(self, err: Exception) -> None:
        if self._disposed:
            _LOGGER.debug(
                "Ignoring failed refresh of disposed %s: %s", self.location, err
            )
            return

        if self.level is None:
            _LOGGER.error(
                "Could not receive ventilation level of %s and also no fallback"
                " available: %s",
                self.location,
                err,
            )
        else:
            _LOGGER.info(
                "Could not receive new ventilation level of %s. Falling back to"
                " old ventilation level %s which may be out of date: %s",
                self.location,
                self.level.name,
                err,
            )

        self.available = False
        self._notify_listeners("on_unreachable")

    def _notify_listeners(self, event: str, *args: Any) -> None:
        for listener in list(self._listeners):
            try:
                getattr(listener, event)(*args)
            except Exception:  # pylint: disable=broad-except
                _LOGGER.exception(
                    "Error in %s listener of %s", event, self.location
                )

    async def async_set(self, turn_on: bool) -> None:
        """Force high ventilation, or hand control back to the box.

        Raises:
            DucoApiError: If the box rejects the change
            DucoConnectionError: If connection fails

        """
        level = VentilationLevel.HIGH if turn_on else VentilationLevel.AUTO
        _LOGGER.info(
            "Setting ventilation level of %s to %s", self.location, level.name
        )

        try:
            await self.api.async_update_overrule(self.node, level.overrule)
        except (DucoApiError, DucoConnectionError) as err:
            _LOGGER.error(
                "Could not set ventilation level of %s to %s: %s",
                self.location,
                level.name,
                err,
            )
            raise

        # The device does not confirm the new level until the next poll
        self.level = level
        _LOGGER.info(
            "Ventilation level of %s set to %s (%s)",
            self.location,
            level.name,
            level.overrule,
        )

        # Restart the interval so the level just written is not polled right away
        if self._unsub_refresh is not None:
            self._unsub_refresh()
            self._schedule_refresh()

    def get(self) -> bool:
        """Return whether ventilation is forced to high.

        Raises:
            DucoLevelUnavailableError: If no level was received yet and no
                initial state is known

        """
        if self.level is None:
            if self._is_initially_on is not None:
                return self._is_initially_on
            raise DucoLevelUnavailableError(
                f"No ventilation level available yet for {self.location}"
            )

        return self.level is VentilationLevel.HIGH

    @callback
    def dispose(self) -> None:
        """Stop polling the device."""
        self._disposed = True
        if self._unsub_refresh is not None:
            _LOGGER.debug("Stopping ventilation level refresh of %s", self.location)
            self._unsub_refresh()
            self._unsub_refresh = None

    @callback
    def _schedule_refresh(self) -> None:
        self._unsub_refresh = async_track_time_interval(
            self.hass,
            self._async_handle_refresh_interval,
            self.refresh_interval,
            name=f"Duco refresh {self.location}",
        )

    async def _async_handle_refresh_interval(self, now: datetime) -> None:
        await self.async_refresh()
