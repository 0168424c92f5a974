"""Integration for Duco ventilation systems."""

from __future__ import annotations

from datetime import timedelta
import logging

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import CONF_HOST, EVENT_HOMEASSISTANT_STOP
from homeassistant.core import Event, HomeAssistant, callback
from homeassistant.exceptions import ConfigEntryNotReady
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from .api import DucoApiClient, DucoApiError, DucoConnectionError
from .const import (
    CONF_REFRESH_INTERVAL,
    CONF_RETRY_INTERVAL,
    DEFAULT_REFRESH_INTERVAL,
    DEFAULT_RETRY_INTERVAL,
    DOMAIN,
    PLATFORMS,
)
from .discovery import DucoServiceDiscovery
from .reconciler import DucoDeviceReconciler
from .registry import DucoAccessoryRegistry

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up Duco from a config entry."""
    session = async_get_clientsession(hass)
    static_host: str | None = entry.data.get(CONF_HOST) or None

    # A configured host must answer before the nodes can be enumerated
    if static_host:
        try:
            await DucoApiClient(static_host, session).async_validate_connection()
        except (DucoApiError, DucoConnectionError) as err:
            raise ConfigEntryNotReady(
                f"Failed to connect to Duco box at {static_host}: {err}"
            ) from err

    registry = DucoAccessoryRegistry(hass, entry.entry_id)
    await registry.async_load()

    reconciler = DucoDeviceReconciler(
        hass,
        registry,
        DucoServiceDiscovery(hass),
        session,
        refresh_interval=timedelta(
            seconds=entry.options.get(CONF_REFRESH_INTERVAL, DEFAULT_REFRESH_INTERVAL)
        ),
        retry_interval=timedelta(
            seconds=entry.options.get(CONF_RETRY_INTERVAL, DEFAULT_RETRY_INTERVAL)
        ),
        static_host=static_host,
    )

    # Store reconciler for platforms to access
    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = reconciler

    # Set up platforms before discovery so nodes can be added as they are found
    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    entry.async_create_background_task(
        hass, reconciler.async_discover(), "Duco discovery"
    )

    @callback
    def _async_shutdown(event: Event) -> None:
        reconciler.async_shutdown()

    entry.async_on_unload(
        hass.bus.async_listen_once(EVENT_HOMEASSISTANT_STOP, _async_shutdown)
    )
    entry.async_on_unload(entry.add_update_listener(update_listener))

    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)

    if unload_ok:
        reconciler: DucoDeviceReconciler = hass.data[DOMAIN].pop(entry.entry_id)
        reconciler.async_shutdown()

        if not hass.data[DOMAIN]:
            hass.data.pop(DOMAIN)

    return unload_ok


async def async_remove_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Forget the remembered accessories of a removed entry."""
    await DucoAccessoryRegistry(hass, entry.entry_id).async_remove()


async def update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Handle options update."""
    await hass.config_entries.async_reload(entry.entry_id)
