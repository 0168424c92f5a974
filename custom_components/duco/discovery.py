"""mDNS discovery of the Duco box."""

from __future__ import annotations

import asyncio
import logging

from zeroconf import IPVersion, ServiceStateChange, Zeroconf
from zeroconf.asyncio import AsyncServiceBrowser, AsyncServiceInfo

from homeassistant.components import zeroconf
from homeassistant.core import HomeAssistant

from .const import RESOLVE_TIMEOUT

_LOGGER = logging.getLogger(__name__)


class DucoServiceDiscovery:
    """Finds advertised services on the local network."""

    def __init__(self, hass: HomeAssistant) -> None:
        """Initialize the discovery helper."""
        self.hass = hass

    async def async_find_first(
        self, service_type: str, name_prefix: str, timeout: float
    ) -> str | None:
        """Find the first service of a type whose name starts with a prefix.

        Args:
            service_type: Fully qualified service type, e.g. _http._tcp.local.
            name_prefix: Start of the advertised instance name
            timeout: Seconds to browse before giving up

        Returns:
            Address of the matching host, None if nothing matched in time

        """
        aiozc = await zeroconf.async_get_async_instance(self.hass)
        found: asyncio.Future[str] = self.hass.loop.create_future()

        def _on_service_state_change(
            zeroconf: Zeroconf,
            service_type: str,
            name: str,
            state_change: ServiceStateChange,
        ) -> None:
            if state_change is not ServiceStateChange.Added:
                return
            if not name.startswith(name_prefix):
                _LOGGER.debug("Ignoring service %s", name)
                return
            if not found.done():
                found.set_result(name)

        browser = AsyncServiceBrowser(
            aiozc.zeroconf, service_type, handlers=[_on_service_state_change]
        )
        try:
            async with asyncio.timeout(timeout):
                name = await found
        except TimeoutError:
            _LOGGER.debug(
                "No %s service starting with %r found", service_type, name_prefix
            )
            return None
        finally:
            await browser.async_cancel()

        _LOGGER.debug("Found service %s", name)
        info = AsyncServiceInfo(service_type, name)
        if not await info.async_request(aiozc.zeroconf, RESOLVE_TIMEOUT * 1000):
            _LOGGER.warning("Could not resolve service %s", name)
            return None

        addresses = info.parsed_addresses(IPVersion.V4Only)
        if addresses:
            return addresses[0]
        if info.server:
            return info.server.rstrip(".")
        return None
