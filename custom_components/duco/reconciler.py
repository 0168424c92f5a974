"""Discovery and reconciliation of Duco nodes."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
import logging

import aiohttp

from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback
from homeassistant.helpers.event import async_call_later

from .api import (
    DucoApiClient,
    DucoApiError,
    DucoConnectionError,
    decode_ventilation_level,
)
from .const import (
    DEFAULT_NAME,
    DISCOVERY_TIMEOUT,
    SERVICE_NAME_PREFIX,
    SERVICE_TYPE,
)
from .controller import DucoVentilationController
from .discovery import DucoServiceDiscovery
from .models import (
    DucoAccessoryBundle,
    NodeIdentity,
    NodeLocation,
    VentilationLevel,
    node_identity,
)
from .registry import DucoAccessoryRegistry

_LOGGER = logging.getLogger(__name__)


class DucoDeviceReconciler:
    """Finds the Duco box and keeps one controller running per node.

    The bundle mapping is owned by the reconciler and only mutated here. A
    node is identified by its serial number, so a node that moves to another
    host or node index keeps its entity while its controller is replaced.
    Nodes that disappear are kept.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        registry: DucoAccessoryRegistry,
        discovery: DucoServiceDiscovery,
        session: aiohttp.ClientSession,
        *,
        refresh_interval: timedelta,
        retry_interval: timedelta,
        static_host: str | None = None,
        api_factory: Callable[[str, aiohttp.ClientSession], DucoApiClient] = (
            DucoApiClient
        ),
    ) -> None:
        """Initialize the reconciler.

        Args:
            hass: Home Assistant instance
            registry: Where discovered nodes are exposed and remembered
            discovery: mDNS helper used to find the box
            session: Client session shared by all API clients
            refresh_interval: Poll interval of every controller
            retry_interval: Time to wait after a failed discovery
            static_host: Configured host, skips mDNS discovery when set
            api_factory: Creates the API client for a host

        """
        self.hass = hass
        self.registry = registry
        self.discovery = discovery
        self.refresh_interval = refresh_interval
        self.retry_interval = retry_interval
        self.static_host = static_host
        self.bundles: dict[NodeIdentity, DucoAccessoryBundle] = {}
        self.last_error: Exception | None = None
        self._session = session
        self._api_factory = api_factory
        self._cancel_retry: CALLBACK_TYPE | None = None
        self._shutdown = False

    @property
    def retry_scheduled(self) -> bool:
        """Return if a discovery retry is pending."""
        return self._cancel_retry is not None

    async def async_discover(self) -> None:
        """Run one discovery pass and reconcile the nodes found.

        A pass that is still running when the reconciler shuts down stops at
        its next step and leaves no retry or controller behind.
        """
        if self._shutdown:
            return

        self._async_cancel_retry()

        host = await self._async_find_host()
        if self._shutdown:
            _LOGGER.debug("Discarding discovery result after shutdown")
            return

        if host is None:
            _LOGGER.warning(
                "Could not find Duco box on the local network, retrying in %s",
                self.retry_interval,
            )
            self._cancel_retry = async_call_later(
                self.hass, self.retry_interval, self._async_handle_retry
            )
            return

        api = self._api_factory(host, self._session)

        try:
            board_info = await api.async_get_board_info()
            nodes = await api.async_find_nodes()
        except (DucoApiError, DucoConnectionError) as err:
            _LOGGER.error("Host %s is not a usable Duco box: %s", host, err)
            self.last_error = err
            return

        if self._shutdown:
            _LOGGER.debug("Discarding nodes of %s after shutdown", host)
            return

        self.last_error = None
        _LOGGER.info(
            "Found Duco box %s (software %s) at %s with nodes %s",
            board_info.serial,
            board_info.software_version,
            host,
            nodes,
        )

        for node in nodes:
            if self._shutdown:
                return
            try:
                await self._async_reconcile_node(api, node, len(nodes))
            except Exception:  # pylint: disable=broad-except
                _LOGGER.exception(
                    "Skipping node %s of Duco box at %s until the next discovery",
                    node,
                    host,
                )

    async def _async_find_host(self) -> str | None:
        if self.static_host:
            return self.static_host

        _LOGGER.info("Searching for Duco box")
        return await self.discovery.async_find_first(
            SERVICE_TYPE, SERVICE_NAME_PREFIX, DISCOVERY_TIMEOUT
        )

    async def _async_reconcile_node(
        self, api: DucoApiClient, node: int, node_count: int
    ) -> None:
        node_info = await api.async_get_node_info(node)
        if self._shutdown:
            return

        identity = node_identity(node_info.serial_number)
        level = decode_ventilation_level(node_info)
        location = NodeLocation(api.host, node)
        name = DEFAULT_NAME if node_count == 1 else f"{DEFAULT_NAME} node {node}"

        bundle = self.bundles.get(identity)

        if bundle is None:
            _LOGGER.debug(
                "New node %s (%s) at %s with level %s",
                identity,
                node_info.node_type,
                location,
                level.name,
            )
            seed = self.registry.async_get_seed(identity)
            if seed is not None:
                remembered = NodeLocation(seed["host"], seed["node"])
                if remembered != location:
                    _LOGGER.info(
                        "Node %s moved from %s to %s since the last run",
                        identity,
                        remembered,
                        location,
                    )
            bundle = DucoAccessoryBundle(
                identity=identity,
                location=location,
                name=name,
                node_type=node_info.node_type,
                controller=self._async_start_controller(api, node, level),
            )
            self.bundles[identity] = bundle
            self.registry.async_register(bundle)
            return

        if bundle.location == location:
            _LOGGER.debug("Node %s is still at %s", identity, location)
            return

        _LOGGER.info(
            "Node %s moved from %s to %s", identity, bundle.location, location
        )
        bundle.controller.dispose()
        bundle.location = location
        bundle.name = name
        bundle.controller = self._async_start_controller(api, node, level)
        self.registry.async_relocate(bundle)

    @callback
    def _async_start_controller(
        self, api: DucoApiClient, node: int, level: VentilationLevel
    ) -> DucoVentilationController:
        # The level read during discovery stands in until the first poll
        controller = DucoVentilationController(
            self.hass,
            api,
            node,
            self.refresh_interval,
            is_initially_on=level is VentilationLevel.HIGH,
        )
        controller.async_start()
        return controller

    async def _async_handle_retry(self, now: datetime) -> None:
        self._cancel_retry = None
        await self.async_discover()

    @callback
    def _async_cancel_retry(self) -> None:
        if self._cancel_retry is not None:
            self._cancel_retry()
            self._cancel_retry = None

    @callback
    def async_shutdown(self) -> None:
        """Stop discovery and every controller."""
        _LOGGER.debug("Shutting down Duco reconciler")
        self._shutdown = True
        self._async_cancel_retry()
        for bundle in self.bundles.values():
            bundle.controller.dispose()
