"""Support for Duco ventilation."""

from __future__ import annotations

from collections.abc import Callable
import logging
from typing import TYPE_CHECKING, Any

from homeassistant.components.fan import FanEntity, FanEntityFeature
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.entity import DeviceInfo
from homeassistant.helpers.entity_platform import AddConfigEntryEntitiesCallback

from .api import DucoApiError, DucoConnectionError
from .const import ATTR_HOST, ATTR_NODE, ATTR_VENTILATION_LEVEL, DOMAIN, MANUFACTURER
from .controller import DucoLevelUnavailableError
from .models import DucoAccessoryBundle

if TYPE_CHECKING:
    from .reconciler import DucoDeviceReconciler
    from .registry import DucoAccessoryRegistry

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddConfigEntryEntitiesCallback,
) -> None:
    """Set up Duco ventilation fans."""
    reconciler: DucoDeviceReconciler = hass.data[DOMAIN][entry.entry_id]
    reconciler.registry.async_set_add_entities(async_add_entities)


class DucoVentilationFan(FanEntity):
    """A Duco node, on when its ventilation is forced to high."""

    _attr_has_entity_name = True
    _attr_name = None
    _attr_should_poll = False
    _attr_supported_features = FanEntityFeature.TURN_ON | FanEntityFeature.TURN_OFF

    def __init__(
        self, registry: DucoAccessoryRegistry, bundle: DucoAccessoryBundle
    ) -> None:
        """Initialize the fan."""
        self._registry = registry
        self._bundle = bundle
        self._unsub_controller: Callable[[], None] | None = None

        self._attr_unique_id = bundle.identity
        self._attr_device_info = DeviceInfo(
            identifiers={(DOMAIN, bundle.identity)},
            name=bundle.name,
            manufacturer=MANUFACTURER,
            model=bundle.node_type,
        )

    @property
    def available(self) -> bool:  # type: ignore[override]
        """Return if entity is available."""
        return self._bundle.controller.available

    @property
    def is_on(self) -> bool | None:  # type: ignore[override]
        """Return if ventilation is forced to high, None if unknown."""
        try:
            return self._bundle.controller.get()
        except DucoLevelUnavailableError:
            return None

    @property
    def extra_state_attributes(self) -> dict[str, Any]:  # type: ignore[override]
        """Return extra state attributes."""
        level = self._bundle.controller.level
        return {
            ATTR_HOST: self._bundle.location.host,
            ATTR_NODE: self._bundle.location.node,
            ATTR_VENTILATION_LEVEL: level.name.lower() if level else None,
        }

    async def async_turn_on(
        self,
        percentage: int | None = None,
        preset_mode: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Force high ventilation."""
        await self._async_set(True)

    async def async_turn_off(self, **kwargs: Any) -> None:
        """Return ventilation to automatic mode."""
        await self._async_set(False)

    async def _async_set(self, turn_on: bool) -> None:
        try:
            await self._bundle.controller.async_set(turn_on)
        except (DucoApiError, DucoConnectionError) as err:
            raise HomeAssistantError(
                f"Failed to turn {'on' if turn_on else 'off'} {self._bundle.name}:"
                f" {err}"
            ) from err

        self._registry.async_remember_state(self._bundle.identity, turn_on)
        self.async_write_ha_state()

    async def async_added_to_hass(self) -> None:
        """Subscribe to the controller of the node."""
        await super().async_added_to_hass()
        self._async_subscribe()

    async def async_will_remove_from_hass(self) -> None:
        """Unsubscribe from the controller of the node."""
        self._async_unsubscribe()
        await super().async_will_remove_from_hass()

    @callback
    def async_rebind(self) -> None:
        """Follow the node to the controller at its new location."""
        self._async_unsubscribe()
        if self.hass is None:
            return
        self._async_subscribe()
        self.async_write_ha_state()

    @callback
    def on_level_changed(self, is_high: bool) -> None:
        """Handle a new ventilation level reported by the device."""
        self._registry.async_remember_state(self._bundle.identity, is_high)
        self.async_write_ha_state()

    @callback
    def on_unreachable(self) -> None:
        """Handle a failed poll."""
        self.async_write_ha_state()

    @callback
    def on_reachable(self) -> None:
        """Handle a successful poll after a failed one."""
        self.async_write_ha_state()

    @callback
    def _async_subscribe(self) -> None:
        self._unsub_controller = self._bundle.controller.async_add_listener(self)

    @callback
    def _async_unsubscribe(self) -> None:
        if self._unsub_controller is not None:
            self._unsub_controller()
            self._unsub_controller = None
